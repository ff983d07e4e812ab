"""Physics engine for N-body simulations."""

from galaxy_engine.physics.system import ParticleSystem, Particle
from galaxy_engine.physics.forces import ForceEvaluator, DirectSummation, make_evaluator
from galaxy_engine.physics.barnes_hut import BarnesHut
from galaxy_engine.physics.integrators import Integrator, SymplecticEulerIntegrator, get_integrator

__all__ = [
    "ParticleSystem",
    "Particle",
    "ForceEvaluator",
    "DirectSummation",
    "BarnesHut",
    "make_evaluator",
    "Integrator",
    "SymplecticEulerIntegrator",
    "get_integrator",
]
