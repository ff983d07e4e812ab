"""
Galaxy Engine - gravitational N-body core for disk galaxy simulations.

Features:
- Disk galaxy generator with tilted disks and rotation-curve velocities
- Softened direct-summation and Barnes-Hut force evaluators
- Symplectic (semi-implicit) Euler integration with rollback on instability
- Simulation controller with run/pause/step state machine and a flat,
  zero-copy position buffer for renderers
"""

__version__ = "0.1.0"

from galaxy_engine.errors import (
    GalaxyEngineError,
    InvalidConfiguration,
    InvalidTransition,
    NumericInstability,
)
from galaxy_engine.generator import GalaxyConfig, generate_galaxy, build_system
from galaxy_engine.physics import (
    DirectSummation,
    BarnesHut,
    make_evaluator,
)
from galaxy_engine.simulation import SimulationController, SimulationState

__all__ = [
    "GalaxyEngineError",
    "InvalidConfiguration",
    "InvalidTransition",
    "NumericInstability",
    "GalaxyConfig",
    "generate_galaxy",
    "build_system",
    "SimulationController",
    "SimulationState",
    "DirectSummation",
    "BarnesHut",
    "make_evaluator",
]
