"""Numerical integrators for N-body simulations."""

from galaxy_engine.errors import InvalidConfiguration
from galaxy_engine.physics.integrators.base import Integrator
from galaxy_engine.physics.integrators.symplectic_euler import SymplecticEulerIntegrator


def get_integrator(name: str, evaluator) -> Integrator:
    """Get an integrator by name, bound to the given force evaluator."""
    integrators = {
        "symplectic_euler": SymplecticEulerIntegrator,
        "semi_implicit_euler": SymplecticEulerIntegrator,
    }
    integrator_class = integrators.get(name.lower().replace("-", "_"))
    if integrator_class is None:
        raise InvalidConfiguration(f"Unknown integrator: {name}. Available: {sorted(integrators)}")
    return integrator_class(evaluator)


__all__ = ["Integrator", "SymplecticEulerIntegrator", "get_integrator"]
