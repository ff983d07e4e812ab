"""Abstract base class for numerical integrators."""

import math
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from galaxy_engine.errors import InvalidTransition, NumericInstability
from galaxy_engine.physics.forces import ForceEvaluator


def check_timestep(dt: float) -> float:
    """Return dt as a float, rejecting negative or non-finite values.

    Stepping backward needs a saved-state history, which the engine does not keep.
    """
    try:
        dt = float(dt)
    except (TypeError, ValueError) as exc:
        raise InvalidTransition(f"dt must be a number, got {dt!r}") from exc
    if not math.isfinite(dt):
        raise InvalidTransition(f"dt must be finite, got {dt}")
    if dt < 0.0:
        raise InvalidTransition(f"negative dt ({dt}) is not supported")
    return dt


def first_non_finite(values: np.ndarray) -> Optional[int]:
    """Index of the first row of an (n, 3) array holding NaN or Inf, else None."""
    bad = np.flatnonzero(~np.all(np.isfinite(values), axis=1))
    if bad.size == 0:
        return None
    return int(bad[0])


def ensure_finite(values: np.ndarray, quantity: str):
    index = first_non_finite(values)
    if index is not None:
        raise NumericInstability(index, quantity)


class Integrator(ABC):
    """Abstract interface for numerical integrators.

    An integrator owns the force evaluator it drives and advances a
    ParticleSystem in place.
    """

    def __init__(self, evaluator: ForceEvaluator):
        self.evaluator = evaluator

    @abstractmethod
    def step(self, system, dt: float) -> np.ndarray:
        """Perform one integration step, mutating system in place.

        Args:
            system: ParticleSystem to advance
            dt: Time step (finite, >= 0)

        Returns:
            Accelerations used for the step, shape (n, 3)

        Raises:
            InvalidTransition: If dt is negative or not finite
            NumericInstability: If any new value is non-finite; system is unchanged
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of this integrator."""
        pass

    @property
    @abstractmethod
    def order(self) -> int:
        """Return the order of accuracy."""
        pass
