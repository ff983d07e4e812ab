"""Exception hierarchy for the galaxy engine."""

from typing import Optional


class GalaxyEngineError(Exception):
    """Base class for all errors raised by the engine."""


class InvalidConfiguration(GalaxyEngineError, ValueError):
    """A galaxy or engine configuration is malformed (raised at generation time)."""


class InvalidTransition(GalaxyEngineError, RuntimeError):
    """A control call was made in a state that does not allow it, or with a bad dt."""


class NumericInstability(GalaxyEngineError, ArithmeticError):
    """A step produced a non-finite acceleration, velocity or position.

    The step that raised this was never committed, so the particle system still
    holds its pre-step state.
    """

    def __init__(self, index: int, quantity: str, message: Optional[str] = None):
        self.index = int(index)
        self.quantity = quantity
        if message is None:
            message = f"Non-finite {quantity} for particle {self.index}"
        super().__init__(message)
