"""Gravitational acceleration evaluators.

All evaluators share one softened Newtonian law. For every pair (i, j):

    r_vec = x_j - x_i
    r2    = |r_vec|^2 + eps^2
    a_i  += G * m_j * r_vec / (r2 * sqrt(r2))

G and eps belong to the evaluator instance; there is no module-level state.
"""

import logging
import math
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Tuple

import numpy as np

from galaxy_engine.errors import InvalidConfiguration

logger = logging.getLogger(__name__)

G_DEFAULT = 6.674e-11  # Gravitational constant (SI value, shared time/mass/length units)
SOFTENING_DEFAULT = math.sqrt(10.0)  # eps^2 = 10 length units^2
BLOCK_SIZE_DEFAULT = 256


def _check_positive(value: float, name: str) -> float:
    value = float(value)
    if not math.isfinite(value) or value <= 0.0:
        raise InvalidConfiguration(f"{name} must be a positive finite number, got {value}")
    return value


def prepare_arrays(positions, masses) -> Tuple[np.ndarray, np.ndarray]:
    """Validate and coerce (n, 3) positions and (n,) masses to contiguous float64."""
    positions = np.ascontiguousarray(positions, dtype=np.float64)
    masses = np.ascontiguousarray(masses, dtype=np.float64).reshape(-1)
    if positions.ndim != 2 or positions.shape[1] != 3:
        raise ValueError(f"positions must have shape (n, 3), got {positions.shape}")
    if masses.shape[0] != positions.shape[0]:
        raise ValueError(f"masses length {masses.shape[0]} != {positions.shape[0]} positions")
    return positions, masses


class ForceEvaluator(ABC):
    """Abstract interface for acceleration evaluators."""

    def __init__(self, G: float = G_DEFAULT, softening: float = SOFTENING_DEFAULT):
        self.G = _check_positive(G, "G")
        self.softening = _check_positive(softening, "softening")
        # eps^3 is the smallest denominator in the force law (coincident particles)
        if self.softening ** 3 < np.finfo(np.float64).tiny:
            raise InvalidConfiguration(f"softening {self.softening} is too small: eps^3 underflows")

    @property
    def softening_sq(self) -> float:
        return self.softening * self.softening

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of this evaluator."""
        pass

    @property
    @abstractmethod
    def exact(self) -> bool:
        """True if the evaluator computes every pair explicitly."""
        pass

    @abstractmethod
    def compute_accelerations(self, positions, masses) -> np.ndarray:
        """Compute the acceleration on every particle.

        Args:
            positions: (n, 3) array
            masses: (n,) array

        Returns:
            (n, 3) float64 array, same order as the input
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(G={self.G!r}, softening={self.softening!r})"


class DirectSummation(ForceEvaluator):
    """Exact O(n^2) summation, vectorised over blocks of target rows.

    Each block of rows is computed independently and written into its own
    slice of the output, so blocks can be handed to a thread pool without any
    shared accumulation. The partition depends only on block_size, which makes
    results identical for any number of workers.
    """

    def __init__(
        self,
        G: float = G_DEFAULT,
        softening: float = SOFTENING_DEFAULT,
        block_size: int = BLOCK_SIZE_DEFAULT,
        workers: int = 1,
    ):
        super().__init__(G, softening)
        if int(block_size) < 1:
            raise InvalidConfiguration(f"block_size must be >= 1, got {block_size}")
        if int(workers) < 1:
            raise InvalidConfiguration(f"workers must be >= 1, got {workers}")
        self.block_size = int(block_size)
        self.workers = int(workers)

    @property
    def name(self) -> str:
        return "direct"

    @property
    def exact(self) -> bool:
        return True

    def compute_accelerations(self, positions, masses) -> np.ndarray:
        positions, masses = prepare_arrays(positions, masses)
        n = positions.shape[0]
        accelerations = np.zeros((n, 3))
        if n < 2:
            return accelerations

        blocks = [(start, min(start + self.block_size, n)) for start in range(0, n, self.block_size)]
        if self.workers > 1 and len(blocks) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                futures = [
                    executor.submit(self._accumulate_block, positions, masses, start, stop, accelerations)
                    for start, stop in blocks
                ]
                for future in futures:
                    future.result()
        else:
            for start, stop in blocks:
                self._accumulate_block(positions, masses, start, stop, accelerations)
        return accelerations

    def _accumulate_block(self, positions, masses, start, stop, out):
        """Write accelerations for rows [start, stop) into out[start:stop]."""
        # r_diff[i, j] = x_j - x_i, shape (b, n, 3)
        r_diff = positions[np.newaxis, :, :] - positions[start:stop, np.newaxis, :]
        r_sq = np.einsum("ijk,ijk->ij", r_diff, r_diff) + self.softening_sq
        weights = masses[np.newaxis, :] / (r_sq * np.sqrt(r_sq))
        # Self term: r_diff is zero there already, but keep it out of the sum explicitly
        rows = np.arange(stop - start)
        weights[rows, rows + start] = 0.0
        out[start:stop] = self.G * np.einsum("ij,ijk->ik", weights, r_diff)


def make_evaluator(name: str = "direct", G: float = G_DEFAULT, softening: float = SOFTENING_DEFAULT, **kwargs) -> ForceEvaluator:
    """Create a force evaluator by name.

    Args:
        name: 'direct' or 'barnes_hut'
        G: Gravitational constant
        softening: Softening length eps
        **kwargs: Evaluator-specific options (block_size, workers, theta)

    Raises:
        InvalidConfiguration: If the name is unknown
    """
    from galaxy_engine.physics.barnes_hut import BarnesHut

    evaluators = {
        "direct": DirectSummation,
        "barnes_hut": BarnesHut,
    }
    key = name.lower().replace("-", "_")
    evaluator_class = evaluators.get(key)
    if evaluator_class is None:
        raise InvalidConfiguration(f"Unknown evaluator '{name}'. Available: {list(evaluators.keys())}")
    return evaluator_class(G=G, softening=softening, **kwargs)
