"""Barnes-Hut octree approximation for O(n log n) accelerations.

A cell of side s seen from distance d is replaced by a point mass at its
centre of mass when s / d < theta. Leaves hold up to LEAF_CAPACITY particles
and are summed exactly. With theta = 0 no cell is ever approximated and the
result equals direct summation up to rounding.
"""

import logging
import warnings
from typing import List, Optional

import numpy as np

from galaxy_engine.errors import InvalidConfiguration
from galaxy_engine.physics.forces import (
    ForceEvaluator,
    G_DEFAULT,
    SOFTENING_DEFAULT,
    prepare_arrays,
)

logger = logging.getLogger(__name__)

THETA_DEFAULT = 0.5
THETA_MAX = 1.5
LEAF_CAPACITY = 8
MAX_DEPTH = 32

# Octant offsets indexed by code = ox | oy << 1 | oz << 2
_OCTANT_SIGNS = np.array(
    [[1.0 if code & bit else -1.0 for bit in (1, 2, 4)] for code in range(8)]
)


class _OctNode:
    """Single node of the octree."""

    __slots__ = ("center", "half", "mass", "com", "indices", "children")

    def __init__(self, center: np.ndarray, half: float):
        self.center = center  # (3,)
        self.half = half  # half side length
        self.mass = 0.0
        self.com = np.zeros(3)
        self.indices: Optional[np.ndarray] = None
        self.children: Optional[List["_OctNode"]] = None

    def contains(self, point: np.ndarray) -> bool:
        return bool(np.all(np.abs(point - self.center) <= self.half))


def build_octree(positions: np.ndarray, masses: np.ndarray) -> _OctNode:
    """Build an octree over all particles. positions (n, 3), masses (n,), n >= 1."""
    lo = positions.min(axis=0)
    hi = positions.max(axis=0)
    center = 0.5 * (lo + hi)
    half = 0.5 * float(np.max(hi - lo)) * 1.0001 or 1.0
    return _build(positions, masses, np.arange(positions.shape[0]), center, half, 0)


def _build(positions, masses, indices, center, half, depth) -> _OctNode:
    node = _OctNode(center, half)
    sub_masses = masses[indices]
    node.mass = float(np.sum(sub_masses))
    node.com = np.sum(sub_masses[:, np.newaxis] * positions[indices], axis=0) / node.mass
    if indices.size <= LEAF_CAPACITY or depth >= MAX_DEPTH:
        node.indices = indices
        return node

    upper = positions[indices] >= center
    codes = upper[:, 0].astype(np.intp) | (upper[:, 1].astype(np.intp) << 1) | (upper[:, 2].astype(np.intp) << 2)
    quarter = half / 2
    children = []
    for code in range(8):
        sub = indices[codes == code]
        if sub.size == 0:
            continue
        child_center = center + _OCTANT_SIGNS[code] * quarter
        children.append(_build(positions, masses, sub, child_center, quarter, depth + 1))
    node.children = children
    return node


class BarnesHut(ForceEvaluator):
    """Octree evaluator with the same contract as DirectSummation."""

    def __init__(
        self,
        G: float = G_DEFAULT,
        softening: float = SOFTENING_DEFAULT,
        theta: float = THETA_DEFAULT,
    ):
        super().__init__(G, softening)
        theta = float(theta)
        if not np.isfinite(theta) or theta < 0.0:
            raise InvalidConfiguration(f"theta must be >= 0, got {theta}")
        if theta > THETA_MAX:
            warnings.warn(
                f"theta={theta} gives very inaccurate forces; using theta={THETA_MAX}.",
                UserWarning,
            )
            theta = THETA_MAX
        self.theta = theta

    @property
    def name(self) -> str:
        return "barnes_hut"

    @property
    def exact(self) -> bool:
        return self.theta == 0.0

    def compute_accelerations(self, positions, masses) -> np.ndarray:
        positions, masses = prepare_arrays(positions, masses)
        n = positions.shape[0]
        accelerations = np.zeros((n, 3))
        if n < 2:
            return accelerations
        tree = build_octree(positions, masses)
        for i in range(n):
            accelerations[i] = self._accel_on(i, positions[i], tree, positions, masses)
        return accelerations

    def _accel_on(self, i, pos, node, positions, masses) -> np.ndarray:
        """Acceleration on particle i (at pos) from everything under node."""
        eps_sq = self.softening_sq
        if node.indices is not None:
            others = node.indices[node.indices != i]
            if others.size == 0:
                return np.zeros(3)
            r_diff = positions[others] - pos
            r_sq = np.sum(r_diff ** 2, axis=1) + eps_sq
            weights = masses[others] / (r_sq * np.sqrt(r_sq))
            return self.G * np.sum(weights[:, np.newaxis] * r_diff, axis=0)

        r = node.com - pos
        d_sq = float(r @ r)
        size = 2.0 * node.half
        # Never approximate a cell that holds the particle itself
        if self.theta > 0.0 and size * size < self.theta * self.theta * d_sq and not node.contains(pos):
            r_sq = d_sq + eps_sq
            return (self.G * node.mass / (r_sq * np.sqrt(r_sq))) * r

        out = np.zeros(3)
        for child in node.children:
            out += self._accel_on(i, pos, child, positions, masses)
        return out

    def __repr__(self) -> str:
        return f"BarnesHut(G={self.G!r}, softening={self.softening!r}, theta={self.theta!r})"
