"""Conserved-quantity diagnostics for N-body systems."""

from dataclasses import dataclass, asdict
from typing import Tuple

import numpy as np

from galaxy_engine.physics.forces import BLOCK_SIZE_DEFAULT, prepare_arrays


def potential_energy(positions, masses, G: float, softening: float, block_size: int = BLOCK_SIZE_DEFAULT) -> float:
    """Softened pair potential matching the force law.

    U = -G * sum_{i<j} m_i * m_j / sqrt(r_ij^2 + eps^2)

    Computed over blocks of rows so memory stays O(block_size * n).
    """
    positions, masses = prepare_arrays(positions, masses)
    n = positions.shape[0]
    if n < 2:
        return 0.0
    eps_sq = softening * softening
    total = 0.0
    for start in range(0, n, block_size):
        stop = min(start + block_size, n)
        r_diff = positions[np.newaxis, :, :] - positions[start:stop, np.newaxis, :]
        r_soft = np.sqrt(np.einsum("ijk,ijk->ij", r_diff, r_diff) + eps_sq)
        pair = masses[start:stop, np.newaxis] * masses[np.newaxis, :] / r_soft
        rows = np.arange(stop - start)
        pair[rows, rows + start] = 0.0
        total += float(np.sum(pair))
    # Every unordered pair was counted twice
    return -0.5 * G * total


@dataclass(frozen=True)
class Diagnostics:
    """Energy and momentum of a system at one instant."""
    time: float
    kinetic_energy: float
    potential_energy: float
    momentum: Tuple[float, float, float]
    angular_momentum: Tuple[float, float, float]

    @property
    def total_energy(self) -> float:
        return self.kinetic_energy + self.potential_energy

    @property
    def virial_ratio(self) -> float:
        """Q = 2K / |U| (1.0 is equilibrium)."""
        if abs(self.potential_energy) < 1e-300:
            return float("inf")
        return 2.0 * self.kinetic_energy / abs(self.potential_energy)

    def as_dict(self) -> dict:
        data = asdict(self)
        data["total_energy"] = self.total_energy
        return data


def compute_diagnostics(system, G: float, softening: float) -> Diagnostics:
    """Measure kinetic/potential energy and momenta of a ParticleSystem."""
    return Diagnostics(
        time=float(system.time),
        kinetic_energy=system.kinetic_energy(),
        potential_energy=potential_energy(system.positions, system.masses, G, softening),
        momentum=tuple(float(v) for v in system.total_momentum()),
        angular_momentum=tuple(float(v) for v in system.angular_momentum()),
    )
