"""Particle storage for the N-body system."""

import logging
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from galaxy_engine.errors import InvalidConfiguration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Particle:
    """Read-only copy of one particle's state."""
    position: Tuple[float, float, float]
    velocity: Tuple[float, float, float]
    mass: float


class Snapshot(NamedTuple):
    """Copy of the mutable state of a ParticleSystem."""
    positions: np.ndarray
    velocities: np.ndarray
    time: float


class ParticleSystem:
    """Fixed-size set of point masses stored as structure-of-arrays.

    positions and velocities are (n, 3) C-contiguous float64 arrays, masses is
    (n,). The arrays are allocated once; every later update is written into the
    same memory so that flat views handed to a renderer stay valid.
    """

    def __init__(
        self,
        positions,
        velocities,
        masses,
        galaxy_slices: Optional[Sequence[Tuple[str, slice]]] = None,
        timestep: float = 1.0,
    ):
        """Initialize particle system.

        Args:
            positions: Array of shape (n, 3)
            velocities: Array of shape (n, 3)
            masses: Array of shape (n,), strictly positive
            galaxy_slices: Optional (name, index slice) per galaxy, in insertion order
            timestep: Current timestep (time units)
        """
        positions = np.array(positions, dtype=np.float64, order="C")
        velocities = np.array(velocities, dtype=np.float64, order="C")
        masses = np.array(masses, dtype=np.float64).reshape(-1)

        if positions.ndim != 2 or positions.shape[1] != 3:
            raise InvalidConfiguration(f"positions must have shape (n, 3), got {positions.shape}")
        if velocities.shape != positions.shape:
            raise InvalidConfiguration(
                f"velocities shape {velocities.shape} does not match positions {positions.shape}"
            )
        if masses.shape[0] != positions.shape[0]:
            raise InvalidConfiguration(
                f"masses length {masses.shape[0]} does not match {positions.shape[0]} particles"
            )
        if not (np.all(np.isfinite(positions)) and np.all(np.isfinite(velocities))):
            raise InvalidConfiguration("positions and velocities must be finite")
        if not np.all(np.isfinite(masses)) or np.any(masses <= 0.0):
            raise InvalidConfiguration("every mass must be finite and strictly positive")

        self.positions = positions
        self.velocities = velocities
        self.masses = masses
        self.masses.setflags(write=False)
        self.galaxy_slices: List[Tuple[str, slice]] = list(galaxy_slices or [])
        self.time = 0.0
        self.timestep = float(timestep)

    @property
    def n_particles(self) -> int:
        return self.positions.shape[0]

    def __len__(self) -> int:
        return self.n_particles

    @classmethod
    def concatenate(cls, parts, names: Optional[Sequence[str]] = None, timestep: float = 1.0) -> "ParticleSystem":
        """Build one system from per-galaxy (positions, velocities, masses) parts.

        Order is part order, then the order inside each part.
        """
        parts = list(parts)
        if not parts:
            raise InvalidConfiguration("At least one galaxy is required")
        if names is None:
            names = [f"galaxy-{i}" for i in range(len(parts))]

        slices = []
        start = 0
        for name, part in zip(names, parts):
            count = np.asarray(part[2]).reshape(-1).shape[0]
            slices.append((name, slice(start, start + count)))
            start += count

        positions = np.concatenate([np.asarray(p[0], dtype=np.float64) for p in parts], axis=0)
        velocities = np.concatenate([np.asarray(p[1], dtype=np.float64) for p in parts], axis=0)
        masses = np.concatenate([np.asarray(p[2], dtype=np.float64).reshape(-1) for p in parts])
        return cls(positions, velocities, masses, galaxy_slices=slices, timestep=timestep)

    def particle(self, index: int) -> Particle:
        """Return a copy of particle `index`."""
        return Particle(
            position=tuple(float(v) for v in self.positions[index]),
            velocity=tuple(float(v) for v in self.velocities[index]),
            mass=float(self.masses[index]),
        )

    def positions_buffer(self) -> np.ndarray:
        """Flat read-only view (length 3n) of the positions; x, y, z per particle."""
        view = self.positions.reshape(-1)
        view.flags.writeable = False
        return view

    def velocities_buffer(self) -> np.ndarray:
        """Flat read-only view (length 3n) of the velocities."""
        view = self.velocities.reshape(-1)
        view.flags.writeable = False
        return view

    def snapshot(self) -> Snapshot:
        return Snapshot(self.positions.copy(), self.velocities.copy(), self.time)

    def restore(self, snapshot: Snapshot):
        """Write a snapshot back into the existing arrays (buffers stay valid)."""
        if snapshot.positions.shape != self.positions.shape:
            raise InvalidConfiguration(
                f"snapshot shape {snapshot.positions.shape} does not match system {self.positions.shape}"
            )
        np.copyto(self.positions, snapshot.positions)
        np.copyto(self.velocities, snapshot.velocities)
        self.time = snapshot.time

    def get_state(self):
        """Get current state (positions, velocities, masses) as copies."""
        return self.positions.copy(), self.velocities.copy(), self.masses.copy()

    @property
    def total_mass(self) -> float:
        return float(np.sum(self.masses))

    def center_of_mass(self) -> np.ndarray:
        return np.sum(self.masses[:, np.newaxis] * self.positions, axis=0) / self.total_mass

    def total_momentum(self) -> np.ndarray:
        """Total linear momentum sum(m_i v_i)."""
        return np.sum(self.masses[:, np.newaxis] * self.velocities, axis=0)

    def angular_momentum(self) -> np.ndarray:
        """Total angular momentum vector sum(m_i r_i x v_i) about the origin."""
        return np.sum(self.masses[:, np.newaxis] * np.cross(self.positions, self.velocities), axis=0)

    def kinetic_energy(self) -> float:
        """Total kinetic energy 0.5 * sum(m_i * v_i^2)."""
        v_sq = np.sum(self.velocities ** 2, axis=1)
        return float(0.5 * np.sum(self.masses * v_sq))
