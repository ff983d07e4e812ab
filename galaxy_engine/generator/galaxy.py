"""Disk galaxy generator."""

import logging
import math
from dataclasses import dataclass, field, asdict
from typing import Iterable, NamedTuple, Optional, Tuple

import numpy as np

from galaxy_engine.errors import InvalidConfiguration
from galaxy_engine.generator.profiles import (
    PROFILES,
    circular_velocity,
    rank_enclosed_mass,
    sample_radii,
)
from galaxy_engine.physics.forces import G_DEFAULT
from galaxy_engine.physics.system import ParticleSystem
from galaxy_engine.vector import (
    as_vector3,
    deg_to_rad,
    rotate,
    rotation_matrix,
    tangential_directions,
)

logger = logging.getLogger(__name__)

MASS_PROFILES = ("equal", "lognormal")
_FLOAT_FIELDS = ("inclination_deg", "total_mass", "radius", "thickness", "scale_radius", "mass_sigma")


class ParticleSet(NamedTuple):
    """Particles of one galaxy as (n, 3), (n, 3), (n,) arrays."""
    positions: np.ndarray
    velocities: np.ndarray
    masses: np.ndarray


@dataclass(frozen=True)
class GalaxyConfig:
    """Shape parameters of one disk galaxy."""
    count: int
    center: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    bulk_velocity: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    inclination_deg: float = 0.0
    total_mass: float = 1e10

    # Disk shape
    radius: float = 500.0
    thickness: float = 5.0
    profile: str = "uniform"
    scale_radius: Optional[float] = None
    tilt_axis: Tuple[float, float, float] = (1.0, 0.0, 0.0)

    # Per-star masses
    mass_profile: str = "equal"
    mass_sigma: float = 0.5

    name: str = field(default="galaxy", compare=False)

    @property
    def inclination_rad(self) -> float:
        return deg_to_rad(self.inclination_deg)

    @property
    def effective_scale_radius(self) -> float:
        return self.scale_radius if self.scale_radius is not None else self.radius / 4.0

    def validate(self):
        """Check every field.

        Raises:
            InvalidConfiguration: On the first bad field
        """
        if isinstance(self.count, bool) or not isinstance(self.count, (int, np.integer)):
            raise InvalidConfiguration(f"count must be an integer, got {self.count!r}")
        if self.count <= 0:
            raise InvalidConfiguration(f"count must be positive, got {self.count}")
        _check_finite(self.total_mass, "total_mass")
        if self.total_mass <= 0:
            raise InvalidConfiguration(f"total_mass must be positive, got {self.total_mass}")
        as_vector3(self.center, "center")
        as_vector3(self.bulk_velocity, "bulk_velocity")
        _check_finite(self.inclination_deg, "inclination_deg")
        _check_finite(self.radius, "radius")
        if self.radius <= 0:
            raise InvalidConfiguration(f"radius must be positive, got {self.radius}")
        _check_finite(self.thickness, "thickness")
        if self.thickness < 0:
            raise InvalidConfiguration(f"thickness must be >= 0, got {self.thickness}")
        if self.profile not in PROFILES:
            raise InvalidConfiguration(f"Unknown profile '{self.profile}'. Available: {list(PROFILES)}")
        if self.scale_radius is not None:
            _check_finite(self.scale_radius, "scale_radius")
            if self.scale_radius <= 0:
                raise InvalidConfiguration(f"scale_radius must be positive, got {self.scale_radius}")
        axis = as_vector3(self.tilt_axis, "tilt_axis")
        if np.linalg.norm(axis[:2]) == 0.0 or abs(axis[2]) > 1e-12:
            raise InvalidConfiguration(f"tilt_axis must lie in the disk plane (z=0), got {tuple(axis)}")
        if self.mass_profile not in MASS_PROFILES:
            raise InvalidConfiguration(
                f"Unknown mass_profile '{self.mass_profile}'. Available: {list(MASS_PROFILES)}"
            )
        _check_finite(self.mass_sigma, "mass_sigma")
        if self.mass_sigma < 0:
            raise InvalidConfiguration(f"mass_sigma must be >= 0, got {self.mass_sigma}")

    def to_dict(self) -> dict:
        data = asdict(self)
        for key in ("center", "bulk_velocity", "tilt_axis"):
            data[key] = [float(v) for v in data[key]]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "GalaxyConfig":
        if not isinstance(data, dict):
            raise InvalidConfiguration(f"Galaxy config must be a mapping, got {type(data).__name__}")
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise InvalidConfiguration(f"Unknown galaxy fields: {sorted(unknown)}")
        if "count" not in data:
            raise InvalidConfiguration("Galaxy config requires 'count'")
        values = dict(data)
        for key in ("center", "bulk_velocity", "tilt_axis"):
            # Anything else is left for validate() to report
            if isinstance(values.get(key), (list, tuple, np.ndarray)):
                values[key] = tuple(values[key])
        # YAML 1.1 reads "1e10" as a string
        for key in _FLOAT_FIELDS:
            if isinstance(values.get(key), str):
                try:
                    values[key] = float(values[key])
                except ValueError as exc:
                    raise InvalidConfiguration(f"{key} must be a number, got {values[key]!r}") from exc
        return cls(**values)


def _check_finite(value, name: str):
    ok = (
        isinstance(value, (int, float, np.number))
        and not isinstance(value, bool)
        and math.isfinite(float(value))
    )
    if not ok:
        raise InvalidConfiguration(f"{name} must be a finite number, got {value!r}")


def _assign_masses(config: GalaxyConfig, rng: np.random.Generator) -> np.ndarray:
    n = config.count
    if config.mass_profile == "equal":
        return np.full(n, config.total_mass / n)
    weights = rng.lognormal(0.0, config.mass_sigma, n)
    return weights * (config.total_mass / np.sum(weights))


def generate_galaxy(
    config: GalaxyConfig,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
    G: float = G_DEFAULT,
) -> ParticleSet:
    """Generate the stars of one disk galaxy.

    Stars are placed in a thin disk in the local frame, given a circular
    velocity sqrt(G * M_enc(r) / r) tangential to their radius, tilted by the
    inclination about the in-plane tilt axis, then moved to the galaxy centre
    and boosted by the bulk velocity.

    Args:
        config: Galaxy shape parameters
        rng: Random generator (takes precedence over seed)
        seed: Seed for a fresh generator when rng is None
        G: Gravitational constant used for the rotation curve

    Returns:
        ParticleSet of `config.count` particles

    Raises:
        InvalidConfiguration: If the config is invalid or the output is not finite
    """
    config.validate()
    if rng is None:
        rng = np.random.default_rng(seed)
    n = config.count

    radii = sample_radii(n, config.radius, rng, config.profile, config.effective_scale_radius)
    angles = rng.uniform(0.0, 2.0 * np.pi, n)
    half_thickness = 0.5 * config.thickness
    heights = rng.uniform(-half_thickness, half_thickness, n) if half_thickness > 0 else np.zeros(n)
    masses = _assign_masses(config, rng)

    local_positions = np.column_stack([radii * np.cos(angles), radii * np.sin(angles), heights])
    enclosed = rank_enclosed_mass(radii, masses)
    speeds = circular_velocity(radii, enclosed, G)
    local_velocities = tangential_directions(angles) * speeds[:, np.newaxis]

    tilt = rotation_matrix(config.tilt_axis, config.inclination_rad)
    positions = rotate(local_positions, tilt) + as_vector3(config.center, "center")
    velocities = rotate(local_velocities, tilt) + as_vector3(config.bulk_velocity, "bulk_velocity")

    if not (np.all(np.isfinite(positions)) and np.all(np.isfinite(velocities))):
        raise InvalidConfiguration(f"Galaxy '{config.name}' produced non-finite particles")
    if not np.all(masses > 0.0):
        raise InvalidConfiguration(f"Galaxy '{config.name}' produced a non-positive particle mass")

    logger.debug(
        "Generated galaxy '%s': %d stars, r_max=%.4g, v_max=%.4g",
        config.name, n, float(np.max(radii)), float(np.max(speeds)),
    )
    return ParticleSet(positions, velocities, masses)


def build_system(
    configs: Iterable[GalaxyConfig],
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    G: float = G_DEFAULT,
    timestep: float = 1.0,
) -> ParticleSystem:
    """Generate every galaxy and concatenate them into one ParticleSystem.

    Galaxies draw from one generator in list order, so a seed fixes the whole scene.
    """
    configs = list(configs)
    if not configs:
        raise InvalidConfiguration("At least one galaxy config is required")
    if rng is None:
        rng = np.random.default_rng(seed)
    parts = [generate_galaxy(config, rng=rng, G=G) for config in configs]
    system = ParticleSystem.concatenate(parts, names=[c.name for c in configs], timestep=timestep)
    logger.info(
        "Built system of %d particles from %d galaxies (total mass %.4g)",
        system.n_particles, len(configs), system.total_mass,
    )
    return system


def default_galaxies():
    """Milky-Way-like disk at the origin and an Andromeda-like disk on an approach course."""
    return [
        GalaxyConfig(
            count=2000,
            center=(0.0, 0.0, 0.0),
            bulk_velocity=(0.0, 0.0, 0.0),
            inclination_deg=0.0,
            total_mass=1e10,
            name="milky_way",
        ),
        GalaxyConfig(
            count=2500,
            center=(1500.0, 600.0, 0.0),
            bulk_velocity=(-0.01, -0.004, 0.0),
            inclination_deg=77.0,
            total_mass=1.2e10,
            radius=600.0,
            profile="exponential",
            name="andromeda",
        ),
    ]
