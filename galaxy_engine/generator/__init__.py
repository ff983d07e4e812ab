"""Initial-condition generators for disk galaxies."""

from galaxy_engine.generator.galaxy import (
    GalaxyConfig,
    ParticleSet,
    generate_galaxy,
    build_system,
    default_galaxies,
)

__all__ = [
    "GalaxyConfig",
    "ParticleSet",
    "generate_galaxy",
    "build_system",
    "default_galaxies",
]
