"""Configuration management."""

import json
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from galaxy_engine.errors import InvalidConfiguration
from galaxy_engine.generator.galaxy import GalaxyConfig, default_galaxies
from galaxy_engine.physics.forces import G_DEFAULT, SOFTENING_DEFAULT, BLOCK_SIZE_DEFAULT, make_evaluator
from galaxy_engine.physics.barnes_hut import THETA_DEFAULT
from galaxy_engine.physics.integrators import get_integrator
from galaxy_engine.simulation import DT_DEFAULT, SimulationController

logger = logging.getLogger(__name__)


@dataclass
class SimulationConfig:
    """Engine settings plus the galaxies to generate."""
    # Physics parameters
    G: float = G_DEFAULT
    softening: float = SOFTENING_DEFAULT
    dt: float = DT_DEFAULT
    integrator: str = "symplectic_euler"

    # Force evaluation
    evaluator: str = "direct"
    theta: float = THETA_DEFAULT
    workers: int = 1
    block_size: int = BLOCK_SIZE_DEFAULT

    # Reproducibility
    seed: Optional[int] = None

    # Galaxies, as GalaxyConfig field dicts
    galaxies: List[Dict[str, Any]] = field(default_factory=list)

    def __post_init__(self):
        if not self.galaxies:
            self.galaxies = [g.to_dict() for g in default_galaxies()]

    def galaxy_configs(self) -> List[GalaxyConfig]:
        if not isinstance(self.galaxies, list):
            raise InvalidConfiguration(f"galaxies must be a list, got {type(self.galaxies).__name__}")
        return [GalaxyConfig.from_dict(data) for data in self.galaxies]

    def evaluator_options(self) -> Dict[str, Any]:
        if self.evaluator.lower().replace("-", "_") == "barnes_hut":
            return {"theta": self.theta}
        return {"block_size": self.block_size, "workers": self.workers}

    def build_controller(self, initialize: bool = True) -> SimulationController:
        """Create a controller for these settings, optionally generating the galaxies."""
        evaluator = make_evaluator(self.evaluator, G=self.G, softening=self.softening, **self.evaluator_options())
        controller = SimulationController(integrator=get_integrator(self.integrator, evaluator), dt=self.dt)
        if initialize:
            controller.initialize(self.galaxy_configs(), seed=self.seed)
        return controller


def _config_from_dict(data: Dict[str, Any]) -> SimulationConfig:
    if not isinstance(data, dict):
        raise InvalidConfiguration(f"Config root must be a mapping, got {type(data).__name__}")
    unknown = set(data) - set(SimulationConfig.__dataclass_fields__)
    if unknown:
        raise InvalidConfiguration(f"Unknown config keys: {sorted(unknown)}")
    values = dict(data)
    # YAML 1.1 reads exponents without a dot ("1e-3") as strings
    for key in ("G", "softening", "dt", "theta"):
        if isinstance(values.get(key), str):
            try:
                values[key] = float(values[key])
            except ValueError as exc:
                raise InvalidConfiguration(f"{key} must be a number, got {values[key]!r}") from exc
    return SimulationConfig(**values)


def load_config(config_path: str) -> SimulationConfig:
    """Load configuration from file.

    Args:
        config_path: Path to config file (.json or .yaml)

    Returns:
        SimulationConfig object
    """
    config_path = Path(config_path)

    with open(config_path, "r", encoding="utf-8") as f:
        if config_path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    logger.info("Loaded config from %s", config_path)
    return _config_from_dict(data or {})


def save_config(config: SimulationConfig, output_path: str):
    """Save configuration to file.

    Args:
        config: SimulationConfig object
        output_path: Output file path (.json or .yaml)
    """
    output_path = Path(output_path)
    data = asdict(config)

    with open(output_path, "w", encoding="utf-8") as f:
        if output_path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(data, f, indent=2)
    logger.info("Saved config to %s", output_path)
