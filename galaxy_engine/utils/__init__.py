"""Configuration and logging utilities."""

from galaxy_engine.utils.config import load_config, save_config, SimulationConfig
from galaxy_engine.utils.logging_config import setup_logging

__all__ = ["load_config", "save_config", "SimulationConfig", "setup_logging"]
