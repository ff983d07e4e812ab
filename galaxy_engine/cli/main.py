"""CLI main entry point: run a simulation headless and log diagnostics."""

import argparse
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from galaxy_engine.errors import GalaxyEngineError
from galaxy_engine.utils.config import SimulationConfig, load_config, save_config
from galaxy_engine.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_config(args) -> SimulationConfig:
    """Start from --config (or defaults) and apply command-line overrides."""
    config = load_config(args.config) if args.config else SimulationConfig()
    overrides = {}
    for name in ("dt", "seed", "evaluator", "theta", "workers", "softening"):
        value = getattr(args, name)
        if value is not None:
            overrides[name] = value
    return replace(config, **overrides) if overrides else config


def run_simulation(args) -> int:
    """Run a simulation; returns the process exit status."""
    config = build_config(args)
    if args.write_config:
        save_config(config, args.write_config)

    controller = config.build_controller()
    system = controller.system
    logger.info(
        "Running %d steps: %d particles, evaluator=%s, dt=%g",
        args.steps, system.n_particles, controller.evaluator.name, controller.dt,
    )

    initial = controller.get_diagnostics()
    E0 = initial.total_energy
    logger.info(f"{'Step':<8} {'Time':<12} {'K':<12} {'U':<12} {'E':<12} {'Q':<8} {'dE/E0':<10}")
    logger.info(
        f"{0:<8} {0.0:<12.4g} {initial.kinetic_energy:<12.4g} {initial.potential_energy:<12.4g} "
        f"{E0:<12.4g} {initial.virial_ratio:<8.4f} {0.0:<10.4f}%"
    )

    controller.set_profiling(args.profile)
    controller.start()
    for step in range(1, args.steps + 1):
        controller.tick()
        if step % args.log_every == 0 or step == args.steps:
            diag = controller.get_diagnostics()
            dE = (diag.total_energy - E0) / abs(E0) * 100 if E0 != 0 else 0.0
            logger.info(
                f"{step:<8} {diag.time:<12.4g} {diag.kinetic_energy:<12.4g} {diag.potential_energy:<12.4g} "
                f"{diag.total_energy:<12.4g} {diag.virial_ratio:<8.4f} {dE:<10.4f}%"
            )
            if args.profile:
                timing = controller.get_timing()
                logger.info("  forces %.2f ms, integrator %.2f ms", timing["forces_ms"], timing["integrator_ms"])
    controller.pause()

    final = controller.get_diagnostics()
    logger.info("Simulation complete: t=%g, momentum=%s", final.time, final.momentum)
    return 0


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Galaxy Engine - headless N-body galaxy simulation")
    parser.add_argument('--config', type=str, default=None,
                        help='Config file (.json, .yaml); default: two-galaxy scene')
    parser.add_argument('--steps', type=int, default=100,
                        help='Number of simulation steps')
    parser.add_argument('--dt', type=float, default=None,
                        help='Time step (overrides config)')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed for galaxy generation')
    parser.add_argument('--evaluator', type=str, default=None, choices=['direct', 'barnes_hut'],
                        help='Force evaluator (overrides config)')
    parser.add_argument('--theta', type=float, default=None,
                        help='Barnes-Hut opening angle')
    parser.add_argument('--workers', type=int, default=None,
                        help='Worker threads for direct summation')
    parser.add_argument('--softening', type=float, default=None,
                        help='Softening length epsilon')
    parser.add_argument('--log-every', type=int, default=10,
                        help='Log diagnostics every N steps')
    parser.add_argument('--log-level', type=str, default='INFO',
                        help='Logging level (DEBUG, INFO, WARNING, ...)')
    parser.add_argument('--log-file', type=str, default=None,
                        help='Also write logs to this file')
    parser.add_argument('--profile', action='store_true',
                        help='Log force/integrator timing')
    parser.add_argument('--write-config', type=str, default=None,
                        help='Write the effective config to this path before running')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = make_parser()
    args = parser.parse_args(argv)
    if args.steps < 0:
        parser.error("--steps must be >= 0")
    if args.log_every < 1:
        parser.error("--log-every must be >= 1")

    setup_logging(args.log_level, args.log_file)
    try:
        return run_simulation(args)
    except GalaxyEngineError as exc:
        logger.error("Simulation failed: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
