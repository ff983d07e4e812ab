"""Main simulation controller."""

import enum
import logging
import time
from typing import Callable, Iterable, List, Optional

import numpy as np

from galaxy_engine.errors import InvalidTransition, NumericInstability
from galaxy_engine.generator.galaxy import GalaxyConfig, build_system
from galaxy_engine.physics.diagnostics import Diagnostics, compute_diagnostics
from galaxy_engine.physics.forces import DirectSummation, ForceEvaluator
from galaxy_engine.physics.integrators.base import Integrator, check_timestep
from galaxy_engine.physics.integrators.symplectic_euler import SymplecticEulerIntegrator
from galaxy_engine.physics.system import ParticleSystem

logger = logging.getLogger(__name__)

DT_DEFAULT = 100.0


class SimulationState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class SimulationController:
    """Owns the particle system and sequences force evaluation and integration.

    Driven synchronously by one caller (usually a render loop calling tick()
    once per frame). The only simulation state a UI needs to reflect lives
    here: the run state, the accumulated simulation time and the timestep.
    """

    def __init__(
        self,
        evaluator: Optional[ForceEvaluator] = None,
        integrator: Optional[Integrator] = None,
        dt: float = DT_DEFAULT,
    ):
        """Initialize controller.

        Args:
            evaluator: Force evaluator (default: DirectSummation with default constants)
            integrator: Integrator to use (default: symplectic Euler over `evaluator`)
            dt: Default timestep for tick()/step_once() calls without an explicit dt
        """
        if integrator is not None:
            self.evaluator = integrator.evaluator
            self.integrator = integrator
        else:
            self.evaluator = evaluator or DirectSummation()
            self.integrator = SymplecticEulerIntegrator(self.evaluator)
        self.dt = self._check_default_dt(dt)

        self.system: Optional[ParticleSystem] = None
        self.state = SimulationState.IDLE
        self.step_count = 0
        self._configs: List[GalaxyConfig] = []
        self._seed: Optional[int] = None

        # Profiling: last step timing (ms)
        self._profile = False
        self._last_forces_ms: Optional[float] = None
        self._last_integrator_ms: Optional[float] = None

        self.on_step_callback: Optional[Callable] = None

    @staticmethod
    def _check_default_dt(dt: float) -> float:
        dt = check_timestep(dt)
        if dt == 0.0:
            raise InvalidTransition("default timestep must be positive")
        return dt

    def initialize(self, galaxy_configs: Iterable[GalaxyConfig], seed: Optional[int] = None) -> ParticleSystem:
        """Generate the galaxies and make them the current system (state IDLE).

        Raises:
            InvalidConfiguration: If any galaxy config is invalid; the previous
                system, if any, is kept
        """
        configs = list(galaxy_configs)
        system = build_system(configs, seed=seed, G=self.evaluator.G, timestep=self.dt)
        self.system = system
        self._configs = configs
        self._seed = seed
        self.state = SimulationState.IDLE
        self.step_count = 0
        logger.info(
            "Initialized %d particles (%s, %s, dt=%g)",
            system.n_particles, self.evaluator.name, self.integrator.name, self.dt,
        )
        return system

    def reset(self, galaxy_configs: Optional[Iterable[GalaxyConfig]] = None, seed: Optional[int] = None) -> ParticleSystem:
        """Discard the current system and regenerate it (state IDLE, time 0).

        Without arguments the last configs and seed are reused.
        """
        if galaxy_configs is None:
            if not self._configs:
                raise InvalidTransition("reset() without configs before initialize()")
            galaxy_configs = self._configs
            seed = self._seed if seed is None else seed
        logger.info("Resetting simulation")
        return self.initialize(galaxy_configs, seed=seed)

    def _require_system(self, action: str) -> ParticleSystem:
        if self.system is None:
            raise InvalidTransition(f"{action}() called before initialize()")
        return self.system

    def start(self):
        """Start (or resume) running."""
        self._require_system("start")
        if self.state is not SimulationState.RUNNING:
            logger.debug("State %s -> running", self.state.value)
        self.state = SimulationState.RUNNING

    def resume(self):
        """Resume simulation."""
        self._require_system("resume")
        self.start()

    def pause(self):
        """Pause simulation; tick() becomes a no-op until resumed."""
        self._require_system("pause")
        if self.state is not SimulationState.PAUSED:
            logger.debug("State %s -> paused", self.state.value)
        self.state = SimulationState.PAUSED

    @property
    def is_running(self) -> bool:
        return self.state is SimulationState.RUNNING

    @property
    def timestep(self) -> float:
        return self.dt

    def set_timestep(self, dt: float):
        """Set the default time step."""
        self.dt = self._check_default_dt(dt)
        if self.system is not None:
            self.system.timestep = self.dt

    def tick(self, dt: Optional[float] = None) -> bool:
        """Advance one step if running.

        Args:
            dt: Step size (default: the controller's timestep)

        Returns:
            True if a step was applied, False if not running
        """
        dt = self.dt if dt is None else check_timestep(dt)
        if self.state is not SimulationState.RUNNING:
            return False
        self._advance(self.system, dt)
        return True

    def step_once(self, dt: Optional[float] = None):
        """Perform exactly one step while paused or idle; the state is unchanged."""
        system = self._require_system("step_once")
        if self.state is SimulationState.RUNNING:
            raise InvalidTransition("step_once() is not allowed while running; pause first")
        dt = self.dt if dt is None else check_timestep(dt)
        self._advance(system, dt)

    def _advance(self, system: ParticleSystem, dt: float):
        if self._profile:
            t0 = time.perf_counter()
            forces_before = self._count_force_time()
        try:
            self.integrator.step(system, dt)
        except NumericInstability as exc:
            logger.warning(
                "Step rejected at t=%g (dt=%g): %s; state kept at pre-step values",
                system.time, dt, exc,
            )
            raise
        if self._profile:
            total_ms = (time.perf_counter() - t0) * 1000.0
            self._last_forces_ms = self._count_force_time() - forces_before
            self._last_integrator_ms = total_ms - self._last_forces_ms

        system.time += dt
        self.step_count += 1
        if self.on_step_callback:
            self.on_step_callback(self)

    def set_profiling(self, enabled: bool = True):
        """Enable or disable step timing (forces ms, integrator ms)."""
        self._profile = enabled
        if enabled and not isinstance(self.integrator.evaluator, _TimedEvaluator):
            self.integrator.evaluator = _TimedEvaluator(self.integrator.evaluator)
        elif not enabled and isinstance(self.integrator.evaluator, _TimedEvaluator):
            self.integrator.evaluator = self.integrator.evaluator.inner

    def get_timing(self) -> dict:
        """Return last step timing in ms: forces_ms, integrator_ms."""
        return {
            "forces_ms": self._last_forces_ms,
            "integrator_ms": self._last_integrator_ms,
        }

    def _count_force_time(self) -> float:
        evaluator = self.integrator.evaluator
        return evaluator.elapsed_ms if isinstance(evaluator, _TimedEvaluator) else 0.0

    def get_positions_buffer(self) -> np.ndarray:
        """Flat read-only view of positions, length 3n, updated in place by every step."""
        return self._require_system("get_positions_buffer").positions_buffer()

    def get_velocities_buffer(self) -> np.ndarray:
        return self._require_system("get_velocities_buffer").velocities_buffer()

    def get_sim_time(self) -> float:
        if self.system is None:
            return 0.0
        return self.system.time

    def get_state(self):
        """Get current simulation state.

        Returns:
            Tuple of (positions, velocities, masses, time, step_count)
        """
        pos, vel, mass = self._require_system("get_state").get_state()
        return pos, vel, mass, self.system.time, self.step_count

    def get_diagnostics(self) -> Diagnostics:
        system = self._require_system("get_diagnostics")
        return compute_diagnostics(system, self.evaluator.G, self.evaluator.softening)

    def get_energy(self) -> float:
        """Get current total energy (kinetic + potential)."""
        return self.get_diagnostics().total_energy


class _TimedEvaluator:
    """Wraps an evaluator and accumulates time spent computing accelerations."""

    def __init__(self, inner: ForceEvaluator):
        self.inner = inner
        self.elapsed_ms = 0.0

    def compute_accelerations(self, positions, masses):
        t0 = time.perf_counter()
        try:
            return self.inner.compute_accelerations(positions, masses)
        finally:
            self.elapsed_ms += (time.perf_counter() - t0) * 1000.0

    def __getattr__(self, name):
        return getattr(self.inner, name)
