"""Tests for numerical integrators."""

import numpy as np
import pytest

from galaxy_engine.errors import InvalidConfiguration, InvalidTransition, NumericInstability
from galaxy_engine.physics.diagnostics import potential_energy
from galaxy_engine.physics.forces import DirectSummation
from galaxy_engine.physics.integrators import SymplecticEulerIntegrator, get_integrator
from galaxy_engine.physics.system import ParticleSystem


class CountingEvaluator(DirectSummation):
    """Direct summation that counts how often it is asked for accelerations."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.calls = 0

    def compute_accelerations(self, positions, masses):
        self.calls += 1
        return super().compute_accelerations(positions, masses)


class PoisonedEvaluator(DirectSummation):
    """Direct summation that reports NaN for one particle."""

    def __init__(self, bad_index, **kwargs):
        super().__init__(**kwargs)
        self.bad_index = bad_index

    def compute_accelerations(self, positions, masses):
        acc = super().compute_accelerations(positions, masses)
        acc[self.bad_index] = np.nan
        return acc


def three_body_system():
    positions = [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 2.0, 0.5]]
    velocities = [[0.0, 0.1, 0.0], [0.0, -0.1, 0.0], [0.05, 0.0, 0.0]]
    return ParticleSystem(positions, velocities, [1.0, 2.0, 0.5])


def circular_binary(G=1.0, eps=1e-3):
    """Equal-mass binary on a circular orbit, separation 1, at rest overall."""
    d = 1.0
    accel = G * 1.0 * d / (d * d + eps * eps) ** 1.5
    v = np.sqrt(accel * d / 2.0)
    system = ParticleSystem(
        [[-0.5, 0.0, 0.0], [0.5, 0.0, 0.0]],
        [[0.0, -v, 0.0], [0.0, v, 0.0]],
        [1.0, 1.0],
    )
    period = 2.0 * np.pi * (d / 2.0) / v
    return system, period


def total_energy(system, G, eps):
    return system.kinetic_energy() + potential_energy(system.positions, system.masses, G, eps)


def test_velocity_updated_before_position():
    """x_new uses v_new, not v_old."""
    evaluator = DirectSummation(G=1.0, softening=0.1)
    integrator = SymplecticEulerIntegrator(evaluator)
    system = three_body_system()
    x0, v0, _ = system.get_state()
    dt = 0.05

    acc = integrator.step(system, dt)

    expected_acc = evaluator.compute_accelerations(x0, system.masses)
    expected_v = v0 + expected_acc * dt
    expected_x = x0 + expected_v * dt
    assert np.allclose(acc, expected_acc)
    assert np.allclose(system.velocities, expected_v)
    assert np.allclose(system.positions, expected_x)
    assert integrator.name == "symplectic_euler"
    assert integrator.order == 1


def test_one_force_evaluation_per_step():
    """A step evaluates forces exactly once."""
    evaluator = CountingEvaluator(G=1.0, softening=0.1)
    integrator = SymplecticEulerIntegrator(evaluator)
    system = three_body_system()
    for _ in range(5):
        integrator.step(system, 0.01)
    assert evaluator.calls == 5


def test_step_writes_in_place():
    """The position and velocity arrays keep their identity."""
    integrator = SymplecticEulerIntegrator(DirectSummation(G=1.0, softening=0.1))
    system = three_body_system()
    positions, velocities = system.positions, system.velocities
    buffer = system.positions_buffer()
    integrator.step(system, 0.1)
    assert system.positions is positions
    assert system.velocities is velocities
    assert np.array_equal(buffer, system.positions.reshape(-1))


def test_zero_dt_leaves_state_unchanged():
    """dt = 0 is a valid no-op step."""
    integrator = SymplecticEulerIntegrator(DirectSummation(G=1.0, softening=0.1))
    system = three_body_system()
    x0, v0, _ = system.get_state()
    integrator.step(system, 0.0)
    assert np.array_equal(system.positions, x0)
    assert np.array_equal(system.velocities, v0)


@pytest.mark.parametrize("dt", [-0.1, float("nan"), float("inf"), "fast"])
def test_invalid_dt_rejected(dt):
    """Negative, non-finite and non-numeric dt raise InvalidTransition."""
    integrator = SymplecticEulerIntegrator(DirectSummation(G=1.0, softening=0.1))
    system = three_body_system()
    x0, v0, _ = system.get_state()
    with pytest.raises(InvalidTransition):
        integrator.step(system, dt)
    assert np.array_equal(system.positions, x0)
    assert np.array_equal(system.velocities, v0)


def test_non_finite_acceleration_rolls_back():
    """A NaN acceleration aborts the step before anything is written."""
    integrator = SymplecticEulerIntegrator(PoisonedEvaluator(2, G=1.0, softening=0.1))
    system = three_body_system()
    x0, v0, _ = system.get_state()
    with pytest.raises(NumericInstability) as excinfo:
        integrator.step(system, 0.1)
    assert excinfo.value.index == 2
    assert excinfo.value.quantity == "acceleration"
    assert np.array_equal(system.positions, x0)
    assert np.array_equal(system.velocities, v0)


def test_position_overflow_rolls_back():
    """Overflowing positions are detected and nothing is committed."""
    integrator = SymplecticEulerIntegrator(DirectSummation(G=1.0, softening=0.1))
    system = ParticleSystem(
        [[0.0, 0.0, 0.0], [1e6, 0.0, 0.0]],
        [[0.0, 0.0, 0.0], [1e307, 0.0, 0.0]],
        [1.0, 1.0],
    )
    x0, v0, _ = system.get_state()
    with np.errstate(over="ignore"):
        with pytest.raises(NumericInstability) as excinfo:
            integrator.step(system, 100.0)
    assert excinfo.value.index == 1
    assert excinfo.value.quantity == "position"
    assert np.array_equal(system.positions, x0)
    assert np.array_equal(system.velocities, v0)


def test_circular_orbit_over_one_period():
    """A circular binary returns near its start with bounded energy error."""
    G, eps = 1.0, 1e-3
    integrator = SymplecticEulerIntegrator(DirectSummation(G=G, softening=eps))
    system, period = circular_binary(G, eps)
    n_steps = 2000
    dt = period / n_steps
    x0 = system.positions.copy()
    E0 = total_energy(system, G, eps)

    max_sep_error = 0.0
    max_energy_error = 0.0
    for _ in range(n_steps):
        integrator.step(system, dt)
        separation = np.linalg.norm(system.positions[1] - system.positions[0])
        max_sep_error = max(max_sep_error, abs(separation - 1.0))
        max_energy_error = max(max_energy_error, abs((total_energy(system, G, eps) - E0) / E0))

    assert max_sep_error < 0.02
    assert max_energy_error < 0.01
    assert np.linalg.norm(system.positions - x0) < 0.05
    # Equal and opposite kicks keep the centre of mass at rest
    assert np.allclose(system.total_momentum(), 0.0, atol=1e-12)


def test_energy_error_stays_bounded_over_many_orbits():
    """Energy error does not grow secularly over ten orbits."""
    G, eps = 1.0, 1e-3
    integrator = SymplecticEulerIntegrator(DirectSummation(G=G, softening=eps))
    system, period = circular_binary(G, eps)
    dt = period / 500
    E0 = total_energy(system, G, eps)
    errors = []
    for _ in range(10):
        for _ in range(500):
            integrator.step(system, dt)
        errors.append(abs((total_energy(system, G, eps) - E0) / E0))
    assert max(errors) < 0.05


def test_get_integrator():
    """Integrators are looked up by name."""
    evaluator = DirectSummation()
    assert isinstance(get_integrator("symplectic_euler", evaluator), SymplecticEulerIntegrator)
    assert isinstance(get_integrator("semi_implicit_euler", evaluator), SymplecticEulerIntegrator)
    with pytest.raises(InvalidConfiguration):
        get_integrator("rk4", evaluator)
