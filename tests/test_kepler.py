import math

import numpy as np
import pytest

from twobody_sim.core.elements import elements_from_state
from twobody_sim.core.kepler import (
    orbital_period,
    parabolic_mean_motion,
    solve_elliptic,
    solve_hyperbolic,
    solve_parabolic,
    state_at_time,
)
from twobody_sim.core.model import Body, ConicType
from twobody_sim.core.physics import leapfrog_step, specific_energy

G = 100.0
MU = G * 100.0


@pytest.mark.parametrize("e", [0.0, 0.3, 0.7, 0.98])
@pytest.mark.parametrize("mean_anomaly", [-3.0, -0.4, 0.0, 1.0, 2.9, 12.0])
def test_elliptic_solver_residual(mean_anomaly, e):
    solution = solve_elliptic(mean_anomaly, e)
    m = (mean_anomaly + math.pi) % (2.0 * math.pi) - math.pi
    residual = solution.anomaly - e * math.sin(solution.anomaly) - m
    assert solution.converged
    assert abs(residual) < 1e-10


@pytest.mark.parametrize("e", [1.05, 1.5, 4.0])
@pytest.mark.parametrize("mean_anomaly", [-40.0, -0.5, 0.0, 0.5, 5.0, 1e4])
def test_hyperbolic_solver_residual(mean_anomaly, e):
    solution = solve_hyperbolic(mean_anomaly, e)
    residual = e * math.sinh(solution.anomaly) - solution.anomaly - mean_anomaly
    assert solution.converged
    assert abs(residual) < 1e-9 * max(1.0, abs(mean_anomaly))


@pytest.mark.parametrize("mean_anomaly", [-100.0, -1.0, 0.0, 0.3, 7.0, 5e5])
def test_parabolic_solver_residual(mean_anomaly):
    solution = solve_parabolic(mean_anomaly)
    d = solution.anomaly
    assert solution.converged
    assert abs(d + d**3 / 3.0 - mean_anomaly) < 1e-8 * max(1.0, abs(mean_anomaly))


def test_solver_returns_last_iterate_when_capped():
    solution = solve_elliptic(2.0, 0.9, max_iter=1)
    assert not solution.converged
    assert solution.iterations == 1
    assert math.isfinite(solution.anomaly)


def test_full_period_returns_to_start():
    position = np.array([120.0, -40.0])
    velocity = np.array([2.0, 6.5])
    elements = elements_from_state(position, velocity, 50.0, 50.0, G, epoch_time=2.0)
    period = orbital_period(elements)
    assert math.isfinite(period)

    later = state_at_time(elements, 2.0 + period)
    assert np.allclose(later.position, position, atol=1e-7)
    assert np.allclose(later.velocity, velocity, atol=1e-7)

    three_later = state_at_time(elements, 2.0 + 3.0 * period)
    assert np.allclose(three_later.position, position, atol=1e-6)


def test_half_period_reaches_apoapsis():
    r_p = 100.0
    e = 0.5
    position = np.array([r_p, 0.0])
    velocity = np.array([0.0, math.sqrt(MU * (1.0 + e) / r_p)])
    elements = elements_from_state(position, velocity, 50.0, 50.0, G)
    state = state_at_time(elements, 0.5 * orbital_period(elements))
    r_a = r_p * (1.0 + e) / (1.0 - e)
    assert state.position[0] == pytest.approx(-r_a, rel=1e-9)
    assert state.position[1] == pytest.approx(0.0, abs=1e-6)


def test_open_orbits_conserve_energy_along_propagation():
    hyperbola = elements_from_state(np.array([100.0, 30.0]), np.array([-5.0, 14.0]), 50.0, 50.0, G)
    assert hyperbola.conic_type is ConicType.HYPERBOLA
    expected = MU / (-2.0 * hyperbola.semi_major_axis)
    for t in (-20.0, 5.0, 50.0, 500.0):
        state = state_at_time(hyperbola, t)
        assert specific_energy(state.position, state.velocity, MU) == pytest.approx(expected, rel=1e-8)

    position = np.array([80.0, 60.0])
    velocity = np.array([-0.6, 0.8]) * math.sqrt(2.0 * MU / 100.0)
    parabola = elements_from_state(position, velocity, 50.0, 50.0, G)
    assert parabola.conic_type is ConicType.PARABOLA
    for t in (-10.0, 5.0, 80.0):
        state = state_at_time(parabola, t)
        v_squared = float(np.dot(state.velocity, state.velocity))
        assert v_squared == pytest.approx(2.0 * MU / np.linalg.norm(state.position), rel=1e-8)


def test_parabolic_mean_motion():
    q = 50.0
    assert parabolic_mean_motion(MU, q) == pytest.approx(math.sqrt(MU / (2.0 * q**3)))


def test_kepler_agrees_with_leapfrog():
    body_a = Body("A", 50.0, 1.0, (-60.0, 0.0), (0.0, -3.0))
    body_b = Body("B", 50.0, 1.0, (60.0, 0.0), (0.0, 3.0))
    elements = elements_from_state(
        body_b.position - body_a.position,
        body_b.velocity - body_a.velocity,
        50.0,
        50.0,
        G,
    )
    dt = 0.002
    steps = 5_000
    for _ in range(steps):
        leapfrog_step(body_a, body_b, G, dt)

    state = state_at_time(elements, steps * dt)
    assert np.allclose(body_b.position - body_a.position, state.position, atol=1e-3)
    assert np.allclose(body_b.velocity - body_a.velocity, state.velocity, atol=1e-3)
