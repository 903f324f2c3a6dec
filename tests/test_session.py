import math

import numpy as np
import pytest

from twobody_sim.core.config import PHYSICS_CFG, PhysicsCfg
from twobody_sim.core.logging_utils import RunLogger
from twobody_sim.core.model import Body, ConicType, InitialConditions
from twobody_sim.core.physics import circular_speed
from twobody_sim.core.session import TwoBodySimulation, run_for


def ticks(simulation, count):
    for _ in range(count):
        simulation.advance()


def test_default_layout_is_centred_on_barycenter():
    simulation = TwoBodySimulation()
    pos_a, pos_b = simulation.positions()
    assert np.allclose(pos_a, [-75.0, 0.0])
    assert np.allclose(pos_b, [75.0, 0.0])
    assert simulation.separation() == pytest.approx(150.0)
    assert simulation.pristine


def test_fixed_primary_layout_pins_a_at_origin():
    simulation = TwoBodySimulation(PhysicsCfg(fixed_primary=True))
    pos_a, pos_b = simulation.positions()
    assert np.allclose(pos_a, [0.0, 0.0])
    assert np.allclose(pos_b, [150.0, 0.0])


def test_mass_change_before_start_relayouts():
    simulation = TwoBodySimulation()
    simulation.set_mass("A", 100.0)
    pos_a, pos_b = simulation.positions()
    assert np.allclose(pos_a, [-50.0, 0.0])
    assert np.allclose(pos_b, [100.0, 0.0])
    assert simulation.initial.mass_a == 100.0


def test_mass_change_while_running_keeps_positions():
    simulation = TwoBodySimulation()
    simulation.apply_scenario("circular")
    simulation.start()
    ticks(simulation, 10)
    before = simulation.positions()
    simulation.set_mass("a", 80.0)
    after = simulation.positions()
    assert simulation.body_a.mass == 80.0
    assert np.array_equal(before[0], after[0])

    simulation.reset()
    assert simulation.body_a.mass == 80.0
    assert simulation.separation() == pytest.approx(150.0)


def test_separation_setter_only_moves_pristine_bodies():
    simulation = TwoBodySimulation()
    simulation.set_separation(200.0)
    assert simulation.separation() == pytest.approx(200.0)

    simulation.start()
    ticks(simulation, 5)
    current = simulation.separation()
    simulation.set_separation(90.0)
    assert simulation.separation() == pytest.approx(current)
    simulation.reset()
    assert simulation.separation() == pytest.approx(90.0)


def test_unknown_names_raise():
    simulation = TwoBodySimulation()
    with pytest.raises(ValueError):
        simulation.set_mass("C", 1.0)
    with pytest.raises(ValueError):
        simulation.set_propagation("symplectic")
    with pytest.raises(ValueError):
        simulation.set_integrator("rk4")
    with pytest.raises(KeyError, match="Unknown scenario"):
        simulation.apply_scenario("binary_star")


def test_circular_scenario_velocities():
    simulation = TwoBodySimulation()
    simulation.apply_scenario("circular")
    vel_a, vel_b = simulation.velocities()
    speed = np.sqrt(100.0 * 100.0 / 150.0) / 2.0
    assert np.allclose(vel_a, [0.0, -speed])
    assert np.allclose(vel_b, [0.0, speed])
    assert simulation.orbit_summary().eccentricity == pytest.approx(0.0, abs=1e-9)


def test_stopped_session_does_not_move():
    simulation = TwoBodySimulation()
    simulation.apply_scenario("circular")
    before = simulation.positions()
    ticks(simulation, 20)
    after = simulation.positions()
    assert np.array_equal(before[0], after[0])
    assert simulation.clock.elapsed_time == 0.0


def test_drag_sets_velocity_from_displacement():
    simulation = TwoBodySimulation()
    assert simulation.begin_drag((76.0, 3.0))
    assert simulation.dragging == "B"
    assert simulation.drag_to((95.0, 40.0))
    assert np.allclose(simulation.body_b.velocity, [1.0, 2.0])
    assert simulation.initial.velocity_b == pytest.approx((1.0, 2.0))
    simulation.end_drag()
    assert simulation.dragging is None
    assert not simulation.drag_to((0.0, 0.0))


def test_drag_misses_empty_space_and_pinned_primary():
    simulation = TwoBodySimulation(PhysicsCfg(fixed_primary=True))
    assert not simulation.begin_drag((60.0, 60.0))
    assert not simulation.begin_drag((0.0, 0.0))


def test_reset_restores_initial_state():
    simulation = TwoBodySimulation()
    simulation.apply_scenario("elliptical")
    start = simulation.positions()
    simulation.start()
    ticks(simulation, 100)
    simulation.reset()
    assert simulation.pristine
    assert not simulation.running
    assert simulation.clock.elapsed_time == 0.0
    assert not simulation.collision.occurred
    assert np.allclose(simulation.positions()[0], start[0])
    assert len(simulation.body_a.trail) == 0


def test_speed_multiplier_scales_elapsed_time():
    simulation = TwoBodySimulation()
    simulation.set_speed_multiplier(2.0)
    simulation.start()
    ticks(simulation, 10)
    assert simulation.clock.elapsed_time == pytest.approx(0.32)


def test_substeps_keep_fast_forward_accurate():
    coarse = TwoBodySimulation(PhysicsCfg(speed_multiplier=8.0))
    fine = TwoBodySimulation(PhysicsCfg(speed_multiplier=8.0, max_substeps=8))
    for simulation in (coarse, fine):
        simulation.apply_scenario("elliptical")
        simulation.start()
    e0 = fine.energy()
    ticks(coarse, 400)
    ticks(fine, 400)
    assert fine._accumulator.max_substeps == 8
    assert abs(fine.energy() - e0) <= abs(coarse.energy() - e0)


def test_numeric_energy_drift_is_small():
    simulation = TwoBodySimulation()
    simulation.apply_scenario("elliptical")
    e0 = simulation.energy()
    run_for(simulation, 60.0)
    assert abs((simulation.energy() - e0) / e0) < 1e-3
    assert not simulation.running


def test_analytic_agrees_with_numeric():
    numeric = TwoBodySimulation(PhysicsCfg(dt=0.004))
    analytic = TwoBodySimulation(PhysicsCfg(dt=0.004, propagation="analytic"))
    for simulation in (numeric, analytic):
        simulation.apply_scenario("elliptical")
        simulation.start()
    assert analytic.propagating_analytically
    ticks(numeric, 1000)
    ticks(analytic, 1000)
    assert analytic.last_solution is not None
    assert analytic.last_solution.converged
    for got, want in zip(analytic.positions(), numeric.positions()):
        assert np.allclose(got, want, atol=1e-2)


def test_analytic_fixed_primary_keeps_a_still():
    simulation = TwoBodySimulation(PhysicsCfg(propagation="analytic"))
    simulation.apply_scenario("fixed_circular")
    simulation.start()
    ticks(simulation, 300)
    assert np.allclose(simulation.body_a.position, [0.0, 0.0])
    assert simulation.separation() == pytest.approx(150.0, rel=1e-9)


def test_radial_start_falls_back_and_collides():
    simulation = TwoBodySimulation(PhysicsCfg(propagation="analytic"))
    simulation.apply_scenario("rest")
    simulation.start()
    assert simulation.elements is not None
    assert simulation.elements.degenerate
    assert not simulation.propagating_analytically

    for _ in range(5_000):
        simulation.advance()
        if not simulation.running:
            break
    assert simulation.collision.occurred
    assert simulation.collision.timestamp == pytest.approx(19.6, abs=0.3)


def test_softened_plunge_passes_through():
    simulation = TwoBodySimulation()
    simulation.apply_scenario("softened_plunge")
    assert not simulation.clock.state.collision_enabled
    elapsed = run_for(simulation, 30.0)
    assert elapsed >= 30.0
    assert not simulation.collision.occurred
    assert np.isfinite(simulation.positions()[0]).all()


def test_trails_follow_toggle():
    simulation = TwoBodySimulation()
    simulation.apply_scenario("circular")
    simulation.start()
    ticks(simulation, 10)
    assert len(simulation.body_b.trail) == 10
    simulation.set_show_trail(False)
    ticks(simulation, 10)
    assert len(simulation.body_b.trail) == 0


def test_orbit_summary_for_open_orbit():
    simulation = TwoBodySimulation()
    simulation.apply_scenario("hyperbolic")
    summary = simulation.orbit_summary()
    assert summary.conic_type is ConicType.HYPERBOLA
    assert summary.period == float("inf")


def test_logger_records_samples_and_events(tmp_path):
    simulation = TwoBodySimulation(PhysicsCfg(log_every_steps=10))
    simulation.apply_scenario("circular")
    with RunLogger(tmp_path, "session") as logger:
        simulation.attach_logger(logger)
        simulation.start()
        ticks(simulation, 50)
        simulation.stop()

    run_dir = tmp_path / "session"
    assert (run_dir / "meta.json").exists()
    rows = (run_dir / "timeseries.csv").read_text(encoding="utf-8").splitlines()
    assert rows[0].startswith("t,xa,ya")
    assert len(rows) == 1 + 5
    events = (run_dir / "events.csv").read_text(encoding="utf-8")
    assert ",start," in events
    assert ",stop," in events


def test_collision_is_logged(tmp_path):
    initial = InitialConditions(separation=60.0)
    simulation = TwoBodySimulation(PhysicsCfg(), initial)
    with RunLogger(tmp_path, "impact") as logger:
        simulation.attach_logger(logger)
        run_for(simulation, 30.0)
    assert simulation.collision.occurred
    events = (tmp_path / "impact" / "events.csv").read_text(encoding="utf-8")
    assert ",collision," in events


def test_softened_plunge_stays_bounded_in_analytic_mode():
    simulation = TwoBodySimulation(PhysicsCfg(propagation="analytic"))
    simulation.apply_scenario("softened_plunge")
    simulation.start()
    assert simulation.fallback_reason == "softened"
    assert not simulation.propagating_analytically
    for _ in range(300):
        simulation.advance()
        assert simulation.separation() < 2 * 150.0


def test_band_parabola_far_from_periapsis_falls_back(tmp_path):
    simulation = TwoBodySimulation(PhysicsCfg(propagation="analytic", collision_enabled=False))
    # bound orbit with e = 0.995 starting at apoapsis
    relative = math.sqrt(0.005) * circular_speed(100.0 * 100.0, 150.0)
    simulation.set_velocity("A", (0.0, -0.5 * relative))
    simulation.set_velocity("B", (0.0, 0.5 * relative))
    with RunLogger(tmp_path, "band") as logger:
        simulation.attach_logger(logger)
        simulation.start()
        assert simulation.elements.conic_type is ConicType.PARABOLA
        assert simulation.fallback_reason == "snapshot_mismatch"
        ticks(simulation, 10)
    assert simulation.separation() < 150.0
    events = (tmp_path / "band" / "events.csv").read_text(encoding="utf-8")
    assert ",radial_fallback," in events
    assert "snapshot_mismatch" in events


def test_softening_setter_switches_analytic_to_integration():
    simulation = TwoBodySimulation(PhysicsCfg(propagation="analytic"))
    simulation.apply_scenario("elliptical")
    assert simulation.propagating_analytically
    simulation.set_softening(2.0)
    assert simulation.fallback_reason == "softened"
    simulation.set_softening(0.0)
    assert simulation.propagating_analytically


def test_velocity_edit_while_running_survives_reset():
    simulation = TwoBodySimulation()
    simulation.apply_scenario("circular")
    simulation.start()
    ticks(simulation, 10)
    simulation.set_velocity("B", (1.0, 2.0))
    assert np.allclose(simulation.body_b.velocity, [1.0, 2.0])
    simulation.reset()
    assert np.allclose(simulation.body_b.velocity, [1.0, 2.0])
    assert simulation.initial.velocity_b == pytest.approx((1.0, 2.0))


def test_default_trail_length_follows_config():
    body = Body("A", 1.0, 1.0)
    assert body.trail.maxlen == PHYSICS_CFG.trail_length
    simulation = TwoBodySimulation(PhysicsCfg(trail_length=5))
    simulation.apply_scenario("circular")
    simulation.start()
    ticks(simulation, 20)
    assert len(simulation.body_b.trail) == 5


def test_scenario_speed_is_multiple_of_circular_speed():
    simulation = TwoBodySimulation()
    simulation.apply_scenario("fixed_circular")
    assert simulation.body_b.velocity[1] == pytest.approx(circular_speed(100.0 * 50.0, 150.0))
    simulation.apply_scenario("hyperbolic")
    _, vel_b = simulation.velocities()
    assert vel_b[1] == pytest.approx(1.8 * circular_speed(100.0 * 100.0, 150.0) / 2.0)
