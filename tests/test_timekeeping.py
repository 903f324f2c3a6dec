import pytest

from twobody_sim.core.model import SimState
from twobody_sim.core.timekeeping import FixedStepAccumulator, SimulationClock


def test_stopped_clock_is_frozen():
    clock = SimulationClock(SimState(time_step=0.016))
    assert clock.tick() == 0.0
    assert clock.elapsed_time == 0.0


def test_running_clock_scales_by_speed_multiplier():
    clock = SimulationClock(SimState(time_step=0.016, speed_multiplier=3.0))
    clock.start()
    for _ in range(10):
        assert clock.tick() == pytest.approx(0.048)
    assert clock.elapsed_time == pytest.approx(0.48)

    clock.stop()
    clock.tick()
    assert clock.elapsed_time == pytest.approx(0.48)

    clock.reset()
    assert clock.elapsed_time == 0.0
    assert not clock.running


def test_accumulator_splits_into_substeps():
    acc = FixedStepAccumulator(step=0.016, max_substeps=10)
    acc.accrue(0.05)
    steps, dt = acc.consume()
    assert steps == 4
    assert dt == pytest.approx(0.0125)
    assert acc.consume() == (0, 0.0)


def test_accumulator_respects_substep_cap():
    acc = FixedStepAccumulator(step=0.016, max_substeps=1)
    acc.accrue(0.016 * 7)
    steps, dt = acc.consume()
    assert steps == 1
    assert dt == pytest.approx(0.112)


def test_accumulator_ignores_float_noise():
    acc = FixedStepAccumulator(step=0.016, max_substeps=10)
    acc.accrue(0.016 * 3.0)
    steps, _ = acc.consume()
    assert steps == 3
