"""Simulation clock and fixed-step helpers."""
from __future__ import annotations

import math
from dataclasses import dataclass, field

from .model import SimState


@dataclass
class SimulationClock:
    """Running/stopped state machine owning the elapsed simulation time.

    ``tick`` only advances while running, by ``time_step * speed_multiplier``.
    """

    state: SimState = field(default_factory=SimState)

    @property
    def running(self) -> bool:
        return self.state.running

    @property
    def elapsed_time(self) -> float:
        return self.state.elapsed_time

    def start(self) -> None:
        self.state.running = True

    def stop(self) -> None:
        self.state.running = False

    def tick(self) -> float:
        """Advance elapsed time by one frame and return the simulated delta."""

        if not self.state.running:
            return 0.0
        delta = self.state.time_step * self.state.speed_multiplier
        self.state.elapsed_time += delta
        return delta

    def reset(self) -> None:
        self.state.running = False
        self.state.elapsed_time = 0.0


@dataclass
class FixedStepAccumulator:
    """Accumulates simulation time and yields fixed step sizes."""

    step: float
    max_substeps: int
    value: float = 0.0

    def accrue(self, delta: float) -> None:
        if delta > 0.0:
            self.value += delta

    def clear(self) -> None:
        self.value = 0.0

    def consume(self) -> tuple[int, float]:
        if self.value <= 0.0:
            return 0, 0.0
        # small tolerance so float noise in dt * speed does not add a substep
        steps_needed = max(1, math.ceil(self.value / self.step - 1e-9))
        steps_to_run = min(steps_needed, self.max_substeps)
        dt = self.value / steps_to_run
        self.value = 0.0
        return steps_to_run, dt


__all__ = ["FixedStepAccumulator", "SimulationClock"]
