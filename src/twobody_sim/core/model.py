"""Data models for the two-body simulation state."""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from .config import PHYSICS_CFG


class ConicType(str, Enum):
    ELLIPSE = "ellipse"
    PARABOLA = "parabola"
    HYPERBOLA = "hyperbola"


@dataclass
class Body:
    """Mutable dynamic state of one of the two bodies.

    ``active`` is cleared when the body is destroyed in a collision; the body
    itself is kept so that it can be reset later.
    """

    name: str
    mass: float
    radius: float
    position: np.ndarray = field(
        default_factory=lambda: np.zeros(2, dtype=float)
    )
    velocity: np.ndarray = field(
        default_factory=lambda: np.zeros(2, dtype=float)
    )
    active: bool = True
    trail: deque = field(default_factory=lambda: deque(maxlen=PHYSICS_CFG.trail_length))

    def __post_init__(self) -> None:
        self.position = np.array(self.position, dtype=float).reshape(2)
        self.velocity = np.array(self.velocity, dtype=float).reshape(2)

    def record_trail(self) -> None:
        self.trail.append((float(self.position[0]), float(self.position[1])))

    def copy(self) -> "Body":
        return Body(
            name=self.name,
            mass=self.mass,
            radius=self.radius,
            position=self.position.copy(),
            velocity=self.velocity.copy(),
            active=self.active,
            trail=deque(self.trail, maxlen=self.trail.maxlen),
        )


@dataclass(frozen=True)
class OrbitalElements:
    """Conic elements of the relative orbit at ``epoch_time``.

    For a parabola ``semi_major_axis`` holds the periapsis distance ``q`` so the
    semi-latus rectum is ``2 * semi_major_axis`` and ``mean_motion`` is zero.
    ``direction`` is +1 for counter-clockwise motion and -1 for clockwise.
    ``degenerate`` marks elements built with the angular momentum floor.
    """

    semi_major_axis: float
    eccentricity: float
    argument_of_periapsis: float
    mean_anomaly_at_epoch: float
    mean_motion: float
    gravitational_parameter: float
    epoch_time: float
    conic_type: ConicType
    direction: float = 1.0
    angular_momentum: float = 0.0
    degenerate: bool = False

    @property
    def semi_latus_rectum(self) -> float:
        if self.conic_type is ConicType.PARABOLA:
            return 2.0 * self.semi_major_axis
        return self.semi_major_axis * (1.0 - self.eccentricity**2)


@dataclass
class SimState:
    """Clock and switches shared by one simulation session."""

    elapsed_time: float = 0.0
    running: bool = False
    time_step: float = 0.016
    speed_multiplier: float = 1.0
    collision_enabled: bool = True


@dataclass(frozen=True)
class CollisionEvent:
    occurred: bool = False
    impact_point: np.ndarray = field(
        default_factory=lambda: np.zeros(2, dtype=float)
    )
    timestamp: float = 0.0


NO_COLLISION = CollisionEvent()


@dataclass(frozen=True)
class InitialConditions:
    """Parameters the session builds a fresh pair of bodies from."""

    mass_a: float = 50.0
    mass_b: float = 50.0
    radius_a: float = 15.0
    radius_b: float = 15.0
    separation: float = 150.0
    velocity_a: tuple[float, float] = (0.0, 0.0)
    velocity_b: tuple[float, float] = (0.0, 0.0)


DEFAULT_INITIAL = InitialConditions()


__all__ = [
    "Body",
    "CollisionEvent",
    "ConicType",
    "DEFAULT_INITIAL",
    "InitialConditions",
    "NO_COLLISION",
    "OrbitalElements",
    "SimState",
]
