"""Preset starting conditions for the two-body simulation."""
from __future__ import annotations

import math
from dataclasses import dataclass

from ..core.physics import circular_speed


@dataclass(frozen=True)
class Scenario:
    """Starting velocities expressed as a multiple of the circular speed.

    The relative speed is ``speed_factor * sqrt(mu / separation)``, tangential
    to the separation, shared between the bodies so that total momentum is
    zero. With a fixed primary only body B moves.
    """

    key: str
    name: str
    speed_factor: float
    description: str
    fixed_primary: bool = False
    softening: float = 0.0
    collision_enabled: bool = True

    def velocities(
        self,
        mass_a: float,
        mass_b: float,
        separation: float,
        gravitational_constant: float,
    ) -> tuple[tuple[float, float], tuple[float, float]]:
        if self.fixed_primary:
            mu = gravitational_constant * mass_a
            speed = self.speed_factor * circular_speed(mu, separation)
            return (0.0, 0.0), (0.0, speed)

        total = mass_a + mass_b
        relative = self.speed_factor * circular_speed(gravitational_constant * total, separation)
        return (0.0, -relative * mass_b / total), (0.0, relative * mass_a / total)


SCENARIO_DEFINITIONS: tuple[Scenario, ...] = (
    Scenario(
        key="rest",
        name="Head-on",
        speed_factor=0.0,
        description="Both bodies start at rest and fall straight into each other.",
    ),
    Scenario(
        key="circular",
        name="Circular",
        speed_factor=1.0,
        description="Mutual circular orbit about the centre of mass.",
    ),
    Scenario(
        key="elliptical",
        name="Elliptical",
        speed_factor=0.75,
        description="Bound orbit starting at apoapsis (e ~ 0.44).",
    ),
    Scenario(
        key="parabolic",
        name="Parabolic",
        speed_factor=math.sqrt(2.0),
        description="Exactly the escape speed; the bodies separate forever.",
    ),
    Scenario(
        key="hyperbolic",
        name="Hyperbolic",
        speed_factor=1.8,
        description="Well above escape speed, a fly-by.",
    ),
    Scenario(
        key="retrograde",
        name="Retrograde",
        speed_factor=-1.0,
        description="Circular orbit, but clockwise.",
    ),
    Scenario(
        key="fixed_circular",
        name="Fixed primary",
        speed_factor=1.0,
        description="Body A pinned in place, body B on a circular orbit around it.",
        fixed_primary=True,
    ),
    Scenario(
        key="softened_plunge",
        name="Softened plunge",
        speed_factor=0.05,
        description="Nearly radial plunge through a softened core with collisions off.",
        softening=5.0,
        collision_enabled=False,
    ),
)

SCENARIOS: dict[str, Scenario] = {scenario.key: scenario for scenario in SCENARIO_DEFINITIONS}
SCENARIO_DISPLAY_ORDER: list[str] = [scenario.key for scenario in SCENARIO_DEFINITIONS]


def get_scenario(key: str) -> Scenario:
    try:
        return SCENARIOS[key]
    except KeyError:
        available = ", ".join(SCENARIO_DISPLAY_ORDER)
        raise KeyError(f"Unknown scenario '{key}'. Available: {available}") from None


__all__ = [
    "SCENARIO_DEFINITIONS",
    "SCENARIO_DISPLAY_ORDER",
    "SCENARIOS",
    "Scenario",
    "get_scenario",
]
