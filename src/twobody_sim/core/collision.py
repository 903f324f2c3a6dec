"""Collision detection between the two bodies."""
from __future__ import annotations

from .model import NO_COLLISION, Body, CollisionEvent
from .timekeeping import SimulationClock
from .vectors import distance


def impact_point(body_a: Body, body_b: Body):
    """Contact point on the line between the centres, weighted by radius."""

    total = body_a.radius + body_b.radius
    return (body_a.position * body_b.radius + body_b.position * body_a.radius) / total


def check_collision(body_a: Body, body_b: Body, clock: SimulationClock) -> CollisionEvent:
    """Test for overlap and, on impact, deactivate both bodies and stop the clock.

    Once the bodies are inactive the check is skipped, so a single impact
    produces exactly one event.
    """

    if not clock.state.collision_enabled:
        return NO_COLLISION
    if not (body_a.active and body_b.active):
        return NO_COLLISION
    if distance(body_a.position, body_b.position) >= body_a.radius + body_b.radius:
        return NO_COLLISION

    point = impact_point(body_a, body_b)
    body_a.active = False
    body_b.active = False
    clock.stop()
    return CollisionEvent(
        occurred=True,
        impact_point=point,
        timestamp=clock.state.elapsed_time,
    )


__all__ = ["check_collision", "impact_point"]
