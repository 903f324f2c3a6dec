"""Gravity and time-stepping for the two-body simulation.

Units are whatever the caller chooses (the interactive defaults use pixels,
seconds and a tuned ``G``); every function only assumes they are consistent.

Softening adds ``softening**2`` to the squared distance in the force
magnitude. It bounds the acceleration as the separation goes to zero at the
cost of short-range accuracy, and should stay 0 unless close encounters
would otherwise blow up.
"""
from __future__ import annotations

import math

import numpy as np

from .model import Body
from .vectors import cross, norm


def acceleration(
    source: Body,
    other: Body,
    gravitational_constant: float,
    softening: float = 0.0,
) -> np.ndarray:
    """Acceleration of ``source`` due to the gravity of ``other``.

    Returns the zero vector when both bodies occupy the same point.
    """

    r = other.position - source.position
    dist = norm(r)
    d_squared = dist * dist + softening * softening
    if dist <= 0.0 or d_squared <= 0.0:
        return np.zeros(2, dtype=float)
    magnitude = gravitational_constant * other.mass / d_squared
    return magnitude * r / dist


def leapfrog_step(
    body_a: Body,
    body_b: Body,
    gravitational_constant: float,
    dt: float,
    softening: float = 0.0,
    fixed_primary: bool = False,
    recenter: bool = False,
) -> None:
    """Advance both bodies by ``dt`` with kick-drift-kick Velocity-Verlet.

    ``body_a`` is the primary. When ``fixed_primary`` is set it acts as a
    fixed source and only ``body_b`` moves.
    """

    if not (body_a.active and body_b.active):
        return

    half = 0.5 * dt
    if fixed_primary:
        body_b.velocity += acceleration(body_b, body_a, gravitational_constant, softening) * half
        body_b.position += body_b.velocity * dt
        body_b.velocity += acceleration(body_b, body_a, gravitational_constant, softening) * half
        return

    acc_a = acceleration(body_a, body_b, gravitational_constant, softening)
    acc_b = acceleration(body_b, body_a, gravitational_constant, softening)
    body_a.velocity += acc_a * half
    body_b.velocity += acc_b * half

    body_a.position += body_a.velocity * dt
    body_b.position += body_b.velocity * dt

    acc_a = acceleration(body_a, body_b, gravitational_constant, softening)
    acc_b = acceleration(body_b, body_a, gravitational_constant, softening)
    body_a.velocity += acc_a * half
    body_b.velocity += acc_b * half

    if recenter:
        recenter_on_barycenter(body_a, body_b)


def euler_step(
    body_a: Body,
    body_b: Body,
    gravitational_constant: float,
    dt: float,
    softening: float = 0.0,
    fixed_primary: bool = False,
    recenter: bool = False,
) -> None:
    """Explicit Euler step; drifts in energy and is kept for comparison runs."""

    if not (body_a.active and body_b.active):
        return

    acc_b = acceleration(body_b, body_a, gravitational_constant, softening)
    if fixed_primary:
        body_b.position += body_b.velocity * dt
        body_b.velocity += acc_b * dt
        return

    acc_a = acceleration(body_a, body_b, gravitational_constant, softening)
    body_a.position += body_a.velocity * dt
    body_b.position += body_b.velocity * dt
    body_a.velocity += acc_a * dt
    body_b.velocity += acc_b * dt

    if recenter:
        recenter_on_barycenter(body_a, body_b)


STEP_FUNCTIONS = {
    "leapfrog": leapfrog_step,
    "euler": euler_step,
}


def center_of_mass(body_a: Body, body_b: Body) -> np.ndarray:
    total = body_a.mass + body_b.mass
    return (body_a.mass * body_a.position + body_b.mass * body_b.position) / total


def center_of_mass_velocity(body_a: Body, body_b: Body) -> np.ndarray:
    total = body_a.mass + body_b.mass
    return (body_a.mass * body_a.velocity + body_b.mass * body_b.velocity) / total


def recenter_on_barycenter(body_a: Body, body_b: Body) -> None:
    """Shift both positions so the centre of mass sits at the origin."""

    offset = center_of_mass(body_a, body_b)
    body_a.position -= offset
    body_b.position -= offset


def relative_state(body_a: Body, body_b: Body) -> tuple[np.ndarray, np.ndarray]:
    """Position and velocity of ``body_b`` relative to ``body_a``."""

    return body_b.position - body_a.position, body_b.velocity - body_a.velocity


def total_energy(
    body_a: Body,
    body_b: Body,
    gravitational_constant: float,
    fixed_primary: bool = False,
) -> float:
    """Kinetic plus Newtonian potential energy of the pair.

    With a fixed primary only the secondary's kinetic energy counts.
    """

    r = norm(body_b.position - body_a.position)
    kinetic_b = 0.5 * body_b.mass * float(np.dot(body_b.velocity, body_b.velocity))
    kinetic_a = 0.0
    if not fixed_primary:
        kinetic_a = 0.5 * body_a.mass * float(np.dot(body_a.velocity, body_a.velocity))
    if r <= 0.0:
        return -math.inf
    potential = -gravitational_constant * body_a.mass * body_b.mass / r
    return kinetic_a + kinetic_b + potential


def total_angular_momentum(body_a: Body, body_b: Body, fixed_primary: bool = False) -> float:
    """Angular momentum about the origin (z-component)."""

    l_b = body_b.mass * cross(body_b.position, body_b.velocity)
    if fixed_primary:
        return l_b
    return body_a.mass * cross(body_a.position, body_a.velocity) + l_b


def specific_energy(r: np.ndarray, v: np.ndarray, mu: float) -> float:
    """Specific orbital energy of the relative state ``(r, v)``."""

    rmag = norm(r)
    if rmag <= 0.0:
        return -math.inf
    return 0.5 * float(v[0] * v[0] + v[1] * v[1]) - mu / rmag


def circular_speed(mu: float, separation: float) -> float:
    if separation <= 0.0 or mu <= 0.0:
        return 0.0
    return math.sqrt(mu / separation)


__all__ = [
    "STEP_FUNCTIONS",
    "acceleration",
    "center_of_mass",
    "center_of_mass_velocity",
    "circular_speed",
    "euler_step",
    "leapfrog_step",
    "recenter_on_barycenter",
    "relative_state",
    "specific_energy",
    "total_angular_momentum",
    "total_energy",
]
