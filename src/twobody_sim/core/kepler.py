"""Closed-form propagation of a two-body orbit from its elements.

Each conic type has its own anomaly equation, solved by Newton-Raphson:

- ellipse:   ``M = E - e sin E``
- hyperbola: ``M = e sinh H - H``
- parabola:  ``M = D + D**3 / 3`` (Barker, ``D = tan(nu / 2)``)

The solvers never raise. When the iteration cap is reached the last iterate
is used and the returned :class:`KeplerSolution` has ``converged=False``.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from .elements import TWO_PI, wrap_angle
from .model import ConicType, OrbitalElements
from .vectors import rotate

DEFAULT_TOLERANCE = 1e-10
DEFAULT_MAX_ITERATIONS = 100


@dataclass(frozen=True)
class KeplerSolution:
    anomaly: float
    iterations: int
    converged: bool


@dataclass(frozen=True)
class KeplerState:
    """Relative position/velocity at a time plus the solver diagnostic."""

    position: np.ndarray
    velocity: np.ndarray
    solution: KeplerSolution


def solve_elliptic(
    mean_anomaly: float,
    eccentricity: float,
    tol: float = DEFAULT_TOLERANCE,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> KeplerSolution:
    m = wrap_angle(mean_anomaly)
    e = eccentricity
    anomaly = m + e * math.sin(m)
    for iteration in range(1, max_iter + 1):
        f = anomaly - e * math.sin(anomaly) - m
        fp = 1.0 - e * math.cos(anomaly)
        step = f / fp
        anomaly -= step
        if abs(step) < tol:
            return KeplerSolution(anomaly, iteration, True)
    return KeplerSolution(anomaly, max_iter, False)


def solve_hyperbolic(
    mean_anomaly: float,
    eccentricity: float,
    tol: float = DEFAULT_TOLERANCE,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> KeplerSolution:
    m = mean_anomaly
    e = eccentricity
    anomaly = m / (e - 1.0)
    if abs(anomaly) > 6.0:
        # M / (e - 1) overshoots far out on the asymptote and sinh of it can
        # overflow; there e sinh H ~ e exp(H) / 2 = M gives H ~ log(2M / e)
        anomaly = math.copysign(math.log(2.0 * abs(m) / e + 1.8), m)
    for iteration in range(1, max_iter + 1):
        f = e * math.sinh(anomaly) - anomaly - m
        fp = e * math.cosh(anomaly) - 1.0
        step = f / fp
        anomaly -= step
        if abs(step) < tol:
            return KeplerSolution(anomaly, iteration, True)
    return KeplerSolution(anomaly, max_iter, False)


def solve_parabolic(
    mean_anomaly: float,
    tol: float = DEFAULT_TOLERANCE,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> KeplerSolution:
    m = mean_anomaly
    anomaly = float(np.cbrt(3.0 * m))
    for iteration in range(1, max_iter + 1):
        f = anomaly + anomaly**3 / 3.0 - m
        fp = 1.0 + anomaly * anomaly
        step = f / fp
        anomaly -= step
        if abs(step) < tol * max(1.0, abs(anomaly)):
            return KeplerSolution(anomaly, iteration, True)
    return KeplerSolution(anomaly, max_iter, False)


def parabolic_mean_motion(mu: float, periapsis_distance: float) -> float:
    """Rate of the Barker mean anomaly, ``2 * sqrt(mu / p**3)`` with ``p = 2q``."""

    p = 2.0 * periapsis_distance
    return 2.0 * math.sqrt(mu / p**3)


def state_at_time(
    elements: OrbitalElements,
    t: float,
    *,
    tol: float = DEFAULT_TOLERANCE,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> KeplerState:
    """Relative position and velocity at time ``t``."""

    mu = elements.gravitational_parameter
    e = elements.eccentricity
    a = elements.semi_major_axis
    dt = t - elements.epoch_time

    if elements.conic_type is ConicType.ELLIPSE:
        mean_anomaly = elements.mean_anomaly_at_epoch + elements.mean_motion * dt
        solution = solve_elliptic(mean_anomaly, e, tol, max_iter)
        ecc = solution.anomaly
        cos_e = math.cos(ecc)
        sin_e = math.sin(ecc)
        root = math.sqrt(max(0.0, 1.0 - e * e))
        r = a * (1.0 - e * cos_e)
        factor = math.sqrt(mu * a) / r
        x, y = a * (cos_e - e), a * root * sin_e
        vx, vy = -factor * sin_e, factor * root * cos_e
    elif elements.conic_type is ConicType.HYPERBOLA:
        mean_anomaly = elements.mean_anomaly_at_epoch + elements.mean_motion * dt
        solution = solve_hyperbolic(mean_anomaly, e, tol, max_iter)
        hyp = solution.anomaly
        cosh_h = math.cosh(hyp)
        sinh_h = math.sinh(hyp)
        root = math.sqrt(max(0.0, e * e - 1.0))
        r = a * (1.0 - e * cosh_h)
        factor = math.sqrt(-mu * a) / r
        x, y = a * (cosh_h - e), -a * root * sinh_h
        vx, vy = -factor * sinh_h, factor * root * cosh_h
    else:
        q = a
        mean_anomaly = elements.mean_anomaly_at_epoch + parabolic_mean_motion(mu, q) * dt
        solution = solve_parabolic(mean_anomaly, tol, max_iter)
        d = solution.anomaly
        p = 2.0 * q
        v_factor = math.sqrt(mu / p)
        denom = 1.0 + d * d
        x, y = q * (1.0 - d * d), 2.0 * q * d
        vx, vy = -2.0 * v_factor * d / denom, 2.0 * v_factor / denom

    s = elements.direction
    omega = elements.argument_of_periapsis
    position = rotate(np.array([x, s * y], dtype=float), omega)
    velocity = rotate(np.array([vx, s * vy], dtype=float), omega)
    return KeplerState(position=position, velocity=velocity, solution=solution)


def orbital_period(elements: OrbitalElements) -> float:
    if elements.conic_type is not ConicType.ELLIPSE or elements.mean_motion <= 0.0:
        return math.inf
    return TWO_PI / elements.mean_motion


__all__ = [
    "DEFAULT_MAX_ITERATIONS",
    "DEFAULT_TOLERANCE",
    "KeplerSolution",
    "KeplerState",
    "orbital_period",
    "parabolic_mean_motion",
    "solve_elliptic",
    "solve_hyperbolic",
    "solve_parabolic",
    "state_at_time",
]
