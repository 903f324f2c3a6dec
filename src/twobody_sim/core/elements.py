"""Orbital elements derived from an instantaneous relative state."""
from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from .model import ConicType, OrbitalElements
from .vectors import angle_between, norm

TWO_PI = 2.0 * math.pi
DEFAULT_PARABOLIC_BAND = (0.99, 1.01)
DEFAULT_ANGULAR_MOMENTUM_FLOOR = 1e-8
# Keeps the solver finite when the two bodies coincide.
_MIN_RADIUS = 1e-12
# atanh(+-1) is infinite; stay just inside the domain.
_ATANH_LIMIT = 1.0 - 1e-15


def wrap_angle(angle: float) -> float:
    """Wrap ``angle`` into ``[-pi, pi)``."""

    return (angle + math.pi) % TWO_PI - math.pi


def classify_conic(
    eccentricity: float,
    band: tuple[float, float] = DEFAULT_PARABOLIC_BAND,
) -> ConicType:
    """Classify by eccentricity; everything inside ``band`` is a parabola."""

    lower, upper = band
    if eccentricity < lower:
        return ConicType.ELLIPSE
    if eccentricity > upper:
        return ConicType.HYPERBOLA
    return ConicType.PARABOLA


def elements_from_state(
    position: np.ndarray,
    velocity: np.ndarray,
    mass_primary: float,
    mass_secondary: float,
    gravitational_constant: float,
    epoch_time: float = 0.0,
    *,
    parabolic_band: tuple[float, float] = DEFAULT_PARABOLIC_BAND,
    angular_momentum_floor: float = DEFAULT_ANGULAR_MOMENTUM_FLOOR,
) -> OrbitalElements:
    """Build conic elements from a relative position/velocity pair.

    ``position`` and ``velocity`` are those of the secondary relative to the
    primary. Pass ``mass_secondary=0`` for a fixed primary so that
    ``mu = G * mass_primary``.

    When the specific angular momentum is smaller than
    ``angular_momentum_floor * mu`` it is replaced by that floor (keeping its
    sign). This keeps near-radial trajectories finite but is only an
    approximation; such elements are returned with ``degenerate=True``.
    """

    x, y = float(position[0]), float(position[1])
    vx, vy = float(velocity[0]), float(velocity[1])
    r = max(math.hypot(x, y), _MIN_RADIUS)
    mu = gravitational_constant * (mass_primary + mass_secondary)

    energy = 0.5 * (vx * vx + vy * vy) - mu / r

    h = x * vy - y * vx
    h_min = angular_momentum_floor * abs(mu)
    degenerate = abs(h) < h_min
    if degenerate:
        h = math.copysign(h_min, h)

    eccentricity = math.sqrt(max(0.0, 1.0 + 2.0 * energy * h * h / (mu * mu)))

    # Laplace-Runge-Lenz vector, points at periapsis
    ex = vy * h / mu - x / r
    ey = -vx * h / mu - y / r
    omega = math.atan2(ey, ex)

    direction = 1.0 if h >= 0.0 else -1.0
    nu = wrap_angle(direction * (math.atan2(y, x) - omega))

    conic_type = classify_conic(eccentricity, parabolic_band)
    e = eccentricity
    if conic_type is ConicType.ELLIPSE:
        a = -mu / (2.0 * energy)
        ecc_anomaly = 2.0 * math.atan2(
            math.sqrt(1.0 - e) * math.sin(0.5 * nu),
            math.sqrt(1.0 + e) * math.cos(0.5 * nu),
        )
        mean_anomaly = ecc_anomaly - e * math.sin(ecc_anomaly)
        mean_motion = math.sqrt(mu / a**3)
    elif conic_type is ConicType.HYPERBOLA:
        a = -mu / (2.0 * energy)
        arg = math.sqrt((e - 1.0) / (e + 1.0)) * math.tan(0.5 * nu)
        arg = max(-_ATANH_LIMIT, min(_ATANH_LIMIT, arg))
        hyp_anomaly = 2.0 * math.atanh(arg)
        mean_anomaly = e * math.sinh(hyp_anomaly) - hyp_anomaly
        mean_motion = math.sqrt(mu / (-a) ** 3)
    else:
        semi_latus_rectum = h * h / mu
        a = 0.5 * semi_latus_rectum
        barker = math.tan(0.5 * nu)
        mean_anomaly = barker + barker**3 / 3.0
        mean_motion = 0.0

    return OrbitalElements(
        semi_major_axis=a,
        eccentricity=eccentricity,
        argument_of_periapsis=omega,
        mean_anomaly_at_epoch=mean_anomaly,
        mean_motion=mean_motion,
        gravitational_parameter=mu,
        epoch_time=epoch_time,
        conic_type=conic_type,
        direction=direction,
        angular_momentum=h,
        degenerate=degenerate,
    )


@dataclass(frozen=True)
class OrbitSummary:
    """Read-outs for the info panel. Open orbits report infinite period."""

    conic_type: ConicType
    semi_major_axis: float
    semi_minor_axis: float
    eccentricity: float
    period: float
    separation: float
    relative_speed: float
    flight_angle: float


def summarize_orbit(
    elements: OrbitalElements,
    position: np.ndarray,
    velocity: np.ndarray,
) -> OrbitSummary:
    e = elements.eccentricity
    a = elements.semi_major_axis
    if elements.conic_type is ConicType.ELLIPSE:
        semi_major = a
        semi_minor = a * math.sqrt(max(0.0, 1.0 - e * e))
        period = TWO_PI / elements.mean_motion
    elif elements.conic_type is ConicType.HYPERBOLA:
        semi_major = a
        semi_minor = -a * math.sqrt(max(0.0, e * e - 1.0))
        period = math.inf
    else:
        semi_major = math.inf
        semi_minor = math.inf
        period = math.inf

    return OrbitSummary(
        conic_type=elements.conic_type,
        semi_major_axis=semi_major,
        semi_minor_axis=semi_minor,
        eccentricity=e,
        period=period,
        separation=norm(position),
        relative_speed=norm(velocity),
        flight_angle=angle_between(position, velocity),
    )


__all__ = [
    "DEFAULT_ANGULAR_MOMENTUM_FLOOR",
    "DEFAULT_PARABOLIC_BAND",
    "OrbitSummary",
    "classify_conic",
    "elements_from_state",
    "summarize_orbit",
    "wrap_angle",
]
