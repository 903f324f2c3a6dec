"""Orbital mechanics core for the two-body simulator."""

from .config import PHYSICS_CFG, PhysicsCfg
from .model import (
    Body,
    CollisionEvent,
    ConicType,
    DEFAULT_INITIAL,
    InitialConditions,
    NO_COLLISION,
    OrbitalElements,
    SimState,
)
from .physics import (
    acceleration,
    euler_step,
    leapfrog_step,
    total_energy,
)
from .elements import (
    OrbitSummary,
    classify_conic,
    elements_from_state,
    summarize_orbit,
)
from .kepler import (
    KeplerSolution,
    KeplerState,
    solve_elliptic,
    solve_hyperbolic,
    solve_parabolic,
    state_at_time,
)
from .collision import check_collision
from .timekeeping import FixedStepAccumulator, SimulationClock
from .logging_utils import RunLogger

__all__ = [
    "Body",
    "CollisionEvent",
    "ConicType",
    "DEFAULT_INITIAL",
    "FixedStepAccumulator",
    "InitialConditions",
    "KeplerSolution",
    "KeplerState",
    "NO_COLLISION",
    "OrbitSummary",
    "OrbitalElements",
    "PHYSICS_CFG",
    "PhysicsCfg",
    "RunLogger",
    "SimState",
    "SimulationClock",
    "acceleration",
    "check_collision",
    "classify_conic",
    "elements_from_state",
    "euler_step",
    "leapfrog_step",
    "solve_elliptic",
    "solve_hyperbolic",
    "solve_parabolic",
    "state_at_time",
    "summarize_orbit",
    "total_energy",
]
