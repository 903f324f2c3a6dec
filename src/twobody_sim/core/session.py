"""Simulation session tying the physics components together.

A :class:`TwoBodySimulation` owns the two bodies, the clock and the current
configuration. User interfaces talk to it only through the setters, the drag
gesture, :meth:`TwoBodySimulation.advance` and the query methods, so it can be
driven headlessly.
"""
from __future__ import annotations

from collections import deque
from dataclasses import asdict, dataclass, replace
from typing import Optional

import numpy as np

from ..data.scenarios import get_scenario
from .collision import check_collision
from .config import PHYSICS_CFG, PhysicsCfg, validate_modes
from .elements import OrbitSummary, elements_from_state, summarize_orbit
from .kepler import KeplerSolution, state_at_time
from .logging_utils import RunLogger
from .model import (
    DEFAULT_INITIAL,
    NO_COLLISION,
    Body,
    CollisionEvent,
    InitialConditions,
    OrbitalElements,
    SimState,
)
from .physics import (
    STEP_FUNCTIONS,
    center_of_mass,
    center_of_mass_velocity,
    relative_state,
    total_angular_momentum,
    total_energy,
)
from .timekeeping import FixedStepAccumulator, SimulationClock
from .vectors import as_vec2, cross, distance, norm, vec2

BODY_NAMES = ("A", "B")


@dataclass
class _Drag:
    body: Body
    start: np.ndarray


class TwoBodySimulation:
    """One interactive two-body simulation.

    Body ``A`` is the primary: it is the one pinned in place in fixed-primary
    mode. Initial-condition changes (mass, separation, velocity) rebuild the
    starting layout only while the session is still at its initial state.
    Otherwise mass and velocity act on the live bodies and separation waits;
    every change is kept in :attr:`initial` for the next :meth:`reset`.
    """

    def __init__(
        self,
        cfg: PhysicsCfg = PHYSICS_CFG,
        initial: InitialConditions = DEFAULT_INITIAL,
        *,
        logger: Optional[RunLogger] = None,
    ) -> None:
        self.cfg = validate_modes(cfg)
        self.initial = initial
        self.clock = SimulationClock(
            SimState(
                time_step=cfg.dt,
                speed_multiplier=cfg.speed_multiplier,
                collision_enabled=cfg.collision_enabled,
            )
        )
        self._accumulator = FixedStepAccumulator(step=cfg.dt, max_substeps=cfg.max_substeps)
        self.body_a, self.body_b = self._build_bodies()
        self.collision: CollisionEvent = NO_COLLISION
        self.elements: Optional[OrbitalElements] = None
        self.last_solution: Optional[KeplerSolution] = None
        self.fallback_reason: Optional[str] = None
        self.show_trail = True
        self._barycenter = vec2()
        self._barycenter_velocity = vec2()
        self._drag: Optional[_Drag] = None
        self._tick_count = 0
        self.logger: Optional[RunLogger] = None
        if logger is not None:
            self.attach_logger(logger)
        self._refresh_elements()

    # ------------------------------------------------------------------
    # construction helpers

    def _build_bodies(self) -> tuple[Body, Body]:
        ic = self.initial
        if self.cfg.fixed_primary:
            pos_a = vec2()
            pos_b = vec2(ic.separation, 0.0)
            vel_a = vec2()
        else:
            total = ic.mass_a + ic.mass_b
            pos_a = vec2(-ic.separation * ic.mass_b / total, 0.0)
            pos_b = vec2(ic.separation * ic.mass_a / total, 0.0)
            vel_a = as_vec2(ic.velocity_a)

        maxlen = self.cfg.trail_length
        body_a = Body("A", ic.mass_a, ic.radius_a, pos_a, vel_a, trail=deque(maxlen=maxlen))
        body_b = Body(
            "B", ic.mass_b, ic.radius_b, pos_b, as_vec2(ic.velocity_b), trail=deque(maxlen=maxlen)
        )
        return body_a, body_b

    def _relayout(self) -> None:
        """Rebuild positions from the initial conditions, keeping live velocities."""

        vel_a = self.body_a.velocity.copy()
        vel_b = self.body_b.velocity.copy()
        self.body_a, self.body_b = self._build_bodies()
        self.body_a.velocity = vec2() if self.cfg.fixed_primary else vel_a
        self.body_b.velocity = vel_b

    def _body(self, which: str) -> Body:
        key = which.upper()
        if key == "A":
            return self.body_a
        if key == "B":
            return self.body_b
        raise ValueError(f"Unknown body '{which}'. Expected one of: {', '.join(BODY_NAMES)}")

    @property
    def pristine(self) -> bool:
        """True while stopped at the starting configuration."""

        return (
            not self.clock.running
            and self.clock.elapsed_time == 0.0
            and self.body_a.active
            and self.body_b.active
        )

    # ------------------------------------------------------------------
    # orbital elements

    @property
    def mu(self) -> float:
        return self.cfg.mu(self.body_a.mass, self.body_b.mass)

    def relative_state(self) -> tuple[np.ndarray, np.ndarray]:
        return relative_state(self.body_a, self.body_b)

    def compute_elements(self) -> OrbitalElements:
        """Elements of the current relative orbit, epoch = elapsed time."""

        position, velocity = self.relative_state()
        mass_secondary = 0.0 if self.cfg.fixed_primary else self.body_b.mass
        return elements_from_state(
            position,
            velocity,
            self.body_a.mass,
            mass_secondary,
            self.cfg.gravitational_constant,
            self.clock.elapsed_time,
            parabolic_band=self.cfg.parabolic_band,
            angular_momentum_floor=self.cfg.angular_momentum_floor,
        )

    def _refresh_elements(self) -> None:
        self.fallback_reason = None
        if self.cfg.propagation != "analytic":
            self.elements = None
            return
        self.elements = self.compute_elements()
        self._barycenter = center_of_mass(self.body_a, self.body_b)
        self._barycenter_velocity = center_of_mass_velocity(self.body_a, self.body_b)
        self.fallback_reason = self._analytic_fallback_reason(self.elements)
        if self.fallback_reason is not None:
            self._log_event(
                "radial_fallback",
                details={
                    "reason": self.fallback_reason,
                    "h": self.elements.angular_momentum,
                    "e": self.elements.eccentricity,
                },
            )

    def _analytic_fallback_reason(self, elements: OrbitalElements) -> Optional[str]:
        """Why ``elements`` cannot be propagated in closed form, or None if they can.

        Closed-form propagation assumes unsoftened gravity. The conic band can
        also label a near-unit-eccentricity ellipse as a parabola, which cannot
        represent points far from periapsis, so the elements must reproduce the
        current state at their epoch.
        """

        if elements.degenerate:
            return "radial"
        if self.cfg.softening > 0.0:
            return "softened"

        position, velocity = self.relative_state()
        state = state_at_time(
            elements,
            elements.epoch_time,
            tol=self.cfg.kepler_tolerance,
            max_iter=self.cfg.kepler_max_iterations,
        )
        tol = self.cfg.analytic_check_tolerance
        position_ok = distance(state.position, position) <= tol * max(norm(position), 1.0)
        velocity_ok = distance(state.velocity, velocity) <= tol * max(norm(velocity), 1.0)
        # NaN compares false, so it fails the check
        if not (position_ok and velocity_ok):
            return "snapshot_mismatch"
        return None

    @property
    def propagating_analytically(self) -> bool:
        return self.elements is not None and self.fallback_reason is None

    # ------------------------------------------------------------------
    # tick

    def advance(self) -> CollisionEvent:
        """Run one frame: clock, integrator or propagator, then collision check."""

        if not self.clock.running:
            return NO_COLLISION

        delta = self.clock.tick()
        if not (self.body_a.active and self.body_b.active):
            return NO_COLLISION

        if self.propagating_analytically:
            event = self._propagate()
        else:
            event = self._integrate(delta)

        self._tick_count += 1
        if self.show_trail:
            self.body_a.record_trail()
            self.body_b.record_trail()
        if self.logger is not None and self._tick_count % max(1, self.cfg.log_every_steps) == 0:
            self._log_sample(delta)

        if event.occurred:
            self.collision = event
            self._log_event(
                "collision",
                event.impact_point,
                {"radius_a": self.body_a.radius, "radius_b": self.body_b.radius},
            )
        return event

    def _integrate(self, delta: float) -> CollisionEvent:
        step = STEP_FUNCTIONS[self.cfg.integrator]
        recenter = self.cfg.recenter and not self.cfg.fixed_primary
        self._accumulator.accrue(delta)
        steps, dt = self._accumulator.consume()
        for _ in range(steps):
            step(
                self.body_a,
                self.body_b,
                self.cfg.gravitational_constant,
                dt,
                self.cfg.softening,
                self.cfg.fixed_primary,
                recenter,
            )
            event = check_collision(self.body_a, self.body_b, self.clock)
            if event.occurred:
                return event
        return NO_COLLISION

    def _propagate(self) -> CollisionEvent:
        elements = self.elements
        state = state_at_time(
            elements,
            self.clock.elapsed_time,
            tol=self.cfg.kepler_tolerance,
            max_iter=self.cfg.kepler_max_iterations,
        )
        self.last_solution = state.solution
        r, v = state.position, state.velocity

        if self.cfg.fixed_primary:
            self.body_b.position = self.body_a.position + r
            self.body_b.velocity = v.copy()
        else:
            total = self.body_a.mass + self.body_b.mass
            share_a = self.body_b.mass / total
            share_b = self.body_a.mass / total
            if self.cfg.recenter:
                barycenter = vec2()
            else:
                elapsed = self.clock.elapsed_time - elements.epoch_time
                barycenter = self._barycenter + self._barycenter_velocity * elapsed
            self.body_a.position = barycenter - share_a * r
            self.body_b.position = barycenter + share_b * r
            self.body_a.velocity = self._barycenter_velocity - share_a * v
            self.body_b.velocity = self._barycenter_velocity + share_b * v

        return check_collision(self.body_a, self.body_b, self.clock)

    # ------------------------------------------------------------------
    # run control

    @property
    def running(self) -> bool:
        return self.clock.running

    def start(self) -> None:
        if self.clock.running:
            return
        self._refresh_elements()
        self.clock.start()
        self._log_event("start")

    def stop(self) -> None:
        if not self.clock.running:
            return
        self.clock.stop()
        self._log_event("stop")

    def reset(self) -> None:
        """Rebuild both bodies from the initial conditions and clear the run."""

        self.clock.reset()
        self._accumulator.clear()
        self.body_a, self.body_b = self._build_bodies()
        self.collision = NO_COLLISION
        self.last_solution = None
        self._drag = None
        self._tick_count = 0
        self._refresh_elements()
        self._log_event("reset")

    def apply_scenario(self, key: str) -> None:
        scenario = get_scenario(key)
        self._set_cfg(
            fixed_primary=scenario.fixed_primary,
            softening=scenario.softening,
            collision_enabled=scenario.collision_enabled,
        )
        self.clock.state.collision_enabled = scenario.collision_enabled
        velocity_a, velocity_b = scenario.velocities(
            self.initial.mass_a,
            self.initial.mass_b,
            self.initial.separation,
            self.cfg.gravitational_constant,
        )
        self.initial = replace(self.initial, velocity_a=velocity_a, velocity_b=velocity_b)
        self.reset()
        self._log_event("scenario", details={"key": scenario.key})

    # ------------------------------------------------------------------
    # setters

    def _set_cfg(self, **changes) -> None:
        self.cfg = validate_modes(replace(self.cfg, **changes))

    def set_mass(self, which: str, mass: float) -> None:
        body = self._body(which)
        field_name = "mass_a" if body is self.body_a else "mass_b"
        self.initial = replace(self.initial, **{field_name: mass})
        if self.pristine:
            self._relayout()
        else:
            body.mass = mass
        self._refresh_elements()

    def set_radius(self, which: str, radius: float) -> None:
        body = self._body(which)
        field_name = "radius_a" if body is self.body_a else "radius_b"
        self.initial = replace(self.initial, **{field_name: radius})
        body.radius = radius

    def set_separation(self, separation: float) -> None:
        self.initial = replace(self.initial, separation=separation)
        if self.pristine:
            self._relayout()
            self._refresh_elements()

    def set_velocity(self, which: str, velocity) -> None:
        body = self._body(which)
        value = as_vec2(velocity)
        if body is self.body_a and self.cfg.fixed_primary:
            value = vec2()
        field_name = "velocity_a" if body is self.body_a else "velocity_b"
        self.initial = replace(self.initial, **{field_name: (float(value[0]), float(value[1]))})
        body.velocity = value
        self._refresh_elements()

    def set_speed_multiplier(self, multiplier: float) -> None:
        self._set_cfg(speed_multiplier=multiplier)
        self.clock.state.speed_multiplier = multiplier

    def set_time_step(self, dt: float) -> None:
        self._set_cfg(dt=dt)
        self.clock.state.time_step = dt
        self._accumulator.step = dt

    def set_max_substeps(self, max_substeps: int) -> None:
        self._set_cfg(max_substeps=max(1, int(max_substeps)))
        self._accumulator.max_substeps = self.cfg.max_substeps

    def set_collision_enabled(self, enabled: bool) -> None:
        self._set_cfg(collision_enabled=enabled)
        self.clock.state.collision_enabled = enabled

    def set_fixed_primary(self, fixed: bool) -> None:
        self._set_cfg(fixed_primary=fixed)
        if self.pristine:
            self._relayout()
        elif fixed:
            self.body_a.velocity = vec2()
        self._refresh_elements()

    def set_softening(self, softening: float) -> None:
        self._set_cfg(softening=max(0.0, float(softening)))
        self._refresh_elements()

    def set_gravitational_constant(self, value: float) -> None:
        self._set_cfg(gravitational_constant=value)
        self._refresh_elements()

    def set_propagation(self, mode: str) -> None:
        self._set_cfg(propagation=mode)
        self._accumulator.clear()
        self._refresh_elements()

    def set_integrator(self, name: str) -> None:
        self._set_cfg(integrator=name)

    def set_drag_velocity_scale(self, scale: float) -> None:
        self._set_cfg(drag_velocity_scale=scale)

    def set_show_trail(self, show: bool) -> None:
        self.show_trail = show
        if not show:
            self.body_a.trail.clear()
            self.body_b.trail.clear()

    # ------------------------------------------------------------------
    # drag-to-velocity gesture

    def begin_drag(self, point) -> bool:
        """Start a velocity drag if ``point`` lies on a movable body."""

        p = as_vec2(point)
        candidates = [self.body_b]
        if not self.cfg.fixed_primary:
            candidates.append(self.body_a)
        for body in candidates:
            if body.active and distance(p, body.position) < body.radius:
                self._drag = _Drag(body=body, start=body.position.copy())
                return True
        return False

    def drag_to(self, point) -> bool:
        """Update the dragged body's velocity from the pointer displacement."""

        if self._drag is None:
            return False
        displacement = as_vec2(point) - self._drag.start
        self.set_velocity(self._drag.body.name, displacement * self.cfg.drag_velocity_scale)
        return True

    def end_drag(self) -> None:
        self._drag = None

    @property
    def dragging(self) -> Optional[str]:
        return None if self._drag is None else self._drag.body.name

    # ------------------------------------------------------------------
    # queries

    def positions(self) -> tuple[np.ndarray, np.ndarray]:
        return self.body_a.position.copy(), self.body_b.position.copy()

    def velocities(self) -> tuple[np.ndarray, np.ndarray]:
        return self.body_a.velocity.copy(), self.body_b.velocity.copy()

    def separation(self) -> float:
        return distance(self.body_a.position, self.body_b.position)

    def energy(self) -> float:
        return total_energy(
            self.body_a,
            self.body_b,
            self.cfg.gravitational_constant,
            self.cfg.fixed_primary,
        )

    def angular_momentum(self) -> float:
        return total_angular_momentum(self.body_a, self.body_b, self.cfg.fixed_primary)

    def orbit_summary(self) -> OrbitSummary:
        position, velocity = self.relative_state()
        return summarize_orbit(self.compute_elements(), position, velocity)

    def describe(self) -> dict:
        return {
            "config": asdict(self.cfg),
            "initial": asdict(self.initial),
            "mu": self.mu,
        }

    # ------------------------------------------------------------------
    # recording

    def attach_logger(self, logger: RunLogger) -> None:
        self.logger = logger
        logger.write_meta(self.describe())

    def _log_sample(self, dt_eff: float) -> None:
        a, b = self.body_a, self.body_b
        position, velocity = self.relative_state()
        elements = self.compute_elements()
        self.logger.log_ts(
            [
                self.clock.elapsed_time,
                a.position[0],
                a.position[1],
                b.position[0],
                b.position[1],
                a.velocity[0],
                a.velocity[1],
                b.velocity[0],
                b.velocity[1],
                self.separation(),
                self.energy(),
                cross(position, velocity),
                elements.eccentricity,
                dt_eff,
            ]
        )

    def _log_event(self, event_type: str, point=None, details: Optional[dict] = None) -> None:
        if self.logger is None:
            return
        x, y = (0.0, 0.0) if point is None else (float(point[0]), float(point[1]))
        self.logger.log_event(self.clock.elapsed_time, event_type, x, y, details)


def run_for(simulation: TwoBodySimulation, duration: float) -> float:
    """Start ``simulation`` and tick until ``duration`` has elapsed or it stops.

    Returns the elapsed simulation time.
    """

    simulation.start()
    while simulation.running and simulation.clock.elapsed_time < duration:
        simulation.advance()
    simulation.stop()
    return simulation.clock.elapsed_time


__all__ = ["BODY_NAMES", "TwoBodySimulation", "run_for"]
