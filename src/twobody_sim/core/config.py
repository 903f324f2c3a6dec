"""Configuration dataclasses for the two-body simulation."""
from __future__ import annotations

from dataclasses import dataclass

PROPAGATION_MODES = ("numeric", "analytic")
INTEGRATORS = ("leapfrog", "euler")


@dataclass(frozen=True)
class PhysicsCfg:
    gravitational_constant: float = 100.0
    dt: float = 0.016
    speed_multiplier: float = 1.0
    softening: float = 0.0
    fixed_primary: bool = False
    recenter: bool = True
    collision_enabled: bool = True
    propagation: str = "numeric"
    integrator: str = "leapfrog"
    max_substeps: int = 1
    drag_velocity_scale: float = 0.05
    trail_length: int = 2_000
    log_every_steps: int = 20
    parabolic_band: tuple[float, float] = (0.99, 1.01)
    angular_momentum_floor: float = 1e-8
    kepler_tolerance: float = 1e-10
    kepler_max_iterations: int = 100
    analytic_check_tolerance: float = 1e-6

    def mu(self, mass_a: float, mass_b: float) -> float:
        """Gravitational parameter for the current primary mode."""

        if self.fixed_primary:
            return self.gravitational_constant * mass_a
        return self.gravitational_constant * (mass_a + mass_b)


def validate_modes(cfg: PhysicsCfg) -> PhysicsCfg:
    if cfg.propagation not in PROPAGATION_MODES:
        raise ValueError(
            f"Unknown propagation mode '{cfg.propagation}'. "
            f"Expected one of: {', '.join(PROPAGATION_MODES)}"
        )
    if cfg.integrator not in INTEGRATORS:
        raise ValueError(
            f"Unknown integrator '{cfg.integrator}'. "
            f"Expected one of: {', '.join(INTEGRATORS)}"
        )
    return cfg


PHYSICS_CFG = PhysicsCfg()


__all__ = [
    "INTEGRATORS",
    "PHYSICS_CFG",
    "PROPAGATION_MODES",
    "PhysicsCfg",
    "validate_modes",
]
