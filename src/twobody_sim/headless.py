"""Run a two-body scenario without rendering and record it to disk."""
from __future__ import annotations

import argparse
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from .core.config import INTEGRATORS, PHYSICS_CFG, PROPAGATION_MODES, PhysicsCfg
from .core.logging_utils import RunLogger
from .core.session import TwoBodySimulation, run_for
from .data.scenarios import SCENARIO_DISPLAY_ORDER


@dataclass(frozen=True)
class HeadlessResult:
    run_dir: Path
    elapsed: float
    final_separation: float
    energy_drift: float
    collision_time: Optional[float]


def run_headless(
    scenario: str,
    duration: float,
    cfg: PhysicsCfg = PHYSICS_CFG,
    *,
    runs_dir: str | Path = "data/runs",
    run_id: Optional[str] = None,
) -> HeadlessResult:
    """Simulate ``scenario`` for ``duration`` seconds of simulation time."""

    with RunLogger(runs_dir, run_id) as logger:
        simulation = TwoBodySimulation(cfg)
        simulation.apply_scenario(scenario)
        simulation.attach_logger(logger)

        initial_energy = simulation.energy()
        elapsed = run_for(simulation, duration)

        collision_time = None
        if simulation.collision.occurred:
            collision_time = simulation.collision.timestamp
            energy_drift = 0.0
        else:
            denom = abs(initial_energy) if abs(initial_energy) > 1e-12 else 1.0
            energy_drift = (simulation.energy() - initial_energy) / denom

        return HeadlessResult(
            run_dir=logger.run_dir,
            elapsed=elapsed,
            final_separation=simulation.separation(),
            energy_drift=energy_drift,
            collision_time=collision_time,
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a two-body scenario headlessly and log it.")
    parser.add_argument("--scenario", choices=SCENARIO_DISPLAY_ORDER, default="circular")
    parser.add_argument("--duration", type=float, default=30.0, help="Simulated seconds")
    parser.add_argument("--dt", type=float, default=PHYSICS_CFG.dt)
    parser.add_argument("--speed", type=float, default=PHYSICS_CFG.speed_multiplier)
    parser.add_argument("--substeps", type=int, default=PHYSICS_CFG.max_substeps)
    parser.add_argument("--propagation", choices=PROPAGATION_MODES, default="numeric")
    parser.add_argument("--integrator", choices=INTEGRATORS, default="leapfrog")
    parser.add_argument("--no-recenter", action="store_true")
    parser.add_argument("--runs-dir", default="data/runs")
    parser.add_argument("--run-id", default=None)
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.duration <= 0.0:
        parser.error("--duration must be positive")
    if args.dt <= 0.0 or args.speed <= 0.0:
        parser.error("--dt and --speed must be positive")

    cfg = replace(
        PHYSICS_CFG,
        dt=args.dt,
        speed_multiplier=args.speed,
        max_substeps=max(1, args.substeps),
        propagation=args.propagation,
        integrator=args.integrator,
        recenter=not args.no_recenter,
    )
    result = run_headless(
        args.scenario,
        args.duration,
        cfg,
        runs_dir=args.runs_dir,
        run_id=args.run_id,
    )

    print(f"Simulation saved to {result.run_dir}")
    print(f" Elapsed: {result.elapsed:.3f} s")
    print(f" Final separation: {result.final_separation:.3f}")
    if result.collision_time is not None:
        print(f" Collision at t = {result.collision_time:.3f} s")
    else:
        print(f" Relative energy drift: {result.energy_drift:.3e}")


if __name__ == "__main__":
    main()
