"""Analyze a recorded two-body run and generate diagnostic figures."""
from __future__ import annotations

import argparse
import csv
import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt

from .core.elements import classify_conic

TIMESERIES_FILENAME = "timeseries.csv"
EVENTS_FILENAME = "events.csv"
META_FILENAME = "meta.json"
FIGS_SUBDIR = "figs"


def load_timeseries(path: Path) -> Dict[str, np.ndarray]:
    with path.open("r", newline="", encoding="utf-8") as fh:
        reader = csv.DictReader(fh)
        columns: Dict[str, List[float]] = {name: [] for name in reader.fieldnames or []}
        for row in reader:
            for key, value in row.items():
                if key is None:
                    continue
                columns.setdefault(key, []).append(float(value))
    return {key: np.asarray(values) for key, values in columns.items()}


def load_events(path: Path) -> List[dict]:
    with path.open("r", newline="", encoding="utf-8") as fh:
        reader = csv.DictReader(fh)
        events: List[dict] = []
        for row in reader:
            if not row:
                continue
            event = {
                "t": float(row["t"]),
                "type": row["type"],
                "x": float(row["x"]),
                "y": float(row["y"]),
            }
            details_raw = row.get("details", "")
            if details_raw:
                try:
                    event["details"] = json.loads(details_raw)
                except json.JSONDecodeError:
                    event["details"] = details_raw
            events.append(event)
    return events


def ensure_fig_dir(run_dir: Path) -> Path:
    fig_dir = run_dir / FIGS_SUBDIR
    fig_dir.mkdir(parents=True, exist_ok=True)
    return fig_dir


def estimate_period(ts: Dict[str, np.ndarray]) -> Optional[float]:
    """Time between the last two separation minima, if there are two."""

    r = ts.get("r")
    t = ts.get("t")
    if r is None or t is None or r.size < 3:
        return None
    minima = [i for i in range(1, r.size - 1) if r[i - 1] > r[i] <= r[i + 1]]
    if len(minima) < 2:
        return None
    return float(t[minima[-1]] - t[minima[-2]])


@dataclass(frozen=True)
class RunSummary:
    run_name: str
    orbit_class: str
    semi_major_axis: Optional[float]
    period_theory: Optional[float]
    period_sim: Optional[float]
    energy_drift: float
    event_counts: Dict[str, int]
    collision_time: Optional[float]


def summarize_run(
    run_dir: Path,
    meta: dict,
    ts: Dict[str, np.ndarray],
    events: List[dict],
) -> RunSummary:
    energy = ts.get("energy", np.array([]))
    energy_drift = 0.0
    if energy.size:
        denom = abs(energy[0]) if abs(energy[0]) > 1e-12 else 1.0
        energy_drift = float((energy[-1] - energy[0]) / denom)

    ecc = ts.get("e", np.array([]))
    orbit_class = classify_conic(float(ecc[-1])).value if ecc.size else "unknown"

    mu = float(meta.get("mu", 0.0))
    a = None
    period_theory = None
    if mu > 0.0 and ecc.size:
        rx = ts["xb"][-1] - ts["xa"][-1]
        ry = ts["yb"][-1] - ts["ya"][-1]
        vx = ts["vxb"][-1] - ts["vxa"][-1]
        vy = ts["vyb"][-1] - ts["vya"][-1]
        specific = 0.5 * (vx * vx + vy * vy) - mu / math.hypot(rx, ry)
        if specific < 0.0:
            a = -mu / (2.0 * specific)
            period_theory = 2.0 * math.pi * math.sqrt(a**3 / mu)

    counts: Dict[str, int] = {}
    collision_time = None
    for event in events:
        counts[event["type"]] = counts.get(event["type"], 0) + 1
        if event["type"] == "collision" and collision_time is None:
            collision_time = event["t"]

    return RunSummary(
        run_name=run_dir.name,
        orbit_class=orbit_class,
        semi_major_axis=a,
        period_theory=period_theory,
        period_sim=estimate_period(ts),
        energy_drift=energy_drift,
        event_counts=counts,
        collision_time=collision_time,
    )


def plot_orbit(fig_dir: Path, ts: Dict[str, np.ndarray], events: List[dict]) -> None:
    fig, ax = plt.subplots(figsize=(6, 6))
    ax.plot(ts["xa"], ts["ya"], color="#ff5722", lw=1.5, label="A")
    ax.plot(ts["xb"], ts["yb"], color="#2196f3", lw=1.5, label="B")
    impacts = [event for event in events if event["type"] == "collision"]
    if impacts:
        ax.scatter(
            [event["x"] for event in impacts],
            [event["y"] for event in impacts],
            color="#ffa94d",
            marker="*",
            s=120,
            label="Collision",
        )
    ax.set_aspect("equal", "box")
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    ax.set_title("Trajectories (x-y)")
    ax.legend()
    fig.tight_layout()
    fig.savefig(fig_dir / "orbit_xy.png", dpi=150)
    plt.close(fig)


def plot_energy(fig_dir: Path, ts: Dict[str, np.ndarray], rel_drift: float) -> None:
    fig, ax = plt.subplots(figsize=(7, 4))
    ax.plot(ts["t"], ts["energy"], color="#ffa94d")
    ax.set_xlabel("t [s]")
    ax.set_ylabel("Total energy")
    ax.set_title(f"Total energy, relative drift dE/E = {rel_drift:.2e}")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    fig.savefig(fig_dir / "energy.png", dpi=150)
    plt.close(fig)


def plot_separation(fig_dir: Path, ts: Dict[str, np.ndarray], events: List[dict]) -> None:
    fig, ax = plt.subplots(figsize=(7, 4))
    ax.plot(ts["t"], ts["r"], color="#4dabf7")
    for event in events:
        if event["type"] == "collision":
            ax.axvline(event["t"], color="#d9480f", linestyle="--", alpha=0.6)
    ax.set_xlabel("t [s]")
    ax.set_ylabel("r")
    ax.set_title("Separation over time")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    fig.savefig(fig_dir / "separation.png", dpi=150)
    plt.close(fig)


def plot_eccentricity(fig_dir: Path, ts: Dict[str, np.ndarray]) -> None:
    fig, ax = plt.subplots(figsize=(7, 4))
    ax.plot(ts["t"], ts["e"], color="#9775fa")
    ax.set_xlabel("t [s]")
    ax.set_ylabel("e [-]")
    ax.set_title("Eccentricity over time")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    fig.savefig(fig_dir / "eccentricity.png", dpi=150)
    plt.close(fig)


def plot_all(run_dir: Path, ts: Dict[str, np.ndarray], events: List[dict], rel_drift: float) -> Path:
    fig_dir = ensure_fig_dir(run_dir)
    plot_orbit(fig_dir, ts, events)
    plot_energy(fig_dir, ts, rel_drift)
    plot_separation(fig_dir, ts, events)
    plot_eccentricity(fig_dir, ts)
    return fig_dir


def print_summary(summary: RunSummary) -> None:
    print(f"Run: {summary.run_name}")
    print(f" Classification: {summary.orbit_class}")
    if summary.semi_major_axis is not None:
        print(f" Semi-major axis a = {summary.semi_major_axis:.3f}")
    else:
        print(" Semi-major axis: undefined (open orbit)")
    if summary.period_theory is not None:
        print(f" Theoretical period T = {summary.period_theory:.3f} s")
    if summary.period_sim is not None:
        print(f" Simulated period (last two closest approaches) = {summary.period_sim:.3f} s")
    else:
        print(" Simulated period: needs at least two closest approaches")
    print(f" Relative energy drift dE/E = {summary.energy_drift:.3e}")
    if summary.collision_time is not None:
        print(f" Collision at t = {summary.collision_time:.3f} s")
    print(
        " Events:" + ",".join(f" {etype}: {count}" for etype, count in summary.event_counts.items())
    )


def resolve_run_dir(run_dir: Optional[str], base_runs_dir: Path) -> Optional[Path]:
    if run_dir:
        run_path = Path(run_dir)
        if not run_path.is_dir():
            run_path = base_runs_dir / run_dir
        return run_path
    last_run_file = base_runs_dir / "last_run.txt"
    if not last_run_file.exists():
        return None
    return base_runs_dir / last_run_file.read_text(encoding="utf-8").strip()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Analyze a recorded run and create figures.")
    parser.add_argument("run_dir", nargs="?", help="Path or id of a run directory")
    parser.add_argument("--runs-dir", default="data/runs")
    parser.add_argument("--no-plots", action="store_true")
    args = parser.parse_args(argv)

    run_path = resolve_run_dir(args.run_dir, Path(args.runs_dir))
    if run_path is None:
        parser.error("No run given and last_run.txt is missing.")
    if not run_path.is_dir():
        parser.error(f"Run directory not found: {run_path}")

    meta_path = run_path / META_FILENAME
    ts_path = run_path / TIMESERIES_FILENAME
    ev_path = run_path / EVENTS_FILENAME
    if not meta_path.exists() or not ts_path.exists() or not ev_path.exists():
        parser.error("Run directory is missing meta/timeseries/events files.")

    with meta_path.open("r", encoding="utf-8") as fh:
        meta = json.load(fh)
    ts = load_timeseries(ts_path)
    events = load_events(ev_path)
    if not ts or ts["t"].size == 0:
        parser.error("timeseries.csv is empty, nothing to analyze.")

    summary = summarize_run(run_path, meta, ts, events)
    if not args.no_plots:
        plot_all(run_path, ts, events, summary.energy_drift)
    print_summary(summary)


if __name__ == "__main__":
    main()
