from __future__ import annotations

import argparse
import csv
import json
import logging
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..sim.core.config import SimulationConfig
from ..sim.core.world import World
from ..sim.types.metrics import FrameMetrics

logger = logging.getLogger(__name__)

_HEADER = [
    "frame",
    "population",
    "exited",
    "total_exited",
    "avg_speed",
    "jammed_agents",
    "jam_count",
    "frame_density",
    "max_density",
    "crowded_agents",
    "bottleneck_agents",
    "neighbor_checks",
    "tick_ms",
]

_PARAM_FLAGS = (
    ("num_agents", int),
    ("separation_weight", float),
    ("alignment_weight", float),
    ("cohesion_weight", float),
    ("goal_weight", float),
    ("perception_radius", float),
)


def _format_row(metrics: FrameMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.frame,
        metrics.population,
        metrics.exited,
        metrics.total_exited,
        f"{metrics.average_speed:.4f}",
        metrics.jammed_agents,
        metrics.jam_count,
        f"{metrics.frame_density:.6f}",
        f"{metrics.max_density:.6f}",
        metrics.crowded_agents,
        metrics.bottleneck_agents,
        metrics.neighbor_checks,
        f"{tick_ms:.3f}",
    ]


def _summarize(values: List[float]) -> Dict[str, float]:
    if not values:
        return {"mean": 0.0, "min": 0.0, "max": 0.0}
    return {"mean": sum(values) / len(values), "min": min(values), "max": max(values)}


def run_headless(
    steps: int,
    seed: Optional[int] = None,
    log_path: Optional[Path] = None,
    deterministic_log: bool = False,
    summary_path: Optional[Path] = None,
    config: Optional[SimulationConfig] = None,
    params: Optional[Dict[str, Any]] = None,
    until_evacuated: bool = False,
) -> Dict[str, Any]:
    config = config or SimulationConfig()
    if seed is not None:
        config = replace(config, seed=seed)
    if params:
        config = replace(config, params=replace(config.params, **params))
    world = World(config)
    logger.info("headless run: %d steps, seed %d, %d agents", steps, config.seed, len(world.agents))

    history: List[FrameMetrics] = []
    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_HEADER)
    try:
        for _ in range(steps):
            metrics = world.step()
            history.append(metrics)
            if writer:
                tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
                writer.writerow(_format_row(metrics, tick_ms))
            if until_evacuated and world.evacuated:
                break
    finally:
        if csv_file:
            csv_file.close()

    report = world.report
    summary: Dict[str, Any] = {
        "steps": steps,
        "frames_run": len(history),
        "seed": config.seed,
        "params": asdict(config.params),
        "initial_agents": config.params.num_agents,
        "remaining_agents": len(world.agents),
        "max_density": world.max_density,
        "jam_count": world.jam_count,
        "average_speed": _summarize([m.average_speed for m in history]),
        "tick_ms": _summarize([0.0 if deterministic_log else m.tick_duration_ms for m in history]),
        "evacuated": report is not None,
        "report": None,
    }
    if report is not None:
        report_payload = asdict(report)
        if deterministic_log:
            report_payload["seconds"] = 0.0
        summary["report"] = report_payload
    if summary_path:
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return summary


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Headless crowd evacuation simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write per-frame metrics")
    parser.add_argument("--summary", type=Path, default=None, help="JSON file to write the run summary")
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Zero all wall-clock columns so identical seeds produce identical files.",
    )
    parser.add_argument("--until-evacuated", action="store_true", help="Stop as soon as every agent has exited.")
    parser.add_argument("--log-level", default="INFO")
    for name, kind in _PARAM_FLAGS:
        parser.add_argument(f"--{name.replace('_', '-')}", dest=name, type=kind, default=None)
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    config = SimulationConfig.from_yaml(args.config) if args.config else None
    overrides = {name: getattr(args, name) for name, _ in _PARAM_FLAGS if getattr(args, name) is not None}
    summary = run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        summary_path=args.summary,
        config=config,
        params=overrides,
        until_evacuated=args.until_evacuated,
    )
    if summary["report"] is None:
        logger.info("run ended with %d agents remaining", summary["remaining_agents"])


if __name__ == "__main__":
    main()
