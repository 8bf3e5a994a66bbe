from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class FrameMetrics:
    frame: int
    population: int
    exited: int
    total_exited: int
    average_speed: float
    jammed_agents: int
    jam_count: int
    frame_density: float
    max_density: float
    crowded_agents: int
    bottleneck_agents: int
    neighbor_checks: int
    unindexed_agents: int
    tick_duration_ms: float = 0.0


@dataclass(frozen=True, slots=True)
class EvacuationReport:
    frames: int
    seconds: float
    max_density: float
    jam_count: int
    evacuated: int
