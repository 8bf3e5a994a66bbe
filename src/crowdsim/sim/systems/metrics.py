from __future__ import annotations

import math
from typing import Sequence

from ..core.agent import Agent
from ..types.metrics import EvacuationReport, FrameMetrics


def local_density(neighbor_count: int, perception_radius: float) -> float:
    return neighbor_count / (math.pi * perception_radius * perception_radius)


def average_speed(agents: Sequence[Agent]) -> float:
    if not agents:
        return 0.0
    return sum(agent.speed for agent in agents) / len(agents)


def create_metrics(
    frame: int,
    population: int,
    exited: int,
    total_exited: int,
    avg_speed: float,
    jammed: int,
    jam_count: int,
    frame_density: float,
    max_density: float,
    clusters: tuple[int, int],
    neighbor_checks: int,
    unindexed: int,
    duration_ms: float,
) -> FrameMetrics:
    crowded, bottleneck = clusters
    return FrameMetrics(
        frame=frame,
        population=population,
        exited=exited,
        total_exited=total_exited,
        average_speed=avg_speed,
        jammed_agents=jammed,
        jam_count=jam_count,
        frame_density=frame_density,
        max_density=max_density,
        crowded_agents=crowded,
        bottleneck_agents=bottleneck,
        neighbor_checks=neighbor_checks,
        unindexed_agents=unindexed,
        tick_duration_ms=duration_ms,
    )


def create_report(frames: int, seconds: float, max_density: float, jam_count: int, evacuated: int) -> EvacuationReport:
    return EvacuationReport(
        frames=frames,
        seconds=seconds,
        max_density=max_density,
        jam_count=jam_count,
        evacuated=evacuated,
    )
