from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .metrics import EvacuationReport, FrameMetrics


@dataclass(slots=True)
class Snapshot:
    frame: int
    metrics: Optional[FrameMetrics]
    agents: List[Dict[str, Any]]
    environment: Dict[str, Any]
    metadata: "SnapshotMetadata"
    report: Optional[EvacuationReport] = None


@dataclass(slots=True)
class SnapshotMetadata:
    seed: int
    config_version: str
    time_step: float
    grid_cell_size: float
    params: Dict[str, Any]
