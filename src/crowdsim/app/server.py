from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import ConfigurationError, SimulationConfig, SimulationParams
from ..sim.core.world import World

logger = logging.getLogger(__name__)

_PARAM_TYPES = {f.name: (int if f.name == "num_agents" else float) for f in fields(SimulationParams)}


@dataclass(frozen=True)
class QueuedSnapshot:
    frame: int
    payload: str


def parse_params(payload: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(payload) - set(_PARAM_TYPES)
    if unknown:
        raise ConfigurationError(f"unknown parameters: {sorted(unknown)}")
    parsed: Dict[str, Any] = {}
    for name, value in payload.items():
        kind = _PARAM_TYPES[name]
        try:
            if isinstance(value, bool):
                raise TypeError(value)
            parsed[name] = kind(value)
            if kind is int and float(value) != parsed[name]:
                raise ValueError(value)
        except (TypeError, ValueError, OverflowError) as exc:
            raise ConfigurationError(f"invalid value for {name}: {value!r}") from exc
    return parsed


class SimulationController:
    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1, max_queued: int = 240):
        self.config = config
        self.world = World(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        # Oldest unacknowledged snapshots are dropped once the queue is full.
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=max(1, max_queued))
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._broadcast_task: asyncio.Task | None = None

    @property
    def frame(self) -> int:
        return self.world.frame

    async def start(self) -> None:
        if self._broadcast_task is None:
            self._broadcast_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def reset(self, params: Dict[str, Any] | None = None) -> None:
        overrides = parse_params(params or {})
        async with self._lock:
            self.world.reset(**overrides)
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.time_step / self.speed_multiplier)
            if not self.running or self.world.evacuated:
                continue
            async with self._lock:
                self.world.step()
            if self.world.frame % self.broadcast_interval == 0 or self.world.evacuated:
                await self._broadcast_snapshot()

    async def acknowledge(self, frame: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].frame <= frame:
                self._snapshot_queue.popleft()

    def status(self) -> Dict[str, Any]:
        metrics = self.world.metrics
        return {
            "running": self.running,
            "frame": self.world.frame,
            "agents": len(self.world.agents),
            "average_speed": 0.0 if metrics is None else metrics.average_speed,
            "params": asdict(self.world.params),
            "metrics": None if metrics is None else asdict(metrics),
            "evacuated": self.world.evacuated,
        }

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.world.snapshot()
        payload = {
            "type": "snapshot",
            "frame": snapshot.frame,
            "payload": {
                "frame": snapshot.frame,
                "metrics": None if snapshot.metrics is None else asdict(snapshot.metrics),
                "agents": snapshot.agents,
                "environment": snapshot.environment,
                "metadata": asdict(snapshot.metadata),
                "report": None if snapshot.report is None else asdict(snapshot.report),
            },
        }
        return QueuedSnapshot(frame=snapshot.frame, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.frame > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.frame
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)


app = FastAPI(title="Crowd Evacuation Simulation")
controller = SimulationController(SimulationConfig())


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    return JSONResponse(controller.status())


@app.get("/api/report")
async def report() -> JSONResponse:
    result = controller.world.report
    if result is None:
        return JSONResponse({"evacuated": False, "report": None})
    return JSONResponse({"evacuated": True, "report": asdict(result)})


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    controller.running = True
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    controller.running = False
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation(payload: Dict[str, Any] | None = None) -> JSONResponse:
    try:
        await controller.reset(payload)
    except (ConfigurationError, TypeError) as exc:
        logger.warning("rejected reset: %s", exc)
        return JSONResponse({"error": str(exc)}, status_code=422)
    return JSONResponse({"running": controller.running, "frame": controller.frame, "params": asdict(controller.world.params)})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    await controller._broadcast_snapshot()
    try:
        while True:
            text = await websocket.receive_text()
            try:
                message = json.loads(text)
            except ValueError:
                logger.warning("ignoring non-JSON websocket message: %.80s", text)
                continue
            if isinstance(message, dict) and message.get("type") == "ack":
                await controller.acknowledge(int(message.get("frame", -1)))
    except WebSocketDisconnect:
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)


__all__ = ["app", "controller"]
