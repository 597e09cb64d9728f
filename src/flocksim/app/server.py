from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from time import perf_counter
from typing import Any, Dict, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pygame.math import Vector2

from ..sim.core.config import AppConfig, update_config as merge_config
from ..sim.core.world import DEFAULT_OBSTACLE_RADIUS, World
from ..sim.types.metrics import SimulationStats

logger = logging.getLogger(__name__)

_FRAME_RATE_SMOOTHING = 0.1
# Oldest unacknowledged snapshots are dropped beyond this many.
MAX_QUEUED_SNAPSHOTS = 32


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    def __init__(self, config: AppConfig):
        self.config = config
        self.world = World(config.world_width, config.world_height, config.simulation)
        self.broadcast_interval = max(1, config.broadcast_interval)
        self.stats_interval = max(1, config.stats_interval)
        self.running = False
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=MAX_QUEUED_SNAPSHOTS)
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None
        self._frame_rate: float | None = None
        self._last_frame_at: float | None = None
        self._stats: SimulationStats = self.world.stats()

    @property
    def tick(self) -> int:
        return self.world.tick

    @property
    def stats(self) -> SimulationStats:
        return self._stats

    async def start(self) -> None:
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self._loop())
        self.running = True
        logger.info("Simulation started at tick %d", self.tick)

    async def stop(self) -> None:
        self.running = False
        self._last_frame_at = None
        logger.info("Simulation paused at tick %d", self.tick)

    async def reset(self) -> None:
        async with self._lock:
            self.world.reset()
            self._stats = self.world.stats(self._frame_rate)
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        logger.info("Simulation reset")
        await self._broadcast_snapshot()

    async def update_config(self, changes: Dict[str, Any]) -> None:
        async with self._lock:
            config = merge_config(self.world.config, changes)
            self.world.set_config(config)
            self.config.simulation = self.world.config
            self._stats = self.world.stats(self._frame_rate)
        logger.info("Configuration updated: %s", ", ".join(sorted(changes)))

    async def add_obstacle(self, x: float, y: float, radius: float = DEFAULT_OBSTACLE_RADIUS) -> None:
        async with self._lock:
            self.world.add_obstacle(Vector2(x, y), radius)

    async def clear_obstacles(self) -> None:
        async with self._lock:
            self.world.clear_obstacles()

    async def advance(self) -> None:
        async with self._lock:
            self.world.step()
            self._measure_frame_rate()
            if self.tick % self.stats_interval == 0:
                self._stats = self.world.stats(self._frame_rate)
        if self.tick % self.broadcast_interval == 0:
            await self._broadcast_snapshot()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(1.0 / (self.config.tick_rate * self.speed_multiplier))
            if not self.running:
                continue
            await self.advance()

    def _measure_frame_rate(self) -> None:
        now = perf_counter()
        if self._last_frame_at is not None:
            elapsed = now - self._last_frame_at
            if elapsed > 0.0:
                instant = 1.0 / elapsed
                if self._frame_rate is None:
                    self._frame_rate = instant
                else:
                    self._frame_rate += (instant - self._frame_rate) * _FRAME_RATE_SMOOTHING
        self._last_frame_at = now

    async def register_client(self, client: WebSocket) -> None:
        self.clients.add(client)
        self._client_last_sent[client] = -1
        logger.debug("Websocket client connected (%d total)", len(self.clients))
        await self._send_pending_snapshots(client)

    def unregister_client(self, client: WebSocket) -> None:
        self.clients.discard(client)
        self._client_last_sent.pop(client, None)
        if not self.clients:
            self._snapshot_queue.clear()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.world.snapshot()
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "world": asdict(snapshot.world),
                "stats": asdict(self._stats),
                "agents": [agent.to_payload() for agent in snapshot.agents],
                "obstacles": [obstacle.to_payload() for obstacle in snapshot.obstacles],
                "trails": (
                    {str(agent_id): [[p.x, p.y] for p in trail] for agent_id, trail in snapshot.trails.items()}
                    if self.world.config.show_trails
                    else {}
                ),
            },
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        if not self.clients:
            return
        async with self._lock:
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
            logger.debug("Dropping disconnected client")
            self.unregister_client(client)


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=400)


app = FastAPI(title="Flocking Simulation")
controller = SimulationController(AppConfig())


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "population": controller.world.config.population_size,
            "obstacles": len(controller.world.obstacles()),
            "speed_multiplier": controller.speed_multiplier,
            "stats": asdict(controller.stats),
        }
    )


@app.get("/api/stats")
async def stats() -> JSONResponse:
    return JSONResponse(asdict(controller.stats))


@app.get("/api/config")
async def get_config() -> JSONResponse:
    return JSONResponse(controller.world.config.to_dict())


@app.put("/api/config")
async def put_config(payload: dict) -> JSONResponse:
    try:
        await controller.update_config(payload)
    except (TypeError, ValueError) as exc:
        return _bad_request(str(exc))
    return JSONResponse(controller.world.config.to_dict())


@app.post("/api/obstacles")
async def add_obstacle(payload: dict) -> JSONResponse:
    try:
        x = float(payload["x"])
        y = float(payload["y"])
        radius = float(payload.get("radius", DEFAULT_OBSTACLE_RADIUS))
    except (KeyError, TypeError, ValueError):
        return _bad_request("Obstacle requires numeric 'x' and 'y' (and optional 'radius')")
    await controller.add_obstacle(x, y, radius)
    return JSONResponse({"obstacles": [o.to_payload() for o in controller.world.obstacles()]})


@app.delete("/api/obstacles")
async def clear_obstacles() -> JSONResponse:
    await controller.clear_obstacles()
    return JSONResponse({"obstacles": []})


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    await controller.start()
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    await controller.stop()
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    try:
        speed = float(payload.get("multiplier", 1.0))
    except (TypeError, ValueError):
        return _bad_request("'multiplier' must be a number")
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    await controller.register_client(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if payload.get("type") == "ack":
                tick = payload.get("tick")
                if isinstance(tick, int):
                    await controller.acknowledge(tick)
    except WebSocketDisconnect:
        controller.unregister_client(websocket)


__all__ = ["app", "controller"]
