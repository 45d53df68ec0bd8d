from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import dataclass
from typing import Dict, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..sim.core.config import SimulationConfig
from ..sim.core.world import World

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    """Drives ``World.tick`` on the configured cadence and fans snapshots out.

    Ticks, resets and snapshot reads all hold ``_lock``, so a client never
    sees a half-moved population.
    """

    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1, queue_limit: int = 32):
        self.config = config
        self.world = World(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=max(1, queue_limit))
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._broadcast_task: asyncio.Task | None = None

    @property
    def tick(self) -> int:
        return self.world.tick_count

    @property
    def tick_interval(self) -> float:
        return self.config.tick_period_ms / 1000.0 / self.speed_multiplier

    async def start(self) -> None:
        if self._broadcast_task is None:
            self._broadcast_task = asyncio.create_task(self._loop())
        self.running = True
        logger.info("simulation started at %.3fs per tick", self.tick_interval)

    async def stop(self) -> None:
        self.running = False
        logger.info("simulation paused at tick %d", self.tick)

    async def reset(self) -> None:
        async with self._lock:
            self.world.reset()
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def advance(self) -> None:
        async with self._lock:
            self.world.tick()
        if self.tick % self.broadcast_interval == 0:
            await self._broadcast_snapshot()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            if not self.running:
                continue
            try:
                await self.advance()
            except Exception:
                logger.exception("tick %d failed", self.tick)

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    async def current_payload(self) -> dict:
        async with self._lock:
            return self.world.snapshot().to_payload()

    async def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot_payload = await self.current_payload()
        payload = {
            "type": "snapshot",
            "tick": snapshot_payload["tick"],
            "payload": snapshot_payload,
        }
        return QueuedSnapshot(tick=snapshot_payload["tick"], payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = await self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in list(self.clients):
            if client not in self.clients:
                continue
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)
        if stale:
            logger.info("dropped %d disconnected clients", len(stale))


app = FastAPI(title="Cat Arena Simulation")
controller = SimulationController(SimulationConfig())


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    payload = await controller.current_payload()
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "population": len(payload["agents"]),
            "tick_period_ms": controller.config.tick_period_ms,
            "speed_multiplier": controller.speed_multiplier,
            "metrics": payload["metrics"],
        }
    )


@app.get("/api/snapshot")
async def snapshot() -> JSONResponse:
    return JSONResponse(await controller.current_payload())


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


class SpeedRequest(BaseModel):
    multiplier: float = 1.0


@app.post("/api/control/speed")
async def set_speed(request: SpeedRequest) -> JSONResponse:
    speed = request.multiplier
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    controller._client_last_sent[websocket] = -1
    await controller._send_pending_snapshots(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if isinstance(payload, dict) and payload.get("type") == "ack":
                tick = payload.get("tick")
                if isinstance(tick, int):
                    await controller.acknowledge(tick)
    except WebSocketDisconnect:
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)


__all__ = ["app", "controller"]
