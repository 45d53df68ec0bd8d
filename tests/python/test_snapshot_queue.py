import asyncio
import json

import pytest

from cat_arena.app.server import SimulationController
from cat_arena.sim.core.config import SimulationConfig


class _RecordingSocket:
    def __init__(self):
        self.sent: list[str] = []

    async def send_text(self, text: str) -> None:
        self.sent.append(text)


def test_snapshot_queue_ack_cleanup() -> None:
    controller = SimulationController(SimulationConfig(seed=1))

    async def exercise() -> None:
        await controller.advance()
        await controller.advance()
        async with controller._queue_lock:
            queued_ticks = [item.tick for item in controller._snapshot_queue]
        assert queued_ticks == [1, 2]
        await controller.acknowledge(1)
        async with controller._queue_lock:
            remaining_ticks = [item.tick for item in controller._snapshot_queue]
        assert remaining_ticks == [2]

    asyncio.run(exercise())


def test_broadcast_interval_skips_ticks() -> None:
    controller = SimulationController(SimulationConfig(seed=1), broadcast_interval=3)

    async def exercise() -> None:
        for _ in range(6):
            await controller.advance()
        assert controller.tick == 6
        assert [item.tick for item in controller._snapshot_queue] == [3, 6]

    asyncio.run(exercise())


def test_pending_snapshots_are_sent_once_per_client() -> None:
    controller = SimulationController(SimulationConfig(seed=2))
    client = _RecordingSocket()
    controller.clients.add(client)  # type: ignore[arg-type]
    controller._client_last_sent[client] = -1  # type: ignore[index]

    async def exercise() -> None:
        await controller.advance()
        await controller.advance()

    asyncio.run(exercise())

    messages = [json.loads(text) for text in client.sent]
    assert [message["tick"] for message in messages] == [1, 2]
    assert messages[0]["type"] == "snapshot"
    assert len(messages[0]["payload"]["agents"]) == 50


def test_reset_clears_queue_and_rewinds_world() -> None:
    controller = SimulationController(SimulationConfig(seed=4))

    async def exercise() -> None:
        initial = await controller.current_payload()
        await controller.advance()
        await controller.reset()
        assert controller.tick == 0
        assert [item.tick for item in controller._snapshot_queue] == [0]
        assert await controller.current_payload() == initial

    asyncio.run(exercise())


def test_tick_interval_follows_period_and_speed() -> None:
    controller = SimulationController(SimulationConfig(tick_period_ms=500))
    assert controller.tick_interval == 0.5
    controller.speed_multiplier = 2.0
    assert controller.tick_interval == 0.25


class _ConnectingSocket(_RecordingSocket):
    """Lets another client join while its own send is in flight."""

    def __init__(self, controller: SimulationController, newcomer: _RecordingSocket):
        super().__init__()
        self._controller = controller
        self._newcomer = newcomer

    async def send_text(self, text: str) -> None:
        await asyncio.sleep(0)
        if self._newcomer not in self._controller.clients:
            self._controller.clients.add(self._newcomer)  # type: ignore[arg-type]
            self._controller._client_last_sent[self._newcomer] = -1  # type: ignore[index]
        await super().send_text(text)


def test_client_joining_mid_broadcast_does_not_break_the_tick() -> None:
    controller = SimulationController(SimulationConfig(seed=6))
    newcomer = _RecordingSocket()
    joiner = _ConnectingSocket(controller, newcomer)
    controller.clients.add(joiner)  # type: ignore[arg-type]
    controller._client_last_sent[joiner] = -1  # type: ignore[index]

    async def exercise() -> None:
        await controller.advance()
        await controller.advance()

    asyncio.run(exercise())

    assert controller.tick == 2
    assert [json.loads(text)["tick"] for text in joiner.sent] == [1, 2]
    # The newcomer catches up from the queue on the next broadcast.
    assert [json.loads(text)["tick"] for text in newcomer.sent] == [1, 2]


def test_loop_survives_a_failing_tick() -> None:
    controller = SimulationController(SimulationConfig(seed=6, tick_period_ms=1))
    calls = 0

    async def flaky_advance() -> None:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("broadcast failed")

    controller.advance = flaky_advance  # type: ignore[method-assign]

    async def exercise() -> None:
        controller.running = True
        task = asyncio.create_task(controller._loop())
        while calls < 3:
            await asyncio.sleep(0.005)
        assert not task.done()
        task.cancel()

    asyncio.run(exercise())
    assert calls >= 3


def test_queue_stays_bounded_without_clients() -> None:
    controller = SimulationController(SimulationConfig(seed=1, population=5, agent_size=5.0), queue_limit=16)

    async def exercise() -> None:
        for _ in range(200):
            await controller.advance()

    asyncio.run(exercise())

    assert len(controller._snapshot_queue) == 16
    assert controller._snapshot_queue[-1].tick == 200


def test_queue_stays_bounded_when_clients_never_ack() -> None:
    controller = SimulationController(SimulationConfig(seed=1, population=5, agent_size=5.0), queue_limit=8)
    client = _RecordingSocket()
    controller.clients.add(client)  # type: ignore[arg-type]
    controller._client_last_sent[client] = -1  # type: ignore[index]

    async def exercise() -> None:
        for _ in range(50):
            await controller.advance()

    asyncio.run(exercise())

    assert len(controller._snapshot_queue) == 8
    assert len(client.sent) == 50


def test_speed_request_validates_and_clamps() -> None:
    from pydantic import ValidationError

    from cat_arena.app import server

    with pytest.raises(ValidationError):
        server.SpeedRequest(multiplier="fast")

    response = asyncio.run(server.set_speed(server.SpeedRequest(multiplier=9.0)))
    assert json.loads(response.body) == {"multiplier": 5.0}
    assert server.controller.speed_multiplier == 5.0
    asyncio.run(server.set_speed(server.SpeedRequest()))
    assert server.controller.speed_multiplier == 1.0
