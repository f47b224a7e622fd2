from __future__ import annotations

import asyncio
import json

import pytest

from services.broker.observer_registry import ObserverRegistry, ObserverSession


@pytest.mark.asyncio
async def test_broadcast_reaches_every_registered_observer() -> None:
    registry = ObserverRegistry()
    first = registry.register("a")
    second = registry.register("b")

    delivered = registry.broadcast(json.dumps({"type": "prompt"}))

    assert delivered == 2
    assert await first.receive(timeout=0.1) == '{"type": "prompt"}'
    assert await second.receive(timeout=0.1) == '{"type": "prompt"}'


@pytest.mark.asyncio
async def test_full_queue_drops_only_for_that_observer() -> None:
    registry = ObserverRegistry(queue_size=2)
    stuck = registry.register("stuck")
    healthy = registry.register("healthy")

    for index in range(5):
        registry.broadcast(f"m{index}")
        # The healthy observer keeps draining; the stuck one never does.
        assert await healthy.receive(timeout=0.1) == f"m{index}"

    assert stuck.queue.qsize() == 2
    assert await stuck.receive(timeout=0.1) == "m0"
    assert await stuck.receive(timeout=0.1) == "m1"


def test_broadcast_reports_drops_on_saturated_queue() -> None:
    registry = ObserverRegistry(queue_size=1)
    registry.register("slow")

    assert registry.broadcast("first") == 1
    assert registry.broadcast("second") == 0


@pytest.mark.asyncio
async def test_unregister_closes_the_queue_and_ends_delivery() -> None:
    registry = ObserverRegistry()
    session = registry.register("tab")

    registry.unregister("tab")

    assert "tab" not in registry
    assert len(registry) == 0
    assert await session.receive(timeout=0.1) is None


@pytest.mark.asyncio
async def test_close_on_full_queue_still_wakes_reader() -> None:
    session = ObserverSession("tab", maxsize=1)
    assert session.offer("pending")

    session.close()

    assert await session.receive(timeout=0.1) is None
    assert session.offer("late") is False


@pytest.mark.asyncio
async def test_receive_times_out_when_idle() -> None:
    session = ObserverSession("tab")
    with pytest.raises(asyncio.TimeoutError):
        await session.receive(timeout=0.01)


def test_register_same_identity_replaces_previous_session() -> None:
    registry = ObserverRegistry()
    old = registry.register("tab")
    new = registry.register("tab")

    assert old.closed
    assert not new.closed
    assert len(registry) == 1


def test_close_all_closes_every_session() -> None:
    registry = ObserverRegistry()
    sessions = [registry.register(name) for name in ("a", "b", "c")]

    registry.close_all()

    assert len(registry) == 0
    assert all(session.closed for session in sessions)
