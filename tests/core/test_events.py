"""Tests for bolta.core.events: EventBus and Event."""

from __future__ import annotations

import asyncio
from dataclasses import FrozenInstanceError

import pytest

from bolta.core.events import MILESTONE, STEPS_CHANGED, Event, EventBus

pytestmark = pytest.mark.smoke


async def test_on_off_emit_lifecycle():
    bus = EventBus()
    received: list[Event] = []

    bus.on(STEPS_CHANGED, received.append)
    evt = Event(name=STEPS_CHANGED, payload={"record": {"steps": 1}}, source="test")
    await bus.emit(evt)
    assert received == [evt]

    bus.off(STEPS_CHANGED, received.append)
    await bus.emit(evt)
    assert received == [evt]


def test_off_unknown_hook_is_noop():
    bus = EventBus()
    bus.off(STEPS_CHANGED, print)


async def test_wildcard_hooks_receive_all_events():
    bus = EventBus()
    names: list[str] = []
    bus.on_all(lambda e: names.append(e.name))

    await bus.emit(Event(name=STEPS_CHANGED))
    await bus.emit(Event(name=MILESTONE))

    assert names == [STEPS_CHANGED, MILESTONE]


def test_hook_count_includes_wildcards():
    bus = EventBus()
    bus.on(STEPS_CHANGED, lambda e: None)
    bus.on_all(lambda e: None)
    assert bus.hook_count(STEPS_CHANGED) == 2
    assert bus.hook_count(MILESTONE) == 1


def test_emit_sync_runs_sync_hooks_inline():
    bus = EventBus()
    received: list[Event] = []
    bus.on(STEPS_CHANGED, received.append)

    evt = Event(name=STEPS_CHANGED, source="test")
    bus.emit_sync(evt)

    assert received == [evt]


def test_emit_sync_skips_async_hooks_without_loop():
    bus = EventBus()
    received: list[Event] = []

    async def async_hook(event: Event) -> None:
        received.append(event)

    bus.on(STEPS_CHANGED, async_hook)
    bus.emit_sync(Event(name=STEPS_CHANGED))
    assert received == []


async def test_emit_sync_schedules_async_hooks_on_running_loop():
    bus = EventBus()
    received: list[Event] = []

    async def async_hook(event: Event) -> None:
        received.append(event)

    bus.on(MILESTONE, async_hook)
    bus.emit_sync(Event(name=MILESTONE))
    assert received == []

    await asyncio.sleep(0)
    assert len(received) == 1


async def test_emit_sync_from_worker_thread_uses_bound_loop():
    bus = EventBus()
    bus.set_loop(asyncio.get_running_loop())
    delivered = asyncio.Event()
    received: list[Event] = []

    async def async_hook(event: Event) -> None:
        received.append(event)
        delivered.set()

    bus.on(STEPS_CHANGED, async_hook)
    evt = Event(name=STEPS_CHANGED, source="sensor-thread")
    await asyncio.to_thread(bus.emit_sync, evt)

    await asyncio.wait_for(delivered.wait(), timeout=1)
    assert received == [evt]


async def test_emit_sync_from_worker_thread_without_bound_loop_skips_async_hooks():
    bus = EventBus()
    received: list[Event] = []

    async def async_hook(event: Event) -> None:
        received.append(event)

    bus.on(STEPS_CHANGED, async_hook)
    await asyncio.to_thread(bus.emit_sync, Event(name=STEPS_CHANGED))
    await asyncio.sleep(0)
    assert received == []


def test_sync_hook_returning_coroutine_without_loop_is_contained():
    bus = EventBus()
    received: list[str] = []

    async def notify(event: Event) -> None:
        received.append("async")

    bus.on(STEPS_CHANGED, lambda e: notify(e))
    bus.on(STEPS_CHANGED, lambda e: received.append("sync"))

    bus.emit_sync(Event(name=STEPS_CHANGED))
    assert received == ["sync"]


async def test_async_hooks_awaited():
    bus = EventBus()
    received: list[Event] = []

    async def async_hook(event: Event) -> None:
        await asyncio.sleep(0)
        received.append(event)

    bus.on(MILESTONE, async_hook)
    await bus.emit(Event(name=MILESTONE))
    assert len(received) == 1


async def test_failing_hook_does_not_block_others():
    bus = EventBus()
    received: list[str] = []

    def bad_hook(event: Event) -> None:
        raise RuntimeError("boom")

    bus.on(STEPS_CHANGED, bad_hook)
    bus.on(STEPS_CHANGED, lambda e: received.append("ok"))

    await bus.emit(Event(name=STEPS_CHANGED))
    bus.emit_sync(Event(name=STEPS_CHANGED))
    assert received == ["ok", "ok"]


def test_event_is_frozen():
    evt = Event(name=STEPS_CHANGED, payload={"x": 1}, source="test")
    with pytest.raises(FrozenInstanceError):
        evt.name = "changed"  # type: ignore[misc]
