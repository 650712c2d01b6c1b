"""Event bus for tracking notifications.

The tracking core never talks to a UI directly.  It publishes events on an
:class:`EventBus` and whoever cares (a dashboard, a toast sink, a logger)
subscribes.  Hooks can be sync or async.

Usage::

    from bolta.core.events import EventBus, Event, STEPS_CHANGED

    bus = EventBus()
    bus.on(STEPS_CHANGED, lambda e: print(e.payload["record"]["steps"]))
    bus.emit_sync(Event(name=STEPS_CHANGED, payload={"record": {...}}, source="session"))
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from time import time
from typing import Any

from loguru import logger

STEPS_CHANGED = "steps.changed"
MILESTONE = "steps.milestone"
TRACKING_ERROR = "tracking.error"
TRACKING_STATE = "tracking.state"
DAY_ROLLOVER = "day.rollover"

# payload["kind"] of a MILESTONE event
COIN_EARNED = "coin_earned"
GOAL_REACHED = "goal_reached"

Hook = Callable[["Event"], None] | Callable[["Event"], Awaitable[None]]

_ALL = "*"


@dataclass(frozen=True)
class Event:
    """One notification: a dotted name, a JSON-friendly payload and its origin."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time)
    source: str = ""


class EventBus:
    """Pub/sub for tracking events.

    Hooks run in registration order, named hooks before wildcard ones.  A
    hook that raises is logged and skipped; delivery to the others goes on
    and the publisher never sees the error.

    Async hooks need an event loop.  ``emit_sync`` uses the loop running in
    the calling thread, or else the loop given to :meth:`set_loop`, which
    lets a sensor thread reach async subscribers.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Hook]] = {}
        self._pending: set[asyncio.Task] = set()
        self._loop: asyncio.AbstractEventLoop | None = None

    def set_loop(self, loop: asyncio.AbstractEventLoop | None) -> None:
        """Loop that runs async hooks for events emitted from other threads."""
        self._loop = loop

    def on(self, event_name: str, hook: Hook) -> None:
        self._subscribers.setdefault(event_name, []).append(hook)

    def on_all(self, hook: Hook) -> None:
        """Subscribe *hook* to every event name."""
        self.on(_ALL, hook)

    def off(self, event_name: str, hook: Hook) -> None:
        """Remove *hook* from *event_name*; unknown hooks are ignored."""
        hooks = self._subscribers.get(event_name, [])
        if hook in hooks:
            hooks.remove(hook)

    def hook_count(self, event_name: str) -> int:
        return len(self._targets(event_name))

    def _targets(self, event_name: str) -> list[Hook]:
        return [*self._subscribers.get(event_name, ()), *self._subscribers.get(_ALL, ())]

    def _deliver(self, hook: Hook, event: Event) -> Any:
        try:
            return hook(event)
        except Exception as exc:
            logger.warning(f"Event hook failed for {event.name}: {exc}")
            return None

    async def emit(self, event: Event) -> None:
        """Deliver *event*, awaiting async hooks one after another."""
        for hook in self._targets(event.name):
            result = self._deliver(hook, event)
            if inspect.isawaitable(result):
                try:
                    await result
                except Exception as exc:
                    logger.warning(f"Event hook failed for {event.name}: {exc}")

    def emit_sync(self, event: Event) -> None:
        """Deliver *event* without awaiting (sensor callback path).

        Sync hooks run inline.  Async hooks become tasks on the running
        loop of this thread, or are handed to the bound loop when called
        from another thread.  With neither they are skipped.
        """
        try:
            current: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            current = None
        loop = current or self._bound_loop()

        for hook in self._targets(event.name):
            if loop is None and inspect.iscoroutinefunction(hook):
                logger.debug(f"Skipping async hook {hook!r} for {event.name}: no event loop")
                continue
            result = self._deliver(hook, event)
            if not inspect.isawaitable(result):
                continue
            if loop is None:
                logger.debug(f"Discarding awaitable from hook {hook!r} for {event.name}: no event loop")
                if inspect.iscoroutine(result):
                    result.close()
                continue
            waiter = self._await_hook(result, event.name)
            if loop is current:
                task = loop.create_task(waiter)
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)
            else:
                asyncio.run_coroutine_threadsafe(waiter, loop)

    def _bound_loop(self) -> asyncio.AbstractEventLoop | None:
        loop = self._loop
        if loop is None or loop.is_closed() or not loop.is_running():
            return None
        return loop

    @staticmethod
    async def _await_hook(awaitable: Awaitable[None], event_name: str) -> None:
        try:
            await awaitable
        except Exception as exc:
            logger.warning(f"Event hook failed for {event_name}: {exc}")
