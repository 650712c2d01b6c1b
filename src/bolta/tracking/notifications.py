"""Milestone notifications.

Bridges ``steps.milestone`` events on the bus to a user-facing sink
(toast, push notification, terminal).  The tracking core itself only
emits events.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from loguru import logger

from bolta.core.events import COIN_EARNED, GOAL_REACHED, MILESTONE, Event, EventBus


@runtime_checkable
class NotificationSink(Protocol):
    def notify(self, title: str, message: str) -> None: ...


@dataclass
class Notification:
    title: str
    message: str


class LogNotificationSink:
    """Sink that writes notifications to the log."""

    def notify(self, title: str, message: str) -> None:
        logger.info(f"{title} {message}")


class CollectingSink:
    """Sink that keeps notifications in memory (CLI summaries, tests)."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def notify(self, title: str, message: str) -> None:
        self.notifications.append(Notification(title=title, message=message))


def format_milestone(payload: dict) -> Notification | None:
    """Render a milestone payload as a notification, or None for unknown kinds."""
    kind = payload.get("kind")
    if kind == COIN_EARNED:
        earned = int(payload.get("earned", 1))
        plural = "s" if earned > 1 else ""
        return Notification(
            title="Coin Earned!",
            message=f"You've earned {earned} Boltacoin{plural}! Balance: {payload.get('balance', 0)}",
        )
    if kind == GOAL_REACHED:
        return Notification(
            title="Goal Achieved!",
            message=f"Daily goal of {payload.get('goal', 0):,} steps completed!",
        )
    return None


class MilestoneNotifier:
    """Subscribes to milestone events and forwards them to a sink."""

    def __init__(self, sink: NotificationSink):
        self.sink = sink
        self._bus: EventBus | None = None

    def attach(self, bus: EventBus) -> None:
        bus.on(MILESTONE, self.handle)
        self._bus = bus

    def detach(self) -> None:
        if self._bus is not None:
            self._bus.off(MILESTONE, self.handle)
            self._bus = None

    def handle(self, event: Event) -> None:
        note = format_milestone(event.payload)
        if note is None:
            logger.debug(f"Unhandled milestone kind: {event.payload.get('kind')!r}")
            return
        self.sink.notify(note.title, note.message)
