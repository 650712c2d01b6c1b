"""TrackingSession: the step-tracking state machine.

Owns the detection pipeline, the daily store and the sensor, and is the
only thing that mutates the daily record.  Every entry point (sensor
samples, manual entry, external sync, reset, rollover checks) takes the
same lock, so exactly one mutation runs at a time.  Events are published
after the lock is released.

Background work (scheduled rollover checks, external-sync polls) is
submitted as :class:`SessionCommand` messages and executed one at a time
by a consumer task, the same way the persistence writer drains save
requests.
"""

from __future__ import annotations

import asyncio
import math
import threading
from typing import Any

from loguru import logger

from bolta.core.events import (
    COIN_EARNED,
    DAY_ROLLOVER,
    GOAL_REACHED,
    MILESTONE,
    STEPS_CHANGED,
    TRACKING_ERROR,
    TRACKING_STATE,
    Event,
    EventBus,
)
from bolta.core.exceptions import InvalidManualInputError, PermissionDeniedError, SensorUnavailableError

from .commands import CommandKind, SessionCommand
from .daily_store import DailyStateStore
from .models import (
    DaySummary,
    MotionSample,
    SessionState,
    SessionStatus,
    StepChange,
    StepSource,
    validate_transition,
)
from .pipeline import DetectionSettings, StepDetectionPipeline
from .sources import ExternalStepSource, MotionSource, PermissionProvider
from .writer import PersistenceWriter

_SENTINEL = object()
_EVENT_SOURCE = "tracking"


class TrackingSession:
    """Drives detection and commits accepted steps to the daily store.

    Args:
        store: The daily record owner. Should already be loaded.
        sensor: Accelerometer source; optional for manual-only use.
        permissions: Answers the motion permission prompt.  Without one,
            permission is treated as granted.
        bus: Event bus for state, step and milestone notifications.
        external_source: Optional system that reports daily totals.
        settings: Detection pipeline settings.
        max_pending_commands: Capacity of the background command queue.
    """

    def __init__(
        self,
        store: DailyStateStore,
        *,
        sensor: MotionSource | None = None,
        permissions: PermissionProvider | None = None,
        bus: EventBus | None = None,
        external_source: ExternalStepSource | None = None,
        settings: DetectionSettings | None = None,
        max_pending_commands: int = 16,
    ):
        self.store = store
        self.sensor = sensor
        self.permissions = permissions
        self.bus = bus or EventBus()
        self.external_source = external_source
        self.pipeline = StepDetectionPipeline(settings)

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._error_reason: str | None = None
        self._permission_granted = False

        self._max_pending = max_pending_commands
        self._commands: asyncio.Queue[Any] | None = None
        self._consumer_task: asyncio.Task | None = None
        self._writer: PersistenceWriter | None = None

    # ── State ──────────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def error_reason(self) -> str | None:
        return self._error_reason

    def status(self) -> SessionStatus:
        with self._lock:
            return SessionStatus(
                state=self._state,
                record=self.store.record,
                error_reason=self._error_reason,
                permission_granted=self._permission_granted,
                steps_detected=self.pipeline.steps_accepted,
                peaks_rejected=dict(self.pipeline.rejections),
            )

    def _transition_locked(self, target: SessionState, reason: str | None = None) -> Event | None:
        if self._state == target and target != SessionState.ERRORED:
            return None
        validate_transition(self._state, target)
        previous = self._state
        self._state = target
        self._error_reason = reason if target == SessionState.ERRORED else None
        logger.info(f"Tracking session {previous.value} -> {target.value}" + (f" ({reason})" if reason else ""))
        return Event(
            name=TRACKING_STATE,
            payload={"previous": previous.value, "state": target.value, "reason": reason},
            source=_EVENT_SOURCE,
        )

    def _emit(self, *events: Event | None) -> None:
        for event in events:
            if event is not None:
                self.bus.emit_sync(event)

    # ── Lifecycle commands ─────────────────────────────────────────

    async def request_permission(self) -> bool:
        """Ask for motion access. Returns the answer and records it."""
        if self.permissions is None:
            self._permission_granted = True
            return True
        granted = bool(await self.permissions.request())
        self._permission_granted = granted
        logger.debug(f"Motion permission {'granted' if granted else 'denied'}")
        return granted

    async def start(self) -> None:
        """Begin sensor tracking.

        A ``stop()`` while the permission prompt is open cancels the start:
        the session stays ``stopped`` and the sensor is never started.

        Raises:
            PermissionDeniedError: the user refused motion access.  The
                session is left ``errored`` with reason "permission denied".
            SensorUnavailableError: no usable sensor.  The session is left
                ``errored``.
        """
        self.bus.set_loop(asyncio.get_running_loop())
        with self._lock:
            if self._state == SessionState.ACTIVE:
                return
            needs_prompt = not self._permission_granted
            if needs_prompt:
                event = self._transition_locked(SessionState.REQUESTING_PERMISSION)
        if needs_prompt:
            self._emit(event)
            granted = await self.request_permission()
            if self._start_cancelled(needs_prompt):
                return
            if not granted:
                self.fail("permission denied")
                raise PermissionDeniedError("Motion sensor permission denied")

        if self.sensor is None or not self.sensor.is_available():
            self.fail("sensor unavailable")
            raise SensorUnavailableError("No motion sensor available")

        with self._lock:
            if self._start_cancelled(needs_prompt):
                return
            self.pipeline.reset()
            event = self._transition_locked(SessionState.ACTIVE)
        self._emit(event)

        try:
            self.sensor.start(self.on_sample, self.fail)
        except SensorUnavailableError as e:
            self.fail(str(e) or "sensor unavailable")
            raise

    def _start_cancelled(self, prompted: bool) -> bool:
        with self._lock:
            cancelled = prompted and self._state != SessionState.REQUESTING_PERMISSION
        if cancelled:
            logger.info(f"Start abandoned: session became {self._state.value} during the permission prompt")
        return cancelled

    def stop(self) -> None:
        """Stop tracking. Samples arriving afterwards are ignored.

        Also cancels a ``start()`` that is still waiting on the permission
        prompt.
        """
        with self._lock:
            if self._state not in (SessionState.ACTIVE, SessionState.REQUESTING_PERMISSION):
                return
            was_active = self._state == SessionState.ACTIVE
            event = self._transition_locked(SessionState.STOPPED)
            self.pipeline.reset()
        if was_active and self.sensor is not None:
            self.sensor.stop()
        self._emit(event)

    def fail(self, reason: str) -> None:
        """Move to ``errored`` (fatal sensor error, permission denied)."""
        with self._lock:
            was_active = self._state == SessionState.ACTIVE
            event = self._transition_locked(SessionState.ERRORED, reason)
            self.pipeline.reset()
        if was_active and self.sensor is not None:
            self.sensor.stop()
        self._emit(
            event,
            Event(name=TRACKING_ERROR, payload={"reason": reason}, source=_EVENT_SOURCE),
        )

    # ── Step intake ────────────────────────────────────────────────

    def on_sample(self, x: float, y: float, z: float, timestamp: int) -> None:
        """Sensor callback. Non-blocking; safe to call from the sensor thread."""
        if not all(math.isfinite(v) for v in (x, y, z, timestamp)):
            logger.debug(f"Dropping non-finite sample ({x}, {y}, {z}) at {timestamp}")
            return
        change: StepChange | None = None
        with self._lock:
            if self._state != SessionState.ACTIVE:
                return
            result = self.pipeline.process(MotionSample(x=x, y=y, z=z, timestamp=int(timestamp)))
            if result is not None and result.accepted:
                change = self.store.commit_steps(1, StepSource.SENSOR)
        if change is not None:
            self._publish(change)

    def add_steps(self, count: int) -> StepChange:
        """Record manually entered steps.

        Raises:
            InvalidManualInputError: *count* is not a positive integer.
        """
        if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
            raise InvalidManualInputError(f"Manual step count must be a positive integer, got {count!r}")
        with self._lock:
            change = self.store.commit_steps(count, StepSource.MANUAL)
        logger.info(f"Added {count} manual steps (total {change.current.steps})")
        self._publish(change)
        return change

    def reset_daily(self) -> StepChange:
        with self._lock:
            change = self.store.reset(StepSource.MANUAL)
        self._publish(change)
        return change

    def sync_external(self, total: int) -> StepChange | None:
        """Adopt a daily total reported by an external system."""
        with self._lock:
            change = self.store.sync_total(total, StepSource.EXTERNAL_SYNC)
        if change is not None:
            self._publish(change)
        return change

    def check_rollover(self) -> DaySummary | None:
        with self._lock:
            summary = self.store.check_rollover()
        if summary is not None:
            self._emit(self._rollover_event(summary))
        return summary

    async def poll_external(self) -> StepChange | None:
        """Fetch today's total from the external source and sync it."""
        if self.external_source is None:
            return None
        today = self.store.record.date
        total = await self.external_source.fetch_daily_steps(today)
        if total is None:
            logger.debug(f"External source '{self.external_source.name}' has no data for {today}")
            return None
        return self.sync_external(total)

    # ── Publishing ─────────────────────────────────────────────────

    def _rollover_event(self, summary: DaySummary) -> Event:
        return Event(name=DAY_ROLLOVER, payload={"summary": summary.to_dict()}, source=_EVENT_SOURCE)

    def _publish(self, change: StepChange) -> None:
        events: list[Event] = []
        if change.rolled_over is not None:
            events.append(self._rollover_event(change.rolled_over))

        current = change.current
        if change.current != change.previous:
            events.append(
                Event(
                    name=STEPS_CHANGED,
                    payload={"record": current.to_dict(), "added": change.steps_added},
                    source=_EVENT_SOURCE,
                )
            )
        if change.coins_earned > 0:
            events.append(
                Event(
                    name=MILESTONE,
                    payload={
                        "kind": COIN_EARNED,
                        "earned": change.coins_earned,
                        "balance": current.coins,
                        "steps": current.steps,
                    },
                    source=_EVENT_SOURCE,
                )
            )
        if change.goal_reached:
            events.append(
                Event(
                    name=MILESTONE,
                    payload={
                        "kind": GOAL_REACHED,
                        "goal": self.store.rewards.daily_goal,
                        "steps": current.steps,
                    },
                    source=_EVENT_SOURCE,
                )
            )
        self._emit(*events)

    # ── Background processing ──────────────────────────────────────

    def start_background(self) -> None:
        """Start the persistence writer and the command consumer.

        Must be called from a running event loop.
        """
        if self._consumer_task and not self._consumer_task.done():
            logger.warning("TrackingSession background already running")
            return
        self.bus.set_loop(asyncio.get_running_loop())
        self._writer = PersistenceWriter(self.store)
        self._writer.start()
        self._commands = asyncio.Queue(maxsize=self._max_pending)
        self._consumer_task = asyncio.create_task(self._consume_loop(), name="bolta-session-commands")
        logger.info("TrackingSession background started")

    async def submit(self, command: SessionCommand) -> None:
        """Queue a command for the consumer. Dropped with a warning when full."""
        if self._commands is None:
            logger.warning(f"Session not running in background, dropping {command.kind.value} command")
            return
        try:
            self._commands.put_nowait(command)
            logger.debug(f"Queued command {command.id} ({command.kind.value})")
        except asyncio.QueueFull:
            logger.warning(f"Command queue full, dropped {command.kind.value} command {command.id}")

    async def stop_background(self) -> None:
        """Drain queued commands, then stop the consumer and do a final save."""
        if self._consumer_task is not None and self._commands is not None:
            await self._commands.put(_SENTINEL)
            await self._consumer_task
        self._consumer_task = None
        self._commands = None
        if self._writer is not None:
            await self._writer.stop()
            self.store.set_save_hook(None)
            self._writer = None
        logger.info("TrackingSession background stopped")

    async def _consume_loop(self) -> None:
        assert self._commands is not None
        while True:
            item = await self._commands.get()
            if item is _SENTINEL:
                self._commands.task_done()
                break
            try:
                await self._process_command(item)
            except Exception:
                logger.exception(f"Unhandled error processing command {item.id}")
            finally:
                self._commands.task_done()

    async def _process_command(self, command: SessionCommand) -> None:
        logger.debug(f"Processing command {command.id} ({command.kind.value}, job={command.job_id or '-'})")
        if command.kind == CommandKind.ROLLOVER_CHECK:
            self.check_rollover()
        elif command.kind == CommandKind.EXTERNAL_SYNC:
            await self.poll_external()
        elif command.kind == CommandKind.FLUSH:
            await self.store.flush()
