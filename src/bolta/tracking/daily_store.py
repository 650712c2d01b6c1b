"""DailyStateStore: owner of the persisted per-day step record.

Every mutation (sensor commit, manual entry, external sync, reset, day
rollover) goes through one lock and recomputes the reward fields from the
new cumulative count.  Writes are full-record and last-writer-wins: a
failed save only leaves the store dirty, and the next flush writes the
whole record again.

Coins are a lifetime balance.  A commit adds the coins newly crossed by
the daily count; rollover and explicit reset keep the balance unless
``reset_coins_on_rollover`` is set.
"""

from __future__ import annotations

import asyncio
import json
import threading
from collections.abc import Callable
from datetime import date, datetime, timedelta
from typing import Any

from loguru import logger

from bolta.core.exceptions import PersistenceError
from bolta.core.storage import KeyValueStore

from .models import DaySummary, StepChange, StepRecord, StepSource, WeeklySummary
from .rewards import DEFAULT_REWARDS, RewardSettings, coins_for, compute_rewards

SaveHook = Callable[[], None]
"""Called (under the store lock) whenever the record becomes dirty."""


class DailyStateStore:
    """Loads, mutates and persists the current day's :class:`StepRecord`.

    Args:
        backend: Key-value storage for the record and the day history.
        key: Storage key of the current record.
        history_key: Storage key of the archived day summaries.
        history_days: Maximum number of archived days kept.
        rewards: Reward conversion factors.
        reset_coins_on_rollover: Zero the coin balance at day rollover.
        clock: Source of "now" (injectable for tests).
    """

    def __init__(
        self,
        backend: KeyValueStore,
        *,
        key: str = "daily_state",
        history_key: str = "daily_history",
        history_days: int = 90,
        rewards: RewardSettings = DEFAULT_REWARDS,
        reset_coins_on_rollover: bool = False,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._backend = backend
        self._key = key
        self._history_key = history_key
        self._history_days = history_days
        self._rewards = rewards
        self._reset_coins = reset_coins_on_rollover
        self._clock = clock

        self._lock = threading.RLock()
        self._write_lock = asyncio.Lock()
        self._record = StepRecord.empty(clock())
        self._history: list[DaySummary] = []
        self._dirty = False
        self._history_dirty = False
        self._save_hook: SaveHook | None = None
        self.failed_writes = 0

    # ── Accessors ──────────────────────────────────────────────────

    @property
    def record(self) -> StepRecord:
        """A copy of the current record."""
        with self._lock:
            return self._record.copy()

    @property
    def rewards(self) -> RewardSettings:
        return self._rewards

    @property
    def dirty(self) -> bool:
        with self._lock:
            return self._dirty or self._history_dirty

    def set_save_hook(self, hook: SaveHook | None) -> None:
        self._save_hook = hook

    def history(self, start: date | None = None, end: date | None = None) -> list[DaySummary]:
        """Archived day summaries in the date range (inclusive), oldest first."""
        with self._lock:
            return [
                s
                for s in self._history
                if (start is None or s.date >= start) and (end is None or s.date <= end)
            ]

    def weekly_summary(self, week_start: date) -> WeeklySummary:
        """Aggregate the seven days from *week_start*.

        Archived days in the range are included, and so is today's
        unfinished record when it falls inside the week.
        """
        week_end = week_start + timedelta(days=6)
        with self._lock:
            days = self.history(week_start, week_end)
            if week_start <= self._record.date <= week_end:
                days.append(self._summarize(self._record))
        return WeeklySummary(week_start=week_start, days=days)

    def current_streak(self) -> int:
        """Consecutive goal days ending today, or yesterday if today's goal is still open."""
        with self._lock:
            today = self._summarize(self._record)
            if today.goal_reached:
                return today.streak_day
            if self._history:
                last = self._history[-1]
                if last.goal_reached and last.date == self._record.date - timedelta(days=1):
                    return last.streak_day
            return 0

    # ── Loading ────────────────────────────────────────────────────

    async def load(self) -> StepRecord:
        """Read the persisted record and history, then apply any pending rollover."""
        record = await self._read(self._key, StepRecord.from_dict)
        history = await self._read(self._history_key, _history_from_list) or []

        with self._lock:
            now = self._clock()
            self._record = record or StepRecord.empty(now)
            self._history = history[-self._history_days :]
            self._dirty = False
            self._history_dirty = False
            self._rollover_locked(now)
            logger.info(
                f"Loaded daily state for {self._record.date}: "
                f"{self._record.steps} steps, {self._record.coins} coins"
            )
            return self._record.copy()

    async def _read(self, key: str, parse: Callable[[Any], Any]) -> Any:
        try:
            raw = await self._backend.load(key)
        except PersistenceError as e:
            logger.warning(f"Could not read '{key}': {e}")
            return None
        if raw is None:
            return None
        try:
            return parse(json.loads(raw.decode("utf-8")))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring corrupt stored value for '{key}': {e}")
            return None

    # ── Mutations ──────────────────────────────────────────────────

    def commit_steps(self, count: int, source: StepSource = StepSource.SENSOR) -> StepChange:
        """Add *count* steps to today's total."""
        if count <= 0:
            raise ValueError(f"step count to commit must be positive, got {count}")
        with self._lock:
            now = self._clock()
            rolled = self._rollover_locked(now)
            return self._apply(self._record.steps + count, source, now, rolled)

    def sync_total(self, total: int, source: StepSource = StepSource.EXTERNAL_SYNC) -> StepChange | None:
        """Adopt an externally reported daily total.

        Totals at or below the current count are ignored so an external
        source can never lower today's steps.
        """
        if total < 0:
            raise ValueError(f"external step total cannot be negative, got {total}")
        with self._lock:
            now = self._clock()
            rolled = self._rollover_locked(now)
            if total <= self._record.steps:
                logger.debug(f"Ignoring {source.value} total {total} (current {self._record.steps})")
                if rolled is None:
                    return None
                current = self._record.copy()
                return StepChange(previous=current, current=current.copy(), rolled_over=rolled)
            return self._apply(total, source, now, rolled)

    def reset(self, source: StepSource = StepSource.MANUAL) -> StepChange:
        """Zero today's steps, distance and calories; the coin balance stays."""
        with self._lock:
            now = self._clock()
            rolled = self._rollover_locked(now)
            previous = self._record.copy()
            self._record = StepRecord.empty(now, coins=previous.coins, source=source)
            self._mark_dirty()
            logger.info(f"Daily steps reset ({previous.steps} -> 0)")
            return StepChange(previous=previous, current=self._record.copy(), rolled_over=rolled)

    def check_rollover(self, now: datetime | None = None) -> DaySummary | None:
        """Start a new day if the calendar date moved on.

        Returns the archived summary of the finished day, or None when the
        record is already current.  Calling it again on the same day is a
        no-op.
        """
        with self._lock:
            return self._rollover_locked(now or self._clock())

    def _apply(
        self,
        new_steps: int,
        source: StepSource,
        now: datetime,
        rolled: DaySummary | None = None,
    ) -> StepChange:
        previous = self._record.copy()
        rewards = compute_rewards(new_steps, self._rewards)
        earned = max(0, rewards.coins - coins_for(previous.steps, self._rewards))

        rec = self._record
        rec.steps = new_steps
        rec.distance_km = rewards.distance_km
        rec.calories = rewards.calories
        rec.coins = previous.coins + earned
        rec.last_updated = now
        rec.source = source
        self._mark_dirty()

        goal = self._rewards.daily_goal
        return StepChange(
            previous=previous,
            current=rec.copy(),
            coins_earned=earned,
            goal_reached=previous.steps < goal <= new_steps,
            rolled_over=rolled,
        )

    def _rollover_locked(self, now: datetime) -> DaySummary | None:
        finished = self._record
        if now.date() < finished.date:
            logger.warning(f"Daily record is dated {finished.date}, after today ({now.date()}); moving it to today")
            finished.date = now.date()
            self._mark_dirty()
            return None
        if now.date() == finished.date:
            return None

        summary = self._summarize(finished)
        self._history.append(summary)
        del self._history[: -self._history_days]
        self._history_dirty = True

        coins = 0 if self._reset_coins else finished.coins
        self._record = StepRecord.empty(now, coins=coins, source=finished.source)
        self._mark_dirty()
        logger.info(f"Day rollover {finished.date} -> {now.date()}: archived {finished.steps} steps")
        return summary

    def _summarize(self, record: StepRecord) -> DaySummary:
        goal_reached = record.steps >= self._rewards.daily_goal
        streak = 0
        if goal_reached:
            streak = 1
            if self._history:
                last = self._history[-1]
                if last.goal_reached and last.date == record.date - timedelta(days=1):
                    streak = last.streak_day + 1
        return DaySummary(
            date=record.date,
            steps=record.steps,
            distance_km=record.distance_km,
            calories=record.calories,
            coins_earned=coins_for(record.steps, self._rewards),
            goal_reached=goal_reached,
            streak_day=streak,
        )

    def _mark_dirty(self) -> None:
        self._dirty = True
        if self._save_hook is not None:
            self._save_hook()

    # ── Persistence ────────────────────────────────────────────────

    async def flush(self) -> bool:
        """Write the record (and history, if changed) to the backend.

        Saves are serialized.  Returns False if the backend failed; the
        in-memory record stays authoritative and is retried on the next flush.
        """
        async with self._write_lock:
            with self._lock:
                if not (self._dirty or self._history_dirty):
                    return True
                record_payload = self._record.to_dict() if self._dirty else None
                history_payload = [s.to_dict() for s in self._history] if self._history_dirty else None
                self._dirty = False
                self._history_dirty = False

            try:
                if history_payload is not None:
                    await self._backend.save(self._history_key, _encode(history_payload))
                if record_payload is not None:
                    await self._backend.save(self._key, _encode(record_payload))
            except PersistenceError as e:
                self.failed_writes += 1
                logger.warning(f"Failed to persist daily state (attempt kept for retry): {e}")
                with self._lock:
                    self._dirty = self._dirty or record_payload is not None
                    self._history_dirty = self._history_dirty or history_payload is not None
                return False

            logger.debug(f"Persisted daily state for {record_payload['date'] if record_payload else 'history'}")
            return True


def _encode(payload: Any) -> bytes:
    return json.dumps(payload, indent=2).encode("utf-8")


def _history_from_list(data: Any) -> list[DaySummary]:
    if not isinstance(data, list):
        raise TypeError(f"expected a list of day summaries, got {type(data).__name__}")
    return sorted((DaySummary.from_dict(item) for item in data), key=lambda s: s.date)
