"""Data models for step tracking.

Pure data: samples flowing through the detection pipeline, the persisted
per-day record, archived day summaries, and the session state machine.

State machine:
    idle -> requesting_permission -> active <-> stopped
    requesting_permission -> stopped (stop() during the prompt)
    requesting_permission -> errored ("permission denied")
    any -> errored (fatal sensor error); errored -> start() again
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from enum import StrEnum
from typing import Any

from bolta.core.exceptions import InvalidTransitionError


class StepSource(StrEnum):
    """Provenance of a step record update."""

    MANUAL = "manual"
    SENSOR = "sensor"
    EXTERNAL_SYNC = "external-sync"


class SessionState(StrEnum):
    IDLE = "idle"
    REQUESTING_PERMISSION = "requesting_permission"
    ACTIVE = "active"
    STOPPED = "stopped"
    ERRORED = "errored"


# Valid transitions: from_state -> set of allowed to_states
VALID_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.IDLE: {SessionState.REQUESTING_PERMISSION, SessionState.ACTIVE, SessionState.ERRORED},
    SessionState.REQUESTING_PERMISSION: {SessionState.ACTIVE, SessionState.STOPPED, SessionState.ERRORED},
    SessionState.ACTIVE: {SessionState.STOPPED, SessionState.ERRORED},
    SessionState.STOPPED: {SessionState.ACTIVE, SessionState.REQUESTING_PERMISSION, SessionState.ERRORED},
    SessionState.ERRORED: {SessionState.REQUESTING_PERMISSION, SessionState.ACTIVE, SessionState.ERRORED},
}


def validate_transition(current: SessionState, target: SessionState) -> None:
    """Raise InvalidTransitionError if the transition is not allowed."""
    allowed = VALID_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidTransitionError(
            f"Invalid transition: {current.value} -> {target.value}. "
            f"Allowed: {', '.join(s.value for s in sorted(allowed, key=lambda s: s.value))}"
        )


# ── Detection pipeline ───────────────────────────────────────────────


@dataclass(frozen=True)
class MotionSample:
    """One accelerometer reading. Timestamp is integer milliseconds."""

    x: float
    y: float
    z: float
    timestamp: int


@dataclass(frozen=True)
class BufferedSample:
    """A sample plus its magnitude, computed once when buffered."""

    sample: MotionSample
    magnitude: float

    @classmethod
    def from_sample(cls, sample: MotionSample) -> BufferedSample:
        return cls(sample=sample, magnitude=math.sqrt(sample.x**2 + sample.y**2 + sample.z**2))

    @property
    def timestamp(self) -> int:
        return self.sample.timestamp


@dataclass(frozen=True)
class PeakCandidate:
    magnitude: float
    timestamp: int
    is_peak: bool = True


@dataclass(frozen=True)
class StepEvent:
    timestamp: int


# ── Persisted state ──────────────────────────────────────────────────


@dataclass
class StepRecord:
    """The running total for one calendar day.

    ``coins`` is a lifetime balance and survives day rollover; the other
    counters are daily.
    """

    date: date
    last_updated: datetime
    steps: int = 0
    coins: int = 0
    distance_km: float = 0.0
    calories: int = 0
    source: StepSource = StepSource.SENSOR

    @classmethod
    def empty(cls, now: datetime, coins: int = 0, source: StepSource = StepSource.SENSOR) -> StepRecord:
        return cls(date=now.date(), last_updated=now, coins=coins, source=source)

    @property
    def distance_meters(self) -> float:
        return round(self.distance_km * 1000, 2)

    def copy(self) -> StepRecord:
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "steps": self.steps,
            "coins": self.coins,
            "distanceKm": round(self.distance_km, 2),
            "calories": self.calories,
            "lastUpdated": self.last_updated.isoformat(),
            "source": self.source.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StepRecord:
        """Deserialize; raises KeyError/ValueError on malformed input."""
        last_updated = datetime.fromisoformat(data["lastUpdated"])
        record_date = date.fromisoformat(data["date"]) if data.get("date") else last_updated.date()
        steps = int(data.get("steps", 0))
        coins = int(data.get("coins", 0))
        if steps < 0 or coins < 0:
            raise ValueError(f"Negative counters in stored record: steps={steps} coins={coins}")
        return cls(
            date=record_date,
            last_updated=last_updated,
            steps=steps,
            coins=coins,
            distance_km=float(data.get("distanceKm", 0.0)),
            calories=int(data.get("calories", 0)),
            source=StepSource(data.get("source", StepSource.SENSOR.value)),
        )


@dataclass(frozen=True)
class StepChange:
    """Outcome of one store mutation."""

    previous: StepRecord
    current: StepRecord
    coins_earned: int = 0
    goal_reached: bool = False
    rolled_over: DaySummary | None = None

    @property
    def steps_added(self) -> int:
        return self.current.steps - self.previous.steps


@dataclass
class DaySummary:
    """A finished day, archived at rollover."""

    date: date
    steps: int
    distance_km: float
    calories: int
    coins_earned: int = 0
    goal_reached: bool = False
    streak_day: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "steps": self.steps,
            "distanceKm": self.distance_km,
            "calories": self.calories,
            "coinsEarned": self.coins_earned,
            "goalReached": self.goal_reached,
            "streakDay": self.streak_day,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DaySummary:
        return cls(
            date=date.fromisoformat(data["date"]),
            steps=int(data.get("steps", 0)),
            distance_km=float(data.get("distanceKm", 0.0)),
            calories=int(data.get("calories", 0)),
            coins_earned=int(data.get("coinsEarned", 0)),
            goal_reached=bool(data.get("goalReached", False)),
            streak_day=int(data.get("streakDay", 0)),
        )


@dataclass
class WeeklySummary:
    """Totals over the seven days starting at ``week_start``."""

    week_start: date
    days: list[DaySummary] = field(default_factory=list)

    @property
    def week_end(self) -> date:
        return self.week_start + timedelta(days=6)

    @property
    def total_steps(self) -> int:
        return sum(d.steps for d in self.days)

    @property
    def total_coins(self) -> int:
        return sum(d.coins_earned for d in self.days)

    @property
    def total_distance_km(self) -> float:
        return round(sum(d.distance_km for d in self.days), 2)

    @property
    def total_calories(self) -> int:
        return sum(d.calories for d in self.days)

    @property
    def average_steps(self) -> int:
        """Mean over the days that have a record, not over all seven."""
        return round(self.total_steps / len(self.days)) if self.days else 0

    @property
    def goal_days_reached(self) -> int:
        return sum(1 for d in self.days if d.goal_reached)

    def to_dict(self) -> dict[str, Any]:
        return {
            "weekStart": self.week_start.isoformat(),
            "totalSteps": self.total_steps,
            "totalCoins": self.total_coins,
            "totalDistance": self.total_distance_km,
            "totalCalories": self.total_calories,
            "dailyRecords": [d.to_dict() for d in self.days],
            "averageSteps": self.average_steps,
            "goalDaysReached": self.goal_days_reached,
        }


@dataclass
class SessionStatus:
    """Snapshot of a tracking session for dashboards and the CLI."""

    state: SessionState
    record: StepRecord
    error_reason: str | None = None
    permission_granted: bool = False
    steps_detected: int = 0
    peaks_rejected: dict[str, int] = field(default_factory=dict)
