"""Tests for tracking data models and the session transition table."""

from datetime import date, datetime

import pytest

from bolta.core.exceptions import InvalidTransitionError
from bolta.tracking.models import (
    VALID_TRANSITIONS,
    DaySummary,
    SessionState,
    StepRecord,
    StepSource,
    validate_transition,
)


def test_record_serializes_with_persisted_keys():
    rec = StepRecord(
        date=date(2025, 3, 14),
        last_updated=datetime(2025, 3, 14, 9, 30),
        steps=1000,
        coins=1,
        distance_km=0.7,
        calories=40,
        source=StepSource.EXTERNAL_SYNC,
    )
    data = rec.to_dict()
    assert data == {
        "date": "2025-03-14",
        "steps": 1000,
        "coins": 1,
        "distanceKm": 0.7,
        "calories": 40,
        "lastUpdated": "2025-03-14T09:30:00",
        "source": "external-sync",
    }
    assert StepRecord.from_dict(data) == rec
    assert rec.distance_meters == pytest.approx(700.0)


def test_record_date_falls_back_to_last_updated():
    rec = StepRecord.from_dict({"lastUpdated": "2025-03-14T23:59:00", "steps": 3})
    assert rec.date == date(2025, 3, 14)
    assert rec.source == StepSource.SENSOR


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"lastUpdated": "yesterday"},
        {"lastUpdated": "2025-03-14T09:30:00", "steps": -1},
        {"lastUpdated": "2025-03-14T09:30:00", "source": "pedometer"},
    ],
)
def test_malformed_records_raise(data):
    with pytest.raises((KeyError, ValueError)):
        StepRecord.from_dict(data)


def test_day_summary_keys():
    summary = DaySummary(
        date=date(2025, 3, 14),
        steps=12000,
        distance_km=8.4,
        calories=480,
        coins_earned=12,
        goal_reached=True,
        streak_day=3,
    )
    assert DaySummary.from_dict(summary.to_dict()) == summary
    assert summary.to_dict()["streakDay"] == 3


@pytest.mark.parametrize(
    ("current", "target"),
    [
        (SessionState.IDLE, SessionState.REQUESTING_PERMISSION),
        (SessionState.REQUESTING_PERMISSION, SessionState.ACTIVE),
        (SessionState.REQUESTING_PERMISSION, SessionState.ERRORED),
        (SessionState.ACTIVE, SessionState.STOPPED),
        (SessionState.STOPPED, SessionState.ACTIVE),
        (SessionState.ERRORED, SessionState.REQUESTING_PERMISSION),
    ],
)
def test_allowed_transitions(current, target):
    validate_transition(current, target)


@pytest.mark.parametrize(
    ("current", "target"),
    [
        (SessionState.IDLE, SessionState.STOPPED),
        (SessionState.STOPPED, SessionState.IDLE),
        (SessionState.ACTIVE, SessionState.REQUESTING_PERMISSION),
    ],
)
def test_rejected_transitions(current, target):
    with pytest.raises(InvalidTransitionError):
        validate_transition(current, target)


def test_every_state_has_an_exit():
    assert set(VALID_TRANSITIONS) == set(SessionState)
    assert all(VALID_TRANSITIONS[s] for s in SessionState)
