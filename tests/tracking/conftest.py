"""Fixtures for tracking tests: synthetic walking signals and wired stores."""

from __future__ import annotations

import pytest

from bolta.core.storage import MemoryStore
from bolta.tracking.daily_store import DailyStateStore
from bolta.tracking.models import MotionSample

# One gait cycle sampled every 50 ms: a single strict maximum at index 4.
CYCLE = [9.0, 9.2, 9.6, 10.5, 12.0, 10.5, 9.6, 9.2, 9.0, 8.8]
SAMPLE_MS = 50


def walking_samples(steps: int, start_ms: int = 0, peak: float = 12.0) -> list[MotionSample]:
    """*steps* gait cycles, one step every 500 ms, magnitude on the z axis.

    The cycle is scaled so its maximum equals *peak*.
    """
    scale = peak / max(CYCLE)
    samples = []
    t = start_ms
    for _ in range(steps):
        for magnitude in CYCLE:
            samples.append(MotionSample(x=0.0, y=0.0, z=magnitude * scale, timestamp=t))
            t += SAMPLE_MS
    return samples


class ManualSensor:
    """MotionSource double that lets a test push samples by hand."""

    def __init__(self, available: bool = True, fail_on_start: bool = False):
        self.available = available
        self.fail_on_start = fail_on_start
        self.on_sample = None
        self.on_error = None
        self.start_calls = 0
        self.stop_calls = 0

    def is_available(self) -> bool:
        return self.available

    def start(self, on_sample, on_error) -> None:
        from bolta.core.exceptions import SensorUnavailableError

        self.start_calls += 1
        if self.fail_on_start:
            raise SensorUnavailableError("accelerometer busy")
        self.on_sample = on_sample
        self.on_error = on_error

    def stop(self) -> None:
        self.stop_calls += 1

    def feed(self, samples: list[MotionSample]) -> None:
        for s in samples:
            self.on_sample(s.x, s.y, s.z, s.timestamp)


@pytest.fixture
def backend():
    return MemoryStore()


@pytest.fixture
def store(backend, clock):
    return DailyStateStore(backend, clock=clock)


@pytest.fixture
def walking():
    """The :func:`walking_samples` generator."""
    return walking_samples


@pytest.fixture
def make_sensor():
    return ManualSensor
