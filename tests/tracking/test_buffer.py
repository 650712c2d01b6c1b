"""Tests for the sample ring buffer."""

import math

import pytest

from bolta.tracking.buffer import SampleBuffer
from bolta.tracking.models import MotionSample


def _sample(t: int, z: float = 9.8) -> MotionSample:
    return MotionSample(x=0.0, y=0.0, z=z, timestamp=t)


def test_magnitude_cached_on_push():
    buf = SampleBuffer(10)
    entry = buf.push(MotionSample(x=3.0, y=4.0, z=12.0, timestamp=0))
    assert entry.magnitude == pytest.approx(13.0)
    assert buf.latest() is entry


def test_length_never_exceeds_capacity():
    buf = SampleBuffer(10)
    for t in range(25):
        buf.push(_sample(t))
        assert len(buf) <= 10
    assert len(buf) == 10


def test_fifo_eviction():
    buf = SampleBuffer(3)
    for t in range(5):
        buf.push(_sample(t))
    assert [e.timestamp for e in buf.window(3)] == [2, 3, 4]


def test_window_too_short_is_empty():
    buf = SampleBuffer(10)
    for t in range(4):
        buf.push(_sample(t))
    assert buf.window(5) == []
    assert [e.timestamp for e in buf.window(4)] == [0, 1, 2, 3]


def test_clear():
    buf = SampleBuffer(5)
    buf.push(_sample(0))
    buf.clear()
    assert len(buf) == 0
    assert buf.latest() is None


def test_invalid_capacity():
    with pytest.raises(ValueError):
        SampleBuffer(0)


def test_gravity_only_sample_magnitude():
    entry = SampleBuffer(1).push(_sample(0, z=9.81))
    assert math.isclose(entry.magnitude, 9.81)
