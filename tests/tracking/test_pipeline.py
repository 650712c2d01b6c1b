"""Tests for the per-sample detection pipeline."""

import pytest

from bolta.tracking.models import MotionSample
from bolta.tracking.pipeline import DetectionSettings, StepDetectionPipeline
from bolta.tracking.validator import RejectReason, ValidationProfile


def _run(pipeline: StepDetectionPipeline, samples: list[MotionSample]) -> int:
    return sum(1 for s in samples if (r := pipeline.process(s)) is not None and r.accepted)


def test_one_step_per_gait_cycle(walking):
    pipeline = StepDetectionPipeline()
    assert _run(pipeline, walking(12)) == 12
    assert pipeline.steps_accepted == 12
    assert pipeline.peaks_seen == 12
    assert pipeline.samples_seen == 120


def test_strict_profile_accepts_steady_walk(walking):
    pipeline = StepDetectionPipeline(DetectionSettings.for_profile(ValidationProfile.STRICT))
    assert _run(pipeline, walking(8)) == 8


def test_weak_peaks_rejected_and_counted(walking):
    pipeline = StepDetectionPipeline()
    assert _run(pipeline, walking(3, peak=7.5)) == 0
    assert pipeline.rejections[RejectReason.AMPLITUDE_LOW.value] == 3


def test_flat_signal_yields_nothing():
    pipeline = StepDetectionPipeline()
    flat = [MotionSample(x=0.0, y=0.0, z=9.81, timestamp=t * 50) for t in range(50)]
    assert all(pipeline.process(s) is None for s in flat)


def test_reset_clears_every_stage(walking):
    pipeline = StepDetectionPipeline()
    _run(pipeline, walking(2))
    pipeline.reset()
    assert len(pipeline.buffer) == 0
    assert pipeline.detector.history == []
    assert pipeline.validator.last_step_timestamp is None


def test_window_larger_than_buffer_rejected():
    with pytest.raises(ValueError, match="exceeds"):
        StepDetectionPipeline(DetectionSettings(buffer_size=5, window_size=7))


def test_for_profile_applies_overrides_and_kwargs():
    settings = DetectionSettings.for_profile("strict", {"min_interval_ms": 400}, peak_min=7.0)
    assert settings.validator.min_interval_ms == 400
    assert settings.validator.max_interval_ms == 2000
    assert settings.peak_min == 7.0
