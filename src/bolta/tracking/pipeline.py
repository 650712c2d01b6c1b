"""Per-sample step detection: buffer -> peak detector -> validator."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from .buffer import SampleBuffer
from .models import MotionSample
from .peaks import PeakDetector
from .validator import StepPatternValidator, ValidationProfile, ValidationResult, ValidatorSettings


@dataclass(frozen=True)
class DetectionSettings:
    buffer_size: int = 10
    window_size: int = 5
    peak_min: float = 6.0
    peak_history: int = 10
    validator: ValidatorSettings = field(default_factory=ValidatorSettings)

    @classmethod
    def for_profile(
        cls,
        profile: ValidationProfile | str = ValidationProfile.SIMPLE,
        overrides: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> DetectionSettings:
        validator = ValidatorSettings.for_profile(profile).with_overrides(overrides)
        return cls(validator=validator, **kwargs)


class StepDetectionPipeline:
    """Runs every stage for one sample in O(window) time.

    Not thread-safe on its own; the owning session serializes calls.
    """

    def __init__(self, settings: DetectionSettings | None = None):
        self.settings = settings or DetectionSettings()
        if self.settings.window_size > self.settings.buffer_size:
            raise ValueError(
                f"window_size {self.settings.window_size} exceeds buffer_size {self.settings.buffer_size}"
            )
        self.buffer = SampleBuffer(self.settings.buffer_size)
        self.detector = PeakDetector(
            window_size=self.settings.window_size,
            peak_min=self.settings.peak_min,
            history_size=self.settings.peak_history,
        )
        self.validator = StepPatternValidator(self.settings.validator)
        self.samples_seen = 0
        self.peaks_seen = 0
        self.steps_accepted = 0
        self.rejections: Counter[str] = Counter()

    def process(self, sample: MotionSample) -> ValidationResult | None:
        """Feed one sample. Returns None when no peak was found."""
        self.samples_seen += 1
        self.buffer.push(sample)
        peak = self.detector.detect(self.buffer)
        if peak is None:
            return None

        self.peaks_seen += 1
        recent = self.buffer.window(self.settings.validator.consistency_window)
        result = self.validator.validate(peak, recent)
        if result.accepted:
            self.steps_accepted += 1
        elif result.reason is not None:
            self.rejections[result.reason.value] += 1
        return result

    def reset(self) -> None:
        """Drop buffered samples, peak history and step-time history."""
        self.buffer.clear()
        self.detector.reset()
        self.validator.reset()
