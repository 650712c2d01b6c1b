"""Step pattern validation.

Decides whether a detected peak is a genuine walking step.  Checks run in
a fixed order and stop at the first failure:

1. amplitude band          (all profiles)
2. minimum step interval   (all profiles)
3. walking-bout gap        (strict)
4. cadence frequency band  (strict)
5. motion consistency      (strict)

A rejected peak leaves the validator untouched.  Only an accepted step
updates the last-step time and the step-time history.
"""

from __future__ import annotations

import statistics
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass, fields, replace
from enum import StrEnum
from typing import Any

from loguru import logger

from .models import BufferedSample, PeakCandidate, StepEvent


class ValidationProfile(StrEnum):
    SIMPLE = "simple"
    STRICT = "strict"


class RejectReason(StrEnum):
    AMPLITUDE_LOW = "amplitude_low"
    AMPLITUDE_HIGH = "amplitude_high"
    TOO_SOON = "too_soon"
    CADENCE_OUT_OF_BAND = "cadence_out_of_band"
    MAGNITUDE_NOISE = "magnitude_noise"
    TIMESTAMP_CLUSTER = "timestamp_cluster"


@dataclass(frozen=True)
class ValidatorSettings:
    """Thresholds for one validation profile.

    ``None`` for ``max_interval_ms`` / ``min_frequency_hz`` disables the
    corresponding check; ``check_consistency`` toggles the variance check.
    """

    min_magnitude: float = 8.0
    max_magnitude: float = 20.0
    min_interval_ms: int = 300
    max_interval_ms: int | None = None
    min_frequency_hz: float | None = None
    max_frequency_hz: float | None = None
    step_history_size: int = 10
    check_consistency: bool = False
    consistency_window: int = 5
    max_magnitude_variance: float = 16.0
    min_timestamp_variance: float = 25.0

    @classmethod
    def for_profile(cls, profile: ValidationProfile | str) -> ValidatorSettings:
        profile = ValidationProfile(profile)
        if profile == ValidationProfile.STRICT:
            return cls(
                min_magnitude=10.5,
                max_magnitude=16.0,
                min_interval_ms=350,
                max_interval_ms=2000,
                min_frequency_hz=0.5,
                max_frequency_hz=3.0,
                check_consistency=True,
            )
        return cls()

    def with_overrides(self, overrides: dict[str, Any] | None) -> ValidatorSettings:
        """Return a copy with the given fields replaced; unknown keys raise ValueError."""
        if not overrides:
            return self
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown validator settings: {sorted(unknown)}")
        return replace(self, **overrides)

    @property
    def checks_frequency(self) -> bool:
        return self.min_frequency_hz is not None and self.max_frequency_hz is not None


@dataclass(frozen=True)
class ValidationResult:
    accepted: bool
    step: StepEvent | None = None
    reason: RejectReason | None = None

    @classmethod
    def reject(cls, reason: RejectReason) -> ValidationResult:
        return cls(accepted=False, reason=reason)


class StepPatternValidator:
    """Applies amplitude, timing, cadence and consistency rules to peaks."""

    def __init__(self, settings: ValidatorSettings | None = None):
        self.settings = settings or ValidatorSettings()
        self._last_step_ts: int | None = None
        self._step_times: deque[int] = deque(maxlen=self.settings.step_history_size)

    @property
    def last_step_timestamp(self) -> int | None:
        return self._last_step_ts

    @property
    def step_times(self) -> list[int]:
        return list(self._step_times)

    def reset(self) -> None:
        self._last_step_ts = None
        self._step_times.clear()

    def validate(self, peak: PeakCandidate, recent: Sequence[BufferedSample] = ()) -> ValidationResult:
        """Validate *peak*; *recent* is the newest buffered window for the consistency check."""
        s = self.settings

        if peak.magnitude < s.min_magnitude:
            return self._rejected(peak, RejectReason.AMPLITUDE_LOW)
        if peak.magnitude > s.max_magnitude:
            return self._rejected(peak, RejectReason.AMPLITUDE_HIGH)

        new_bout = self._last_step_ts is None
        if self._last_step_ts is not None:
            gap = peak.timestamp - self._last_step_ts
            if gap < s.min_interval_ms:
                return self._rejected(peak, RejectReason.TOO_SOON)
            if s.max_interval_ms is not None and gap > s.max_interval_ms:
                new_bout = True

        if s.checks_frequency and not new_bout:
            hz = self._cadence_hz(peak.timestamp)
            if hz is not None and not (s.min_frequency_hz <= hz <= s.max_frequency_hz):
                return self._rejected(peak, RejectReason.CADENCE_OUT_OF_BAND)

        if s.check_consistency:
            reason = self._consistency(recent)
            if reason is not None:
                return self._rejected(peak, reason)

        if new_bout:
            self._step_times.clear()
        self._last_step_ts = peak.timestamp
        self._step_times.append(peak.timestamp)
        return ValidationResult(accepted=True, step=StepEvent(timestamp=peak.timestamp))

    # ── Internal checks ────────────────────────────────────────────

    def _cadence_hz(self, candidate_ts: int) -> float | None:
        """Mean step frequency over the accepted step times plus the candidate."""
        times = list(self._step_times)[-(self.settings.step_history_size - 1) :] + [candidate_ts]
        if len(times) < 2:
            return None
        mean_interval_ms = (times[-1] - times[0]) / (len(times) - 1)
        if mean_interval_ms <= 0:
            return None
        return 1000.0 / mean_interval_ms

    def _consistency(self, recent: Sequence[BufferedSample]) -> RejectReason | None:
        window = list(recent)[-self.settings.consistency_window :]
        if len(window) < self.settings.consistency_window:
            return None
        magnitude_var = statistics.pvariance([e.magnitude for e in window])
        if magnitude_var > self.settings.max_magnitude_variance:
            return RejectReason.MAGNITUDE_NOISE
        timestamp_var = statistics.pvariance([e.timestamp for e in window])
        if timestamp_var < self.settings.min_timestamp_variance:
            return RejectReason.TIMESTAMP_CLUSTER
        return None

    def _rejected(self, peak: PeakCandidate, reason: RejectReason) -> ValidationResult:
        logger.debug(f"Peak at t={peak.timestamp} rejected: {reason.value}")
        return ValidationResult.reject(reason)
