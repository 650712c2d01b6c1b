"""
Step tracking: accelerometer step detection, rewards and the daily record.

The detection pipeline (buffer, peak detector, validator) and the reward
functions are pure.  :class:`TrackingSession` ties them to a sensor and a
:class:`DailyStateStore` and publishes events on an ``EventBus``.
"""

from .daily_store import DailyStateStore
from .factory import build_store, detection_settings, open_session
from .models import (
    DaySummary,
    MotionSample,
    SessionState,
    SessionStatus,
    StepChange,
    StepRecord,
    StepSource,
)
from .pipeline import DetectionSettings, StepDetectionPipeline
from .rewards import RewardSettings, compute_rewards
from .scheduler import TrackingJob, TrackingScheduler
from .session import TrackingSession
from .validator import ValidationProfile, ValidatorSettings
from .writer import PersistenceWriter

__all__ = [
    "DailyStateStore",
    "DaySummary",
    "DetectionSettings",
    "MotionSample",
    "PersistenceWriter",
    "RewardSettings",
    "SessionState",
    "SessionStatus",
    "StepChange",
    "StepDetectionPipeline",
    "StepRecord",
    "StepSource",
    "TrackingJob",
    "TrackingScheduler",
    "TrackingSession",
    "ValidationProfile",
    "ValidatorSettings",
    "build_store",
    "compute_rewards",
    "detection_settings",
    "open_session",
]
