"""Wire a :class:`TrackingSession` from configuration."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any

from loguru import logger

from bolta.core.config import Config
from bolta.core.config_schema import BoltaConfig
from bolta.core.events import EventBus
from bolta.core.storage import KeyValueStore, LocalJsonStore

from .daily_store import DailyStateStore
from .pipeline import DetectionSettings
from .registry import StepSourceRegistry, default_registry
from .rewards import RewardSettings
from .session import TrackingSession
from .sources import ExternalStepSource, MotionSource, PermissionProvider


def detection_settings(settings: BoltaConfig, profile: str | None = None) -> DetectionSettings:
    tracking = settings.tracking
    return DetectionSettings.for_profile(
        profile or tracking.profile,
        tracking.validation.as_dict(),
        buffer_size=tracking.buffer_size,
        window_size=tracking.window_size,
        peak_min=tracking.peak_min,
        peak_history=tracking.peak_history,
    )


def build_store(
    settings: BoltaConfig,
    backend: KeyValueStore | None = None,
    clock: Callable[[], datetime] | None = None,
) -> DailyStateStore:
    if backend is None:
        backend = LocalJsonStore(str(settings.paths.resolved_storage_dir))
    rewards = RewardSettings(**settings.rewards.model_dump())
    kwargs: dict[str, Any] = {}
    if clock is not None:
        kwargs["clock"] = clock
    return DailyStateStore(
        backend,
        key=settings.store.key,
        history_key=settings.store.history_key,
        history_days=settings.store.history_days,
        rewards=rewards,
        reset_coins_on_rollover=settings.store.reset_coins_on_rollover,
        **kwargs,
    )


def build_external_source(
    settings: BoltaConfig, registry: StepSourceRegistry | None = None
) -> ExternalStepSource | None:
    """Instantiate the configured external step source, if any."""
    sync = settings.scheduler.external_sync
    if not sync.source:
        return None
    registry = registry or default_registry()
    source = registry.create(sync.source, **sync.options)
    if not source.validate():
        logger.warning(f"External step source '{sync.source}' failed validation; sync disabled")
        return None
    return source


async def open_session(
    config: Config,
    *,
    sensor: MotionSource | None = None,
    permissions: PermissionProvider | None = None,
    bus: EventBus | None = None,
    backend: KeyValueStore | None = None,
    profile: str | None = None,
    clock: Callable[[], datetime] | None = None,
) -> TrackingSession:
    """Build a session from *config* and load the persisted record.

    Raises:
        ConfigurationError: the configuration does not validate.
    """
    settings = config.validated()
    store = build_store(settings, backend=backend, clock=clock)
    await store.load()
    return TrackingSession(
        store,
        sensor=sensor,
        permissions=permissions,
        bus=bus,
        external_source=build_external_source(settings),
        settings=detection_settings(settings, profile),
    )
