"""Pydantic models for config validation.

``Config.validated()`` turns the merged ``config_data`` dict into a typed
``BoltaConfig``.  Env-var overrides arrive as strings; pydantic coerces
them to the declared types.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PathsConfig(BaseModel):
    """File-system paths used by the application."""

    data_dir: Path
    storage_dir: Path | None = None
    log_dir: Path | None = None

    @field_validator("data_dir", "storage_dir", "log_dir", mode="before")
    @classmethod
    def _expand_user(cls, v: Any) -> Any:
        if isinstance(v, str):
            return Path(v).expanduser()
        if isinstance(v, Path):
            return v.expanduser()
        return v

    @property
    def resolved_storage_dir(self) -> Path:
        return self.storage_dir or self.data_dir / "storage"


class ValidationOverrides(BaseModel):
    """Per-setting overrides applied on top of the chosen validation profile."""

    model_config = ConfigDict(extra="forbid")

    min_magnitude: float | None = None
    max_magnitude: float | None = None
    min_interval_ms: int | None = Field(default=None, ge=0)
    max_interval_ms: int | None = Field(default=None, gt=0)
    min_frequency_hz: float | None = Field(default=None, gt=0)
    max_frequency_hz: float | None = Field(default=None, gt=0)
    step_history_size: int | None = Field(default=None, ge=2)
    check_consistency: bool | None = None
    consistency_window: int | None = Field(default=None, ge=2)
    max_magnitude_variance: float | None = Field(default=None, gt=0)
    min_timestamp_variance: float | None = Field(default=None, ge=0)

    def as_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class TrackingConfig(BaseModel):
    """Step detection pipeline settings."""

    profile: Literal["simple", "strict"] = "simple"
    buffer_size: int = Field(default=10, ge=3, le=100)
    window_size: int = Field(default=5, ge=3)
    peak_min: float = 6.0
    peak_history: int = Field(default=10, ge=1)
    validation: ValidationOverrides = ValidationOverrides()

    @field_validator("window_size")
    @classmethod
    def _odd_window(cls, v: int) -> int:
        if v % 2 == 0:
            raise ValueError(f"window_size must be odd, got {v}")
        return v

    @model_validator(mode="after")
    def _window_fits_buffer(self) -> TrackingConfig:
        if self.window_size > self.buffer_size:
            raise ValueError(f"window_size {self.window_size} exceeds buffer_size {self.buffer_size}")
        v = self.validation
        if v.min_magnitude is not None and v.max_magnitude is not None and v.min_magnitude >= v.max_magnitude:
            raise ValueError("validation.min_magnitude must be below validation.max_magnitude")
        return self


class RewardsConfig(BaseModel):
    """Reward conversion factors."""

    step_length_m: float = Field(default=0.7, gt=0)
    steps_per_coin: int = Field(default=1000, gt=0)
    calories_per_step: float = Field(default=0.04, ge=0)
    daily_goal: int = Field(default=10000, gt=0)


class StoreConfig(BaseModel):
    """Daily state persistence settings."""

    key: str = "daily_state"
    history_key: str = "daily_history"
    history_days: int = Field(default=90, ge=1)
    reset_coins_on_rollover: bool = False


class ExternalSyncConfig(BaseModel):
    enabled: bool = False
    seconds: int = Field(default=10, ge=1)
    source: str | None = None
    options: dict[str, Any] = {}


class SchedulerConfig(BaseModel):
    """Periodic job settings."""

    enabled: bool = True
    timezone: str = "UTC"
    rollover_check: dict[str, int] = {"hours": 1}
    midnight_rollover: bool = True
    external_sync: ExternalSyncConfig = ExternalSyncConfig()


class LoggingConfig(BaseModel):
    level: str = "WARNING"
    file: str | None = None


class BoltaConfig(BaseModel):
    """Root configuration model.

    Uses ``extra="allow"`` so consumers can bolt on custom sections
    without touching this schema.
    """

    model_config = ConfigDict(extra="allow")

    paths: PathsConfig = PathsConfig(data_dir=Path("~/.bolta-data"))
    tracking: TrackingConfig = TrackingConfig()
    rewards: RewardsConfig = RewardsConfig()
    store: StoreConfig = StoreConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    logging: LoggingConfig = LoggingConfig()
