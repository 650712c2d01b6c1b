"""Tests for bolta.core.config_schema."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from bolta.core.config_schema import BoltaConfig, TrackingConfig, ValidationOverrides


@pytest.mark.smoke
class TestConfigSchema:
    def test_defaults_populate(self):
        cfg = BoltaConfig()
        assert cfg.tracking.profile == "simple"
        assert cfg.tracking.window_size == 5
        assert cfg.rewards.step_length_m == 0.7
        assert cfg.store.history_days == 90
        assert cfg.scheduler.external_sync.enabled is False

    def test_path_expansion(self):
        cfg = BoltaConfig.model_validate({"paths": {"data_dir": "~/.bolta-data"}})
        assert "~" not in str(cfg.paths.data_dir)
        assert cfg.paths.resolved_storage_dir == cfg.paths.data_dir / "storage"

    def test_explicit_storage_dir(self):
        cfg = BoltaConfig.model_validate({"paths": {"data_dir": "/tmp/a", "storage_dir": "/tmp/b"}})
        assert cfg.paths.resolved_storage_dir == Path("/tmp/b")

    def test_even_window_rejected(self):
        with pytest.raises(ValidationError, match="odd"):
            TrackingConfig(window_size=6)

    def test_window_larger_than_buffer_rejected(self):
        with pytest.raises(ValidationError, match="exceeds"):
            TrackingConfig(window_size=7, buffer_size=5)

    def test_buffer_size_bounds(self):
        with pytest.raises(ValidationError):
            TrackingConfig(buffer_size=2)
        with pytest.raises(ValidationError):
            TrackingConfig(buffer_size=101)

    def test_unknown_profile_rejected(self):
        with pytest.raises(ValidationError):
            TrackingConfig(profile="sloppy")

    def test_amplitude_band_must_be_ordered(self):
        with pytest.raises(ValidationError, match="min_magnitude"):
            TrackingConfig(validation={"min_magnitude": 12.0, "max_magnitude": 10.0})

    def test_overrides_forbid_unknown_keys(self):
        with pytest.raises(ValidationError):
            ValidationOverrides.model_validate({"min_interval": 300})

    def test_overrides_as_dict_drops_unset(self):
        overrides = ValidationOverrides(min_interval_ms=320)
        assert overrides.as_dict() == {"min_interval_ms": 320}

    def test_non_positive_rewards_rejected(self):
        with pytest.raises(ValidationError):
            BoltaConfig.model_validate({"rewards": {"steps_per_coin": 0}})

    def test_extra_sections_allowed(self):
        cfg = BoltaConfig.model_validate({"custom": {"anything": 1}})
        assert cfg.model_extra == {"custom": {"anything": 1}}
