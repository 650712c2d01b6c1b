"""
Layered configuration for bolta.

Sources, lowest to highest precedence:
    1. Built-in defaults (``default_config``)
    2. A YAML or JSON config file
    3. Environment variables ``BOLTA_<SECTION>__<KEY>``

Usage:
    config = Config(config_file="~/.bolta/config.yaml")

    config.get("tracking.profile")        # dot-notation access
    config.get("rewards.daily_goal")
    settings = config.validated()         # typed BoltaConfig
"""

from __future__ import annotations

import json
import os
from typing import TYPE_CHECKING, Any

import yaml

from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from .config_schema import BoltaConfig

ENV_PREFIX = "BOLTA_"
DEFAULT_DATA_DIR = os.path.join("~", ".bolta-data")


def default_config(data_dir: str) -> dict[str, Any]:
    """The full default configuration tree rooted at *data_dir*."""
    data_dir = os.path.expanduser(data_dir)
    return {
        "paths": {
            "data_dir": data_dir,
            "storage_dir": os.path.join(data_dir, "storage"),
            "log_dir": os.path.join(data_dir, "logs"),
        },
        "tracking": {
            "profile": "simple",
            "buffer_size": 10,
            "window_size": 5,
            "peak_min": 6.0,
            "peak_history": 10,
            "validation": {},
        },
        "rewards": {
            "step_length_m": 0.7,
            "steps_per_coin": 1000,
            "calories_per_step": 0.04,
            "daily_goal": 10000,
        },
        "store": {
            "key": "daily_state",
            "history_key": "daily_history",
            "history_days": 90,
            "reset_coins_on_rollover": False,
        },
        "scheduler": {
            "enabled": True,
            "timezone": "UTC",
            "rollover_check": {"hours": 1},
            "midnight_rollover": True,
            "external_sync": {"enabled": False, "seconds": 10},
        },
        "logging": {
            "level": "WARNING",
            "file": None,
        },
    }


def deep_merge(target: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Merge *overrides* into *target* in place; nested dicts merge, everything else replaces."""
    for key, value in overrides.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            deep_merge(current, value)
        else:
            target[key] = value
    return target


def read_config_file(path: str) -> dict[str, Any]:
    """Parse a ``.yaml``/``.yml``/``.json`` file. Other suffixes yield ``{}``."""
    suffix = os.path.splitext(path)[1].lower()
    if suffix not in (".yaml", ".yml", ".json"):
        return {}
    try:
        with open(path) as f:
            data = json.load(f) if suffix == ".json" else yaml.safe_load(f)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot parse config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def _env_value(raw: str) -> Any:
    # "false" -> False, "12000" -> 12000; anything unparsable stays a string
    try:
        value = yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw
    return value if isinstance(value, (bool, int, float)) else raw


class Config:
    """
    Merged view of defaults, a config file and environment overrides.

    Env vars use a double underscore for nesting:
    BOLTA_TRACKING__PROFILE=strict -> config["tracking"]["profile"] = "strict"
    """

    def __init__(
        self,
        config_file: str | None = None,
        env_prefix: str = ENV_PREFIX,
        data_dir: str | None = None,
        defaults: dict[str, Any] | None = None,
    ):
        """
        Args:
            config_file: Path to a YAML or JSON file. A missing file is not an error.
            env_prefix: Prefix for environment overrides; empty disables them.
            data_dir: Base directory for persisted state. Defaults to ~/.bolta-data.
            defaults: Extra defaults merged over the built-in ones.
        """
        self.config_file = os.path.expanduser(config_file) if config_file else None
        self.env_prefix = env_prefix or ""
        self._data_dir = data_dir or DEFAULT_DATA_DIR

        data = default_config(self._data_dir)
        if defaults:
            deep_merge(data, defaults)
        if self.config_file and os.path.exists(self.config_file):
            deep_merge(data, read_config_file(self.config_file))
        deep_merge(data, self._env_overrides())
        self.config_data: dict[str, Any] = data

    def _env_overrides(self) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        if not self.env_prefix:
            return overrides
        for name, raw in os.environ.items():
            if not name.startswith(self.env_prefix):
                continue
            *parents, leaf = name[len(self.env_prefix) :].lower().split("__")
            node = overrides
            for part in parents:
                node = node.setdefault(part, {})
            node[leaf] = _env_value(raw)
        return overrides

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Look up a dotted path such as ``"tracking.profile"``.

        Returns *default* when any segment is missing.
        """
        node: Any = self.config_data
        for part in key_path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key_path: str, value: Any) -> None:
        """Assign at a dotted path, creating intermediate sections."""
        *parents, leaf = key_path.split(".")
        node = self.config_data
        for part in parents:
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        node[leaf] = value

    def get_data_dir(self) -> str:
        return os.path.expanduser(self.get("paths.data_dir", self._data_dir))

    def ensure_directories(self) -> None:
        """Create every directory listed under ``paths``."""
        for path_value in (self.get("paths") or {}).values():
            if isinstance(path_value, str):
                os.makedirs(os.path.expanduser(path_value), exist_ok=True)

    def validated(self) -> BoltaConfig:
        """Return a typed, validated view of the current configuration.

        Raises:
            ConfigurationError: if any section fails validation.
        """
        from pydantic import ValidationError

        from .config_schema import BoltaConfig

        try:
            return BoltaConfig.model_validate(self.config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e


_config_instance: Config | None = None


def get_config(
    config_file: str | None = None,
    env_prefix: str = ENV_PREFIX,
    data_dir: str | None = None,
) -> Config:
    """Return the process-wide Config, creating it on first use."""
    global _config_instance
    if _config_instance is None:
        _config_instance = Config(config_file=config_file, env_prefix=env_prefix, data_dir=data_dir)
    return _config_instance


def reset_config() -> None:
    """Forget the process-wide Config (tests)."""
    global _config_instance
    _config_instance = None
