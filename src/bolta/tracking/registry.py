"""
External step-source plugin registry.

Discovers sources at runtime via ``importlib.metadata`` entry points
(group: ``bolta.step_sources``).  Third-party packages can register
sources in their own ``pyproject.toml``:

    [project.entry-points."bolta.step_sources"]
    my_watch = "my_package.steps:MyWatchSource"
"""

from importlib.metadata import entry_points
from typing import Any

from loguru import logger

from .sources import ExternalStepSource

ENTRY_POINT_GROUP = "bolta.step_sources"


class StepSourceRegistry:
    """Discover and instantiate external step sources."""

    def __init__(self):
        self._sources: dict[str, type] = {}

    def discover(self) -> dict[str, type]:
        """Scan entry points and return {name: source_class}."""
        for ep in entry_points(group=ENTRY_POINT_GROUP):
            try:
                cls = ep.load()
            except Exception as e:
                logger.warning(f"Failed to load step source '{ep.name}': {e}")
                continue
            if not isinstance(cls, type):
                logger.warning(f"Step source '{ep.name}' is not a class, skipping")
                continue
            self._sources[ep.name] = cls
            logger.debug(f"Discovered step source: {ep.name}")
        return dict(self._sources)

    def register(self, name: str, source_class: type) -> None:
        """Manually register a source (built-ins, tests)."""
        self._sources[name] = source_class

    def get(self, name: str) -> type | None:
        return self._sources.get(name)

    def list_names(self) -> list[str]:
        return sorted(self._sources)

    def create(self, name: str, **config: Any) -> ExternalStepSource:
        """Instantiate a source by name with the given config."""
        cls = self._sources.get(name)
        if cls is None:
            raise KeyError(f"No step source registered as '{name}'. Available: {self.list_names()}")
        source = cls(**config)
        if not isinstance(source, ExternalStepSource):
            raise TypeError(f"Step source '{name}' does not implement fetch_daily_steps/validate")
        return source


def default_registry() -> StepSourceRegistry:
    """Registry with the built-in sources plus anything installed via entry points."""
    from .plugins.apple_health_export import AppleHealthExportStepSource

    registry = StepSourceRegistry()
    registry.register(AppleHealthExportStepSource.name, AppleHealthExportStepSource)
    registry.discover()
    return registry
