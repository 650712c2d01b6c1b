"""Collaborator protocols and built-in sources.

The tracking core depends only on these interfaces:

- :class:`MotionSource` pushes accelerometer samples into a callback.
- :class:`PermissionProvider` answers the platform permission prompt.
- :class:`ExternalStepSource` reports a daily total from another system
  (a phone health store, a wearable export).  Its numbers are committed
  with ``external-sync`` provenance.
"""

from __future__ import annotations

import csv
import json
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Iterator
from datetime import date
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from loguru import logger

from bolta.core.exceptions import SensorUnavailableError

from .models import MotionSample

SampleCallback = Callable[[float, float, float, int], None]
"""``(x, y, z, timestamp_ms) -> None``; must return quickly."""

ErrorCallback = Callable[[str], None]
"""Receives a reason string when the source fails fatally."""


@runtime_checkable
class MotionSource(Protocol):
    """Protocol every accelerometer source must satisfy."""

    def is_available(self) -> bool: ...

    def start(self, on_sample: SampleCallback, on_error: ErrorCallback) -> None:
        """Begin delivering samples. Raise SensorUnavailableError if impossible."""
        ...

    def stop(self) -> None: ...


@runtime_checkable
class PermissionProvider(Protocol):
    async def request(self) -> bool:
        """Prompt for motion-sensor access. True when granted."""
        ...


class StaticPermission:
    """Permission provider with a fixed answer (desktop, tests, replay)."""

    def __init__(self, granted: bool = True):
        self.granted = granted
        self.requests = 0

    async def request(self) -> bool:
        self.requests += 1
        return self.granted


# ── Replay ───────────────────────────────────────────────────────────


def read_samples(path: str | Path) -> list[MotionSample]:
    """Load samples from a CSV (``x,y,z,timestamp`` header) or JSON list file."""
    path = Path(path).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Sample file not found: {path}")

    if path.suffix.lower() == ".json":
        with open(path) as f:
            rows: Iterable[dict[str, Any]] = json.load(f)
    else:
        with open(path, newline="") as f:
            rows = list(csv.DictReader(f))

    samples = []
    for i, row in enumerate(rows):
        try:
            samples.append(
                MotionSample(
                    x=float(row["x"]),
                    y=float(row["y"]),
                    z=float(row["z"]),
                    timestamp=int(float(row["timestamp"])),
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed sample row {i} in {path.name}: {e}")
    return samples


class ReplayMotionSource:
    """Feeds a recorded sample sequence through the normal sensor callback.

    Samples are delivered synchronously by :meth:`replay`, in order, for as
    long as the source is started.
    """

    def __init__(self, samples: Iterable[MotionSample]):
        self._samples = list(samples)
        self._on_sample: SampleCallback | None = None
        self._on_error: ErrorCallback | None = None

    @classmethod
    def from_file(cls, path: str | Path) -> ReplayMotionSource:
        return cls(read_samples(path))

    def __len__(self) -> int:
        return len(self._samples)

    def is_available(self) -> bool:
        return bool(self._samples)

    def start(self, on_sample: SampleCallback, on_error: ErrorCallback) -> None:
        if not self._samples:
            raise SensorUnavailableError("Replay source has no samples")
        self._on_sample = on_sample
        self._on_error = on_error

    def stop(self) -> None:
        self._on_sample = None
        self._on_error = None

    def replay(self) -> int:
        """Deliver every sample; returns how many were delivered before stop()."""
        delivered = 0
        for sample in self._iter_while_started():
            self._on_sample(sample.x, sample.y, sample.z, sample.timestamp)
            delivered += 1
        return delivered

    def _iter_while_started(self) -> Iterator[MotionSample]:
        for sample in self._samples:
            if self._on_sample is None:
                return
            yield sample


# ── External step sources ────────────────────────────────────────────


@runtime_checkable
class ExternalStepSource(Protocol):
    """Protocol for systems that already count steps for us."""

    name: str

    async def fetch_daily_steps(self, day: date) -> int | None:
        """Total steps for *day*, or None when the source has no data."""
        ...

    def validate(self) -> bool:
        """Check that the source is reachable / configured."""
        ...


class BaseStepSource(ABC):
    """Optional ABC with shared plumbing for external step sources."""

    name: str = "base"

    def __init__(self, **config: Any):
        self.config = config
        self.stats: dict[str, int] = {"fetches": 0, "errors": 0}

    @abstractmethod
    async def fetch_daily_steps(self, day: date) -> int | None:
        """Total steps for *day*."""

    def validate(self) -> bool:
        return True

    def get_config_schema(self) -> dict[str, Any]:
        """Override to advertise required config keys."""
        return {}
