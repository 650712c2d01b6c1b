"""Apple Health export step source.

Sums the ``HKQuantityTypeIdentifierStepCount`` records of an Apple Health
``export.xml`` for one day.  That total is fed to the session as an
``external-sync`` update.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime
from pathlib import Path
from typing import Any
from xml.etree import ElementTree as ET

from loguru import logger

from bolta.tracking.sources import BaseStepSource

STEP_COUNT_TYPE = "HKQuantityTypeIdentifierStepCount"

# Health exports write "2024-03-01 08:15:00 +0100"; older tools emit ISO
_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S",
)


def parse_record_date(value: str) -> datetime | None:
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


class AppleHealthExportStepSource(BaseStepSource):
    """Daily step totals read from an Apple Health export file.

    Args:
        export_path: Location of ``export.xml``.
        source_names: Only count records whose ``sourceName`` is listed
            (e.g. ``["iPhone"]``); every device counts when empty.
    """

    name = "apple_health_export"

    def __init__(self, export_path: str, source_names: list[str] | None = None, **config: Any):
        super().__init__(export_path=export_path, source_names=source_names, **config)
        self.export_path = Path(export_path).expanduser()
        self.source_names = frozenset(source_names or ())

    def validate(self) -> bool:
        return self.export_path.is_file()

    def get_config_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "required": ["export_path"],
            "properties": {
                "export_path": {"type": "string", "description": "Apple Health export.xml"},
                "source_names": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Device names to count, e.g. 'iPhone'",
                },
            },
        }

    async def fetch_daily_steps(self, day: date) -> int | None:
        if not self.validate():
            raise FileNotFoundError(f"Apple Health export not found: {self.export_path}")
        self.stats["fetches"] += 1
        try:
            return await asyncio.to_thread(self._sum_steps, day)
        except ET.ParseError as e:
            self.stats["errors"] += 1
            logger.warning(f"Could not parse {self.export_path}: {e}")
            return None

    def _sum_steps(self, day: date) -> int | None:
        total: float | None = None
        for _event, elem in ET.iterparse(self.export_path, events=("end",)):
            if elem.tag == "Record":
                value = self._day_value(elem.attrib, day)
                if value is not None:
                    total = (total or 0.0) + value
            elem.clear()
        return None if total is None else round(total)

    def _day_value(self, attrs: dict[str, str], day: date) -> float | None:
        if attrs.get("type") != STEP_COUNT_TYPE:
            return None
        if self.source_names and attrs.get("sourceName", "") not in self.source_names:
            return None
        started = parse_record_date(attrs.get("startDate", ""))
        if started is None or started.date() != day:
            return None
        try:
            return float(attrs.get("value", ""))
        except ValueError:
            return None
