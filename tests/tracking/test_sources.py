"""Tests for replay sources and the Apple Health export step source."""

import json
from datetime import date

import pytest

from bolta.core.exceptions import SensorUnavailableError
from bolta.tracking.models import MotionSample
from bolta.tracking.plugins.apple_health_export import AppleHealthExportStepSource
from bolta.tracking.sources import (
    ExternalStepSource,
    MotionSource,
    PermissionProvider,
    ReplayMotionSource,
    StaticPermission,
    read_samples,
)


class TestReadSamples:
    def test_csv(self, tmp_path):
        path = tmp_path / "walk.csv"
        path.write_text("x,y,z,timestamp\n0,0,9.8,0\n0.1,0.2,12.5,50\n")
        samples = read_samples(path)
        assert samples == [
            MotionSample(x=0.0, y=0.0, z=9.8, timestamp=0),
            MotionSample(x=0.1, y=0.2, z=12.5, timestamp=50),
        ]

    def test_json(self, tmp_path):
        path = tmp_path / "walk.json"
        path.write_text(json.dumps([{"x": 0, "y": 0, "z": 9.8, "timestamp": 100}]))
        assert read_samples(path)[0].timestamp == 100

    def test_malformed_rows_skipped(self, tmp_path):
        path = tmp_path / "walk.csv"
        path.write_text("x,y,z,timestamp\n0,0,9.8,0\nbad,0,9.8,50\n0,0,9.8,100\n")
        assert [s.timestamp for s in read_samples(path)] == [0, 100]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_samples(tmp_path / "nope.csv")


class TestReplayMotionSource:
    def test_satisfies_protocol(self):
        assert isinstance(ReplayMotionSource([]), MotionSource)
        assert isinstance(StaticPermission(), PermissionProvider)

    def test_replays_in_order(self, walking):
        samples = walking(2)
        source = ReplayMotionSource(samples)
        seen = []
        source.start(lambda x, y, z, t: seen.append(t), lambda reason: None)
        assert source.replay() == len(samples)
        assert seen == [s.timestamp for s in samples]

    def test_stop_halts_delivery(self, walking):
        samples = walking(2)
        source = ReplayMotionSource(samples)
        seen = []

        def on_sample(x, y, z, t):
            seen.append(t)
            if len(seen) == 5:
                source.stop()

        source.start(on_sample, lambda reason: None)
        assert source.replay() == 5

    def test_empty_source_unavailable(self):
        source = ReplayMotionSource([])
        assert not source.is_available()
        with pytest.raises(SensorUnavailableError):
            source.start(lambda *a: None, lambda r: None)


EXPORT_XML = """<?xml version="1.0" encoding="UTF-8"?>
<HealthData locale="en_US">
 <Record type="HKQuantityTypeIdentifierStepCount" sourceName="iPhone" unit="count"
   startDate="2025-03-14 08:00:00 -0700" endDate="2025-03-14 08:10:00 -0700" value="1200"/>
 <Record type="HKQuantityTypeIdentifierStepCount" sourceName="Watch" unit="count"
   startDate="2025-03-14 12:00:00 -0700" endDate="2025-03-14 12:30:00 -0700" value="800"/>
 <Record type="HKQuantityTypeIdentifierStepCount" sourceName="iPhone" unit="count"
   startDate="2025-03-13 18:00:00 -0700" endDate="2025-03-13 18:10:00 -0700" value="500"/>
 <Record type="HKQuantityTypeIdentifierHeartRate" sourceName="Watch" unit="count/min"
   startDate="2025-03-14 08:00:00 -0700" endDate="2025-03-14 08:00:00 -0700" value="72"/>
</HealthData>
"""


class TestAppleHealthExportStepSource:
    @pytest.fixture
    def export(self, tmp_path):
        path = tmp_path / "export.xml"
        path.write_text(EXPORT_XML)
        return path

    def test_satisfies_protocol(self, export):
        assert isinstance(AppleHealthExportStepSource(str(export)), ExternalStepSource)

    async def test_sums_steps_for_day(self, export):
        source = AppleHealthExportStepSource(str(export))
        assert await source.fetch_daily_steps(date(2025, 3, 14)) == 2000
        assert await source.fetch_daily_steps(date(2025, 3, 13)) == 500
        assert source.stats["fetches"] == 2

    async def test_filters_by_source_name(self, export):
        source = AppleHealthExportStepSource(str(export), source_names=["iPhone"])
        assert await source.fetch_daily_steps(date(2025, 3, 14)) == 1200

    async def test_no_records_returns_none(self, export):
        source = AppleHealthExportStepSource(str(export))
        assert await source.fetch_daily_steps(date(2024, 1, 1)) is None

    async def test_missing_export(self, tmp_path):
        source = AppleHealthExportStepSource(str(tmp_path / "missing.xml"))
        assert not source.validate()
        with pytest.raises(FileNotFoundError):
            await source.fetch_daily_steps(date(2025, 3, 14))

    async def test_broken_xml_returns_none(self, tmp_path):
        path = tmp_path / "export.xml"
        path.write_text("<HealthData><Record")
        source = AppleHealthExportStepSource(str(path))
        assert await source.fetch_daily_steps(date(2025, 3, 14)) is None
        assert source.stats["errors"] == 1
