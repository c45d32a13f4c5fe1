"""Tests for multi-source report aggregation and the report cache table."""

import json
from datetime import datetime, timezone

import pytest

from hatchmatch.exceptions import OracleError
from hatchmatch.services.report_aggregator import (
    AggregatedFishingReport,
    FishingReportStore,
    ReportAggregator,
    aggregate_flies_from_reports,
    format_source_name,
)
from hatchmatch.services.report_extractor import StructuredReport

from fakes import FakeOracle


def _report(name, flies, effectiveness="", day=8, conditions=None):
    return StructuredReport(
        source_name=name,
        url=f"https://{name.lower().replace(' ', '')}.example/report",
        report_date=datetime(2026, 2, day, tzinfo=timezone.utc),
        flies=list(flies),
        conditions=conditions or {},
        effectiveness=effectiveness,
        is_current=True,
    )


class TestAggregateFlies:
    def test_union_in_first_seen_order(self):
        reports = [
            _report("A", ["Zebra Midge", "RS2"]),
            _report("B", ["RS2", "Pheasant Tail"]),
        ]
        assert aggregate_flies_from_reports(reports) == ["Zebra Midge", "RS2", "Pheasant Tail"]

    def test_capped_at_eight(self):
        reports = [
            _report("A", [f"Fly {i}" for i in range(6)]),
            _report("B", [f"Fly {i}" for i in range(4, 12)]),
        ]
        flies = aggregate_flies_from_reports(reports)
        assert flies == [f"Fly {i}" for i in range(8)]

    def test_duplicates_are_exact_match(self):
        reports = [_report("A", ["RS2"]), _report("B", ["rs2"])]
        assert aggregate_flies_from_reports(reports) == ["RS2", "rs2"]

    def test_no_flies(self):
        assert aggregate_flies_from_reports([_report("A", [])]) == []
        assert aggregate_flies_from_reports([]) == []


class TestFormatSourceName:
    def test_single(self):
        assert format_source_name(1) == "fly shop"

    def test_two(self):
        assert format_source_name(2) == "2 fly shops"

    def test_many(self):
        assert format_source_name(7) == "7 fly shops"


class TestReportAggregator:
    @pytest.mark.asyncio
    async def test_single_report_passes_through(self):
        only = _report("Blue Shop", ["RS2"], "Midges midday.", conditions={"water_temp": "38F"})
        aggregated = await ReportAggregator().aggregate([only], "Blue River")
        assert aggregated.source_name == "Blue Shop"
        assert aggregated.extracted_flies == ["RS2"]
        assert aggregated.extracted_conditions == {"water_temp": "38F"}
        assert aggregated.effectiveness_notes == "Midges midday."
        assert aggregated.sources == [{"name": "Blue Shop", "url": only.url}]

    @pytest.mark.asyncio
    async def test_multiple_reports_without_oracle(self):
        reports = [
            _report("Shop A", ["Zebra Midge", "RS2"], "Midges midday.", day=6,
                    conditions={"water_temp": "38F"}),
            _report("Shop B", ["RS2", "Pheasant Tail"], "Nymphing is steady.", day=9,
                    conditions={"water_temp": "40F", "water_level": "low"}),
        ]
        aggregated = await ReportAggregator().aggregate(reports, "South Platte River")
        assert aggregated.source_name == "2 fly shops"
        assert aggregated.extracted_flies == ["Zebra Midge", "RS2", "Pheasant Tail"]
        assert aggregated.extracted_conditions == {"water_temp": "38F"}
        assert aggregated.effectiveness_notes == "Midges midday. Nymphing is steady."
        assert aggregated.report_date == datetime(2026, 2, 9, tzinfo=timezone.utc)
        assert [s["name"] for s in aggregated.sources] == ["Shop A", "Shop B"]

    @pytest.mark.asyncio
    async def test_oracle_summary_used(self):
        oracle = FakeOracle([json.dumps({"effectiveness": "Combined summary."})])
        reports = [_report("Shop A", ["RS2"], "One."), _report("Shop B", ["WD-40"], "Two.")]
        aggregated = await ReportAggregator(oracle).aggregate(reports, "South Platte River")
        assert aggregated.effectiveness_notes == "Combined summary."
        assert "Summarize these 2 fishing reports for South Platte River" in oracle.prompts[0]
        assert "Shop A: One. Flies: RS2" in oracle.prompts[0]

    @pytest.mark.asyncio
    async def test_oracle_failure_falls_back_to_joined_narratives(self):
        oracle = FakeOracle([OracleError("overloaded")])
        reports = [_report("Shop A", ["RS2"], "One."), _report("Shop B", ["WD-40"], "Two.")]
        aggregated = await ReportAggregator(oracle).aggregate(reports, "South Platte River")
        assert aggregated.effectiveness_notes == "One. Two."

    @pytest.mark.asyncio
    async def test_empty_input_rejected(self):
        with pytest.raises(ValueError):
            await ReportAggregator().aggregate([], "Blue River")


class TestFishingReportStore:
    def _aggregated(self, flies=("RS2",)):
        return AggregatedFishingReport(
            source_name="2 fly shops",
            sources=[{"name": "Shop A", "url": "https://a.example"}],
            extracted_flies=list(flies),
            extracted_conditions={"water_temp": "38F"},
            effectiveness_notes="Good.",
            report_date=datetime(2026, 2, 8, tzinfo=timezone.utc),
        )

    def test_upsert_sets_three_day_expiry(self, db, clock):
        store = FishingReportStore(db, now=clock)
        saved = store.upsert("water-1", "Blue River", self._aggregated())
        assert saved.created_at == clock()
        assert saved.expires_at == datetime(2026, 2, 13, 15, 0, tzinfo=timezone.utc)

    def test_round_trip_through_table(self, db, clock):
        store = FishingReportStore(db, now=clock)
        store.upsert("water-1", "Blue River", self._aggregated())
        cached = store.get_current("water-1", "Blue River")
        assert cached.extracted_flies == ["RS2"]
        assert cached.extracted_conditions == {"water_temp": "38F"}
        assert cached.report_date == datetime(2026, 2, 8, tzinfo=timezone.utc)
        assert cached.expires_at == datetime(2026, 2, 13, 15, 0, tzinfo=timezone.utc)

    def test_expired_report_not_returned(self, db, clock):
        store = FishingReportStore(db, now=clock)
        store.upsert("water-1", "Blue River", self._aggregated())
        clock.advance(days=3, seconds=1)
        assert store.get_current("water-1", "Blue River") is None

    def test_same_day_upsert_replaces_row(self, db, clock):
        store = FishingReportStore(db, now=clock)
        store.upsert("water-1", "Blue River", self._aggregated(["RS2"]))
        clock.advance(hours=2)
        store.upsert("water-1", "Blue River", self._aggregated(["Zebra Midge"]))
        assert store.get_current("water-1", "Blue River").extracted_flies == ["Zebra Midge"]

    def test_newest_of_several_days_wins(self, db, clock):
        store = FishingReportStore(db, now=clock)
        store.upsert("water-1", "Blue River", self._aggregated(["RS2"]))
        clock.advance(days=1)
        store.upsert("water-1", "Blue River", self._aggregated(["Zebra Midge"]))
        assert store.get_current("water-1", "Blue River").extracted_flies == ["Zebra Midge"]

    def test_keyed_by_name_without_id(self, db, clock):
        store = FishingReportStore(db, now=clock)
        store.upsert(None, "Unlisted Creek", self._aggregated())
        assert store.get_current(None, "Unlisted Creek") is not None
        assert store.get_current(None, "Other Creek") is None
        assert store.get_current("water-1", "Unlisted Creek") is None
