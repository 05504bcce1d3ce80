"""Tests for status aggregation."""
from __future__ import annotations

import pytest

from framemap.models import CountryRecord, Status
from framemap.stats import TRACKED_STATUSES, StatusStat, aggregate, format_stats_lines
from framemap.store import EntityStore


class TestAggregate:
    """Counts and percentages per tracked status."""

    def test_percentages_use_full_total(self):
        records = [
            CountryRecord(id="A1", name="a", status=Status.COMPLETE),
            CountryRecord(id="A2", name="b", status=Status.COMPLETE),
            CountryRecord(id="A3", name="c", status=Status.ACTIVE),
        ]
        stats = aggregate(records)
        assert stats[Status.COMPLETE] == StatusStat(count=2, percentage=66.7)
        assert stats[Status.MISSING_INFO] == StatusStat(count=0, percentage=0.0)
        assert Status.ACTIVE not in stats

    def test_empty_input(self):
        stats = aggregate([])
        assert set(stats) == set(TRACKED_STATUSES)
        assert all(stat == StatusStat(count=0, percentage=0.0) for stat in stats.values())

    def test_shares_with_active_sum_to_hundred(self):
        statuses = [
            Status.COMPLETE,
            Status.NO_EPOCH,
            Status.NO_EPOCH,
            Status.MISSING_INFO,
            Status.LOCAL_NETWORK,
            Status.ACTIVE,
            Status.ACTIVE,
        ]
        records = [CountryRecord(id=f"C{idx}", name=f"c{idx}", status=s) for idx, s in enumerate(statuses)]
        stats = aggregate(records)
        active_share = round(statuses.count(Status.ACTIVE) / len(statuses) * 100, 1)
        total = sum(stat.percentage for stat in stats.values()) + active_share
        assert total == pytest.approx(100.0, abs=0.05 * (len(TRACKED_STATUSES) + 1))
        assert sum(stat.count for stat in stats.values()) == len(statuses) - 2

    def test_single_country_marked_complete(self):
        store = EntityStore([CountryRecord(id="SEN", name="Senegal")])
        store.upsert(CountryRecord(id="SEN", name="Senegal", reference_frame="ITRF2008", status=Status.COMPLETE))
        stats = aggregate(store.query(lambda record: True))
        assert stats[Status.COMPLETE] == StatusStat(count=1, percentage=100.0)
        for status in TRACKED_STATUSES[1:]:
            assert stats[status] == StatusStat(count=0, percentage=0.0)

    def test_format_lines_use_labels(self, sample_records):
        lines = format_stats_lines(aggregate(sample_records), {Status.COMPLETE: "Done"})
        assert len(lines) == len(TRACKED_STATUSES)
        assert lines[0].startswith("Done")
        assert lines[0].endswith("33.3%")
        assert lines[1].startswith("NO_EPOCH")
