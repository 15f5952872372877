"""
Unit tests for per-region summaries and the final ordering.
"""

import pytest

from seasonrange.pipeline.models import RegionMonthStat, RegionSummary
from seasonrange.pipeline.ranking import format_summary, rank_summaries, summarize_region


def stats_for(region, temps, precip=None):
    return [
        RegionMonthStat(region, month, temp, precip)
        for month, temp in temps.items()
    ]


class TestSummarizeRegion:
    """Test cases for picking the warmest and coldest month."""

    def test_high_low_and_spread(self):
        summary = summarize_region("MN", stats_for("MN", {1: -10.0, 4: 45.0, 7: 60.0}))

        assert summary.high_month == 7
        assert summary.high_avg_temp == 60.0
        assert summary.low_month == 1
        assert summary.low_avg_temp == -10.0
        assert summary.spread == pytest.approx(70.0)

    def test_bounds_hold_for_every_month(self):
        stats = stats_for("CA", {m: 50.0 + (m * 7) % 13 for m in range(1, 13)})
        summary = summarize_region("CA", stats)

        assert all(summary.high_avg_temp >= s.avg_temp for s in stats)
        assert all(summary.low_avg_temp <= s.avg_temp for s in stats)
        assert summary.spread >= 0

    def test_ties_go_to_lowest_month(self):
        summary = summarize_region("PR", stats_for("PR", {8: 80.0, 3: 80.0, 12: 75.0, 1: 75.0}))

        assert summary.high_month == 3
        assert summary.low_month == 1

    def test_single_month_has_zero_spread(self):
        summary = summarize_region("GU", stats_for("GU", {5: 82.0}, precip=0.2))

        assert summary.high_month == summary.low_month == 5
        assert summary.spread == 0.0
        assert summary.high_avg_precip == 0.2

    def test_empty_region_is_excluded(self):
        assert summarize_region("XX", []) is None


class TestRankSummaries:
    """Test cases for the global ordering."""

    def test_ascending_spread(self):
        summaries = [
            summarize_region("MN", stats_for("MN", {1: -10.0, 7: 60.0})),
            summarize_region("HI", stats_for("HI", {1: 70.0, 7: 75.0})),
            summarize_region("CA", stats_for("CA", {1: 50.0, 7: 73.0})),
        ]

        ranked = rank_summaries(summaries)

        assert [s.region_code for s in ranked] == ["HI", "CA", "MN"]
        spreads = [s.spread for s in ranked]
        assert spreads == sorted(spreads)

    def test_equal_spreads_order_by_region(self):
        summaries = [
            summarize_region("WY", stats_for("WY", {1: 0.0, 7: 10.0})),
            summarize_region("AK", stats_for("AK", {1: -20.0, 7: -10.0})),
        ]

        assert [s.region_code for s in rank_summaries(summaries)] == ["AK", "WY"]


class TestFormatSummary:
    """Test cases for output rows."""

    def setup_method(self):
        self.summary = RegionSummary("CA", 7, 73.66812, 0.01234, 12, 48.0544, None, 25.61372)

    def test_numeric_months_and_rounding(self):
        row = format_summary(self.summary)

        assert row == ("CA", "7", 73.668, 0.012, "12", 48.054, None, 25.614)

    def test_month_names(self):
        row = format_summary(self.summary, month_names=True)

        assert row[1] == "JULY"
        assert row[4] == "DECEMBER"

    def test_no_rounding(self):
        row = format_summary(self.summary, precision=None)

        assert row[2] == 73.66812
