"""
Unit tests for year-over-year trend analysis.
"""

import pytest

from marketplace.services.trends import analyze_metric, calculate_trends, percent_change

pytestmark = pytest.mark.unit


class TestPercentChange:

    def test_growth(self):
        assert percent_change(100, 120) == 20

    def test_relative_to_absolute_previous(self):
        assert percent_change(-100, -50) == 50

    def test_zero_previous(self):
        assert percent_change(0, 50) is None


class TestAnalyzeMetric:

    def test_single_point(self):
        assert analyze_metric([(2023, 100.0)]) == {"message": "Insufficient data points for trend analysis"}

    def test_increasing_and_accelerating(self):
        trend = analyze_metric([(2021, 100.0), (2022, 110.0), (2023, 132.0)])

        assert trend["direction"] == "increasing"
        assert trend["momentum"] == "accelerating"
        assert trend["percent_change"] == pytest.approx(20.0)
        assert trend["latest_value"] == 132.0
        assert trend["average_annual_change"] == pytest.approx(16.0)
        assert [c["to"] for c in trend["changes"]] == [2022, 2023]

    def test_increasing_and_decelerating(self):
        trend = analyze_metric([(2021, 100.0), (2022, 150.0), (2023, 160.0)])

        assert trend["direction"] == "increasing"
        assert trend["momentum"] == "decelerating"

    def test_decreasing(self):
        trend = analyze_metric([(2021, 100.0), (2022, 90.0), (2023, 70.0)])

        assert trend["direction"] == "decreasing"
        assert trend["momentum"] == "accelerating"

    def test_two_points_is_stable_momentum(self):
        trend = analyze_metric([(2022, 100.0), (2023, 100.0)])

        assert trend["direction"] == "stable"
        assert trend["momentum"] == "stable"

    def test_zero_previous_value_gives_stable_momentum(self):
        trend = analyze_metric([(2021, 0.0), (2022, 10.0), (2023, 20.0)])

        assert trend["changes"][0]["percent_change"] is None
        assert trend["momentum"] == "stable"


class TestCalculateTrends:

    def test_insufficient_rows(self):
        result = calculate_trends([{"fiscal_year": 2023, "revenue_current": 1}])

        assert result == {"message": "Insufficient data for trend analysis", "trends": {}}

    def test_rows_sorted_and_nulls_skipped(self):
        rows = [
            {"fiscal_year": 2023, "revenue_current": 300, "quick_ratio": None},
            {"fiscal_year": 2021, "revenue_current": 100, "quick_ratio": 1.0},
            {"fiscal_year": 2022, "revenue_current": 200, "quick_ratio": 1.2},
        ]

        trends = calculate_trends(rows, ["revenue_current", "quick_ratio"])

        assert trends["revenue_current"]["latest_value"] == 300
        assert trends["revenue_current"]["changes"][0]["from"] == 2021
        assert trends["quick_ratio"]["latest_value"] == 1.2
        assert len(trends["quick_ratio"]["changes"]) == 1

    def test_metric_without_data(self):
        rows = [{"fiscal_year": 2022}, {"fiscal_year": 2023}]

        trends = calculate_trends(rows, ["current_ratio"])

        assert "message" in trends["current_ratio"]
