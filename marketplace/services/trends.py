"""
Year-over-year trend analysis over the financial metrics history.
"""

from typing import Any, Mapping, Optional, Sequence

KEY_METRICS = (
    "revenue_current",
    "revenue_growth_rate",
    "operational_cash_flow",
    "return_on_equity",
    "debt_to_equity_ratio",
    "quick_ratio",
    "current_ratio",
)


def _get(row: Any, field: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(field)
    return getattr(row, field, None)


def percent_change(previous: float, current: float) -> Optional[float]:
    """Percent change relative to |previous|; None when previous is zero."""
    if previous == 0:
        return None
    return (current - previous) / abs(previous) * 100


def _direction(change: float) -> str:
    if change > 0:
        return "increasing"
    if change < 0:
        return "decreasing"
    return "stable"


def _momentum(direction: str, changes: list[dict]) -> str:
    if len(changes) < 2:
        return "stable"
    latest = changes[-1]["percent_change"]
    previous = changes[-2]["percent_change"]
    if latest is None or previous is None:
        return "stable"

    if direction == "increasing":
        return "accelerating" if latest > previous else "decelerating"
    if direction == "decreasing":
        return "accelerating" if latest < previous else "decelerating"
    return "stable"


def analyze_metric(points: Sequence[tuple[int, float]]) -> dict:
    """
    Trend for one metric.

    Args:
        points: (fiscal_year, value) pairs in ascending year order, nulls removed

    Returns:
        Trend dict, or a message when fewer than two points exist
    """
    if len(points) < 2:
        return {"message": "Insufficient data points for trend analysis"}

    changes = []
    for (prev_year, prev_value), (year, value) in zip(points, points[1:]):
        changes.append({
            "from": prev_year,
            "to": year,
            "change": value - prev_value,
            "percent_change": percent_change(prev_value, value),
        })

    first_year, first_value = points[0]
    last_year, last_value = points[-1]
    total_change = last_value - first_value
    years_diff = last_year - first_year

    latest = changes[-1]
    direction = _direction(latest["change"])

    return {
        "direction": direction,
        "momentum": _momentum(direction, changes),
        "average_annual_change": total_change / years_diff if years_diff else total_change,
        "percent_change": latest["percent_change"],
        "latest_value": last_value,
        "changes": changes,
    }


def calculate_trends(rows: Sequence[Any], metrics: Sequence[str] = KEY_METRICS) -> dict:
    """
    Calculate year-over-year trends for the key financial metrics.

    Rows may be ORM objects or dicts carrying fiscal_year and the metric
    fields; their order does not matter.

    Returns:
        {"message", "trends": {}} when fewer than two rows are given,
        otherwise {metric_name: trend} for each requested metric
    """
    if len(rows) < 2:
        return {"message": "Insufficient data for trend analysis", "trends": {}}

    ordered = sorted(rows, key=lambda r: _get(r, "fiscal_year"))

    trends = {}
    for metric in metrics:
        points = [
            (_get(row, "fiscal_year"), float(_get(row, metric)))
            for row in ordered
            if _get(row, metric) is not None
        ]
        trends[metric] = analyze_metric(points)

    return trends
