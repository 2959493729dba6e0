# Overview: Sales chart aggregation (daily and weekly buckets) over the sales ledger.

from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Iterable

from ..models import DailySaleRecord
from ..time_utils import parse_iso_date


class ReportError(Exception):
    """Raised when report generation fails."""


DAILY_WINDOW_DAYS = 7
WEEKLY_WINDOW_DAYS = 28


def week_of_year(d: date) -> int:
    """
    Week number counting Sunday-started weeks, where the partial week
    containing 1 January is week 1.
    """
    jan1 = date(d.year, 1, 1)
    past_days = (d - jan1).days
    jan1_weekday = (jan1.weekday() + 1) % 7  # Sunday=0
    return math.ceil((past_days + jan1_weekday + 1) / 7)


def _within(records: Iterable[DailySaleRecord], start: date, end: date) -> list[tuple[date, DailySaleRecord]]:
    selected = []
    for record in records:
        try:
            day = parse_iso_date(record.date)
        except ValueError:
            continue
        if day is not None and start <= day <= end:
            selected.append((day, record))
    return selected


def sales_overview(records: Iterable[DailySaleRecord], *, mode: str = "daily", today: date | None = None) -> dict:
    today = today or date.today()

    if mode == "daily":
        start = today - timedelta(days=DAILY_WINDOW_DAYS - 1)
        selected = _within(records, start, today)

        by_day: dict[date, float] = {}
        for offset in range(DAILY_WINDOW_DAYS - 1, -1, -1):
            by_day[today - timedelta(days=offset)] = 0.0
        for day, record in selected:
            by_day[day] += record.revenue

        chart = [
            {"name": day.strftime("%a"), "date": day.isoformat(), "revenue": revenue}
            for day, revenue in by_day.items()
        ]
    elif mode == "weekly":
        start = today - timedelta(days=WEEKLY_WINDOW_DAYS - 1)
        selected = _within(records, start, today)

        by_week: dict[tuple[int, int], float] = {}
        for day, record in selected:
            bucket = (day.year, week_of_year(day))
            by_week[bucket] = by_week.get(bucket, 0.0) + record.revenue

        chart = [
            {"name": f"Week {week}", "year": year, "revenue": revenue}
            for (year, week), revenue in sorted(by_week.items())
        ]
    else:
        raise ReportError("mode must be daily or weekly")

    total_revenue = sum(record.revenue for _, record in selected)
    total_transactions = sum(record.transactions for _, record in selected)
    avg_sale_value = total_revenue / total_transactions if total_transactions > 0 else 0.0

    return {
        "mode": mode,
        "chart": chart,
        "total_revenue": round(total_revenue, 2),
        "total_transactions": total_transactions,
        "avg_sale_value": round(avg_sale_value, 2),
    }
