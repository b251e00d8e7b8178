"""Stats: pure aggregation helpers for dashboard, admin and feedback statistics.

Invariants:
    - No IO: callers pass rows or counts already fetched
    - Percentages are rounded to whole numbers
    - NPS buckets: promoters >= 9, passives 7..8, detractors <= 6
"""

from collections import Counter
from datetime import date, datetime, timedelta, timezone


def calculate_percentage_change(old: int, new: int) -> int | None:
    if old == 0 and new == 0:
        return None
    if old == 0:
        return 100
    return round((new - old) / old * 100)


def utc_day_bounds(now: datetime) -> tuple[datetime, datetime, datetime]:
    """(start_of_yesterday, start_of_today, start_of_tomorrow) in UTC."""
    today = now.astimezone(timezone.utc).replace(
        hour=0, minute=0, second=0, microsecond=0,
    )
    return today - timedelta(days=1), today, today + timedelta(days=1)


def count_by(rows: list[dict], key: str) -> dict[str, int]:
    return dict(Counter(row.get(key) for row in rows if row.get(key) is not None))


def nps_summary(scores: list[int]) -> dict:
    total = len(scores)
    promoters = sum(1 for s in scores if s >= 9)
    passives = sum(1 for s in scores if 7 <= s <= 8)
    detractors = sum(1 for s in scores if s <= 6)
    return {
        "total": total,
        "average": sum(scores) / total if total else 0,
        "promoters": promoters,
        "passives": passives,
        "detractors": detractors,
        "score": round((promoters - detractors) / total * 100) if total else 0,
    }


def month_keys(now: datetime, months: int = 6) -> list[str]:
    """YYYY-MM keys for the last `months` months, oldest first, current included."""
    year, month = now.year, now.month
    keys = []
    for _ in range(months):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


def bucket_by_month(timestamps: list[datetime], now: datetime, months: int = 6) -> list[dict]:
    keys = month_keys(now, months)
    counts = Counter(ts.strftime("%Y-%m") for ts in timestamps)
    return [{"month": key, "count": counts.get(key, 0)} for key in keys]


def bucket_by_day(timestamps: list[datetime], now: datetime, days: int = 30) -> list[dict]:
    end: date = now.astimezone(timezone.utc).date()
    counts = Counter(ts.date() for ts in timestamps)
    series = []
    for offset in range(days - 1, -1, -1):
        day = end - timedelta(days=offset)
        series.append({"date": day.isoformat(), "count": counts.get(day, 0)})
    return series
