from __future__ import annotations
import math
from datetime import date, timedelta
from typing import Any, Mapping, Optional, Tuple

from core_config.constants import DEFAULT_DAYS_PER_WEEK, DEFAULT_TIMEFRAME_DAYS
from core_models.ontology import parse_date


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def calendar_duration(start_date: Any, end_date: Any) -> int:
    """Calendar days between two dates, both ends included. 0 when either is unparseable."""
    start, end = parse_date(start_date), parse_date(end_date)
    if start is None or end is None:
        return 0
    return abs((end - start).days) + 1


def working_days(start_date: Any, end_date: Any, days_per_week: float = DEFAULT_DAYS_PER_WEEK) -> int:
    """Approximate working days: calendar span scaled by daysPerWeek/7."""
    start, end = parse_date(start_date), parse_date(end_date)
    if start is None or end is None:
        return 0
    total = max(0, (end - start).days)
    return _round_half_up(total * (days_per_week / 7.0))


def end_date_from_duration(start_date: Any, duration_days: Any, days_per_week: float = DEFAULT_DAYS_PER_WEEK) -> Optional[str]:
    start = parse_date(start_date)
    if start is None:
        return None
    try:
        days = float(duration_days)
    except (TypeError, ValueError):
        days = 0.0
    dpw = days_per_week if days_per_week and days_per_week > 0 else DEFAULT_DAYS_PER_WEEK
    return (start + timedelta(days=math.ceil(max(0.0, days) * (7.0 / dpw)))).isoformat()


def periods_overlap(start1: Any, end1: Any, start2: Any, end2: Any) -> bool:
    s1, e1, s2, e2 = (parse_date(v) for v in (start1, end1, start2, end2))
    if None in (s1, e1, s2, e2):
        return False
    return s1 <= e2 and s2 <= e1


def default_timeframe(season: Optional[Mapping[str, Any]] = None, today: Optional[date] = None) -> Tuple[str, str]:
    """A team's season when it carries both dates, else today plus the default window."""
    if isinstance(season, Mapping):
        start, end = parse_date(season.get("startDate")), parse_date(season.get("endDate"))
        if start is not None and end is not None:
            return start.isoformat(), end.isoformat()
    base = today or date.today()
    return base.isoformat(), (base + timedelta(days=DEFAULT_TIMEFRAME_DAYS)).isoformat()


__all__ = [
    "calendar_duration", "working_days", "end_date_from_duration",
    "periods_overlap", "default_timeframe",
]
