from datetime import date

from core_allocation.calendar import (
    calendar_duration, default_timeframe, end_date_from_duration, periods_overlap, working_days,
)


def test_calendar_duration_is_inclusive_and_order_free():
    assert calendar_duration("2024-01-01", "2024-01-10") == 10
    assert calendar_duration("2024-01-10", "2024-01-01") == 10
    assert calendar_duration("2024-01-01", "2024-01-01") == 1
    assert calendar_duration("garbage", "2024-01-01") == 0


def test_working_days_scale_by_days_per_week():
    assert working_days("2024-01-01", "2024-01-15") == 10
    assert working_days("2024-01-01", "2024-01-15", 4) == 8
    assert working_days("2024-01-15", "2024-01-01") == 0


def test_end_date_from_duration():
    assert end_date_from_duration("2024-01-01", 10) == "2024-01-15"
    assert end_date_from_duration("2024-01-01", 0) == "2024-01-01"
    assert end_date_from_duration(None, 5) is None


def test_periods_overlap_includes_touching_ends():
    assert periods_overlap("2024-01-01", "2024-01-05", "2024-01-05", "2024-01-09")
    assert not periods_overlap("2024-01-01", "2024-01-05", "2024-01-06", "2024-01-09")
    assert not periods_overlap(None, "2024-01-05", "2024-01-01", "2024-01-09")


def test_default_timeframe_uses_season_when_complete():
    season = {"startDate": "2024-04-01", "endDate": "2024-06-30"}
    assert default_timeframe(season) == ("2024-04-01", "2024-06-30")
    today = date(2024, 3, 1)
    assert default_timeframe({"startDate": "2024-04-01"}, today=today) == ("2024-03-01", "2024-03-31")
    assert default_timeframe(today=today) == ("2024-03-01", "2024-03-31")
