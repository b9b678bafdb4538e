from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from daily_briefing.core.dates import day_bounds, ensure_aware, from_epoch, parse_day, to_epoch, today


def test_day_bounds_are_inclusive_in_target_timezone():
    start, end = day_bounds(date(2024, 5, 1), ZoneInfo("Asia/Shanghai"))

    assert start == datetime(2024, 4, 30, 16, 0, tzinfo=timezone.utc)
    assert end == datetime(2024, 5, 1, 15, 59, 59, 999999, tzinfo=timezone.utc)


def test_day_bounds_follow_dst_transitions():
    start, end = day_bounds(date(2024, 3, 10), ZoneInfo("America/New_York"))
    span = end.astimezone(timezone.utc) - start.astimezone(timezone.utc) + timedelta(microseconds=1)

    assert span == timedelta(hours=23)


def test_day_bounds_return_fresh_objects():
    first = day_bounds(date(2024, 5, 1), timezone.utc)
    second = day_bounds(date(2024, 5, 1), timezone.utc)

    assert first == second
    assert first[0] is not second[0]


def test_today_uses_target_timezone():
    now = datetime(2024, 5, 1, 17, 0, tzinfo=timezone.utc)

    assert today(ZoneInfo("Asia/Shanghai"), now) == date(2024, 5, 2)
    assert today(timezone.utc, now) == date(2024, 5, 1)


def test_epoch_round_trip_keeps_instant():
    value = datetime(2024, 5, 1, 10, 30, tzinfo=ZoneInfo("Asia/Shanghai"))

    assert from_epoch(to_epoch(value)) == value
    assert to_epoch(None) is None
    assert from_epoch(None) is None


def test_ensure_aware_treats_naive_as_utc():
    assert ensure_aware(datetime(2024, 5, 1)).tzinfo is timezone.utc


def test_parse_day_rejects_garbage():
    assert parse_day(" 2024-05-01 ") == date(2024, 5, 1)
    with pytest.raises(ValueError):
        parse_day("May 1st")
