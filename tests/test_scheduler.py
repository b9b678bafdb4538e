"""Tests for the task scheduler and its schedule formats."""

from datetime import datetime, time, timezone
from zoneinfo import ZoneInfo

import pytest

from daily_briefing.scheduler import (
    CronExpression,
    TaskScheduler,
    next_occurrence,
    parse_run_time,
    parse_schedule,
)

TZ = ZoneInfo("Asia/Shanghai")


def _local(hour: int, minute: int = 0, day: int = 1) -> datetime:
    return datetime(2024, 5, day, hour, minute, tzinfo=TZ)


def test_parse_run_time():
    assert parse_run_time("08:00") == time(8, 0)
    assert parse_run_time(" 6:15 ") == time(6, 15)
    for bad in ("8", "8:5", "25:00", "aa:bb", ""):
        with pytest.raises(ValueError):
            parse_run_time(bad)


def test_next_occurrence_today_and_tomorrow():
    slots = [time(18, 0), time(6, 0), time(12, 0)]

    assert next_occurrence(slots, _local(7), TZ) == _local(12)
    assert next_occurrence(slots, _local(12), TZ) == _local(18)
    assert next_occurrence(slots, _local(19), TZ) == _local(6, day=2)


def test_next_occurrence_converts_from_utc():
    after = datetime(2024, 5, 1, 0, 30, tzinfo=timezone.utc)  # 08:30 in Shanghai

    assert next_occurrence([time(8, 0)], after, TZ) == _local(8, day=2)


def test_cron_every_fifteen_minutes():
    cron = CronExpression.parse("*/15 * * * *")

    assert cron.next_after(_local(10, 7), TZ) == _local(10, 15)
    assert cron.next_after(_local(10, 45), TZ) == _local(11, 0)
    assert cron.next_after(_local(23, 50), TZ) == _local(0, day=2)


def test_cron_weekly_on_monday():
    # 2024-05-01 is a Wednesday.
    cron = CronExpression.parse("0 8 * * 1")

    assert cron.next_after(_local(9), TZ) == _local(8, day=6)
    assert cron.next_after(_local(8, day=6), TZ) == _local(8, day=13)


def test_cron_weekday_range_and_sunday_as_seven():
    weekdays = CronExpression.parse("30 7 * * 1-5")
    sunday = CronExpression.parse("0 9 * * 7")

    # Friday 2024-05-03 evening rolls over the weekend to Monday.
    assert weekdays.next_after(_local(20, day=3), TZ) == _local(7, 30, day=6)
    assert sunday.next_after(_local(12), TZ) == _local(9, day=5)


def test_cron_day_of_month_or_day_of_week():
    cron = CronExpression.parse("0 6 15 * 5")

    # Friday the 3rd matches on weekday; the 15th (a Wednesday) on day of month.
    assert cron.next_after(_local(7), TZ) == _local(6, day=3)
    assert cron.next_after(_local(7, day=10), TZ) == _local(6, day=15)


def test_cron_aliases_and_lists():
    assert CronExpression.parse("@daily").next_after(_local(1), TZ) == _local(0, day=2)
    assert CronExpression.parse("@hourly").next_after(_local(10, 30), TZ) == _local(11)
    assert CronExpression.parse("0 6,12,18 * * *").next_after(_local(12), TZ) == _local(18)


def test_cron_rejects_malformed_expressions():
    for bad in ("61 * * * *", "0 8 * *", "0 24 * * *", "*/0 * * * *", "0 8 * * mon", "5-1 * * * *", "@often"):
        with pytest.raises(ValueError):
            CronExpression.parse(bad)


def test_cron_that_never_fires_is_an_error():
    with pytest.raises(ValueError, match="never fires"):
        CronExpression.parse("0 0 31 2 *").next_after(_local(0), TZ)


def test_parse_schedule_accepts_clock_times_and_cron():
    assert parse_schedule("08:00").next_after(_local(7), TZ) == _local(8)
    assert parse_schedule("08:00").expression == "08:00"
    assert parse_schedule("0 8 * * 1").expression == "0 8 * * 1"
    with pytest.raises(ValueError):
        parse_schedule("later")


def test_next_occurrence_mixes_times_and_cron():
    schedules = [time(18, 0), CronExpression.parse("30 9 * * *")]

    assert next_occurrence(schedules, _local(8), TZ) == _local(9, 30)
    assert next_occurrence(schedules, _local(10), TZ) == _local(18)


def test_register_accepts_cron_schedules():
    scheduler = TaskScheduler(TZ)

    assert scheduler.register("fetch", ["0 */2 * * *", "06:15"], lambda: None, now=_local(5))
    assert scheduler.register("briefing", "0 8 * * 1", lambda: None, now=_local(5))
    assert not scheduler.register("bad", ["61 * * * *"], lambda: None, now=_local(5))
    assert not scheduler.register("short", ["0 8 * *"], lambda: None, now=_local(5))
    assert not scheduler.register("never", ["0 0 31 2 *"], lambda: None, now=_local(5))

    fetch, briefing = scheduler.tasks()
    assert fetch.next_run == _local(6)
    assert briefing.next_run == _local(8, day=6)


def test_register_rejects_duplicates_and_bad_times():
    scheduler = TaskScheduler(TZ)

    assert scheduler.register("fetch", ["06:00"], lambda: None, now=_local(5))
    assert not scheduler.register("fetch", ["07:00"], lambda: None, now=_local(5))
    assert not scheduler.register("broken", ["later"], lambda: None, now=_local(5))
    assert not scheduler.register("empty", [], lambda: None, now=_local(5))
    assert [task.name for task in scheduler.tasks()] == ["fetch"]
    assert scheduler.tasks()[0].next_run == _local(6)


def test_run_pending_runs_due_tasks_once_per_slot():
    calls: list[str] = []
    scheduler = TaskScheduler(TZ)
    scheduler.register("fetch", ["06:00", "12:00"], lambda: calls.append("fetch"), now=_local(5))
    scheduler.register("briefing", ["08:00"], lambda: calls.append("briefing"), now=_local(5))

    assert scheduler.run_pending(now=_local(5, 59), wait_for=True) == []
    assert scheduler.run_pending(now=_local(6, 0), wait_for=True) == ["fetch"]
    assert scheduler.run_pending(now=_local(6, 1), wait_for=True) == []
    # Missed slots collapse into a single run.
    assert scheduler.run_pending(now=_local(13), wait_for=True) == ["fetch", "briefing"]

    assert sorted(calls) == ["briefing", "fetch", "fetch"]
    fetch = scheduler.tasks()[0]
    assert fetch.next_run == _local(6, day=2)


def test_failing_task_does_not_stop_others():
    calls: list[str] = []

    def boom():
        raise RuntimeError("feed server down")

    scheduler = TaskScheduler(TZ)
    scheduler.register("fetch", ["06:00"], boom, now=_local(5))
    scheduler.register("process", ["06:00"], lambda: calls.append("process"), now=_local(5))

    started = scheduler.run_pending(now=_local(6), wait_for=True)

    assert started == ["fetch", "process"]
    assert calls == ["process"]
    failed = scheduler.tasks()[0]
    assert failed.last_error == "RuntimeError: feed server down"
    assert failed.running is False
    assert failed.next_run == _local(6, day=2)


def test_task_never_overlaps_itself():
    scheduler = TaskScheduler(TZ)
    nested: list[bool] = []
    scheduler.register("briefing", ["08:00"], lambda: nested.append(scheduler.run_task("briefing")), now=_local(5))

    assert scheduler.run_task("briefing") is True
    assert nested == [False]


def test_stopped_task_is_not_run():
    calls: list[str] = []
    scheduler = TaskScheduler(TZ)
    scheduler.register("fetch", ["06:00"], lambda: calls.append("fetch"), now=_local(5))

    scheduler.stop_task("fetch")
    assert scheduler.run_pending(now=_local(6), wait_for=True) == []

    scheduler.start_task("fetch")
    assert scheduler.run_pending(now=_local(6), wait_for=True) == ["fetch"]
    assert calls == ["fetch"]


def test_run_forever_polls_until_stopped():
    sleeps: list[float] = []
    scheduler = TaskScheduler(TZ, poll_seconds=5)

    def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)
        if len(sleeps) == 3:
            scheduler.stop()

    scheduler._sleep = fake_sleep
    scheduler.run_forever()

    assert sleeps == [5, 5, 5]
