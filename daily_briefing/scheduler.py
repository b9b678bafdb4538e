"""
In-process task scheduler for the daemon mode.

Each task has one or more schedules in a single timezone: a daily "HH:MM"
clock time or a five-field cron expression ("0 8 * * 1-5", "*/30 * * * *",
"@weekly"). The loop polls the clock, starts due tasks on worker threads and
goes back to sleep. A task that is still running when its next slot comes up
is skipped for that slot.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta, timezone, tzinfo
import logging
import threading
import time as time_module
from typing import Any, Callable, Iterable

from .utils.logging import get_logger, log_event

_CRON_ALIASES = {
    "@hourly": "0 * * * *",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@weekly": "0 0 * * 0",
    "@monthly": "0 0 1 * *",
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
}

# minute, hour, day of month, month, day of week (0 and 7 are Sunday)
_CRON_BOUNDS = ((0, 59), (0, 23), (1, 31), (1, 12), (0, 7))

# Long enough to reach the next Feb 29 across a skipped leap year.
_CRON_SEARCH_DAYS = 366 * 8


def parse_run_time(value: str) -> time:
    """Parse "HH:MM" (24h) into a time.

    Raises:
        ValueError: If the value is not a valid clock time
    """
    hours, sep, minutes = value.strip().partition(":")
    if not sep or not hours.isdigit() or not minutes.isdigit() or len(minutes) != 2:
        raise ValueError(f"Invalid run time: {value!r} (expected HH:MM)")
    return time(int(hours), int(minutes))


def _parse_cron_field(text: str, low: int, high: int) -> frozenset[int]:
    values: set[int] = set()
    for part in text.split(","):
        base, slash, step_text = part.partition("/")
        step = 1
        if slash:
            if not step_text.isdigit() or int(step_text) == 0:
                raise ValueError(f"bad step in {part!r}")
            step = int(step_text)

        if base == "*":
            start, end = low, high
        elif "-" in base:
            first, _, last = base.partition("-")
            if not first.isdigit() or not last.isdigit():
                raise ValueError(f"bad range {part!r}")
            start, end = int(first), int(last)
        elif base.isdigit():
            start = int(base)
            end = high if slash else start
        else:
            raise ValueError(f"bad value {part!r}")

        if start < low or end > high or start > end:
            raise ValueError(f"{part!r} outside {low}-{high}")
        values.update(range(start, end + 1, step))
    return frozenset(values)


@dataclass(frozen=True)
class CronExpression:
    """A parsed five-field cron schedule.

    When both day of month and day of week are restricted, a day matches
    if either one does (classic cron behavior).
    """

    expression: str
    minutes: frozenset[int]
    hours: frozenset[int]
    days: frozenset[int]
    months: frozenset[int]
    weekdays: frozenset[int]  # 0 = Sunday
    any_day: bool = True
    any_weekday: bool = True

    @classmethod
    def parse(cls, value: str) -> CronExpression:
        """Parse a cron expression or an "@" alias.

        Raises:
            ValueError: If the expression is malformed or out of range
        """
        text = value.strip()
        fields = _CRON_ALIASES.get(text.lower(), text).split()
        if len(fields) != 5:
            raise ValueError(f"Invalid cron expression: {value!r} (expected 5 fields)")
        try:
            minutes, hours, days, months, weekdays = (
                _parse_cron_field(part, low, high) for part, (low, high) in zip(fields, _CRON_BOUNDS)
            )
        except ValueError as exc:
            raise ValueError(f"Invalid cron expression: {value!r} ({exc})") from None
        return cls(
            expression=text,
            minutes=minutes,
            hours=hours,
            days=days,
            months=months,
            weekdays=frozenset(day % 7 for day in weekdays),
            any_day=fields[2].startswith("*"),
            any_weekday=fields[4].startswith("*"),
        )

    @classmethod
    def daily(cls, at: time) -> CronExpression:
        return replace(cls.parse(f"{at.minute} {at.hour} * * *"), expression=at.strftime("%H:%M"))

    def matches_day(self, day: date) -> bool:
        if day.month not in self.months:
            return False
        in_month = day.day in self.days
        in_week = day.isoweekday() % 7 in self.weekdays
        if self.any_day or self.any_weekday:
            return in_month and in_week
        return in_month or in_week

    def next_after(self, after: datetime, tz: tzinfo) -> datetime:
        """First firing strictly after `after`, in `tz`.

        Raises:
            ValueError: If the expression never fires (e.g. "0 0 31 2 *")
        """
        local = after.astimezone(tz)
        slots = sorted(time(hour, minute) for hour in self.hours for minute in self.minutes)
        day = local.date()
        for _ in range(_CRON_SEARCH_DAYS):
            if self.matches_day(day):
                for slot in slots:
                    candidate = datetime.combine(day, slot, tzinfo=tz)
                    if candidate > local:
                        return candidate
            day += timedelta(days=1)
        raise ValueError(f"Schedule {self.expression!r} never fires")


def parse_schedule(value: str) -> CronExpression:
    """Parse a daily "HH:MM" time or a cron expression.

    Raises:
        ValueError: If the value is neither
    """
    text = value.strip()
    if text.startswith("@") or len(text.split()) > 1:
        return CronExpression.parse(text)
    return CronExpression.daily(parse_run_time(text))


def next_occurrence(
    schedules: Iterable[time | CronExpression], after: datetime, tz: tzinfo
) -> datetime:
    """Earliest firing strictly after `after` across `schedules`, in `tz`."""
    crons = [s if isinstance(s, CronExpression) else CronExpression.daily(s) for s in schedules]
    if not crons:
        raise ValueError("No run times given")
    return min(cron.next_after(after, tz) for cron in crons)


@dataclass
class ScheduledTask:
    name: str
    schedules: list[CronExpression]
    func: Callable[[], Any]
    enabled: bool = True
    next_run: datetime | None = None
    last_error: str | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def running(self) -> bool:
        return self._lock.locked()


class TaskScheduler:
    """Run named callables on daily clock times or cron schedules.

    Args:
        tz: Timezone the schedules are expressed in
        poll_seconds: Sleep between clock checks in `run_forever`
        max_workers: Threads available to tasks running at the same time
        logger: Logger for scheduler events
    """

    def __init__(
        self,
        tz: tzinfo,
        poll_seconds: float = 30.0,
        max_workers: int = 4,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] = time_module.sleep,
    ) -> None:
        self.tz = tz
        self.poll_seconds = poll_seconds
        self.logger = logger or get_logger("scheduler")
        self._tasks: dict[str, ScheduledTask] = {}
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="task")
        self._sleep = sleep
        self._stopped = False

    def register(
        self,
        name: str,
        schedules: Iterable[str] | str,
        func: Callable[[], Any],
        now: datetime | None = None,
    ) -> bool:
        """Register a task; duplicate names and invalid schedules are rejected with a log line."""
        if name in self._tasks:
            log_event(
                self.logger,
                f"Task {name} already scheduled, skipping",
                event="task_duplicate",
                level=logging.WARNING,
                task=name,
            )
            return False

        try:
            if isinstance(schedules, str):
                schedules = [schedules]
            parsed = [parse_schedule(value) for value in schedules]
            if not parsed:
                raise ValueError("no run times")
            next_run = next_occurrence(parsed, now or datetime.now(timezone.utc), self.tz)
        except ValueError as exc:
            log_event(
                self.logger,
                f"Invalid schedule for task {name}: {exc}",
                event="task_invalid_schedule",
                level=logging.ERROR,
                task=name,
            )
            return False

        task = ScheduledTask(name=name, schedules=parsed, func=func, next_run=next_run)
        self._tasks[name] = task
        log_event(
            self.logger,
            f"Task {name} scheduled at {', '.join(cron.expression for cron in parsed)}",
            event="task_scheduled",
            task=name,
            next_run=task.next_run.isoformat() if task.next_run else None,
        )
        return True

    def start_task(self, name: str) -> None:
        self._tasks[name].enabled = True

    def stop_task(self, name: str) -> None:
        self._tasks[name].enabled = False

    def tasks(self) -> list[ScheduledTask]:
        return list(self._tasks.values())

    def run_task(self, name: str) -> bool:
        """Run a task now on the calling thread.

        Returns:
            True if the task completed, False if it failed or was already running
        """
        task = self._tasks[name]
        if not task._lock.acquire(blocking=False):
            log_event(
                self.logger,
                f"Task {name} still running, skipping",
                event="task_overlap_skipped",
                level=logging.WARNING,
                task=name,
            )
            return False

        try:
            log_event(self.logger, f"Running task: {name}", event="task_start", task=name)
            task.func()
        except Exception as exc:  # noqa: BLE001
            task.last_error = f"{type(exc).__name__}: {exc}"
            self.logger.exception("Task %s failed", name)
            return False
        finally:
            task._lock.release()

        task.last_error = None
        log_event(self.logger, f"Task {name} completed", event="task_complete", task=name)
        return True

    def run_pending(self, now: datetime | None = None, wait_for: bool = False) -> list[str]:
        """Start every enabled task whose next slot is due.

        Missed slots collapse into one run; the next slot is computed from
        `now`. Returns the names of tasks that were started.
        """
        current = now or datetime.now(timezone.utc)
        started: list[str] = []
        futures: list[Future] = []
        for task in self._tasks.values():
            if not task.enabled or task.next_run is None or current < task.next_run:
                continue
            task.next_run = next_occurrence(task.schedules, current, self.tz)
            if task.running:
                log_event(
                    self.logger,
                    f"Task {task.name} still running, skipping",
                    event="task_overlap_skipped",
                    level=logging.WARNING,
                    task=task.name,
                )
                continue
            futures.append(self._executor.submit(self.run_task, task.name))
            started.append(task.name)

        if wait_for and futures:
            wait(futures)
        return started

    def run_forever(self) -> None:
        log_event(
            self.logger,
            f"Scheduler running with {len(self._tasks)} tasks",
            event="scheduler_start",
            tasks=sorted(self._tasks),
        )
        try:
            while not self._stopped:
                self.run_pending()
                self._sleep(self.poll_seconds)
        finally:
            self._executor.shutdown(wait=True)
            log_event(self.logger, "Scheduler stopped", event="scheduler_stop")

    def stop(self) -> None:
        self._stopped = True
