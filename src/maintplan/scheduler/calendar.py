"""Work-calendar clock: daily work window with breaks."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from maintplan.logger import get_logger
from maintplan.models import Plan, at_minute, parse_hhmm

logger = get_logger()

_ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class BreakWindow:
    """A break as minute-of-day interval [start, end)."""

    start: int
    end: int


def _minute_of_day(dt: datetime) -> float:
    return dt.hour * 60 + dt.minute + (dt.second + dt.microsecond / 1_000_000) / 60


def _midnight(dt: datetime) -> datetime:
    return datetime.combine(dt.date(), time())


class WorkCalendar:
    """Advances instants by work hours, skipping nights and breaks.

    The calendar is a pure function of the work window and the breaks; it
    holds no state between calls.
    """

    def __init__(
        self,
        work_start: int,
        work_end: int,
        breaks: list[BreakWindow] | None = None,
        max_iterations: int = 10000,
    ) -> None:
        """Initialize the calendar.

        Args:
            work_start: Daily work start, minutes after midnight
            work_end: Daily work end, minutes after midnight
            breaks: Daily breaks as minute-of-day intervals
            max_iterations: Bound on clock steps per advance() call
        """
        self.work_start = work_start
        self.work_end = work_end
        self.breaks = sorted(breaks or [], key=lambda b: b.start)
        self.max_iterations = max_iterations

    @classmethod
    def from_plan(cls, plan: Plan, max_iterations: int = 10000) -> WorkCalendar:
        """Build the calendar of a plan."""
        return cls(
            work_start=parse_hhmm(plan.work_start_time),
            work_end=parse_hhmm(plan.work_end_time),
            breaks=[BreakWindow(b.start_minute, b.end_minute) for b in plan.breaks],
            max_iterations=max_iterations,
        )

    def advance(self, start: datetime, hours: float) -> datetime:
        """Return the instant reached after ``hours`` of work from ``start``.

        Zero, negative or NaN durations return ``start`` unchanged. If the
        bound on iterations is hit (e.g. an empty work window, or a duration
        too large to represent) the instant reached so far is returned.
        """
        current = start
        if math.isnan(hours) or hours <= 0:
            return current
        try:
            remaining = timedelta(hours=hours)
        except OverflowError:
            # Beyond any representable span; the iteration bound ends the walk
            remaining = timedelta.max

        for _ in range(self.max_iterations):
            minute = _minute_of_day(current)
            midnight = _midnight(current)

            if minute < self.work_start:
                current = midnight + timedelta(minutes=self.work_start)
                continue

            if minute >= self.work_end:
                current = midnight + _ONE_DAY + timedelta(minutes=self.work_start)
                continue

            in_break = self._break_at(minute)
            if in_break is not None:
                current = midnight + timedelta(minutes=in_break.end)
                continue

            next_event = self.work_end
            for brk in self.breaks:
                if brk.start > minute:
                    next_event = min(next_event, brk.start)
                    break

            boundary = midnight + timedelta(minutes=next_event)
            available = boundary - current
            if available >= remaining:
                return current + remaining

            current = boundary
            remaining -= available

        logger.debug(f"Clock stopped after {self.max_iterations} steps at {current}")
        return current

    def _break_at(self, minute: float) -> BreakWindow | None:
        for brk in self.breaks:
            if brk.start <= minute < brk.end:
                return brk
        return None

    @property
    def daily_work_hours(self) -> float:
        """Net work hours per day (window minus breaks), never negative."""
        break_minutes = sum(b.end - b.start for b in self.breaks)
        return max(0.0, (self.work_end - self.work_start - break_minutes) / 60)

    def capacity_hours(self, plan_start: datetime, plan_end: datetime) -> float:
        """Work capacity of a window: whole days spanned times net daily hours."""
        span_days = (plan_end - plan_start) / _ONE_DAY
        days = max(0, math.ceil(span_days))
        return days * self.daily_work_hours

    def non_working_intervals(
        self, first_day: date, last_day: date
    ) -> list[tuple[datetime, datetime]]:
        """Nights and breaks for each day in [first_day, last_day], sorted by start."""
        intervals: list[tuple[datetime, datetime]] = []
        day = first_day
        while day <= last_day:
            work_end = at_minute(day, self.work_end)
            next_start = at_minute(day + _ONE_DAY, self.work_start)
            if work_end < next_start:
                intervals.append((work_end, next_start))
            for brk in self.breaks:
                intervals.append((at_minute(day, brk.start), at_minute(day, brk.end)))
            day += _ONE_DAY
        intervals.sort(key=lambda iv: iv[0])
        return intervals
