"""
Date window calculation for the day, week and month calendar views.

Weeks start on Monday. Month windows cover the calendar month, but the list
of rendered days is padded out to whole weeks; padding days are marked as
outside the focus month.
"""

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List

from .models import Granularity


@dataclass(frozen=True)
class WindowDay:
    day: date
    in_focus: bool = True

    @property
    def is_weekend(self) -> bool:
        return self.day.weekday() >= 5


@dataclass(frozen=True)
class DateWindow:
    granularity: Granularity
    anchor: date
    start: date
    end: date
    days: List[WindowDay]

    @property
    def focus_days(self) -> List[date]:
        """Days that belong to the window proper (month padding excluded)."""
        return [d.day for d in self.days if d.in_focus]

    @property
    def render_start(self) -> date:
        return self.days[0].day

    @property
    def render_end(self) -> date:
        return self.days[-1].day

    @property
    def label(self) -> str:
        if self.granularity == Granularity.DAY:
            return f"{self.anchor:%A} {self.anchor.day} {self.anchor:%B %Y}"
        if self.granularity == Granularity.WEEK:
            return f"{self.start.day} {self.start:%b} - {self.end.day} {self.end:%b %Y}"
        return f"{self.anchor:%B %Y}"


def week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def month_bounds(day: date):
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def compute_window(granularity: Granularity, anchor: date) -> DateWindow:
    granularity = Granularity(granularity)
    if granularity == Granularity.DAY:
        return DateWindow(granularity, anchor, anchor, anchor, [WindowDay(anchor)])

    if granularity == Granularity.WEEK:
        start = week_start(anchor)
        days = [WindowDay(start + timedelta(days=i)) for i in range(7)]
        return DateWindow(granularity, anchor, start, days[-1].day, days)

    first, last = month_bounds(anchor)
    cur = week_start(first)
    grid_end = week_start(last) + timedelta(days=6)
    days = []
    while cur <= grid_end:
        days.append(WindowDay(cur, in_focus=first <= cur <= last))
        cur += timedelta(days=1)
    return DateWindow(granularity, anchor, first, last, days)


def add_months(day: date, months: int) -> date:
    """Shift by whole months, clamping to the last day of shorter months."""
    month_index = day.month - 1 + months
    year, month = day.year + month_index // 12, month_index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def shift_anchor(granularity: Granularity, anchor: date, steps: int) -> date:
    """Move the anchor by `steps` units of the granularity (negative for back)."""
    granularity = Granularity(granularity)
    if granularity == Granularity.DAY:
        return anchor + timedelta(days=steps)
    if granularity == Granularity.WEEK:
        return anchor + timedelta(weeks=steps)
    return add_months(anchor, steps)
