"""
Capacity utilization per member and per day.

Hours are summed per member per day from non-cancelled entries. An all-day
entry counts as one full day of capacity; a timed entry counts its exact
duration. Daily percentages are capped at 100, raw hours are not, so
overtime stays visible in `hours`.

Member averages ignore weekends on both sides of the ratio. The team average
is the plain mean of member averages, not weighted by hours.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Union

from .models import EntryType, ScheduleEntry, TeamMember
from .window import DateWindow


@dataclass(frozen=True)
class DayUtilization:
    day: date
    hours: float
    utilization_percent: float
    is_time_off: bool
    is_weekend: bool


@dataclass
class MemberUtilization:
    member: TeamMember
    days: List[DayUtilization] = field(default_factory=list)
    total_hours: float = 0.0
    average: float = 0.0


@dataclass
class UtilizationReport:
    members: List[MemberUtilization]
    team_average: float
    capacity_hours_per_day: float

    @property
    def days(self) -> List[date]:
        return [d.day for d in self.members[0].days] if self.members else []


def counted_entries(entries: Iterable[ScheduleEntry], include_external: bool = False) -> List[ScheduleEntry]:
    return [e for e in entries if not e.is_cancelled and (include_external or not e.is_external)]


def day_hours(day_entries: Iterable[ScheduleEntry], capacity_hours_per_day: float) -> float:
    hours = 0.0
    for e in day_entries:
        hours += capacity_hours_per_day if e.all_day else e.duration_hours()
    return hours


def _member_days(member_id: str, entries: List[ScheduleEntry], days: List[date], capacity: float) -> List[DayUtilization]:
    own = [e for e in entries if e.member_id == member_id]
    result = []
    for day in days:
        todays = [e for e in own if e.occurs_on(day)]
        hours = day_hours(todays, capacity)
        pct = min(100.0, hours / capacity * 100) if capacity > 0 else 0.0
        result.append(DayUtilization(
            day=day, hours=hours, utilization_percent=pct,
            is_time_off=any(e.type == EntryType.TIME_OFF for e in todays),
            is_weekend=day.weekday() >= 5,
        ))
    return result


def member_average(days: List[DayUtilization], capacity: float) -> float:
    work_days = [d for d in days if not d.is_weekend]
    total_capacity = len(work_days) * capacity
    if total_capacity <= 0:
        return 0.0
    return sum(d.hours for d in work_days) / total_capacity * 100


def aggregate(
    entries: Iterable[ScheduleEntry],
    roster: Iterable[TeamMember],
    window: Union[DateWindow, Iterable[date]],
    capacity_hours_per_day: float,
    include_external: bool = False,
) -> UtilizationReport:
    """
    Build the utilization report for the window.

    A month window only aggregates its focus month; padding days from the
    neighbouring months are left out.
    """
    days = window.focus_days if isinstance(window, DateWindow) else list(window)
    pool = counted_entries(entries, include_external)

    rows = []
    for member in roster:
        if not member.can_schedule: continue
        member_days = _member_days(member.id, pool, days, capacity_hours_per_day)
        rows.append(MemberUtilization(
            member=member, days=member_days,
            total_hours=sum(d.hours for d in member_days if not d.is_weekend),
            average=member_average(member_days, capacity_hours_per_day),
        ))

    team_average = sum(r.average for r in rows) / len(rows) if rows else 0.0
    return UtilizationReport(rows, team_average, capacity_hours_per_day)
