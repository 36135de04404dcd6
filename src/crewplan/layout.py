"""
Grid layout for the calendar views.

Day and week views use a proportional time grid: a timed entry becomes a
block whose top offset and height are proportional to its clock span inside
the visible hour range. All-day entries go in a lane above the grid, one chip
per entry. Month view lists entries per day cell up to a fixed count and
summarises the rest as "+K more".

External entries are laid out exactly like local ones but are flagged as not
interactive so renderers can distinguish them.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Dict, Iterable, List, Optional, Tuple

from .models import (DEFAULT_MEMBER_COLOR, NEUTRAL_COLOR, EntryType, Granularity,
                     ScheduleEntry, TeamMember)
from .window import DateWindow


@dataclass(frozen=True)
class GridConfig:
    start_hour: int = 6
    end_hour: int = 20
    hour_height: float = 60
    min_block_height: float = 20
    all_day_lane_height: float = 28
    month_max_visible: int = 3

    @classmethod
    def from_config(cls, cfg: dict) -> "GridConfig":
        return cls(
            start_hour=cfg["grid_start_hour"], end_hour=cfg["grid_end_hour"],
            hour_height=cfg["hour_height"], min_block_height=cfg["min_block_height"],
            all_day_lane_height=cfg["all_day_lane_height"], month_max_visible=cfg["month_max_visible"],
        )

    @property
    def total_hours(self) -> int:
        return self.end_hour - self.start_hour

    @property
    def grid_height(self) -> float:
        return self.total_hours * self.hour_height

    def hour_labels(self) -> List[str]:
        return [f"{h:02d}:00" for h in range(self.start_hour, self.end_hour)]


@dataclass(frozen=True)
class EntryBlock:
    entry: ScheduleEntry
    color: str
    interactive: bool
    top: float = 0.0
    height: float = 0.0


@dataclass
class DayColumn:
    day: date
    in_focus: bool
    all_day: List[EntryBlock] = field(default_factory=list)
    timed: List[EntryBlock] = field(default_factory=list)


@dataclass
class TimeGrid:
    config: GridConfig
    columns: List[DayColumn]

    @property
    def has_all_day(self) -> bool:
        return any(c.all_day for c in self.columns)

    @property
    def all_day_lane_height(self) -> float:
        """Lane grows by one chip row for the busiest day column."""
        rows = max((len(c.all_day) for c in self.columns), default=0)
        return rows * self.config.all_day_lane_height


@dataclass
class MonthCell:
    day: date
    in_focus: bool
    visible: List[EntryBlock] = field(default_factory=list)
    more_count: int = 0
    total: int = 0


def entry_color(entry: ScheduleEntry, members: Dict[str, TeamMember]) -> str:
    if entry.color: return entry.color
    if entry.type in (EntryType.TIME_OFF, EntryType.EXTERNAL): return NEUTRAL_COLOR
    member = members.get(entry.member_id)
    return member.color if member and member.color else DEFAULT_MEMBER_COLOR


def _minutes_from_midnight(moment: datetime, day: date) -> float:
    return (moment - datetime.combine(day, time.min)).total_seconds() / 60


def block_geometry(entry: ScheduleEntry, grid: GridConfig) -> Tuple[float, float]:
    """(top, height) in pixels for a timed entry, clamped to the visible hours."""
    day = entry.start.date()
    start_min = _minutes_from_midnight(entry.start, day)
    end_min = _minutes_from_midnight(entry.end, day)
    clamped_start = max(start_min, grid.start_hour * 60)
    clamped_end = min(end_min, grid.end_hour * 60)
    top = (clamped_start - grid.start_hour * 60) / 60 * grid.hour_height
    height = max((clamped_end - clamped_start) / 60 * grid.hour_height, grid.min_block_height)
    return top, height


def _block(entry: ScheduleEntry, members: Dict[str, TeamMember], grid: Optional[GridConfig] = None) -> EntryBlock:
    top, height = (0.0, 0.0)
    if grid is not None and not entry.all_day:
        top, height = block_geometry(entry, grid)
    return EntryBlock(entry, entry_color(entry, members), not entry.is_external, top, height)


def day_sort_key(entry: ScheduleEntry):
    """All-day first, then by start time, ties broken by title."""
    return (not entry.all_day, entry.start.time() if not entry.all_day else time.min, entry.title)


def entries_for_day(entries: Iterable[ScheduleEntry], day: date) -> List[ScheduleEntry]:
    return sorted((e for e in entries if e.occurs_on(day)), key=day_sort_key)


def layout_time_grid(
    window: DateWindow,
    entries: Iterable[ScheduleEntry],
    members: Iterable[TeamMember],
    grid: GridConfig,
) -> TimeGrid:
    entries = list(entries)
    by_id = {m.id: m for m in members}
    columns = []
    for wd in window.days:
        col = DayColumn(wd.day, wd.in_focus)
        for entry in entries_for_day(entries, wd.day):
            if entry.all_day:
                col.all_day.append(_block(entry, by_id))
            else:
                col.timed.append(_block(entry, by_id, grid))
        columns.append(col)
    return TimeGrid(grid, columns)


def layout_month(
    window: DateWindow,
    entries: Iterable[ScheduleEntry],
    members: Iterable[TeamMember],
    max_visible: int,
) -> List[List[MonthCell]]:
    """Month cells grouped into Monday-start weeks."""
    entries = list(entries)
    by_id = {m.id: m for m in members}
    cells = []
    for wd in window.days:
        day_entries = entries_for_day(entries, wd.day)
        visible = [_block(e, by_id) for e in day_entries[:max_visible]]
        cells.append(MonthCell(wd.day, wd.in_focus, visible, max(len(day_entries) - max_visible, 0), len(day_entries)))
    return [cells[i:i + 7] for i in range(0, len(cells), 7)]


def drill_down(day: date) -> Tuple[Granularity, date]:
    """Clicking a month cell opens the day view on that date."""
    return Granularity.DAY, day
