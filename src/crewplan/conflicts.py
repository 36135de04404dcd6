"""
Double-booking detection.

Overlap is the half-open interval test: two ranges conflict when each starts
before the other ends, so an entry ending at 12:00 never collides with one
starting at 12:00.
"""

from datetime import date, datetime, time
from typing import Iterable, List, Optional

from .models import ScheduleEntry


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    return start_a < end_b and start_b < end_a


def entries_overlap(a: ScheduleEntry, b: ScheduleEntry) -> bool:
    return overlaps(a.effective_start, a.effective_end, b.effective_start, b.effective_end)


def is_candidate(entry: ScheduleEntry, member_id: str, exclude_entry_id: Optional[str] = None) -> bool:
    """Whether an existing entry takes part in conflict checks for this member."""
    if entry.id == exclude_entry_id: return False
    if entry.member_id != member_id: return False
    if entry.all_day: return False
    # Synced calendar events are awareness only, they never block placement
    if entry.is_external: return False
    return True


def detect_conflicts(
    entries: Iterable[ScheduleEntry],
    member_id: str,
    day: date,
    start_time: time,
    end_time: time,
    all_day: bool = False,
    exclude_entry_id: Optional[str] = None,
) -> List[ScheduleEntry]:
    """
    Return every entry of `member_id` overlapping the candidate placement.

    All-day candidates never conflict. Pass the entry's own id as
    `exclude_entry_id` when re-checking an entry being edited.
    """
    if all_day:
        return []
    cand_start = datetime.combine(day, start_time)
    cand_end = datetime.combine(day, end_time)
    return [
        e for e in entries
        if is_candidate(e, member_id, exclude_entry_id) and overlaps(e.start, e.end, cand_start, cand_end)
    ]


def find_store_conflicts(entries: Iterable[ScheduleEntry], candidate: ScheduleEntry) -> List[ScheduleEntry]:
    """Conflict check used on save; cancelled entries no longer occupy time."""
    if candidate.all_day:
        return []
    return [
        e for e in entries
        if not e.is_cancelled
        and is_candidate(e, candidate.member_id, candidate.id)
        and overlaps(e.start, e.end, candidate.start, candidate.end)
    ]
