"""
Import side of external calendar sync.

Foreign events are mirrored as read-only `external` entries, matched by the
foreign event id. `plan_reconcile` only works out what has to change; the
controller applies the plan through the store, so re-running it against an
unchanged foreign calendar yields an empty plan.
"""

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from .errors import ValidationError
from .models import EntrySource, EntryStatus, EntryType, ScheduleEntry

logger = logging.getLogger(__name__)


def _parse_instant(value: str) -> datetime:
    """ISO timestamp from an export; any zone offset is dropped, wall-clock time is kept."""
    return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)


@dataclass(frozen=True)
class ForeignEvent:
    external_id: str
    title: str
    start: datetime
    end: datetime
    all_day: bool = False
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ForeignEvent":
        """Accepts the calendar export shape: id, summary, start, end, allDay, description."""
        for key in ("id", "start", "end"):
            if not data.get(key):
                raise ValidationError(key, f"Foreign event is missing '{key}'")
        start, end = _parse_instant(data["start"]), _parse_instant(data["end"])
        all_day = bool(data.get("allDay", False))
        if end < start or (start == end and not all_day):
            raise ValidationError("end", f"Foreign event '{data['id']}' ends before it starts")
        return cls(
            external_id=str(data["id"]),
            title=data.get("summary") or "(no title)",
            start=start,
            end=end,
            all_day=all_day,
            description=data.get("description"),
        )


@dataclass(frozen=True)
class SyncSummary:
    created: int = 0
    updated: int = 0
    removed: int = 0

    def to_dict(self) -> dict:
        return {"created": self.created, "updated": self.updated, "removed": self.removed}


@dataclass
class SyncPlan:
    creates: List[ScheduleEntry] = field(default_factory=list)
    updates: List[ScheduleEntry] = field(default_factory=list)
    removals: List[str] = field(default_factory=list)

    @property
    def summary(self) -> SyncSummary:
        return SyncSummary(len(self.creates), len(self.updates), len(self.removals))

    @property
    def is_empty(self) -> bool:
        return not (self.creates or self.updates or self.removals)


def load_foreign_events(path: Path) -> List[ForeignEvent]:
    with Path(path).open("r") as f:
        raw = json.load(f)
    if isinstance(raw, dict):
        raw = raw.get("events", [])
    return [ForeignEvent.from_dict(item) for item in raw]


def _changed(entry: ScheduleEntry, event: ForeignEvent) -> bool:
    return (entry.title != event.title or entry.start != event.start
            or entry.end != event.end or entry.all_day != event.all_day
            or (entry.description or None) != (event.description or None))


def _in_window(entry: ScheduleEntry, window_start: Optional[datetime], window_end: Optional[datetime]) -> bool:
    if window_start and entry.start < window_start: return False
    if window_end and entry.end > window_end: return False
    return True


def _overlaps_window(start: datetime, end: datetime, window_start: Optional[datetime],
                     window_end: Optional[datetime]) -> bool:
    if window_start and end < window_start: return False
    if window_end and start > window_end: return False
    return True


def plan_reconcile(
    existing: Iterable[ScheduleEntry],
    events: Iterable[ForeignEvent],
    member_id: str,
    new_id: Callable[[], str],
    window_start: Optional[datetime] = None,
    window_end: Optional[datetime] = None,
) -> SyncPlan:
    """
    Compare the mirrored entries of `member_id` with the latest foreign events.

    Only events overlapping the sync window are imported, the same range
    `existing` is fetched for, so a second run over an unchanged export finds
    every mirror. Mirrored entries whose foreign id vanished upstream are
    removed, but only inside the sync window: older or later events were
    simply not fetched.
    """
    mirrored: Dict[str, ScheduleEntry] = {}
    for e in existing:
        if e.is_external and e.member_id == member_id and e.external_id:
            mirrored[e.external_id] = e

    latest: Dict[str, ForeignEvent] = {}
    for ev in events:
        if not _overlaps_window(ev.start, ev.end, window_start, window_end):
            logger.debug("Foreign event %s lies outside the sync window", ev.external_id)
            continue
        if ev.external_id in latest:
            logger.debug("Duplicate foreign event %s ignored", ev.external_id)
            continue
        latest[ev.external_id] = ev

    plan = SyncPlan()
    for ext_id, ev in latest.items():
        current = mirrored.get(ext_id)
        if current is None:
            plan.creates.append(ScheduleEntry(
                id=new_id(), member_id=member_id, title=ev.title, description=ev.description,
                start=ev.start, end=ev.end, all_day=ev.all_day,
                type=EntryType.EXTERNAL, status=EntryStatus.SCHEDULED,
                source=EntrySource.EXTERNAL, external_id=ext_id,
            ))
        elif _changed(current, ev):
            plan.updates.append(replace(
                current, title=ev.title, start=ev.start, end=ev.end, all_day=ev.all_day, description=ev.description,
            ))

    for ext_id, entry in mirrored.items():
        if ext_id not in latest and _in_window(entry, window_start, window_end):
            plan.removals.append(entry.id)

    return plan
