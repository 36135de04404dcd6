"""
The schedule store: the command/query contract the controller talks to, and
a concrete implementation backed by the append-only ledger.

The store is authoritative and last-write-wins; there are no version tokens.
Failures that are not domain errors surface as TransientNetworkError and are
never retried here.
"""

import functools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from . import ledger as journal
from . import timeoff
from .conflicts import find_store_conflicts, overlaps
from .errors import (ImmutableEntryError, NotFoundError, SchedulingError,
                     TransientNetworkError, ValidationError)
from .ledger import Ledger
from .models import (EntryStatus, EntryType, ScheduleEntry, SyncDirection, TeamMember,
                     TimeOffRequest, TimeOffStatus)
from .sync import SyncPlan, SyncSummary
from .utils import generate_id

logger = logging.getLogger(__name__)

CREATABLE_TYPES = (EntryType.PROJECT, EntryType.INTERNAL, EntryType.TIME_OFF, EntryType.TRAVEL)
MUTABLE_FIELDS = ("member_id", "project_id", "title", "description", "start", "end",
                  "all_day", "type", "status", "color")


@dataclass
class CreateResult:
    entry: ScheduleEntry
    conflicts: List[ScheduleEntry] = field(default_factory=list)


@dataclass(frozen=True)
class SyncStatus:
    connected: bool
    direction: SyncDirection
    last_sync_at: Optional[str] = None
    last_error: Optional[str] = None


@dataclass
class MemberAvailability:
    member: TeamMember
    entries: List[ScheduleEntry]
    total_hours: float


class ScheduleStore(ABC):
    """Collaborator contract for schedule persistence."""

    @abstractmethod
    def list_entries(self, window_start: date, window_end: date, member_ids: Optional[Iterable[str]] = None) -> List[ScheduleEntry]: ...

    @abstractmethod
    def create_entry(self, member_id: str, title: str, start: datetime, end: datetime, all_day: bool = False,
                     type: str = EntryType.PROJECT, project_id: Optional[str] = None,
                     description: Optional[str] = None, color: Optional[str] = None) -> CreateResult: ...

    @abstractmethod
    def get_entry(self, entry_id: str) -> ScheduleEntry: ...

    @abstractmethod
    def update_entry(self, entry_id: str, **changes) -> ScheduleEntry: ...

    @abstractmethod
    def delete_entry(self, entry_id: str) -> None: ...

    @abstractmethod
    def list_roster(self) -> List[TeamMember]: ...

    @abstractmethod
    def list_time_off_requests(self, status: Optional[str] = None) -> List[TimeOffRequest]: ...

    @abstractmethod
    def submit_time_off(self, member_id: str, start_date: date, end_date: date, category: str,
                        note: Optional[str] = None) -> TimeOffRequest: ...

    @abstractmethod
    def decide_time_off(self, request_id: str, decision: str, decided_by: Optional[str] = None) -> TimeOffRequest: ...

    @abstractmethod
    def withdraw_time_off(self, request_id: str) -> None: ...

    @abstractmethod
    def get_sync_status(self, member_id: str) -> SyncStatus: ...

    @abstractmethod
    def apply_sync(self, member_id: str, plan: SyncPlan) -> SyncSummary: ...

    @abstractmethod
    def record_sync_failure(self, member_id: str, error: str) -> None: ...


def _store_call(fn):
    """Turns I/O and decode failures into TransientNetworkError."""
    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except SchedulingError:
            raise
        except (OSError, ValueError) as exc:
            logger.error("Store call %s failed: %s", fn.__name__, exc)
            raise TransientNetworkError(f"{fn.__name__} failed: {exc}") from exc
    return wrapper


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _validate_span(start: datetime, end: datetime, all_day: bool):
    if all_day:
        if end.date() < start.date():
            raise ValidationError("end", "end must not be before start")
    elif start >= end:
        raise ValidationError("end", "start must be before end")


def _validate_type(value) -> EntryType:
    try:
        entry_type = EntryType(value)
    except ValueError:
        entry_type = None
    if entry_type not in CREATABLE_TYPES:
        valid = ", ".join(t.value for t in CREATABLE_TYPES)
        raise ValidationError("type", f"Invalid type '{value}'. Valid types: {valid}")
    return entry_type


def _validate_status(value) -> EntryStatus:
    try:
        return EntryStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in EntryStatus)
        raise ValidationError("status", f"Invalid status '{value}'. Valid: {valid}") from None


class LedgerStore(ScheduleStore):
    def __init__(self, data_dir: Path = None, sync_direction: str = SyncDirection.BOTH):
        self.ledger = Ledger(data_dir)
        self.sync_direction = SyncDirection(sync_direction)

    # --- STATE READERS ---
    def _members(self) -> Dict[str, TeamMember]:
        return {k: TeamMember.from_dict(v) for k, v in self.ledger.load_state(self.ledger.members_file).items()}

    def _entries(self) -> Dict[str, ScheduleEntry]:
        return {k: ScheduleEntry.from_dict(v) for k, v in self.ledger.load_state(self.ledger.entries_file).items()}

    def _requests(self) -> Dict[str, TimeOffRequest]:
        return {k: TimeOffRequest.from_dict(v) for k, v in self.ledger.load_state(self.ledger.timeoff_file).items()}

    def _entry(self, entry_id: str) -> ScheduleEntry:
        entry = self._entries().get(entry_id)
        if entry is None:
            raise NotFoundError("Entry", entry_id)
        return entry

    def _request(self, request_id: str) -> TimeOffRequest:
        request = self._requests().get(request_id)
        if request is None:
            raise NotFoundError("Time-off request", request_id)
        return request

    def _require_member(self, member_id: str) -> TeamMember:
        member = self._members().get(member_id)
        if member is None:
            raise NotFoundError("Member", member_id)
        return member

    # --- ROSTER MAINTENANCE ---
    @_store_call
    def add_member(self, name: str, color: Optional[str] = None, accepted_invitation: bool = True,
                   member_id: Optional[str] = None) -> TeamMember:
        if not name or not name.strip():
            raise ValidationError("name")
        member = TeamMember(id=member_id or generate_id("usr"), name=name.strip(), accepted_invitation=accepted_invitation)
        if color:
            member.color = color
        self.ledger.append_event(journal.MEMBER_ADDED, member.to_dict())
        logger.info("Added member %s (%s)", member.name, member.id)
        return member

    @_store_call
    def edit_member(self, member_id: str, **changes) -> TeamMember:
        self._require_member(member_id)
        allowed = {k: v for k, v in changes.items() if k in ("name", "color", "active", "accepted_invitation")}
        self.ledger.append_event(journal.MEMBER_EDITED, {"id": member_id, **allowed})
        return self._members()[member_id]

    @_store_call
    def deactivate_member(self, member_id: str) -> None:
        self._require_member(member_id)
        self.ledger.append_event(journal.MEMBER_DEACTIVATED, {"id": member_id})

    @_store_call
    def list_roster(self) -> List[TeamMember]:
        return sorted(self._members().values(), key=lambda m: m.name.lower())

    # --- ENTRIES ---
    @_store_call
    def list_entries(self, window_start: date, window_end: date, member_ids: Optional[Iterable[str]] = None) -> List[ScheduleEntry]:
        wanted = set(member_ids) if member_ids is not None else None
        found = [
            e for e in self._entries().values()
            if e.end.date() >= window_start and e.start.date() <= window_end
            and (wanted is None or e.member_id in wanted)
        ]
        return sorted(found, key=lambda e: e.start)

    @_store_call
    def create_entry(self, member_id: str, title: str, start: datetime, end: datetime, all_day: bool = False,
                     type: str = EntryType.PROJECT, project_id: Optional[str] = None,
                     description: Optional[str] = None, color: Optional[str] = None) -> CreateResult:
        if not member_id: raise ValidationError("member_id")
        if not title or not title.strip(): raise ValidationError("title")
        if start is None: raise ValidationError("start")
        if end is None: raise ValidationError("end")
        entry_type = _validate_type(type)
        _validate_span(start, end, all_day)
        self._require_member(member_id)

        entry = ScheduleEntry(
            id=generate_id("sch"), member_id=member_id, title=title.strip(), start=start, end=end,
            all_day=all_day, type=entry_type, project_id=project_id or None,
            description=(description or "").strip() or None, color=color or None,
        )
        conflicts = find_store_conflicts(self._entries().values(), entry)
        self.ledger.append_event(journal.ENTRY_CREATED, entry.to_dict())
        if conflicts:
            logger.warning("Entry %s saved with %d overlapping entries", entry.id, len(conflicts))
        return CreateResult(entry, conflicts)

    @_store_call
    def get_entry(self, entry_id: str) -> ScheduleEntry:
        return self._entry(entry_id)

    @_store_call
    def update_entry(self, entry_id: str, **changes) -> ScheduleEntry:
        unknown = set(changes) - set(MUTABLE_FIELDS)
        if unknown:
            raise ValidationError(sorted(unknown)[0], f"Field '{sorted(unknown)[0]}' cannot be updated")
        if not changes:
            raise ValidationError("changes", "No fields to update")

        current = self._entry(entry_id)
        if current.is_external:
            raise ImmutableEntryError(entry_id)
        if "type" in changes: changes["type"] = _validate_type(changes["type"])
        if "status" in changes: changes["status"] = _validate_status(changes["status"])
        if "title" in changes and not (changes["title"] or "").strip(): raise ValidationError("title")
        if "member_id" in changes: self._require_member(changes["member_id"])

        updated = replace(current, **changes)
        _validate_span(updated.start, updated.end, updated.all_day)
        payload = {k: v for k, v in updated.to_dict().items() if k in changes}
        self.ledger.append_event(journal.ENTRY_UPDATED, {"id": entry_id, **payload})
        return updated

    @_store_call
    def delete_entry(self, entry_id: str) -> None:
        if self._entry(entry_id).is_external:
            raise ImmutableEntryError(entry_id)
        self.ledger.append_event(journal.ENTRY_DELETED, {"id": entry_id})

    @_store_call
    def availability(self, member_ids: Iterable[str], start: datetime, end: datetime) -> List[MemberAvailability]:
        if start is None: raise ValidationError("start")
        if end is None: raise ValidationError("end")
        member_ids = list(member_ids)
        if not member_ids: raise ValidationError("member_ids", "At least one member is required")

        members = self._members()
        entries = [e for e in self._entries().values() if not e.is_cancelled]
        result = []
        for member_id in member_ids:
            if member_id not in members: continue
            own = sorted(
                (e for e in entries if e.member_id == member_id and overlaps(e.effective_start, e.effective_end, start, end)),
                key=lambda e: e.start,
            )
            hours = sum(e.duration_hours() for e in own if not e.all_day and e.type != EntryType.TIME_OFF and not e.is_external)
            result.append(MemberAvailability(members[member_id], own, round(hours, 2)))
        return result

    # --- TIME OFF ---
    @_store_call
    def list_time_off_requests(self, status: Optional[str] = None) -> List[TimeOffRequest]:
        if status is not None:
            try:
                status = TimeOffStatus(status)
            except ValueError:
                valid = ", ".join(s.value for s in TimeOffStatus)
                raise ValidationError("status", f"Invalid status '{status}'. Valid: {valid}") from None
        requests = [r for r in self._requests().values() if status is None or r.status == status]
        return sorted(requests, key=lambda r: r.created_at or "", reverse=True)

    @_store_call
    def submit_time_off(self, member_id: str, start_date: date, end_date: date, category: str,
                        note: Optional[str] = None) -> TimeOffRequest:
        request = timeoff.new_request(generate_id("toff"), member_id, start_date, end_date, category, note, created_at=_now())
        self._require_member(member_id)
        self.ledger.append_event(journal.TIMEOFF_SUBMITTED, request.to_dict())
        return request

    @_store_call
    def decide_time_off(self, request_id: str, decision: str, decided_by: Optional[str] = None) -> TimeOffRequest:
        decided, entry = timeoff.decide(self._request(request_id), decision, generate_id("toff_sch"), decided_by, _now())
        events = [(journal.TIMEOFF_DECIDED, {
            "id": decided.id, "status": decided.status.value,
            "decided_by": decided.decided_by, "decided_at": decided.decided_at,
        })]
        if entry is not None:
            events.append((journal.ENTRY_CREATED, entry.to_dict()))
        self.ledger.append_events(events)
        logger.info("Time-off request %s %s", request_id, decided.status.value)
        return decided

    @_store_call
    def withdraw_time_off(self, request_id: str) -> None:
        timeoff.check_withdrawable(self._request(request_id))
        self.ledger.append_event(journal.TIMEOFF_WITHDRAWN, {"id": request_id})

    @_store_call
    def get_time_off_request(self, request_id: str) -> TimeOffRequest:
        return self._request(request_id)

    # --- EXTERNAL SYNC ---
    @_store_call
    def get_sync_status(self, member_id: str) -> SyncStatus:
        record = self.ledger.load_state(self.ledger.sync_file).get(member_id)
        if not record:
            return SyncStatus(connected=False, direction=self.sync_direction)
        return SyncStatus(
            connected=record.get("last_error") is None, direction=self.sync_direction,
            last_sync_at=record.get("last_sync_at"), last_error=record.get("last_error"),
        )

    @_store_call
    def apply_sync(self, member_id: str, plan: SyncPlan) -> SyncSummary:
        self._require_member(member_id)
        events = [(journal.ENTRY_CREATED, e.to_dict()) for e in plan.creates]
        events += [(journal.ENTRY_UPDATED, {"id": e.id, "title": e.title, "start": e.start.isoformat(),
                                            "end": e.end.isoformat(), "all_day": e.all_day,
                                            "description": e.description}) for e in plan.updates]
        events += [(journal.ENTRY_DELETED, {"id": entry_id}) for entry_id in plan.removals]
        events.append((journal.SYNC_COMPLETED, {"member_id": member_id, "at": _now(), **plan.summary.to_dict()}))
        self.ledger.append_events(events)
        return plan.summary

    @_store_call
    def record_sync_failure(self, member_id: str, error: str) -> None:
        self.ledger.append_event(journal.SYNC_FAILED, {"member_id": member_id, "at": _now(), "error": error})
