"""
Schedule controller.

Owns the view state (granularity, anchor date, member selection), the loaded
entries and the current edit draft, and is the only component that issues
commands to the store. After every successful mutation the window is fetched
again from the store instead of patching local state.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable, List, Optional, Set

from .config import DEFAULT_CONFIG
from .conflicts import detect_conflicts
from .errors import (ConflictWarning, ImmutableEntryError, NotFoundError,
                     PermissionDeniedError, TransientNetworkError, ValidationError)
from .layout import GridConfig, drill_down, layout_month, layout_time_grid
from .models import (Caller, Decision, EntryType, Granularity, ScheduleEntry,
                     SyncDirection, TeamMember, TimeOffRequest)
from .store import ScheduleStore
from .sync import ForeignEvent, SyncSummary, plan_reconcile
from .timeoff import END_OF_DAY
from .utilization import UtilizationReport, aggregate
from .utils import generate_id
from .window import DateWindow, compute_window, shift_anchor

logger = logging.getLogger(__name__)


@dataclass
class EntryDraft:
    """Unsaved form state for creating or editing one entry."""
    member_id: str = ""
    day: Optional[date] = None
    start_time: time = time(8, 0)
    end_time: time = time(9, 0)
    all_day: bool = False
    title: str = ""
    type: EntryType = EntryType.PROJECT
    project_id: Optional[str] = None
    description: str = ""
    color: Optional[str] = None
    entry_id: Optional[str] = None
    end_day: Optional[date] = None

    @property
    def is_edit(self) -> bool:
        return self.entry_id is not None

    def span(self):
        if self.all_day:
            return datetime.combine(self.day, time.min), datetime.combine(self.end_day or self.day, END_OF_DAY)
        return datetime.combine(self.day, self.start_time), datetime.combine(self.day, self.end_time)


class ScheduleController:
    def __init__(self, store: ScheduleStore, caller: Caller, config: Optional[dict] = None,
                 today: Callable[[], date] = date.today):
        self.store = store
        self.caller = caller
        self.config = {**DEFAULT_CONFIG, **(config or {})}
        self.grid = GridConfig.from_config(self.config)
        self._today = today

        self.granularity = Granularity(self.config["default_view"])
        self.anchor = today()
        self.roster: List[TeamMember] = []
        self.selected: Set[str] = set()
        self.entries: List[ScheduleEntry] = []
        self.time_off_requests: List[TimeOffRequest] = []

        self.draft: Optional[EntryDraft] = None
        self.delete_candidate: Optional[str] = None
        self.pending: Optional[str] = None
        self.notice: Optional[str] = None

    # --- LOADING ---
    @property
    def window(self) -> DateWindow:
        return compute_window(self.granularity, self.anchor)

    @property
    def visible_members(self) -> List[TeamMember]:
        return [m for m in self.roster if m.can_schedule and m.id in self.selected]

    def load(self):
        """Fetch the roster, select everyone schedulable if nothing is selected yet, then the window."""
        self.roster = self._call("list_roster", self.store.list_roster)
        if not self.selected:
            self.selected = {m.id for m in self.roster if m.can_schedule}
        self.refresh()

    def refresh(self):
        win = self.window
        # Month padding days show real entries too, so fetch the whole rendered range
        self.entries = self._call("list_entries", self.store.list_entries,
                                  win.render_start, win.render_end, sorted(self.selected))
        self.time_off_requests = self._call("list_time_off_requests", self.store.list_time_off_requests)

    def _call(self, label: str, fn, *args, **kwargs):
        self.pending = label
        try:
            return fn(*args, **kwargs)
        except TransientNetworkError as exc:
            self.notice = str(exc)
            raise
        finally:
            self.pending = None

    def _mutate(self, label: str, fn, *args, **kwargs):
        """Run a store command, then refetch. Stale targets trigger a refetch and are not retried."""
        try:
            result = self._call(label, fn, *args, **kwargs)
        except NotFoundError as exc:
            self.notice = str(exc)
            logger.info("%s hit a stale record, refetching window", label)
            self.refresh()
            raise
        self.notice = None
        self.refresh()
        return result

    # --- NAVIGATION ---
    def set_granularity(self, granularity: Granularity):
        self.granularity = Granularity(granularity)
        self.refresh()

    def next(self):
        self.anchor = shift_anchor(self.granularity, self.anchor, 1)
        self.refresh()

    def prev(self):
        self.anchor = shift_anchor(self.granularity, self.anchor, -1)
        self.refresh()

    def go_today(self):
        self.anchor = self._today()
        self.refresh()

    def open_day(self, day: date):
        self.granularity, self.anchor = drill_down(day)
        self.refresh()

    def toggle_member(self, member_id: str):
        if member_id in self.selected: self.selected.discard(member_id)
        else: self.selected.add(member_id)
        self.refresh()

    def toggle_all(self):
        schedulable = {m.id for m in self.roster if m.can_schedule}
        self.selected = set() if self.selected >= schedulable else schedulable
        self.refresh()

    def locate_entry(self, entry_id: str) -> ScheduleEntry:
        """Move the window onto an entry's start date and make its owner visible."""
        entry = self._call("get_entry", self.store.get_entry, entry_id)
        self.anchor = entry.start.date()
        self.selected.add(entry.member_id)
        self.refresh()
        return entry

    # --- VIEWS ---
    def time_grid(self):
        return layout_time_grid(self.window, self.entries, self.roster, self.grid)

    def month_grid(self):
        return layout_month(self.window, self.entries, self.roster, self.grid.month_max_visible)

    def utilization(self) -> UtilizationReport:
        return aggregate(self.entries, self.visible_members, self.window,
                         self.config["capacity_hours_per_day"], self.config["count_external_hours"])

    # --- EDITING ---
    def _find_entry(self, entry_id: str) -> ScheduleEntry:
        for e in self.entries:
            if e.id == entry_id:
                return e
        raise NotFoundError("Entry", entry_id)

    def open_create(self, day: Optional[date] = None, hour: Optional[int] = None) -> EntryDraft:
        """Start a new draft; any unsaved draft is discarded."""
        hour = 8 if hour is None else hour
        # Keep room for the default one-hour block before the grid (or the day) ends
        hour = max(0, min(hour, self.grid.end_hour - 1, 22))
        self.delete_candidate = None
        self.draft = EntryDraft(
            member_id=next(iter(sorted(self.selected)), ""), day=day or self._today(),
            start_time=time(hour, 0), end_time=time(hour + 1, 0),
        )
        return self.draft

    def open_edit(self, entry_id: str) -> EntryDraft:
        entry = self._find_entry(entry_id)
        if entry.is_external:
            raise ImmutableEntryError(entry_id)
        self.delete_candidate = None
        self.draft = EntryDraft(
            member_id=entry.member_id, day=entry.start.date(),
            start_time=entry.start.time().replace(second=0, microsecond=0),
            end_time=entry.end.time().replace(second=0, microsecond=0),
            all_day=entry.all_day, title=entry.title, type=entry.type, project_id=entry.project_id,
            description=entry.description or "", color=entry.color, entry_id=entry.id,
            end_day=entry.end.date() if entry.all_day else None,
        )
        return self.draft

    def discard_draft(self):
        self.draft = None

    def set_project(self, project_id: Optional[str], project_name: Optional[str] = None):
        """Pick a project for the draft; an empty title takes the project name."""
        draft = self._require_draft()
        draft.project_id = project_id or None
        if project_name and not draft.title.strip():
            draft.title = project_name

    def draft_conflicts(self) -> List[ScheduleEntry]:
        draft = self._require_draft()
        if not draft.member_id or draft.day is None or draft.all_day:
            return []
        # The draft may sit outside the loaded window or filter, so ask the store for that day
        candidates = self._call("list_entries", self.store.list_entries, draft.day, draft.day, [draft.member_id])
        return detect_conflicts(candidates, draft.member_id, draft.day, draft.start_time,
                                draft.end_time, draft.all_day, draft.entry_id)

    def _require_draft(self) -> EntryDraft:
        if self.draft is None:
            raise ValidationError("draft", "No entry is being edited")
        return self.draft

    def save_draft(self, confirm_conflicts: bool = False):
        """
        Validate and send the draft.

        Overlaps raise ConflictWarning unless `confirm_conflicts` is set; the
        draft is kept so the caller can confirm and save again.
        """
        draft = self._require_draft()
        if not draft.title.strip(): raise ValidationError("title")
        if not draft.member_id: raise ValidationError("member_id")
        if draft.day is None: raise ValidationError("day")

        conflicts = self.draft_conflicts()
        if conflicts and not confirm_conflicts:
            raise ConflictWarning(conflicts)

        start, end = draft.span()
        fields = dict(member_id=draft.member_id, title=draft.title.strip(), start=start, end=end,
                      all_day=draft.all_day, type=draft.type, project_id=draft.project_id,
                      description=draft.description.strip() or None, color=draft.color or None)
        if draft.is_edit:
            result = self._mutate("update_entry", self.store.update_entry, draft.entry_id, **fields)
        else:
            result = self._mutate("create_entry", self.store.create_entry, **fields)
        self.draft = None
        return result

    def update_entry(self, entry_id: str, **changes) -> ScheduleEntry:
        if self._find_entry(entry_id).is_external:
            raise ImmutableEntryError(entry_id)
        return self._mutate("update_entry", self.store.update_entry, entry_id, **changes)

    # --- DELETION (two-step) ---
    def request_delete(self, entry_id: str) -> ScheduleEntry:
        entry = self._find_entry(entry_id)
        if entry.is_external:
            raise ImmutableEntryError(entry_id)
        self.delete_candidate = entry_id
        return entry

    def cancel_delete(self):
        self.delete_candidate = None

    def confirm_delete(self, entry_id: str):
        if self.delete_candidate != entry_id:
            raise ValidationError("entry_id", "Deletion must be requested before it is confirmed")
        self.delete_candidate = None
        self._mutate("delete_entry", self.store.delete_entry, entry_id)
        if self.draft and self.draft.entry_id == entry_id:
            self.draft = None

    # --- TIME OFF ---
    def _require_elevated(self, action: str):
        if not self.caller.elevated:
            raise PermissionDeniedError(f"Only owners and admins can {action} time off")

    def submit_time_off(self, start_date: date, end_date: date, category: str, note: Optional[str] = None) -> TimeOffRequest:
        return self._mutate("submit_time_off", self.store.submit_time_off,
                            self.caller.member_id, start_date, end_date, category, note)

    def approve_time_off(self, request_id: str) -> TimeOffRequest:
        self._require_elevated("approve")
        return self._mutate("decide_time_off", self.store.decide_time_off, request_id, Decision.APPROVE, self.caller.member_id)

    def reject_time_off(self, request_id: str) -> TimeOffRequest:
        self._require_elevated("reject")
        return self._mutate("decide_time_off", self.store.decide_time_off, request_id, Decision.REJECT, self.caller.member_id)

    def withdraw_time_off(self, request_id: str):
        request = next((r for r in self.time_off_requests if r.id == request_id), None)
        if request is not None and request.member_id != self.caller.member_id and not self.caller.elevated:
            raise PermissionDeniedError("You can only withdraw your own requests")
        self._mutate("withdraw_time_off", self.store.withdraw_time_off, request_id)

    # --- EXTERNAL SYNC ---
    def sync_status(self, member_id: Optional[str] = None):
        return self._call("get_sync_status", self.store.get_sync_status, member_id or self.caller.member_id)

    def trigger_sync(self, events: Iterable[ForeignEvent], member_id: Optional[str] = None) -> SyncSummary:
        """Import foreign events for a member (the caller by default) inside the sync window."""
        member_id = member_id or self.caller.member_id
        if not member_id: raise ValidationError("member_id", "Choose whose calendar to sync")
        if SyncDirection(self.config["sync_direction"]) == SyncDirection.EXPORT:
            logger.info("Sync direction is export-only, skipping import")
            return SyncSummary()

        now = datetime.combine(self._today(), time.min)
        window_start = now - timedelta(days=self.config["sync_days_back"])
        window_end = now + timedelta(days=self.config["sync_days_forward"] + 1)
        try:
            existing = self._call("list_entries", self.store.list_entries,
                                  window_start.date(), window_end.date(), [member_id])
            plan = plan_reconcile(existing, events, member_id, lambda: generate_id("sch"), window_start, window_end)
            summary = self._mutate("apply_sync", self.store.apply_sync, member_id, plan)
        except TransientNetworkError as exc:
            try:
                self.store.record_sync_failure(member_id, str(exc))
            except TransientNetworkError:
                logger.warning("Could not record sync failure for %s", member_id)
            raise
        logger.info("Sync for %s: %s", member_id, summary.to_dict())
        return summary
