"""Tests for the schedule controller: view state, editing and the refetch policy."""

from datetime import date, datetime, time

import pytest

from crewplan.controller import ScheduleController
from crewplan.errors import (ConflictWarning, ImmutableEntryError, NotFoundError, PermissionDeniedError,
                             TransientNetworkError, ValidationError)
from crewplan.models import Caller, EntrySource, EntryType, Granularity, TimeOffStatus
from crewplan.store import LedgerStore
from crewplan.sync import ForeignEvent, SyncPlan

MONDAY = date(2024, 6, 3)


def at(hour, minute=0, day=MONDAY):
    return datetime(day.year, day.month, day.day, hour, minute)


def foreign(ext_id, hour=9):
    return ForeignEvent(ext_id, f"Meeting {ext_id}", at(hour), at(hour + 1))


class TestViewState:

    def test_load_selects_every_schedulable_member(self, controller):
        assert controller.selected == {"m1", "m2"}
        assert controller.window.start == MONDAY
        assert controller.granularity == Granularity.WEEK

    def test_navigation(self, controller):
        controller.next()
        assert controller.anchor == date(2024, 6, 10)
        controller.prev()
        controller.prev()
        assert controller.anchor == date(2024, 5, 27)
        controller.go_today()
        assert controller.anchor == MONDAY

    def test_switching_granularity_keeps_anchor(self, controller):
        controller.set_granularity(Granularity.MONTH)
        assert controller.anchor == MONDAY
        assert controller.window.start == date(2024, 6, 1)

    def test_month_cell_drill_down(self, controller):
        controller.set_granularity(Granularity.MONTH)
        controller.open_day(date(2024, 6, 19))
        assert controller.granularity == Granularity.DAY
        assert controller.anchor == date(2024, 6, 19)

    def test_member_filter(self, store, controller):
        store.create_entry("m2", "Grace job", at(9), at(10))
        controller.refresh()
        assert len(controller.entries) == 1
        controller.toggle_member("m2")
        assert controller.entries == []
        controller.toggle_all()
        assert controller.selected == {"m1", "m2"}
        controller.toggle_all()
        assert controller.selected == set()

    def test_month_fetch_covers_padding_days(self, store, controller):
        store.create_entry("m1", "May job", at(9, day=date(2024, 5, 28)), at(10, day=date(2024, 5, 28)))
        controller.set_granularity(Granularity.MONTH)
        assert [e.title for e in controller.entries] == ["May job"]
        assert controller.utilization().members[0].total_hours == 0


class TestDrafts:

    def test_missing_title_is_caught_before_sending(self, store, controller):
        controller.open_create(MONDAY, 9)
        with pytest.raises(ValidationError) as exc:
            controller.save_draft()
        assert exc.value.field == "title"
        assert store.list_entries(MONDAY, MONDAY) == []

    def test_create_refetches_window(self, controller):
        draft = controller.open_create(MONDAY, 9)
        draft.member_id, draft.title = "m1", "Boiler service"
        result = controller.save_draft()
        assert controller.draft is None
        assert [e.id for e in controller.entries] == [result.entry.id]
        assert result.entry.start == at(9) and result.entry.end == at(10)

    def test_overlap_needs_confirmation(self, store, controller):
        existing = store.create_entry("m1", "Morning job", at(9), at(12)).entry
        controller.refresh()
        draft = controller.open_create(MONDAY, 11)
        draft.member_id, draft.title, draft.end_time = "m1", "Overlap", time(13)
        with pytest.raises(ConflictWarning) as exc:
            controller.save_draft()
        assert [c.id for c in exc.value.conflicts] == [existing.id]
        assert controller.draft is draft
        result = controller.save_draft(confirm_conflicts=True)
        assert [c.id for c in result.conflicts] == [existing.id]
        assert len(controller.entries) == 2

    def test_touching_entries_save_without_warning(self, store, controller):
        store.create_entry("m1", "Morning job", at(9), at(12))
        controller.refresh()
        draft = controller.open_create(MONDAY, 12)
        draft.member_id, draft.title = "m1", "Afternoon job"
        assert controller.draft_conflicts() == []
        controller.save_draft()

    def test_editing_does_not_conflict_with_itself(self, store, controller):
        entry = store.create_entry("m1", "Job", at(9), at(12)).entry
        controller.refresh()
        draft = controller.open_edit(entry.id)
        draft.end_time = time(13)
        assert controller.draft_conflicts() == []
        updated = controller.save_draft()
        assert updated.end == at(13)
        assert controller.entries[0].end == at(13)

    def test_editing_multi_day_all_day_entry_keeps_its_span(self, store, controller):
        entry = store.create_entry("m1", "Trip", at(0), at(23, 59, day=date(2024, 6, 5)), all_day=True, type="travel").entry
        controller.refresh()
        draft = controller.open_edit(entry.id)
        draft.title = "Regional trip"
        updated = controller.save_draft()
        assert updated.end.date() == date(2024, 6, 5)

    def test_moving_an_entry_into_another_week_finds_clashes_there(self, store, controller):
        later = date(2024, 6, 20)
        blocker = store.create_entry("m1", "Blocker", at(9, day=later), at(12, day=later)).entry
        mine = store.create_entry("m1", "Mine", at(9), at(10)).entry
        controller.refresh()
        draft = controller.open_edit(mine.id)
        draft.day, draft.start_time, draft.end_time = later, time(10), time(11)
        assert [c.id for c in controller.draft_conflicts()] == [blocker.id]
        with pytest.raises(ConflictWarning):
            controller.save_draft()

    def test_conflicts_cover_members_outside_the_filter(self, store, controller):
        blocker = store.create_entry("m2", "Site visit", at(9), at(11)).entry
        controller.selected = {"m1"}
        controller.refresh()
        draft = controller.open_create(MONDAY, 10)
        draft.member_id, draft.title = "m2", "Callout"
        assert [c.id for c in controller.draft_conflicts()] == [blocker.id]

    @pytest.mark.parametrize("hour", [19, 20, 23])
    def test_late_default_draft_still_ends_after_it_starts(self, controller, hour):
        draft = controller.open_create(MONDAY, hour)
        assert draft.start_time < draft.end_time
        draft.member_id, draft.title = "m1", "Late job"
        result = controller.save_draft()
        assert result.entry.start < result.entry.end

    def test_opening_a_new_draft_discards_the_old_one(self, controller):
        first = controller.open_create(MONDAY, 9)
        first.title = "Unsaved"
        second = controller.open_create(MONDAY, 14)
        assert controller.draft is second
        assert second.title == ""

    def test_project_name_becomes_default_title(self, controller):
        controller.open_create(MONDAY, 9)
        controller.set_project("p1", "Kitchen refit")
        assert controller.draft.title == "Kitchen refit"
        controller.draft.title = "Custom"
        controller.set_project("p2", "Bathroom")
        assert controller.draft.title == "Custom"

    def test_external_entries_cannot_be_edited(self, store, controller, make_entry):
        store.apply_sync("m1", SyncPlan(creates=[make_entry("x1", start=at(9), end=at(10), source=EntrySource.EXTERNAL)]))
        controller.refresh()
        with pytest.raises(ImmutableEntryError):
            controller.open_edit("x1")
        with pytest.raises(ImmutableEntryError):
            controller.request_delete("x1")

    def test_locate_entry_moves_the_window(self, store, controller):
        entry = store.create_entry("m2", "Far away", at(9, day=date(2024, 8, 14)), at(10, day=date(2024, 8, 14))).entry
        controller.toggle_member("m2")
        controller.locate_entry(entry.id)
        assert controller.anchor == date(2024, 8, 14)
        assert "m2" in controller.selected
        assert controller.open_edit(entry.id).title == "Far away"


class TestDeletion:

    def test_two_step_confirmation(self, store, controller):
        entry = store.create_entry("m1", "Job", at(9), at(10)).entry
        controller.refresh()
        with pytest.raises(ValidationError):
            controller.confirm_delete(entry.id)
        controller.request_delete(entry.id)
        controller.confirm_delete(entry.id)
        assert controller.entries == []

    def test_cancel_keeps_the_entry(self, store, controller):
        entry = store.create_entry("m1", "Job", at(9), at(10)).entry
        controller.refresh()
        controller.request_delete(entry.id)
        controller.cancel_delete()
        with pytest.raises(ValidationError):
            controller.confirm_delete(entry.id)
        assert len(controller.entries) == 1

    def test_stale_entry_triggers_refetch(self, store, controller):
        entry = store.create_entry("m1", "Job", at(9), at(10)).entry
        controller.refresh()
        controller.request_delete(entry.id)
        store.delete_entry(entry.id)
        with pytest.raises(NotFoundError):
            controller.confirm_delete(entry.id)
        assert controller.entries == []
        assert controller.notice


class TestTimeOff:

    def test_member_cannot_approve(self, store, member_controller):
        req = member_controller.submit_time_off(date(2024, 6, 4), date(2024, 6, 5), "vacation")
        assert req.member_id == "m2"
        with pytest.raises(PermissionDeniedError):
            member_controller.approve_time_off(req.id)
        with pytest.raises(PermissionDeniedError):
            member_controller.reject_time_off(req.id)
        assert store.get_time_off_request(req.id).status == TimeOffStatus.PENDING

    def test_approval_puts_time_off_on_the_calendar(self, controller, member_controller):
        req = member_controller.submit_time_off(date(2024, 6, 4), date(2024, 6, 5), "vacation")
        controller.refresh()
        controller.approve_time_off(req.id)
        off = [e for e in controller.entries if e.type == EntryType.TIME_OFF]
        assert len(off) == 1
        assert off[0].member_id == "m2"
        day = controller.utilization().members[1].days[1]
        assert day.is_time_off and day.hours == 8

    def test_withdraw_someone_elses_request(self, controller, member_controller):
        req = controller.submit_time_off(date(2024, 6, 4), date(2024, 6, 4), "sick")
        member_controller.refresh()
        with pytest.raises(PermissionDeniedError):
            member_controller.withdraw_time_off(req.id)
        controller.withdraw_time_off(req.id)
        assert controller.time_off_requests == []


class FlakyStore(LedgerStore):
    def apply_sync(self, member_id, plan):
        raise TransientNetworkError("calendar unreachable")


class TestSync:

    def test_reconcile_twice_is_idempotent(self, controller):
        events = [foreign("a"), foreign("b", 11)]
        first = controller.trigger_sync(events, "m1")
        second = controller.trigger_sync(events, "m1")
        assert first.to_dict() == {"created": 2, "updated": 0, "removed": 0}
        assert second.to_dict() == {"created": 0, "updated": 0, "removed": 0}
        assert sum(e.is_external for e in controller.entries) == 2

    def test_events_beyond_the_sync_window_are_not_duplicated(self, store, controller):
        far = date(2024, 12, 20)
        events = [foreign("a"), ForeignEvent("far1", "Conference", at(9, day=far), at(10, day=far))]
        first = controller.trigger_sync(events, "m1")
        second = controller.trigger_sync(events, "m1")
        assert first.to_dict() == {"created": 1, "updated": 0, "removed": 0}
        assert second.to_dict() == {"created": 0, "updated": 0, "removed": 0}
        assert store.list_entries(far, far) == []

    def test_upstream_description_change_is_mirrored(self, store, controller):
        controller.trigger_sync([foreign("a")], "m1")
        edited = ForeignEvent("a", "Meeting a", at(9), at(10), description="Bring the plans")
        assert controller.trigger_sync([edited], "m1").updated == 1
        assert store.list_entries(MONDAY, MONDAY)[0].description == "Bring the plans"
        assert controller.trigger_sync([edited], "m1").updated == 0

    def test_upstream_deletion_removes_entry(self, controller):
        controller.trigger_sync([foreign("a"), foreign("b", 11)], "m1")
        summary = controller.trigger_sync([foreign("a")], "m1")
        assert summary.removed == 1

    def test_defaults_to_the_caller(self, controller):
        controller.trigger_sync([foreign("a")])
        assert controller.entries[0].member_id == "m1"
        assert controller.sync_status().connected

    def test_export_only_skips_import(self, store):
        c = ScheduleController(store, Caller("m1"), {"sync_direction": "export"}, today=lambda: MONDAY)
        assert c.trigger_sync([foreign("a")]).to_dict() == {"created": 0, "updated": 0, "removed": 0}
        assert store.list_entries(MONDAY, MONDAY) == []

    def test_failure_is_recorded_and_surfaced(self, tmp_path):
        store = FlakyStore(tmp_path)
        store.add_member("Ada Lovelace", member_id="m1")
        c = ScheduleController(store, Caller("m1"), today=lambda: MONDAY)
        with pytest.raises(TransientNetworkError):
            c.trigger_sync([foreign("a")])
        assert c.notice == "calendar unreachable"
        assert c.pending is None
        status = c.sync_status()
        assert not status.connected
        assert status.last_error == "calendar unreachable"
