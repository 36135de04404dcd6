"""
Pytest configuration and shared fixtures.
"""

from datetime import date, datetime

import pytest

from crewplan.controller import ScheduleController
from crewplan.models import Caller, EntrySource, EntryType, ScheduleEntry, TeamMember
from crewplan.store import LedgerStore

# Monday of the week used throughout the suite
MONDAY = date(2024, 6, 3)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


@pytest.fixture
def make_entry():
    """Factory for ScheduleEntry objects with sensible defaults."""
    def _make(entry_id, member_id="m1", start=None, end=None, **kwargs):
        start = start or at(MONDAY, 9)
        end = end or at(MONDAY, 10)
        kwargs.setdefault("title", entry_id)
        if kwargs.get("source") == EntrySource.EXTERNAL:
            kwargs.setdefault("type", EntryType.EXTERNAL)
            kwargs.setdefault("external_id", f"ext-{entry_id}")
        return ScheduleEntry(id=entry_id, member_id=member_id, start=start, end=end, **kwargs)
    return _make


@pytest.fixture
def roster():
    """Two schedulable members, one pending invitation and one deactivated."""
    return [
        TeamMember("m1", "Ada Lovelace", "#3b82f6"),
        TeamMember("m2", "Grace Hopper", "#10b981"),
        TeamMember("m3", "Invited Person", "#f59e0b", accepted_invitation=False),
        TeamMember("m4", "Former Colleague", "#ef4444", active=False),
    ]


@pytest.fixture
def store(tmp_path):
    """A ledger-backed store in a temporary directory with Ada and Grace on the roster."""
    s = LedgerStore(tmp_path / "data")
    s.add_member("Ada Lovelace", "#3b82f6", member_id="m1")
    s.add_member("Grace Hopper", "#10b981", member_id="m2")
    return s


@pytest.fixture
def controller(store):
    """Controller for an admin (Ada) pinned to the week of 2024-06-03."""
    c = ScheduleController(store, Caller("m1", elevated=True), {"default_view": "week"}, today=lambda: MONDAY)
    c.load()
    return c


@pytest.fixture
def member_controller(store):
    """Controller for Grace without approval rights."""
    c = ScheduleController(store, Caller("m2"), {"default_view": "week"}, today=lambda: MONDAY)
    c.load()
    return c
