"""Tests for the utilization aggregator."""

from datetime import date, datetime, timedelta

import pytest

from crewplan.models import EntrySource, EntryStatus, EntryType, Granularity, TeamMember
from crewplan.utilization import aggregate
from crewplan.window import compute_window

MONDAY = date(2024, 6, 3)
FRIDAY = date(2024, 6, 7)


def at(day, hour, minute=0):
    return datetime(day.year, day.month, day.day, hour, minute)


@pytest.fixture
def week():
    return compute_window(Granularity.WEEK, MONDAY)


@pytest.fixture
def ada():
    return TeamMember("m1", "Ada Lovelace", "#3b82f6")


class TestAggregate:

    def test_full_week_of_time_off(self, make_entry, week, ada):
        leave = make_entry("leave", start=at(MONDAY, 0), end=at(FRIDAY, 23, 59), all_day=True, type=EntryType.TIME_OFF)
        report = aggregate([leave], [ada], week, 8)
        row = report.members[0]
        weekdays = [d for d in row.days if not d.is_weekend]
        assert len(weekdays) == 5
        assert all(d.hours == 8 and d.is_time_off for d in weekdays)
        assert row.average == 100
        assert report.team_average == 100

    def test_weekend_excluded_from_average(self, make_entry, week, ada):
        saturday = MONDAY + timedelta(days=5)
        entries = [
            make_entry("mon", start=at(MONDAY, 8), end=at(MONDAY, 16)),
            make_entry("sat", start=at(saturday, 8), end=at(saturday, 16)),
        ]
        row = aggregate(entries, [ada], week, 8).members[0]
        assert row.days[5].hours == 8
        assert row.days[5].is_weekend
        assert row.average == pytest.approx(20.0)
        assert row.total_hours == 8

    def test_percent_is_capped_but_hours_are_not(self, make_entry, week, ada):
        long_day = make_entry("long", start=at(MONDAY, 6), end=at(MONDAY, 18))
        day = aggregate([long_day], [ada], week, 8).members[0].days[0]
        assert day.hours == 12
        assert day.utilization_percent == 100

    def test_decimal_hours_are_preserved(self, make_entry, week, ada):
        e = make_entry("e", start=at(MONDAY, 9), end=at(MONDAY, 10, 45))
        day = aggregate([e], [ada], week, 8).members[0].days[0]
        assert day.hours == pytest.approx(1.75)
        assert day.utilization_percent == pytest.approx(21.875)

    def test_cancelled_entries_do_not_count(self, make_entry, week, ada):
        e = make_entry("e", start=at(MONDAY, 9), end=at(MONDAY, 17), status=EntryStatus.CANCELLED)
        assert aggregate([e], [ada], week, 8).members[0].days[0].hours == 0

    def test_external_entries_excluded_by_default(self, make_entry, week, ada):
        synced = make_entry("x", start=at(MONDAY, 9), end=at(MONDAY, 13), source=EntrySource.EXTERNAL)
        assert aggregate([synced], [ada], week, 8).members[0].days[0].hours == 0
        assert aggregate([synced], [ada], week, 8, include_external=True).members[0].days[0].hours == 4

    def test_time_off_flag_does_not_zero_hours(self, make_entry, week, ada):
        entries = [
            make_entry("half", start=at(MONDAY, 13), end=at(MONDAY, 17), type=EntryType.TIME_OFF),
            make_entry("work", start=at(MONDAY, 8), end=at(MONDAY, 12)),
        ]
        day = aggregate(entries, [ada], week, 8).members[0].days[0]
        assert day.is_time_off
        assert day.hours == 8

    def test_month_view_only_counts_focus_month(self, make_entry, ada):
        month = compute_window(Granularity.MONTH, MONDAY)
        padded = date(2024, 5, 28)
        entries = [make_entry("may", start=at(padded, 8), end=at(padded, 16))]
        row = aggregate(entries, [ada], month, 8).members[0]
        assert [d.day for d in row.days] == month.focus_days
        assert row.total_hours == 0

    def test_team_average_is_unweighted_mean(self, make_entry, week, ada):
        grace = TeamMember("m2", "Grace Hopper")
        entries = [make_entry(f"a{i}", start=at(MONDAY + timedelta(days=i), 8), end=at(MONDAY + timedelta(days=i), 16))
                   for i in range(5)]
        report = aggregate(entries, [ada, grace], week, 8)
        assert [r.average for r in report.members] == [100, 0]
        assert report.team_average == 50

    def test_unschedulable_members_are_skipped(self, week, roster):
        report = aggregate([], roster, week, 8)
        assert [r.member.id for r in report.members] == ["m1", "m2"]

    def test_empty_roster(self, week):
        report = aggregate([], [], week, 8)
        assert report.members == []
        assert report.team_average == 0
        assert report.days == []

    def test_percent_always_within_bounds(self, make_entry, week, ada):
        entries = [make_entry(f"e{h}", start=at(MONDAY, h), end=at(MONDAY, h + 3)) for h in range(0, 20, 2)]
        for d in aggregate(entries, [ada], week, 8).members[0].days:
            assert 0 <= d.utilization_percent <= 100
