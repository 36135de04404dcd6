"""Tests for the day/week time grid and the month listing grid."""

from datetime import date, datetime

import pytest

from crewplan.layout import (GridConfig, block_geometry, drill_down, entries_for_day, entry_color,
                             layout_month, layout_time_grid)
from crewplan.models import DEFAULT_MEMBER_COLOR, NEUTRAL_COLOR, EntrySource, EntryType, Granularity, TeamMember
from crewplan.window import compute_window

MONDAY = date(2024, 6, 3)


def at(day, hour, minute=0):
    return datetime(day.year, day.month, day.day, hour, minute)


@pytest.fixture
def grid():
    return GridConfig(start_hour=6, end_hour=20, hour_height=60, min_block_height=20)


class TestBlockGeometry:

    def test_proportional_top_and_height(self, make_entry, grid):
        e = make_entry("e", start=at(MONDAY, 9), end=at(MONDAY, 10, 30))
        assert block_geometry(e, grid) == (180, 90)

    def test_short_entries_get_the_minimum_height(self, make_entry, grid):
        e = make_entry("e", start=at(MONDAY, 9), end=at(MONDAY, 9, 10))
        top, height = block_geometry(e, grid)
        assert top == 180
        assert height == 20

    def test_clamped_to_visible_hours(self, make_entry, grid):
        early = make_entry("early", start=at(MONDAY, 5), end=at(MONDAY, 7))
        late = make_entry("late", start=at(MONDAY, 19), end=at(MONDAY, 22))
        assert block_geometry(early, grid) == (0, 60)
        assert block_geometry(late, grid) == (780, 60)

    def test_grid_dimensions(self, grid):
        assert grid.total_hours == 14
        assert grid.grid_height == 840
        assert grid.hour_labels()[0] == "06:00"
        assert grid.hour_labels()[-1] == "19:00"


class TestTimeGrid:

    def test_week_has_seven_columns_and_splits_lanes(self, make_entry, roster, grid):
        window = compute_window(Granularity.WEEK, MONDAY)
        entries = [
            make_entry("timed", start=at(MONDAY, 9), end=at(MONDAY, 10)),
            make_entry("trip", start=at(MONDAY, 0), end=at(date(2024, 6, 5), 23, 59), all_day=True),
        ]
        tg = layout_time_grid(window, entries, roster, grid)
        assert len(tg.columns) == 7
        assert [b.entry.id for b in tg.columns[0].timed] == ["timed"]
        assert [len(c.all_day) for c in tg.columns] == [1, 1, 1, 0, 0, 0, 0]
        assert tg.has_all_day
        assert tg.all_day_lane_height == 28

    def test_lane_grows_with_stacked_chips(self, make_entry, roster, grid):
        window = compute_window(Granularity.DAY, MONDAY)
        entries = [make_entry(f"a{i}", start=at(MONDAY, 0), end=at(MONDAY, 0), all_day=True) for i in range(3)]
        tg = layout_time_grid(window, entries, roster, grid)
        assert tg.all_day_lane_height == 84

    def test_external_entries_take_space_but_are_not_interactive(self, make_entry, roster, grid):
        window = compute_window(Granularity.DAY, MONDAY)
        synced = make_entry("x", start=at(MONDAY, 9), end=at(MONDAY, 10), source=EntrySource.EXTERNAL)
        local = make_entry("l", start=at(MONDAY, 9), end=at(MONDAY, 10))
        blocks = layout_time_grid(window, [synced, local], roster, grid).columns[0].timed
        assert {b.entry.id: b.interactive for b in blocks} == {"x": False, "l": True}
        assert blocks[0].top == blocks[1].top

    def test_no_all_day_lane_when_empty(self, make_entry, roster, grid):
        window = compute_window(Granularity.WEEK, MONDAY)
        tg = layout_time_grid(window, [make_entry("t")], roster, grid)
        assert not tg.has_all_day
        assert tg.all_day_lane_height == 0


class TestMonthGrid:

    def test_cells_overflow_into_more_indicator(self, make_entry, roster):
        window = compute_window(Granularity.MONTH, MONDAY)
        entries = [make_entry(f"e{i}", start=at(MONDAY, 8 + i), end=at(MONDAY, 9 + i)) for i in range(5)]
        weeks = layout_month(window, entries, roster, 3)
        assert all(len(w) == 7 for w in weeks)
        cell = next(c for w in weeks for c in w if c.day == MONDAY)
        assert [b.entry.id for b in cell.visible] == ["e0", "e1", "e2"]
        assert cell.more_count == 2
        assert cell.total == 5

    def test_no_indicator_when_everything_fits(self, make_entry, roster):
        window = compute_window(Granularity.MONTH, MONDAY)
        weeks = layout_month(window, [make_entry("only")], roster, 3)
        cell = next(c for w in weeks for c in w if c.day == MONDAY)
        assert cell.more_count == 0

    def test_padding_cells_still_carry_entries(self, make_entry, roster):
        window = compute_window(Granularity.MONTH, MONDAY)
        padded_day = date(2024, 5, 28)
        weeks = layout_month(window, [make_entry("may", start=at(padded_day, 9), end=at(padded_day, 10))], roster, 3)
        cell = next(c for w in weeks for c in w if c.day == padded_day)
        assert not cell.in_focus
        assert [b.entry.id for b in cell.visible] == ["may"]

    def test_day_ordering(self, make_entry):
        entries = [
            make_entry("late", title="B", start=at(MONDAY, 14), end=at(MONDAY, 15)),
            make_entry("tie_b", title="Beta", start=at(MONDAY, 9), end=at(MONDAY, 10)),
            make_entry("tie_a", title="Alpha", start=at(MONDAY, 9), end=at(MONDAY, 10)),
            make_entry("allday", title="Z", start=at(MONDAY, 0), end=at(MONDAY, 0), all_day=True),
        ]
        assert [e.id for e in entries_for_day(entries, MONDAY)] == ["allday", "tie_a", "tie_b", "late"]

    def test_drill_down_opens_day_view(self):
        assert drill_down(date(2024, 6, 12)) == (Granularity.DAY, date(2024, 6, 12))


class TestEntryColor:

    def test_resolution_order(self, make_entry):
        members = {"m1": TeamMember("m1", "Ada", "#3b82f6"), "m2": TeamMember("m2", "Grace", "")}
        assert entry_color(make_entry("a", color="#123456"), members) == "#123456"
        assert entry_color(make_entry("b", type=EntryType.TIME_OFF), members) == NEUTRAL_COLOR
        assert entry_color(make_entry("c", source=EntrySource.EXTERNAL), members) == NEUTRAL_COLOR
        assert entry_color(make_entry("d"), members) == "#3b82f6"
        assert entry_color(make_entry("e", member_id="m2"), members) == DEFAULT_MEMBER_COLOR
        assert entry_color(make_entry("f", member_id="ghost"), members) == DEFAULT_MEMBER_COLOR
