"""Tests for the slot catalog."""

from __future__ import annotations

import pytest

from lesson_scheduler.data.models import Day, Session, Shift, TimeSlot
from lesson_scheduler.data.slots import SlotCatalog, build_default_catalog
from lesson_scheduler.errors import CatalogError, InputValidationError


@pytest.fixture
def default_catalog() -> SlotCatalog:
    return SlotCatalog(build_default_catalog("sch"))


class TestDefaultCatalog:

    def test_fourteen_rows_per_day(self):
        slots = build_default_catalog("sch")
        assert len(slots) == 70
        assert sum(1 for s in slots if s.is_break) == 20

    def test_eligible_counts_with_wednesday_cpd(self, default_catalog):
        assert default_catalog.count_eligible(Session.MORNING) == 25
        assert default_catalog.count_eligible(Session.AFTERNOON) == 23
        assert default_catalog.count_eligible() == 48

    def test_no_cpd_days(self):
        catalog = SlotCatalog(build_default_catalog("sch", cpd_days=()))
        assert catalog.count_eligible(Session.AFTERNOON) == 25
        assert catalog.cpd_slots() == []

    def test_cpd_slots_are_wednesday_nine_and_ten(self, default_catalog):
        cpd = default_catalog.cpd_slots()
        assert {(s.day, s.period) for s in cpd} == {(Day.WEDNESDAY, 9), (Day.WEDNESDAY, 10)}
        assert all(s.name == "CPD" for s in cpd)

    def test_times(self, default_catalog):
        first = default_catalog.find(Day.MONDAY, 1)
        last = default_catalog.find(Day.FRIDAY, 10)
        assert first.time_range == "08:00-08:40"
        assert last.time_range == "16:10-16:50"

    def test_periods_in_order(self, default_catalog):
        assert default_catalog.periods() == list(range(1, 11))

    def test_shift_suffix_in_ids(self):
        slots = build_default_catalog("sch", shift=Shift.AFTERNOON)
        assert slots[0].id == "sch-mon-1-afternoon"
        assert all(s.shift == Shift.AFTERNOON for s in slots)


class TestSlotCatalog:

    def test_eligible_slots_exclude_breaks_and_cpd(self, default_catalog):
        for slot in default_catalog.eligible_slots():
            assert not slot.is_break
            assert not slot.is_cpd
            assert slot.is_active

    def test_eligible_slots_filter_by_session(self, default_catalog):
        morning = default_catalog.eligible_slots(Session.MORNING)
        assert all(s.session == Session.MORNING for s in morning)
        assert {s.period for s in morning} == {1, 2, 3, 4, 5}

    def test_cpd_slot_also_flagged_break_stays_excluded(self):
        slot = TimeSlot(
            id="x", day=Day.MONDAY, period=9, session=Session.AFTERNOON,
            is_break=True, is_cpd=True, start_minutes=930, end_minutes=970,
        )
        assert SlotCatalog([slot]).count_eligible() == 0

    def test_inactive_slots_excluded(self):
        slots = build_default_catalog("sch", cpd_days=())
        slots[0] = slots[0].model_copy(update={"is_active": False})
        assert SlotCatalog(slots).count_eligible(Session.MORNING) == 24

    def test_sorted_by_day_then_time(self):
        slots = list(reversed(build_default_catalog("sch")))
        catalog = SlotCatalog(slots)
        assert catalog.slots[0].day == Day.MONDAY
        assert catalog.slots[0].period == 1

    def test_duplicate_cells_rejected(self):
        slots = build_default_catalog("sch")
        duplicate = slots[0].model_copy(update={"id": "other"})
        with pytest.raises(CatalogError, match="Duplicate slot cells"):
            SlotCatalog(slots + [duplicate])

    def test_catalog_error_is_input_error(self):
        assert issubclass(CatalogError, InputValidationError)

    def test_shift_filtering(self):
        slots = build_default_catalog("sch", shift=Shift.MORNING) + build_default_catalog("sch", shift=Shift.AFTERNOON)
        catalog = SlotCatalog(slots)
        assert catalog.shifts() == [Shift.MORNING, Shift.AFTERNOON]
        assert catalog.count_eligible(Session.MORNING, Shift.MORNING) == 25
        assert all(s.shift == Shift.AFTERNOON for s in catalog.eligible_slots(shift=Shift.AFTERNOON))

    def test_summary(self, default_catalog):
        summary = default_catalog.summary()
        assert summary["slots"] == 70
        assert summary["eligible"] == 48
        assert summary["cpd"] == 2
        assert summary["breaks"] == 20
