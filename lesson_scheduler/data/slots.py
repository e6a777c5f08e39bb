"""
Slot catalog for an institution.

The catalog is the immutable weekly grid a generation run places lessons
on. It answers one question for the engine: which slots may a regular
lesson use, for a given session and shift.

The default grid follows the standard school day:

    P1 08:00  P2 08:40  P3 09:20  | break 10:00-10:20 |
    P4 10:20  P5 11:00            | lunch 11:40-13:10 |
    P6 13:10  P7 13:50  P8 14:30  | break 15:10-15:30 |
    P9 15:30  P10 16:10           | end of day 16:50  |

Periods 1-5 form the morning session and 6-10 the afternoon session. On
CPD days (Wednesday by default) periods 9 and 10 are reserved for
professional development.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable, Optional

from ..errors import CatalogError
from .models import (
    DAY_ORDER,
    BreakType,
    Day,
    Session,
    Shift,
    TimeSlot,
    time_to_minutes,
)


# =============================================================================
# Default Day Structure
# =============================================================================

# (period, start, end, session, break_type)
DEFAULT_DAY_STRUCTURE: list[tuple[int, str, str, Session, Optional[BreakType]]] = [
    (1, "08:00", "08:40", Session.MORNING, None),
    (2, "08:40", "09:20", Session.MORNING, None),
    (3, "09:20", "10:00", Session.MORNING, None),
    (-1, "10:00", "10:20", Session.MORNING, BreakType.MORNING_BREAK),
    (4, "10:20", "11:00", Session.MORNING, None),
    (5, "11:00", "11:40", Session.MORNING, None),
    (-2, "11:40", "13:10", Session.AFTERNOON, BreakType.LUNCH_BREAK),
    (6, "13:10", "13:50", Session.AFTERNOON, None),
    (7, "13:50", "14:30", Session.AFTERNOON, None),
    (8, "14:30", "15:10", Session.AFTERNOON, None),
    (-3, "15:10", "15:30", Session.AFTERNOON, BreakType.AFTERNOON_BREAK),
    (9, "15:30", "16:10", Session.AFTERNOON, None),
    (10, "16:10", "16:50", Session.AFTERNOON, None),
    (-4, "16:50", "16:55", Session.AFTERNOON, BreakType.END_OF_DAY),
]

CPD_PERIODS = (9, 10)

BREAK_NAMES = {
    BreakType.MORNING_BREAK: "MORNING BREAK",
    BreakType.LUNCH_BREAK: "LUNCH BREAK",
    BreakType.AFTERNOON_BREAK: "AFTERNOON BREAK",
    BreakType.END_OF_DAY: "END OF DAY",
}


def build_default_catalog(
    institution_id: str,
    cpd_days: Iterable[Day] = (Day.WEDNESDAY,),
    shift: Optional[Shift] = None,
) -> list[TimeSlot]:
    """
    Build the standard Monday-Friday slot list.

    Args:
        institution_id: Used to prefix slot IDs
        cpd_days: Days on which periods 9-10 are CPD
        shift: Shift to stamp on every slot (None = shared by all shifts)

    Returns:
        Slots ordered by day then time, breaks included
    """
    cpd_days = set(cpd_days)
    suffix = f"-{shift.value.lower()}" if shift else ""
    slots = []

    for day in DAY_ORDER:
        for period, start, end, session, break_type in DEFAULT_DAY_STRUCTURE:
            is_cpd = day in cpd_days and period in CPD_PERIODS
            if break_type:
                name = BREAK_NAMES[break_type]
                slot_id = f"{institution_id}-{day.value[:3].lower()}-{break_type.value.lower()}{suffix}"
            else:
                name = "CPD" if is_cpd else f"P{period}"
                slot_id = f"{institution_id}-{day.value[:3].lower()}-{period}{suffix}"

            slots.append(TimeSlot(
                id=slot_id,
                day=day,
                period=period,
                name=name,
                session=session,
                is_break=break_type is not None,
                break_type=break_type,
                is_cpd=is_cpd,
                shift=shift,
                start_minutes=time_to_minutes(start),
                end_minutes=time_to_minutes(end),
            ))

    return slots


# =============================================================================
# Slot Catalog
# =============================================================================

class SlotCatalog:
    """
    Read-only view over an institution's time slots.

    Usage:
        catalog = SlotCatalog(generation_input.slots)
        morning = catalog.eligible_slots(Session.MORNING)
    """

    def __init__(self, slots: Iterable[TimeSlot]):
        self._slots: tuple[TimeSlot, ...] = tuple(
            sorted(slots, key=lambda s: (s.day.index, s.start_minutes, s.period))
        )
        self._validate()
        self._by_id = {s.id: s for s in self._slots}
        self._eligible_cache: dict[tuple[Optional[Session], Optional[Shift]], tuple[TimeSlot, ...]] = {}

    def _validate(self) -> None:
        cells = Counter((s.shift, s.day, s.period) for s in self._slots)
        duplicates = [cell for cell, count in cells.items() if count > 1]
        if duplicates:
            shown = ", ".join(
                f"{day.value} P{period}" + (f" ({shift.value})" if shift else "")
                for shift, day, period in duplicates
            )
            raise CatalogError(f"Duplicate slot cells: {shown}", details={"duplicates": len(duplicates)})

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self):
        return iter(self._slots)

    @property
    def slots(self) -> tuple[TimeSlot, ...]:
        return self._slots

    def eligible_slots(
        self,
        session: Optional[Session] = None,
        shift: Optional[Shift] = None,
    ) -> tuple[TimeSlot, ...]:
        """
        Slots a regular lesson may use.

        Active, not a break and not CPD. CPD slots are excluded whether or
        not they are also flagged as breaks.
        """
        key = (session, shift)
        if key not in self._eligible_cache:
            self._eligible_cache[key] = tuple(
                s for s in self._slots
                if s.is_assignable
                and (session is None or s.session == session)
                and s.belongs_to(shift)
            )
        return self._eligible_cache[key]

    def count_eligible(self, session: Optional[Session] = None, shift: Optional[Shift] = None) -> int:
        return len(self.eligible_slots(session, shift))

    def cpd_slots(self) -> list[TimeSlot]:
        return [s for s in self._slots if s.is_cpd]

    def shifts(self) -> list[Shift]:
        """Shifts declared by the catalog, in enum order."""
        declared = {s.shift for s in self._slots if s.shift is not None}
        return [shift for shift in Shift if shift in declared]

    def periods(self, shift: Optional[Shift] = None) -> list[int]:
        """Teaching period numbers in order of appearance."""
        seen: dict[int, int] = {}
        for s in self._slots:
            if s.period > 0 and s.belongs_to(shift):
                seen.setdefault(s.period, s.start_minutes)
        return sorted(seen, key=lambda p: (seen[p], p))

    def get(self, slot_id: str) -> Optional[TimeSlot]:
        return self._by_id.get(slot_id)

    def find(self, day: Day, period: int, shift: Optional[Shift] = None) -> Optional[TimeSlot]:
        for s in self._slots:
            if s.day == day and s.period == period and s.belongs_to(shift):
                return s
        return None

    def summary(self) -> dict[str, int]:
        return {
            "slots": len(self._slots),
            "eligible": self.count_eligible(),
            "eligible_morning": self.count_eligible(Session.MORNING),
            "eligible_afternoon": self.count_eligible(Session.AFTERNOON),
            "breaks": sum(1 for s in self._slots if s.is_break),
            "cpd": len(self.cpd_slots()),
            "inactive": sum(1 for s in self._slots if not s.is_active),
        }
