"""
Domain models for the slot discovery feature.

Derived, display-ready structures produced by the scorer, the calendar
aggregator and the activity feed. None of them is persisted; every pass
builds fresh instances.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from slot_discovery.models.domain.scheduling_domain import Doctor, Slot


@dataclass(slots=True, frozen=True)
class Recommendation:
    """A scored slot with the reasons behind its score."""

    slot: Slot
    doctor: Doctor
    score: float
    reason: str

    @property
    def rounded_score(self) -> int:
        # half-up, the way the score is shown to patients
        return math.floor(self.score + 0.5)


@dataclass(slots=True)
class RecommendationResult:
    recommendations: list[Recommendation] = field(default_factory=list)
    data_available: bool = True


class ViewMode(str, Enum):
    WEEK = "week"
    MONTH = "month"


class NavigationDirection(str, Enum):
    PREV = "prev"
    NEXT = "next"


@dataclass(slots=True, frozen=True)
class CalendarWindow:
    """Half-open [start, end) range of local days being viewed."""

    view_mode: ViewMode
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    def days(self) -> list[date]:
        first = self.start.date()
        count = (self.end.date() - first).days
        return [date.fromordinal(first.toordinal() + offset) for offset in range(count)]


@dataclass(slots=True, frozen=True)
class CalendarSlot:
    """A slot placed on the grid, with what the cell needs to render it."""

    slot: Slot
    doctor_name: str
    day_key: int
    hour_key: int

    @property
    def bookable(self) -> bool:
        return self.slot.is_bookable()


@dataclass(slots=True, frozen=True)
class CalendarDay:
    key: int
    day: date
    slot_count: int


@dataclass(slots=True, frozen=True)
class CalendarCell:
    day_key: int
    hour: int
    slots: tuple[CalendarSlot, ...] = ()


@dataclass(slots=True, frozen=True)
class CalendarGrid:
    window: CalendarWindow
    doctor_filter: str
    hours: tuple[int, ...]
    days: tuple[CalendarDay, ...]
    cells: tuple[CalendarCell, ...]
    data_available: bool = True

    def cell(self, day_key: int, hour: int) -> CalendarCell | None:
        for cell in self.cells:
            if cell.day_key == day_key and cell.hour == hour:
                return cell
        return None

    def placed_slot_ids(self) -> set[str]:
        return {placed.slot.id for cell in self.cells for placed in cell.slots}


class ActivityAction(str, Enum):
    VIEWING = "viewing"
    BOOKING = "booking"


@dataclass(slots=True, frozen=True)
class ActivityEvent:
    """A simulated presence record for one slot."""

    id: str
    slot_id: str
    user_name: str
    action: ActivityAction
    inserted_at: datetime
    expires_at: datetime

    def age_seconds(self, now: datetime) -> int:
        return max(0, math.floor((now - self.inserted_at).total_seconds()))
