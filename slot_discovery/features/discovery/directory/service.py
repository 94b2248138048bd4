"""
Doctor directory and schedule summary.

Search/specialty filtering for the doctor list and the headline counts
shown above it.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from slot_discovery.infrastructure.observability.logging import get_logger
from slot_discovery.models.domain.scheduling_domain import Doctor
from slot_discovery.services.scheduling.snapshot import (
    SchedulingReader,
    ScheduleUnavailableError,
    load_schedule_snapshot,
)

logger = get_logger(__name__)


@dataclass(slots=True)
class ScheduleStats:
    total_doctors: int = 0
    total_slots: int = 0
    available_seats: int = 0
    fully_booked_slots: int = 0
    data_available: bool = True


def filter_doctors(doctors: Iterable[Doctor], search: str = "", specialty: str = "") -> list[Doctor]:
    """
    Filter doctors by a free-text search and an exact specialty.

    The search matches name or specialty, case-insensitively and as typed
    (surrounding whitespace is part of the term). Empty
    values match everything.
    """
    needle = search.lower()
    matches = []
    for doctor in doctors:
        if needle and needle not in doctor.name.lower() and needle not in doctor.specialty.lower():
            continue
        if specialty and doctor.specialty != specialty:
            continue
        matches.append(doctor)
    return matches


def list_specialties(doctors: Iterable[Doctor]) -> list[str]:
    """Distinct specialties in the order doctors arrived."""
    return list(dict.fromkeys(doctor.specialty for doctor in doctors))


async def summarize_schedule(client: SchedulingReader) -> ScheduleStats:
    try:
        snapshot = await load_schedule_snapshot(client)
    except ScheduleUnavailableError:
        logger.error("Schedule stats unavailable - doctor list fetch failed")
        return ScheduleStats(data_available=False)

    slots = snapshot.slots
    return ScheduleStats(
        total_doctors=len(snapshot.doctors),
        total_slots=len(slots),
        available_seats=sum(slot.available_seats for slot in slots),
        fully_booked_slots=sum(1 for slot in slots if not slot.is_bookable()),
    )
