"""
Schedule snapshot loading.

Fetches the doctor list, then fans out one slot fetch per doctor and
joins them back into a per-doctor outcome. A failing branch becomes an
empty slot set for that doctor; it never cancels or corrupts its
siblings. A failing doctor-list fetch is fatal for the whole snapshot.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Protocol

from slot_discovery.infrastructure.observability.logging import get_logger
from slot_discovery.models.domain.scheduling_domain import Doctor, Slot

logger = get_logger(__name__)

ALL_DOCTORS = "all"


class SchedulingReader(Protocol):
    async def list_doctors(self) -> list[Doctor]: ...

    async def list_doctor_slots(self, doctor_id: str) -> list[Slot]: ...


class ScheduleUnavailableError(Exception):
    """The doctor list could not be fetched, so no snapshot exists."""


@dataclass(slots=True)
class DoctorSlotsOutcome:
    doctor_id: str
    slots: list[Slot] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class ScheduleSnapshot:
    """Doctors plus the slot outcomes of one fetch pass."""

    doctors: list[Doctor]
    outcomes: list[DoctorSlotsOutcome]

    @property
    def slots(self) -> list[Slot]:
        return [slot for outcome in self.outcomes for slot in outcome.slots]

    @property
    def failed_doctor_ids(self) -> list[str]:
        return [outcome.doctor_id for outcome in self.outcomes if not outcome.ok]

    def doctors_by_id(self) -> dict[str, Doctor]:
        return {doctor.id: doctor for doctor in self.doctors}


async def fetch_slots_for_doctors(
    client: SchedulingReader, doctor_ids: list[str]
) -> list[DoctorSlotsOutcome]:
    """Fan out one slot fetch per doctor and collect every branch's outcome."""
    if not doctor_ids:
        return []

    results = await asyncio.gather(
        *(client.list_doctor_slots(doctor_id) for doctor_id in doctor_ids),
        return_exceptions=True,
    )

    outcomes: list[DoctorSlotsOutcome] = []
    for doctor_id, result in zip(doctor_ids, results):
        if isinstance(result, Exception):
            logger.warning(
                "Slot fetch failed for doctor, using empty slot set",
                doctor_id=doctor_id,
                error=str(result),
                error_type=type(result).__name__,
            )
            outcomes.append(DoctorSlotsOutcome(doctor_id=doctor_id, error=str(result)))
        elif isinstance(result, BaseException):
            raise result
        else:
            outcomes.append(DoctorSlotsOutcome(doctor_id=doctor_id, slots=list(result)))
    return outcomes


async def load_schedule_snapshot(
    client: SchedulingReader, doctor_filter: str = ALL_DOCTORS
) -> ScheduleSnapshot:
    """
    Load doctors and the slots matching the doctor filter.

    Args:
        client: Remote scheduling reader
        doctor_filter: "all" or a single doctor id

    Returns:
        ScheduleSnapshot with one outcome per fetched doctor

    Raises:
        ScheduleUnavailableError: If the doctor list cannot be fetched
    """
    try:
        doctors = await client.list_doctors()
    except Exception as e:
        logger.error(
            "Doctor list unavailable",
            error=str(e),
            error_type=type(e).__name__,
            doctor_filter=doctor_filter,
        )
        raise ScheduleUnavailableError("Doctor list unavailable") from e

    if doctor_filter == ALL_DOCTORS:
        doctor_ids = [doctor.id for doctor in doctors]
    else:
        doctor_ids = [doctor_filter]

    outcomes = await fetch_slots_for_doctors(client, doctor_ids)
    snapshot = ScheduleSnapshot(doctors=list(doctors), outcomes=outcomes)

    logger.debug(
        "Schedule snapshot loaded",
        doctor_filter=doctor_filter,
        doctor_count=len(snapshot.doctors),
        slot_count=len(snapshot.slots),
        failed_doctors=len(snapshot.failed_doctor_ids),
    )
    return snapshot
