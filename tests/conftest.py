import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from slot_discovery.models.domain.scheduling_domain import Doctor, Slot
from slot_discovery.services.scheduling.client import SchedulingServiceError

# Monday 19 Oct 2026, 08:00 UTC
FIXED_NOW = datetime(2026, 10, 19, 8, 0, tzinfo=UTC)


def make_doctor(doctor_id: str = "doc-1", specialty: str = "Cardiology", **overrides) -> Doctor:
    fields = {"id": doctor_id, "name": f"Dr. {doctor_id}", "specialty": specialty, "profile": None}
    fields.update(overrides)
    return Doctor(**fields)


def make_slot(
    slot_id: str = "slot-1",
    doctor_id: str = "doc-1",
    start: datetime | None = None,
    total: int = 5,
    available: int = 5,
    minutes: int = 30,
) -> Slot:
    start = start or FIXED_NOW + timedelta(hours=48)
    return Slot(
        id=slot_id,
        doctor_id=doctor_id,
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        total_seats=total,
        available_seats=available,
    )


class FakeSchedulingClient:
    """In-memory stand-in for SchedulingServiceClient."""

    def __init__(self, doctors=None, slots=None):
        self.doctors: list[Doctor] = list(doctors or [])
        self.slots: list[Slot] = list(slots or [])
        self.failing_doctors: set[str] = set()
        self.doctor_list_error: Exception | None = None
        self.doctor_list_gates: list[asyncio.Event] = []
        self.doctor_list_calls = 0
        self.slot_calls: list[str] = []
        self.closed = False

    async def list_doctors(self) -> list[Doctor]:
        self.doctor_list_calls += 1
        if self.doctor_list_gates:
            gate = self.doctor_list_gates.pop(0)
            await gate.wait()
        if self.doctor_list_error is not None:
            raise self.doctor_list_error
        return list(self.doctors)

    async def list_doctor_slots(self, doctor_id: str) -> list[Slot]:
        self.slot_calls.append(doctor_id)
        if doctor_id in self.failing_doctors:
            raise SchedulingServiceError("boom", status_code=500)
        return [slot for slot in self.slots if slot.doctor_id == doctor_id]

    async def get_slot(self, slot_id: str) -> Slot:
        for slot in self.slots:
            if slot.id == slot_id:
                return slot
        raise SchedulingServiceError("Doctor or slot not found.", status_code=404)

    async def ping(self) -> bool:
        return self.doctor_list_error is None

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def fake_client():
    doctors = [
        make_doctor("doc-1", "Cardiology"),
        make_doctor("doc-2", "Dermatology"),
    ]
    slots = [
        make_slot("slot-a", "doc-1", FIXED_NOW + timedelta(hours=48)),
        make_slot("slot-b", "doc-2", FIXED_NOW + timedelta(hours=50), available=2),
    ]
    return FakeSchedulingClient(doctors=doctors, slots=slots)
