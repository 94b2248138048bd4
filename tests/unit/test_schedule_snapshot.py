import asyncio

import pytest

from conftest import FakeSchedulingClient, make_doctor, make_slot
from slot_discovery.services.scheduling.snapshot import (
    ScheduleUnavailableError,
    fetch_slots_for_doctors,
    load_schedule_snapshot,
)


class SlowFailingClient(FakeSchedulingClient):
    """doc-1 fails immediately while doc-2 is still in flight."""

    async def list_doctor_slots(self, doctor_id: str):
        if doctor_id == "doc-1":
            raise ValueError("bad payload")
        await asyncio.sleep(0.01)
        return await super().list_doctor_slots(doctor_id)


@pytest.mark.asyncio
async def test_failing_branch_does_not_cancel_siblings():
    client = SlowFailingClient(
        doctors=[make_doctor("doc-1"), make_doctor("doc-2")],
        slots=[make_slot("s2", "doc-2")],
    )

    outcomes = await fetch_slots_for_doctors(client, ["doc-1", "doc-2"])

    assert [outcome.doctor_id for outcome in outcomes] == ["doc-1", "doc-2"]
    assert outcomes[0].ok is False
    assert outcomes[0].slots == []
    assert outcomes[1].ok is True
    assert [slot.id for slot in outcomes[1].slots] == ["s2"]


@pytest.mark.asyncio
async def test_snapshot_unions_all_doctors(fake_client):
    snapshot = await load_schedule_snapshot(fake_client)

    assert [doctor.id for doctor in snapshot.doctors] == ["doc-1", "doc-2"]
    assert sorted(slot.id for slot in snapshot.slots) == ["slot-a", "slot-b"]
    assert snapshot.failed_doctor_ids == []


@pytest.mark.asyncio
async def test_snapshot_for_single_doctor(fake_client):
    snapshot = await load_schedule_snapshot(fake_client, "doc-2")

    assert fake_client.slot_calls == ["doc-2"]
    assert [slot.id for slot in snapshot.slots] == ["slot-b"]


@pytest.mark.asyncio
async def test_snapshot_records_failed_doctors(fake_client):
    fake_client.failing_doctors.add("doc-1")

    snapshot = await load_schedule_snapshot(fake_client)

    assert snapshot.failed_doctor_ids == ["doc-1"]
    assert [slot.id for slot in snapshot.slots] == ["slot-b"]


@pytest.mark.asyncio
async def test_doctor_list_failure_is_fatal(fake_client):
    fake_client.doctor_list_error = ConnectionError("refused")

    with pytest.raises(ScheduleUnavailableError):
        await load_schedule_snapshot(fake_client)


@pytest.mark.asyncio
async def test_no_doctors_means_no_fetches():
    client = FakeSchedulingClient()

    snapshot = await load_schedule_snapshot(client)

    assert snapshot.slots == []
    assert client.slot_calls == []
