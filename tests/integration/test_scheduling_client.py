from datetime import UTC, datetime

import httpx
import pytest

from slot_discovery.services.scheduling.client import (
    SchedulingServiceClient,
    SchedulingServiceError,
)

BASE_URL = "http://scheduler.test"


@pytest.mark.asyncio
async def test_list_doctors_parses_and_skips_malformed(httpx_mock):
    service = SchedulingServiceClient(base_url=BASE_URL)

    httpx_mock.add_response(
        method="GET",
        url=f"{BASE_URL}/doctors",
        json=[
            {"_id": "d1", "name": "Dr. Adams", "specialty": "Cardiology", "createdAt": "x"},
            {"_id": "d2", "name": "Dr. Baker"},
            {"_id": "d3", "name": "Dr. Chen", "specialty": "Dermatology", "profile": "20 years"},
        ],
    )

    doctors = await service.list_doctors()
    await service.close()

    assert [doctor.id for doctor in doctors] == ["d1", "d3"]
    assert doctors[1].profile == "20 years"


@pytest.mark.asyncio
async def test_list_doctor_slots_parses_timestamps(httpx_mock):
    service = SchedulingServiceClient(base_url=BASE_URL)

    httpx_mock.add_response(
        method="GET",
        url=f"{BASE_URL}/doctors/d1/slots",
        json=[
            {
                "_id": "s1",
                "doctorId": "d1",
                "startTime": "2026-10-21T10:00:00.000Z",
                "endTime": "2026-10-21T10:30:00.000Z",
                "totalSeats": 5,
                "availableSeats": 3,
            },
            {
                "_id": "s2",
                "doctorId": "d1",
                "startTime": "not a date",
                "endTime": "2026-10-21T11:30:00Z",
                "totalSeats": 5,
                "availableSeats": 3,
            },
            {
                "_id": "s3",
                "doctorId": "d1",
                "startTime": "2026-10-21T12:00:00Z",
                "endTime": "2026-10-21T12:30:00Z",
                "totalSeats": 2,
                "availableSeats": 4,
            },
        ],
    )

    slots = await service.list_doctor_slots("d1")
    await service.close()

    assert [slot.id for slot in slots] == ["s1"]
    assert slots[0].start_time == datetime(2026, 10, 21, 10, 0, tzinfo=UTC)
    assert slots[0].available_seats == 3


@pytest.mark.asyncio
async def test_empty_slot_list_is_valid(httpx_mock):
    service = SchedulingServiceClient(base_url=BASE_URL)

    httpx_mock.add_response(method="GET", url=f"{BASE_URL}/doctors/d9/slots", json=[])

    assert await service.list_doctor_slots("d9") == []
    await service.close()


@pytest.mark.asyncio
async def test_server_error_maps_to_scheduling_error(httpx_mock):
    service = SchedulingServiceClient(base_url=BASE_URL)

    httpx_mock.add_response(
        method="GET",
        url=f"{BASE_URL}/doctors",
        status_code=500,
        json={"error": {"code": "INTERNAL", "message": "database down"}},
    )

    with pytest.raises(SchedulingServiceError) as exc:
        await service.list_doctors()
    await service.close()

    assert exc.value.status_code == 500
    assert exc.value.error_code == "INTERNAL"
    assert "temporarily unavailable" in str(exc.value)


@pytest.mark.asyncio
async def test_non_json_error_response(httpx_mock):
    service = SchedulingServiceClient(base_url=BASE_URL)

    httpx_mock.add_response(
        method="GET", url=f"{BASE_URL}/doctors", status_code=502, text="<html>Bad Gateway</html>"
    )

    with pytest.raises(SchedulingServiceError) as exc:
        await service.list_doctors()
    await service.close()

    assert exc.value.status_code == 502


@pytest.mark.asyncio
async def test_network_error_maps_to_scheduling_error(httpx_mock):
    service = SchedulingServiceClient(base_url=BASE_URL)

    httpx_mock.add_exception(httpx.ConnectError("connection refused"), url=f"{BASE_URL}/doctors")

    with pytest.raises(SchedulingServiceError) as exc:
        await service.list_doctors()
    await service.close()

    assert exc.value.error_code == "network_error"


@pytest.mark.asyncio
async def test_get_slot_not_found(httpx_mock):
    service = SchedulingServiceClient(base_url=BASE_URL)

    httpx_mock.add_response(
        method="GET",
        url=f"{BASE_URL}/slots/missing",
        status_code=404,
        json={"error": {"code": "NOT_FOUND", "message": "Slot not found"}},
    )

    with pytest.raises(SchedulingServiceError) as exc:
        await service.get_slot("missing")
    await service.close()

    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_ping_reports_failure_without_raising(httpx_mock):
    service = SchedulingServiceClient(base_url=BASE_URL)

    httpx_mock.add_response(method="GET", url=f"{BASE_URL}/doctors", status_code=503)

    assert await service.ping() is False
    await service.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("doctor_id", "raw_path"),
    [
        ("a/../b", b"/doctors/a%2F..%2Fb/slots"),
        ("x?admin=1#", b"/doctors/x%3Fadmin%3D1%23/slots"),
        ("..", b"/doctors/%2E%2E/slots"),
        ("doc 7", b"/doctors/doc%207/slots"),
    ],
)
async def test_doctor_id_is_sent_as_one_path_segment(httpx_mock, doctor_id, raw_path):
    service = SchedulingServiceClient(base_url=BASE_URL)

    httpx_mock.add_response(method="GET", json=[])

    assert await service.list_doctor_slots(doctor_id) == []
    await service.close()

    request = httpx_mock.get_request()
    assert request.url.host == "scheduler.test"
    assert request.url.raw_path == raw_path
    assert request.url.query == b""


@pytest.mark.asyncio
async def test_slot_id_is_sent_as_one_path_segment(httpx_mock):
    service = SchedulingServiceClient(base_url=BASE_URL)

    httpx_mock.add_response(method="GET", status_code=404)

    with pytest.raises(SchedulingServiceError):
        await service.get_slot("../../bookings")
    await service.close()

    assert httpx_mock.get_request().url.raw_path == b"/slots/..%2F..%2Fbookings"
