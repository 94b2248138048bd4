# slot_discovery/models/domain/scheduling_domain.py
"""
Scheduling Domain Models
Read-only snapshots of the doctors and slots served by the remote
scheduling service. Used by the discovery pipelines for scoring and
calendar bucketing.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, tzinfo
from typing import Any


class MalformedRecordError(ValueError):
    """Raised when a remote record cannot be turned into a domain model."""


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise MalformedRecordError(f"Invalid timestamp: {value!r}") from e
    else:
        raise MalformedRecordError(f"Missing timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(slots=True, frozen=True)
class Doctor:
    """A doctor offering slots."""

    id: str
    name: str
    specialty: str
    profile: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> "Doctor":
        try:
            return cls(
                id=str(data["_id"]),
                name=data["name"],
                specialty=data["specialty"],
                profile=data.get("profile"),
            )
        except (KeyError, TypeError) as e:
            raise MalformedRecordError(f"Invalid doctor record: {e}") from e


@dataclass(slots=True, frozen=True)
class Slot:
    """A bookable interval with seat capacity."""

    id: str
    doctor_id: str
    start_time: datetime
    end_time: datetime
    total_seats: int
    available_seats: int

    @classmethod
    def from_api(cls, data: dict) -> "Slot":
        try:
            slot_id = str(data["_id"])
            doctor_id = str(data["doctorId"])
            total = int(data["totalSeats"])
            available = int(data["availableSeats"])
            start = data["startTime"]
            end = data["endTime"]
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedRecordError(f"Invalid slot record: {e}") from e

        if available < 0 or available > total:
            raise MalformedRecordError(
                f"Slot {slot_id} has {available} available of {total} seats"
            )

        return cls(
            id=slot_id,
            doctor_id=doctor_id,
            start_time=parse_timestamp(start),
            end_time=parse_timestamp(end),
            total_seats=total,
            available_seats=available,
        )

    def is_bookable(self) -> bool:
        """Check if at least one seat is left."""
        return self.available_seats > 0

    def is_fully_available(self) -> bool:
        return self.total_seats > 0 and self.available_seats == self.total_seats

    def local_start(self, tz: tzinfo) -> datetime:
        """Start time converted to the display zone."""
        return self.start_time.astimezone(tz)

    def hours_until(self, now: datetime) -> float:
        """Hours between now and the slot start (negative once started)."""
        return (self.start_time - now).total_seconds() / 3600
