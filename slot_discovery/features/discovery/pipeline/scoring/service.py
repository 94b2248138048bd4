"""
Slot recommendation scoring - ranks bookable slots for patients.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime, tzinfo

from slot_discovery.config import settings
from slot_discovery.features.discovery.domain.models import Recommendation, RecommendationResult
from slot_discovery.infrastructure.observability.logging import get_logger
from slot_discovery.models.domain.scheduling_domain import Doctor, Slot
from slot_discovery.services.scheduling.snapshot import (
    SchedulingReader,
    ScheduleUnavailableError,
    load_schedule_snapshot,
)

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class RecommendationScorer:
    DEFAULT_LIMIT = 3
    REASON_SEPARATOR = " • "

    AVAILABILITY_WEIGHT = 30.0
    OPTIMAL_TIMING_POINTS = 25.0
    SOON_POINTS = 15.0
    WEEKDAY_POINTS = 20.0
    BUSINESS_HOURS_POINTS = 15.0
    SPECIALTY_DIVERSITY_POINTS = 10.0

    OPTIMAL_WINDOW_HOURS = (24.0, 72.0)  # inclusive both ends
    SOON_WINDOW_HOURS = (2.0, 24.0)  # inclusive start, exclusive end
    BUSINESS_HOURS = (9, 17)  # inclusive hour-of-day

    def __init__(
        self,
        tz: tzinfo | None = None,
        limit: int | None = None,
        clock: Clock | None = None,
    ):
        self.tz = tz or settings.local_tz()
        self.limit = limit if limit is not None else settings.RECOMMENDATION_LIMIT
        self.clock = clock or _utc_now

    async def recommend(self, client: SchedulingReader) -> RecommendationResult:
        """
        Fetch the current schedule and rank its bookable slots.

        Args:
            client: Remote scheduling reader

        Returns:
            RecommendationResult; empty with data_available=False when the
            doctor list could not be fetched
        """
        try:
            snapshot = await load_schedule_snapshot(client)
        except ScheduleUnavailableError:
            logger.error("Recommendations unavailable - doctor list fetch failed")
            return RecommendationResult(recommendations=[], data_available=False)

        recommendations = self.rank(snapshot.doctors, snapshot.slots)
        logger.info(
            "Slot recommendations ranked",
            doctor_count=len(snapshot.doctors),
            slot_count=len(snapshot.slots),
            failed_doctors=len(snapshot.failed_doctor_ids),
            returned=len(recommendations),
        )
        return RecommendationResult(recommendations=recommendations, data_available=True)

    def rank(
        self,
        doctors: Iterable[Doctor],
        slots: Iterable[Slot],
        now: datetime | None = None,
    ) -> list[Recommendation]:
        """
        Score every bookable slot and return the top entries.

        Ties on score go to the earlier start time, then the lower slot id.
        """
        now = now or self.clock()
        doctors = list(doctors)
        doctors_by_id = {doctor.id: doctor for doctor in doctors}
        specialty_count = len({doctor.specialty for doctor in doctors})

        candidates = [
            recommendation
            for recommendation in (
                self._score_slot(slot, doctors_by_id.get(slot.doctor_id), now, specialty_count)
                for slot in slots
            )
            if recommendation is not None
        ]
        candidates.sort(key=lambda rec: (-rec.score, rec.slot.start_time, rec.slot.id))
        return candidates[: self.limit]

    def _score_slot(
        self,
        slot: Slot,
        doctor: Doctor | None,
        now: datetime,
        specialty_count: int,
    ) -> Recommendation | None:
        if doctor is None or not slot.is_bookable() or slot.total_seats <= 0:
            return None

        score = 0.0
        reasons: list[str] = []

        # Availability: share of seats still open
        score += (slot.available_seats / slot.total_seats) * self.AVAILABILITY_WEIGHT
        if slot.is_fully_available():
            reasons.append("Fully available")

        # Time proximity: soon, but not too soon
        hours_until = slot.hours_until(now)
        optimal_low, optimal_high = self.OPTIMAL_WINDOW_HOURS
        soon_low, soon_high = self.SOON_WINDOW_HOURS
        if optimal_low <= hours_until <= optimal_high:
            score += self.OPTIMAL_TIMING_POINTS
            reasons.append("Optimal timing")
        elif soon_low <= hours_until < soon_high:
            score += self.SOON_POINTS
            reasons.append("Available soon")

        local_start = slot.local_start(self.tz)

        # Monday=0 .. Friday=4
        if local_start.weekday() < 5:
            score += self.WEEKDAY_POINTS
            reasons.append("Weekday slot")

        first_hour, last_hour = self.BUSINESS_HOURS
        if first_hour <= local_start.hour <= last_hour:
            score += self.BUSINESS_HOURS_POINTS
            reasons.append("Business hours")

        if specialty_count > 1:
            score += self.SPECIALTY_DIVERSITY_POINTS

        if score <= 0:
            return None

        return Recommendation(
            slot=slot,
            doctor=doctor,
            score=score,
            reason=self.REASON_SEPARATOR.join(reasons),
        )


scoring_service = RecommendationScorer()
