"""
Slot discovery routes.

Serves recommendations, calendar grids (one-shot and live sessions), the
simulated activity feed, and the doctor directory to the presentation
layer. Every route is read-only towards the remote scheduling service.
"""

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from slot_discovery.features.discovery.activity import ActivityFeed, ActivityFeedRegistry
from slot_discovery.features.discovery.directory import (
    filter_doctors,
    list_specialties,
    summarize_schedule,
)
from slot_discovery.features.discovery.domain.models import (
    ActivityEvent,
    CalendarGrid,
    Recommendation,
    ViewMode,
)
from slot_discovery.features.discovery.pipeline.calendar import (
    CalendarAggregator,
    CalendarSession,
    CalendarSessionNotFoundError,
    CalendarSessionRegistry,
)
from slot_discovery.features.discovery.pipeline.scoring import RecommendationScorer
from slot_discovery.infrastructure.observability.logging import get_logger
from slot_discovery.models.api.discovery_request import (
    NavigateCalendarRequest,
    OpenCalendarSessionRequest,
    UpdateCalendarFilterRequest,
)
from slot_discovery.models.api.discovery_response import (
    ActivityEventResponse,
    ActivityFeedResponse,
    CalendarCellResponse,
    CalendarDayResponse,
    CalendarGridResponse,
    CalendarSessionResponse,
    CalendarSlotResponse,
    DoctorDirectoryResponse,
    DoctorResponse,
    RecommendationResponse,
    RecommendationsListResponse,
    ScheduleStatsResponse,
    SlotResponse,
)
from slot_discovery.models.domain.scheduling_domain import Doctor, Slot
from slot_discovery.services.scheduling.client import (
    SchedulingServiceClient,
    SchedulingServiceError,
)

from .dependencies import (
    get_activity_feeds,
    get_calendar_aggregator,
    get_calendar_sessions,
    get_scheduling_client,
    get_scorer,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/discovery", tags=["discovery"])


def _doctor_response(doctor: Doctor) -> DoctorResponse:
    return DoctorResponse(
        id=doctor.id, name=doctor.name, specialty=doctor.specialty, profile=doctor.profile
    )


def _slot_response(slot: Slot) -> SlotResponse:
    return SlotResponse(
        id=slot.id,
        doctor_id=slot.doctor_id,
        start_time=slot.start_time,
        end_time=slot.end_time,
        total_seats=slot.total_seats,
        available_seats=slot.available_seats,
    )


def _recommendation_response(rank: int, rec: Recommendation) -> RecommendationResponse:
    return RecommendationResponse(
        rank=rank,
        slot=_slot_response(rec.slot),
        doctor=_doctor_response(rec.doctor),
        score=rec.rounded_score,
        raw_score=rec.score,
        reason=rec.reason,
    )


def _grid_response(grid: CalendarGrid) -> CalendarGridResponse:
    return CalendarGridResponse(
        view_mode=grid.window.view_mode.value,
        doctor_filter=grid.doctor_filter,
        window_start=grid.window.start,
        window_end=grid.window.end,
        hours=list(grid.hours),
        days=[
            CalendarDayResponse(key=day.key, day=day.day, slot_count=day.slot_count)
            for day in grid.days
        ],
        cells=[
            CalendarCellResponse(
                day_key=cell.day_key,
                hour=cell.hour,
                slots=[
                    CalendarSlotResponse(
                        slot=_slot_response(placed.slot),
                        doctor_name=placed.doctor_name,
                        bookable=placed.bookable,
                    )
                    for placed in cell.slots
                ],
            )
            for cell in grid.cells
        ],
        data_available=grid.data_available,
    )


def _session_response(session: CalendarSession) -> CalendarSessionResponse:
    return CalendarSessionResponse(
        session_id=session.id,
        anchor=session.anchor,
        generation=session.generation,
        grid=_grid_response(session.grid) if session.grid else None,
    )


def _activity_response(event: ActivityEvent, age_seconds: int) -> ActivityEventResponse:
    return ActivityEventResponse(
        id=event.id,
        slot_id=event.slot_id,
        user_name=event.user_name,
        action=event.action.value,
        inserted_at=event.inserted_at,
        expires_at=event.expires_at,
        age_seconds=age_seconds,
    )


def _feed_response(feed: ActivityFeed) -> ActivityFeedResponse:
    return ActivityFeedResponse(
        slot_id=feed.slot_id,
        active=feed.active,
        events=[_activity_response(event, age) for event, age in feed.snapshot()],
    )


def _session_or_404(registry: CalendarSessionRegistry, session_id: str) -> CalendarSession:
    try:
        return registry.get(session_id)
    except CalendarSessionNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Calendar session not found"
        )


@router.get("/recommendations", response_model=RecommendationsListResponse)
async def get_recommendations(
    client: SchedulingServiceClient = Depends(get_scheduling_client),
    scorer: RecommendationScorer = Depends(get_scorer),
):
    """Top bookable slots with their match score and reasons."""
    try:
        result = await scorer.recommend(client)
    except Exception as e:
        logger.error("Error ranking recommendations", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load recommendations",
        )

    return RecommendationsListResponse(
        recommendations=[
            _recommendation_response(rank, rec)
            for rank, rec in enumerate(result.recommendations, start=1)
        ],
        data_available=result.data_available,
    )


@router.get("/calendar", response_model=CalendarGridResponse)
async def get_calendar(
    doctor: str = Query("all", min_length=1, description='"all" or a doctor ID'),
    view: ViewMode = Query(ViewMode.WEEK),
    anchor: date | None = Query(None, description="Date inside the window; defaults to today"),
    client: SchedulingServiceClient = Depends(get_scheduling_client),
    aggregator: CalendarAggregator = Depends(get_calendar_aggregator),
):
    """One aggregation pass over the requested window."""
    anchor = anchor or datetime.now(aggregator.tz).date()
    try:
        grid = await aggregator.aggregate(client, view, anchor, doctor)
    except Exception as e:
        logger.error("Error aggregating calendar", doctor_filter=doctor, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load calendar"
        )
    return _grid_response(grid)


@router.post(
    "/calendar/sessions",
    response_model=CalendarSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def open_calendar_session(
    request: OpenCalendarSessionRequest,
    client: SchedulingServiceClient = Depends(get_scheduling_client),
    sessions: CalendarSessionRegistry = Depends(get_calendar_sessions),
    aggregator: CalendarAggregator = Depends(get_calendar_aggregator),
):
    """Start a calendar that keeps refreshing itself until deleted or left idle."""
    session = await sessions.open(
        client,
        view_mode=request.view,
        anchor=request.anchor,
        doctor_filter=request.doctor,
        aggregator=aggregator,
    )
    return _session_response(session)


@router.get("/calendar/sessions/{session_id}", response_model=CalendarSessionResponse)
async def get_calendar_session(
    session_id: str, sessions: CalendarSessionRegistry = Depends(get_calendar_sessions)
):
    return _session_response(_session_or_404(sessions, session_id))


@router.post("/calendar/sessions/{session_id}/navigate", response_model=CalendarSessionResponse)
async def navigate_calendar_session(
    session_id: str,
    request: NavigateCalendarRequest,
    sessions: CalendarSessionRegistry = Depends(get_calendar_sessions),
):
    session = _session_or_404(sessions, session_id)
    await session.navigate(request.direction)
    return _session_response(session)


@router.put("/calendar/sessions/{session_id}/filter", response_model=CalendarSessionResponse)
async def update_calendar_session(
    session_id: str,
    request: UpdateCalendarFilterRequest,
    sessions: CalendarSessionRegistry = Depends(get_calendar_sessions),
):
    session = _session_or_404(sessions, session_id)
    await session.update(doctor_filter=request.doctor, view_mode=request.view)
    return _session_response(session)


@router.delete("/calendar/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_calendar_session(
    session_id: str, sessions: CalendarSessionRegistry = Depends(get_calendar_sessions)
):
    try:
        await sessions.close(session_id)
    except CalendarSessionNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Calendar session not found"
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/slots/{slot_id}/activity", response_model=ActivityFeedResponse)
async def get_slot_activity(
    slot_id: str,
    client: SchedulingServiceClient = Depends(get_scheduling_client),
    feeds: ActivityFeedRegistry = Depends(get_activity_feeds),
):
    """Simulated live activity for a slot; the feed starts on first read."""
    if slot_id not in feeds:
        try:
            await client.get_slot(slot_id)
        except SchedulingServiceError as e:
            if e.status_code == status.HTTP_404_NOT_FOUND:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Slot not found")
            logger.error("Error checking slot for activity feed", slot_id=slot_id, error=str(e))
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Scheduling service unavailable",
            )

    return _feed_response(await feeds.get_or_start(slot_id))


@router.delete("/slots/{slot_id}/activity", status_code=status.HTTP_204_NO_CONTENT)
async def stop_slot_activity(
    slot_id: str, feeds: ActivityFeedRegistry = Depends(get_activity_feeds)
):
    if not await feeds.stop(slot_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No activity feed")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/doctors", response_model=DoctorDirectoryResponse)
async def list_doctors(
    search: str = Query("", description="Matches name or specialty"),
    specialty: str = Query("", description="Exact specialty"),
    client: SchedulingServiceClient = Depends(get_scheduling_client),
):
    try:
        doctors = await client.list_doctors()
    except SchedulingServiceError as e:
        logger.error("Error listing doctors", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to load doctors"
        )

    matches = filter_doctors(doctors, search=search, specialty=specialty)
    return DoctorDirectoryResponse(
        doctors=[_doctor_response(doctor) for doctor in matches],
        specialties=list_specialties(doctors),
        total_count=len(matches),
    )


@router.get("/stats", response_model=ScheduleStatsResponse)
async def get_schedule_stats(client: SchedulingServiceClient = Depends(get_scheduling_client)):
    stats = await summarize_schedule(client)
    return ScheduleStatsResponse(
        total_doctors=stats.total_doctors,
        total_slots=stats.total_slots,
        available_seats=stats.available_seats,
        fully_booked_slots=stats.fully_booked_slots,
        data_available=stats.data_available,
    )
