# slot_discovery/models/api/discovery_response.py
"""
Discovery API response models.
Used by routes for output formatting.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field


class DoctorResponse(BaseModel):
    """Response model for a doctor."""

    id: str = Field(..., description="Doctor ID")
    name: str = Field(..., description="Doctor name")
    specialty: str = Field(..., description="Medical specialty")
    profile: str | None = Field(None, description="Profile text")


class SlotResponse(BaseModel):
    """Response model for a slot."""

    id: str = Field(..., description="Slot ID, used to start the booking flow")
    doctor_id: str = Field(..., description="Owning doctor ID")
    start_time: datetime = Field(..., description="Slot start")
    end_time: datetime = Field(..., description="Slot end")
    total_seats: int = Field(..., description="Seat capacity")
    available_seats: int = Field(..., description="Seats still open")


class RecommendationResponse(BaseModel):
    rank: int = Field(..., description="1-based position in the ranking")
    slot: SlotResponse
    doctor: DoctorResponse
    score: int = Field(..., description="Match score rounded for display")
    raw_score: float = Field(..., description="Unrounded score")
    reason: str = Field(..., description="Reason tags joined for display")


class RecommendationsListResponse(BaseModel):
    recommendations: list[RecommendationResponse] = Field(default_factory=list)
    data_available: bool = Field(..., description="False when the doctor list was unreachable")


class CalendarSlotResponse(BaseModel):
    slot: SlotResponse
    doctor_name: str
    bookable: bool = Field(..., description="Whether clicking should start a booking")


class CalendarDayResponse(BaseModel):
    key: int = Field(..., description="Weekday (Sunday=0) in week view, day of month in month view")
    day: date
    slot_count: int = Field(..., description="All in-window slots that day, shown or not")


class CalendarCellResponse(BaseModel):
    day_key: int
    hour: int
    slots: list[CalendarSlotResponse] = Field(default_factory=list)


class CalendarGridResponse(BaseModel):
    view_mode: str
    doctor_filter: str
    window_start: datetime
    window_end: datetime
    hours: list[int]
    days: list[CalendarDayResponse]
    cells: list[CalendarCellResponse]
    data_available: bool


class CalendarSessionResponse(BaseModel):
    session_id: str
    anchor: date
    generation: int
    grid: CalendarGridResponse | None = None


class ActivityEventResponse(BaseModel):
    id: str
    slot_id: str
    user_name: str
    action: str
    inserted_at: datetime
    expires_at: datetime
    age_seconds: int = Field(..., description="Whole seconds since insertion")


class ActivityFeedResponse(BaseModel):
    slot_id: str
    active: bool
    events: list[ActivityEventResponse] = Field(default_factory=list)


class DoctorDirectoryResponse(BaseModel):
    doctors: list[DoctorResponse]
    specialties: list[str]
    total_count: int


class ScheduleStatsResponse(BaseModel):
    total_doctors: int
    total_slots: int
    available_seats: int
    fully_booked_slots: int
    data_available: bool
