# slot_discovery/models/api/discovery_request.py
"""
Discovery API request models.
Used by routes for input validation.
"""

from datetime import date

from pydantic import BaseModel, Field

from slot_discovery.features.discovery.domain.models import NavigationDirection, ViewMode


class OpenCalendarSessionRequest(BaseModel):
    doctor: str = Field(default="all", min_length=1, description='"all" or a doctor ID')
    view: ViewMode = Field(default=ViewMode.WEEK)
    anchor: date | None = Field(None, description="Date to center on; defaults to today")


class NavigateCalendarRequest(BaseModel):
    direction: NavigationDirection


class UpdateCalendarFilterRequest(BaseModel):
    doctor: str | None = Field(None, min_length=1, description='"all" or a doctor ID')
    view: ViewMode | None = None
