"""
FastAPI dependencies for the discovery routes.

Long-lived objects are created in the application lifespan and stored on
app.state; tests swap them through app.dependency_overrides.
"""

from fastapi import Request

from slot_discovery.features.discovery.activity import ActivityFeedRegistry
from slot_discovery.features.discovery.pipeline.calendar import (
    CalendarAggregator,
    CalendarSessionRegistry,
    calendar_aggregator,
)
from slot_discovery.features.discovery.pipeline.scoring import RecommendationScorer, scoring_service
from slot_discovery.services.scheduling.client import SchedulingServiceClient


def get_scheduling_client(request: Request) -> SchedulingServiceClient:
    return request.app.state.scheduling_client


def get_calendar_sessions(request: Request) -> CalendarSessionRegistry:
    return request.app.state.calendar_sessions


def get_activity_feeds(request: Request) -> ActivityFeedRegistry:
    return request.app.state.activity_feeds


def get_scorer() -> RecommendationScorer:
    return scoring_service


def get_calendar_aggregator() -> CalendarAggregator:
    return calendar_aggregator
