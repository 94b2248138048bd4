from .models import (  # noqa: F401
    ActivityAction,
    ActivityEvent,
    CalendarCell,
    CalendarDay,
    CalendarGrid,
    CalendarSlot,
    CalendarWindow,
    NavigationDirection,
    Recommendation,
    RecommendationResult,
    ViewMode,
)
