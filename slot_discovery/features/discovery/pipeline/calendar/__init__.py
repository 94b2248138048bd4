"""
Calendar aggregation package.

Provides the week/month grid builder and the live sessions that keep a
viewer's grid refreshed.
"""

from .service import CalendarAggregator, calendar_aggregator, compute_window, shift_anchor
from .session import CalendarSession, CalendarSessionNotFoundError, CalendarSessionRegistry

__all__ = [
    "CalendarAggregator",
    "CalendarSession",
    "CalendarSessionNotFoundError",
    "CalendarSessionRegistry",
    "calendar_aggregator",
    "compute_window",
    "shift_anchor",
]
