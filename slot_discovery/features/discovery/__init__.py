"""
Slot discovery feature package.

This vertical slice keeps every layer of slot discovery co-located
(domain models, scoring and calendar pipelines, the activity feed, the
doctor directory, and the API router) so contributors can navigate the
feature without hunting through global folders.
"""

# Re-export the primary building blocks for easy access.
from .api.router import router as discovery_router  # noqa: F401
from .activity import ActivityFeed, ActivityFeedRegistry  # noqa: F401
from .pipeline.calendar import CalendarAggregator, CalendarSessionRegistry  # noqa: F401
from .pipeline.scoring import RecommendationScorer  # noqa: F401
