from .feed import ActivityFeed, ActivityFeedClosedError, ActivityFeedRegistry

__all__ = ["ActivityFeed", "ActivityFeedClosedError", "ActivityFeedRegistry"]
