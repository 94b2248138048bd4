"""
Slot recommendation scoring package.

Provides the scorer that ranks bookable slots and explains each rank.
"""

from .service import RecommendationScorer, scoring_service

__all__ = ["RecommendationScorer", "scoring_service"]
