"""
Recommendation Components for Legato Discovery

- RecommendationEngine: personalized ranking of open collaboration songs
- CollaborationMatcher: skill-based collaboration opportunities
"""

from .collaboration_matcher import CollaborationMatcher
from .recommendation_engine import RecommendationEngine

__all__ = [
    'CollaborationMatcher',
    'RecommendationEngine',
]
