"""
Discovery Components

Pure ranking components that operate on in-memory snapshots. None of them
performs I/O or holds state beyond their configuration.
"""

from .charts import ChartGenerator
from .profiles import UserProfileBuilder
from .recommendation import CollaborationMatcher, RecommendationEngine
from .scoring import TrendingScorer
from .search import AutocompleteEngine, SearchEngine

__all__ = [
    'AutocompleteEngine',
    'ChartGenerator',
    'CollaborationMatcher',
    'RecommendationEngine',
    'SearchEngine',
    'TrendingScorer',
    'UserProfileBuilder',
]
