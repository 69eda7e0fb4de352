"""
Scoring Components for Legato Discovery

- TrendingScorer: bounded popularity score from votes, collaborations and recency
"""

from .trending_scorer import TrendingScorer

__all__ = [
    'TrendingScorer',
]
