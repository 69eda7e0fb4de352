"""
Chart Components for Legato Discovery

- ChartGenerator: overall, genre, rising-stars, collaboration and time-window charts
"""

from .chart_generator import ChartGenerator, parse_chart_kind

__all__ = [
    'ChartGenerator',
    'parse_chart_kind',
]
