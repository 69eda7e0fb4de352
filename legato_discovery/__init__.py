"""
Legato Discovery - Charts & Discovery Engine

Turns song, user, vote, collaboration, comment and interaction snapshots
into ranked charts, personalized recommendations, collaboration matches
and faceted search results for the Legato music collaboration platform.
"""

__version__ = "0.1.0"
__author__ = "Legato Team"
