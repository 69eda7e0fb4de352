"""
Services Module

- DiscoveryOrchestrator: result-returning entry point over every component
- ResultCache: diskcache-backed result cache with per-entry TTL
"""

from .cache_manager import ResultCache
from .discovery_orchestrator import DiscoveryOrchestrator

__all__ = [
    "DiscoveryOrchestrator",
    "ResultCache",
]
