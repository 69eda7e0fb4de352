"""
Models Module

Snapshot records, derived discovery models, configuration, the result
envelope and error kinds shared by every discovery component.
"""

from .records import (
    Song,
    User,
    Vote,
    Collaboration,
    Comment,
    Interaction,
    InteractionType,
    ensure_utc,
)
from .discovery_models import (
    ActivityLevel,
    DifficultyLevel,
    TimeCommitment,
    ChartKind,
    SearchKind,
    AutocompleteField,
    BlendWeights,
    ScoreBreakdown,
    TrendingScore,
    UserProfile,
    ChartEntry,
    ArtistChartEntry,
    Chart,
    AllCharts,
    RankedSong,
    RecommendationSet,
    CollaborationOpportunity,
    OpportunitySet,
    DateRange,
    ReputationRange,
    SearchFilters,
    SearchResult,
    SearchResponse,
    SystemStatus,
)
from .config_models import DiscoveryConfig, ActivityLevelThresholds
from .results import Success, Failure, EngineResult
from .errors import (
    ErrorKind,
    DiscoveryError,
    ValidationError,
    NotFoundError,
    ComputationError,
)

__all__ = [
    # Snapshot records
    "Song",
    "User",
    "Vote",
    "Collaboration",
    "Comment",
    "Interaction",
    "InteractionType",
    "ensure_utc",

    # Derived models
    "ActivityLevel",
    "DifficultyLevel",
    "TimeCommitment",
    "ChartKind",
    "SearchKind",
    "AutocompleteField",
    "BlendWeights",
    "ScoreBreakdown",
    "TrendingScore",
    "UserProfile",
    "ChartEntry",
    "ArtistChartEntry",
    "Chart",
    "AllCharts",
    "RankedSong",
    "RecommendationSet",
    "CollaborationOpportunity",
    "OpportunitySet",
    "DateRange",
    "ReputationRange",
    "SearchFilters",
    "SearchResult",
    "SearchResponse",
    "SystemStatus",

    # Configuration
    "DiscoveryConfig",
    "ActivityLevelThresholds",

    # Results and errors
    "Success",
    "Failure",
    "EngineResult",
    "ErrorKind",
    "DiscoveryError",
    "ValidationError",
    "NotFoundError",
    "ComputationError",
]
