"""
Discovery Models

Derived, ephemeral output records produced by the discovery components:
trending scores, user profiles, charts, recommendations, collaboration
opportunities and search results. None of them is ever persisted by the
engine.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from .records import Song, User, UtcDatetime


class ActivityLevel(Enum):
    """Bucketed interaction volume for a user or song."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DifficultyLevel(Enum):
    """Estimated difficulty of a collaboration opportunity."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TimeCommitment(Enum):
    """Estimated time a contribution will take."""
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class ChartKind(Enum):
    """Charts the chart generator knows how to build."""
    OVERALL = "overall"
    GENRE = "genre"
    RISING_STARS = "rising-stars"
    COLLABORATION = "collaboration"
    DAILY = "daily"
    WEEKLY = "weekly"


class SearchKind(Enum):
    """Collections the search engine can query."""
    SONGS = "songs"
    USERS = "users"
    COLLABORATION_OPPORTUNITIES = "collaboration-opportunities"


class AutocompleteField(Enum):
    """Record fields autocomplete can draw suggestions from."""
    TITLE = "title"
    GENRE = "genre"
    MOOD = "mood"
    COLLABORATION_NEEDED = "collaborationNeeded"
    USERNAME = "username"
    DISPLAY_NAME = "displayName"
    SKILLS = "skills"
    GENRES = "genres"


class DerivedModel(BaseModel):
    """Base for derived records; serialized with camelCase aliases."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True

    def to_dict(self) -> Dict[str, Any]:
        """Dump to a JSON-compatible dict keyed by camelCase aliases."""
        return self.model_dump(mode="json", by_alias=True)


class BlendWeights(DerivedModel):
    """Weights used to blend the trending score components."""
    vote: float
    collaboration: float
    recency: float

    @property
    def total(self) -> float:
        return self.vote + self.collaboration + self.recency


class ScoreBreakdown(DerivedModel):
    """Unweighted trending score components, each in [0, 100]."""
    vote_score: float = Field(..., ge=0, le=100)
    collaboration_score: float = Field(..., ge=0, le=100)
    recency_score: float = Field(..., ge=0, le=100)

    def weighted_total(self, weights: BlendWeights) -> float:
        """Weighted sum of the components (before clamping)."""
        return (
            weights.vote * self.vote_score
            + weights.collaboration * self.collaboration_score
            + weights.recency * self.recency_score
        )


class TrendingScore(DerivedModel):
    """Bounded popularity score for one song."""
    song_id: str
    total_score: float = Field(..., ge=0, le=100)
    breakdown: ScoreBreakdown
    weights: BlendWeights


class UserProfile(DerivedModel):
    """
    Implicit taste and activity profile for a user.

    Declared skills and genres come verbatim from the user record; the
    inferred fields only ever augment them.
    """
    user_id: str
    declared_skills: List[str] = Field(default_factory=list)
    declared_genres: List[str] = Field(default_factory=list)
    reputation: int = 0
    inferred_genres: Dict[str, float] = Field(default_factory=dict)
    inferred_moods: Dict[str, float] = Field(default_factory=dict)
    activity_level: ActivityLevel = ActivityLevel.LOW
    interaction_count: int = 0
    collaboration_style: List[str] = Field(default_factory=list)
    interacted_song_ids: List[str] = Field(default_factory=list)

    @property
    def has_history(self) -> bool:
        return self.interaction_count > 0


# --- Charts ---

class ChartEntry(DerivedModel):
    """A ranked song in a chart."""
    rank: int
    song_id: str
    song: Song
    trending_score: float
    breakdown: ScoreBreakdown
    collaboration_count: int = 0
    collaboration_type_count: int = 0


class ArtistChartEntry(DerivedModel):
    """A ranked artist in the rising-stars chart."""
    rank: int
    user_id: str
    user: Optional[User] = None
    velocity: float = Field(..., description="Engagement events per day in the trailing window")
    growth: int = Field(..., description="Recent events minus events in the preceding window")
    total_score: float
    song_count: int
    recent_song_ids: List[str] = Field(default_factory=list)


class Chart(DerivedModel):
    """A named, ranked view over songs or artists."""
    kind: ChartKind
    title: str
    genre: Optional[str] = None
    generated_at: datetime
    entries: List[ChartEntry] = Field(default_factory=list)
    artists: List[ArtistChartEntry] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.entries and not self.artists


class AllCharts(DerivedModel):
    """Every chart generated in one pass."""
    overall: Chart
    genres: Dict[str, Chart] = Field(default_factory=dict)
    rising_stars: Chart
    collaboration: Chart
    daily: Chart
    weekly: Chart
    generated_at: datetime


# --- Recommendations ---

class RankedSong(DerivedModel):
    """A recommended song with the scores that ranked it."""
    song_id: str
    song: Song
    score: float
    trending_score: float
    profile_match_score: float
    collaborative_score: float = 0.0
    reasons: List[str] = Field(default_factory=list)


class RecommendationSet(DerivedModel):
    """Personalized recommendations for one user."""
    user_id: str
    recommendations: List[RankedSong] = Field(default_factory=list)
    user_profile: UserProfile
    generated_at: datetime
    methodology: Dict[str, Any] = Field(default_factory=dict)


class CollaborationOpportunity(DerivedModel):
    """A song whose stated needs overlap the user's declared skills."""
    song_id: str
    song: Song
    match_score: float = Field(..., ge=0, le=100)
    matching_skills: List[str]
    difficulty_level: DifficultyLevel
    estimated_time_commitment: TimeCommitment
    trending_score: float


class OpportunitySet(DerivedModel):
    """Collaboration opportunities for one user."""
    user_id: str
    opportunities: List[CollaborationOpportunity] = Field(default_factory=list)
    user_profile: UserProfile
    generated_at: datetime


# --- Search ---

class DateRange(DerivedModel):
    """Inclusive creation-date window."""
    start: Optional[UtcDatetime] = None
    end: Optional[UtcDatetime] = None


class ReputationRange(DerivedModel):
    """Inclusive reputation window."""
    min: int = 0
    max: Optional[int] = None


class SearchFilters(DerivedModel):
    """Hard predicates applied after text matching."""
    genres: List[str] = Field(default_factory=list)
    moods: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    required_skills: List[str] = Field(default_factory=list)
    collaboration_status: Optional[str] = Field(None, pattern="^(open|closed)$")
    date_range: Optional[DateRange] = None
    reputation_range: Optional[ReputationRange] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True
        extra = "forbid"


class SearchResult(DerivedModel):
    """One ranked search hit."""
    kind: SearchKind
    item_id: str
    item: Union[Song, User]
    relevance: int
    near_relevance: float = 0.0
    trending_score: Optional[float] = None
    matched_fields: List[str] = Field(default_factory=list)
    needed_skills: List[str] = Field(default_factory=list)
    estimated_time_commitment: Optional[TimeCommitment] = None


class SearchResponse(DerivedModel):
    """Ranked results plus facet counts for incremental filtering."""
    kind: SearchKind
    query: str
    filters: SearchFilters
    results: List[SearchResult] = Field(default_factory=list)
    facets: Dict[str, Dict[str, int]] = Field(default_factory=dict)
    total_results: int = 0
    limit: int
    offset: int = 0
    has_more: bool = False
    suggestions: List[str] = Field(default_factory=list)


# --- Status ---

class SystemStatus(DerivedModel):
    """Orchestrator readiness report."""
    initialized: bool
    services: Dict[str, bool]
    supported_genres: List[str]
    config: Dict[str, Any] = Field(default_factory=dict)
    cache_size: int = 0
