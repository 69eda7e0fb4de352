"""
Discovery Configuration

Runtime-configurable weights, thresholds and limits for every discovery
component. Instances are immutable; the orchestrator swaps whole configs
when callers merge partial updates.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel

DEFAULT_SUPPORTED_GENRES = [
    "pop", "rock", "hip-hop", "jazz", "electronic", "classical",
    "country", "r&b", "folk", "indie", "metal", "reggae",
]


class ActivityLevelThresholds(BaseModel):
    """Interaction-count cutoffs: below `medium` is low, below `high` is medium."""
    medium: int = Field(3, ge=0)
    high: int = Field(10, ge=0)

    class Config:
        frozen = True
        extra = "forbid"

    @model_validator(mode="after")
    def _check_order(self) -> "ActivityLevelThresholds":
        if self.medium > self.high:
            raise ValueError("medium threshold must not exceed high threshold")
        return self


class DiscoveryConfig(BaseModel):
    """Configuration for the charts & discovery engine."""

    # Trending score blend (sums to 1.0 by convention)
    vote_weight: float = Field(0.4, ge=0, le=1, description="Weight of the vote component")
    collab_weight: float = Field(0.3, ge=0, le=1, description="Weight of the collaboration component")
    recency_weight: float = Field(0.3, ge=0, le=1, description="Weight of the recency component")

    # Trending score curves
    recency_half_life: float = Field(72.0, gt=0, description="Recency half-life in hours")
    recency_floor: float = Field(0.0, ge=0, le=100, description="Lowest recency score a song decays to")
    max_vote_weight: float = Field(3.0, gt=0, description="Cap applied to each vote weight")
    vote_saturation: float = Field(10.0, gt=0, description="Weighted votes at which the vote score reaches ~63")
    collaboration_saturation: float = Field(5.0, gt=0, description="Collaboration activity at which the score reaches ~63")

    # Caching and scheduling
    enable_caching: bool = Field(False, description="Toggle the orchestrator result cache")
    chart_cache_ttl: int = Field(900, gt=0, alias="chartCacheTTL", description="Cache entry TTL in seconds")
    chart_update_schedule: Optional[str] = Field(
        "*/15 * * * *",
        description="Opaque scheduling hint for an external refresh caller; None disables"
    )

    # Result sizes
    recommendation_limit: int = Field(20, ge=1)
    autocomplete_limit: int = Field(10, ge=1)
    collaboration_opportunity_limit: int = Field(10, ge=1)
    chart_size: int = Field(10, ge=1)
    search_max_results: int = Field(50, ge=1)

    # User profiles
    activity_level_thresholds: ActivityLevelThresholds = Field(default_factory=ActivityLevelThresholds)
    activity_window_days: int = Field(7, ge=1)
    profile_window_days: int = Field(30, ge=1)

    # Recommendations
    recommendation_trending_weight: float = Field(0.4, ge=0, le=1)
    max_same_genre: int = Field(5, ge=1)
    max_same_artist: int = Field(3, ge=1)
    recommendation_collaborative_weight: float = Field(
        0.3, ge=0, le=1, description="Share of the similar-user score added to the profile match"
    )
    min_user_similarity: float = Field(0.3, ge=0, le=1, description="Lowest similarity counted as a neighbour")
    max_similar_users: int = Field(10, ge=1)

    # Charts
    rising_stars_max_age_hours: float = Field(168.0, gt=0)
    velocity_window_hours: float = Field(72.0, gt=0)
    daily_chart_hours: float = Field(24.0, gt=0)
    weekly_chart_hours: float = Field(168.0, gt=0)

    # Search
    fuzzy_match_threshold: float = Field(
        0.7, gt=0, le=1, description="Normalized edit similarity at which a token counts as a near match"
    )

    supported_genres: List[str] = Field(default_factory=lambda: list(DEFAULT_SUPPORTED_GENRES))

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True
        extra = "forbid"

    @property
    def blend_weight_total(self) -> float:
        return self.vote_weight + self.collab_weight + self.recency_weight

    def merged(self, partial: Dict[str, Any]) -> "DiscoveryConfig":
        """
        Return a new config with `partial` merged in.

        Args:
            partial: Options keyed by camelCase alias or field name

        Returns:
            Validated DiscoveryConfig; raises pydantic.ValidationError on bad input
        """
        current = self.model_dump(by_alias=True)
        current.update(_to_aliases(partial))
        return DiscoveryConfig.model_validate(current)

    def public_summary(self) -> Dict[str, Any]:
        """Options reported by the system status."""
        return {
            "chartUpdateSchedule": self.chart_update_schedule,
            "enableCaching": self.enable_caching,
            "chartCacheTTL": self.chart_cache_ttl,
            "voteWeight": self.vote_weight,
            "collabWeight": self.collab_weight,
            "recencyWeight": self.recency_weight,
        }


def _to_aliases(partial: Dict[str, Any]) -> Dict[str, Any]:
    """Map snake_case field names in `partial` onto their aliases."""
    fields = DiscoveryConfig.model_fields
    converted = {}
    for key, value in partial.items():
        field = fields.get(key)
        converted[field.alias if field is not None and field.alias else key] = value
    return converted
