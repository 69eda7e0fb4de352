"""
Trending Scorer for Legato Discovery

Computes a bounded 0-100 popularity score for a song by blending three
components, each on a 0-100 scale:
- Vote score: saturating curve over reputation-weighted votes
- Collaboration score: saturating curve over contributors and their diversity
- Recency score: half-life decay of the song's age
"""

import math
from datetime import datetime
from typing import Iterable, List, Optional

import structlog

from ...models.config_models import DiscoveryConfig
from ...models.discovery_models import BlendWeights, ScoreBreakdown, TrendingScore
from ...models.errors import ComputationError
from ...models.records import Song
from ...utils.time_utils import hours_since, resolve_now

logger = structlog.get_logger(__name__)

# Extra contributor-equivalents credited for each additional contribution type
DIVERSITY_BONUS = 0.5


class TrendingScorer:
    """
    Scores songs by votes, collaboration activity and recency.

    The blend weights sum to 1.0 by convention; the final clamp to [0, 100]
    only matters when a caller configures weights that do not.
    """

    def __init__(
        self,
        config: Optional[DiscoveryConfig] = None,
        weights: Optional[BlendWeights] = None
    ):
        """
        Initialize trending scorer.

        Args:
            config: Discovery configuration (defaults if omitted)
            weights: Blend weights overriding the configured ones
        """
        self.config = config or DiscoveryConfig()
        self.weights = weights or BlendWeights(
            vote=self.config.vote_weight,
            collaboration=self.config.collab_weight,
            recency=self.config.recency_weight
        )
        self.logger = logger.bind(component="TrendingScorer")

    def with_weights(self, vote: float, collaboration: float, recency: float) -> "TrendingScorer":
        """Return a scorer sharing this config but blending with other weights."""
        return TrendingScorer(
            self.config,
            BlendWeights(vote=vote, collaboration=collaboration, recency=recency)
        )

    def score(self, song: Song, now: Optional[datetime] = None) -> TrendingScore:
        """
        Calculate the trending score for a single song.

        Args:
            song: Song snapshot with embedded votes and collaborations
            now: Reference time (defaults to the current time)

        Returns:
            TrendingScore with total in [0, 100] and its breakdown
        """
        now = resolve_now(now)

        vote_score = self.calculate_vote_score(song)
        collaboration_score = self.calculate_collaboration_score(song)
        recency_score = self.calculate_recency_score(song.created_at, now)

        for name, value in (
            ("vote_score", vote_score),
            ("collaboration_score", collaboration_score),
            ("recency_score", recency_score),
        ):
            if not math.isfinite(value) or value < 0 or value > 100:
                raise ComputationError(
                    f"{name} for song {song.id} escaped [0, 100]: {value}"
                )

        breakdown = ScoreBreakdown(
            vote_score=vote_score,
            collaboration_score=collaboration_score,
            recency_score=recency_score
        )
        raw_total = breakdown.weighted_total(self.weights)
        total_score = max(0.0, min(100.0, raw_total))

        if total_score != raw_total:
            self.logger.warning(
                "Trending score clamped; check blend weights",
                song_id=song.id,
                raw_total=raw_total,
                weight_total=self.weights.total
            )

        self.logger.debug(
            "Trending score calculated",
            song_id=song.id,
            vote_score=vote_score,
            collaboration_score=collaboration_score,
            recency_score=recency_score,
            total_score=total_score
        )

        return TrendingScore(
            song_id=song.id,
            total_score=total_score,
            breakdown=breakdown,
            weights=self.weights
        )

    def score_many(
        self,
        songs: Iterable[Song],
        now: Optional[datetime] = None
    ) -> List[TrendingScore]:
        """Score a batch of songs against one shared reference time."""
        now = resolve_now(now)
        return [self.score(song, now) for song in songs]

    def calculate_vote_score(self, song: Song) -> float:
        """Saturating score over the capped, weighted vote sum."""
        weighted_sum = sum(
            vote.value * min(vote.weight, self.config.max_vote_weight)
            for vote in song.votes
        )
        if weighted_sum <= 0:
            return 0.0
        return 100.0 * (1.0 - math.exp(-weighted_sum / self.config.vote_saturation))

    def calculate_collaboration_score(self, song: Song) -> float:
        """Saturating score over distinct contributors and contribution types."""
        if not song.collaborations:
            return 0.0

        contributors = len(song.contributor_ids())
        contribution_types = len({c.contribution_type.lower() for c in song.collaborations})
        activity = contributors + DIVERSITY_BONUS * max(0, contribution_types - 1)

        return 100.0 * (1.0 - math.exp(-activity / self.config.collaboration_saturation))

    def calculate_recency_score(self, created_at: datetime, now: datetime) -> float:
        """Half-life decay of the song's age, bounded below by the recency floor."""
        hours_old = hours_since(created_at, now)
        if hours_old <= 0:
            return 100.0

        score = 100.0 * math.pow(0.5, hours_old / self.config.recency_half_life)
        return max(self.config.recency_floor, score)
