"""
Collaboration Matcher for Legato Discovery

Finds open songs whose stated needs overlap a user's declared skills and
scores each opportunity by skill fit, the user's reputation and the song's
momentum. Each opportunity is annotated with an estimated difficulty and
time commitment.
"""

import math
from datetime import datetime
from typing import List, Optional, Sequence

import structlog

from ...models.config_models import DiscoveryConfig
from ...models.discovery_models import (
    CollaborationOpportunity,
    DifficultyLevel,
    OpportunitySet,
    TimeCommitment,
)
from ...models.records import Interaction, Song, User
from ...utils.time_utils import resolve_now
from ..profiles.user_profile_builder import UserProfileBuilder
from ..ranking import resolve_limit, song_rank_key
from ..scoring.trending_scorer import TrendingScorer
from .recommendation_engine import matching_skills, skill_overlap_ratio

logger = structlog.get_logger(__name__)

# Keys that are harder to play and arrange in
DIFFICULT_KEYS = {"f#", "c#", "db", "ab", "eb", "bb", "gb"}

LONG_CONTRIBUTIONS = {"production", "mixing", "mastering", "arrangement", "composition"}
SHORT_CONTRIBUTIONS = {"vocals", "backing-vocals", "lyrics", "harmony", "percussion"}

_COMMITMENT_ORDER = [TimeCommitment.SHORT, TimeCommitment.MEDIUM, TimeCommitment.LONG]


class CollaborationMatcher:
    """Matches users to songs that need their skills."""

    def __init__(
        self,
        config: Optional[DiscoveryConfig] = None,
        scorer: Optional[TrendingScorer] = None,
        profile_builder: Optional[UserProfileBuilder] = None
    ):
        self.config = config or DiscoveryConfig()
        self.scorer = scorer or TrendingScorer(self.config)
        self.profile_builder = profile_builder or UserProfileBuilder(self.config)
        self.logger = logger.bind(component="CollaborationMatcher")

    def find_opportunities(
        self,
        user_id: str,
        songs: Sequence[Song],
        users: Sequence[User],
        interactions: Sequence[Interaction] = (),
        now: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> OpportunitySet:
        """
        Find collaboration opportunities for a user.

        Songs the user owns or already contributes to are never offered,
        and neither are songs needing none of the user's skills.

        Args:
            user_id: User looking for collaborations
            songs: Song snapshot
            users: User snapshot
            interactions: Interaction log (feeds the attached profile)
            now: Reference time (defaults to the current time)
            limit: Maximum opportunities (defaults to collaboration_opportunity_limit)

        Returns:
            OpportunitySet ordered by match score

        Raises:
            NotFoundError: If the user does not exist
            ValidationError: If the limit is invalid
        """
        limit = resolve_limit(limit, self.config.collaboration_opportunity_limit)
        now = resolve_now(now)
        profile = self.profile_builder.build(user_id, users, interactions, songs, now)
        confidence = reputation_confidence(profile.reputation)

        scored = []
        for song in songs:
            if not song.is_open_for_collaboration or not song.collaboration_needed:
                continue
            if song.owner_user_id == user_id or user_id in song.contributor_ids():
                continue

            matches = matching_skills(song.collaboration_needed, profile.declared_skills)
            if not matches:
                continue

            trending = self.scorer.score(song, now).total_score
            ratio = skill_overlap_ratio(song.collaboration_needed, profile.declared_skills)
            match_score = 100.0 * ratio * confidence * (0.75 + 0.25 * trending / 100.0)

            opportunity = CollaborationOpportunity(
                song_id=song.id,
                song=song,
                match_score=max(0.0, min(100.0, match_score)),
                matching_skills=matches,
                difficulty_level=self.assess_difficulty(song),
                estimated_time_commitment=estimate_time_commitment(matches),
                trending_score=trending
            )
            scored.append((opportunity, song))

        scored.sort(key=lambda pair: song_rank_key(pair[0].match_score, pair[1]))
        opportunities = [opportunity for opportunity, _ in scored[:limit]]

        self.logger.info(
            "Collaboration opportunities found",
            user_id=user_id,
            matched=len(scored),
            returned=len(opportunities)
        )

        return OpportunitySet(
            user_id=user_id,
            opportunities=opportunities,
            user_profile=profile,
            generated_at=now
        )

    def assess_difficulty(self, song: Song) -> DifficultyLevel:
        """Bucket how demanding a song is to join."""
        complexity = 0
        if len(song.collaboration_needed) >= 3:
            complexity += 1
        if len(song.collaborations) > 5:
            complexity += 1
        if song.key and song.key.strip().lower() in DIFFICULT_KEYS:
            complexity += 1
        if song.tempo is not None and (song.tempo > 160 or song.tempo < 60):
            complexity += 1

        if complexity == 0:
            return DifficultyLevel.LOW
        if complexity == 1:
            return DifficultyLevel.MEDIUM
        return DifficultyLevel.HIGH


def reputation_confidence(reputation: int) -> float:
    """Confidence in [0.5, 1.0) that grows with reputation."""
    return 0.5 + 0.5 * (1.0 - math.exp(-max(0, reputation) / 100.0))


def estimate_time_commitment(contribution_types: Sequence[str]) -> TimeCommitment:
    """The longest commitment among the matched contribution types."""
    longest = TimeCommitment.SHORT if contribution_types else TimeCommitment.MEDIUM
    for contribution in contribution_types:
        commitment = commitment_for(contribution)
        if _COMMITMENT_ORDER.index(commitment) > _COMMITMENT_ORDER.index(longest):
            longest = commitment
    return longest


def commitment_for(contribution_type: str) -> TimeCommitment:
    """Time commitment of a single contribution type."""
    contribution = contribution_type.lower()
    if contribution in LONG_CONTRIBUTIONS:
        return TimeCommitment.LONG
    if contribution in SHORT_CONTRIBUTIONS:
        return TimeCommitment.SHORT
    return TimeCommitment.MEDIUM


def needed_commitment(needed: List[str]) -> Optional[TimeCommitment]:
    """Commitment estimate for a song's full list of needs, if any."""
    if not needed:
        return None
    return estimate_time_commitment(needed)
