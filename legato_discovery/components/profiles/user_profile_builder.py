"""
User Profile Builder for Legato Discovery

Derives an implicit taste and activity profile for a user from their
declared attributes plus their interaction history. Profiles are computed
fresh on every call; nothing is cached here.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

import structlog

from ...models.config_models import DiscoveryConfig
from ...models.discovery_models import ActivityLevel, UserProfile
from ...models.errors import NotFoundError
from ...models.records import Interaction, InteractionType, Song, User
from ...utils.time_utils import resolve_now

logger = structlog.get_logger(__name__)

# Genre affinity credited per interaction type
INTERACTION_WEIGHTS = {
    InteractionType.VIEW: 0.5,
    InteractionType.VOTE: 1.0,
    InteractionType.COMMENT: 2.0,
    InteractionType.COLLABORATION: 3.0,
}


class UserProfileBuilder:
    """
    Builds UserProfile values from user records and interaction logs.

    Inferred genres come from the songs a user interacted with inside the
    profile window, weighted by interaction type. Activity level buckets the
    interaction count inside the (shorter) activity window.
    """

    def __init__(self, config: Optional[DiscoveryConfig] = None):
        self.config = config or DiscoveryConfig()
        self.logger = logger.bind(component="UserProfileBuilder")

    def build(
        self,
        user_id: str,
        users: Sequence[User],
        interactions: Sequence[Interaction],
        songs: Sequence[Song] = (),
        now: Optional[datetime] = None
    ) -> UserProfile:
        """
        Build the profile for one user.

        Args:
            user_id: User to profile
            users: User snapshot
            interactions: Interaction log (any users; filtered here)
            songs: Song snapshot used to resolve interactions to genres
            now: Reference time (defaults to the current time)

        Returns:
            UserProfile for the user

        Raises:
            NotFoundError: If no user record matches `user_id`
        """
        user = find_user(user_id, users)
        now = resolve_now(now)

        own_interactions = [i for i in interactions if i.user_id == user_id]
        profile_cutoff = now - timedelta(days=self.config.profile_window_days)
        recent = [i for i in own_interactions if profile_cutoff <= i.created_at <= now]

        songs_by_id = {song.id: song for song in songs}

        profile = UserProfile(
            user_id=user.id,
            declared_skills=list(user.skills),
            declared_genres=list(user.genres),
            reputation=user.reputation,
            inferred_genres=self.infer_genres(recent, songs_by_id),
            inferred_moods=self.infer_moods(recent, songs_by_id),
            activity_level=self.calculate_activity_level(own_interactions, now),
            interaction_count=len(own_interactions),
            collaboration_style=self.infer_collaboration_style(user_id, recent, songs_by_id),
            interacted_song_ids=sorted({i.song_id for i in own_interactions})
        )

        self.logger.debug(
            "User profile built",
            user_id=user_id,
            interaction_count=profile.interaction_count,
            inferred_genres=len(profile.inferred_genres),
            activity_level=profile.activity_level.value
        )

        return profile

    def infer_genres(
        self,
        interactions: Sequence[Interaction],
        songs_by_id: Dict[str, Song]
    ) -> Dict[str, float]:
        """Accumulate weighted genre affinity and scale the top genre to 1.0."""
        return self._infer_affinity(interactions, songs_by_id, "genre")

    def infer_moods(
        self,
        interactions: Sequence[Interaction],
        songs_by_id: Dict[str, Song]
    ) -> Dict[str, float]:
        """Same weighting as genres, keyed by song mood."""
        return self._infer_affinity(interactions, songs_by_id, "mood")

    def _infer_affinity(
        self,
        interactions: Sequence[Interaction],
        songs_by_id: Dict[str, Song],
        attribute: str
    ) -> Dict[str, float]:
        affinity: Dict[str, float] = defaultdict(float)

        for interaction in interactions:
            song = songs_by_id.get(interaction.song_id)
            value = getattr(song, attribute) if song is not None else None
            if not value:
                continue
            # A downvote says nothing good about the genre
            if (
                interaction.type == InteractionType.VOTE
                and interaction.value is not None
                and interaction.value < 0
            ):
                continue
            affinity[value.lower()] += INTERACTION_WEIGHTS[interaction.type]

        if not affinity:
            return {}

        strongest = max(affinity.values())
        return {key: round(weight / strongest, 6) for key, weight in sorted(affinity.items())}

    def calculate_activity_level(
        self,
        interactions: Sequence[Interaction],
        now: datetime
    ) -> ActivityLevel:
        """Bucket the interaction count in the trailing activity window."""
        cutoff = now - timedelta(days=self.config.activity_window_days)
        count = sum(1 for i in interactions if cutoff <= i.created_at <= now)

        thresholds = self.config.activity_level_thresholds
        if count >= thresholds.high:
            return ActivityLevel.HIGH
        if count >= thresholds.medium:
            return ActivityLevel.MEDIUM
        return ActivityLevel.LOW

    def infer_collaboration_style(
        self,
        user_id: str,
        interactions: Sequence[Interaction],
        songs_by_id: Dict[str, Song]
    ) -> List[str]:
        """Contribution types the user brought to songs they collaborated on."""
        styles: List[str] = []
        for interaction in interactions:
            if interaction.type != InteractionType.COLLABORATION:
                continue
            song = songs_by_id.get(interaction.song_id)
            if song is None:
                continue
            for collaboration in song.collaborations:
                if collaboration.user_id == user_id and collaboration.contribution_type not in styles:
                    styles.append(collaboration.contribution_type)
        return styles


def find_user(user_id: str, users: Sequence[User]) -> User:
    """Look up a user in a snapshot or raise NotFoundError."""
    for user in users:
        if user.id == user_id:
            return user
    raise NotFoundError(f"User not found: {user_id}")
