"""
Recommendation Engine for Legato Discovery

Ranks open collaboration songs for a user by blending each song's trending
score with how well it matches the user's inferred and declared taste,
then applies genre and artist diversity limits. Songs upvoted by users
with similar skills and taste get an extra boost.
"""

from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import structlog

from ...models.config_models import DiscoveryConfig
from ...models.discovery_models import RankedSong, RecommendationSet, UserProfile
from ...models.records import Interaction, InteractionType, Song, User
from ...utils.time_utils import resolve_now
from ..profiles.user_profile_builder import UserProfileBuilder
from ..ranking import resolve_limit, song_rank_key
from ..scoring.trending_scorer import TrendingScorer

logger = structlog.get_logger(__name__)

# Profile match blend
GENRE_MATCH_WEIGHT = 0.5
MOOD_MATCH_WEIGHT = 0.1
SKILL_MATCH_WEIGHT = 0.4

# Genre affinity credited when a genre is declared but not yet inferred
DECLARED_GENRE_AFFINITY = 0.8

TRENDING_REASON_THRESHOLD = 50.0

# User similarity blend; agreement only counts when the users share songs
SKILL_SIMILARITY_WEIGHT = 0.3
GENRE_SIMILARITY_WEIGHT = 0.3
AGREEMENT_WEIGHT = 0.4


class RecommendationEngine:
    """
    Personalized song recommendations.

    Candidates are songs open for collaboration that the user has not
    interacted with yet. Users with no history still get results ranked by
    declared genres, skills and trending score.
    """

    def __init__(
        self,
        config: Optional[DiscoveryConfig] = None,
        scorer: Optional[TrendingScorer] = None,
        profile_builder: Optional[UserProfileBuilder] = None
    ):
        self.config = config or DiscoveryConfig()
        self.scorer = scorer or TrendingScorer(self.config)
        self.profile_builder = profile_builder or UserProfileBuilder(self.config)
        self.logger = logger.bind(component="RecommendationEngine")

    def recommend(
        self,
        user_id: str,
        songs: Sequence[Song],
        users: Sequence[User],
        interactions: Sequence[Interaction] = (),
        now: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> RecommendationSet:
        """
        Recommend songs for a user.

        Args:
            user_id: User to recommend for
            songs: Song snapshot
            users: User snapshot
            interactions: Interaction log
            now: Reference time (defaults to the current time)
            limit: Maximum recommendations (defaults to recommendation_limit)

        Returns:
            RecommendationSet with ranked songs and the profile used

        Raises:
            NotFoundError: If the user does not exist
            ValidationError: If the limit is invalid
        """
        limit = resolve_limit(limit, self.config.recommendation_limit)
        now = resolve_now(now)
        profile = self.profile_builder.build(user_id, users, interactions, songs, now)

        seen = set(profile.interacted_song_ids)
        candidates = [
            song for song in songs
            if song.is_open_for_collaboration and song.id not in seen
        ]

        neighbours = self.find_similar_users(profile, users, interactions)
        liked_by = upvoters_by_song(interactions, {neighbour for neighbour, _ in neighbours})
        similarity = dict(neighbours)

        trending_weight = self.config.recommendation_trending_weight
        collaborative_weight = self.config.recommendation_collaborative_weight
        ranked: List[Tuple[RankedSong, Song]] = []
        for song in candidates:
            trending = self.scorer.score(song, now).total_score
            profile_match = self.calculate_profile_match(song, profile)
            voters = liked_by.get(song.id, [])
            collaborative = collaborative_score(voters, similarity)
            affinity = min(100.0, profile_match + collaborative_weight * collaborative)
            score = trending_weight * trending + (1.0 - trending_weight) * affinity
            closest = max((similarity[voter] for voter in voters), default=None)

            ranked.append((
                RankedSong(
                    song_id=song.id,
                    song=song,
                    score=score,
                    trending_score=trending,
                    profile_match_score=profile_match,
                    collaborative_score=collaborative,
                    reasons=self.explain(song, profile, trending, closest)
                ),
                song
            ))

        ranked.sort(key=lambda pair: song_rank_key(pair[0].score, pair[1]))
        recommendations = self.apply_diversity(ranked)[:limit]

        self.logger.info(
            "Recommendations generated",
            user_id=user_id,
            candidates=len(candidates),
            returned=len(recommendations),
            cold_start=not profile.has_history
        )

        return RecommendationSet(
            user_id=user_id,
            recommendations=recommendations,
            user_profile=profile,
            generated_at=now,
            methodology={
                "trendingWeight": trending_weight,
                "profileWeight": 1.0 - trending_weight,
                "candidateCount": len(candidates),
                "coldStart": not profile.has_history,
                "maxSameGenre": self.config.max_same_genre,
                "maxSameArtist": self.config.max_same_artist,
                "collaborativeWeight": collaborative_weight,
                "similarUsers": len(neighbours),
            }
        )

    def calculate_profile_match(self, song: Song, profile: UserProfile) -> float:
        """Score in [0, 100] for how well a song fits the user's taste and skills."""
        genre = genre_affinity(song, profile)
        mood = profile.inferred_moods.get(song.mood.lower(), 0.0) if song.mood else 0.0
        skill = skill_overlap_ratio(song.collaboration_needed, profile.declared_skills)

        match = 100.0 * (
            GENRE_MATCH_WEIGHT * genre
            + MOOD_MATCH_WEIGHT * mood
            + SKILL_MATCH_WEIGHT * skill
        )
        return max(0.0, min(100.0, match))

    def apply_diversity(self, ranked: Sequence[Tuple[RankedSong, Song]]) -> List[RankedSong]:
        """Drop songs once their genre or artist has reached its cap."""
        genre_counts: Dict[str, int] = defaultdict(int)
        artist_counts: Dict[str, int] = defaultdict(int)
        diverse = []

        for recommendation, song in ranked:
            genre = song.genre.lower() if song.genre else None
            artist = song.owner_user_id

            if genre and genre_counts[genre] >= self.config.max_same_genre:
                continue
            if artist and artist_counts[artist] >= self.config.max_same_artist:
                continue

            if genre:
                genre_counts[genre] += 1
            if artist:
                artist_counts[artist] += 1
            diverse.append(recommendation)

        return diverse

    def find_similar_users(
        self,
        profile: UserProfile,
        users: Sequence[User],
        interactions: Sequence[Interaction]
    ) -> List[Tuple[str, float]]:
        """
        Users whose skills, genres and votes resemble the profile's.

        Returns:
            (user_id, similarity) pairs at or above min_user_similarity,
            most similar first, capped at max_similar_users
        """
        songs_by_user: Dict[str, Set[str]] = defaultdict(set)
        votes_by_user: Dict[str, Dict[str, float]] = defaultdict(dict)
        for interaction in interactions:
            songs_by_user[interaction.user_id].add(interaction.song_id)
            if interaction.type == InteractionType.VOTE and interaction.value is not None:
                votes_by_user[interaction.user_id].setdefault(interaction.song_id, interaction.value)

        own_songs = songs_by_user.get(profile.user_id, set())
        own_votes = votes_by_user.get(profile.user_id, {})

        neighbours = []
        for user in users:
            if user.id == profile.user_id:
                continue

            weighted = (
                SKILL_SIMILARITY_WEIGHT * jaccard(profile.declared_skills, user.skills)
                + GENRE_SIMILARITY_WEIGHT * jaccard(profile.declared_genres, user.genres)
            )
            factors = SKILL_SIMILARITY_WEIGHT + GENRE_SIMILARITY_WEIGHT
            if own_songs & songs_by_user.get(user.id, set()):
                weighted += AGREEMENT_WEIGHT * agreement_score(own_votes, votes_by_user.get(user.id, {}))
                factors += AGREEMENT_WEIGHT

            similarity = weighted / factors
            if similarity >= self.config.min_user_similarity:
                neighbours.append((user.id, similarity))

        neighbours.sort(key=lambda pair: (-pair[1], pair[0]))
        neighbours = neighbours[:self.config.max_similar_users]

        self.logger.debug(
            "Similar users found",
            user_id=profile.user_id,
            similar_users=len(neighbours)
        )
        return neighbours

    def explain(
        self,
        song: Song,
        profile: UserProfile,
        trending: float,
        neighbour_similarity: Optional[float] = None
    ) -> List[str]:
        """Human-readable reasons a song was recommended."""
        reasons = []
        if neighbour_similarity is not None:
            reasons.append(f"Liked by similar users ({round(neighbour_similarity * 100)}% match)")
        if song.genre:
            genre = song.genre.lower()
            if genre in profile.inferred_genres:
                reasons.append(f"You often engage with {song.genre} songs")
            elif genre in {g.lower() for g in profile.declared_genres}:
                reasons.append(f"Matches your interest in {song.genre}")
        if song.mood and song.mood.lower() in profile.inferred_moods:
            reasons.append(f"Fits the {song.mood} mood you listen to")

        matching = matching_skills(song.collaboration_needed, profile.declared_skills)
        if matching:
            reasons.append(f"Needs your skills: {', '.join(matching)}")

        if trending >= TRENDING_REASON_THRESHOLD:
            reasons.append("Trending now")
        if not reasons:
            reasons.append("Open for collaboration")
        return reasons


def genre_affinity(song: Song, profile: UserProfile) -> float:
    """Inferred affinity for the song genre, or the declared-genre default."""
    if not song.genre:
        return 0.0
    genre = song.genre.lower()
    if genre in profile.inferred_genres:
        return profile.inferred_genres[genre]
    if genre in {g.lower() for g in profile.declared_genres}:
        return DECLARED_GENRE_AFFINITY
    return 0.0


def matching_skills(needed: Sequence[str], skills: Sequence[str]) -> List[str]:
    """Needed skills the user has, compared case-insensitively, in the song's order."""
    owned = {skill.lower() for skill in skills}
    matches = []
    seen = set()
    for need in needed:
        key = need.lower()
        if key in owned and key not in seen:
            seen.add(key)
            matches.append(need)
    return matches


def skill_overlap_ratio(needed: Sequence[str], skills: Sequence[str]) -> float:
    """Share of distinct needed skills the user has."""
    distinct_needed = {need.lower() for need in needed}
    if not distinct_needed:
        return 0.0
    owned = {skill.lower() for skill in skills}
    return len(distinct_needed & owned) / len(distinct_needed)


def jaccard(first: Iterable[str], second: Iterable[str]) -> float:
    """Case-insensitive Jaccard overlap of two tag lists."""
    a = {value.lower() for value in first}
    b = {value.lower() for value in second}
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def agreement_score(own_votes: Dict[str, float], other_votes: Dict[str, float]) -> float:
    """Share of songs both users voted on where the votes point the same way."""
    common = own_votes.keys() & other_votes.keys()
    if not common:
        return 0.0
    agreements = sum(
        1 for song_id in common
        if (own_votes[song_id] > 0) == (other_votes[song_id] > 0)
    )
    return agreements / len(common)


def upvoters_by_song(interactions: Sequence[Interaction], user_ids: Set[str]) -> Dict[str, List[str]]:
    """Song id to the given users who upvoted it, in log order."""
    upvoters: Dict[str, List[str]] = defaultdict(list)
    for interaction in interactions:
        if (
            interaction.user_id in user_ids
            and interaction.type == InteractionType.VOTE
            and (interaction.value or 0) > 0
            and interaction.user_id not in upvoters[interaction.song_id]
        ):
            upvoters[interaction.song_id].append(interaction.user_id)
    return dict(upvoters)


def collaborative_score(voters: Sequence[str], similarity: Dict[str, float]) -> float:
    """Similarity-weighted share of the user's neighbours who upvoted a song, on 0-100."""
    total = sum(similarity.values())
    if not voters or total <= 0:
        return 0.0
    return 100.0 * sum(similarity[voter] for voter in voters) / total
