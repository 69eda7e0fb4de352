"""
Tests for the RecommendationEngine and CollaborationMatcher.
"""

from datetime import timedelta

import pytest

from legato_discovery.components.recommendation import CollaborationMatcher, RecommendationEngine
from legato_discovery.components.recommendation.collaboration_matcher import (
    estimate_time_commitment,
    reputation_confidence,
)
from legato_discovery.components.recommendation.recommendation_engine import agreement_score, jaccard
from legato_discovery.models import (
    DifficultyLevel,
    DiscoveryConfig,
    Interaction,
    NotFoundError,
    Song,
    TimeCommitment,
    User,
    ValidationError,
)


@pytest.fixture
def engine():
    return RecommendationEngine()


@pytest.fixture
def matcher():
    return CollaborationMatcher()


def open_song(song_id, now, genre="pop", owner="owner", hours_old=1, **extra):
    return Song(
        id=song_id,
        created_at=now - timedelta(hours=hours_old),
        genre=genre,
        owner_user_id=owner,
        is_open_for_collaboration=True,
        **extra
    )


class TestRecommendationEngine:
    """Test personalized recommendations."""

    def test_excludes_closed_and_already_seen_songs(self, engine, songs, users, interactions, now):
        result = engine.recommend("user1", songs, users, interactions, now)

        # song2 was voted on, song3 is closed
        assert [r.song_id for r in result.recommendations] == ["song1"]

    def test_score_blends_trending_and_profile_match(self, engine, songs, users, interactions, now):
        recommendation = engine.recommend("user1", songs, users, interactions, now).recommendations[0]

        # Declared-only genre match: 100 * 0.5 * 0.8
        assert recommendation.profile_match_score == pytest.approx(40.0)
        expected = 0.4 * recommendation.trending_score + 0.6 * 40.0
        assert recommendation.score == pytest.approx(expected)
        assert "Matches your interest in electronic" in recommendation.reasons

    def test_cold_start_uses_declared_data(self, engine, songs, users, now, newcomer):
        result = engine.recommend("user4", songs, users + [newcomer], [], now)

        assert result.user_profile.has_history is False
        assert result.methodology["coldStart"] is True
        assert [r.song_id for r in result.recommendations] == ["song2", "song1"]
        # Declared folk (0.8) and half the needed skills
        assert result.recommendations[0].profile_match_score == pytest.approx(60.0)

    def test_recommendations_are_sorted(self, engine, songs, users, now, newcomer):
        result = engine.recommend("user4", songs, users + [newcomer], [], now)
        scores = [r.score for r in result.recommendations]

        assert scores == sorted(scores, reverse=True)

    def test_unknown_user(self, engine, songs, users, now):
        with pytest.raises(NotFoundError):
            engine.recommend("ghost", songs, users, [], now)

    def test_invalid_limit(self, engine, songs, users, now):
        with pytest.raises(ValidationError):
            engine.recommend("user1", songs, users, [], now, limit=-3)

    def test_diversity_caps_genre_and_artist(self, users, now, newcomer):
        config = DiscoveryConfig(max_same_genre=2, max_same_artist=1)
        engine = RecommendationEngine(config)
        catalog = [
            open_song("a1", now, genre="pop", owner="artist-a"),
            open_song("a2", now, genre="pop", owner="artist-a", hours_old=2),
            open_song("b1", now, genre="pop", owner="artist-b", hours_old=3),
            open_song("c1", now, genre="pop", owner="artist-c", hours_old=4),
            open_song("d1", now, genre="rock", owner="artist-d", hours_old=5),
        ]

        result = engine.recommend("user4", catalog, users + [newcomer], [], now)

        assert [r.song_id for r in result.recommendations] == ["a1", "b1", "d1"]

    def test_limit_applies_after_diversity(self, users, now, newcomer):
        engine = RecommendationEngine(DiscoveryConfig(max_same_artist=1))
        catalog = [open_song(f"s{i}", now, owner=f"artist-{i}", hours_old=i + 1) for i in range(5)]

        result = engine.recommend("user4", catalog, users + [newcomer], [], now, limit=2)

        assert [r.song_id for r in result.recommendations] == ["s0", "s1"]

    def test_similar_users_boost_songs_they_upvoted(self, engine, now):
        fans = [
            User(id="fan-a", skills=["Piano"], genres=["pop"]),
            User(id="fan-b", skills=["piano"], genres=["Pop"]),
        ]
        shared = open_song("shared", now, hours_old=30).model_copy(update={"is_open_for_collaboration": False})
        catalog = [
            shared,
            open_song("a-song", now, owner="artist-a", hours_old=5),
            open_song("b-song", now, owner="artist-b", hours_old=5),
        ]
        log = [
            Interaction(user_id="fan-a", song_id="shared", type="vote", value=1, created_at=now),
            Interaction(user_id="fan-b", song_id="shared", type="vote", value=1, created_at=now),
            Interaction(user_id="fan-b", song_id="b-song", type="vote", value=1, created_at=now),
        ]

        result = engine.recommend("fan-a", catalog, fans, log, now)

        assert engine.find_similar_users(result.user_profile, fans, log) == [("fan-b", pytest.approx(1.0))]
        assert result.methodology["similarUsers"] == 1
        first, second = result.recommendations
        assert (first.song_id, second.song_id) == ("b-song", "a-song")
        assert first.collaborative_score == pytest.approx(100.0)
        assert second.collaborative_score == 0.0
        assert first.profile_match_score == pytest.approx(second.profile_match_score)
        assert first.reasons[0] == "Liked by similar users (100% match)"

    def test_newcomer_inherits_upvotes_of_similar_user(self, engine, songs, users, interactions, now, newcomer):
        result = engine.recommend("user4", songs, users + [newcomer], interactions, now)

        # Shares vocals and folk with user2, who upvoted song1
        neighbours = engine.find_similar_users(result.user_profile, users, interactions)
        assert neighbours == [("user2", pytest.approx(0.375))]
        assert [r.song_id for r in result.recommendations] == ["song1", "song2"]
        assert result.recommendations[0].collaborative_score == pytest.approx(100.0)
        assert result.recommendations[0].reasons[0].startswith("Liked by similar users")

    def test_users_below_similarity_threshold_are_ignored(self, engine, songs, users, interactions, now):
        result = engine.recommend("user1", songs, users, interactions, now)

        assert result.methodology["similarUsers"] == 0
        assert all(r.collaborative_score == 0.0 for r in result.recommendations)

    def test_similarity_helpers(self):
        assert jaccard(["Piano", "vocals"], ["piano"]) == pytest.approx(0.5)
        assert jaccard([], []) == 0.0
        assert agreement_score({"s1": 1, "s2": -1}, {"s1": 1, "s2": 1, "s3": 1}) == pytest.approx(0.5)
        assert agreement_score({"s1": 1}, {"s2": 1}) == 0.0


class TestCollaborationMatcher:
    """Test skill-based collaboration opportunities."""

    def test_matches_are_case_insensitive_and_ranked(self, matcher, songs, users, now, newcomer):
        result = matcher.find_opportunities("user4", songs, users + [newcomer], [], now)

        assert [o.song_id for o in result.opportunities] == ["song1", "song2"]
        first = result.opportunities[0]
        assert first.matching_skills == ["vocals"]
        assert first.estimated_time_commitment == TimeCommitment.SHORT
        assert first.difficulty_level == DifficultyLevel.LOW
        # Half the needs, zero reputation, trending song1
        expected = 100 * 0.5 * 0.5 * (0.75 + 0.25 * first.trending_score / 100)
        assert first.match_score == pytest.approx(expected)

    def test_owner_and_existing_contributors_are_excluded(self, matcher, songs, users, now):
        result = matcher.find_opportunities("user2", songs, users, [], now)

        # user2 owns song2 and already sings on song1
        assert result.opportunities == []

    def test_songs_without_matching_skill_are_excluded(self, matcher, songs, users, now):
        result = matcher.find_opportunities("user3", songs, users, [], now)

        assert result.opportunities == []

    def test_match_scores_are_bounded(self, matcher, now, users):
        song = open_song("s1", now, collaboration_needed=["mixing"])

        result = matcher.find_opportunities("user1", [song], users, [], now)

        assert len(result.opportunities) == 1
        assert 0 <= result.opportunities[0].match_score <= 100

    def test_difficulty_levels(self, matcher, now):
        easy = open_song("easy", now, collaboration_needed=["vocals"], key="C", tempo=100)
        medium = open_song("medium", now, collaboration_needed=["vocals"], key="F#", tempo=100)
        hard = open_song(
            "hard", now, collaboration_needed=["vocals", "mixing", "drums"], key="Bb", tempo=180
        )

        assert matcher.assess_difficulty(easy) == DifficultyLevel.LOW
        assert matcher.assess_difficulty(medium) == DifficultyLevel.MEDIUM
        assert matcher.assess_difficulty(hard) == DifficultyLevel.HIGH

    @pytest.mark.parametrize("key", ["f#", "EB", " Bb "])
    def test_difficult_keys_ignore_case(self, matcher, now, key):
        song = open_song("keyed", now, collaboration_needed=["vocals"], key=key, tempo=100)

        assert matcher.assess_difficulty(song) == DifficultyLevel.MEDIUM

    def test_longest_time_commitment_wins(self):
        assert estimate_time_commitment(["vocals"]) == TimeCommitment.SHORT
        assert estimate_time_commitment(["vocals", "guitar"]) == TimeCommitment.MEDIUM
        assert estimate_time_commitment(["Lyrics", "Mastering"]) == TimeCommitment.LONG

    def test_reputation_confidence(self):
        assert reputation_confidence(0) == pytest.approx(0.5)
        assert reputation_confidence(100) > reputation_confidence(10)
        assert reputation_confidence(10_000) < 1.0

    def test_limit(self, now, users):
        matcher = CollaborationMatcher(DiscoveryConfig(collaboration_opportunity_limit=2))
        catalog = [open_song(f"s{i}", now, collaboration_needed=["piano"], hours_old=i + 1) for i in range(4)]

        result = matcher.find_opportunities("user1", catalog, users, [], now)

        assert [o.song_id for o in result.opportunities] == ["s0", "s1"]
