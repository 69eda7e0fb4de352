"""
Tests for snapshot records, derived models and configuration.

Validates record parsing from camelCase and snake_case keys, timestamp
normalization, immutability and the configuration merge rules.
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from legato_discovery.models import (
    DiscoveryConfig,
    ErrorKind,
    Failure,
    NotFoundError,
    Song,
    Success,
    User,
    Vote,
)


class TestSnapshotRecords:
    """Test record validation at the snapshot boundary."""

    def test_camel_and_snake_keys_produce_equal_records(self):
        camel = Song.model_validate({
            "id": "s1",
            "createdAt": "2024-05-01T00:00:00Z",
            "ownerUserId": "u1",
            "isOpenForCollaboration": True,
            "collaborationNeeded": ["vocals"],
        })
        snake = Song.model_validate({
            "id": "s1",
            "created_at": "2024-05-01T00:00:00Z",
            "owner_user_id": "u1",
            "is_open_for_collaboration": True,
            "collaboration_needed": ["vocals"],
        })

        assert camel == snake

    def test_user_id_is_accepted_as_song_owner(self):
        song = Song.model_validate({"id": "s1", "createdAt": "2024-05-01T00:00:00Z", "userId": "u9"})

        assert song.owner_user_id == "u9"
        assert song.model_dump(by_alias=True)["ownerUserId"] == "u9"

    def test_unknown_song_keys_are_ignored(self):
        song = Song.model_validate({"id": "s1", "createdAt": "2024-05-01T00:00:00Z", "plays": 120})

        assert "plays" not in song.model_dump(by_alias=True)

    def test_song_without_created_at_is_rejected(self):
        with pytest.raises(PydanticValidationError):
            Song.model_validate({"id": "s1", "title": "No date"})

    def test_naive_datetimes_are_treated_as_utc(self):
        song = Song(id="s1", created_at=datetime(2024, 5, 1, 8, 30))

        assert song.created_at.tzinfo is not None
        assert song.created_at == datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)

    def test_vote_value_must_be_plus_or_minus_one(self):
        with pytest.raises(PydanticValidationError):
            Vote(user_id="u1", value=2, created_at=datetime(2024, 5, 1))

    def test_records_are_frozen(self):
        user = User(id="u1", username="someone")

        with pytest.raises(PydanticValidationError):
            user.username = "someone-else"

    def test_contributor_ids_are_distinct_in_first_seen_order(self, songs):
        song = songs[2].model_copy(update={
            "collaborations": songs[2].collaborations + songs[2].collaborations[:1]
        })

        assert song.contributor_ids() == ["user1", "user2"]


class TestDiscoveryConfig:
    """Test configuration defaults and merging."""

    def test_defaults(self):
        config = DiscoveryConfig()

        assert (config.vote_weight, config.collab_weight, config.recency_weight) == (0.4, 0.3, 0.3)
        assert config.chart_cache_ttl == 900
        assert config.enable_caching is False
        assert config.activity_level_thresholds.medium == 3
        assert config.activity_level_thresholds.high == 10
        assert "electronic" in config.supported_genres

    def test_merge_accepts_camel_and_snake_keys(self):
        config = DiscoveryConfig().merged({"voteWeight": 0.5, "chart_cache_ttl": 60})

        assert config.vote_weight == 0.5
        assert config.chart_cache_ttl == 60
        assert config.collab_weight == 0.3

    def test_merge_returns_new_instance(self):
        original = DiscoveryConfig()
        original.merged({"chartSize": 5})

        assert original.chart_size == 10

    @pytest.mark.parametrize("partial", [
        {"voteWeight": 1.5},
        {"chartCacheTTL": 0},
        {"unknownOption": True},
        {"activityLevelThresholds": {"medium": 12, "high": 10}},
    ])
    def test_merge_rejects_invalid_options(self, partial):
        with pytest.raises(PydanticValidationError):
            DiscoveryConfig().merged(partial)

    def test_public_summary_uses_wire_names(self):
        summary = DiscoveryConfig().public_summary()

        assert summary["chartCacheTTL"] == 900
        assert summary["chartUpdateSchedule"] == "*/15 * * * *"
        assert set(summary) >= {"enableCaching", "voteWeight", "collabWeight", "recencyWeight"}


class TestResults:
    """Test the Success / Failure envelopes."""

    def test_success_envelope_serializes_models_by_alias(self, songs):
        envelope = Success(data=songs[0], metadata={"count": 1}).to_envelope()

        assert envelope["success"] is True
        assert envelope["data"]["createdAt"].startswith("2024-05-30")
        assert envelope["data"]["isOpenForCollaboration"] is True
        assert envelope["metadata"] == {"count": 1}

    def test_failure_envelope_carries_no_data(self):
        error = NotFoundError("User not found: ghost")
        envelope = Failure(error=error.message, error_kind=error.kind).to_envelope()

        assert envelope == {
            "success": False,
            "error": "User not found: ghost",
            "errorKind": ErrorKind.NOT_FOUND.value,
        }
