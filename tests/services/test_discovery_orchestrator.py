"""
Tests for the DiscoveryOrchestrator.

Covers the Success / Failure envelopes, raw snapshot validation, the
opt-in result cache and runtime configuration updates.
"""

import pytest

from legato_discovery.components.charts import ChartGenerator
from legato_discovery.components.scoring import TrendingScorer
from legato_discovery.models import Chart, DiscoveryConfig, ErrorKind, Failure, Success
from legato_discovery.services import DiscoveryOrchestrator


@pytest.fixture
def orchestrator():
    orchestrator = DiscoveryOrchestrator()
    orchestrator.initialize()
    yield orchestrator
    orchestrator.shutdown()


@pytest.fixture
def cached_orchestrator(tmp_path):
    orchestrator = DiscoveryOrchestrator({"enableCaching": True}, cache_dir=str(tmp_path / "cache"))
    orchestrator.initialize()
    yield orchestrator
    orchestrator.shutdown()


class TestLifecycle:
    """Test initialization, status and shutdown."""

    def test_initialize_marks_services_ready(self):
        orchestrator = DiscoveryOrchestrator()

        assert orchestrator.get_system_status().initialized is False

        status = orchestrator.initialize()

        assert status.initialized is True
        assert all(status.services.values())
        assert "recommendationEngine" in status.services
        assert status.config["chartCacheTTL"] == 900
        assert status.cache_size == 0

    def test_initialize_is_idempotent(self, orchestrator):
        assert orchestrator.initialize().initialized is True

    def test_shutdown(self):
        orchestrator = DiscoveryOrchestrator()
        orchestrator.initialize()

        orchestrator.shutdown()

        status = orchestrator.get_system_status()
        assert status.initialized is False
        assert not any(status.services.values())

    def test_accepts_config_dict(self):
        orchestrator = DiscoveryOrchestrator({"chart_size": 3, "voteWeight": 0.5})

        assert orchestrator.get_config().chart_size == 3
        assert orchestrator.get_config().vote_weight == 0.5


class TestOperations:
    """Test each operation's envelope."""

    def test_calculate_trending_score(self, orchestrator, songs_data, now):
        result = orchestrator.calculate_trending_score(songs_data[0], now)

        assert isinstance(result, Success)
        envelope = result.to_envelope()
        assert envelope["data"]["songId"] == "song1"
        assert envelope["data"]["totalScore"] == pytest.approx(32.24, abs=0.01)
        assert set(envelope["data"]["breakdown"]) == {"voteScore", "collaborationScore", "recencyScore"}

    def test_get_chart_from_raw_snapshot(self, orchestrator, songs_data, users_data, now):
        result = orchestrator.get_chart("overall", songs_data, users_data, now=now)

        assert isinstance(result.data, Chart)
        assert [entry.song_id for entry in result.data.entries] == ["song1", "song3", "song2"]
        assert result.metadata["chartType"] == "overall"

    def test_get_all_charts(self, orchestrator, songs_data, users_data, now):
        result = orchestrator.get_all_charts(songs_data, users_data, now)

        assert result.success is True
        assert set(result.data.genres) == set(orchestrator.get_config().supported_genres)

    def test_build_user_profile(self, orchestrator, users_data, interactions_data, songs_data, now):
        result = orchestrator.build_user_profile("user1", users_data, interactions_data, songs_data, now)

        assert result.data.inferred_genres == {"folk": 0.25, "jazz": 1.0}

    def test_recommendations_and_opportunities(self, orchestrator, songs_data, users_data, interactions_data, now):
        recommendations = orchestrator.get_personalized_recommendations(
            "user1", songs_data, users_data, interactions_data, now
        )
        opportunities = orchestrator.get_collaboration_opportunities(
            "user1", songs_data, users_data, interactions_data, now
        )

        assert recommendations.metadata["count"] == 1
        assert opportunities.success is True
        assert opportunities.data.user_profile.user_id == "user1"

    def test_search_variants(self, orchestrator, songs_data, users_data, now):
        songs_result = orchestrator.search_songs("electronic", songs_data, now=now)
        users_result = orchestrator.search_users("jazz", users_data)
        opportunity_result = orchestrator.search_collaboration_opportunities(
            "", songs_data, filters={"requiredSkills": ["guitar"]}, now=now
        )

        assert [r.item_id for r in songs_result.data.results] == ["song1"]
        assert [r.item_id for r in users_result.data.results] == ["user1", "user3"]
        assert [r.item_id for r in opportunity_result.data.results] == ["song1"]

    def test_autocomplete(self, orchestrator, songs_data, users_data):
        result = orchestrator.get_autocomplete_suggestions("fo", "username", songs_data, users_data)

        assert result.data == ["folk_singer_sam"]
        assert result.metadata["count"] == 1


class TestFailures:
    """Test conversion of errors into Failure results."""

    def test_unknown_chart_kind_is_validation_failure(self, orchestrator, songs_data, now):
        result = orchestrator.get_chart("bogus", songs_data, now=now)

        assert isinstance(result, Failure)
        assert result.error_kind == ErrorKind.VALIDATION
        assert "bogus" in result.error

    def test_malformed_record_is_validation_failure(self, orchestrator, now):
        result = orchestrator.calculate_trending_score({"id": "broken"}, now)

        assert result.error_kind == ErrorKind.VALIDATION
        assert result.to_envelope()["errorKind"] == "validation"

    def test_invalid_filters_are_validation_failure(self, orchestrator, songs_data):
        result = orchestrator.search("songs", "", songs_data, filters={"colour": "red"})

        assert result.error_kind == ErrorKind.VALIDATION

    def test_missing_user_is_not_found(self, orchestrator, users_data):
        result = orchestrator.build_user_profile("ghost", users_data)

        assert result.error_kind == ErrorKind.NOT_FOUND
        assert "ghost" in result.error

    def test_unexpected_error_is_hidden(self, orchestrator, songs_data, monkeypatch, now):
        def explode(*args, **kwargs):
            raise RuntimeError("database password is hunter2")

        monkeypatch.setattr(ChartGenerator, "generate", explode)

        result = orchestrator.get_chart("overall", songs_data, now=now)

        assert result.error_kind == ErrorKind.COMPUTATION
        assert result.error == "Internal computation error"
        assert "data" not in result.to_envelope()

    def test_invariant_violation_is_hidden(self, orchestrator, songs_data, monkeypatch, now):
        monkeypatch.setattr(TrendingScorer, "calculate_vote_score", lambda self, song: 150.0)

        result = orchestrator.calculate_trending_score(songs_data[0], now)

        assert result.error_kind == ErrorKind.COMPUTATION
        assert result.error == "Internal computation error"
        assert "song1" not in result.error


class TestCaching:
    """Test the opt-in result cache."""

    def test_caching_is_off_by_default(self, orchestrator, songs_data, now):
        orchestrator.get_chart("overall", songs_data, now=now)
        second = orchestrator.get_chart("overall", songs_data, now=now)

        assert "cached" not in second.metadata
        assert orchestrator.get_system_status().cache_size == 0

    def test_identical_call_is_served_from_cache(self, cached_orchestrator, songs_data, now):
        first = cached_orchestrator.get_chart("overall", songs_data, now=now)
        second = cached_orchestrator.get_chart("overall", songs_data, now=now)

        assert "cached" not in first.metadata
        assert second.metadata["cached"] is True
        assert second.data == first.data
        assert cached_orchestrator.get_system_status().cache_size == 1

    def test_config_update_forces_recompute(self, cached_orchestrator, songs_data, now):
        before = cached_orchestrator.calculate_trending_score(songs_data[0], now)

        cached_orchestrator.update_config({"voteWeight": 0.0, "collabWeight": 0.0, "recencyWeight": 1.0})
        after = cached_orchestrator.calculate_trending_score(songs_data[0], now)

        assert "cached" not in after.metadata
        assert after.data.weights.recency == 1.0
        assert after.data.total_score == pytest.approx(after.data.breakdown.recency_score)
        assert after.data.total_score != pytest.approx(before.data.total_score)

    def test_config_is_part_of_cache_key(self, tmp_path, songs_data, now):
        first = DiscoveryOrchestrator({"enableCaching": True}, cache_dir=str(tmp_path / "shared"))
        first.calculate_trending_score(songs_data[0], now)

        second = DiscoveryOrchestrator(
            {"enableCaching": True, "voteWeight": 1.0, "collabWeight": 0.0, "recencyWeight": 0.0},
            cache_dir=str(tmp_path / "shared")
        )
        try:
            result = second.calculate_trending_score(songs_data[0], now)

            assert "cached" not in result.metadata
            assert result.data.weights.vote == 1.0
        finally:
            first.shutdown()
            second.shutdown()

    def test_cache_is_reopened_after_restart(self, cached_orchestrator, songs_data, now):
        cached_orchestrator.shutdown()
        cached_orchestrator.initialize()

        cached_orchestrator.get_chart("overall", songs_data, now=now)
        second = cached_orchestrator.get_chart("overall", songs_data, now=now)

        assert second.metadata["cached"] is True
        assert cached_orchestrator.get_system_status().cache_size == 1

    def test_now_participates_in_cache_key(self, cached_orchestrator, songs_data, now):
        from datetime import timedelta

        cached_orchestrator.get_chart("overall", songs_data, now=now)
        later = cached_orchestrator.get_chart("overall", songs_data, now=now + timedelta(hours=1))

        assert "cached" not in later.metadata

    def test_failures_are_not_cached(self, cached_orchestrator, songs_data, now):
        cached_orchestrator.get_chart("bogus", songs_data, now=now)

        assert cached_orchestrator.get_system_status().cache_size == 0

    def test_clear_all_caches(self, cached_orchestrator, songs_data, now):
        cached_orchestrator.get_chart("overall", songs_data, now=now)

        assert cached_orchestrator.clear_all_caches() == 1
        assert cached_orchestrator.get_system_status().cache_size == 0

    def test_disabling_caching_clears_cache(self, cached_orchestrator, songs_data, now):
        cached_orchestrator.get_chart("overall", songs_data, now=now)

        cached_orchestrator.update_config({"enableCaching": False})

        assert cached_orchestrator.get_system_status().cache_size == 0


class TestUpdateConfig:
    """Test runtime configuration updates."""

    def test_update_is_applied(self, orchestrator):
        result = orchestrator.update_config({"voteWeight": 0.5, "recency_weight": 0.2})

        assert result.success is True
        assert result.data["voteWeight"] == 0.5
        assert orchestrator.get_config().recency_weight == 0.2

    def test_update_changes_scoring(self, orchestrator, songs_data, now):
        before = orchestrator.calculate_trending_score(songs_data[0], now).data.total_score

        orchestrator.update_config({"voteWeight": 0.0, "collabWeight": 0.0, "recencyWeight": 1.0})
        after = orchestrator.calculate_trending_score(songs_data[0], now).data

        assert after.total_score != before
        assert after.total_score == pytest.approx(after.breakdown.recency_score)

    @pytest.mark.parametrize("partial", [
        {"voteWeight": 2},
        {"chartCacheTTL": -5},
        {"noSuchOption": 1},
    ])
    def test_rejected_update_leaves_config_unchanged(self, orchestrator, partial):
        before = orchestrator.get_config()

        result = orchestrator.update_config(partial)

        assert result.error_kind == ErrorKind.VALIDATION
        assert orchestrator.get_config() == before

    def test_non_mapping_update_is_rejected(self, orchestrator):
        result = orchestrator.update_config(["voteWeight", 0.5])

        assert result.error_kind == ErrorKind.VALIDATION

    def test_enabling_caching_at_runtime(self, orchestrator, songs_data, now):
        orchestrator.update_config({"enableCaching": True})

        orchestrator.get_chart("overall", songs_data, now=now)

        assert orchestrator.get_system_status().cache_size == 1
        assert orchestrator.get_config() == DiscoveryConfig(enable_caching=True)
