"""
Discovery Orchestrator

Single entry point for the charts & discovery engine. The orchestrator
validates raw snapshots into records, runs the components against one
configuration snapshot per call, optionally caches results and converts
every outcome into a Success or Failure result.
"""

import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Type, TypeVar, Union

import structlog
from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import to_jsonable_python

from ..components.charts.chart_generator import ChartGenerator
from ..components.profiles.user_profile_builder import UserProfileBuilder
from ..components.recommendation.collaboration_matcher import CollaborationMatcher
from ..components.recommendation.recommendation_engine import RecommendationEngine
from ..components.scoring.trending_scorer import TrendingScorer
from ..components.search.autocomplete_engine import AutocompleteEngine
from ..components.search.search_engine import SearchEngine
from ..models.config_models import DiscoveryConfig
from ..models.discovery_models import SearchFilters, SearchKind, SystemStatus
from ..models.errors import ComputationError, DiscoveryError, ErrorKind, ValidationError
from ..models.records import Interaction, Song, User, UtcDatetime
from ..models.results import EngineResult, Failure, Success
from ..utils.logging_config import log_error, log_performance
from ..utils.time_utils import resolve_now
from .cache_manager import ResultCache

logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

SERVICE_NAMES = (
    "trendingScorer",
    "chartGenerator",
    "userProfileBuilder",
    "recommendationEngine",
    "collaborationMatcher",
    "searchEngine",
    "autocompleteEngine",
)

INTERNAL_ERROR_MESSAGE = "Internal computation error"

_NOW_ADAPTER = TypeAdapter(Optional[UtcDatetime])


class DiscoveryOrchestrator:
    """
    Orchestrates the discovery components behind one result-returning API.

    Config, cache and service registry are the only mutable state and are
    guarded by a single re-entrant lock. Configs are immutable and swapped
    whole, so an operation that started before an update finishes with
    the config it started with.
    """

    def __init__(
        self,
        config: Optional[Union[DiscoveryConfig, Dict[str, Any]]] = None,
        cache_dir: Optional[str] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            config: DiscoveryConfig or a dict of options (camelCase or snake_case)
            cache_dir: Directory for the result cache (temporary directory if None)
        """
        if config is None:
            config = DiscoveryConfig()
        elif not isinstance(config, DiscoveryConfig):
            config = DiscoveryConfig().merged(config)

        self._lock = threading.RLock()
        self._config = config
        self._cache_dir = cache_dir
        self._cache: Optional[ResultCache] = None
        self._services: Dict[str, bool] = {name: False for name in SERVICE_NAMES}
        self._initialized = False

        if config.enable_caching:
            self._cache = ResultCache(cache_dir, config.chart_cache_ttl)

        self.logger = logger.bind(component="DiscoveryOrchestrator")
        self.logger.info(
            "Discovery orchestrator created",
            enable_caching=config.enable_caching,
            supported_genres=len(config.supported_genres)
        )

    # --- Lifecycle ---

    def initialize(self) -> SystemStatus:
        """Mark every service ready, reopening the cache after a shutdown. Idempotent."""
        with self._lock:
            if self._initialized:
                self.logger.warning("Orchestrator already initialized")
            else:
                if self._config.enable_caching and self._cache is None:
                    self._cache = ResultCache(self._cache_dir, self._config.chart_cache_ttl)
                for name in self._services:
                    self._services[name] = True
                self._initialized = True
                self.logger.info("Discovery orchestrator initialized", services=list(self._services))
        return self.get_system_status()

    def shutdown(self) -> None:
        """Clear and close the cache and mark every service stopped."""
        with self._lock:
            if self._cache is not None:
                self._cache.clear()
                self._cache.close()
                self._cache = None
            for name in self._services:
                self._services[name] = False
            self._initialized = False
        self.logger.info("Discovery orchestrator shut down")

    @property
    def config(self) -> DiscoveryConfig:
        with self._lock:
            return self._config

    def get_config(self) -> DiscoveryConfig:
        """Current configuration snapshot."""
        return self.config

    def get_system_status(self) -> SystemStatus:
        """Readiness, public config and cache size."""
        with self._lock:
            config = self._config
            return SystemStatus(
                initialized=self._initialized,
                services=dict(self._services),
                supported_genres=list(config.supported_genres),
                config=config.public_summary(),
                cache_size=self._cache.size() if self._cache is not None else 0
            )

    def clear_all_caches(self) -> int:
        """Drop every cached result; returns how many entries were removed."""
        with self._lock:
            if self._cache is None:
                return 0
            return self._cache.clear()

    # --- Configuration ---

    def update_config(self, partial: Dict[str, Any]) -> EngineResult:
        """
        Merge options into the configuration.

        Unknown keys and out-of-range values are rejected and leave the
        current configuration untouched.

        Args:
            partial: Options keyed by camelCase alias or snake_case name

        Returns:
            Success with the full new configuration, or a validation Failure
        """
        def compute() -> Success:
            if not isinstance(partial, dict):
                raise ValidationError("Config update must be a mapping of options")

            with self._lock:
                previous = self._config
                updated = previous.merged(partial)
                self._config = updated
                self._apply_cache_settings(previous, updated)

            if abs(updated.blend_weight_total - 1.0) > 1e-6:
                self.logger.warning(
                    "Trending blend weights do not sum to 1.0",
                    vote_weight=updated.vote_weight,
                    collab_weight=updated.collab_weight,
                    recency_weight=updated.recency_weight,
                    total=updated.blend_weight_total
                )

            self.logger.info("Configuration updated", keys=sorted(partial))
            return Success(
                data=updated.model_dump(mode="json", by_alias=True),
                metadata={"updatedKeys": sorted(partial)}
            )

        return self._execute("update_config", compute)

    def _apply_cache_settings(self, previous: DiscoveryConfig, updated: DiscoveryConfig) -> None:
        if updated.enable_caching:
            if self._cache is None:
                self._cache = ResultCache(self._cache_dir, updated.chart_cache_ttl)
            else:
                self._cache.default_ttl = updated.chart_cache_ttl
                if updated != previous:
                    # Entries keyed on the old config can never be hit again
                    self._cache.clear()
        elif previous.enable_caching and self._cache is not None:
            self._cache.clear()

    # --- Trending and charts ---

    def calculate_trending_score(
        self,
        song: Union[Song, Dict[str, Any]],
        now: Optional[datetime] = None
    ) -> EngineResult:
        """Trending score and breakdown for one song."""
        def compute(config: DiscoveryConfig) -> Success:
            record = _coerce_one(Song, song)
            moment = _resolve(now)
            score = TrendingScorer(config).score(record, moment)
            return Success(
                data=score,
                metadata={"calculatedAt": moment.isoformat(), "algorithm": "trending_v1"}
            )

        return self._execute_cached("calculate_trending_score", compute, song=song, now=now)

    def get_chart(
        self,
        kind: str,
        songs: Sequence[Any],
        users: Sequence[Any] = (),
        params: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None
    ) -> EngineResult:
        """One chart of the given kind."""
        def compute(config: DiscoveryConfig) -> Success:
            song_records = _coerce_many(Song, songs)
            user_records = _coerce_many(User, users)
            moment = _resolve(now)
            chart = ChartGenerator(config).generate(kind, song_records, user_records, params, moment)
            return Success(
                data=chart,
                metadata={"generatedAt": moment.isoformat(), "chartType": chart.kind.value}
            )

        return self._execute_cached(
            "get_chart", compute, kind=kind, songs=songs, users=users, params=params, now=now
        )

    def get_all_charts(
        self,
        songs: Sequence[Any],
        users: Sequence[Any] = (),
        now: Optional[datetime] = None
    ) -> EngineResult:
        """Every chart, with one genre chart per supported genre."""
        def compute(config: DiscoveryConfig) -> Success:
            song_records = _coerce_many(Song, songs)
            user_records = _coerce_many(User, users)
            moment = _resolve(now)
            charts = ChartGenerator(config).generate_all(
                song_records, user_records, config.supported_genres, moment
            )
            return Success(
                data=charts,
                metadata={
                    "generatedAt": moment.isoformat(),
                    "supportedGenres": list(config.supported_genres),
                    "algorithm": "trending_v1",
                }
            )

        return self._execute_cached("get_all_charts", compute, songs=songs, users=users, now=now)

    # --- Profiles and recommendations ---

    def build_user_profile(
        self,
        user_id: str,
        users: Sequence[Any],
        interactions: Sequence[Any] = (),
        songs: Sequence[Any] = (),
        now: Optional[datetime] = None
    ) -> EngineResult:
        """Inferred profile for one user."""
        def compute(config: DiscoveryConfig) -> Success:
            moment = _resolve(now)
            profile = UserProfileBuilder(config).build(
                user_id,
                _coerce_many(User, users),
                _coerce_many(Interaction, interactions),
                _coerce_many(Song, songs),
                moment
            )
            return Success(data=profile, metadata={"generatedAt": moment.isoformat()})

        return self._execute_cached(
            "build_user_profile", compute,
            user_id=user_id, users=users, interactions=interactions, songs=songs, now=now
        )

    def get_personalized_recommendations(
        self,
        user_id: str,
        songs: Sequence[Any],
        users: Sequence[Any],
        interactions: Sequence[Any] = (),
        now: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> EngineResult:
        """Personalized song recommendations for one user."""
        def compute(config: DiscoveryConfig) -> Success:
            moment = _resolve(now)
            recommendations = RecommendationEngine(config).recommend(
                user_id,
                _coerce_many(Song, songs),
                _coerce_many(User, users),
                _coerce_many(Interaction, interactions),
                moment,
                limit
            )
            return Success(
                data=recommendations,
                metadata={
                    "generatedAt": moment.isoformat(),
                    "userId": user_id,
                    "count": len(recommendations.recommendations),
                }
            )

        return self._execute_cached(
            "get_personalized_recommendations", compute,
            user_id=user_id, songs=songs, users=users, interactions=interactions,
            now=now, limit=limit
        )

    def get_collaboration_opportunities(
        self,
        user_id: str,
        songs: Sequence[Any],
        users: Sequence[Any],
        interactions: Sequence[Any] = (),
        now: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> EngineResult:
        """Songs needing the user's skills."""
        def compute(config: DiscoveryConfig) -> Success:
            moment = _resolve(now)
            opportunities = CollaborationMatcher(config).find_opportunities(
                user_id,
                _coerce_many(Song, songs),
                _coerce_many(User, users),
                _coerce_many(Interaction, interactions),
                moment,
                limit
            )
            return Success(
                data=opportunities,
                metadata={
                    "generatedAt": moment.isoformat(),
                    "userId": user_id,
                    "count": len(opportunities.opportunities),
                }
            )

        return self._execute_cached(
            "get_collaboration_opportunities", compute,
            user_id=user_id, songs=songs, users=users, interactions=interactions,
            now=now, limit=limit
        )

    # --- Search ---

    def search(
        self,
        kind: str,
        query: str = "",
        songs: Sequence[Any] = (),
        users: Sequence[Any] = (),
        filters: Optional[Union[SearchFilters, Dict[str, Any]]] = None,
        now: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> EngineResult:
        """Faceted search over songs, users or collaboration opportunities."""
        def compute(config: DiscoveryConfig) -> Success:
            search_filters = _coerce_one(SearchFilters, filters) if filters is not None else None
            response = SearchEngine(config).search(
                kind,
                query,
                _coerce_many(Song, songs),
                _coerce_many(User, users),
                search_filters,
                _resolve(now),
                limit,
                offset
            )
            return Success(
                data=response,
                metadata={
                    "kind": response.kind.value,
                    "totalResults": response.total_results,
                    "hasMore": response.has_more,
                }
            )

        return self._execute_cached(
            "search", compute,
            kind=kind, query=query, songs=songs, users=users, filters=filters,
            now=now, limit=limit, offset=offset
        )

    def search_songs(self, query: str, songs: Sequence[Any], **kwargs) -> EngineResult:
        return self.search(SearchKind.SONGS.value, query, songs=songs, **kwargs)

    def search_users(self, query: str, users: Sequence[Any], **kwargs) -> EngineResult:
        return self.search(SearchKind.USERS.value, query, users=users, **kwargs)

    def search_collaboration_opportunities(
        self,
        query: str,
        songs: Sequence[Any],
        **kwargs
    ) -> EngineResult:
        return self.search(SearchKind.COLLABORATION_OPPORTUNITIES.value, query, songs=songs, **kwargs)

    def get_autocomplete_suggestions(
        self,
        prefix: str,
        field: str,
        songs: Sequence[Any] = (),
        users: Sequence[Any] = (),
        limit: Optional[int] = None
    ) -> EngineResult:
        """Prefix suggestions for one song or user field."""
        def compute(config: DiscoveryConfig) -> Success:
            suggestions = AutocompleteEngine(config).suggest(
                prefix,
                field,
                _coerce_many(Song, songs),
                _coerce_many(User, users),
                limit
            )
            return Success(
                data=suggestions,
                metadata={"field": field, "prefix": prefix, "count": len(suggestions)}
            )

        return self._execute_cached(
            "get_autocomplete_suggestions", compute,
            prefix=prefix, field=field, songs=songs, users=users, limit=limit
        )

    # --- Execution ---

    def _execute_cached(
        self,
        operation: str,
        compute: Callable[[DiscoveryConfig], Success],
        **arguments
    ) -> EngineResult:
        """Run `compute` against one config snapshot, through the cache when enabled."""
        with self._lock:
            config = self._config
            cache = self._cache if config.enable_caching else None

        cache_key = None
        if cache is not None:
            # The config snapshot is part of the key
            cache_key = ResultCache.generate_key(
                operation,
                config=config.model_dump(mode="json"),
                **to_jsonable_python(arguments, fallback=str)
            )
            cached = cache.get(cache_key)
            if cached is not None:
                metadata = dict(cached.metadata, cached=True)
                return cached.model_copy(update={"metadata": metadata})

        result = self._execute(operation, lambda: compute(config))

        if cache_key is not None and isinstance(result, Success):
            cache.set(cache_key, result, ttl=config.chart_cache_ttl)
        return result

    def _execute(self, operation: str, compute: Callable[[], Success]) -> EngineResult:
        """Convert the outcome of `compute` into a Success or Failure."""
        start_time = time.time()
        try:
            result: EngineResult = compute()
        except PydanticValidationError as e:
            result = Failure(error=summarize_validation_error(e), error_kind=ErrorKind.VALIDATION)
        except ComputationError as e:
            self.logger.exception("Discovery invariant violated", operation=operation)
            log_error(e, {"operation": operation})
            result = Failure(error=INTERNAL_ERROR_MESSAGE, error_kind=ErrorKind.COMPUTATION)
        except DiscoveryError as e:
            result = Failure(error=e.message, error_kind=e.kind)
        except Exception as e:
            self.logger.exception("Discovery operation failed", operation=operation)
            log_error(e, {"operation": operation})
            result = Failure(error=INTERNAL_ERROR_MESSAGE, error_kind=ErrorKind.COMPUTATION)

        duration = time.time() - start_time
        log_performance(operation, duration, success=result.success)

        if isinstance(result, Failure):
            self.logger.warning(
                "Discovery operation rejected",
                operation=operation,
                error_kind=result.error_kind.value,
                error=result.error
            )
        return result


def _coerce_one(model: Type[RecordT], value: Any) -> RecordT:
    if isinstance(value, model):
        return value
    return model.model_validate(value)


def _coerce_many(model: Type[RecordT], values: Optional[Iterable[Any]]) -> List[RecordT]:
    if values is None:
        return []
    if isinstance(values, (str, bytes, dict)):
        raise ValidationError(f"Expected a list of {model.__name__} records")
    return [_coerce_one(model, value) for value in values]


def _resolve(now: Any) -> datetime:
    return resolve_now(_NOW_ADAPTER.validate_python(now))


def summarize_validation_error(error: PydanticValidationError, max_errors: int = 5) -> str:
    """One-line description of a pydantic validation error."""
    parts = []
    for detail in error.errors()[:max_errors]:
        location = ".".join(str(part) for part in detail["loc"])
        parts.append(f"{location}: {detail['msg']}" if location else detail["msg"])
    remaining = error.error_count() - max_errors
    if remaining > 0:
        parts.append(f"and {remaining} more")
    return f"Invalid {error.title}: " + "; ".join(parts)
