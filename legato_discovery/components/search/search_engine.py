"""
Search Engine for Legato Discovery

Faceted text search over songs, users and collaboration opportunities.
Text matching decides membership and relevance; filters are hard
predicates applied afterwards, and facets are counted on the text-matched
set before filtering so a UI can narrow results incrementally.

A query token found in no field may still match a misspelt or longer
word. Such near matches keep a record in the results but rank it below
every record with an exact hit.
"""

from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import structlog

from ...models.config_models import DiscoveryConfig
from ...models.discovery_models import SearchFilters, SearchKind, SearchResponse, SearchResult
from ...models.errors import ValidationError
from ...models.records import Song, User
from ...utils.time_utils import resolve_now
from ..ranking import resolve_limit
from ..recommendation.collaboration_matcher import needed_commitment
from ..scoring.trending_scorer import TrendingScorer
from .text_utils import field_tokens, near_match_weight, query_tokens

logger = structlog.get_logger(__name__)

Record = Union[Song, User]

# Reputation facet buckets: (label, inclusive upper bound)
REPUTATION_BUCKETS = [
    ("newcomer (0-25)", 25),
    ("developing (26-50)", 50),
    ("experienced (51-75)", 75),
    ("expert (76+)", None),
]

SEARCH_SUGGESTION_LIMIT = 5
SUGGESTION_STEM_LENGTH = 3


class SearchEngine:
    """Token-overlap search with a near-match tier, filters, facets and pagination."""

    def __init__(
        self,
        config: Optional[DiscoveryConfig] = None,
        scorer: Optional[TrendingScorer] = None
    ):
        self.config = config or DiscoveryConfig()
        self.scorer = scorer or TrendingScorer(self.config)
        self.logger = logger.bind(component="SearchEngine")

    def search(
        self,
        kind: Union[str, SearchKind],
        query: str = "",
        songs: Sequence[Song] = (),
        users: Sequence[User] = (),
        filters: Optional[SearchFilters] = None,
        now: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> SearchResponse:
        """
        Run a search.

        Args:
            kind: songs, users or collaboration-opportunities
            query: Free-text query; empty matches every record
            songs: Song snapshot
            users: User snapshot
            filters: Hard predicates applied after text matching
            now: Reference time for trending scores
            limit: Page size (defaults to and is capped at search_max_results)
            offset: Number of ranked results to skip

        Returns:
            SearchResponse with the requested page and facet counts

        Raises:
            ValidationError: Unknown kind or bad pagination
        """
        search_kind = parse_search_kind(kind)
        filters = filters or SearchFilters()
        limit = resolve_limit(limit, self.config.search_max_results, self.config.search_max_results)
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise ValidationError(f"Offset must be a non-negative integer, got {offset!r}")
        now = resolve_now(now)
        query = query or ""
        tokens = query_tokens(query)

        records = self._collection(search_kind, songs, users)

        matched: List[Tuple[Record, int, float, List[str]]] = []
        for record in records:
            relevance, near, matched_fields = score_relevance(
                tokens, indexed_fields(search_kind, record), self.config.fuzzy_match_threshold
            )
            if tokens and relevance == 0 and near == 0:
                continue
            matched.append((record, relevance, near, matched_fields))

        facets = build_facets(search_kind, [record for record, _, _, _ in matched])

        results = [
            self._result(search_kind, record, relevance, near, matched_fields, now)
            for record, relevance, near, matched_fields in matched
            if matches_filters(search_kind, record, filters)
        ]
        # Exact token hits always outrank near matches
        results.sort(key=lambda r: (
            -r.relevance, -r.near_relevance, -(r.trending_score or 0.0), r.item_id
        ))

        page = results[offset:offset + limit]

        self.logger.info(
            "Search executed",
            kind=search_kind.value,
            tokens=len(tokens),
            matched=len(matched),
            filtered=len(results),
            returned=len(page)
        )

        return SearchResponse(
            kind=search_kind,
            query=query,
            filters=filters,
            results=page,
            facets=facets,
            total_results=len(results),
            limit=limit,
            offset=offset,
            has_more=offset + len(page) < len(results),
            suggestions=search_suggestions(tokens, search_kind, records)
        )

    def _collection(
        self,
        kind: SearchKind,
        songs: Sequence[Song],
        users: Sequence[User]
    ) -> List[Record]:
        if kind == SearchKind.USERS:
            return list(users)
        if kind == SearchKind.COLLABORATION_OPPORTUNITIES:
            return [s for s in songs if s.is_open_for_collaboration and s.collaboration_needed]
        return list(songs)

    def _result(
        self,
        kind: SearchKind,
        record: Record,
        relevance: int,
        near: float,
        matched_fields: List[str],
        now: datetime
    ) -> SearchResult:
        if kind == SearchKind.USERS:
            return SearchResult(
                kind=kind,
                item_id=record.id,
                item=record,
                relevance=relevance,
                near_relevance=near,
                matched_fields=matched_fields
            )

        result = SearchResult(
            kind=kind,
            item_id=record.id,
            item=record,
            relevance=relevance,
            near_relevance=near,
            trending_score=self.scorer.score(record, now).total_score,
            matched_fields=matched_fields
        )
        if kind == SearchKind.COLLABORATION_OPPORTUNITIES:
            result = result.model_copy(update={
                "needed_skills": list(record.collaboration_needed),
                "estimated_time_commitment": needed_commitment(record.collaboration_needed),
            })
        return result


def parse_search_kind(kind: Union[str, SearchKind]) -> SearchKind:
    """Parse a search kind, raising ValidationError for unknown kinds."""
    if isinstance(kind, SearchKind):
        return kind
    try:
        return SearchKind(kind)
    except ValueError:
        raise ValidationError(f"Unknown search type: {kind}") from None


def indexed_fields(kind: SearchKind, record: Record) -> Dict[str, List[str]]:
    """Searchable text of a record, keyed by field alias."""
    if kind == SearchKind.USERS:
        return {
            "username": [record.username],
            "displayName": [record.display_name],
            "bio": [record.bio],
            "skills": list(record.skills),
            "genres": list(record.genres),
        }

    fields = {
        "title": [record.title],
        "description": [record.description],
        "genre": [record.genre or ""],
        "mood": [record.mood or ""],
    }
    if kind == SearchKind.COLLABORATION_OPPORTUNITIES:
        fields["collaborationNeeded"] = list(record.collaboration_needed)
    return fields


def score_relevance(
    tokens: Sequence[str],
    fields: Dict[str, List[str]],
    fuzzy_threshold: float = 0.7
) -> Tuple[int, float, List[str]]:
    """
    Score query tokens against a record's indexed fields.

    Returns:
        Number of distinct tokens found exactly, summed near-match weight of
        the tokens found nowhere exactly, and the fields that matched either way
    """
    if not tokens:
        return 0, 0.0, []

    tokenized = {name: field_tokens(values) for name, values in fields.items()}

    found = set()
    exact_fields = set()
    for name, field_set in tokenized.items():
        hits = field_set.intersection(tokens)
        if hits:
            found.update(hits)
            exact_fields.add(name)

    near = 0.0
    near_fields = set()
    for term in tokens:
        if term in found:
            continue
        best = 0.0
        for name, field_set in tokenized.items():
            weight = near_match_weight(term, field_set, fuzzy_threshold)
            if weight:
                near_fields.add(name)
                best = max(best, weight)
        near += best

    matched_fields = [name for name in tokenized if name in exact_fields or name in near_fields]
    return len(found), round(near, 6), matched_fields


def search_suggestions(
    tokens: Sequence[str],
    kind: SearchKind,
    records: Sequence[Record],
    limit: int = SEARCH_SUGGESTION_LIMIT
) -> List[str]:
    """
    Indexed words sharing a stem with the first query token.

    Words are ranked by how many records carry them, then alphabetically;
    words already in the query are skipped.
    """
    if not tokens:
        return []

    stem = tokens[0][:SUGGESTION_STEM_LENGTH]
    counts: Counter = Counter()
    for record in records:
        words = set()
        for values in indexed_fields(kind, record).values():
            words.update(field_tokens(values))
        counts.update(
            word for word in words
            if len(word) > 2 and word.startswith(stem) and word not in tokens
        )

    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [word for word, _ in ranked[:limit]]


def matches_filters(kind: SearchKind, record: Record, filters: SearchFilters) -> bool:
    """Apply every filter relevant to the record kind."""
    if kind == SearchKind.USERS:
        return _user_matches(record, filters)
    return _song_matches(record, filters)


def _lowered(values: Sequence[str]) -> set:
    return {value.lower() for value in values}


def _song_matches(song: Song, filters: SearchFilters) -> bool:
    if filters.genres and (not song.genre or song.genre.lower() not in _lowered(filters.genres)):
        return False
    if filters.moods and (not song.mood or song.mood.lower() not in _lowered(filters.moods)):
        return False

    needs = _lowered(song.collaboration_needed)
    if filters.skills and not needs & _lowered(filters.skills):
        return False
    if filters.required_skills and not _lowered(filters.required_skills) <= needs:
        return False

    if filters.collaboration_status == "open" and not song.is_open_for_collaboration:
        return False
    if filters.collaboration_status == "closed" and song.is_open_for_collaboration:
        return False

    return _in_date_range(song.created_at, filters)


def _user_matches(user: User, filters: SearchFilters) -> bool:
    if filters.genres and not _lowered(user.genres) & _lowered(filters.genres):
        return False

    skills = _lowered(user.skills)
    if filters.skills and not skills & _lowered(filters.skills):
        return False
    if filters.required_skills and not _lowered(filters.required_skills) <= skills:
        return False

    reputation_range = filters.reputation_range
    if reputation_range is not None:
        if user.reputation < reputation_range.min:
            return False
        if reputation_range.max is not None and user.reputation > reputation_range.max:
            return False

    return _in_date_range(user.created_at, filters)


def _in_date_range(created_at: Optional[datetime], filters: SearchFilters) -> bool:
    date_range = filters.date_range
    if date_range is None or (date_range.start is None and date_range.end is None):
        return True
    if created_at is None:
        return False
    if date_range.start is not None and created_at < date_range.start:
        return False
    if date_range.end is not None and created_at > date_range.end:
        return False
    return True


def build_facets(kind: SearchKind, records: Sequence[Record]) -> Dict[str, Dict[str, int]]:
    """Count matched records per distinct value of each filterable attribute."""
    if kind == SearchKind.USERS:
        return {
            "skills": _count_lists(user.skills for user in records),
            "genres": _count_lists(user.genres for user in records),
            "reputationRange": reputation_facet(records),
        }

    facets = {"genre": _count_values(song.genre for song in records)}
    if kind == SearchKind.SONGS:
        facets["mood"] = _count_values(song.mood for song in records)
        facets["collaborationStatus"] = {
            "open": sum(1 for song in records if song.is_open_for_collaboration),
            "closed": sum(1 for song in records if not song.is_open_for_collaboration),
        }
    else:
        facets["skills"] = _count_lists(song.collaboration_needed for song in records)
    return facets


def reputation_facet(users: Sequence[User]) -> Dict[str, int]:
    counts = {label: 0 for label, _ in REPUTATION_BUCKETS}
    for user in users:
        for label, upper in REPUTATION_BUCKETS:
            if upper is None or user.reputation <= upper:
                counts[label] += 1
                break
    return counts


def _count_values(values: Any) -> Dict[str, int]:
    counts = Counter(value.lower() for value in values if value)
    return dict(sorted(counts.items()))


def _count_lists(value_lists: Any) -> Dict[str, int]:
    counts: Counter = Counter()
    for values in value_lists:
        # A record counts once per distinct value
        counts.update(_lowered(values))
    return dict(sorted(counts.items()))
