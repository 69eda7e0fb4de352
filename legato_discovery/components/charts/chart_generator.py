"""
Chart Generator for Legato Discovery

Produces ranked charts over a song snapshot:
- Overall: every song ranked by trending score
- Genre: songs of one genre ranked by trending score
- Rising stars: artists ranked by engagement velocity, not absolute score
- Collaboration: songs ranked by collaboration activity
- Daily / weekly: recently active songs with recency-heavy weights
"""

from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import structlog

from ...models.config_models import DiscoveryConfig
from ...models.discovery_models import (
    AllCharts,
    ArtistChartEntry,
    Chart,
    ChartEntry,
    ChartKind,
    TrendingScore,
)
from ...models.errors import ValidationError
from ...models.records import Song, User
from ...utils.time_utils import hours_since, resolve_now, within_hours
from ..ranking import resolve_limit, song_rank_key
from ..scoring.trending_scorer import TrendingScorer

logger = structlog.get_logger(__name__)

# Blend used by the time-window charts (vote, collaboration, recency)
TIME_WINDOW_WEIGHTS = (0.3, 0.3, 0.4)

CHART_TITLES = {
    ChartKind.OVERALL: "Top Overall",
    ChartKind.RISING_STARS: "Rising Stars",
    ChartKind.COLLABORATION: "Most Collaborative Songs",
    ChartKind.DAILY: "Today's Top Songs",
    ChartKind.WEEKLY: "This Week's Top Songs",
}


class ChartGenerator:
    """
    Builds ranked charts using the trending scorer.

    Every song chart breaks ties by more recent creation and then by song
    id, so the same snapshot always yields the same chart.
    """

    def __init__(
        self,
        config: Optional[DiscoveryConfig] = None,
        scorer: Optional[TrendingScorer] = None
    ):
        self.config = config or DiscoveryConfig()
        self.scorer = scorer or TrendingScorer(self.config)
        self.logger = logger.bind(component="ChartGenerator")

    def generate(
        self,
        kind: Union[str, ChartKind],
        songs: Sequence[Song],
        users: Sequence[User] = (),
        params: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None
    ) -> Chart:
        """
        Generate one chart.

        Args:
            kind: Chart kind (overall, genre, rising-stars, collaboration, daily, weekly)
            songs: Song snapshot
            users: User snapshot (rising stars attaches user records)
            params: Chart parameters: `genre` (required for genre charts), `limit`
            now: Reference time (defaults to the current time)

        Returns:
            The ranked chart

        Raises:
            ValidationError: Unknown kind, missing genre or bad limit
        """
        chart_kind = parse_chart_kind(kind)
        params = params or {}
        limit = resolve_limit(params.get("limit"), self.config.chart_size)
        now = resolve_now(now)

        if chart_kind == ChartKind.OVERALL:
            chart = self._song_chart(chart_kind, CHART_TITLES[chart_kind], list(songs), limit, now)
        elif chart_kind == ChartKind.GENRE:
            genre = params.get("genre")
            if not genre or not isinstance(genre, str):
                raise ValidationError("Genre is required for genre charts")
            genre_songs = [s for s in songs if s.genre and s.genre.lower() == genre.lower()]
            chart = self._song_chart(
                chart_kind, f"Top {genre.capitalize()} Songs", genre_songs, limit, now, genre=genre
            )
        elif chart_kind == ChartKind.RISING_STARS:
            chart = self._rising_stars_chart(songs, users, limit, now)
        elif chart_kind == ChartKind.COLLABORATION:
            chart = self._collaboration_chart(songs, limit, now)
        else:
            window = (
                self.config.daily_chart_hours
                if chart_kind == ChartKind.DAILY
                else self.config.weekly_chart_hours
            )
            chart = self._time_window_chart(chart_kind, songs, window, limit, now)

        self.logger.info(
            "Chart generated",
            kind=chart_kind.value,
            candidates=chart.metadata.get("totalCandidates", 0),
            entries=len(chart.entries) or len(chart.artists)
        )
        return chart

    def generate_all(
        self,
        songs: Sequence[Song],
        users: Sequence[User] = (),
        genres: Optional[Sequence[str]] = None,
        now: Optional[datetime] = None
    ) -> AllCharts:
        """Generate every chart, with one genre chart per requested genre."""
        now = resolve_now(now)
        genres = list(genres) if genres is not None else list(self.config.supported_genres)

        return AllCharts(
            overall=self.generate(ChartKind.OVERALL, songs, users, now=now),
            genres={
                genre: self.generate(ChartKind.GENRE, songs, users, {"genre": genre}, now)
                for genre in genres
            },
            rising_stars=self.generate(ChartKind.RISING_STARS, songs, users, now=now),
            collaboration=self.generate(ChartKind.COLLABORATION, songs, users, now=now),
            daily=self.generate(ChartKind.DAILY, songs, users, now=now),
            weekly=self.generate(ChartKind.WEEKLY, songs, users, now=now),
            generated_at=now
        )

    def _song_chart(
        self,
        kind: ChartKind,
        title: str,
        songs: List[Song],
        limit: int,
        now: datetime,
        genre: Optional[str] = None,
        scorer: Optional[TrendingScorer] = None
    ) -> Chart:
        """Rank songs by total trending score."""
        scorer = scorer or self.scorer
        scored = [(song, scorer.score(song, now)) for song in songs]
        ranked = sorted(scored, key=lambda pair: song_rank_key(pair[1].total_score, pair[0]))

        entries = [
            self._entry(rank, song, score)
            for rank, (song, score) in enumerate(ranked[:limit], start=1)
        ]
        return Chart(
            kind=kind,
            title=title,
            genre=genre,
            generated_at=now,
            entries=entries,
            metadata={
                "totalCandidates": len(songs),
                "genreDistribution": genre_distribution(entries),
                "algorithm": "trending_v1",
            }
        )

    def _collaboration_chart(self, songs: Sequence[Song], limit: int, now: datetime) -> Chart:
        """Rank songs with at least one collaboration by collaboration activity."""
        collaborative = [song for song in songs if song.collaborations]
        scored = [(song, self.scorer.score(song, now)) for song in collaborative]
        ranked = sorted(
            scored,
            key=lambda pair: song_rank_key(pair[1].breakdown.collaboration_score, pair[0])
        )

        entries = [
            self._entry(rank, song, score)
            for rank, (song, score) in enumerate(ranked[:limit], start=1)
        ]
        return Chart(
            kind=ChartKind.COLLABORATION,
            title=CHART_TITLES[ChartKind.COLLABORATION],
            generated_at=now,
            entries=entries,
            metadata={
                "totalCandidates": len(collaborative),
                "genreDistribution": genre_distribution(entries),
                "rankedBy": "collaborationScore",
            }
        )

    def _time_window_chart(
        self,
        kind: ChartKind,
        songs: Sequence[Song],
        window_hours: float,
        limit: int,
        now: datetime
    ) -> Chart:
        """Rank songs with activity inside the window using recency-heavy weights."""
        active = [song for song in songs if has_recent_activity(song, now, window_hours)]
        chart = self._song_chart(
            kind,
            CHART_TITLES[kind],
            active,
            limit,
            now,
            scorer=self.scorer.with_weights(*TIME_WINDOW_WEIGHTS)
        )
        chart.metadata["timeWindowHours"] = window_hours
        chart.metadata["algorithm"] = "trending_v1_time_based"
        return chart

    def _rising_stars_chart(
        self,
        songs: Sequence[Song],
        users: Sequence[User],
        limit: int,
        now: datetime
    ) -> Chart:
        """Rank artists of recent songs by engagement velocity."""
        max_age = self.config.rising_stars_max_age_hours
        window = self.config.velocity_window_hours
        users_by_id = {user.id: user for user in users}

        songs_by_artist: Dict[str, List[Song]] = defaultdict(list)
        for song in songs:
            if song.owner_user_id and 0 <= hours_since(song.created_at, now) <= max_age:
                songs_by_artist[song.owner_user_id].append(song)

        candidates = []
        for user_id, artist_songs in songs_by_artist.items():
            recent, previous = engagement_counts(artist_songs, now, window)
            if recent == 0:
                continue

            scored = [(song, self.scorer.score(song, now)) for song in artist_songs]
            scored.sort(key=lambda pair: song_rank_key(pair[1].total_score, pair[0]))
            total_score = sum(score.total_score for _, score in scored)

            candidates.append({
                "user_id": user_id,
                "user": users_by_id.get(user_id),
                "velocity": recent / (window / 24.0),
                "growth": recent - previous,
                "total_score": total_score,
                "song_count": len(artist_songs),
                "recent_song_ids": [song.id for song, _ in scored[:3]],
            })

        candidates.sort(key=lambda c: (-c["velocity"], -c["total_score"], c["user_id"]))

        artists = [
            ArtistChartEntry(rank=rank, **candidate)
            for rank, candidate in enumerate(candidates[:limit], start=1)
        ]
        return Chart(
            kind=ChartKind.RISING_STARS,
            title=CHART_TITLES[ChartKind.RISING_STARS],
            generated_at=now,
            artists=artists,
            metadata={
                "totalCandidates": len(songs_by_artist),
                "maxSongAgeHours": max_age,
                "velocityWindowHours": window,
            }
        )

    def _entry(self, rank: int, song: Song, score: TrendingScore) -> ChartEntry:
        return ChartEntry(
            rank=rank,
            song_id=song.id,
            song=song,
            trending_score=score.total_score,
            breakdown=score.breakdown,
            collaboration_count=len(song.collaborations),
            collaboration_type_count=len({c.contribution_type.lower() for c in song.collaborations})
        )


def parse_chart_kind(kind: Union[str, ChartKind]) -> ChartKind:
    """Parse a chart kind, raising ValidationError for unknown kinds."""
    if isinstance(kind, ChartKind):
        return kind
    try:
        return ChartKind(kind)
    except ValueError:
        raise ValidationError(f"Unknown chart type: {kind}") from None


def has_recent_activity(song: Song, now: datetime, window_hours: float) -> bool:
    """True if the song got a vote, collaboration or comment inside the window."""
    activity = [*song.votes, *song.collaborations, *song.comments]
    return any(within_hours(item.created_at, now, window_hours) for item in activity)


def engagement_counts(songs: Sequence[Song], now: datetime, window_hours: float) -> Tuple[int, int]:
    """
    Count engagement events in the trailing window and the window before it.

    Engagement events are upvotes, collaborations and comments.
    """
    recent_start = now - timedelta(hours=window_hours)
    previous_start = recent_start - timedelta(hours=window_hours)

    recent = previous = 0
    for song in songs:
        moments = [v.created_at for v in song.votes if v.value > 0]
        moments += [c.created_at for c in song.collaborations]
        moments += [c.created_at for c in song.comments]
        for moment in moments:
            if recent_start <= moment <= now:
                recent += 1
            elif previous_start <= moment < recent_start:
                previous += 1
    return recent, previous


def genre_distribution(entries: Sequence[ChartEntry]) -> Dict[str, int]:
    """Count chart entries per genre."""
    counts = Counter(entry.song.genre for entry in entries if entry.song.genre)
    return dict(sorted(counts.items()))
