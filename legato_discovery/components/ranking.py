"""
Ordering and truncation helpers shared by every ranked output.

Song rankings order by higher score first, then the more recently created
song, then song id ascending, so identical snapshots always produce
identical orderings.
"""

from typing import Any, Optional, Tuple

from ..models.errors import ValidationError
from ..models.records import Song


def song_rank_key(score: float, song: Song) -> Tuple[float, float, str]:
    """Sort key implementing the score / recency / id tie-break."""
    return (-score, -song.created_at.timestamp(), song.id)


def resolve_limit(limit: Any, default: int, maximum: Optional[int] = None) -> int:
    """
    Validate a caller-supplied result limit.

    Args:
        limit: Requested limit, or None for the default
        default: Limit used when none is requested
        maximum: Upper bound requests are capped to

    Returns:
        Effective limit

    Raises:
        ValidationError: If the limit is not a positive integer
    """
    if limit is None:
        limit = default
    elif isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValidationError(f"Limit must be a positive integer, got {limit!r}")
    if maximum is not None:
        limit = min(limit, maximum)
    return limit
