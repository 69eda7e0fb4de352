"""Reference-time helpers shared by the scoring and ranking components."""

from datetime import datetime, timezone
from typing import Optional

from ..models.records import ensure_utc


def resolve_now(now: Optional[datetime] = None) -> datetime:
    """Return `now` as an aware UTC datetime, defaulting to the current time."""
    if now is None:
        return datetime.now(timezone.utc)
    return ensure_utc(now)


def hours_since(moment: datetime, now: datetime) -> float:
    """Hours elapsed from `moment` to `now`; negative for future moments."""
    return (now - ensure_utc(moment)).total_seconds() / 3600.0


def within_hours(moment: datetime, now: datetime, hours: float) -> bool:
    """True when `moment` lies in the trailing window of `hours` ending at `now`."""
    age = hours_since(moment, now)
    return 0 <= age <= hours
