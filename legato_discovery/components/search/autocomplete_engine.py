"""
Autocomplete Engine for Legato Discovery

Prefix suggestions drawn from song and user fields.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

import structlog

from ...models.config_models import DiscoveryConfig
from ...models.discovery_models import AutocompleteField
from ...models.errors import ValidationError
from ...models.records import Song, User
from ..ranking import resolve_limit

logger = structlog.get_logger(__name__)

SONG_FIELDS = {
    AutocompleteField.TITLE: lambda song: [song.title],
    AutocompleteField.GENRE: lambda song: [song.genre],
    AutocompleteField.MOOD: lambda song: [song.mood],
    AutocompleteField.COLLABORATION_NEEDED: lambda song: song.collaboration_needed,
}

USER_FIELDS = {
    AutocompleteField.USERNAME: lambda user: [user.username],
    AutocompleteField.DISPLAY_NAME: lambda user: [user.display_name],
    AutocompleteField.SKILLS: lambda user: user.skills,
    AutocompleteField.GENRES: lambda user: user.genres,
}


class AutocompleteEngine:
    """
    Suggests field values starting with a prefix.

    Values are grouped case-insensitively and ranked by how many records
    carry them.
    """

    def __init__(self, config: Optional[DiscoveryConfig] = None):
        self.config = config or DiscoveryConfig()
        self.logger = logger.bind(component="AutocompleteEngine")

    def suggest(
        self,
        prefix: str,
        field: Union[str, AutocompleteField],
        songs: Sequence[Song] = (),
        users: Sequence[User] = (),
        limit: Optional[int] = None
    ) -> List[str]:
        """
        Suggest values of `field` that start with `prefix`.

        Args:
            prefix: Typed prefix; blank returns no suggestions
            field: Field to complete (title, genre, mood, collaborationNeeded,
                username, displayName, skills, genres)
            songs: Song snapshot
            users: User snapshot
            limit: Maximum suggestions (defaults to autocomplete_limit)

        Returns:
            Suggested values, most common first

        Raises:
            ValidationError: Unknown field or bad limit
        """
        autocomplete_field = parse_autocomplete_field(field)
        limit = resolve_limit(limit, self.config.autocomplete_limit)
        needle = (prefix or "").strip().lower()
        if not needle:
            return []

        if autocomplete_field in SONG_FIELDS:
            values = (SONG_FIELDS[autocomplete_field](song) for song in songs)
        else:
            values = (USER_FIELDS[autocomplete_field](user) for user in users)

        suggestions = rank_values(values, needle)[:limit]

        self.logger.debug(
            "Autocomplete suggestions",
            field=autocomplete_field.value,
            prefix=needle,
            returned=len(suggestions)
        )
        return suggestions


def parse_autocomplete_field(field: Union[str, AutocompleteField]) -> AutocompleteField:
    """Parse an autocomplete field, raising ValidationError for unknown fields."""
    if isinstance(field, AutocompleteField):
        return field
    try:
        return AutocompleteField(field)
    except ValueError:
        raise ValidationError(f"Unknown autocomplete field: {field}") from None


def rank_values(record_values: Iterable[Iterable[Optional[str]]], needle: str) -> List[str]:
    """Group prefix matches case-insensitively and order by record count."""
    record_counts: Dict[str, int] = defaultdict(int)
    spellings: Dict[str, Set[str]] = defaultdict(set)

    for values in record_values:
        seen = set()
        for value in values:
            if not value:
                continue
            display = value.strip()
            key = display.lower()
            if not key.startswith(needle):
                continue
            spellings[key].add(display)
            if key not in seen:
                seen.add(key)
                record_counts[key] += 1

    ordered = sorted(record_counts, key=lambda key: (-record_counts[key], key))
    return [min(spellings[key]) for key in ordered]
