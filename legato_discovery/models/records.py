"""
Snapshot Records

Explicit schemas for the read-only snapshots callers hand to the engine.
Records accept camelCase keys (as produced by the data-access layer) as
well as snake_case keys, and are frozen once validated.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import AliasChoices, AfterValidator, BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and normalize aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class InteractionType(Enum):
    """Kinds of events recorded in the interaction log."""
    VOTE = "vote"
    COLLABORATION = "collaboration"
    COMMENT = "comment"
    VIEW = "view"


class SnapshotRecord(BaseModel):
    """Base for all snapshot records."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True
        str_strip_whitespace = True


class Vote(SnapshotRecord):
    """A single up or down vote embedded in a song."""
    user_id: str = Field(..., description="Voting user")
    value: int = Field(..., description="+1 for an upvote, -1 for a downvote")
    weight: float = Field(1.0, ge=0, description="Reputation weight of the voter")
    created_at: UtcDatetime

    @field_validator("value")
    @classmethod
    def _check_value(cls, value: int) -> int:
        if value not in (1, -1):
            raise ValueError("vote value must be +1 or -1")
        return value


class Collaboration(SnapshotRecord):
    """A contribution made to a song by another user."""
    user_id: str
    contribution_type: str = Field(..., description="Skill tag, e.g. 'vocals'")
    created_at: UtcDatetime


class Comment(SnapshotRecord):
    """A comment left on a song."""
    user_id: str
    content: str = ""
    created_at: UtcDatetime


class Song(SnapshotRecord):
    """
    A song with its denormalized activity.

    Votes, collaborations and comments are embedded so the trending scorer
    never has to fetch them itself.
    """
    id: str
    created_at: UtcDatetime
    title: str = ""
    description: str = ""
    genre: Optional[str] = None
    mood: Optional[str] = None
    key: Optional[str] = None
    tempo: Optional[float] = Field(None, ge=0)
    owner_user_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("ownerUserId", "owner_user_id", "userId"),
        serialization_alias="ownerUserId",
    )
    is_open_for_collaboration: bool = False
    collaboration_needed: List[str] = Field(default_factory=list)
    votes: List[Vote] = Field(default_factory=list)
    collaborations: List[Collaboration] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list)

    def contributor_ids(self) -> List[str]:
        """Distinct users who have contributed, in first-seen order."""
        seen = []
        for collaboration in self.collaborations:
            if collaboration.user_id not in seen:
                seen.append(collaboration.user_id)
        return seen


class User(SnapshotRecord):
    """A platform user with declared skills and genres."""
    id: str
    username: str = ""
    display_name: str = ""
    bio: str = ""
    skills: List[str] = Field(default_factory=list)
    genres: List[str] = Field(default_factory=list)
    reputation: int = 0
    created_at: Optional[UtcDatetime] = None


class Interaction(SnapshotRecord):
    """A raw event from the interaction log."""
    user_id: str
    song_id: str
    type: InteractionType
    value: Optional[float] = None
    created_at: UtcDatetime
