"""
Shared fixtures for the Legato discovery test suite.

The snapshot describes three songs and three users relative to a fixed
reference time so every score and ordering is reproducible.
"""

from datetime import datetime, timedelta, timezone

import pytest

from legato_discovery.models import Interaction, Song, User

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def ago(**kwargs) -> str:
    """ISO timestamp `kwargs` (timedelta arguments) before NOW."""
    return (NOW - timedelta(**kwargs)).isoformat()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def songs_data():
    """Raw camelCase song snapshot, as a data-access layer would supply it."""
    return [
        {
            "id": "song1",
            "title": "Electric Dreams",
            "description": "A vibrant electronic track perfect for collaboration",
            "genre": "electronic",
            "mood": "energetic",
            "key": "C",
            "tempo": 128,
            "userId": "user1",
            "isOpenForCollaboration": True,
            "collaborationNeeded": ["vocals", "guitar"],
            "createdAt": ago(days=2),
            "votes": [
                {"userId": "user2", "value": 1, "weight": 1.0, "createdAt": ago(hours=1)},
                {"userId": "user3", "value": 1, "weight": 1.2, "createdAt": ago(hours=2)},
            ],
            "collaborations": [
                {"userId": "user2", "contributionType": "vocals", "createdAt": ago(days=1)},
            ],
            "comments": [
                {"userId": "user3", "content": "Great beat!", "createdAt": ago(hours=3)},
            ],
        },
        {
            "id": "song2",
            "title": "Folk Melody",
            "description": "A gentle acoustic folk song with heartfelt lyrics",
            "genre": "folk",
            "mood": "calm",
            "key": "G",
            "tempo": 90,
            "userId": "user2",
            "isOpenForCollaboration": True,
            "collaborationNeeded": ["harmonica", "backing-vocals"],
            "createdAt": ago(days=5),
            "votes": [
                {"userId": "user1", "value": 1, "weight": 1.1, "createdAt": ago(hours=4)},
            ],
            "collaborations": [],
            "comments": [],
        },
        {
            "id": "song3",
            "title": "Jazz Fusion",
            "description": "Complex jazz composition with modern elements",
            "genre": "jazz",
            "mood": "sophisticated",
            "key": "F#",
            "tempo": 120,
            "userId": "user3",
            "isOpenForCollaboration": False,
            "collaborationNeeded": [],
            "createdAt": ago(weeks=1),
            "votes": [
                {"userId": "user1", "value": 1, "weight": 1.0, "createdAt": ago(days=6)},
                {"userId": "user2", "value": 1, "weight": 1.0, "createdAt": ago(days=5)},
            ],
            "collaborations": [
                {"userId": "user1", "contributionType": "piano", "createdAt": ago(days=6)},
                {"userId": "user2", "contributionType": "bass", "createdAt": ago(days=5)},
            ],
            "comments": [
                {"userId": "user1", "content": "Amazing composition!", "createdAt": ago(days=5)},
            ],
        },
    ]


@pytest.fixture
def users_data():
    return [
        {
            "id": "user1",
            "username": "musician_alex",
            "displayName": "Alex Rodriguez",
            "bio": "Electronic music producer and pianist",
            "skills": ["production", "piano", "mixing"],
            "genres": ["electronic", "jazz"],
            "reputation": 75,
            "createdAt": ago(days=60),
        },
        {
            "id": "user2",
            "username": "folk_singer_sam",
            "displayName": "Sam Wilson",
            "bio": "Folk singer-songwriter with a passion for storytelling",
            "skills": ["vocals", "guitar", "songwriting"],
            "genres": ["folk", "indie"],
            "reputation": 45,
            "createdAt": ago(weeks=3),
        },
        {
            "id": "user3",
            "username": "jazz_master_charlie",
            "displayName": "Charlie Davis",
            "bio": "Jazz musician and composer with 20 years experience",
            "skills": ["saxophone", "composition", "arrangement"],
            "genres": ["jazz", "classical"],
            "reputation": 95,
            "createdAt": ago(days=5 * 365),
        },
    ]


@pytest.fixture
def interactions_data():
    return [
        {"userId": "user1", "songId": "song2", "type": "vote", "value": 1, "createdAt": ago(hours=4)},
        {"userId": "user1", "songId": "song3", "type": "collaboration", "createdAt": ago(days=6)},
        {"userId": "user1", "songId": "song3", "type": "vote", "value": 1, "createdAt": ago(days=6)},
        {"userId": "user2", "songId": "song1", "type": "vote", "value": 1, "createdAt": ago(hours=1)},
        {"userId": "user2", "songId": "song1", "type": "collaboration", "createdAt": ago(days=1)},
        {"userId": "user3", "songId": "song1", "type": "vote", "value": 1, "createdAt": ago(hours=2)},
        {"userId": "user3", "songId": "song1", "type": "comment", "createdAt": ago(hours=3)},
    ]


@pytest.fixture
def songs(songs_data):
    return [Song.model_validate(item) for item in songs_data]


@pytest.fixture
def users(users_data):
    return [User.model_validate(item) for item in users_data]


@pytest.fixture
def interactions(interactions_data):
    return [Interaction.model_validate(item) for item in interactions_data]


@pytest.fixture
def newcomer():
    """A user with declared data and no history."""
    return User(
        id="user4",
        username="harmonica_hana",
        display_name="Hana Ito",
        skills=["Vocals", "harmonica"],
        genres=["folk"],
        reputation=0,
    )
