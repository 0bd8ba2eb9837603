"""Test configuration and fixtures"""

import asyncio
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import Mock

import pytest

from wrapped_so_far.config.session import CredentialStore, MemoryStorage, SessionContext


class FrozenClock:
    """Clock returning a fixed instant that tests move explicitly"""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class FakeApi:
    """
    Stand-in for WrappedApiClient

    Each endpoint returns its configured value, or raises it when it is an
    exception. Calls are recorded by endpoint name.
    """

    def __init__(self, **replies):
        self.replies = replies
        self.calls = []
        self.tokens = []
        self.closed = False

    def __call__(self, token):
        self.tokens.append(token)
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed = True

    async def _reply(self, name):
        self.calls.append(name)
        await asyncio.sleep(0)
        reply = self.replies[name]
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def get_profile(self):
        return await self._reply('profile')

    async def get_top_artists(self, limit, time_range=None):
        self.calls.append(('artists_limit', limit))
        return await self._reply('artists')

    async def get_top_tracks(self, limit, time_range=None):
        self.calls.append(('tracks_limit', limit))
        return await self._reply('tracks')

    async def get_stats(self):
        return await self._reply('stats')

    async def get_personality(self):
        return await self._reply('personality')

    async def get_recent_tracks(self, limit):
        self.calls.append(('recent_limit', limit))
        return await self._reply('recent')


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage, clock):
    return CredentialStore(storage, clock=clock)


@pytest.fixture
def session_context(store):
    return SessionContext(store)


@pytest.fixture
def signed_in_context(session_context):
    """Session context holding a freshly issued token"""
    session_context.begin("test-token")
    return session_context


@pytest.fixture
def mock_settings():
    """Settings stand-in with the defaults the dashboard reads"""
    settings = Mock()
    settings.api.base_url = "http://localhost:8000"
    settings.api.top_artists_limit = 6
    settings.api.top_tracks_limit = 10
    settings.api.recent_tracks_limit = 50
    settings.api.time_range = ""
    settings.network.user_agent = "Wrapped-So-Far/1.0"
    return settings


@pytest.fixture
def profile_data():
    return {
        'id': 'listener_1',
        'display_name': 'Test Listener',
        'email': 'listener@example.com',
        'images': [{'url': 'https://img.example.com/avatar.jpg', 'width': 300, 'height': 300}],
        'followers': {'total': 42},
    }


@pytest.fixture
def artist_data():
    return {
        'id': 'artist_1',
        'name': 'Test Artist',
        'images': [{'url': 'https://img.example.com/artist.jpg'}],
        'genres': ['indie pop', 'dream pop'],
        'popularity': 71,
        'external_urls': {'spotify': 'https://open.spotify.com/artist/artist_1'},
    }


@pytest.fixture
def track_data():
    return {
        'id': 'track_1',
        'name': 'Test Song',
        'artists': [{'id': 'artist_1', 'name': 'Test Artist'}, {'id': 'artist_2', 'name': 'Guest'}],
        'album': {'name': 'Test Album', 'images': [{'url': 'https://img.example.com/album.jpg'}]},
        'duration_ms': 210000,  # 3:30
        'popularity': 64,
        'external_urls': {'spotify': 'https://open.spotify.com/track/track_1'},
    }


@pytest.fixture
def stats_data():
    return {
        'total_listening_time_ms': 7_200_000,
        'top_genres': [
            {'genre': 'pop', 'count': 10},
            {'genre': 'rock', 'count': 5},
            {'genre': 'jazz', 'count': 2},
        ],
        'listening_trends': {'8': 3, '20': 12, '23': 7},
        'average_features': {
            'danceability': 0.2,
            'energy': 0.9,
            'valence': 0.5,
            'acousticness': 0.1,
            'instrumentalness': 0.0,
        },
        'mood_score': 0.62,
    }


@pytest.fixture
def personality_data():
    return {
        'personality_breakdown': [
            {
                'category': 'explorer',
                'percentage': 72.5,
                'description': 'You keep finding new sounds',
                'traits': ['curious', 'eclectic'],
            },
            {
                'category': 'trendsetter',
                'percentage': 40,
                'description': 'You hear it first',
                'traits': ['early adopter'],
            },
        ]
    }


@pytest.fixture
def fake_api():
    """FakeApi class; instances double as the client factory"""
    return FakeApi
