"""
Wrapped-So-Far API access: async client and wire models
"""

from .client import WrappedApiClient
from .models import (
    AlbumReference,
    ArtistReference,
    ArtistSummary,
    GenreCount,
    Image,
    ListeningStats,
    PersonalityCategory,
    PersonalityProfile,
    RecentTrack,
    TrackSummary,
    UserProfile,
)

__all__ = [
    'WrappedApiClient',
    'AlbumReference',
    'ArtistReference',
    'ArtistSummary',
    'GenreCount',
    'Image',
    'ListeningStats',
    'PersonalityCategory',
    'PersonalityProfile',
    'RecentTrack',
    'TrackSummary',
    'UserProfile',
]
