"""
Data models for the listening-summary API

This module defines the data structures returned by the collaborator API that
backs the year-in-review dashboard. Each model is a Data Transfer Object with
a `from_api_data()` factory that safely converts a decoded JSON object into a
typed instance, and a `to_dict()` method producing the same wire shape back.

Model layers:

1. **Identity**: UserProfile, with avatar Images
2. **Rankings**: ArtistSummary and TrackSummary (with AlbumReference), plus
   RecentTrack for the play history endpoint
3. **Aggregates**: ListeningStats with GenreCount pairs, hour-of-day play
   counts and audio-feature averages
4. **Personality**: PersonalityProfile entries keyed by PersonalityCategory

Factories raise KeyError, TypeError or ValueError when a required field is
missing or has the wrong shape; the API client converts those into
MalformedPayloadError. Optional fields fall back to empty defaults.
Numeric values are kept exactly as the API sent them: personality percentages
are not renormalized and feature averages are not clamped.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


def _require_str(data: Dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"Field '{key}' must be a string, got {type(value).__name__}")
    return value


def _number(value: Any, default: float = 0) -> float:
    """Finite numeric value or default; booleans and strings are not numbers here"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return value


@dataclass(frozen=True)
class Image:
    """
    Artwork reference in one resolution

    Attributes:
        url: Image location
        width: Pixel width when known
        height: Pixel height when known
    """
    url: str
    width: Optional[int] = None
    height: Optional[int] = None

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> 'Image':
        return cls(url=_require_str(data, 'url'), width=data.get('width'), height=data.get('height'))

    def to_dict(self) -> Dict[str, Any]:
        return {'url': self.url, 'width': self.width, 'height': self.height}


def _images(data: Dict[str, Any]) -> List[Image]:
    return [Image.from_api_data(img) for img in data.get('images') or []]


def _first_image_url(images: List[Image]) -> Optional[str]:
    return images[0].url if images else None


@dataclass(frozen=True)
class UserProfile:
    """
    Identity snapshot of the signed-in listener

    Fetched once per dashboard load and cached in the session store.

    Attributes:
        id: Service user identifier
        display_name: Name shown in the dashboard header
        email: Account email, may be empty
        images: Avatar images, largest first as delivered by the API
        followers: Follower count
    """
    id: str
    display_name: str
    email: str = ""
    images: List[Image] = field(default_factory=list)
    followers: int = 0

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> 'UserProfile':
        user_id = _require_str(data, 'id')
        followers = data.get('followers')
        return cls(
            id=user_id,
            # Accounts without a display name fall back to the id
            display_name=data.get('display_name') or user_id,
            email=data.get('email') or "",
            images=_images(data),
            followers=int(_number(followers.get('total'))) if isinstance(followers, dict) else 0,
        )

    @property
    def avatar_url(self) -> Optional[str]:
        return _first_image_url(self.images)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'display_name': self.display_name,
            'email': self.email,
            'images': [img.to_dict() for img in self.images],
            'followers': {'total': self.followers},
        }


@dataclass(frozen=True)
class ArtistSummary:
    """
    One entry of the ranked top-artists list

    Attributes:
        id: Artist identifier
        name: Artist display name
        images: Artist pictures
        genres: Genre tags in API order, possibly empty
        popularity: Popularity score in [0, 100]
        spotify_url: Link to the artist page when provided
    """
    id: str
    name: str
    images: List[Image] = field(default_factory=list)
    genres: List[str] = field(default_factory=list)
    popularity: int = 0
    spotify_url: Optional[str] = None

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> 'ArtistSummary':
        external_urls = data.get('external_urls') or {}
        return cls(
            id=_require_str(data, 'id'),
            name=_require_str(data, 'name'),
            images=_images(data),
            genres=[g for g in data.get('genres') or [] if isinstance(g, str)],
            popularity=int(_number(data.get('popularity'))),
            spotify_url=external_urls.get('spotify') if isinstance(external_urls, dict) else None,
        )

    @property
    def image_url(self) -> Optional[str]:
        return _first_image_url(self.images)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'images': [img.to_dict() for img in self.images],
            'genres': list(self.genres),
            'popularity': self.popularity,
            'external_urls': {'spotify': self.spotify_url} if self.spotify_url else {},
        }


@dataclass(frozen=True)
class ArtistReference:
    """Artist credited on a track: identifier and name only"""
    id: str
    name: str

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> 'ArtistReference':
        return cls(id=data.get('id') or "", name=_require_str(data, 'name'))

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name}


@dataclass(frozen=True)
class AlbumReference:
    """Album a track belongs to: name and artwork"""
    name: str
    images: List[Image] = field(default_factory=list)

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> 'AlbumReference':
        return cls(name=_require_str(data, 'name'), images=_images(data))

    @property
    def image_url(self) -> Optional[str]:
        return _first_image_url(self.images)

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'images': [img.to_dict() for img in self.images]}


@dataclass(frozen=True)
class TrackSummary:
    """
    One entry of the ranked top-tracks list

    Attributes:
        id: Track identifier
        name: Track title
        artists: Credited artists in API order
        album: Album name and artwork
        duration_ms: Track length in milliseconds
        popularity: Popularity score in [0, 100]
        spotify_url: Link to the track page when provided
    """
    id: str
    name: str
    artists: List[ArtistReference]
    album: AlbumReference
    duration_ms: int = 0
    popularity: int = 0
    spotify_url: Optional[str] = None

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> 'TrackSummary':
        external_urls = data.get('external_urls') or {}
        return cls(
            id=_require_str(data, 'id'),
            name=_require_str(data, 'name'),
            artists=[ArtistReference.from_api_data(a) for a in data.get('artists') or []],
            album=AlbumReference.from_api_data(data['album']),
            duration_ms=int(_number(data.get('duration_ms'))),
            popularity=int(_number(data.get('popularity'))),
            spotify_url=external_urls.get('spotify') if isinstance(external_urls, dict) else None,
        )

    @property
    def artist_names(self) -> str:
        return ", ".join(artist.name for artist in self.artists)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'artists': [a.to_dict() for a in self.artists],
            'album': self.album.to_dict(),
            'duration_ms': self.duration_ms,
            'popularity': self.popularity,
            'external_urls': {'spotify': self.spotify_url} if self.spotify_url else {},
        }


@dataclass(frozen=True)
class RecentTrack:
    """A track from the play history with the time it was played"""
    track: TrackSummary
    played_at: Optional[datetime] = None

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> 'RecentTrack':
        played_at = data.get('played_at')
        parsed = None
        if isinstance(played_at, str):
            try:
                parsed = datetime.fromisoformat(played_at.replace('Z', '+00:00'))
            except ValueError:
                parsed = None
        return cls(track=TrackSummary.from_api_data(data['track']), played_at=parsed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'track': self.track.to_dict(),
            'played_at': self.played_at.isoformat() if self.played_at else None,
        }


@dataclass(frozen=True)
class GenreCount:
    """A genre and how many top artists carry it"""
    genre: str
    count: int

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> 'GenreCount':
        return cls(genre=_require_str(data, 'genre'), count=int(_number(data.get('count'))))

    def to_dict(self) -> Dict[str, Any]:
        return {'genre': self.genre, 'count': self.count}


@dataclass(frozen=True)
class ListeningStats:
    """
    Aggregated listening statistics

    Attributes:
        total_listening_time_ms: Total listening time, >= 0
        top_genres: Ranked genre counts, highest first
        listening_trends: Hour of day (0-23) to play count; sparse
        average_features: Audio feature name to average value, nominally [0, 1]
        mood_score: Overall mood in [0, 1]
    """
    total_listening_time_ms: int = 0
    top_genres: List[GenreCount] = field(default_factory=list)
    listening_trends: Dict[int, int] = field(default_factory=dict)
    average_features: Dict[str, float] = field(default_factory=dict)
    mood_score: float = 0.0

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> 'ListeningStats':
        if not isinstance(data, dict):
            raise TypeError("Stats payload must be a JSON object")

        trends: Dict[int, int] = {}
        for hour, count in (data.get('listening_trends') or {}).items():
            try:
                hour_value = int(hour)
            except (TypeError, ValueError):
                continue
            if 0 <= hour_value <= 23:
                trends[hour_value] = int(_number(count))

        features = {
            str(name): _number(value)
            for name, value in (data.get('average_features') or {}).items()
        }

        return cls(
            total_listening_time_ms=max(0, int(_number(data.get('total_listening_time_ms')))),
            top_genres=[GenreCount.from_api_data(g) for g in data.get('top_genres') or []],
            listening_trends=trends,
            average_features=features,
            mood_score=_number(data.get('mood_score')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_listening_time_ms': self.total_listening_time_ms,
            'top_genres': [g.to_dict() for g in self.top_genres],
            'listening_trends': {str(h): c for h, c in sorted(self.listening_trends.items())},
            'average_features': dict(self.average_features),
            'mood_score': self.mood_score,
        }


class PersonalityCategory(Enum):
    """
    Closed set of music personality categories known to the dashboard

    The API may send identifiers outside this set; those are kept as raw
    strings on PersonalityProfile and displayed with neutral styling.
    """
    PERFORMATIVE = "performative"
    AVANT_GARDE = "avant_garde"
    PANDERING = "pandering"
    SOPHISTICATED = "sophisticated"
    EXPLORER = "explorer"
    TRENDSETTER = "trendsetter"

    @classmethod
    def parse(cls, identifier: str) -> Optional['PersonalityCategory']:
        try:
            return cls(identifier)
        except ValueError:
            return None


@dataclass(frozen=True)
class PersonalityProfile:
    """
    One ranked personality score

    Attributes:
        category: Raw category identifier as sent by the API
        percentage: Independent score in [0, 100]; entries need not sum to 100
        description: One-sentence explanation
        traits: Short trait keywords
    """
    category: str
    percentage: float
    description: str = ""
    traits: List[str] = field(default_factory=list)

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> 'PersonalityProfile':
        percentage = data['percentage']
        if isinstance(percentage, bool) or not isinstance(percentage, (int, float)):
            raise TypeError("Field 'percentage' must be a number")
        return cls(
            category=_require_str(data, 'category'),
            percentage=percentage,
            description=data.get('description') or "",
            traits=[t for t in data.get('traits') or [] if isinstance(t, str)],
        )

    @property
    def kind(self) -> Optional[PersonalityCategory]:
        """The known category, or None for identifiers outside the closed set"""
        return PersonalityCategory.parse(self.category)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'category': self.category,
            'percentage': self.percentage,
            'description': self.description,
            'traits': list(self.traits),
        }
