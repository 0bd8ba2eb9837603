"""
Dashboard aggregation: required and optional reads merged into one view-model

Given a valid session, DashboardLoader performs one aggregation pass:

1. The three required reads (profile, top artists, top tracks) are issued
   concurrently and joined. If any of them fails the pass is aborted with
   RequiredDataUnavailable and no view-model is produced. A 401/403 among
   the failures invalidates the session before the error propagates.
2. Only after the required reads succeed, the two optional reads (listening
   stats, personality breakdown) run, concurrently with each other. Each is
   wrapped so its failure becomes a Fetched.unavailable(...) value and a
   warning in the log; the other optional read is unaffected.
3. DashboardBuilder merges everything into an immutable DashboardViewModel
   with one availability flag per optional resource.

Nothing is retried within a pass and no explicit timeout is applied; a new
pass re-attempts all five reads.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any, Awaitable, Callable, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar,
)

from ..api.client import WrappedApiClient
from ..api.models import (
    ArtistSummary, ListeningStats, PersonalityProfile, RecentTrack, TrackSummary, UserProfile,
)
from ..config.session import SessionContext
from ..exceptions import AuthenticationError, OptionalDataUnavailable, RequiredDataUnavailable
from ..utils.logger import OperationLogger, get_logger


T = TypeVar('T')

# Marks an absent value so that None can be a legitimate fetched value
_MISSING = object()

logger = get_logger(__name__)


class OptionalResource(Enum):
    """Resources whose failure degrades the dashboard instead of aborting it"""
    STATS = "stats"
    PERSONALITY = "personality"


class Fetched(Generic[T]):
    """
    Outcome of one optional read: a value, or the reason it is unavailable

    Use Fetched.ok(value) and Fetched.unavailable(error) to build instances.
    """

    __slots__ = ('_value', '_error')

    def __init__(self, value: Any = _MISSING, error: Optional[OptionalDataUnavailable] = None):
        if (value is _MISSING) == (error is None):
            raise ValueError("Fetched holds exactly one of value or error")
        self._value = value
        self._error = error

    @classmethod
    def ok(cls, value: T) -> 'Fetched[T]':
        return cls(value=value)

    @classmethod
    def unavailable(cls, error: OptionalDataUnavailable) -> 'Fetched[T]':
        return cls(error=error)

    @property
    def available(self) -> bool:
        return self._error is None

    @property
    def value(self) -> Optional[T]:
        """The fetched value, or None when unavailable"""
        return None if self._value is _MISSING else self._value

    @property
    def error(self) -> Optional[OptionalDataUnavailable]:
        return self._error

    def __repr__(self) -> str:
        if self.available:
            return f"Fetched.ok({self._value!r})"
        return f"Fetched.unavailable({self._error!r})"


@dataclass(frozen=True)
class DashboardViewModel:
    """
    Everything one dashboard render needs, fetched in a single pass

    Attributes:
        profile: Signed-in user
        top_artists: Ranked top artists
        top_tracks: Ranked top tracks
        stats: Listening statistics, None when unavailable
        personality: Personality breakdown, None when unavailable
        stats_available: Whether the stats read succeeded
        personality_available: Whether the personality read succeeded
        unavailable: Errors recorded for each failed optional read
    """
    profile: UserProfile
    top_artists: Tuple[ArtistSummary, ...]
    top_tracks: Tuple[TrackSummary, ...]
    stats: Optional[ListeningStats] = None
    personality: Optional[Tuple[PersonalityProfile, ...]] = None
    stats_available: bool = False
    personality_available: bool = False
    unavailable: Tuple[OptionalDataUnavailable, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'user': self.profile.to_dict(),
            'top_artists': [a.to_dict() for a in self.top_artists],
            'top_tracks': [t.to_dict() for t in self.top_tracks],
            'stats': self.stats.to_dict() if self.stats else None,
            'personality_breakdown': [p.to_dict() for p in self.personality] if self.personality is not None else None,
            'stats_available': self.stats_available,
            'personality_available': self.personality_available,
        }


class DashboardBuilder:
    """
    Record builder for DashboardViewModel

    Required parts must be supplied before build(); optional parts default to
    unavailable until a successful Fetched is recorded.
    """

    def __init__(self):
        self._required: Optional[Tuple[UserProfile, List[ArtistSummary], List[TrackSummary]]] = None
        self._optional: Dict[OptionalResource, Fetched] = {}

    def with_required(
        self, profile: UserProfile, artists: Sequence[ArtistSummary], tracks: Sequence[TrackSummary]
    ) -> 'DashboardBuilder':
        self._required = (profile, list(artists), list(tracks))
        return self

    def with_optional(self, kind: OptionalResource, result: Fetched) -> 'DashboardBuilder':
        self._optional[kind] = result
        return self

    def build(self) -> DashboardViewModel:
        if self._required is None:
            raise ValueError("Required dashboard data has not been supplied")
        profile, artists, tracks = self._required

        stats = self._optional.get(OptionalResource.STATS)
        personality = self._optional.get(OptionalResource.PERSONALITY)
        stats_ok = stats is not None and stats.available
        personality_ok = personality is not None and personality.available

        unavailable = tuple(
            result.error for result in self._optional.values() if not result.available
        )

        return DashboardViewModel(
            profile=profile,
            top_artists=tuple(artists),
            top_tracks=tuple(tracks),
            stats=stats.value if stats_ok else None,
            personality=tuple(personality.value or ()) if personality_ok else None,
            stats_available=stats_ok,
            personality_available=personality_ok,
            unavailable=unavailable,
        )


ClientFactory = Callable[[str], WrappedApiClient]


async def fetch_optional(kind: OptionalResource, read: Callable[[], Awaitable[T]]) -> Fetched[T]:
    """
    Run one optional read, converting any failure into an unavailable marker

    Cancellation is not caught.
    """
    try:
        return Fetched.ok(await read())
    except Exception as e:
        logger.warning(f"Optional {kind.value} data unavailable: {e}")
        return Fetched.unavailable(OptionalDataUnavailable(kind, e))


class DashboardLoader:
    """
    Runs aggregation passes for the signed-in user

    Args:
        context: Session context supplying the token and receiving invalidations
        settings: Application settings (API location and list sizes)
        client_factory: Builds an API client for a token; defaults to
            WrappedApiClient pointed at settings.api.base_url
    """

    def __init__(self, context: SessionContext, settings, client_factory: Optional[ClientFactory] = None):
        self.context = context
        self.settings = settings
        self.client_factory = client_factory or self._default_client

    def _default_client(self, token: str) -> WrappedApiClient:
        return WrappedApiClient(
            token,
            self.settings.api.base_url,
            user_agent=self.settings.network.user_agent,
        )

    async def load(
        self,
        artists_limit: Optional[int] = None,
        tracks_limit: Optional[int] = None,
    ) -> DashboardViewModel:
        """
        Perform one aggregation pass

        Raises:
            SessionInvalid: If no valid session is stored
            RequiredDataUnavailable: If any required read fails
        """
        token = self.context.token()
        api_settings = self.settings.api
        time_range = api_settings.time_range or None
        with OperationLogger(logger, "dashboard load"):
            async with self.client_factory(token) as api:
                results = await asyncio.gather(
                    api.get_profile(),
                    api.get_top_artists(artists_limit or api_settings.top_artists_limit, time_range),
                    api.get_top_tracks(tracks_limit or api_settings.top_tracks_limit, time_range),
                    return_exceptions=True,
                )

                for result in results:
                    # Cancellation and interpreter exits are not load failures
                    if isinstance(result, BaseException) and not isinstance(result, Exception):
                        raise result

                failures = [r for r in results if isinstance(r, Exception)]
                if failures:
                    error = RequiredDataUnavailable(failures)
                    if error.session_expired:
                        self.context.invalidate("API rejected the session token")
                    raise error from failures[0]

                profile, artists, tracks = results
                self.context.store.cache_profile(profile)

                stats, personality = await asyncio.gather(
                    fetch_optional(OptionalResource.STATS, api.get_stats),
                    fetch_optional(OptionalResource.PERSONALITY, api.get_personality),
                )

            return (
                DashboardBuilder()
                .with_required(profile, artists, tracks)
                .with_optional(OptionalResource.STATS, stats)
                .with_optional(OptionalResource.PERSONALITY, personality)
                .build()
            )

    async def load_recent(self, limit: Optional[int] = None) -> List[RecentTrack]:
        """Recently played tracks; a 401/403 invalidates the session"""
        token = self.context.token()
        async with self.client_factory(token) as api:
            try:
                return await api.get_recent_tracks(limit or self.settings.api.recent_tracks_limit)
            except AuthenticationError:
                self.context.invalidate("API rejected the session token")
                raise


def load_dashboard(loader: DashboardLoader, **kwargs) -> DashboardViewModel:
    """Run one aggregation pass to completion from synchronous code"""
    return asyncio.run(loader.load(**kwargs))
