"""
Async client for the listening-summary API

This module is the only place that talks HTTP. It wraps an aiohttp
ClientSession carrying the bearer token and turns every endpoint the dashboard
consumes into a coroutine returning typed models from `api.models`.

Endpoints:

    GET /api/me                     -> UserProfile
    GET /api/top-artists?limit=N    -> list of ArtistSummary
    GET /api/top-tracks?limit=N     -> list of TrackSummary
    GET /api/stats                  -> ListeningStats
    GET /api/personality            -> {"personality_breakdown": [PersonalityProfile]}
    GET /api/recent?limit=N         -> list of RecentTrack

Error mapping:

- 401 / 403: AuthenticationError (the token was rejected)
- any other non-2xx status: ApiError carrying the status
- connection and protocol failures from aiohttp: ApiError without a status
- a body that is not JSON, or JSON that does not fit the model:
  MalformedPayloadError

No retries and no explicit per-request timeout are applied here; failure
semantics are those of the transport. Callers decide which failures are
fatal.

Usage:

    async with WrappedApiClient(token, base_url) as api:
        profile = await api.get_profile()
"""

from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

import aiohttp

from ..exceptions import ApiError, AuthenticationError, MalformedPayloadError
from ..utils.logger import get_logger
from .models import (
    ArtistSummary,
    ListeningStats,
    PersonalityProfile,
    RecentTrack,
    TrackSummary,
    UserProfile,
)


T = TypeVar('T')

# Statuses that mean the bearer token is no longer accepted
AUTH_FAILURE_STATUSES = (401, 403)


class WrappedApiClient:
    """
    Bearer-authenticated client for the collaborator API

    The client owns its aiohttp session unless one is passed in, in which case
    the caller is responsible for closing it.

    Args:
        token: Bearer token from the credential store
        base_url: API root, e.g. http://localhost:8000
        user_agent: Value of the User-Agent header
        session: Optional pre-built aiohttp.ClientSession
    """

    def __init__(
        self,
        token: str,
        base_url: str,
        user_agent: str = "Wrapped-So-Far/1.0",
        session: Optional[aiohttp.ClientSession] = None,
    ):
        if not token:
            raise ValueError("API token cannot be empty")
        self.base_url = base_url.rstrip('/')
        self.headers = {
            'Authorization': f'Bearer {token}',
            'Accept': 'application/json',
            'User-Agent': user_agent,
        }
        self.logger = get_logger(__name__)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> 'WrappedApiClient':
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET a path and decode its JSON body

        Raises:
            AuthenticationError: On 401 or 403
            ApiError: On any other non-2xx status or transport failure
            MalformedPayloadError: If the body is not valid JSON
        """
        if self._session is None:
            raise RuntimeError("WrappedApiClient must be used as an async context manager")

        url = f"{self.base_url}{path}"
        query = {k: str(v) for k, v in (params or {}).items() if v not in (None, "")}
        self.logger.debug(f"GET {path} {query or ''}")

        try:
            async with self._session.get(url, headers=self.headers, params=query) as response:
                if response.status in AUTH_FAILURE_STATUSES:
                    raise AuthenticationError(
                        f"{path} rejected the session token (HTTP {response.status})",
                        path=path, status=response.status,
                    )
                if not 200 <= response.status < 300:
                    raise ApiError(f"{path} failed with HTTP {response.status}", path=path, status=response.status)

                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise MalformedPayloadError(
                        f"{path} returned a body that is not JSON", path=path, status=response.status
                    ) from e
        except aiohttp.ClientError as e:
            raise ApiError(f"{path} request failed: {e}", path=path) from e

    @staticmethod
    def _parse(path: str, factory: Callable[[Any], T], payload: Any) -> T:
        try:
            return factory(payload)
        except (KeyError, TypeError, ValueError, AttributeError, OverflowError) as e:
            raise MalformedPayloadError(f"{path} returned an unexpected payload: {e!r}", path=path) from e

    def _parse_list(self, path: str, model: Type[Any], payload: Any) -> List[Any]:
        if not isinstance(payload, list):
            raise MalformedPayloadError(f"{path} should return a list", path=path)
        return [self._parse(path, model.from_api_data, item) for item in payload]

    async def get_profile(self) -> UserProfile:
        path = '/api/me'
        return self._parse(path, UserProfile.from_api_data, await self._get_json(path))

    async def get_top_artists(self, limit: int = 20, time_range: Optional[str] = None) -> List[ArtistSummary]:
        path = '/api/top-artists'
        payload = await self._get_json(path, {'limit': limit, 'time_range': time_range})
        return self._parse_list(path, ArtistSummary, payload)

    async def get_top_tracks(self, limit: int = 20, time_range: Optional[str] = None) -> List[TrackSummary]:
        path = '/api/top-tracks'
        payload = await self._get_json(path, {'limit': limit, 'time_range': time_range})
        return self._parse_list(path, TrackSummary, payload)

    async def get_stats(self) -> ListeningStats:
        path = '/api/stats'
        return self._parse(path, ListeningStats.from_api_data, await self._get_json(path))

    async def get_personality(self) -> List[PersonalityProfile]:
        """Personality breakdown, unwrapped from its envelope"""
        path = '/api/personality'
        payload = await self._get_json(path)
        if not isinstance(payload, dict) or 'personality_breakdown' not in payload:
            raise MalformedPayloadError(f"{path} is missing 'personality_breakdown'", path=path)
        return self._parse_list(path, PersonalityProfile, payload['personality_breakdown'])

    async def get_recent_tracks(self, limit: int = 50) -> List[RecentTrack]:
        path = '/api/recent'
        payload = await self._get_json(path, {'limit': limit})
        return self._parse_list(path, RecentTrack, payload)
