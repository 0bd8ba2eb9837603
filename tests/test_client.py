"""Test the API client against a local aiohttp application"""

import json

import pytest
from aiohttp import web
from aiohttp import test_utils

from wrapped_so_far.api.client import WrappedApiClient
from wrapped_so_far.exceptions import ApiError, AuthenticationError, MalformedPayloadError


def build_app(routes, seen=None):
    """aiohttp app answering GET routes with fixed JSON bodies or statuses"""
    app = web.Application()

    def make_handler(reply):
        async def handler(request):
            if seen is not None:
                seen.append(request)
            if isinstance(reply, int):
                return web.Response(status=reply)
            if isinstance(reply, str):
                return web.Response(text=reply, content_type='text/html')
            return web.json_response(reply)
        return handler

    for path, reply in routes.items():
        app.router.add_get(path, make_handler(reply))
    return app


def base_url(server: test_utils.TestServer) -> str:
    return f"http://{server.host}:{server.port}"


class TestWrappedApiClient:
    """Test requests, parsing and error mapping"""

    @pytest.mark.asyncio
    async def test_sends_bearer_token(self, profile_data):
        seen = []
        async with test_utils.TestServer(build_app({'/api/me': profile_data}, seen)) as server:
            async with WrappedApiClient("abc", base_url(server), user_agent="Tests/1.0") as api:
                profile = await api.get_profile()

        assert profile.display_name == 'Test Listener'
        assert seen[0].headers['Authorization'] == 'Bearer abc'
        assert seen[0].headers['User-Agent'] == 'Tests/1.0'

    @pytest.mark.asyncio
    async def test_top_lists_send_limit(self, artist_data, track_data):
        seen = []
        routes = {'/api/top-artists': [artist_data], '/api/top-tracks': [track_data]}
        async with test_utils.TestServer(build_app(routes, seen)) as server:
            async with WrappedApiClient("abc", base_url(server)) as api:
                artists = await api.get_top_artists(6)
                tracks = await api.get_top_tracks(10, time_range='short_term')

        assert artists[0].name == 'Test Artist'
        assert tracks[0].name == 'Test Song'
        assert seen[0].query['limit'] == '6'
        assert 'time_range' not in seen[0].query
        assert seen[1].query['time_range'] == 'short_term'

    @pytest.mark.asyncio
    async def test_personality_is_unwrapped(self, personality_data):
        async with test_utils.TestServer(build_app({'/api/personality': personality_data})) as server:
            async with WrappedApiClient("abc", base_url(server)) as api:
                personality = await api.get_personality()

        assert [p.category for p in personality] == ['explorer', 'trendsetter']

    @pytest.mark.asyncio
    async def test_stats_and_recent(self, stats_data, track_data):
        routes = {
            '/api/stats': stats_data,
            '/api/recent': [{'track': track_data, 'played_at': '2024-06-01T10:30:00Z'}],
        }
        async with test_utils.TestServer(build_app(routes)) as server:
            async with WrappedApiClient("abc", base_url(server)) as api:
                stats = await api.get_stats()
                recent = await api.get_recent_tracks(5)

        assert stats.listening_trends[20] == 12
        assert recent[0].track.id == 'track_1'

    @pytest.mark.asyncio
    @pytest.mark.parametrize('status', [401, 403])
    async def test_rejected_token(self, status):
        async with test_utils.TestServer(build_app({'/api/me': status})) as server:
            async with WrappedApiClient("abc", base_url(server)) as api:
                with pytest.raises(AuthenticationError) as exc_info:
                    await api.get_profile()

        assert exc_info.value.status == status

    @pytest.mark.asyncio
    async def test_server_error(self):
        async with test_utils.TestServer(build_app({'/api/stats': 500})) as server:
            async with WrappedApiClient("abc", base_url(server)) as api:
                with pytest.raises(ApiError) as exc_info:
                    await api.get_stats()

        assert exc_info.value.status == 500
        assert not isinstance(exc_info.value, AuthenticationError)

    @pytest.mark.asyncio
    async def test_body_that_is_not_json(self):
        async with test_utils.TestServer(build_app({'/api/me': '<html>oops</html>'})) as server:
            async with WrappedApiClient("abc", base_url(server)) as api:
                with pytest.raises(MalformedPayloadError):
                    await api.get_profile()

    @pytest.mark.asyncio
    async def test_missing_required_field(self):
        async with test_utils.TestServer(build_app({'/api/me': {'display_name': 'No Id'}})) as server:
            async with WrappedApiClient("abc", base_url(server)) as api:
                with pytest.raises(MalformedPayloadError):
                    await api.get_profile()

    @pytest.mark.asyncio
    async def test_list_endpoint_returning_object(self):
        async with test_utils.TestServer(build_app({'/api/top-artists': {'items': []}})) as server:
            async with WrappedApiClient("abc", base_url(server)) as api:
                with pytest.raises(MalformedPayloadError):
                    await api.get_top_artists()

    @pytest.mark.asyncio
    async def test_out_of_range_numbers_fall_back(self, track_data):
        huge = dict(track_data, popularity=float('inf'), duration_ms='1e400')
        body = json.dumps([{'track': huge, 'played_at': '2024-06-01T10:30:00Z'}]).replace('"1e400"', '1e400')
        async with test_utils.TestServer(build_app({'/api/recent': body})) as server:
            async with WrappedApiClient("abc", base_url(server)) as api:
                recent = await api.get_recent_tracks(5)

        assert recent[0].track.popularity == 0
        assert recent[0].track.duration_ms == 0

    def test_overflow_while_parsing_is_malformed(self):
        def overflowing(payload):
            return int(float('inf'))

        with pytest.raises(MalformedPayloadError):
            WrappedApiClient._parse('/api/recent', overflowing, {})

    @pytest.mark.asyncio
    async def test_personality_without_envelope(self):
        async with test_utils.TestServer(build_app({'/api/personality': []})) as server:
            async with WrappedApiClient("abc", base_url(server)) as api:
                with pytest.raises(MalformedPayloadError):
                    await api.get_personality()

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        server = test_utils.TestServer(web.Application())
        await server.start_server()
        url = base_url(server)
        await server.close()

        async with WrappedApiClient("abc", url) as api:
            with pytest.raises(ApiError) as exc_info:
                await api.get_profile()

        assert exc_info.value.status is None

    def test_empty_token_is_rejected(self):
        with pytest.raises(ValueError):
            WrappedApiClient("", "http://localhost:8000")
