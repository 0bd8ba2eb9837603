"""Test the login callback and browser login flow"""

import socket
import time
import urllib.error
import urllib.request
from unittest.mock import Mock, patch

import pytest

from wrapped_so_far.config.auth import LoginFlow, handle_callback
from wrapped_so_far.config.session import GateState
from wrapped_so_far.exceptions import AuthorizationError


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('localhost', 0))
        return s.getsockname()[1]


def login_settings(port: int, timeout: float = 5):
    settings = Mock()
    settings.session.callback_port = port
    settings.session.callback_path = "/callback"
    settings.session.authorization_timeout = timeout
    settings.get_login_url.return_value = "http://localhost:8000/auth/login"
    return settings


def visit(url: str) -> int:
    """GET a URL the way the browser would after the backend redirect"""
    try:
        with urllib.request.urlopen(url, timeout=5) as response:
            return response.status
    except urllib.error.HTTPError as e:
        return e.code


class TestHandleCallback:
    """Test turning callback parameters into a session"""

    def test_token_starts_session(self, session_context, clock):
        session = handle_callback(session_context, "abc")

        assert session.token == "abc"
        assert session_context.gate.state is GateState.AUTHENTICATED
        assert session_context.store.current().token == "abc"

    def test_error_is_raised(self, session_context):
        with pytest.raises(AuthorizationError, match="access_denied"):
            handle_callback(session_context, None, "access_denied")

        assert not session_context.store.is_valid()

    @pytest.mark.parametrize('token', [None, "", "   "])
    def test_missing_token(self, session_context, token):
        with pytest.raises(AuthorizationError, match="No authentication token received"):
            handle_callback(session_context, token)


class TestLoginFlow:
    """Test the local callback server flow"""

    def test_busy_callback_port_fails_immediately(self, session_context):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as taken:
            taken.bind(('localhost', 0))
            taken.listen(1)
            port = taken.getsockname()[1]
            flow = LoginFlow(login_settings(port, timeout=60), session_context)

            with patch('wrapped_so_far.config.auth.webbrowser.open') as mock_open:
                started = time.monotonic()
                with pytest.raises(AuthorizationError, match=f"Callback port {port} is in use"):
                    flow.authorize()

        assert time.monotonic() - started < 5
        mock_open.assert_not_called()

    def test_successful_login(self, session_context):
        port = free_port()
        settings = login_settings(port)
        flow = LoginFlow(settings, session_context)
        statuses = []

        def browser(url):
            assert url == "http://localhost:8000/auth/login"
            statuses.append(visit(f"http://localhost:{port}/callback?token=abc"))

        with patch('wrapped_so_far.config.auth.webbrowser.open', side_effect=browser):
            session = flow.authorize()

        assert statuses == [200]
        assert session.token == "abc"
        assert session_context.gate.is_authenticated

    def test_error_callback(self, session_context):
        port = free_port()
        flow = LoginFlow(login_settings(port), session_context)
        statuses = []

        def browser(url):
            statuses.append(visit(f"http://localhost:{port}/callback?error=access_denied"))

        with patch('wrapped_so_far.config.auth.webbrowser.open', side_effect=browser):
            with pytest.raises(AuthorizationError):
                flow.authorize()

        assert statuses == [400]
        assert not session_context.store.is_valid()

    def test_other_paths_are_ignored(self, session_context):
        port = free_port()
        flow = LoginFlow(login_settings(port, timeout=0.5), session_context)
        statuses = []

        def browser(url):
            statuses.append(visit(f"http://localhost:{port}/favicon.ico"))

        with patch('wrapped_so_far.config.auth.webbrowser.open', side_effect=browser):
            with pytest.raises(TimeoutError):
                flow.authorize()

        assert statuses == [404]

    def test_no_browser_does_not_open(self, session_context):
        port = free_port()
        flow = LoginFlow(login_settings(port, timeout=0.2), session_context)

        with patch('wrapped_so_far.config.auth.webbrowser.open') as mock_open:
            with pytest.raises(TimeoutError):
                flow.authorize(open_browser=False)

        mock_open.assert_not_called()
