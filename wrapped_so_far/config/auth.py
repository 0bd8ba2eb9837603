"""
Browser login for the Wrapped-So-Far API

The collaborator backend owns the Spotify OAuth exchange. The client only
sends the user to `{base_url}/auth/login` and waits for the backend to
redirect back to a local callback carrying either `?token=...` or
`?error=...`. The token is then recorded in the session context with the
configured lifetime.

Flow:
1. Bind a local HTTP server on session.callback_port, failing fast if
   the port is taken
2. Open the login URL in the user's browser (or print it with --no-browser)
3. Poll until the callback arrives or session.authorization_timeout elapses
4. Hand token/error to handle_callback()
"""

import threading
import time
import urllib.parse
import webbrowser
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Optional

from ..exceptions import AuthorizationError
from ..utils.logger import get_logger
from .session import Session, SessionContext


logger = get_logger(__name__)

SUCCESS_HTML = """
<html>
<head><title>Login Successful</title></head>
<body style="font-family: Arial, sans-serif; text-align: center; margin-top: 50px;">
    <h1 style="color: #1DB954;">Login Successful!</h1>
    <p>You can now close this window and return to the terminal.</p>
</body>
</html>
"""

FAILURE_HTML = """
<html>
<head><title>Login Failed</title></head>
<body style="font-family: Arial, sans-serif; text-align: center; margin-top: 50px;">
    <h1 style="color: #E22134;">Login Failed</h1>
    <p>Error: {error}</p>
    <p>Please run <code>wrapped login</code> again.</p>
</body>
</html>
"""


class CallbackHandler(BaseHTTPRequestHandler):
    """
    Receives the backend redirect after login

    Results are stored on the server instance (callback_token,
    callback_error, callback_received) for LoginFlow to pick up.
    """

    def do_GET(self):
        parsed_url = urllib.parse.urlparse(self.path)
        if parsed_url.path != self.server.callback_path:
            self.send_response(404)
            self.end_headers()
            return

        query_params = urllib.parse.parse_qs(parsed_url.query)
        error = query_params.get('error', [None])[0]
        token = query_params.get('token', [None])[0]

        self.server.callback_error = error
        self.server.callback_token = token
        self.server.callback_received = True

        failed = error is not None or not (token or '').strip()
        self.send_response(400 if failed else 200)
        self.send_header('Content-type', 'text/html')
        self.end_headers()

        if failed:
            message = error or "No authentication token received"
            self.wfile.write(FAILURE_HTML.format(error=message).encode())
        else:
            self.wfile.write(SUCCESS_HTML.encode())

    def log_message(self, format, *args):
        # Keep request lines out of the terminal
        pass


def handle_callback(context: SessionContext, token: Optional[str], error: Optional[str] = None) -> Session:
    """
    Turn a login callback into a stored session

    Args:
        context: Session context that receives the token
        token: Bearer token from the callback, if any
        error: Error identifier from the callback, if any

    Returns:
        The newly stored session

    Raises:
        AuthorizationError: If the callback reports an error or carries no token
    """
    if error:
        logger.error(f"Login callback reported an error: {error}")
        raise AuthorizationError(f"Authorization failed: {error}")

    if token is None or not token.strip():
        logger.error("Login callback carried no token")
        raise AuthorizationError("No authentication token received")

    return context.begin(token.strip())


class LoginFlow:
    """
    Interactive login through the user's browser

    Args:
        settings: Application settings (API location and callback options)
        context: Session context that receives the token
    """

    def __init__(self, settings, context: SessionContext):
        self.settings = settings
        self.context = context

    def _create_server(self) -> HTTPServer:
        """
        Bind the callback server on exactly session.callback_port

        The backend redirects to the configured port, so any other port
        would never see the callback.

        Raises:
            AuthorizationError: If the port is already in use
        """
        port = self.settings.session.callback_port
        try:
            server = HTTPServer(('localhost', port), CallbackHandler)
        except OSError as e:
            raise AuthorizationError(
                f"Callback port {port} is in use; free it or change session.callback_port"
            ) from e
        server.callback_path = self.settings.session.callback_path
        server.callback_token = None
        server.callback_error = None
        server.callback_received = False
        return server

    def callback_url(self, server: HTTPServer) -> str:
        return f"http://localhost:{server.server_port}{self.settings.session.callback_path}"

    def authorize(self, open_browser: bool = True) -> Session:
        """
        Run the login flow to completion

        Args:
            open_browser: Open the login URL automatically; otherwise only print it

        Returns:
            The stored session

        Raises:
            AuthorizationError: If the callback reports an error or no token
            TimeoutError: If no callback arrives within the configured timeout
        """
        server = self._create_server()
        server_thread = threading.Thread(target=server.serve_forever)
        server_thread.daemon = True
        server_thread.start()

        login_url = self.settings.get_login_url()
        timeout_seconds = self.settings.session.authorization_timeout
        logger.info(f"Callback server listening on {self.callback_url(server)}")

        try:
            if open_browser:
                logger.console_info("Opening browser for Spotify login...")
                webbrowser.open(login_url)
            logger.console_info(f"If the browser does not open, visit: {login_url}")
            logger.console_info("Waiting for login callback...")

            start_time = time.monotonic()
            while not server.callback_received:
                time.sleep(0.1)
                if time.monotonic() - start_time > timeout_seconds:
                    raise TimeoutError(f"No login callback received within {timeout_seconds} seconds")
        finally:
            server.shutdown()
            server.server_close()

        return handle_callback(self.context, server.callback_token, server.callback_error)
