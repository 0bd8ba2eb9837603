"""
Error taxonomy for Wrapped-So-Far

Every failure the session and aggregation layers can produce is one of the
classes below. Callers decide the fallback from the class alone:

- SessionInvalid: missing, expired or malformed credential. Recovered by
  clearing local state and showing the connect prompt.
- RequiredDataUnavailable: one of the three required reads failed. The
  dashboard load is aborted and the user is pointed back to login.
- OptionalDataUnavailable: a named optional resource failed. Recorded on the
  view-model, never raised past the aggregator.

The API client raises ApiError and its subclasses; the aggregator translates
those into the dashboard-level errors above.
"""

from typing import Optional, Sequence


class WrappedError(Exception):
    """Base class for all application errors"""


class ConfigError(WrappedError):
    """Configuration file could not be read or is invalid"""


class AuthorizationError(WrappedError):
    """The login callback reported an error or carried no token"""


class SessionInvalid(WrappedError):
    """
    No usable credential is stored

    Raised when the stored token is missing, expired or malformed, and when
    the API rejects the token with 401/403. The session has always been
    cleared by the time this propagates.
    """

    def __init__(self, reason: str = "Session is missing or expired"):
        super().__init__(reason)
        self.reason = reason


class ApiError(WrappedError):
    """
    A request to the collaborator API failed

    Attributes:
        path: Request path that failed
        status: HTTP status code, or None for transport-level failures
    """

    def __init__(self, message: str, path: str = "", status: Optional[int] = None):
        super().__init__(message)
        self.path = path
        self.status = status


class AuthenticationError(ApiError):
    """The API answered 401 or 403: the bearer token is no longer accepted"""


class MalformedPayloadError(ApiError):
    """The API answered 2xx but the body could not be decoded into a model"""


class RequiredDataUnavailable(WrappedError):
    """
    A required read failed and the whole dashboard load was aborted

    Attributes:
        causes: Every exception raised by the required reads of this pass
        session_expired: True if any cause was an authentication rejection
    """

    def __init__(self, causes: Sequence[BaseException]):
        self.causes = tuple(causes)
        self.session_expired = any(isinstance(c, AuthenticationError) for c in self.causes)
        details = "; ".join(str(c) or type(c).__name__ for c in self.causes)
        super().__init__(f"Required dashboard data unavailable: {details}")


class OptionalDataUnavailable(WrappedError):
    """
    A named optional resource could not be loaded

    Instances are stored on the view-model rather than raised.

    Attributes:
        kind: Which optional resource failed (an OptionalResource value)
        cause: The underlying exception
    """

    def __init__(self, kind, cause: Optional[BaseException] = None):
        self.kind = kind
        self.cause = cause
        name = getattr(kind, "value", kind)
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Optional data '{name}' unavailable{detail}")
