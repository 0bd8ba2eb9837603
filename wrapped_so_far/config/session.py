"""
Session lifecycle: persisted credential, validity gate and session context

This module owns everything the application knows about the signed-in user
between runs. It replaces a browser's local storage with a small key/value
file and keeps the same three keys the web client used:

- token: the bearer string handed over by the login callback
- token_expiry: absolute expiry instant as epoch milliseconds
- cached_user_profile: JSON snapshot of the last fetched profile

Components, leaf first:

1. **Storage**: string key/value persistence. FileStorage writes one JSON
   file with owner-only permissions; MemoryStorage keeps values in a dict.
2. **CredentialStore**: saves a token with a 24 hour lifetime, reads it back,
   answers validity questions and clears itself. It never touches the network.
3. **SessionGate**: a three-state machine (UNKNOWN, UNAUTHENTICATED,
   AUTHENTICATED) deciding whether guarded content may be shown. Every guard()
   call re-checks the store, so access is lost as soon as the credential
   expires or is revoked.
4. **SessionContext**: the object handed to the dashboard loader and the CLI.
   It pairs one store with one gate so nothing reads credentials from a global.

A credential is valid while now < expires_at. Anything unreadable in storage
(missing field, non-numeric expiry, blank token) reads as no session at all.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..api.models import UserProfile
from ..exceptions import SessionInvalid
from ..utils.logger import get_logger


logger = get_logger(__name__)

TOKEN_KEY = "token"
EXPIRY_KEY = "token_expiry"
PROFILE_KEY = "cached_user_profile"
SESSION_KEYS = (TOKEN_KEY, EXPIRY_KEY, PROFILE_KEY)

SESSION_TTL = timedelta(hours=24)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MILLISECOND = timedelta(milliseconds=1)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def to_epoch_ms(instant: datetime) -> int:
    """Convert an instant to integer epoch milliseconds"""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return (instant - _EPOCH) // _MILLISECOND


def from_epoch_ms(value: int) -> datetime:
    """Convert epoch milliseconds back to an aware UTC datetime"""
    return _EPOCH + timedelta(milliseconds=value)


class Storage:
    """
    Minimal string key/value store

    Subclasses persist values however they like; the credential store only
    needs these four operations.
    """

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    def keys(self) -> List[str]:
        raise NotImplementedError


class MemoryStorage(Storage):
    """In-process storage, lost when the process exits"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)


class FileStorage(Storage):
    """
    JSON file storage with owner-only permissions

    The whole file is rewritten on every change. A missing, unreadable or
    corrupt file behaves as empty storage so a damaged session simply looks
    signed out. The file is deleted once its last key is removed.
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring session file {self.path}: not a JSON object")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        if not data:
            if self.path.exists():
                self.path.unlink()
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)

        try:
            # 0o600 = owner read/write only
            self.path.chmod(0o600)
        except OSError:
            # Filesystems without POSIX permissions
            pass

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def keys(self) -> List[str]:
        return list(self._read())


@dataclass(frozen=True)
class Session:
    """
    Bearer credential plus its absolute expiry

    Attributes:
        token: Bearer token string sent in the Authorization header
        expires_at: Aware UTC instant after which the token is unusable
    """
    token: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    @property
    def expires_at_ms(self) -> int:
        return to_epoch_ms(self.expires_at)


class CredentialStore:
    """
    Persisted bearer token with a fixed lifetime

    Side effects are confined to the storage object; no network calls.

    Args:
        storage: Key/value persistence substrate
        clock: Callable returning the current aware datetime
        ttl: Lifetime applied by save() when none is given
    """

    def __init__(self, storage: Storage, clock: Optional[Clock] = None, ttl: timedelta = SESSION_TTL):
        self.storage = storage
        self.clock = clock or utc_now
        self.ttl = ttl

    def now(self) -> datetime:
        current = self.clock()
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return current

    def save(self, token: str, ttl: Optional[timedelta] = None) -> Session:
        """
        Persist a token with expiry now + ttl

        Raises:
            ValueError: If the token is empty or blank
        """
        if not token or not token.strip():
            raise ValueError("Token cannot be empty")

        session = Session(token=token, expires_at=self.now() + (ttl or self.ttl))
        self.storage.set(TOKEN_KEY, token)
        self.storage.set(EXPIRY_KEY, str(session.expires_at_ms))
        logger.debug(f"Session saved, expires at {session.expires_at.isoformat()}")
        return session

    def read(self) -> Optional[Session]:
        """
        Return the stored session if both fields are present and well-formed

        Expiry is not checked here.
        """
        token = self.storage.get(TOKEN_KEY)
        raw_expiry = self.storage.get(EXPIRY_KEY)
        if not token or not token.strip() or not raw_expiry:
            return None

        try:
            expires_at = from_epoch_ms(int(raw_expiry))
        except (ValueError, OverflowError):
            return None

        return Session(token=token, expires_at=expires_at)

    def current(self) -> Optional[Session]:
        """The stored session if it is present and unexpired"""
        session = self.read()
        if session is None or session.is_expired(self.now()):
            return None
        return session

    def is_valid(self) -> bool:
        return self.current() is not None

    def clear(self) -> None:
        """Remove the token, its expiry and the cached profile; idempotent"""
        for key in SESSION_KEYS:
            self.storage.remove(key)

    def cache_profile(self, profile: UserProfile) -> None:
        self.storage.set(PROFILE_KEY, json.dumps(profile.to_dict()))

    def cached_profile(self) -> Optional[UserProfile]:
        """The cached profile, or None when absent or unreadable"""
        raw = self.storage.get(PROFILE_KEY)
        if not raw:
            return None
        try:
            return UserProfile.from_api_data(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.debug(f"Discarding unreadable cached profile: {e}")
            return None


class GateState(Enum):
    """
    Session gate states

    UNKNOWN exists only until the first evaluation so callers can show a
    neutral placeholder instead of flashing the wrong view.
    """
    UNKNOWN = "unknown"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class SessionGate:
    """
    Decides whether guarded content may be rendered

    Transition rule: on evaluation, an invalid store is cleared and the gate
    moves to UNAUTHENTICATED; otherwise it moves to AUTHENTICATED.
    """

    def __init__(self, store: CredentialStore):
        self.store = store
        self._state = GateState.UNKNOWN

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state is GateState.AUTHENTICATED

    def _transition(self, new_state: GateState) -> None:
        if new_state is not self._state:
            logger.debug(f"Session gate: {self._state.value} -> {new_state.value}")
        self._state = new_state

    def evaluate(self) -> GateState:
        """Check the store and move to AUTHENTICATED or UNAUTHENTICATED"""
        if self.store.is_valid():
            self._transition(GateState.AUTHENTICATED)
        else:
            self.store.clear()
            self._transition(GateState.UNAUTHENTICATED)
        return self._state

    def revoke(self) -> None:
        """Clear the store and drop to UNAUTHENTICATED immediately"""
        self.store.clear()
        self._transition(GateState.UNAUTHENTICATED)

    def select(
        self,
        content: Callable[[], Any],
        fallback: Callable[[], Any],
        placeholder: Optional[Callable[[], Any]] = None,
    ) -> Any:
        """Call the view matching the current state without re-checking"""
        if self._state is GateState.AUTHENTICATED:
            return content()
        if self._state is GateState.UNAUTHENTICATED:
            return fallback()
        return placeholder() if placeholder else None

    def guard(
        self,
        content: Callable[[], Any],
        fallback: Callable[[], Any],
        placeholder: Optional[Callable[[], Any]] = None,
    ) -> Any:
        """Re-evaluate the session, then call the matching view"""
        self.evaluate()
        return self.select(content, fallback, placeholder)


class SessionContext:
    """
    One credential store and its gate, passed explicitly to consumers

    The dashboard loader asks the context for a token and reports rejected
    tokens back to it; the CLI uses it for login, logout and gating.
    """

    def __init__(self, store: CredentialStore, gate: Optional[SessionGate] = None):
        self.store = store
        self.gate = gate or SessionGate(store)

    @classmethod
    def from_settings(cls, settings, clock: Optional[Clock] = None) -> 'SessionContext':
        """Build a file-backed context from application settings"""
        storage = FileStorage(settings.get_session_storage_path())
        ttl = timedelta(hours=settings.session.ttl_hours)
        return cls(CredentialStore(storage, clock=clock, ttl=ttl))

    def token(self) -> str:
        """
        The current bearer token

        Raises:
            SessionInvalid: If no unexpired token is stored; the session is
                cleared before raising
        """
        session = self.store.current()
        if session is None:
            self.invalidate("Session is missing or expired")
            raise SessionInvalid()
        return session.token

    def begin(self, token: str) -> Session:
        """Record a freshly issued token and open the gate"""
        session = self.store.save(token)
        self.gate.evaluate()
        logger.info(f"Session started, valid until {session.expires_at.isoformat()}")
        return session

    def invalidate(self, reason: str) -> None:
        """Drop the session because it can no longer be used"""
        logger.info(f"Session invalidated: {reason}")
        self.gate.revoke()

    def logout(self) -> None:
        """Clear every session key; safe to call repeatedly"""
        self.gate.revoke()
        logger.info("Logged out")
