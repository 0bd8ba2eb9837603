"""
Configuration and session management for Wrapped-So-Far

- settings.py: YAML/environment settings with get_settings() / reload_settings()
- session.py: persisted credential, session gate and the injectable SessionContext
- auth.py: browser login through the API's OAuth endpoint

Settings are process-wide; the session is not. Build one SessionContext and
pass it to whatever needs the token.
"""

from .settings import get_settings, reload_settings, Settings

from .session import (
    CredentialStore,
    FileStorage,
    GateState,
    MemoryStorage,
    Session,
    SessionContext,
    SessionGate,
)

from .auth import LoginFlow, handle_callback

__all__ = [
    'get_settings',
    'reload_settings',
    'Settings',

    'CredentialStore',
    'FileStorage',
    'GateState',
    'MemoryStorage',
    'Session',
    'SessionContext',
    'SessionGate',

    'LoginFlow',
    'handle_callback',
]
