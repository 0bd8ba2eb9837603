"""
Configuration management for Wrapped-So-Far

This module handles loading, validation, and management of application settings
from YAML files and environment variables. It provides a centralized
configuration object shared by the CLI, the login flow and the dashboard loader.

The configuration is organized into logical sections using dataclasses:
- API settings (collaborator base URL, list sizes, login path)
- Session settings (credential lifetime, storage file, callback server)
- Logging output settings
- Network identification

The session itself is not part of the settings: it lives in the credential
store described by `config.session` and is passed around explicitly.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, asdict, fields
from urllib.parse import urlparse
from dotenv import load_dotenv

from ..exceptions import ConfigError

# Load environment variables from .env file if present
load_dotenv()

CONFIG_FILENAME = "config.yaml"

ENV_OVERRIDES = (
    ('WRAPPED_API_URL', 'api', 'base_url'),
    ('WRAPPED_SESSION_FILE', 'session', 'storage_path'),
    ('WRAPPED_LOG_LEVEL', 'logging', 'level'),
)


@dataclass
class ApiConfig:
    """
    Collaborator API location and request sizing

    The dashboard asks for a bounded number of top artists and tracks. An empty
    time_range means the parameter is not sent and the API default applies.
    """
    base_url: str = "http://localhost:8000"
    top_artists_limit: int = 6
    top_tracks_limit: int = 10
    recent_tracks_limit: int = 50
    time_range: str = ""
    login_path: str = "/auth/login"


@dataclass
class SessionConfig:
    """
    Credential lifetime and the local callback server used by `wrapped login`
    """
    ttl_hours: int = 24
    storage_path: str = "~/.wrapped-so-far/session.json"
    callback_port: int = 8080
    callback_path: str = "/callback"
    authorization_timeout: int = 300


@dataclass
class LoggingConfig:
    """
    Logging configuration and output settings

    Controls application logging behavior including log levels, file output,
    rotation, and console formatting.
    """
    level: str = "INFO"
    file: str = ""
    max_size: str = "10MB"
    backup_count: int = 3
    console_output: bool = True
    colored_output: bool = True


@dataclass
class NetworkConfig:
    """HTTP identification sent with every API request"""
    user_agent: str = "Wrapped-So-Far/1.0"


VALID_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class Settings:
    """
    Main settings class that manages all configuration

    Loads defaults, then the first YAML file found, then environment
    variables, in increasing order of precedence.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize settings from config file or environment variables

        Args:
            config_path: Path to custom config file, if None uses default locations

        Raises:
            ConfigError: If the selected config file is not valid YAML
        """
        self.config_path = config_path
        self.config_dir = Path.home() / ".wrapped-so-far"
        self.loaded_from: Optional[Path] = None

        self.api = ApiConfig()
        self.session = SessionConfig()
        self.logging = LoggingConfig()
        self.network = NetworkConfig()

        self._load_config()
        self._load_environment_variables()

    def _sections(self) -> Dict[str, Any]:
        return {
            'api': self.api,
            'session': self.session,
            'logging': self.logging,
            'network': self.network,
        }

    def _candidate_files(self):
        """Config files in precedence order; an explicit path comes first"""
        if self.config_path:
            yield Path(self.config_path)
        yield self.get_config_directory() / CONFIG_FILENAME
        yield Path("config") / CONFIG_FILENAME
        yield Path(CONFIG_FILENAME)

    def _load_config(self) -> None:
        """Apply the first existing config file, if any"""
        path = next((p for p in self._candidate_files() if p.is_file()), None)
        if path is None:
            return

        try:
            config_data = yaml.safe_load(path.read_text(encoding='utf-8')) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(config_data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

        self.loaded_from = path
        self._apply_config(config_data)

    def _apply_config(self, config_data: Dict[str, Any]) -> None:
        """
        Copy known keys onto the section dataclasses

        Unknown sections and keys are ignored.
        """
        sections = self._sections()
        for name, values in config_data.items():
            section = sections.get(name)
            if section is None or not isinstance(values, dict):
                continue
            known = {f.name for f in fields(section)}
            for key in known.intersection(values):
                setattr(section, key, values[key])

    def _load_environment_variables(self) -> None:
        """Environment variables take precedence over file-based configuration"""
        for env_var, section, key in ENV_OVERRIDES:
            value = os.getenv(env_var)
            if value:
                setattr(getattr(self, section), key, value)

    def get_config_directory(self) -> Path:
        """Get the expanded config directory path"""
        return Path(self.config_dir).expanduser()

    def get_session_storage_path(self) -> Path:
        """Get the expanded path of the session file"""
        return Path(self.session.storage_path).expanduser()

    def get_login_url(self) -> str:
        """Absolute URL of the collaborator's OAuth entry point"""
        return self.api.base_url.rstrip('/') + self.api.login_path

    def save_config(self, path: Optional[str] = None) -> Path:
        """
        Save current configuration to a YAML file

        Args:
            path: Custom path to save config, defaults to user config directory

        Returns:
            Path the configuration was written to

        Raises:
            ConfigError: If the configuration cannot be saved
        """
        target = Path(path) if path else self.get_config_directory() / "config.yaml"
        config_data = {name: asdict(section) for name, section in self._sections().items()}

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, 'w', encoding='utf-8') as f:
                yaml.safe_dump(config_data, f, default_flow_style=False, indent=2)
        except OSError as e:
            raise ConfigError(f"Failed to save config to {target}: {e}") from e
        return target

    def validate(self) -> List[str]:
        """
        Validate current configuration

        Returns:
            List of human-readable problems, empty when the configuration is valid
        """
        errors = []

        parsed = urlparse(self.api.base_url)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            errors.append(f"Invalid API base URL: {self.api.base_url}")

        for name in ('top_artists_limit', 'top_tracks_limit', 'recent_tracks_limit'):
            value = getattr(self.api, name)
            if not isinstance(value, int) or value < 1:
                errors.append(f"api.{name} must be a positive integer, got {value!r}")

        if not isinstance(self.session.ttl_hours, (int, float)) or self.session.ttl_hours <= 0:
            errors.append(f"session.ttl_hours must be positive, got {self.session.ttl_hours!r}")

        if str(self.logging.level).upper() not in VALID_LOG_LEVELS:
            errors.append(f"Invalid log level: {self.logging.level}")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        """All sections as plain dictionaries"""
        return {name: asdict(section) for name, section in self._sections().items()}

    def __str__(self) -> str:
        sections = [
            f"API: {self.api.base_url}",
            f"Session file: {self.session.storage_path}",
            f"Session TTL: {self.session.ttl_hours}h",
        ]
        return f"Settings({', '.join(sections)})"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance

    The instance is created on first access and shared afterwards.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings(config_path: Optional[str] = None) -> Settings:
    """
    Reload settings from configuration files

    Args:
        config_path: Optional path to specific config file

    Returns:
        New Settings instance with reloaded configuration
    """
    global _settings
    _settings = Settings(config_path)
    return _settings
