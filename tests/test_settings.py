"""Test settings loading and validation"""

import pytest
import yaml

from wrapped_so_far.config.settings import Settings
from wrapped_so_far.exceptions import ConfigError


@pytest.fixture
def isolated(temp_dir, monkeypatch):
    """No user config, no project config and no overriding environment"""
    monkeypatch.setenv('HOME', str(temp_dir / 'home'))
    monkeypatch.chdir(temp_dir)
    for name in ('WRAPPED_API_URL', 'WRAPPED_SESSION_FILE', 'WRAPPED_LOG_LEVEL'):
        monkeypatch.delenv(name, raising=False)
    return temp_dir


class TestSettings:
    """Test settings sources and precedence"""

    def test_defaults(self, isolated):
        settings = Settings()

        assert settings.api.base_url == "http://localhost:8000"
        assert settings.api.top_artists_limit == 6
        assert settings.api.top_tracks_limit == 10
        assert settings.session.ttl_hours == 24
        assert settings.get_login_url() == "http://localhost:8000/auth/login"
        assert settings.validate() == []
        assert settings.loaded_from is None

    def test_yaml_file_overrides_defaults(self, isolated):
        path = isolated / "custom.yaml"
        path.write_text(yaml.safe_dump({
            'api': {'base_url': 'https://wrapped.example.com/', 'top_tracks_limit': 20, 'unknown': 1},
            'unknown_section': {'x': 1},
        }), encoding='utf-8')

        settings = Settings(str(path))

        assert settings.api.top_tracks_limit == 20
        assert settings.get_login_url() == "https://wrapped.example.com/auth/login"
        assert not hasattr(settings.api, 'unknown')
        assert settings.loaded_from == path

    def test_project_config_is_found(self, isolated):
        (isolated / "config.yaml").write_text("session:\n  ttl_hours: 2\n", encoding='utf-8')
        assert Settings().session.ttl_hours == 2

    def test_environment_overrides_file(self, isolated, monkeypatch):
        (isolated / "config.yaml").write_text("api:\n  base_url: http://file:1\n", encoding='utf-8')
        monkeypatch.setenv('WRAPPED_API_URL', 'http://env:2')
        monkeypatch.setenv('WRAPPED_LOG_LEVEL', 'DEBUG')

        settings = Settings()

        assert settings.api.base_url == 'http://env:2'
        assert settings.logging.level == 'DEBUG'

    def test_session_path_is_expanded(self, isolated, monkeypatch):
        monkeypatch.setenv('WRAPPED_SESSION_FILE', '~/sessions/s.json')
        path = Settings().get_session_storage_path()

        assert path == isolated / 'home' / 'sessions' / 's.json'

    def test_malformed_yaml(self, isolated):
        path = isolated / "broken.yaml"
        path.write_text("api: [unclosed\n", encoding='utf-8')

        with pytest.raises(ConfigError):
            Settings(str(path))

    def test_non_mapping_yaml(self, isolated):
        path = isolated / "list.yaml"
        path.write_text("- a\n- b\n", encoding='utf-8')

        with pytest.raises(ConfigError):
            Settings(str(path))

    def test_validate_reports_problems(self, isolated):
        settings = Settings()
        settings.api.base_url = "localhost:8000"
        settings.api.top_artists_limit = 0
        settings.session.ttl_hours = -1
        settings.logging.level = "LOUD"

        problems = settings.validate()

        assert len(problems) == 4
        assert any("base URL" in p for p in problems)

    def test_save_config_round_trip(self, isolated):
        settings = Settings()
        settings.api.top_tracks_limit = 15

        target = settings.save_config(str(isolated / "saved" / "config.yaml"))

        assert Settings(str(target)).api.top_tracks_limit == 15

    def test_save_config_default_location(self, isolated):
        target = Settings().save_config()
        assert target == isolated / 'home' / '.wrapped-so-far' / 'config.yaml'
        assert target.exists()
