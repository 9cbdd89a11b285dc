"""Unit tests for jobboard.config.

Verifies that Settings can be constructed without error and that
all fields carry their expected defaults when no environment
variables are set.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from jobboard.config import Settings, get_settings, reset_settings


@pytest.fixture(autouse=True)
def _reset(monkeypatch, tmp_path):
    """Reset the singleton and isolate from any local .env file."""
    monkeypatch.chdir(tmp_path)
    for var in ("JB_DATA_DIR", "JB_STORAGE_BACKEND", "JB_API_BASE_URL", "JB_API_TIMEOUT", "JB_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    reset_settings()
    yield
    reset_settings()


class TestSettingsConstruction:
    def test_constructs_without_error(self):
        assert Settings() is not None

    def test_get_settings_returns_settings_instance(self):
        assert isinstance(get_settings(), Settings)

    def test_get_settings_is_singleton(self):
        assert get_settings() is get_settings()

    def test_reset_settings_clears_singleton(self):
        s1 = get_settings()
        reset_settings()
        assert get_settings() is not s1


class TestSettingsDefaults:
    def test_data_dir_default(self):
        assert Settings().data_dir == Path(".jobboard")

    def test_storage_backend_default_is_file(self):
        assert Settings().storage_backend == "file"

    def test_api_base_url_default(self):
        assert Settings().api_base_url == "http://localhost:5000/api"

    def test_api_timeout_default(self):
        assert Settings().api_timeout == 10.0

    def test_log_level_default(self):
        assert Settings().log_level == "INFO"


class TestSettingsEnvOverride:
    def test_data_dir_read_from_env(self, monkeypatch):
        monkeypatch.setenv("JB_DATA_DIR", "/srv/jobs")
        assert Settings().data_dir == Path("/srv/jobs")

    def test_storage_backend_memory(self, monkeypatch):
        monkeypatch.setenv("JB_STORAGE_BACKEND", "memory")
        assert Settings().storage_backend == "memory"

    def test_unknown_storage_backend_rejected(self, monkeypatch):
        monkeypatch.setenv("JB_STORAGE_BACKEND", "redis")
        with pytest.raises(ValidationError):
            Settings()

    def test_api_timeout_parsed_as_float(self, monkeypatch):
        monkeypatch.setenv("JB_API_TIMEOUT", "2.5")
        assert Settings().api_timeout == 2.5

    def test_prefix_is_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("jb_log_level", "DEBUG")
        assert Settings().log_level == "DEBUG"

    def test_env_file_read(self):
        Path(".env").write_text("JB_API_BASE_URL=https://api.example.edu\n")
        assert Settings().api_base_url == "https://api.example.edu"
