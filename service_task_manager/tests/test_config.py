"""
Tests for service configuration.
"""

import pytest
from pydantic import ValidationError

from shared.config import BaseConfig, get_config


class TestConfig:

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch, tmp_path):
        # Keep a developer's .env out of the picture.
        monkeypatch.chdir(tmp_path)

    def test_defaults(self):
        config = BaseConfig()

        assert config.port == 3000
        assert config.storage_backend == "postgres"
        assert config.cache_enabled is True
        assert config.cache_ttl_seconds == 300
        assert config.enable_tracing is False
        assert config.log_format == "json"
        assert config.is_development()

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("TASKS_PORT", "8080")
        monkeypatch.setenv("TASKS_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("TASKS_CACHE_ENABLED", "false")
        monkeypatch.setenv("TASKS_REDIS_URL", "redis://cache:6379/1")

        config = BaseConfig()

        assert config.port == 8080
        assert config.storage_backend == "memory"
        assert config.cache_enabled is False
        assert config.redis_url == "redis://cache:6379/1"

    def test_explicit_overrides_win(self, monkeypatch):
        monkeypatch.setenv("TASKS_CACHE_TTL_SECONDS", "60")
        assert get_config(cache_ttl_seconds=120).cache_ttl_seconds == 120

    @pytest.mark.parametrize("env, expected", [("local", True), ("development", True), ("production", False)])
    def test_is_development(self, env, expected):
        assert get_config(env=env).is_development() is expected

    def test_unknown_storage_backend(self):
        with pytest.raises(ValidationError):
            get_config(storage_backend="sqlite")

    def test_unknown_log_format(self):
        with pytest.raises(ValidationError):
            get_config(log_format="xml")

    def test_non_positive_timeout(self):
        with pytest.raises(ValidationError):
            get_config(request_timeout_seconds=0)
