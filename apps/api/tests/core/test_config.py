"""
Unit tests for application settings.
"""

import pytest

from app.core.config import Settings


@pytest.fixture
def clean_env(monkeypatch):
    monkeypatch.delenv("PYTHON_ENV", raising=False)


class TestEnvironment:
    """Tests for environment selection."""

    def test_unconfigured_deployment_is_production(self, clean_env):
        config = Settings(_env_file=None)

        assert config.is_production is True
        assert config.is_development is False

    def test_development_must_be_explicit(self, clean_env, monkeypatch):
        monkeypatch.setenv("PYTHON_ENV", "Development")

        config = Settings(_env_file=None)

        assert config.is_development is True
        assert config.is_production is False
