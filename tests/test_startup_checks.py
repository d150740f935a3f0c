"""Tests for startup configuration checks."""
from __future__ import annotations

import pytest

from config.settings import settings
from src.startup_checks import DEFAULT_JWT_SECRET, validate_settings


def test_dev_defaults_only_warn(monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", "sqlite+aiosqlite:///nutria.db")
    monkeypatch.setattr(settings, "ANTHROPIC_API_KEY", "")
    monkeypatch.setattr(settings, "USDA_API_KEY", "")
    warnings = validate_settings()
    assert any("ANTHROPIC_API_KEY" in w for w in warnings)
    assert any("USDA_API_KEY" in w for w in warnings)


def test_configured_keys_pass(monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", "sqlite+aiosqlite:///nutria.db")
    monkeypatch.setattr(settings, "ANTHROPIC_API_KEY", "sk-test")
    monkeypatch.setattr(settings, "USDA_API_KEY", "usda-test")
    monkeypatch.setattr(settings, "NUTRITIONAL_DAY_START_HOUR", 5)
    assert validate_settings() == []


def test_production_with_default_secret_exits(monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", "postgresql://db/nutria")
    monkeypatch.setattr(settings, "JWT_SECRET", DEFAULT_JWT_SECRET)
    with pytest.raises(SystemExit):
        validate_settings()


def test_production_wildcard_cors_warns(monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", "postgresql://db/nutria")
    monkeypatch.setattr(settings, "JWT_SECRET", "a-real-secret")
    monkeypatch.setattr(settings, "CORS_ORIGINS", ["*"])
    assert any("CORS_ORIGINS" in w for w in validate_settings())
