"""Tests for environment-driven settings (studio_agent/config.py)."""
from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from studio_agent.config import DEFAULT_TEMPO, OPENROUTER_API_URL, Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("STUDIO_AGENT_API_KEY", raising=False)
    settings = Settings(_env_file=None)

    assert settings.api_url == OPENROUTER_API_URL
    assert settings.api_key is None
    assert settings.default_model == "anthropic/claude-4-5-sonnet"
    assert settings.default_tempo == DEFAULT_TEMPO == 140
    assert settings.config_namespace == "agent"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("STUDIO_AGENT_DEFAULT_MODEL", "openai/gpt-4o")
    monkeypatch.setenv("STUDIO_AGENT_MAX_TOOL_ROUNDS", "3")

    settings = Settings(_env_file=None)

    assert settings.default_model == "openai/gpt-4o"
    assert settings.max_tool_rounds == 3


def test_negative_round_limit_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, max_tool_rounds=-1)


def test_unbounded_rounds_warn(caplog):
    with caplog.at_level(logging.WARNING, logger="studio_agent.config"):
        Settings(_env_file=None, max_tool_rounds=0)

    assert "unbounded" in caplog.text


def test_unknown_environment_keys_are_not_settings(monkeypatch):
    monkeypatch.setenv("STUDIO_AGENT_DEBUG", "true")

    settings = Settings(_env_file=None)

    assert "debug" not in Settings.model_fields
    assert "app_name" not in Settings.model_fields
    assert not hasattr(settings, "debug")
