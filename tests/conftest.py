"""Pytest configuration and fixtures."""
from __future__ import annotations

import logging
from typing import Any

import pytest

from studio_agent.config import Settings
from studio_agent.core.engine import ConversationEngine
from studio_agent.services.config_store import MemoryConfigStore
from tests.streaming_fakes import RecordingListener, RecordingTools, studio_tools


def pytest_configure(config):
    logging.getLogger("httpcore").setLevel(logging.CRITICAL)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        api_key=None,
        default_model="anthropic/claude-4-5-sonnet",
        max_tool_rounds=5,
    )


@pytest.fixture
def song() -> dict[str, Any]:
    return {"tempo": 120, "tracks": []}


@pytest.fixture
def tools(song: dict[str, Any]) -> RecordingTools:
    return studio_tools(song)


@pytest.fixture
def config_store() -> MemoryConfigStore:
    return MemoryConfigStore({"agent": {"apikey": "sk-test", "model": "test/model"}})


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def make_engine(tools, config_store, test_settings, listener, song):
    """Build an engine around a scripted transport, already subscribed to *listener*."""

    def _make(transport, **overrides: Any) -> ConversationEngine:
        kwargs: dict[str, Any] = {
            "tools": tools,
            "transport": transport,
            "config_store": config_store,
            "tempo_provider": lambda: song["tempo"],
            "config": test_settings,
        }
        kwargs.update(overrides)
        engine = ConversationEngine(**kwargs)
        engine.subscribe(listener)
        return engine

    return _make
