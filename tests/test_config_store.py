"""Tests for configuration persistence (studio_agent/services/config_store.py)."""
from __future__ import annotations

import json
import logging

from studio_agent.services.config_store import JsonFileConfigStore, MemoryConfigStore


class TestMemoryConfigStore:

    def test_get_default_and_set(self):
        store = MemoryConfigStore()
        assert store.get("agent", "apikey") == ""
        assert store.get("agent", "model", "fallback") == "fallback"

        store.set("agent", "apikey", "sk-1")

        assert store.get("agent", "apikey") == "sk-1"

    def test_initial_values_are_copied(self):
        initial = {"agent": {"apikey": "sk-1"}}
        store = MemoryConfigStore(initial)
        initial["agent"]["apikey"] = "changed"
        assert store.get("agent", "apikey") == "sk-1"


class TestJsonFileConfigStore:

    def test_values_survive_a_new_instance(self, tmp_path):
        path = tmp_path / "settings" / "agent.json"
        JsonFileConfigStore(path).set("agent", "model", "openai/gpt-4o")

        reloaded = JsonFileConfigStore(path)

        assert reloaded.get("agent", "model") == "openai/gpt-4o"
        assert json.loads(path.read_text()) == {"agent": {"model": "openai/gpt-4o"}}

    def test_missing_file_reads_defaults(self, tmp_path):
        store = JsonFileConfigStore(tmp_path / "absent.json")
        assert store.get("agent", "apikey", "none") == "none"

    def test_unreadable_file_starts_empty(self, tmp_path, caplog):
        path = tmp_path / "agent.json"
        path.write_text("{not json")

        with caplog.at_level(logging.WARNING):
            store = JsonFileConfigStore(path)
            assert store.get("agent", "apikey") == ""

        assert "Ignoring unreadable config file" in caplog.text

    def test_unexpected_shapes_are_ignored(self, tmp_path):
        path = tmp_path / "agent.json"
        path.write_text(json.dumps({"agent": "not a table", "other": {"k": 1}}))

        store = JsonFileConfigStore(path)

        assert store.get("agent", "apikey") == ""
        assert store.get("other", "k") == "1"

    def test_set_keeps_other_namespaces(self, tmp_path):
        path = tmp_path / "agent.json"
        path.write_text(json.dumps({"ui": {"theme": "dark"}}))

        JsonFileConfigStore(path).set("agent", "apikey", "sk-2")

        assert json.loads(path.read_text()) == {
            "agent": {"apikey": "sk-2"},
            "ui": {"theme": "dark"},
        }
        assert [p.name for p in tmp_path.iterdir()] == ["agent.json"]
