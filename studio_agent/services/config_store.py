"""Persistent configuration store for the API key and model id.

The engine reads ``(namespace, "apikey")`` and ``(namespace, "model")`` at
construction and writes them back from ``configure()``.  Values are plain
strings; a missing value yields the caller's default.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class ConfigStore(Protocol):

    def get(self, namespace: str, key: str, default: str = "") -> str: ...

    def set(self, namespace: str, key: str, value: str) -> None: ...


class MemoryConfigStore:
    """Process-local store; nothing survives a restart."""

    def __init__(self, initial: dict[str, dict[str, str]] | None = None) -> None:
        self._values: dict[str, dict[str, str]] = {
            ns: dict(values) for ns, values in (initial or {}).items()
        }

    def get(self, namespace: str, key: str, default: str = "") -> str:
        return self._values.get(namespace, {}).get(key, default)

    def set(self, namespace: str, key: str, value: str) -> None:
        self._values.setdefault(namespace, {})[key] = value


class JsonFileConfigStore:
    """Store backed by a JSON document ``{namespace: {key: value}}``.

    The file is read once on first access and rewritten atomically (temp
    file + rename) on every ``set``.  A missing or unreadable file starts
    empty.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._values: dict[str, dict[str, str]] | None = None

    def _load(self) -> dict[str, dict[str, str]]:
        if self._values is not None:
            return self._values
        values: dict[str, dict[str, str]] = {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raw = {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable config file {self.path}: {e}")
            raw = {}
        if isinstance(raw, dict):
            for ns, entries in raw.items():
                if isinstance(ns, str) and isinstance(entries, dict):
                    values[ns] = {str(k): str(v) for k, v in entries.items()}
        self._values = values
        return values

    def get(self, namespace: str, key: str, default: str = "") -> str:
        return self._load().get(namespace, {}).get(key, default)

    def set(self, namespace: str, key: str, value: str) -> None:
        values = self._load()
        values.setdefault(namespace, {})[key] = value
        self._write(values)

    def _write(self, values: dict[str, dict[str, str]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(values, fh, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
