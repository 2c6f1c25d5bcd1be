"""Canonical type definitions for JSON data.

Use ``JSONValue`` / ``JSONObject`` only when the shape is genuinely unknown
(e.g. parsed tool-call arguments before a tool validates them, or an
arbitrary stream event).  For every known structure, use the named
TypedDicts in ``studio_agent.contracts.llm_types``.

Do **not** use ``JSONValue`` or ``JSONObject`` in Pydantic ``BaseModel``
fields — Pydantic v2 cannot resolve the recursive forward references and
raises ``RecursionError`` at schema generation time.

## Conversion helpers

- ``jint(v)`` / ``jstr(v)`` — safe scalar extraction from ``JSONValue``.
- ``is_json_object(v)`` — ``TypeGuard`` narrowing from ``JSONValue`` → ``JSONObject``.
"""

from __future__ import annotations

from typing_extensions import TypeGuard


JSONScalar = str | int | float | bool | None
"""A JSON leaf value with no recursive structure."""

JSONValue = str | int | float | bool | None | list["JSONValue"] | dict[str, "JSONValue"]
"""Recursive JSON value — the most precise mypy-safe alternative to ``Any``."""

JSONObject = dict[str, JSONValue]
"""A JSON object with unknown key set."""


def is_json_object(v: object) -> TypeGuard[JSONObject]:
    """Narrow an arbitrary decoded value to a JSON object (string keys)."""
    return isinstance(v, dict) and all(isinstance(k, str) for k in v)


def jint(v: JSONValue, default: int = 0) -> int:
    """Safely extract an ``int`` from a ``JSONValue``.

    Returns *default* when *v* is not numeric.  Booleans are rejected even
    though ``bool`` subclasses ``int``::

        index = jint(fragment.get("index"))   # 0 if key absent
    """
    if isinstance(v, bool):
        return default
    return int(v) if isinstance(v, (int, float)) else default


def jstr(v: JSONValue, default: str = "") -> str:
    """Safely extract a ``str`` from a ``JSONValue``; *default* otherwise."""
    return v if isinstance(v, str) else default
