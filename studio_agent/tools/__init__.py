"""Tool registry: name-indexed, schema-described capabilities the model may call."""
from __future__ import annotations

from studio_agent.tools.registry import (
    ToolDeclaration,
    ToolHandler,
    ToolProvider,
    ToolRegistry,
    tool_definitions,
)

__all__ = [
    "ToolDeclaration",
    "ToolHandler",
    "ToolProvider",
    "ToolRegistry",
    "tool_definitions",
]
