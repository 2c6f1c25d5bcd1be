"""Tool registry — register, declare, and execute named tools.

The engine depends only on ``ToolProvider``; ``ToolRegistry`` is the
in-process implementation host applications populate with their own
capabilities::

    registry = ToolRegistry()

    @registry.register(
        "set_tempo",
        "Set the tempo (BPM) of the project. Valid range is 10-999 BPM.",
        {
            "type": "object",
            "properties": {"bpm": {"type": "integer", "minimum": 10, "maximum": 999}},
            "required": ["bpm"],
        },
    )
    def set_tempo(args):
        song.tempo = args["bpm"]
        return {"success": True, "bpm": song.tempo}

Handlers return a ``ToolInvocationResult``, a plain string (success
output), or any JSON-serializable value (compact-encoded success output).
Exceptions raised by a handler become failed results; they never reach the
engine.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

from studio_agent.contracts.json_types import JSONObject
from studio_agent.contracts.llm_types import ToolParametersDict, ToolSchemaDict
from studio_agent.core.conversation import ToolInvocationResult

logger = logging.getLogger(__name__)

ToolHandler = Callable[[JSONObject], Any]

def _empty_parameters() -> ToolParametersDict:
    return {"type": "object", "properties": {}, "required": []}


@dataclass(frozen=True)
class ToolDeclaration:
    """What the model is told about a tool."""

    name: str
    description: str
    parameters: ToolParametersDict = field(default_factory=_empty_parameters)


class ToolProvider(Protocol):
    """Interface the engine uses to reach tools."""

    def list_declarations(self) -> list[ToolDeclaration]: ...

    def execute(self, name: str, arguments: JSONObject) -> ToolInvocationResult: ...


def tool_definitions(declarations: list[ToolDeclaration]) -> list[ToolSchemaDict]:
    """Render declarations in the OpenAI ``tools`` array shape."""
    return [
        {
            "type": "function",
            "function": {
                "name": d.name,
                "description": d.description,
                "parameters": d.parameters,
            },
        }
        for d in declarations
    ]


def _coerce_result(name: str, value: Any) -> ToolInvocationResult:
    if isinstance(value, ToolInvocationResult):
        return value
    if isinstance(value, str):
        return ToolInvocationResult.success(value)
    try:
        return ToolInvocationResult.success(
            json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        )
    except (TypeError, ValueError) as e:
        return ToolInvocationResult.failure(
            f"tool execution error: {name} returned a non-JSON result ({e})"
        )


class ToolRegistry:
    """Name → (declaration, handler) mapping.

    Declarations are listed sorted by name so the request body is stable
    regardless of registration order.
    """

    def __init__(self) -> None:
        self._declarations: dict[str, ToolDeclaration] = {}
        self._handlers: dict[str, ToolHandler] = {}

    def add(
        self,
        name: str,
        description: str,
        parameters: Optional[ToolParametersDict],
        handler: ToolHandler,
    ) -> None:
        """Register *handler* under *name*, replacing any previous tool of that name."""
        if not name:
            raise ValueError("tool name must be non-empty")
        if name in self._handlers:
            logger.warning(f"Replacing already registered tool '{name}'")
        self._declarations[name] = ToolDeclaration(
            name=name,
            description=description,
            parameters=parameters if parameters is not None else _empty_parameters(),
        )
        self._handlers[name] = handler

    def register(
        self,
        name: str,
        description: str,
        parameters: Optional[ToolParametersDict] = None,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """Decorator form of ``add``."""

        def _decorator(handler: ToolHandler) -> ToolHandler:
            self.add(name, description, parameters, handler)
            return handler

        return _decorator

    def remove(self, name: str) -> None:
        self._declarations.pop(name, None)
        self._handlers.pop(name, None)

    def has_tool(self, name: str) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def list_declarations(self) -> list[ToolDeclaration]:
        return [self._declarations[n] for n in sorted(self._declarations)]

    def tool_definitions(self) -> list[ToolSchemaDict]:
        return tool_definitions(self.list_declarations())

    def execute(self, name: str, arguments: JSONObject) -> ToolInvocationResult:
        """Run the tool named *name*; never raises."""
        handler = self._handlers.get(name)
        if handler is None:
            return ToolInvocationResult.failure(f"unknown tool {name}")
        try:
            value = handler(arguments)
        except Exception as e:
            logger.warning(f"Tool '{name}' raised {type(e).__name__}: {e}", exc_info=True)
            return ToolInvocationResult.failure(f"tool execution error: {e}")
        return _coerce_result(name, value)
