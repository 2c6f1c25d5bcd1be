"""Conversation data model.

``ConversationTurn`` is one entry in history; history itself is an
append-only list owned by the engine.  ``ToolInvocationRequest`` is a
finalized tool call ready for the sequencer and ``ToolInvocationResult`` is
what a tool hands back.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from studio_agent.contracts.json_types import JSONObject, is_json_object
from studio_agent.contracts.llm_types import ChatMessage, ToolCallEntry


class Role(str, Enum):
    """Author of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    SYSTEM = "system"


class EngineState(str, Enum):
    """Top-level engine state.

    PROCESSING covers both consuming a model stream and executing tool
    calls; a new model request always follows tool execution, so the two
    are phases of one state.
    """

    IDLE = "idle"
    PROCESSING = "processing"


@dataclass(frozen=True)
class ConversationTurn:
    """One entry in conversation history."""

    role: Role
    content: str = ""
    tool_call_id: Optional[str] = None  # tool turns only
    tool_calls: tuple[ToolCallEntry, ...] = ()  # assistant turns only
    name: Optional[str] = None  # tool name, tool turns only

    def __post_init__(self) -> None:
        if self.role == Role.TOOL and self.tool_call_id is None:
            raise ValueError("tool turns require a tool_call_id")
        if self.role != Role.TOOL and self.tool_call_id is not None:
            raise ValueError(f"{self.role.value} turns cannot carry a tool_call_id")
        if self.tool_calls and self.role != Role.ASSISTANT:
            raise ValueError(f"{self.role.value} turns cannot carry tool_calls")

    @classmethod
    def user(cls, text: str) -> ConversationTurn:
        return cls(role=Role.USER, content=text)

    @classmethod
    def assistant(
        cls,
        content: str,
        tool_calls: tuple[ToolCallEntry, ...] | list[ToolCallEntry] = (),
    ) -> ConversationTurn:
        # Deep copy so later accumulator reuse can never reach into history.
        return cls(
            role=Role.ASSISTANT,
            content=content,
            tool_calls=tuple(copy.deepcopy(list(tool_calls))),
        )

    @classmethod
    def tool(cls, tool_call_id: str, content: str, name: Optional[str] = None) -> ConversationTurn:
        return cls(role=Role.TOOL, content=content, tool_call_id=tool_call_id, name=name)

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0

    def to_message(self) -> ChatMessage:
        """Render this turn in the chat-completions ``messages`` shape."""
        if self.role == Role.TOOL:
            return {
                "role": "tool",
                "tool_call_id": self.tool_call_id or "",
                "content": self.content,
            }
        if self.role == Role.ASSISTANT:
            if self.tool_calls:
                return {
                    "role": "assistant",
                    "content": self.content,
                    "tool_calls": copy.deepcopy(list(self.tool_calls)),
                }
            return {"role": "assistant", "content": self.content}
        if self.role == Role.SYSTEM:
            return {"role": "system", "content": self.content}
        return {"role": "user", "content": self.content}


def history_to_messages(history: list[ConversationTurn] | tuple[ConversationTurn, ...]) -> list[ChatMessage]:
    """Convert history to wire messages, preserving order."""
    return [turn.to_message() for turn in history]


@dataclass(frozen=True)
class ToolInvocationRequest:
    """A finalized tool call, ready to execute.

    ``argument_error`` is set when the concatenated argument text did not
    parse as a JSON object; such a request is answered with a failure
    result instead of being executed.
    """

    id: str
    name: str
    arguments: JSONObject = field(default_factory=dict)
    argument_error: Optional[str] = None

    @property
    def is_executable(self) -> bool:
        return bool(self.name) and self.argument_error is None

    @classmethod
    def from_entry(cls, entry: ToolCallEntry) -> ToolInvocationRequest:
        """Build a request from an accumulated tool-call entry.

        An empty (or whitespace-only) argument string means "no arguments".
        """
        function = entry.get("function") or {"name": "", "arguments": ""}
        name = function.get("name", "")
        raw = function.get("arguments", "")
        if not raw.strip():
            return cls(id=entry.get("id", ""), name=name, arguments={})
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            return cls(
                id=entry.get("id", ""),
                name=name,
                argument_error=f"arguments are not valid JSON ({e.msg} at position {e.pos})",
            )
        if not is_json_object(parsed):
            return cls(
                id=entry.get("id", ""),
                name=name,
                argument_error=f"arguments must be a JSON object, got {type(parsed).__name__}",
            )
        return cls(id=entry.get("id", ""), name=name, arguments=parsed)


@dataclass(frozen=True)
class ToolInvocationResult:
    """Outcome of one tool execution.

    Exactly one of ``output`` / ``error_message`` is meaningful, selected by
    ``succeeded``.
    """

    succeeded: bool
    output: str = ""
    error_message: str = ""

    @classmethod
    def success(cls, output: str) -> ToolInvocationResult:
        return cls(succeeded=True, output=output)

    @classmethod
    def failure(cls, error_message: str) -> ToolInvocationResult:
        return cls(succeeded=False, error_message=error_message)

    @property
    def text(self) -> str:
        """The output on success, the error message on failure."""
        return self.output if self.succeeded else self.error_message
