"""Wire shapes of the chat-completions API, as TypedDicts.

Request bodies and history messages are plain dicts on the wire; these
types name their fields.  Stream events are folded as untyped JSON objects
(see ``core.stream_assembler``).

Contents:
  Chat messages          → ``SystemMessage``, ``UserMessage``,
                           ``AssistantMessage``, ``ToolResultMessage``,
                           ``ChatMessage`` (union)
  Tool schemas           → ``ToolParametersDict``, ``ToolFunctionDict``,
                           ``ToolSchemaDict``, ``ToolCallFunction``,
                           ``ToolCallEntry``
  Request payload        → ``ChatRequestPayload``
"""
from __future__ import annotations

from typing import Literal, Union

from typing_extensions import NotRequired, Required, TypedDict

from studio_agent.contracts.json_types import JSONValue


# ── Chat message shapes ────────────────────────────────────────────────────────


class ToolCallFunction(TypedDict):
    """Name and argument text of one tool call.

    ``arguments`` is JSON text, not a decoded object.  While streaming it is the concatenation of every fragment seen so far
    and is usually not valid JSON until the stream ends.
    """

    name: str
    arguments: str


class ToolCallEntry(TypedDict):
    """One tool call in an assistant message (streaming accumulator or history)."""

    id: str
    function: ToolCallFunction


class SystemMessage(TypedDict):
    """The instructional prompt sent first in every request."""

    role: Literal["system"]
    content: str


class UserMessage(TypedDict):
    """Text the user typed."""

    role: Literal["user"]
    content: str


class AssistantMessage(TypedDict, total=False):
    """Model output: text, tool calls, or both."""

    role: Required[Literal["assistant"]]
    content: Required[str]
    tool_calls: list[ToolCallEntry]


class ToolResultMessage(TypedDict):
    """Answer to one tool call, matched by ``tool_call_id``."""

    role: Literal["tool"]
    tool_call_id: str
    content: str


ChatMessage = Union[SystemMessage, UserMessage, AssistantMessage, ToolResultMessage]
"""Any entry of the request ``messages`` array."""


# ── Tool schema shapes (OpenAI function-calling format) ───────────────────────


class ToolParametersDict(TypedDict, total=False):
    """JSON Schema describing a tool's arguments object."""

    type: str
    properties: dict[str, JSONValue]
    required: list[str]


class ToolFunctionDict(TypedDict):
    """Name, description and argument schema of a declared tool."""

    name: str
    description: str
    parameters: NotRequired[ToolParametersDict]


class ToolSchemaDict(TypedDict):
    """One entry of the request ``tools`` array."""

    type: str
    function: ToolFunctionDict


# ── Request payload ───────────────────────────────────────────────────────────


class ChatRequestPayload(TypedDict):
    """Full request body sent to the chat completions endpoint.

    ``messages[0]`` is always the system prompt; the rest mirror history.
    """

    model: str
    stream: bool
    messages: list[ChatMessage]
    tools: list[ToolSchemaDict]
