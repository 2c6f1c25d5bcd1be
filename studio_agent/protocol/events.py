"""Engine event models — the only channel observers learn progress through.

Every event the engine publishes is an instance of an ``EngineEvent``
subclass.  Events are immutable; listeners receive the same object.

Ordering guarantees within one exchange:
  - ``processingStarted`` first, ``processingFinished`` last, exactly once each
  - every ``streamOpened`` is followed by one ``streamClosed`` (unless cancelled)
  - ``toolCallStarted``/``toolCallFinished`` pair up in declaration order
  - ``responseFinalized`` is emitted after ``processingFinished``
"""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class BaseEngineEvent(BaseModel):
    """Base class for all engine events."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: str


class ProcessingStartedEvent(BaseEngineEvent):
    """An exchange began (emitted once per ``send_message``)."""

    type: Literal["processingStarted"] = "processingStarted"


class ProcessingFinishedEvent(BaseEngineEvent):
    """The exchange ended: final answer, error, empty round, or cancel."""

    type: Literal["processingFinished"] = "processingFinished"


class StreamOpenedEvent(BaseEngineEvent):
    """A streaming request for one round was issued."""

    type: Literal["streamOpened"] = "streamOpened"
    round: int = Field(ge=1)


class StreamClosedEvent(BaseEngineEvent):
    """The current round's stream ended (sentinel or transport completion)."""

    type: Literal["streamClosed"] = "streamClosed"
    round: int = Field(ge=1)


class ContentDeltaEvent(BaseEngineEvent):
    """New assistant text — only the fragment, not the running total."""

    type: Literal["contentDelta"] = "contentDelta"
    text: str


class ReasoningDeltaEvent(BaseEngineEvent):
    """New reasoning ("thinking") text — only the fragment."""

    type: Literal["reasoningDelta"] = "reasoningDelta"
    text: str


class ToolCallStartedEvent(BaseEngineEvent):
    """The sequencer is about to execute a tool call."""

    type: Literal["toolCallStarted"] = "toolCallStarted"
    tool_call_id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolCallFinishedEvent(BaseEngineEvent):
    """A tool call finished; ``result`` is its output or error message."""

    type: Literal["toolCallFinished"] = "toolCallFinished"
    tool_call_id: str
    name: str
    result: str
    succeeded: bool


class ResponseFinalizedEvent(BaseEngineEvent):
    """The model produced its final answer for the exchange."""

    type: Literal["responseFinalized"] = "responseFinalized"
    text: str


class ErrorEvent(BaseEngineEvent):
    """An error terminated (or, for stream errors, is terminating) the exchange."""

    type: Literal["error"] = "error"
    message: str


EngineEvent = Union[
    ProcessingStartedEvent,
    ProcessingFinishedEvent,
    StreamOpenedEvent,
    StreamClosedEvent,
    ContentDeltaEvent,
    ReasoningDeltaEvent,
    ToolCallStartedEvent,
    ToolCallFinishedEvent,
    ResponseFinalizedEvent,
    ErrorEvent,
]
"""Discriminated union of every event the engine publishes."""
