"""Observable engine events and their fan-out."""
from studio_agent.protocol.events import (
    ContentDeltaEvent,
    EngineEvent,
    ErrorEvent,
    ProcessingFinishedEvent,
    ProcessingStartedEvent,
    ReasoningDeltaEvent,
    ResponseFinalizedEvent,
    StreamClosedEvent,
    StreamOpenedEvent,
    ToolCallFinishedEvent,
    ToolCallStartedEvent,
)
from studio_agent.protocol.bus import EventBus, EventListener, EventQueue

__all__ = [
    "ContentDeltaEvent",
    "EngineEvent",
    "ErrorEvent",
    "EventBus",
    "EventListener",
    "EventQueue",
    "ProcessingFinishedEvent",
    "ProcessingStartedEvent",
    "ReasoningDeltaEvent",
    "ResponseFinalizedEvent",
    "StreamClosedEvent",
    "StreamOpenedEvent",
    "ToolCallFinishedEvent",
    "ToolCallStartedEvent",
]
