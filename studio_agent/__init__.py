"""
Studio Agent - conversational assistant engine for a music workstation.

Streams chat completions from an OpenRouter-compatible endpoint, executes
the tool calls the model requests against host-registered tools, and
publishes every step as an engine event.
"""
from studio_agent.core.engine import ConversationEngine
from studio_agent.core.conversation import (
    ConversationTurn,
    EngineState,
    Role,
    ToolInvocationRequest,
    ToolInvocationResult,
)
from studio_agent.core.errors import (
    AlreadyProcessingError,
    ApiError,
    NotConfiguredError,
    StudioAgentError,
    ToolRoundLimitError,
    TransportError,
)
from studio_agent.services.config_store import ConfigStore, JsonFileConfigStore, MemoryConfigStore
from studio_agent.tools.registry import ToolDeclaration, ToolProvider, ToolRegistry

__version__ = "0.1.0"

__all__ = [
    "AlreadyProcessingError",
    "ApiError",
    "ConfigStore",
    "ConversationEngine",
    "ConversationTurn",
    "EngineState",
    "JsonFileConfigStore",
    "MemoryConfigStore",
    "NotConfiguredError",
    "Role",
    "StudioAgentError",
    "ToolDeclaration",
    "ToolInvocationRequest",
    "ToolInvocationResult",
    "ToolProvider",
    "ToolRegistry",
    "ToolRoundLimitError",
    "TransportError",
]
