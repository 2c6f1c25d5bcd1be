"""Error taxonomy for the conversation engine.

Configuration and concurrency errors are raised synchronously by
``ConversationEngine.send_message`` and never mutate state.  Transport and
API errors end the current exchange; the engine reports them once through
an ``ErrorEvent`` and returns to Idle.  Tool faults never appear here: the
registry converts them into a failed ``ToolInvocationResult``.
"""
from __future__ import annotations

from typing import Optional


class StudioAgentError(Exception):
    """Base class for engine errors."""
    pass


class NotConfiguredError(StudioAgentError):
    """Raised when a message is sent before an API key is configured."""

    def __init__(self) -> None:
        super().__init__("API key not set up. Please set your OpenRouter API key.")


class AlreadyProcessingError(StudioAgentError):
    """Raised when a message is sent while another exchange is active."""

    def __init__(self) -> None:
        super().__init__("Already processing a request. Please wait.")


class TransportError(StudioAgentError):
    """Network or HTTP failure reported by the transport."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    @property
    def user_message(self) -> str:
        return f"Network error: {self.message}"


class ApiError(StudioAgentError):
    """The remote service returned a structured ``{"error": {...}}`` object."""

    def __init__(self, message: str, code: Optional[int | str] = None):
        self.message = message
        self.code = code
        super().__init__(message)

    @property
    def user_message(self) -> str:
        return f"API error: {self.message}"


class ToolRoundLimitError(StudioAgentError):
    """The model kept requesting tools past ``settings.max_tool_rounds``."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(
            f"Stopped after {limit} tool-calling rounds without a final answer."
        )

    @property
    def user_message(self) -> str:
        return str(self)
