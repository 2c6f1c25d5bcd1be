"""Streaming HTTP transport for chat-completion requests."""
from studio_agent.transport.base import StreamTransport
from studio_agent.transport.httpx_transport import HttpxStreamTransport

__all__ = ["HttpxStreamTransport", "StreamTransport"]
