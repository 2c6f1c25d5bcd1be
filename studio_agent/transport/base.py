"""Transport boundary used by the engine.

A transport opens one streaming request per call to ``stream`` and yields
raw byte fragments as they arrive.  Normal completion is the end of
iteration; failure is a raised ``TransportError`` (or ``ApiError`` when the
service answered with a structured error body).  Aborting is closing the
async iterator (``aclose()``) or cancelling the task consuming it; a
transport must not deliver fragments after that.
"""

from __future__ import annotations

from typing import AsyncIterator, Protocol

from studio_agent.contracts.llm_types import ChatRequestPayload


class StreamTransport(Protocol):

    def stream(self, payload: ChatRequestPayload, api_key: str) -> AsyncIterator[bytes]:
        """Open a streaming request carrying *payload* with bearer *api_key*."""
        ...

    async def close(self) -> None:
        """Release pooled connections."""
        ...
