"""httpx implementation of ``StreamTransport`` for OpenRouter.

One shared ``httpx.AsyncClient`` is created lazily and reused across
rounds; ``close()`` disposes it.
"""

from __future__ import annotations

import json
import logging
from typing import AsyncIterator, Optional

import httpx

from studio_agent.config import Settings, settings as default_settings
from studio_agent.contracts.json_types import is_json_object, jstr
from studio_agent.contracts.llm_types import ChatRequestPayload
from studio_agent.core.errors import ApiError, TransportError

logger = logging.getLogger(__name__)


def _status_error(status_code: int, body: bytes) -> ApiError | TransportError:
    """Map a non-2xx response to the engine's error taxonomy.

    OpenRouter returns ``{"error": {"message": ..., "code": ...}}`` for
    auth, quota and validation failures; anything else is a transport
    failure.
    """
    text = body.decode("utf-8", errors="replace")
    try:
        decoded = json.loads(text)
    except json.JSONDecodeError:
        decoded = None
    if is_json_object(decoded):
        error = decoded.get("error")
        if is_json_object(error) and (message := jstr(error.get("message"))):
            return ApiError(message, code=status_code)
    snippet = text.strip()[:200]
    message = f"HTTP {status_code}: {snippet}" if snippet else f"HTTP {status_code}"
    return TransportError(message, status_code=status_code)


class HttpxStreamTransport:
    """Streams chat-completion responses with ``httpx.AsyncClient.stream``."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._settings = config or default_settings
        self.url = self._settings.api_url
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Return the shared ``httpx.AsyncClient``, creating it lazily on first access."""
        if self._client is None:
            timeout = httpx.Timeout(
                self._settings.request_timeout,
                connect=self._settings.connect_timeout,
            )
            self._client = httpx.AsyncClient(timeout=timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def stream(self, payload: ChatRequestPayload, api_key: str) -> AsyncIterator[bytes]:
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
            "HTTP-Referer": self._settings.http_referer,
            "X-Title": self._settings.app_title,
        }
        logger.debug(
            f"Streaming request: model={payload['model']}, "
            f"{len(payload['messages'])} messages, {len(payload['tools'])} tools"
        )
        try:
            async with self.client.stream("POST", self.url, json=payload, headers=headers) as response:
                if response.status_code >= 400:
                    body = await response.aread()
                    error = _status_error(response.status_code, body)
                    logger.error(f"Stream error {response.status_code}: {error}")
                    raise error
                async for chunk in response.aiter_bytes():
                    if chunk:
                        yield chunk
        except httpx.HTTPError as e:
            logger.error(f"Stream HTTP error: {type(e).__name__}: {e}")
            raise TransportError(str(e) or type(e).__name__) from e
