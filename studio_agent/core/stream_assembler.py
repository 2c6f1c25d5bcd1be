"""Streaming chunk assembler.

Turns the raw byte stream of an OpenAI-compatible ``stream: true`` response
into engine events while folding it into a ``StreamAccumulator``.

Framing: each event is one ``data: {json}`` line terminated by ``\\n``;
``data: [DONE]`` ends the stream.  Fragments from the transport can split
anywhere, even inside a multi-byte UTF-8 character, so bytes are buffered
until a full line is available and only then decoded.

Folding rules per event:
  - ``error``               → ``ErrorEvent``; nothing further is folded
  - ``delta.content``       → appended to ``content``; ``ContentDeltaEvent``
  - ``delta.reasoning`` / ``delta.thinking``
                            → appended to ``reasoning``; ``ReasoningDeltaEvent``
  - ``delta.tool_calls[]``  → merged into the slot named by ``index``:
                              ``id`` and ``name`` overwrite when non-empty,
                              ``arguments`` always concatenates

Malformed lines (bad JSON, non-object payloads) are skipped silently.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Iterator, Optional

from studio_agent.contracts.json_types import JSONObject, JSONValue, is_json_object, jint, jstr
from studio_agent.contracts.llm_types import ToolCallEntry
from studio_agent.core.conversation import ToolInvocationRequest
from studio_agent.core.errors import ApiError
from studio_agent.protocol.events import (
    BaseEngineEvent,
    ContentDeltaEvent,
    ErrorEvent,
    ReasoningDeltaEvent,
)

logger = logging.getLogger(__name__)

SSE_DATA_PREFIX = b"data:"
SSE_DONE_SENTINEL = "[DONE]"

# Highest tool-call slot accepted from a stream; larger indices are dropped.
MAX_TOOL_CALL_INDEX = 127

# Providers disagree on the reasoning key; first match wins.
_REASONING_KEYS = ("reasoning", "thinking")


class SSELineDecoder:
    """Split a byte-fragment stream into complete SSE ``data`` payloads."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending_bytes(self) -> int:
        """Bytes held back because no newline has arrived for them yet."""
        return len(self._buffer)

    def feed(self, fragment: bytes) -> Iterator[str]:
        """Buffer *fragment* and yield the payload of every completed data line.

        Non-data lines (comments such as ``: OPENROUTER PROCESSING``,
        ``event:`` fields, blank separators) are dropped.
        """
        self._buffer.extend(fragment)
        while True:
            newline = self._buffer.find(b"\n")
            if newline == -1:
                return
            raw = bytes(self._buffer[:newline])
            del self._buffer[: newline + 1]

            line = raw.rstrip(b"\r")
            if not line.startswith(SSE_DATA_PREFIX):
                continue
            payload = line[len(SSE_DATA_PREFIX):].decode("utf-8", errors="replace").strip()
            if payload:
                yield payload

    def reset(self) -> None:
        self._buffer.clear()


def _empty_tool_call() -> ToolCallEntry:
    return {"id": "", "function": {"name": "", "arguments": ""}}


@dataclass
class StreamAccumulator:
    """Per-round buffers; discarded when the round ends or is cancelled."""

    content: str = ""
    reasoning: str = ""
    tool_calls: list[ToolCallEntry] = field(default_factory=list)
    error: Optional[ApiError] = None
    done: bool = False  # [DONE] sentinel seen
    events_skipped: int = 0

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0

    @property
    def halted(self) -> bool:
        """No further events may be folded into this round."""
        return self.done or self.error is not None

    def tool_requests(self) -> list[ToolInvocationRequest]:
        """Finalize every accumulated slot into a request, in index order."""
        return [ToolInvocationRequest.from_entry(tc) for tc in self.tool_calls]

    def merge_tool_call(self, fragment: JSONObject) -> None:
        """Merge one ``delta.tool_calls[]`` fragment into its indexed slot.

        Slots are created on demand, so indices may arrive out of order or
        with gaps that are filled by later fragments.
        """
        index = jint(fragment.get("index"))
        if index < 0 or index > MAX_TOOL_CALL_INDEX:
            logger.debug(f"Ignoring tool call fragment with index {index}")
            return
        while len(self.tool_calls) <= index:
            self.tool_calls.append(_empty_tool_call())
        slot = self.tool_calls[index]

        if tc_id := jstr(fragment.get("id")):
            slot["id"] = tc_id

        func = fragment.get("function")
        if is_json_object(func):
            if name := jstr(func.get("name")):
                slot["function"]["name"] = name
            if args := jstr(func.get("arguments")):
                slot["function"]["arguments"] += args

    def reset(self) -> None:
        self.content = ""
        self.reasoning = ""
        self.tool_calls = []
        self.error = None
        self.done = False
        self.events_skipped = 0


def _error_message(error: JSONValue) -> str:
    if is_json_object(error):
        message = jstr(error.get("message"))
        if message:
            return message
        return json.dumps(error, separators=(",", ":"))
    if isinstance(error, str) and error:
        return error
    return "unknown error"


class StreamAssembler:
    """Decode bytes and fold stream events for one round.

    ``feed`` is a generator: each event is folded only when the caller asks
    for the next one, so a caller that stops iterating (e.g. after a cancel)
    leaves the remaining lines unprocessed.
    """

    def __init__(self, accumulator: Optional[StreamAccumulator] = None) -> None:
        self.accumulator = accumulator or StreamAccumulator()
        self._decoder = SSELineDecoder()

    def feed(self, fragment: bytes) -> Iterator[BaseEngineEvent]:
        for payload in self._decoder.feed(fragment):
            if self.accumulator.halted:
                return
            if payload == SSE_DONE_SENTINEL:
                self.accumulator.done = True
                return
            try:
                decoded = json.loads(payload)
            except json.JSONDecodeError:
                self.accumulator.events_skipped += 1
                logger.debug(f"Skipping malformed stream event: {payload[:120]!r}")
                continue
            if not is_json_object(decoded):
                self.accumulator.events_skipped += 1
                logger.debug(f"Skipping non-object stream event: {payload[:120]!r}")
                continue
            yield from self.fold(decoded)

    def fold(self, chunk: JSONObject) -> Iterator[BaseEngineEvent]:
        """Fold one decoded stream event; yields the events it produces."""
        acc = self.accumulator

        if "error" in chunk:
            message = _error_message(chunk["error"])
            code = chunk["error"].get("code") if is_json_object(chunk["error"]) else None
            acc.error = ApiError(message, code=code if isinstance(code, (int, str)) else None)
            logger.warning(f"Stream reported API error: {message}")
            yield ErrorEvent(message=acc.error.user_message)
            return

        choices = chunk.get("choices")
        if not isinstance(choices, list) or not choices:
            return
        choice = choices[0]
        if not is_json_object(choice):
            return
        delta = choice.get("delta")
        if not is_json_object(delta):
            return

        if content := jstr(delta.get("content")):
            acc.content += content
            yield ContentDeltaEvent(text=content)

        for key in _REASONING_KEYS:
            if key in delta:
                if thinking := jstr(delta.get(key)):
                    acc.reasoning += thinking
                    yield ReasoningDeltaEvent(text=thinking)
                break

        tool_calls = delta.get("tool_calls")
        if isinstance(tool_calls, list):
            for fragment in tool_calls:
                if is_json_object(fragment):
                    acc.merge_tool_call(fragment)

    def reset(self) -> None:
        self.accumulator.reset()
        self._decoder.reset()
