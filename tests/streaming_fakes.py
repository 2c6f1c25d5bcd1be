"""Scripted stream transports and SSE builders shared by the engine tests."""
from __future__ import annotations

import asyncio
import copy
import json
from collections.abc import AsyncIterator
from typing import Any, Union

from studio_agent.contracts.llm_types import ChatRequestPayload
from studio_agent.core.conversation import ToolInvocationResult
from studio_agent.protocol.events import BaseEngineEvent
from studio_agent.tools.registry import ToolRegistry

DONE = b"data: [DONE]\n\n"


def sse(obj: object) -> bytes:
    """Build one SSE data line (with blank-line separator) from a dict."""
    return b"data: " + json.dumps(obj).encode("utf-8") + b"\n\n"


def content_chunk(text: str) -> bytes:
    return sse({"choices": [{"delta": {"content": text}}]})


def reasoning_chunk(text: str, key: str = "reasoning") -> bytes:
    return sse({"choices": [{"delta": {key: text}}]})


def tool_call_chunk(
    index: int,
    id: str | None = None,
    name: str | None = None,
    arguments: str | None = None,
) -> bytes:
    fragment: dict[str, Any] = {"index": index}
    if id is not None:
        fragment["id"] = id
        fragment["type"] = "function"
    function: dict[str, str] = {}
    if name is not None:
        function["name"] = name
    if arguments is not None:
        function["arguments"] = arguments
    if function:
        fragment["function"] = function
    return sse({"choices": [{"delta": {"tool_calls": [fragment]}}]})


def error_chunk(message: str, code: int = 429) -> bytes:
    return sse({"error": {"message": message, "code": code}})


class Gate:
    """Script item that parks the stream until ``open()`` is called."""

    def __init__(self) -> None:
        self.reached = asyncio.Event()
        self._released = asyncio.Event()

    def open(self) -> None:
        self._released.set()

    async def wait(self) -> None:
        self.reached.set()
        await self._released.wait()


ScriptItem = Union[bytes, BaseException, Gate]


class ScriptedTransport:
    """A ``StreamTransport`` that replays one scripted round per ``stream`` call.

    Records every payload and key it was called with.  ``aborted`` counts
    streams closed before their script ran out (including a consumer that
    stops reading after ``[DONE]``).
    """

    def __init__(self, *rounds: list[ScriptItem]) -> None:
        self._rounds = [list(r) for r in rounds]
        self.payloads: list[ChatRequestPayload] = []
        self.api_keys: list[str] = []
        self.delivered: list[bytes] = []
        self.completed = 0
        self.aborted = 0
        self.closed = False

    @property
    def calls(self) -> int:
        return len(self.payloads)

    async def stream(self, payload: ChatRequestPayload, api_key: str) -> AsyncIterator[bytes]:
        self.payloads.append(copy.deepcopy(payload))
        self.api_keys.append(api_key)
        script = self._rounds.pop(0) if self._rounds else []
        finished = False
        try:
            for item in script:
                if isinstance(item, Gate):
                    await item.wait()
                    continue
                if isinstance(item, BaseException):
                    raise item
                self.delivered.append(item)
                yield item
            finished = True
        finally:
            if finished:
                self.completed += 1
            else:
                self.aborted += 1

    async def close(self) -> None:
        self.closed = True


class RecordingListener:
    """Collects every published event."""

    def __init__(self) -> None:
        self.events: list[BaseEngineEvent] = []

    def __call__(self, event: BaseEngineEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [e.type for e in self.events]

    def of_type(self, event_type: str) -> list[BaseEngineEvent]:
        return [e for e in self.events if e.type == event_type]


class RecordingTools(ToolRegistry):
    """A ``ToolRegistry`` that remembers every execute call."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def execute(self, name: str, arguments: dict[str, Any]) -> ToolInvocationResult:
        self.calls.append((name, dict(arguments)))
        return super().execute(name, arguments)


def studio_tools(song: dict[str, Any]) -> RecordingTools:
    """Registry with a small set of workstation tools operating on *song*."""
    tools = RecordingTools()

    @tools.register(
        "set_tempo",
        "Set the tempo (BPM) of the project.",
        {
            "type": "object",
            "properties": {"bpm": {"type": "integer", "minimum": 10, "maximum": 999}},
            "required": ["bpm"],
        },
    )
    def set_tempo(args: dict[str, Any]) -> dict[str, Any]:
        song["tempo"] = args["bpm"]
        return {"success": True, "bpm": args["bpm"]}

    @tools.register(
        "add_track",
        "Add a new track to the song.",
        {
            "type": "object",
            "properties": {"type": {"type": "string"}, "name": {"type": "string"}},
            "required": ["type"],
        },
    )
    def add_track(args: dict[str, Any]) -> dict[str, Any]:
        song.setdefault("tracks", []).append(args.get("name", args["type"]))
        return {"success": True, "track_index": len(song["tracks"]) - 1}

    return tools
