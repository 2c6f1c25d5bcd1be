"""Conversation engine — owns history and drives the exchange state machine.

    Idle ──send_message──▶ Processing ──final answer / error / empty / cancel──▶ Idle
                              │   ▲
                              ▼   │ (tool calls: execute, then a new round)
                            round N+1

One exchange is active at a time.  Everything that touches history or the
stream accumulator runs on the exchange task, on the caller's event loop,
so chunk folding, finalization and tool execution never interleave.

Cancellation uses a generation counter: ``cancel()`` bumps it, and every
step of the exchange task re-checks it after each publish and each awaited
fragment.  Work belonging to a stale generation is dropped without touching
history.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import AsyncIterator, Callable, Optional

from studio_agent.config import Settings, settings as default_settings
from studio_agent.contracts.llm_types import ChatMessage, ChatRequestPayload
from studio_agent.core.conversation import (
    ConversationTurn,
    EngineState,
    ToolInvocationRequest,
    history_to_messages,
)
from studio_agent.core.errors import (
    AlreadyProcessingError,
    ApiError,
    NotConfiguredError,
    ToolRoundLimitError,
    TransportError,
)
from studio_agent.core.prompts import system_prompt
from studio_agent.core.stream_assembler import StreamAssembler
from studio_agent.core.tool_sequencer import ToolCallSequencer
from studio_agent.core.tracing import (
    TraceContext,
    create_trace_context,
    log_stream_round,
    trace_span,
)
from studio_agent.protocol.bus import EventBus, EventListener, EventQueue
from studio_agent.protocol.events import (
    BaseEngineEvent,
    ErrorEvent,
    ProcessingFinishedEvent,
    ProcessingStartedEvent,
    ResponseFinalizedEvent,
    StreamClosedEvent,
    StreamOpenedEvent,
)
from studio_agent.services.config_store import ConfigStore, MemoryConfigStore
from studio_agent.tools.registry import ToolProvider, tool_definitions
from studio_agent.transport.base import StreamTransport
from studio_agent.transport.httpx_transport import HttpxStreamTransport

logger = logging.getLogger(__name__)

_KEY_API_KEY = "apikey"
_KEY_MODEL = "model"


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class ConversationEngine:
    """The one running conversation.

    Construct it explicitly and pass it to whatever needs it::

        engine = ConversationEngine(tools=registry, config_store=store,
                                    tempo_provider=lambda: song.tempo)
        engine.subscribe(print)
        await engine.send_message("set tempo to 140")
    """

    def __init__(
        self,
        tools: ToolProvider,
        transport: Optional[StreamTransport] = None,
        config_store: Optional[ConfigStore] = None,
        tempo_provider: Optional[Callable[[], int]] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self._settings = config or default_settings
        self._tools = tools
        self._transport: StreamTransport = transport or HttpxStreamTransport(self._settings)
        self._store: ConfigStore = config_store or MemoryConfigStore()
        self._tempo_provider = tempo_provider

        ns = self._settings.config_namespace
        self._api_key = self._store.get(ns, _KEY_API_KEY, "") or (self._settings.api_key or "")
        self._model = self._store.get(ns, _KEY_MODEL, "") or self._settings.default_model

        self.bus = EventBus()
        self.conversation_id = str(uuid.uuid4())
        self._sequencer = ToolCallSequencer(tools, self._publish)

        self._history: list[ConversationTurn] = []
        self._state = EngineState.IDLE
        self._generation = 0
        self._task: Optional[asyncio.Task[None]] = None
        self._assembler: Optional[StreamAssembler] = None
        self._pending_tool_calls: list[ToolInvocationRequest] = []
        self._round_mark = 0  # history length when the current round began
        self._last_reasoning = ""

    # ── Configuration ──────────────────────────────────────────────────────

    def configure(self, api_key: str, model: str) -> None:
        """Update and persist the credential and model id.

        Does not touch history or state; an active exchange keeps the values
        it started each round with until its next round.
        """
        ns = self._settings.config_namespace
        self._api_key = api_key
        self._model = model or self._settings.default_model
        self._store.set(ns, _KEY_API_KEY, api_key)
        self._store.set(ns, _KEY_MODEL, self._model)
        logger.info(f"Engine configured: model={self._model}, api_key_set={bool(api_key)}")

    @property
    def api_key(self) -> str:
        return self._api_key

    @property
    def model(self) -> str:
        return self._model

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    # ── Read accessors ─────────────────────────────────────────────────────

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_processing(self) -> bool:
        return self._state == EngineState.PROCESSING

    @property
    def history(self) -> tuple[ConversationTurn, ...]:
        return tuple(self._history)

    @property
    def pending_tool_calls(self) -> tuple[ToolInvocationRequest, ...]:
        return tuple(self._pending_tool_calls)

    @property
    def last_reasoning(self) -> str:
        """Reasoning text accumulated by the most recent completed round."""
        return self._last_reasoning

    # ── Observers ──────────────────────────────────────────────────────────

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        return self.bus.subscribe(listener)

    def events(self) -> EventQueue:
        """An ``async for`` view of every event published from now on."""
        return EventQueue(self.bus)

    def _publish(self, event: BaseEngineEvent) -> None:
        self.bus.publish(event)

    # ── Public operations ──────────────────────────────────────────────────

    def send_message(self, text: str) -> asyncio.Task[None]:
        """Start an exchange for *text*; returns the task running it.

        Must be called from a running event loop.  Raises
        ``NotConfiguredError`` or ``AlreadyProcessingError`` without
        changing anything.
        """
        if not self.is_configured:
            raise NotConfiguredError()
        if self._state == EngineState.PROCESSING:
            raise AlreadyProcessingError()
        loop = asyncio.get_running_loop()

        self._history.append(ConversationTurn.user(text))
        self._round_mark = len(self._history)
        self._state = EngineState.PROCESSING
        self._generation += 1
        generation = self._generation
        trace = create_trace_context(conversation_id=self.conversation_id)
        logger.info(f"[{trace.short_id}] 💬 Exchange started ({len(self._history)} turns)")

        self._publish(ProcessingStartedEvent())
        # Created after the publish so a listener-triggered cancel leaves a
        # task that simply observes the stale generation and returns.
        task = loop.create_task(self._run_exchange(generation, trace))
        if generation == self._generation:
            self._task = task
        return task

    def cancel(self) -> None:
        """Abort the active exchange, if any.  Idempotent.

        History is rolled back to where it stood when the interrupted round
        began; the user turn that started the exchange is kept.
        """
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not _current_task():
            # From inside the exchange task (a listener) the generation
            # check unwinds it instead, closing the stream cleanly.
            task.cancel()
        if self._assembler is not None:
            self._assembler.reset()
            self._assembler = None
        self._pending_tool_calls = []

        if self._state == EngineState.PROCESSING:
            del self._history[self._round_mark:]
            self._state = EngineState.IDLE
            logger.info(f"🛑 Exchange cancelled; history kept at {len(self._history)} turns")
            self._publish(ProcessingFinishedEvent())

    def reset_history(self) -> None:
        """Cancel any exchange and forget the conversation."""
        self.cancel()
        self._history.clear()
        self._pending_tool_calls = []
        self._round_mark = 0
        self._last_reasoning = ""
        self.conversation_id = str(uuid.uuid4())

    async def wait_idle(self) -> None:
        """Wait until the currently running exchange (if any) has ended."""
        task = self._task
        if task is not None and not task.done():
            await asyncio.wait({task})

    async def aclose(self) -> None:
        """Cancel any exchange and release the transport."""
        self.cancel()
        await self._transport.close()

    # ── Request building ───────────────────────────────────────────────────

    def _current_tempo(self) -> int:
        if self._tempo_provider is None:
            return self._settings.default_tempo
        try:
            return int(self._tempo_provider())
        except Exception:
            logger.warning("Tempo provider failed; using default tempo", exc_info=True)
            return self._settings.default_tempo

    def build_request_payload(self) -> ChatRequestPayload:
        """The exact body of the next streaming request."""
        messages: list[ChatMessage] = [
            {"role": "system", "content": system_prompt(self._current_tempo())}
        ]
        messages.extend(history_to_messages(self._history))
        return {
            "model": self._model,
            "stream": True,
            "messages": messages,
            "tools": tool_definitions(self._tools.list_declarations()),
        }

    # ── Exchange lifecycle ─────────────────────────────────────────────────

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _finish(self) -> None:
        """Processing → Idle for a normally ending exchange."""
        self._state = EngineState.IDLE
        self._assembler = None
        self._pending_tool_calls = []
        if self._task is _current_task():
            self._task = None
        self._publish(ProcessingFinishedEvent())

    def _fail(self, message: str) -> None:
        self._publish(ErrorEvent(message=message))
        self._finish()

    async def _run_exchange(self, generation: int, trace: TraceContext) -> None:
        max_rounds = self._settings.max_tool_rounds
        round_number = 0
        try:
            while self._is_current(generation):
                if max_rounds and round_number >= max_rounds:
                    raise ToolRoundLimitError(max_rounds)
                round_number += 1
                self._round_mark = len(self._history)
                finished = await self._run_round(generation, trace, round_number)
                if finished:
                    return
        except asyncio.CancelledError:
            if not self._is_current(generation):
                return  # cancel() already restored a consistent state
            logger.info(f"[{trace.short_id}] Exchange task cancelled externally")
            self._task = None
            self.cancel()
            raise
        except (TransportError, ApiError, ToolRoundLimitError) as e:
            if self._is_current(generation):
                logger.warning(f"[{trace.short_id}] Exchange failed: {e}")
                if self._assembler is not None and self._assembler.accumulator.error is not None:
                    # the stream already reported its own error for this round
                    self._finish()
                else:
                    self._fail(e.user_message)
        except Exception as e:
            if self._is_current(generation):
                logger.exception(f"[{trace.short_id}] Unexpected error in exchange")
                self._fail(f"Unexpected error: {e}")

    async def _stream_round(
        self,
        generation: int,
        assembler: StreamAssembler,
        payload: ChatRequestPayload,
    ) -> bool:
        """Consume one response stream; returns False if the exchange went stale."""
        stream: AsyncIterator[bytes] = self._transport.stream(payload, self._api_key)
        try:
            async for fragment in stream:
                if not self._is_current(generation):
                    return False
                for event in assembler.feed(fragment):
                    self._publish(event)
                    if not self._is_current(generation):
                        return False
                if assembler.accumulator.done:
                    break
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
        return self._is_current(generation)

    async def _run_round(self, generation: int, trace: TraceContext, round_number: int) -> bool:
        """Run one streaming round; returns True when the exchange is over."""
        payload = self.build_request_payload()
        assembler = StreamAssembler()
        self._assembler = assembler
        acc = assembler.accumulator
        start = time.time()

        with trace_span(trace, f"round_{round_number}") as span:
            span.set_attribute("messages", len(payload["messages"]))
            span.set_attribute("tools", len(payload["tools"]))

            self._publish(StreamOpenedEvent(round=round_number))
            if not self._is_current(generation):
                return True
            try:
                if not await self._stream_round(generation, assembler, payload):
                    return True
            finally:
                if self._is_current(generation):
                    self._publish(StreamClosedEvent(round=round_number))
            if not self._is_current(generation):
                return True

            span.set_attribute("tool_calls", len(acc.tool_calls))
            self._last_reasoning = acc.reasoning
            log_stream_round(
                trace.trace_id,
                self._model,
                round_number,
                len(acc.content),
                len(acc.reasoning),
                len(acc.tool_calls),
                acc.events_skipped,
                (time.time() - start) * 1000,
            )

            if acc.error is not None:
                # Already reported as an ErrorEvent while folding.
                self._finish()
                return True

            if acc.has_tool_calls:
                requests = acc.tool_requests()
                self._history.append(ConversationTurn.assistant(acc.content, acc.tool_calls))
                self._assembler = None
                self._pending_tool_calls = list(requests)
                outcome = self._sequencer.run(
                    requests,
                    self._history.append,
                    lambda: self._is_current(generation),
                    trace,
                )
                if not outcome.drained:
                    return True
                self._pending_tool_calls = []
                span.set_attribute("tool_failures", outcome.failed)
                return False

            if acc.content:
                content = acc.content
                self._history.append(ConversationTurn.assistant(content))
                self._finish()
                self._publish(ResponseFinalizedEvent(text=content))
                return True

            logger.info(f"[{trace.short_id}] Round {round_number} produced no content or tool calls")
            self._finish()
            return True
