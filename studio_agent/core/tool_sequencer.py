"""Tool-call sequencer.

Executes the tool calls of one assistant turn strictly one at a time, in
the order the model declared them.  Later calls may depend on side effects
of earlier ones (a call that targets the track an earlier call created), so
there is no parallelism here.

For each request:
  1. publish ``ToolCallStartedEvent``
  2. execute through the ``ToolProvider`` (or fail fast on bad arguments)
  3. append a tool turn answering the request id
  4. publish ``ToolCallFinishedEvent``

The caller (the engine) issues the next streaming round once ``run``
reports the list fully drained.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from studio_agent.core.conversation import (
    ConversationTurn,
    ToolInvocationRequest,
    ToolInvocationResult,
)
from studio_agent.core.tracing import TraceContext, log_tool_call, trace_span
from studio_agent.protocol.events import (
    BaseEngineEvent,
    ToolCallFinishedEvent,
    ToolCallStartedEvent,
)
from studio_agent.tools.registry import ToolProvider

logger = logging.getLogger(__name__)


@dataclass
class SequencerOutcome:
    """What one ``run`` did."""

    results: list[tuple[ToolInvocationRequest, ToolInvocationResult]] = field(default_factory=list)
    drained: bool = True  # False when stopped early by cancellation

    @property
    def executed(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> int:
        return sum(1 for _, r in self.results if not r.succeeded)


class ToolCallSequencer:
    """Runs tool requests in order against a ``ToolProvider``."""

    def __init__(
        self,
        tools: ToolProvider,
        publish: Callable[[BaseEngineEvent], None],
    ) -> None:
        self._tools = tools
        self._publish = publish

    def execute_one(self, request: ToolInvocationRequest) -> ToolInvocationResult:
        """Execute a single request; never raises."""
        if request.argument_error is not None:
            return ToolInvocationResult.failure(
                f"invalid arguments for {request.name or '<unnamed>'}: {request.argument_error}"
            )
        if not request.is_executable:
            return ToolInvocationResult.failure("tool call has no function name")
        try:
            return self._tools.execute(request.name, request.arguments)
        except Exception as e:
            # Third-party providers may not honour the never-raise contract.
            logger.warning(f"Tool provider raised for '{request.name}': {e}", exc_info=True)
            return ToolInvocationResult.failure(f"tool execution error: {e}")

    def run(
        self,
        requests: list[ToolInvocationRequest],
        append_turn: Callable[[ConversationTurn], None],
        is_current: Callable[[], bool],
        trace: Optional[TraceContext] = None,
    ) -> SequencerOutcome:
        """Execute *requests* in order.

        *is_current* is checked before each step and after every publish;
        once it returns False (the exchange was cancelled, possibly by a
        listener) nothing more is executed, appended, or published.
        """
        outcome = SequencerOutcome()
        for request in requests:
            if not is_current():
                outcome.drained = False
                return outcome

            self._publish(ToolCallStartedEvent(
                tool_call_id=request.id,
                name=request.name,
                arguments=dict(request.arguments),
            ))
            if not is_current():
                outcome.drained = False
                return outcome

            if trace is not None:
                with trace_span(trace, f"tool:{request.name or '<unnamed>'}") as span:
                    result = self.execute_one(request)
                    span.set_attribute("succeeded", result.succeeded)
                log_tool_call(
                    trace.trace_id,
                    request.name,
                    request.arguments,
                    result.succeeded,
                    None if result.succeeded else result.error_message,
                )
            else:
                result = self.execute_one(request)

            if not is_current():
                outcome.drained = False
                return outcome

            append_turn(ConversationTurn.tool(request.id, result.text, name=request.name))
            outcome.results.append((request, result))

            self._publish(ToolCallFinishedEvent(
                tool_call_id=request.id,
                name=request.name,
                result=result.text,
                succeeded=result.succeeded,
            ))
        return outcome
