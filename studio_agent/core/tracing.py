"""
Exchange tracing for the conversation engine.

Every exchange gets a trace_id that appears in each log line it causes:
- streaming rounds
- tool calls
- cancellation and errors

Usage:
    from studio_agent.core.tracing import create_trace_context, trace_span

    ctx = create_trace_context(conversation_id=engine.conversation_id)
    with trace_span(ctx, "round_1") as span:
        span.set_attribute("messages", len(payload["messages"]))
        ...
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional

logger = logging.getLogger(__name__)


def _short_uuid() -> str:
    return uuid.uuid4().hex[:8]


class SpanStatus(str, Enum):
    """How a span ended."""
    OK = "ok"
    ERROR = "error"
    CANCELLED = "cancelled"  # task cancellation or engine.cancel()


@dataclass
class Span:
    """One timed step of an exchange (a streaming round or a tool call)."""
    name: str
    trace_id: str
    parent_span_id: Optional[str] = None
    span_id: str = field(default_factory=_short_uuid)
    started: float = field(default_factory=time.monotonic)
    ended: Optional[float] = None
    status: SpanStatus = SpanStatus.OK
    attributes: dict[str, Any] = field(default_factory=dict)

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def set_error(self, error: BaseException) -> None:
        self.status = SpanStatus.ERROR
        self.attributes["error.type"] = type(error).__name__
        self.attributes["error.message"] = str(error)

    def finish(self) -> None:
        if self.ended is None:
            self.ended = time.monotonic()

    @property
    def duration_ms(self) -> Optional[float]:
        if self.ended is None:
            return None
        return (self.ended - self.started) * 1000


@dataclass
class TraceContext:
    """Spans recorded for one exchange, plus the stack of open ones."""
    trace_id: str
    conversation_id: Optional[str] = None
    spans: list[Span] = field(default_factory=list)
    _open: list[Span] = field(default_factory=list)

    @property
    def short_id(self) -> str:
        return self.trace_id[:8]

    @property
    def current_span(self) -> Optional[Span]:
        return self._open[-1] if self._open else None

    def open_span(self, name: str, attributes: Optional[dict[str, Any]] = None) -> Span:
        parent = self.current_span
        span = Span(
            name=name,
            trace_id=self.trace_id,
            parent_span_id=parent.span_id if parent else None,
            attributes=dict(attributes or {}),
        )
        self.spans.append(span)
        self._open.append(span)
        return span

    def close_span(self, span: Span) -> None:
        span.finish()
        if span in self._open:
            self._open.remove(span)


def create_trace_context(conversation_id: Optional[str] = None) -> TraceContext:
    """Create a new trace context for an exchange."""
    return TraceContext(trace_id=str(uuid.uuid4()), conversation_id=conversation_id)


@contextmanager
def trace_span(
    ctx: TraceContext,
    name: str,
    attributes: Optional[dict[str, Any]] = None,
) -> Iterator[Span]:
    """Time a step of the exchange and log it when it ends.

    An exception marks the span ERROR; task cancellation (a
    ``BaseException``) marks it CANCELLED.  Either way it is re-raised.
    """
    span = ctx.open_span(name, attributes)
    try:
        yield span
    except Exception as e:
        span.set_error(e)
        raise
    except BaseException:
        span.status = SpanStatus.CANCELLED
        raise
    finally:
        ctx.close_span(span)
        log_span(span)


def log_span(span: Span) -> None:
    """Log a finished span; attributes travel in ``extra``."""
    prefix = f"[{span.trace_id[:8]}]"
    extra = {
        "trace_id": span.trace_id,
        "span_id": span.span_id,
        "span_name": span.name,
        "duration_ms": span.duration_ms,
        "status": span.status.value,
        **span.attributes,
    }
    if span.status == SpanStatus.ERROR:
        logger.error(f"{prefix} ✗ {span.name}: {span.attributes.get('error.message', '')}", extra=extra)
    elif span.status == SpanStatus.CANCELLED:
        logger.info(f"{prefix} ⏹ {span.name} cancelled", extra=extra)
    else:
        logger.debug(f"{prefix} ✓ {span.name} ({span.duration_ms or 0:.0f}ms)", extra=extra)


def log_tool_call(
    trace_id: str,
    tool_name: str,
    params: dict[str, Any],
    success: bool,
    error: Optional[str] = None,
) -> None:
    """One line per executed tool call: INFO on success, WARNING on failure."""
    if success:
        logger.info(f"[{trace_id[:8]}] 🔧 {tool_name} ok", extra={
            "trace_id": trace_id,
            "event": "tool_call",
            "tool_name": tool_name,
            "success": True,
            "params_keys": sorted(params),
        })
    else:
        logger.warning(f"[{trace_id[:8]}] 🔧 {tool_name} failed: {error}", extra={
            "trace_id": trace_id,
            "event": "tool_call",
            "tool_name": tool_name,
            "success": False,
            "error": error,
            "params_keys": sorted(params),
        })


def log_stream_round(
    trace_id: str,
    model: str,
    round_number: int,
    content_chars: int,
    reasoning_chars: int,
    tool_calls: int,
    skipped_events: int,
    duration_ms: float,
) -> None:
    """Summarize one completed streaming round."""
    logger.info(
        f"[{trace_id[:8]}] 🤖 Round {round_number}: {model} "
        f"({content_chars} chars, {tool_calls} tool calls, {duration_ms:.0f}ms)",
        extra={
            "trace_id": trace_id,
            "event": "stream_round",
            "model": model,
            "round": round_number,
            "content_chars": content_chars,
            "reasoning_chars": reasoning_chars,
            "tool_calls": tool_calls,
            "skipped_events": skipped_events,
            "duration_ms": duration_ms,
        },
    )
