"""Tests for exchange tracing (studio_agent/core/tracing.py)."""
from __future__ import annotations

import asyncio
import logging

import pytest

from studio_agent.core.tracing import (
    SpanStatus,
    create_trace_context,
    log_stream_round,
    trace_span,
)


def test_nested_spans_record_parent():
    trace = create_trace_context(conversation_id="conv-1")

    with trace_span(trace, "round_1") as outer:
        with trace_span(trace, "tool:set_tempo") as inner:
            pass

    assert inner.parent_span_id == outer.span_id
    assert trace.current_span is None
    assert outer.duration_ms is not None
    assert trace.conversation_id == "conv-1"
    assert [s.name for s in trace.spans] == ["round_1", "tool:set_tempo"]


def test_exception_marks_span_as_error():
    trace = create_trace_context()

    with pytest.raises(ValueError):
        with trace_span(trace, "round_1"):
            raise ValueError("bad chunk")

    span = trace.spans[0]
    assert span.status == SpanStatus.ERROR
    assert span.attributes["error.message"] == "bad chunk"


def test_cancellation_marks_span_as_cancelled():
    trace = create_trace_context()

    with pytest.raises(asyncio.CancelledError):
        with trace_span(trace, "round_1"):
            raise asyncio.CancelledError()

    assert trace.spans[0].status == SpanStatus.CANCELLED


def test_stream_round_log_carries_structured_fields(caplog):
    with caplog.at_level(logging.INFO, logger="studio_agent.core.tracing"):
        log_stream_round("abcdef123456", "test/model", 2, 11, 4, 1, 0, 12.5)

    record = caplog.records[-1]
    assert record.message.startswith("[abcdef12] 🤖 Round 2: test/model")
    assert record.round == 2
    assert record.tool_calls == 1
