"""Tests for engine events and their fan-out (studio_agent/protocol/)."""
from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from studio_agent.protocol import (
    ContentDeltaEvent,
    EventBus,
    EventQueue,
    ProcessingFinishedEvent,
    ProcessingStartedEvent,
    StreamOpenedEvent,
    ToolCallStartedEvent,
)


class TestEventModels:

    def test_type_tags(self):
        assert ProcessingStartedEvent().type == "processingStarted"
        assert ContentDeltaEvent(text="x").type == "contentDelta"

    def test_events_are_frozen(self):
        event = ContentDeltaEvent(text="x")
        with pytest.raises(ValidationError):
            event.text = "y"

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            ContentDeltaEvent(text="x", extra="nope")

    def test_round_must_be_positive(self):
        with pytest.raises(ValidationError):
            StreamOpenedEvent(round=0)

    def test_tool_call_started_serializes_arguments(self):
        event = ToolCallStartedEvent(tool_call_id="a", name="set_tempo", arguments={"bpm": 140})
        assert event.model_dump() == {
            "type": "toolCallStarted",
            "tool_call_id": "a",
            "name": "set_tempo",
            "arguments": {"bpm": 140},
        }


class TestEventBus:

    def test_listeners_called_in_subscription_order(self):
        bus = EventBus()
        calls: list[str] = []
        bus.subscribe(lambda e: calls.append("first"))
        bus.subscribe(lambda e: calls.append("second"))

        bus.publish(ProcessingStartedEvent())

        assert calls == ["first", "second"]

    def test_unsubscribe(self):
        bus = EventBus()
        calls: list[str] = []
        unsubscribe = bus.subscribe(lambda e: calls.append(e.type))

        unsubscribe()
        unsubscribe()
        bus.publish(ProcessingStartedEvent())

        assert calls == []
        assert bus.listener_count == 0

    def test_failing_listener_is_logged_and_skipped(self, caplog):
        bus = EventBus()
        calls: list[str] = []

        def broken(event):
            raise RuntimeError("observer bug")

        bus.subscribe(broken)
        bus.subscribe(lambda e: calls.append(e.type))

        with caplog.at_level(logging.ERROR, logger="studio_agent.protocol.bus"):
            bus.publish(ProcessingFinishedEvent())

        assert calls == ["processingFinished"]
        assert "Event listener failed" in caplog.text

    def test_listener_may_unsubscribe_itself_while_handling(self):
        bus = EventBus()
        calls: list[str] = []
        handle: dict = {}

        def once(event):
            calls.append("once")
            handle["unsubscribe"]()

        handle["unsubscribe"] = bus.subscribe(once)
        bus.subscribe(lambda e: calls.append("always"))

        bus.publish(ProcessingStartedEvent())
        bus.publish(ProcessingStartedEvent())

        assert calls == ["once", "always", "always"]


class TestEventQueue:

    @pytest.mark.anyio
    async def test_iterates_buffered_events_until_closed(self):
        bus = EventBus()
        queue = EventQueue(bus)

        bus.publish(ProcessingStartedEvent())
        bus.publish(ContentDeltaEvent(text="hi"))
        queue.close()
        bus.publish(ProcessingFinishedEvent())

        seen = [event.type async for event in queue]

        assert seen == ["processingStarted", "contentDelta"]
        assert queue.closed
        assert bus.listener_count == 0
