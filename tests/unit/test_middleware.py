"""
Unit tests for handler middleware and event logging.
"""

import json
import logging

import pytest

from lineserver.core.client_table import ClientTable
from lineserver.core.poller import ReadinessPoller
from lineserver.events import ClientData, EventKind, TimerExpired
from lineserver.middleware import (
    EventLoggingMiddleware,
    FunctionMiddleware,
    Middleware,
    MiddlewarePipeline,
    function_middleware,
)


class Tag(Middleware):
    def __init__(self, label, trail):
        self.label = label
        self.trail = trail

    def __call__(self, event, next):
        self.trail.append(self.label)
        next(event)


@pytest.fixture
def client_view():
    """A view on an unoccupied slot with a fake peer."""
    poller = ReadinessPoller()
    table = ClientTable(max_clients=1, buffer_size=8, poller=poller)
    slot = table[0]
    slot.id = 1
    slot.peer_address, slot.peer_port = "192.168.1.50", 54321
    yield table.view(slot)
    poller.close()


class TestMiddlewarePipeline:
    """Tests for MiddlewarePipeline."""

    def test_first_added_runs_first(self):
        trail = []
        pipeline = MiddlewarePipeline()
        pipeline.add(Tag("a", trail)).add(Tag("b", trail))

        handler = pipeline.wrap(lambda event: trail.append("handler"))
        handler(TimerExpired())

        assert trail == ["a", "b", "handler"]
        assert len(pipeline) == 2

    def test_middleware_can_swallow_events(self):
        received = []

        @function_middleware
        def no_timer(event, next):
            if not isinstance(event, TimerExpired):
                next(event)

        handler = MiddlewarePipeline().add(no_timer).wrap(received.append)
        handler(TimerExpired())

        assert received == []
        assert no_timer.name == "no_timer"

    def test_function_middleware_name(self):
        mw = FunctionMiddleware(lambda event, next: next(event), name="passthrough")
        assert mw.name == "passthrough"

    def test_empty_pipeline_returns_handler(self):
        def handler(event):
            pass

        assert MiddlewarePipeline().wrap(handler) is handler


class TestEventLoggingMiddleware:
    """Tests for EventLoggingMiddleware."""

    def test_text_format(self, client_view, caplog):
        mw = EventLoggingMiddleware()

        with caplog.at_level(logging.INFO, logger="lineserver.events"):
            mw(ClientData(client_view, b"hello"), lambda event: None)

        assert "192.168.1.50:54321 client=1 client_data bytes=5" in caplog.text

    def test_json_format(self, client_view, caplog):
        mw = EventLoggingMiddleware(log_format="json")

        with caplog.at_level(logging.INFO, logger="lineserver.events"):
            mw(ClientData(client_view, b"hi"), lambda event: None)

        entry = json.loads(caplog.records[-1].getMessage())
        assert entry["event"] == "client_data"
        assert entry["client_id"] == 1
        assert entry["peer"] == "192.168.1.50:54321"
        assert entry["size"] == 2

    def test_timer_has_no_client(self, caplog):
        mw = EventLoggingMiddleware()

        with caplog.at_level(logging.INFO, logger="lineserver.events"):
            mw(TimerExpired(), lambda event: None)

        assert "- client=- timer_expired bytes=0" in caplog.text

    def test_skip_kinds(self, caplog):
        mw = EventLoggingMiddleware(skip_kinds=[EventKind.TIMER_EXPIRED])

        with caplog.at_level(logging.INFO, logger="lineserver.events"):
            mw(TimerExpired(), lambda event: None)

        assert caplog.records == []

    def test_handler_error_propagates_without_entry(self, caplog):
        mw = EventLoggingMiddleware()

        def failing(event):
            raise ValueError("bad reply")

        with caplog.at_level(logging.INFO, logger="lineserver.events"):
            with pytest.raises(ValueError):
                mw(TimerExpired(), failing)

        assert caplog.records == []
