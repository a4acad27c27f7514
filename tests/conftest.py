"""Shared pytest fixtures for span graph tests."""

from datetime import datetime, timedelta, timezone

import pytest
import respx

from span_graph.models import Span

BASE_TIME = datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def respx_mock():
    """Fixture that provides a respx mock router.

    Configuration:
        - assert_all_mocked=False: Allows unmocked requests to pass through.
        - assert_all_called=True: Ensures every mock defined is actually used.
          Catches typos in mock URLs and dead mocks.
    """
    with respx.mock(assert_all_mocked=False, assert_all_called=True) as mock:
        yield mock


@pytest.fixture
def base_time():
    return BASE_TIME


@pytest.fixture
def make_span():
    """Factory for spans timed in milliseconds relative to BASE_TIME.

    ``end_ms=None`` creates a span that never ended (a point event).
    """

    def _make_span(span_id, start_ms=0, end_ms=None, parent=None, children=None, **fields):
        return Span(
            span_id=span_id,
            trace_id="trace-1",
            parent_span_id=parent,
            span_name=fields.pop("span_name", span_id),
            start_time=BASE_TIME + timedelta(milliseconds=start_ms),
            end_time=(
                BASE_TIME + timedelta(milliseconds=end_ms) if end_ms is not None else None
            ),
            child_spans=children or [],
            **fields,
        )

    return _make_span


@pytest.fixture
def simple_tree(make_span):
    """Root (0-100ms) with two children A (10-40ms) and B (50-90ms)."""
    child_a = make_span("a", 10, 40, parent="root")
    child_b = make_span("b", 50, 90, parent="root")
    root = make_span("root", 0, 100, children=[child_a, child_b])
    return [root]


@pytest.fixture
def sample_span_payload():
    """Span as returned by the LLM Tracer API"""
    return {
        "span_id": "span-llm",
        "trace_id": "trace-1",
        "parent_span_id": "span-root",
        "name": "openai.chat",
        "span_type": "llm",
        "start_time": "2025-01-15T10:00:00.250Z",
        "end_time": "2025-01-15T10:00:01.500Z",
        "duration_ms": 1250,
        "model": "gpt-4",
        "tokens_input": 100,
        "tokens_output": 50,
        "cost_usd": 0.002,
    }
