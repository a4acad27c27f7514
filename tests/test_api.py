"""Tests for the Tracer API client.

These tests mock HTTP requests at the transport level using respx.
This validates that api.py makes correct requests without hitting real servers.
"""

import pytest
import httpx

from span_graph.api import (
    get_trace_detail, check_health, spans_from_trace_detail,
    API_URL, API_KEY,
)


class TestGetTraceDetail:
    """Tests for get_trace_detail function."""

    @pytest.mark.asyncio
    async def test_includes_trace_id_in_path(self, respx_mock):
        """Should include trace_id in URL path."""
        route = respx_mock.get(f"{API_URL}/api/traces/trace-abc-123").mock(
            return_value=httpx.Response(200, json={"trace": {}, "spans": []})
        )

        await get_trace_detail("trace-abc-123")

        assert route.called

    @pytest.mark.asyncio
    async def test_sends_api_key(self, respx_mock):
        """Should authenticate with the X-API-Key header."""
        route = respx_mock.get(f"{API_URL}/api/traces/t1").mock(
            return_value=httpx.Response(200, json={"spans": []})
        )

        await get_trace_detail("t1")

        assert route.calls[0].request.headers["X-API-Key"] == API_KEY

    @pytest.mark.asyncio
    async def test_returns_parsed_response(self, respx_mock, sample_span_payload):
        """Should return the trace detail payload."""
        respx_mock.get(f"{API_URL}/api/traces/trace-1").mock(
            return_value=httpx.Response(200, json={
                "trace": {"trace_id": "trace-1"},
                "spans": [sample_span_payload],
            })
        )

        result = await get_trace_detail("trace-1")

        assert result["trace"]["trace_id"] == "trace-1"
        assert result["spans"][0]["span_id"] == "span-llm"

    @pytest.mark.asyncio
    async def test_raises_on_not_found(self, respx_mock):
        """Should raise HTTPStatusError for missing traces."""
        respx_mock.get(f"{API_URL}/api/traces/missing").mock(
            return_value=httpx.Response(404, json={"detail": "Trace not found"})
        )

        with pytest.raises(httpx.HTTPStatusError):
            await get_trace_detail("missing")


class TestCheckHealth:
    """Tests for check_health function."""

    @pytest.mark.asyncio
    async def test_returns_true_when_healthy(self, respx_mock):
        """Should return True when /health returns 200."""
        respx_mock.get(f"{API_URL}/health").mock(
            return_value=httpx.Response(200, json={"status": "healthy"})
        )

        assert await check_health() is True

    @pytest.mark.asyncio
    async def test_returns_false_on_error_status(self, respx_mock):
        """Should return False when /health returns non-200."""
        respx_mock.get(f"{API_URL}/health").mock(
            return_value=httpx.Response(503)
        )

        assert await check_health() is False

    @pytest.mark.asyncio
    async def test_returns_false_on_connection_error(self, respx_mock):
        """Should return False when the service is unreachable."""
        respx_mock.get(f"{API_URL}/health").mock(
            side_effect=httpx.ConnectError("Connection refused")
        )

        assert await check_health() is False


    @pytest.mark.asyncio
    async def test_returns_false_on_timeout(self, respx_mock):
        """Should return False when the service does not answer in time."""
        respx_mock.get(f"{API_URL}/health").mock(
            side_effect=httpx.ReadTimeout("Timed out")
        )

        assert await check_health() is False


class TestSpansFromTraceDetail:
    """Tests for spans_from_trace_detail function."""

    def test_links_flat_spans(self, sample_span_payload):
        root = {
            "span_id": "span-root",
            "name": "agent.run",
            "start_time": "2025-01-15T10:00:00Z",
            "end_time": "2025-01-15T10:00:02Z",
        }

        roots = spans_from_trace_detail({"spans": [sample_span_payload, root]})

        assert [span.span_id for span in roots] == ["span-root"]
        assert [child.span_id for child in roots[0].child_spans] == ["span-llm"]

    def test_orphans_become_roots(self, sample_span_payload):
        roots = spans_from_trace_detail({"spans": [sample_span_payload]})

        assert [span.span_id for span in roots] == ["span-llm"]
        assert roots[0].child_spans == []

    def test_nested_payload_returned_as_is(self):
        payload = {"spans": [{
            "span_id": "root",
            "start_time": "2025-01-15T10:00:00Z",
            "child_spans": [
                {"span_id": "child", "parent_span_id": "root", "start_time": "2025-01-15T10:00:01Z"},
            ],
        }]}

        roots = spans_from_trace_detail(payload)

        assert len(roots) == 1
        assert roots[0].child_spans[0].span_id == "child"

    def test_missing_spans_key(self):
        assert spans_from_trace_detail({"trace": {}}) == []

    def test_cycle_logs_warning(self, caplog):
        payload = {"spans": [
            {"span_id": "a", "parent_span_id": "b", "start_time": "2025-01-15T10:00:00Z"},
            {"span_id": "b", "parent_span_id": "a", "start_time": "2025-01-15T10:00:00Z"},
        ]}

        assert spans_from_trace_detail(payload) == []
        assert "no root span" in caplog.text
