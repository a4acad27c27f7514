"""Tests for span and system node construction."""

from span_graph.models import END_NODE_ID, START_NODE_ID
from span_graph.nodes import (
    create_span_nodes,
    create_system_nodes,
    format_duration_label,
    get_status_label,
    total_tokens,
)


class TestFormatting:
    """Tests for the node label helpers."""

    def test_duration_rounded_to_ms(self, make_span):
        assert format_duration_label(make_span("s1", 0, 42)) == "42ms"

    def test_duration_from_reported_nanoseconds(self, make_span):
        assert format_duration_label(make_span("s1", 0, 10, duration=1_600_000)) == "2ms"

    def test_duration_halves_round_up(self, make_span):
        assert format_duration_label(make_span("s1", 0, 10, duration=2_500_000)) == "3ms"
        assert format_duration_label(make_span("s2", 0, 10, duration=500_000)) == "1ms"
        assert format_duration_label(make_span("s3", 0, 10, duration=1_499_999)) == "1ms"

    def test_no_duration_for_point_event(self, make_span):
        assert format_duration_label(make_span("s1", 0)) is None

    def test_total_tokens(self, make_span):
        span = make_span(
            "s1", 0, 10, gen_ai_usage_input_tokens=100, gen_ai_usage_output_tokens=50
        )
        assert total_tokens(span) == 150

    def test_total_tokens_with_one_side(self, make_span):
        assert total_tokens(make_span("s1", 0, 10, gen_ai_usage_output_tokens=7)) == 7

    def test_no_tokens(self, make_span):
        assert total_tokens(make_span("s1", 0, 10)) is None

    def test_status_labels(self):
        assert get_status_label(0) == "UNSET"
        assert get_status_label(1) == "OK"
        assert get_status_label(2) == "ERROR"
        assert get_status_label(7) == "UNKNOWN"


class TestCreateSpanNodes:
    """Tests for create_span_nodes function."""

    def test_one_node_per_span_in_order(self, make_span):
        spans = [make_span("a", 0, 10), make_span("b", 5, 20)]

        nodes = create_span_nodes(spans)

        assert [node.id for node in nodes] == ["a", "b"]
        assert all(node.type == "span" for node in nodes)
        assert all(node.position.x == 0 and node.position.y == 0 for node in nodes)

    def test_node_data(self, make_span):
        span = make_span(
            "s1", 0, 1250,
            span_name="openai.chat",
            model_name="gpt-4",
            gen_ai_usage_input_tokens=100,
            gen_ai_usage_output_tokens=50,
            total_cost=0.002,
            status_code=1,
        )

        data = create_span_nodes([span])[0].data

        assert data.span is span
        assert data.label == "openai.chat"
        assert data.category == "llm"
        assert data.duration == "1250ms"
        assert data.tokens == 150
        assert data.cost == 0.002
        assert data.model == "gpt-4"
        assert data.status_code == "OK"
        assert data.has_error is False
        assert data.is_selected is False

    def test_error_status_flags_node(self, make_span):
        span = make_span("s1", 0, 10, status_code=2)

        data = create_span_nodes([span])[0].data

        assert data.has_error is True
        assert data.status_code == "ERROR"

    def test_model_falls_back_to_request_model(self, make_span):
        span = make_span("s1", 0, 10, gen_ai_request_model="claude-3")

        assert create_span_nodes([span])[0].data.model == "claude-3"

    def test_selection(self, make_span):
        spans = [make_span("a", 0, 10), make_span("b", 0, 10)]

        nodes = create_span_nodes(spans, selected_span_id="b")

        assert [node.data.is_selected for node in nodes] == [False, True]

    def test_unknown_selection_selects_nothing(self, make_span):
        nodes = create_span_nodes([make_span("a", 0, 10)], selected_span_id="zzz")

        assert nodes[0].data.is_selected is False

    def test_camel_case_dump(self, make_span):
        dumped = create_span_nodes([make_span("a", 0, 10)])[0].model_dump(by_alias=True)

        assert dumped["type"] == "span"
        assert "isSelected" in dumped["data"]
        assert "hasError" in dumped["data"]


class TestCreateSystemNodes:
    """Tests for create_system_nodes function."""

    def test_start_and_end(self):
        start, end = create_system_nodes()

        assert start.id == START_NODE_ID
        assert end.id == END_NODE_ID
        assert start.type == end.type == "system"
        assert start.data.type == "start"
        assert end.data.type == "end"
        assert start.data.label == "__start__"
        assert end.data.label == "__end__"
