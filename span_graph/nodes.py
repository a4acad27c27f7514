"""Visual node construction for span graphs."""

import math
from typing import List, Optional, Sequence, Tuple

from .categories import detect_category_for_span
from .models import (
    END_NODE_ID,
    START_NODE_ID,
    Span,
    SpanNode,
    SpanNodeData,
    SystemNode,
    SystemNodeData,
)

STATUS_LABELS = {0: "UNSET", 1: "OK", 2: "ERROR"}


def get_status_label(status_code: int) -> str:
    """Map an OTEL status code to its label, ``UNKNOWN`` if unrecognised."""
    return STATUS_LABELS.get(status_code, "UNKNOWN")


def format_duration_label(span: Span) -> Optional[str]:
    """Duration rounded to whole milliseconds, e.g. ``"42ms"``.

    Returns None for spans with neither a reported duration nor an end time.
    """
    duration_ns = span.duration_ns
    if duration_ns is None:
        return None
    # halves round up, matching the web UI
    return f"{math.floor(duration_ns / 1_000_000 + 0.5)}ms"


def total_tokens(span: Span) -> Optional[int]:
    """Input plus output tokens; None when no tokens were recorded."""
    total = (span.gen_ai_usage_input_tokens or 0) + (span.gen_ai_usage_output_tokens or 0)
    return total or None


def create_span_nodes(
    spans: Sequence[Span],
    selected_span_id: Optional[str] = None,
) -> List[SpanNode]:
    """Create one span node per span, positioned at the origin.

    Parameters
    ----------
    spans : Sequence[Span]
        Flat list of spans.
    selected_span_id : Optional[str]
        Id of the span currently selected by the user, if any.

    Returns
    -------
    List[SpanNode]
        Nodes in the same order as ``spans``.
    """
    return [
        SpanNode(
            id=span.span_id,
            data=SpanNodeData(
                span=span,
                category=detect_category_for_span(span),
                label=span.span_name,
                duration=format_duration_label(span),
                tokens=total_tokens(span),
                cost=span.total_cost,
                has_error=span.has_error or span.status_code == 2,
                is_selected=selected_span_id is not None and span.span_id == selected_span_id,
                model=span.model_name or span.gen_ai_request_model,
                status_code=get_status_label(span.status_code),
            ),
        )
        for span in spans
    ]


def create_system_nodes() -> Tuple[SystemNode, SystemNode]:
    """Create the synthetic ``__start__`` and ``__end__`` nodes."""
    start_node = SystemNode(
        id=START_NODE_ID,
        data=SystemNodeData(type="start", label=START_NODE_ID),
    )
    end_node = SystemNode(
        id=END_NODE_ID,
        data=SystemNodeData(type="end", label=END_NODE_ID),
    )
    return start_node, end_node
