"""Edge construction for span graphs.

Two mutually exclusive strategies produce the main edges of a graph:

- hierarchy edges, one per parent -> child relationship
- step edges, a full bipartite connection between consecutive execution steps

System edges then attach the synthetic ``__start__`` / ``__end__`` nodes.
"""

import logging
from typing import List, Sequence

from .models import END_NODE_ID, START_NODE_ID, EdgeStyle, GraphEdge, Span, StepGroup
from .steps import build_step_edges
from .tree import build_children_index, find_leaf_spans, find_root_spans

logger = logging.getLogger(__name__)

SYSTEM_EDGE_DASHARRAY = "5,5"


def build_hierarchy_edges(spans: Sequence[Span]) -> List[GraphEdge]:
    """One parent -> child edge for every span whose parent is in ``spans``."""
    span_ids = {span.span_id for span in spans}
    edges: List[GraphEdge] = []

    for span in spans:
        if span.parent_span_id and span.parent_span_id in span_ids:
            edges.append(
                GraphEdge(
                    id=f"hierarchy-{span.parent_span_id}-{span.span_id}",
                    source=span.parent_span_id,
                    target=span.span_id,
                )
            )

    return edges


def _start_edge(span: Span) -> GraphEdge:
    return GraphEdge(
        id=f"{START_NODE_ID}-{span.span_id}",
        source=START_NODE_ID,
        target=span.span_id,
        style=EdgeStyle(stroke_dasharray=SYSTEM_EDGE_DASHARRAY),
    )


def _end_edge(span: Span) -> GraphEdge:
    return GraphEdge(
        id=f"{span.span_id}-{END_NODE_ID}",
        source=span.span_id,
        target=END_NODE_ID,
        style=EdgeStyle(stroke_dasharray=SYSTEM_EDGE_DASHARRAY),
    )


def connect_system_nodes(
    spans: Sequence[Span],
    groups: Sequence[StepGroup],
    group_by_step: bool,
) -> List[GraphEdge]:
    """Attach ``__start__`` and ``__end__`` to the graph.

    Parameters
    ----------
    spans : Sequence[Span]
        Flat list of spans.
    groups : Sequence[StepGroup]
        Step groups built from ``spans``.
    group_by_step : bool
        If True, start connects to the first step and the last step connects
        to end. Otherwise start connects to root spans and leaf spans connect
        to end.

    Returns
    -------
    List[GraphEdge]
        Start edges followed by end edges, all dashed.
    """
    if group_by_step and groups:
        starts = groups[0].spans
        ends = groups[-1].spans
    else:
        starts = find_root_spans(spans)
        ends = find_leaf_spans(spans, build_children_index(spans))

    return [_start_edge(span) for span in starts] + [_end_edge(span) for span in ends]


def build_graph_edges(
    spans: Sequence[Span],
    groups: Sequence[StepGroup],
    *,
    group_by_step: bool,
    show_system_nodes: bool,
) -> List[GraphEdge]:
    """Build the complete edge list for a graph.

    Step edges are used when ``group_by_step`` is set and there is more than
    one step; otherwise hierarchy edges. System edges are appended when
    ``show_system_nodes`` is set.
    """
    if group_by_step and len(groups) > 1:
        edges = build_step_edges(groups)
        strategy = "step"
    else:
        edges = build_hierarchy_edges(spans)
        strategy = "hierarchy"

    if show_system_nodes:
        edges = edges + connect_system_nodes(spans, groups, group_by_step)

    logger.debug(f"Built {len(edges)} edges ({strategy} strategy, system nodes: {show_system_nodes})")
    return edges
