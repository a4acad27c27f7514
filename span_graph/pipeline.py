"""Span graph pipeline: spans in, positioned nodes and edges out.

    raw spans -> flatten -> step groups -> edges -> nodes -> layout engine

The pipeline is a pure function of ``(spans, selected_span_id, options)``.
Nothing is cached or mutated, so callers may memoize on those inputs.
"""

import functools
import logging
import random
from typing import Any, List, Mapping, Optional, Sequence, Union

from . import config
from .edges import build_graph_edges
from .layout import LayoutEngine, apply_physics_layout, get_layout_engine
from .models import GraphLayoutResult, GraphNode, LayoutOptions, Span
from .nodes import create_span_nodes, create_system_nodes
from .steps import build_step_groups
from .tree import flatten_spans

logger = logging.getLogger(__name__)

SpanInput = Union[Span, Mapping[str, Any]]


def _resolve_rng(options: LayoutOptions, rng: Optional[random.Random]) -> random.Random:
    if rng is not None:
        return rng
    seed = options.seed if options.seed is not None else config.PHYSICS_SEED
    return random.Random(seed)


def _resolve_engine(options: LayoutOptions, rng: Optional[random.Random]) -> LayoutEngine:
    engine = get_layout_engine(options.layout_mode)
    if engine is apply_physics_layout:
        return functools.partial(apply_physics_layout, rng=_resolve_rng(options, rng))
    return engine


def build_graph_layout(
    spans: Optional[Sequence[SpanInput]],
    selected_span_id: Optional[str] = None,
    options: Optional[Union[LayoutOptions, Mapping[str, Any]]] = None,
    *,
    rng: Optional[random.Random] = None,
) -> GraphLayoutResult:
    """Turn the spans of one trace into a positioned graph.

    Parameters
    ----------
    spans : Optional[Sequence[SpanInput]]
        Root spans with nested ``child_spans``, as ``Span`` objects or raw
        dicts (validated with ``Span.model_validate``).
    selected_span_id : Optional[str]
        Span to flag as selected on its node.
    options : Optional[Union[LayoutOptions, Mapping[str, Any]]]
        Layout mode, system node and step grouping switches. Defaults come
        from the environment (see ``span_graph.config``).
    rng : Optional[random.Random]
        Random source for the physics layout; overrides ``options.seed``.

    Returns
    -------
    GraphLayoutResult
        Positioned nodes, edges and step groups. Empty when there are no spans.

    Raises
    ------
    pydantic.ValidationError
        If a raw span or the options fail validation.
    """
    if options is None:
        options = LayoutOptions()
    elif not isinstance(options, LayoutOptions):
        options = LayoutOptions.model_validate(options)

    if not spans:
        return GraphLayoutResult()

    roots = [span if isinstance(span, Span) else Span.model_validate(span) for span in spans]
    flat_spans = flatten_spans(roots)
    steps = build_step_groups(flat_spans)

    nodes: List[GraphNode] = list(create_span_nodes(flat_spans, selected_span_id))
    edges = build_graph_edges(
        flat_spans,
        steps,
        group_by_step=options.group_by_step,
        show_system_nodes=options.show_system_nodes,
    )

    if options.show_system_nodes:
        start_node, end_node = create_system_nodes()
        nodes = [start_node, *nodes, end_node]

    engine = _resolve_engine(options, rng)
    positioned = engine(nodes, edges)

    logger.debug(
        f"Built graph for {len(flat_spans)} spans: {len(positioned)} nodes, "
        f"{len(edges)} edges, {len(steps)} steps ({options.layout_mode} layout)"
    )

    return GraphLayoutResult(nodes=positioned, edges=edges, steps=steps)
