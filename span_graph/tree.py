"""Flattening of nested span trees and parent/child lookups.

Spans arrive as a list of roots with nested ``child_spans``. Every later stage
works on the flat list produced here plus a ``parent_id -> children`` index
built once per call.
"""

from typing import Dict, List, Optional, Sequence

from .models import Span


def flatten_spans(spans: Sequence[Span]) -> List[Span]:
    """Flatten nested spans into a pre-order list.

    Parents come before their children, and a span's subtree comes before its
    next sibling. Every span appears exactly once; input is assumed acyclic.

    Parameters
    ----------
    spans : Sequence[Span]
        Root spans, each optionally carrying ``child_spans``.

    Returns
    -------
    List[Span]
        All spans of the tree(s) in traversal order.
    """
    result: List[Span] = []
    # explicit stack so deep agent traces don't hit the recursion limit
    stack: List[Span] = list(reversed(spans))
    while stack:
        span = stack.pop()
        result.append(span)
        if span.child_spans:
            stack.extend(reversed(span.child_spans))
    return result


def build_children_index(spans: Sequence[Span]) -> Dict[str, List[Span]]:
    """Map each parent span id to its children, in input order."""
    index: Dict[str, List[Span]] = {}
    for span in spans:
        if span.parent_span_id:
            index.setdefault(span.parent_span_id, []).append(span)
    return index


def find_root_spans(spans: Sequence[Span]) -> List[Span]:
    """Spans without a parent, or whose parent is not part of ``spans``."""
    span_ids = {span.span_id for span in spans}
    return [
        span for span in spans
        if not span.parent_span_id or span.parent_span_id not in span_ids
    ]


def find_leaf_spans(
    spans: Sequence[Span],
    children_index: Optional[Dict[str, List[Span]]] = None,
) -> List[Span]:
    """Spans that no other span in ``spans`` names as its parent."""
    if children_index is None:
        children_index = build_children_index(spans)
    return [span for span in spans if span.span_id not in children_index]
