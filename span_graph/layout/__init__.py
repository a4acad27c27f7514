"""Interchangeable layout engines.

Every engine is a callable ``(nodes, edges) -> positioned nodes`` that returns
new node objects in input order, so callers can swap strategies without
touching the stages that build the graph.
"""

from typing import Callable, Dict, List, Sequence

from ..models import GraphEdge, GraphNode
from .force import apply_physics_layout
from .hierarchical import apply_dagre_layout

LayoutEngine = Callable[[Sequence[GraphNode], Sequence[GraphEdge]], List[GraphNode]]

LAYOUT_ENGINES: Dict[str, LayoutEngine] = {
    "dagre": apply_dagre_layout,
    "physics": apply_physics_layout,
}


def get_layout_engine(layout_mode: str) -> LayoutEngine:
    """Look up the layout engine registered for ``layout_mode``.

    Raises
    ------
    ValueError
        If no engine is registered under that name.
    """
    try:
        return LAYOUT_ENGINES[layout_mode]
    except KeyError:
        raise ValueError(
            f"Unknown layout mode {layout_mode!r}, expected one of {sorted(LAYOUT_ENGINES)}"
        ) from None


__all__ = [
    "LayoutEngine",
    "LAYOUT_ENGINES",
    "get_layout_engine",
    "apply_dagre_layout",
    "apply_physics_layout",
]
