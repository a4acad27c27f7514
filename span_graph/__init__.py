"""Span Graph - step grouping and graph layout for LLM trace spans"""

from .models import (
    Span,
    StepGroup,
    GraphNode,
    SpanNode,
    SystemNode,
    GraphEdge,
    LayoutOptions,
    GraphLayoutResult,
)
from .tree import flatten_spans
from .steps import build_step_groups, build_step_edges
from .edges import build_hierarchy_edges, connect_system_nodes, build_graph_edges
from .categories import detect_span_category
from .nodes import create_span_nodes, create_system_nodes
from .layout import apply_dagre_layout, apply_physics_layout, get_layout_engine
from .pipeline import build_graph_layout

__all__ = [
    "Span",
    "StepGroup",
    "GraphNode",
    "SpanNode",
    "SystemNode",
    "GraphEdge",
    "LayoutOptions",
    "GraphLayoutResult",
    "flatten_spans",
    "build_step_groups",
    "build_step_edges",
    "build_hierarchy_edges",
    "connect_system_nodes",
    "build_graph_edges",
    "detect_span_category",
    "create_span_nodes",
    "create_system_nodes",
    "apply_dagre_layout",
    "apply_physics_layout",
    "get_layout_engine",
    "build_graph_layout",
]

__version__ = "0.1.0"
