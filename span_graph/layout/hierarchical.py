"""Hierarchical (dagre style) layered layout.

Phases:
  1. Cycle breaking (only for malformed input)
  2. Rank assignment: longest path from any source
  3. Dummy nodes for edges spanning more than one rank
  4. Crossing minimization: barycenter sweeps, best ordering kept
  5. Coordinate assignment: ranks top to bottom, nodes pulled towards the
     average position of their neighbours in the adjacent rank

The result is deterministic for a given node and edge order.
"""

import logging
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

import networkx as nx

from ..models import GraphEdge, GraphNode

logger = logging.getLogger(__name__)

# Box sizes
NODE_WIDTH = 180
NODE_HEIGHT = 60
SYSTEM_NODE_WIDTH = 120
SYSTEM_NODE_HEIGHT = 40

# Spacing
NODE_SEP = 60  # horizontal gap between nodes of a rank
EDGE_SEP = 10  # horizontal gap contributed by edge dummy nodes
RANK_SEP = 80  # vertical gap between ranks
MARGIN_X = 40
MARGIN_Y = 40

MAX_ORDER_PASSES = 24
MAX_PASSES_WITHOUT_IMPROVEMENT = 4
COORDINATE_PASSES = 4

DUMMY_PREFIX = "__dummy_"


def node_dimensions(node: GraphNode) -> Tuple[float, float]:
    """Fixed ``(width, height)`` of a node's box."""
    if node.type == "system":
        return SYSTEM_NODE_WIDTH, SYSTEM_NODE_HEIGHT
    return NODE_WIDTH, NODE_HEIGHT


def build_layout_graph(nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]) -> nx.DiGraph:
    """Build a DiGraph of the nodes (with box sizes) and their edges.

    Edges with an endpoint outside ``nodes`` and self-loops are skipped.
    """
    graph = nx.DiGraph()
    for node in nodes:
        width, height = node_dimensions(node)
        graph.add_node(node.id, width=width, height=height, dummy=False)

    for edge in edges:
        if edge.source not in graph or edge.target not in graph:
            logger.warning(f"Skipping edge {edge.id}: endpoint not in node set")
            continue
        if edge.source == edge.target:
            logger.debug(f"Skipping self-loop {edge.id}")
            continue
        graph.add_edge(edge.source, edge.target)

    return graph


def remove_cycles(graph: nx.DiGraph) -> nx.DiGraph:
    """Return ``graph`` unchanged if acyclic, otherwise a copy without the
    edges that close a cycle (in edge insertion order)."""
    if nx.is_directed_acyclic_graph(graph):
        return graph

    dag = nx.DiGraph()
    dag.add_nodes_from(graph.nodes(data=True))
    for src, tgt in graph.edges():
        if nx.has_path(dag, tgt, src):
            logger.warning(f"Dropping edge {src} -> {tgt} from ranking: it closes a cycle")
            continue
        dag.add_edge(src, tgt)
    return dag


def assign_ranks(dag: nx.DiGraph) -> Dict[str, int]:
    """Rank of each node = length of the longest path reaching it from a source."""
    ranks: Dict[str, int] = {}
    for node_id in nx.topological_sort(dag):
        ranks[node_id] = max((ranks[pred] + 1 for pred in dag.predecessors(node_id)), default=0)
    return ranks


def insert_dummy_nodes(
    dag: nx.DiGraph,
    ranks: Dict[str, int],
) -> Tuple[nx.DiGraph, Dict[str, int]]:
    """Split every edge spanning more than one rank into a chain through
    dummy nodes, so that all edges connect adjacent ranks."""
    augmented = nx.DiGraph()
    augmented.add_nodes_from(dag.nodes(data=True))
    ranks = dict(ranks)

    for edge_index, (src, tgt) in enumerate(dag.edges()):
        span = ranks[tgt] - ranks[src]
        if span <= 1:
            augmented.add_edge(src, tgt)
            continue

        previous = src
        for offset in range(1, span):
            dummy_id = f"{DUMMY_PREFIX}{edge_index}_{offset}"
            augmented.add_node(dummy_id, width=0.0, height=0.0, dummy=True)
            ranks[dummy_id] = ranks[src] + offset
            augmented.add_edge(previous, dummy_id)
            previous = dummy_id
        augmented.add_edge(previous, tgt)

    return augmented, ranks


def _initial_order(graph: nx.DiGraph, ranks: Dict[str, int]) -> List[List[str]]:
    """Group nodes by rank in depth-first discovery order."""
    layers: List[List[str]] = [[] for _ in range(max(ranks.values()) + 1)]
    visited = set()

    for root in graph.nodes:
        stack = [root]
        while stack:
            node_id = stack.pop()
            if node_id in visited:
                continue
            visited.add(node_id)
            layers[ranks[node_id]].append(node_id)
            stack.extend(reversed(list(graph.successors(node_id))))

    return layers


def _reorder_by_barycenter(
    layer: List[str],
    fixed_layer: List[str],
    neighbors: Callable[[str], Iterable[str]],
) -> List[str]:
    """Sort ``layer`` by the mean position of each node's neighbours in
    ``fixed_layer``. Nodes without such neighbours keep their index."""
    position = {node_id: index for index, node_id in enumerate(fixed_layer)}

    def sort_key(item: Tuple[int, str]) -> Tuple[float, int]:
        index, node_id = item
        positions = [position[n] for n in neighbors(node_id) if n in position]
        if not positions:
            return float(index), index
        return sum(positions) / len(positions), index

    return [node_id for _, node_id in sorted(enumerate(layer), key=sort_key)]


def count_crossings(graph: nx.DiGraph, layers: List[List[str]]) -> int:
    """Count edge crossings between all pairs of adjacent ranks."""
    return sum(
        _count_layer_crossings(graph, upper, lower)
        for upper, lower in zip(layers, layers[1:])
    )


def _count_layer_crossings(graph: nx.DiGraph, upper: List[str], lower: List[str]) -> int:
    # Edges sorted by (upper position, lower position) cross exactly where the
    # lower positions form an inversion; counted with a Fenwick tree.
    lower_position = {node_id: index for index, node_id in enumerate(lower)}
    targets: List[int] = []
    for node_id in upper:
        targets.extend(sorted(
            lower_position[succ] for succ in graph.successors(node_id) if succ in lower_position
        ))

    size = len(lower)
    tree = [0] * (size + 1)
    crossings = 0
    for seen, target in enumerate(targets):
        index = target + 1
        at_most = 0
        while index > 0:
            at_most += tree[index]
            index -= index & -index
        crossings += seen - at_most

        index = target + 1
        while index <= size:
            tree[index] += 1
            index += index & -index
    return crossings


def order_layers(graph: nx.DiGraph, ranks: Dict[str, int]) -> List[List[str]]:
    """Order nodes within each rank to reduce edge crossings.

    Alternates top-down and bottom-up barycenter sweeps and keeps the best
    ordering seen. Stops early when there are no crossings left or after
    several passes without improvement.
    """
    layers = _initial_order(graph, ranks)
    best = [list(layer) for layer in layers]
    best_crossings = count_crossings(graph, best)
    passes_without_improvement = 0

    for pass_index in range(MAX_ORDER_PASSES):
        if best_crossings == 0 or passes_without_improvement >= MAX_PASSES_WITHOUT_IMPROVEMENT:
            break

        if pass_index % 2 == 0:
            for rank in range(1, len(layers)):
                layers[rank] = _reorder_by_barycenter(layers[rank], layers[rank - 1], graph.predecessors)
        else:
            for rank in range(len(layers) - 2, -1, -1):
                layers[rank] = _reorder_by_barycenter(layers[rank], layers[rank + 1], graph.successors)

        crossings = count_crossings(graph, layers)
        if crossings < best_crossings:
            best = [list(layer) for layer in layers]
            best_crossings = crossings
            passes_without_improvement = 0
        else:
            passes_without_improvement += 1

    return best


def _separation(graph: nx.DiGraph, left: str, right: str, node_sep: float) -> float:
    """Minimum distance between the centers of two neighbouring nodes."""
    gaps = [EDGE_SEP if graph.nodes[n]["dummy"] else node_sep for n in (left, right)]
    return (graph.nodes[left]["width"] + graph.nodes[right]["width"]) / 2 + sum(gaps) / 2


def _place_layer(
    graph: nx.DiGraph,
    layer: List[str],
    xs: Dict[str, float],
    desired: Dict[str, float],
    node_sep: float,
) -> None:
    """Place nodes left to right as close to their desired x as spacing allows,
    then shift the layer so that it is not biased to the right."""
    placed: List[float] = []
    for index, node_id in enumerate(layer):
        target = desired.get(node_id, xs[node_id])
        if index > 0:
            target = max(target, placed[-1] + _separation(graph, layer[index - 1], node_id, node_sep))
        placed.append(target)

    offsets = [placed[i] - desired[n] for i, n in enumerate(layer) if n in desired]
    shift = sum(offsets) / len(offsets) if offsets else 0.0
    for node_id, x in zip(layer, placed):
        xs[node_id] = x - shift


def _neighbor_means(
    layer: List[str],
    xs: Dict[str, float],
    neighbors: Callable[[str], Iterable[str]],
) -> Dict[str, float]:
    desired: Dict[str, float] = {}
    for node_id in layer:
        positions = [xs[n] for n in neighbors(node_id)]
        if positions:
            desired[node_id] = sum(positions) / len(positions)
    return desired


def assign_coordinates(
    graph: nx.DiGraph,
    layers: List[List[str]],
    *,
    node_sep: float,
    rank_sep: float,
    margin_x: float,
    margin_y: float,
) -> Dict[str, Tuple[float, float]]:
    """Compute the center ``(x, y)`` of every node, including dummies."""
    centers_y: Dict[str, float] = {}
    y = float(margin_y)
    for layer in layers:
        rank_height = max((graph.nodes[n]["height"] for n in layer), default=0.0)
        for node_id in layer:
            centers_y[node_id] = y + rank_height / 2
        y += rank_height + rank_sep

    xs: Dict[str, float] = {}
    for layer in layers:
        x = 0.0
        for index, node_id in enumerate(layer):
            if index > 0:
                x += _separation(graph, layer[index - 1], node_id, node_sep)
            xs[node_id] = x

    for _ in range(COORDINATE_PASSES):
        for rank in range(1, len(layers)):
            desired = _neighbor_means(layers[rank], xs, graph.predecessors)
            _place_layer(graph, layers[rank], xs, desired, node_sep)
        for rank in range(len(layers) - 2, -1, -1):
            desired = _neighbor_means(layers[rank], xs, graph.successors)
            _place_layer(graph, layers[rank], xs, desired, node_sep)

    # Translate so the leftmost box edge sits on the margin
    left_edge = min(xs[n] - graph.nodes[n]["width"] / 2 for n in xs)
    shift = margin_x - left_edge
    return {node_id: (xs[node_id] + shift, centers_y[node_id]) for node_id in xs}


def apply_dagre_layout(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    *,
    node_sep: float = NODE_SEP,
    rank_sep: float = RANK_SEP,
    margin_x: float = MARGIN_X,
    margin_y: float = MARGIN_Y,
) -> List[GraphNode]:
    """Lay nodes out in ranks from top to bottom.

    Parameters
    ----------
    nodes : Sequence[GraphNode]
        Nodes to position. Not modified.
    edges : Sequence[GraphEdge]
        Directed edges; expected to be acyclic.
    node_sep, rank_sep : float
        Horizontal gap between nodes of a rank, vertical gap between ranks.
    margin_x, margin_y : float
        Offset of the layout from the origin.

    Returns
    -------
    List[GraphNode]
        Copies of ``nodes`` in the same order, positioned by the top-left
        corner of their box.
    """
    if not nodes:
        return []

    graph = build_layout_graph(nodes, edges)
    dag = remove_cycles(graph)
    ranks = assign_ranks(dag)
    augmented, ranks = insert_dummy_nodes(dag, ranks)
    layers = order_layers(augmented, ranks)
    centers = assign_coordinates(
        augmented,
        layers,
        node_sep=node_sep,
        rank_sep=rank_sep,
        margin_x=margin_x,
        margin_y=margin_y,
    )

    logger.debug(f"Dagre layout: {len(nodes)} nodes in {len(layers)} ranks")

    positioned: List[GraphNode] = []
    for node in nodes:
        center_x, center_y = centers[node.id]
        width, height = node_dimensions(node)
        positioned.append(node.with_position(center_x - width / 2, center_y - height / 2))
    return positioned
