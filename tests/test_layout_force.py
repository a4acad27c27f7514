"""Tests for the force-directed physics layout."""

import math
import random

from span_graph.layout.force import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    SimulationNode,
    apply_physics_layout,
    run_simulation,
)
from span_graph.models import GraphEdge, SystemNode, SystemNodeData


def _node(node_id):
    return SystemNode(id=node_id, data=SystemNodeData(type="start", label=node_id))


def _edge(source, target):
    return GraphEdge(id=f"{source}-{target}", source=source, target=target)


def _positions(nodes):
    return [(node.position.x, node.position.y) for node in nodes]


def _distance(a, b):
    return math.hypot(a.position.x - b.position.x, a.position.y - b.position.y)


class TestApplyPhysicsLayout:
    """Tests for apply_physics_layout function."""

    def test_empty(self):
        assert apply_physics_layout([], []) == []

    def test_seeded_runs_are_identical(self):
        nodes = [_node(n) for n in ("a", "b", "c")]
        edges = [_edge("a", "b"), _edge("b", "c")]

        first = apply_physics_layout(nodes, edges, rng=random.Random(42))
        second = apply_physics_layout(nodes, edges, rng=random.Random(42))

        assert _positions(first) == _positions(second)

    def test_different_seeds_differ(self):
        nodes = [_node(n) for n in ("a", "b", "c")]

        first = apply_physics_layout(nodes, [], rng=random.Random(1))
        second = apply_physics_layout(nodes, [], rng=random.Random(2))

        assert _positions(first) != _positions(second)

    def test_single_node_is_centered(self):
        positioned = apply_physics_layout([_node("only")], [], rng=random.Random(0))

        assert math.isclose(positioned[0].position.x, CANVAS_WIDTH / 2, abs_tol=1.0)
        assert math.isclose(positioned[0].position.y, CANVAS_HEIGHT / 2, abs_tol=1.0)

    def test_zero_edges_positions_finite(self):
        nodes = [_node(f"n{i}") for i in range(5)]

        positioned = apply_physics_layout(nodes, [], rng=random.Random(3))

        assert len(positioned) == 5
        for node in positioned:
            assert math.isfinite(node.position.x) and math.isfinite(node.position.y)

    def test_repulsion_separates_nodes(self):
        nodes = [_node(f"n{i}") for i in range(4)]

        positioned = apply_physics_layout(nodes, [], rng=random.Random(5))

        for i, a in enumerate(positioned):
            for b in positioned[i + 1:]:
                assert _distance(a, b) > 10

    def test_layout_centered_on_canvas(self):
        nodes = [_node(f"n{i}") for i in range(6)]
        edges = [_edge("n0", f"n{i}") for i in range(1, 6)]

        positioned = apply_physics_layout(nodes, edges, rng=random.Random(11))

        mean_x = sum(n.position.x for n in positioned) / len(positioned)
        mean_y = sum(n.position.y for n in positioned) / len(positioned)
        assert math.isclose(mean_x, CANVAS_WIDTH / 2, abs_tol=5.0)
        assert math.isclose(mean_y, CANVAS_HEIGHT / 2, abs_tol=5.0)

    def test_does_not_mutate_input(self):
        nodes = [_node("a"), _node("b")]

        positioned = apply_physics_layout(nodes, [_edge("a", "b")], rng=random.Random(9))

        assert [node.id for node in positioned] == ["a", "b"]
        assert all(node.position.x == 0 and node.position.y == 0 for node in nodes)
        assert all(new is not old for new, old in zip(positioned, nodes))

    def test_skips_edges_to_unknown_nodes(self, caplog):
        positioned = apply_physics_layout(
            [_node("a")], [_edge("a", "ghost")], rng=random.Random(0)
        )

        assert len(positioned) == 1
        assert "endpoint not in node set" in caplog.text

    def test_unseeded_still_lays_out(self):
        positioned = apply_physics_layout([_node("a"), _node("b")], [_edge("a", "b")])

        assert all(math.isfinite(n.position.x) for n in positioned)


class TestRunSimulation:
    """Tests for run_simulation function."""

    def test_coincident_nodes_are_pushed_apart(self):
        bodies = [SimulationNode(id="a", x=100.0, y=100.0), SimulationNode(id="b", x=100.0, y=100.0)]

        run_simulation(bodies, [], rng=random.Random(0), iterations=50, center=(100.0, 100.0))

        assert (bodies[0].x, bodies[0].y) != (bodies[1].x, bodies[1].y)

    def test_zero_iterations_leaves_positions(self):
        bodies = [SimulationNode(id="a", x=1.0, y=2.0)]

        run_simulation(bodies, [], rng=random.Random(0), iterations=0, center=(0.0, 0.0))

        assert (bodies[0].x, bodies[0].y) == (1.0, 2.0)
