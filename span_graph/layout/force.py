"""Force-directed (physics) layout.

A velocity Verlet simulation in the style of d3-force, run for a fixed
number of ticks with no convergence check. Each tick applies, in order:

- a link force pulling connected nodes towards a rest distance
- a many-body force pushing every pair of nodes apart (naive O(n^2))
- a centering force translating the layout onto the canvas center
- weak x/y positioning forces pulling each node towards the center

Initial positions come from ``rng``; pass a seeded ``random.Random`` for
reproducible output.
"""

import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..models import GraphEdge, GraphNode

logger = logging.getLogger(__name__)

CANVAS_WIDTH = 800
CANVAS_HEIGHT = 600
ITERATIONS = 300

LINK_DISTANCE = 150
LINK_STRENGTH = 0.5
CHARGE_STRENGTH = -400
POSITION_STRENGTH = 0.05

ALPHA_MIN = 0.001
ALPHA_DECAY = 1 - ALPHA_MIN ** (1 / 300)
VELOCITY_DECAY = 0.4
DISTANCE_MIN2 = 1.0


@dataclass
class SimulationNode:
    id: str
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0


@dataclass
class SimulationLink:
    source: SimulationNode
    target: SimulationNode
    bias: float = 0.5


def _jiggle(rng: random.Random) -> float:
    return (rng.random() - 0.5) * 1e-6


def _build_links(
    edges: Sequence[GraphEdge],
    by_id: Dict[str, SimulationNode],
) -> List[SimulationLink]:
    """Resolve edges to simulation nodes and weight each link end by degree."""
    links: List[SimulationLink] = []
    degree: Dict[str, int] = {}
    for edge in edges:
        source = by_id.get(edge.source)
        target = by_id.get(edge.target)
        if source is None or target is None:
            logger.warning(f"Skipping edge {edge.id}: endpoint not in node set")
            continue
        if source is target:
            continue
        links.append(SimulationLink(source=source, target=target))
        degree[source.id] = degree.get(source.id, 0) + 1
        degree[target.id] = degree.get(target.id, 0) + 1

    # the better connected end of a link moves less
    for link in links:
        source_degree = degree[link.source.id]
        link.bias = source_degree / (source_degree + degree[link.target.id])
    return links


def _apply_link_force(
    links: List[SimulationLink],
    alpha: float,
    rng: random.Random,
    distance: float,
    strength: float,
) -> None:
    for link in links:
        source, target = link.source, link.target
        dx = (target.x + target.vx - source.x - source.vx) or _jiggle(rng)
        dy = (target.y + target.vy - source.y - source.vy) or _jiggle(rng)
        length = math.sqrt(dx * dx + dy * dy)
        if length == 0:
            continue
        length = (length - distance) / length * alpha * strength
        dx *= length
        dy *= length
        target.vx -= dx * link.bias
        target.vy -= dy * link.bias
        source.vx += dx * (1 - link.bias)
        source.vy += dy * (1 - link.bias)


def _apply_many_body_force(
    bodies: List[SimulationNode],
    alpha: float,
    rng: random.Random,
    strength: float,
) -> None:
    for body in bodies:
        for other in bodies:
            if other is body:
                continue
            dx = other.x - body.x
            dy = other.y - body.y
            dist2 = dx * dx + dy * dy
            if dx == 0:
                dx = _jiggle(rng)
                dist2 += dx * dx
            if dy == 0:
                dy = _jiggle(rng)
                dist2 += dy * dy
            if dist2 == 0:
                continue
            if dist2 < DISTANCE_MIN2:
                dist2 = math.sqrt(DISTANCE_MIN2 * dist2)
            weight = strength * alpha / dist2
            body.vx += dx * weight
            body.vy += dy * weight


def _apply_center_force(bodies: List[SimulationNode], center_x: float, center_y: float) -> None:
    mean_x = sum(body.x for body in bodies) / len(bodies)
    mean_y = sum(body.y for body in bodies) / len(bodies)
    shift_x = mean_x - center_x
    shift_y = mean_y - center_y
    for body in bodies:
        body.x -= shift_x
        body.y -= shift_y


def _apply_position_force(
    bodies: List[SimulationNode],
    center_x: float,
    center_y: float,
    alpha: float,
    strength: float,
) -> None:
    for body in bodies:
        body.vx += (center_x - body.x) * strength * alpha
        body.vy += (center_y - body.y) * strength * alpha


def run_simulation(
    bodies: List[SimulationNode],
    links: List[SimulationLink],
    *,
    rng: random.Random,
    iterations: int,
    center: Tuple[float, float],
) -> None:
    """Advance the simulation ``iterations`` ticks, updating ``bodies`` in place."""
    center_x, center_y = center
    alpha = 1.0
    for _ in range(iterations):
        alpha += (0.0 - alpha) * ALPHA_DECAY

        _apply_link_force(links, alpha, rng, LINK_DISTANCE, LINK_STRENGTH)
        _apply_many_body_force(bodies, alpha, rng, CHARGE_STRENGTH)
        _apply_center_force(bodies, center_x, center_y)
        _apply_position_force(bodies, center_x, center_y, alpha, POSITION_STRENGTH)

        for body in bodies:
            body.vx *= 1 - VELOCITY_DECAY
            body.vy *= 1 - VELOCITY_DECAY
            body.x += body.vx
            body.y += body.vy


def apply_physics_layout(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    *,
    rng: Optional[random.Random] = None,
    iterations: int = ITERATIONS,
    width: float = CANVAS_WIDTH,
    height: float = CANVAS_HEIGHT,
) -> List[GraphNode]:
    """Position nodes with a force-directed simulation.

    Parameters
    ----------
    nodes : Sequence[GraphNode]
        Nodes to position. Not modified.
    edges : Sequence[GraphEdge]
        Edges acting as springs.
    rng : Optional[random.Random]
        Source of initial positions and tie-breaking jitter. A fresh unseeded
        generator is used when omitted, so repeated calls may differ.
    iterations : int
        Number of simulation ticks.
    width, height : float
        Canvas within which nodes start; the layout is centered on it.

    Returns
    -------
    List[GraphNode]
        Copies of ``nodes`` in the same order, positioned at their
        simulated coordinates.
    """
    if not nodes:
        return []

    rng = rng if rng is not None else random.Random()
    bodies = [
        SimulationNode(id=node.id, x=rng.random() * width, y=rng.random() * height)
        for node in nodes
    ]
    by_id = {body.id: body for body in bodies}
    links = _build_links(edges, by_id)

    run_simulation(bodies, links, rng=rng, iterations=iterations, center=(width / 2, height / 2))

    logger.debug(f"Physics layout: {len(bodies)} nodes, {len(links)} links, {iterations} ticks")

    return [node.with_position(body.x, body.y) for node, body in zip(nodes, bodies)]
