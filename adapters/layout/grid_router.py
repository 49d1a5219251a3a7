from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Hashable, Sequence
from dataclasses import dataclass
from itertools import combinations, pairwise
from typing import Dict, List

import networkx as nx

from domain.models import LayoutEdge, LayoutNode, Point
from domain.ports.layout import (
    EdgeRoutingBackend,
    RoutingError,
    RoutingOptions,
    RoutingTimeoutError,
)

logger = logging.getLogger(__name__)

_EPS = 1e-6


@dataclass(frozen=True)
class Obstacle:
    node_id: str
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def around(cls, node: LayoutNode, padding: float) -> Obstacle:
        half_w = node.size.width / 2 + padding
        half_h = node.size.height / 2 + padding
        return cls(
            node_id=node.id,
            min_x=node.position.x - half_w,
            min_y=node.position.y - half_h,
            max_x=node.position.x + half_w,
            max_y=node.position.y + half_h,
        )

    def contains(self, x: float, y: float) -> bool:
        return (
            self.min_x + _EPS < x < self.max_x - _EPS
            and self.min_y + _EPS < y < self.max_y - _EPS
        )

    def corners(self) -> List[Point]:
        return [
            Point(self.min_x, self.min_y),
            Point(self.max_x, self.min_y),
            Point(self.max_x, self.max_y),
            Point(self.min_x, self.max_y),
        ]

    def crosses(self, a: Point, b: Point) -> bool:
        """Liang-Barsky clip against the open interior of the obstacle."""
        min_x, max_x = self.min_x + _EPS, self.max_x - _EPS
        min_y, max_y = self.min_y + _EPS, self.max_y - _EPS
        dx = b.x - a.x
        dy = b.y - a.y
        t0, t1 = 0.0, 1.0
        for p, q in (
            (-dx, a.x - min_x),
            (dx, max_x - a.x),
            (-dy, a.y - min_y),
            (dy, max_y - a.y),
        ):
            if p == 0:
                if q < 0:
                    return False
                continue
            r = q / p
            if p < 0:
                t0 = max(t0, r)
            else:
                t1 = min(t1, r)
            if t0 > t1:
                return False
        return t0 < t1


class GridRoutingBackend(EdgeRoutingBackend):
    """Obstacle-avoiding connector routing on fixed node positions.

    Orthogonal routes run a shortest path over a sparse grid built from the
    padded obstacle boundaries, with a penalty for each bend. Spline routes
    smooth the orthogonal route. Straight routes keep the direct segment when
    it is clear and otherwise walk a visibility graph of obstacle corners.
    """

    def __init__(
        self,
        bend_penalty: float = 40.0,
        smoothing_passes: int = 2,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.bend_penalty = bend_penalty
        self.smoothing_passes = smoothing_passes
        self.clock = clock

    def route(
        self,
        obstacles: Sequence[LayoutNode],
        edges: Sequence[LayoutEdge],
        options: RoutingOptions,
    ) -> Dict[str, List[Point]]:
        if options.style not in {"orthogonal", "spline", "straight"}:
            raise RoutingError(f"Unsupported routing style: {options.style}")
        deadline = (
            self.clock() + options.timeout_seconds if options.timeout_seconds > 0 else None
        )
        padded = [Obstacle.around(node, options.edge_padding) for node in obstacles]
        centers = {node.id: node.position for node in obstacles}

        if options.style == "straight":
            return self._route_straight(padded, centers, edges, deadline)

        graph = self._build_grid(padded, centers, deadline)
        paths: Dict[str, List[Point]] = {}
        for edge in edges:
            self._check_deadline(deadline)
            path = self._route_orthogonal(graph, edge)
            if path is None:
                logger.debug("No grid route for edge %s", edge.id)
                continue
            if options.style == "spline":
                path = self._smooth(path)
            paths[edge.id] = path
        return paths

    def _check_deadline(self, deadline: float | None) -> None:
        if deadline is not None and self.clock() > deadline:
            raise RoutingTimeoutError("Edge routing exceeded its time budget")

    def _build_grid(
        self,
        obstacles: Sequence[Obstacle],
        centers: Dict[str, Point],
        deadline: float | None = None,
    ) -> nx.Graph:
        xs = sorted(
            {center.x for center in centers.values()}
            | {obstacle.min_x for obstacle in obstacles}
            | {obstacle.max_x for obstacle in obstacles}
        )
        ys = sorted(
            {center.y for center in centers.values()}
            | {obstacle.min_y for obstacle in obstacles}
            | {obstacle.max_y for obstacle in obstacles}
        )

        def blockers(x: float, y: float) -> frozenset[str]:
            return frozenset(
                obstacle.node_id for obstacle in obstacles if obstacle.contains(x, y)
            )

        graph = nx.Graph()
        for x in xs:
            self._check_deadline(deadline)
            for y in ys:
                blocked = blockers(x, y)
                graph.add_node(("h", x, y), blocked_by=blocked)
                graph.add_node(("v", x, y), blocked_by=blocked)
                graph.add_edge(
                    ("h", x, y), ("v", x, y), weight=self.bend_penalty, blocked_by=blocked
                )
        for y in ys:
            for x0, x1 in pairwise(xs):
                graph.add_edge(
                    ("h", x0, y),
                    ("h", x1, y),
                    weight=x1 - x0,
                    blocked_by=blockers((x0 + x1) / 2, y),
                )
        for x in xs:
            for y0, y1 in pairwise(ys):
                graph.add_edge(
                    ("v", x, y0),
                    ("v", x, y1),
                    weight=y1 - y0,
                    blocked_by=blockers(x, (y0 + y1) / 2),
                )
        for node_id, center in centers.items():
            own = frozenset({node_id})
            terminal = ("terminal", node_id)
            graph.add_node(terminal, blocked_by=own)
            for axis in ("h", "v"):
                graph.add_edge(terminal, (axis, center.x, center.y), weight=0.0, blocked_by=own)
        return graph

    def _route_orthogonal(self, graph: nx.Graph, edge: LayoutEdge) -> List[Point] | None:
        allowed = {edge.source, edge.target}

        def node_ok(node: Hashable) -> bool:
            return graph.nodes[node]["blocked_by"] <= allowed

        def edge_ok(u: Hashable, v: Hashable) -> bool:
            return graph.edges[u, v]["blocked_by"] <= allowed

        view = nx.subgraph_view(graph, filter_node=node_ok, filter_edge=edge_ok)
        try:
            states = nx.shortest_path(
                view,
                ("terminal", edge.source),
                ("terminal", edge.target),
                weight="weight",
            )
        except (nx.NetworkXNoPath, nx.NodeNotFound):
            return None

        points: List[Point] = []
        for state in states:
            if state[0] == "terminal":
                continue
            point = Point(state[1], state[2])
            if not points or points[-1] != point:
                points.append(point)
        return points

    def _route_straight(
        self,
        obstacles: Sequence[Obstacle],
        centers: Dict[str, Point],
        edges: Sequence[LayoutEdge],
        deadline: float | None,
    ) -> Dict[str, List[Point]]:
        paths: Dict[str, List[Point]] = {}
        for edge in edges:
            self._check_deadline(deadline)
            source = centers[edge.source]
            target = centers[edge.target]
            blockers = [
                obstacle
                for obstacle in obstacles
                if obstacle.node_id not in {edge.source, edge.target}
            ]
            if not any(obstacle.crosses(source, target) for obstacle in blockers):
                paths[edge.id] = [source, target]
                continue

            graph = nx.Graph()
            points = [source, target] + [
                corner for obstacle in blockers for corner in obstacle.corners()
            ]
            for a, b in combinations(points, 2):
                if any(obstacle.crosses(a, b) for obstacle in blockers):
                    continue
                graph.add_edge(a, b, weight=math.hypot(b.x - a.x, b.y - a.y))
            try:
                paths[edge.id] = nx.shortest_path(graph, source, target, weight="weight")
            except (nx.NetworkXNoPath, nx.NodeNotFound):
                logger.debug("No visibility route for edge %s", edge.id)
        return paths

    def _smooth(self, points: List[Point]) -> List[Point]:
        # Chaikin corner cutting with fixed endpoints.
        for _ in range(self.smoothing_passes):
            if len(points) < 3:
                return points
            smoothed = [points[0]]
            for a, b in pairwise(points):
                smoothed.append(Point(0.75 * a.x + 0.25 * b.x, 0.75 * a.y + 0.25 * b.y))
                smoothed.append(Point(0.25 * a.x + 0.75 * b.x, 0.25 * a.y + 0.75 * b.y))
            smoothed.append(points[-1])
            points = smoothed
        return points
