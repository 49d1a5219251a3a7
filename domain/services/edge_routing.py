from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import List, Literal, Tuple

from domain.models import AnchorSide, LayoutEdge, LayoutNode, Point
from domain.ports.layout import EdgeRoutingBackend, RoutingOptions

logger = logging.getLogger(__name__)


def straight_line_edges(
    nodes: Sequence[LayoutNode],
    edges: Sequence[LayoutEdge],
) -> List[LayoutEdge]:
    positions = {node.id: node.position for node in nodes}
    routed: List[LayoutEdge] = []
    for edge in edges:
        source = positions.get(edge.source)
        target = positions.get(edge.target)
        if source is None or target is None:
            routed.append(edge)
            continue
        routed.append(_with_path(edge, (source, target)))
    return routed


def simplify_path(path: Sequence[Point], tolerance: float = 1.0) -> List[Point]:
    if len(path) <= 2:
        return list(path)

    result: List[Point] = [path[0]]
    for idx in range(1, len(path) - 1):
        prev = result[-1]
        curr = path[idx]
        nxt = path[idx + 1]
        cross = abs(
            (curr.x - prev.x) * (nxt.y - curr.y) - (curr.y - prev.y) * (nxt.x - curr.x)
        )
        if cross > tolerance:
            result.append(curr)
    result.append(path[-1])
    return result


def anchor_sides(
    source: Point,
    target: Point,
    source_anchor: AnchorSide | Literal["auto"] = "auto",
    target_anchor: AnchorSide | Literal["auto"] = "auto",
) -> Tuple[AnchorSide, AnchorSide]:
    """Connection sides along the dominant axis; explicit anchors win per side."""
    dx = target.x - source.x
    dy = target.y - source.y
    sides: Tuple[AnchorSide, AnchorSide]
    if abs(dy) > abs(dx):
        sides = ("bottom", "top") if dy > 0 else ("top", "bottom")
    else:
        sides = ("right", "left") if dx > 0 else ("left", "right")
    return (
        sides[0] if source_anchor == "auto" else source_anchor,
        sides[1] if target_anchor == "auto" else target_anchor,
    )


class EdgeRouter:
    """Route connectors through a backend, falling back to straight lines.

    The backend is an external collaborator; any error it raises is logged and
    replaced by center-to-center segments so callers always get a path.
    """

    def __init__(
        self,
        backend: EdgeRoutingBackend | None = None,
        simplify_tolerance: float = 1.0,
    ) -> None:
        self.backend = backend
        self.simplify_tolerance = simplify_tolerance

    def route(
        self,
        nodes: Sequence[LayoutNode],
        edges: Sequence[LayoutEdge],
        options: RoutingOptions | None = None,
    ) -> List[LayoutEdge]:
        if not edges:
            return []
        options = options or RoutingOptions()
        node_ids = {node.id for node in nodes}
        routable = [edge for edge in edges if edge.source in node_ids and edge.target in node_ids]

        if self.backend is None:
            logger.debug("No routing backend configured, using straight lines.")
            return straight_line_edges(nodes, edges)

        try:
            paths = self.backend.route(nodes, routable, options)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Edge routing failed, using straight lines: %s", exc)
            return straight_line_edges(nodes, edges)

        fallback = {edge.id: edge for edge in straight_line_edges(nodes, edges)}
        routed: List[LayoutEdge] = []
        for edge in edges:
            path = paths.get(edge.id)
            if not path or len(path) < 2:
                routed.append(fallback[edge.id])
                continue
            routed.append(_with_path(edge, simplify_path(path, self.simplify_tolerance)))
        return routed


def _with_path(edge: LayoutEdge, path: Sequence[Point]) -> LayoutEdge:
    return LayoutEdge(id=edge.id, source=edge.source, target=edge.target, path=tuple(path))
