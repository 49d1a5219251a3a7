from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Dict, List, Tuple

from domain.models import (
    BoundingBox,
    LayoutNode,
    OverlapResult,
    OverlapStrategy,
    Point,
)

MAX_NUDGE_PASSES = 10


def node_bounding_box(node: LayoutNode, offset: Point | None = None) -> BoundingBox:
    x = node.position.x + (offset.x if offset else 0.0)
    y = node.position.y + (offset.y if offset else 0.0)
    return BoundingBox(
        x=x - node.size.width / 2,
        y=y - node.size.height / 2,
        width=node.size.width,
        height=node.size.height,
    )


def expand_bounding_box(box: BoundingBox, padding: float) -> BoundingBox:
    return BoundingBox(
        x=box.x - padding,
        y=box.y - padding,
        width=box.width + padding * 2,
        height=box.height + padding * 2,
    )


def boxes_overlap(a: BoundingBox, b: BoundingBox) -> bool:
    return a.x < b.max_x and a.max_x > b.x and a.y < b.max_y and a.max_y > b.y


def overlap_amount(a: BoundingBox, b: BoundingBox) -> Tuple[float, float]:
    overlap_x = min(a.max_x, b.max_x) - max(a.x, b.x)
    overlap_y = min(a.max_y, b.max_y) - max(a.y, b.y)
    return max(0.0, overlap_x), max(0.0, overlap_y)


def _padded_box(node: LayoutNode, padding: float, offset: Point | None = None) -> BoundingBox:
    # Padding is the minimum gap between two nodes, so each side takes half.
    return expand_bounding_box(node_bounding_box(node, offset), padding / 2)


def find_overlaps(
    nodes: Sequence[LayoutNode],
    padding: float = 0.0,
    adjustments: Mapping[str, Point] | None = None,
) -> List[Tuple[str, str]]:
    offsets = adjustments or {}
    candidates = [node for node in nodes if not node.allow_overlap]
    boxes = [_padded_box(node, padding, offsets.get(node.id)) for node in candidates]
    overlaps: List[Tuple[str, str]] = []
    for i, node_a in enumerate(candidates):
        for j in range(i + 1, len(candidates)):
            if boxes_overlap(boxes[i], boxes[j]):
                overlaps.append((node_a.id, candidates[j].id))
    return overlaps


def nudge_adjustments(
    nodes: Sequence[LayoutNode],
    padding: float = 10.0,
    max_passes: int = MAX_NUDGE_PASSES,
) -> Dict[str, Point]:
    """Push colliding pairs apart along their binding axis.

    Each pass moves both members of every colliding pair by half the
    penetration depth plus one unit in opposite directions. This is a soft
    heuristic: dense clusters may still collide after ``max_passes``.
    """
    candidates = [node for node in nodes if not node.allow_overlap]
    offsets: Dict[str, Point] = {node.id: Point(0.0, 0.0) for node in candidates}

    for _ in range(max_passes):
        collided = False
        for i, node_a in enumerate(candidates):
            for j in range(i + 1, len(candidates)):
                node_b = candidates[j]
                offset_a = offsets[node_a.id]
                offset_b = offsets[node_b.id]
                box_a = _padded_box(node_a, padding, offset_a)
                box_b = _padded_box(node_b, padding, offset_b)
                if not boxes_overlap(box_a, box_b):
                    continue
                collided = True
                depth_x, depth_y = overlap_amount(box_a, box_b)
                dx = (node_b.position.x + offset_b.x) - (node_a.position.x + offset_a.x)
                dy = (node_b.position.y + offset_b.y) - (node_a.position.y + offset_a.y)
                push_x = push_y = 0.0
                if depth_x <= depth_y:
                    push_x = (1.0 if dx >= 0 else -1.0) * (depth_x / 2 + 1)
                else:
                    push_y = (1.0 if dy >= 0 else -1.0) * (depth_y / 2 + 1)
                offsets[node_a.id] = Point(offset_a.x - push_x, offset_a.y - push_y)
                offsets[node_b.id] = Point(offset_b.x + push_x, offset_b.y + push_y)
        if not collided:
            break

    return {
        node_id: offset
        for node_id, offset in offsets.items()
        if offset.x != 0 or offset.y != 0
    }


def detect_and_resolve_overlaps(
    nodes: Sequence[LayoutNode],
    strategy: OverlapStrategy = "nudge",
    padding: float = 10.0,
) -> OverlapResult:
    overlaps = find_overlaps(nodes, padding)
    if not overlaps or strategy == "error":
        return OverlapResult(overlaps=overlaps, adjustments={})
    # "repel" and "reflow" share the nudge solver until they get their own.
    return OverlapResult(overlaps=overlaps, adjustments=nudge_adjustments(nodes, padding))


def apply_adjustments(
    nodes: Sequence[LayoutNode],
    adjustments: Mapping[str, Point],
) -> List[LayoutNode]:
    adjusted: List[LayoutNode] = []
    for node in nodes:
        delta = adjustments.get(node.id)
        if delta is None:
            adjusted.append(node)
            continue
        adjusted.append(
            LayoutNode(
                id=node.id,
                position=Point(node.position.x + delta.x, node.position.y + delta.y),
                size=node.size,
                allow_overlap=node.allow_overlap,
            )
        )
    return adjusted


def residual_overlaps(
    nodes: Sequence[LayoutNode],
    result: OverlapResult,
    padding: float = 10.0,
) -> List[Tuple[str, str]]:
    if not result.overlaps:
        return []
    return find_overlaps(nodes, padding, result.adjustments)
