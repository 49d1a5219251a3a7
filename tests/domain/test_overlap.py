from __future__ import annotations

from itertools import combinations

import pytest

from domain.models import BoundingBox, LayoutNode, Point, Size
from domain.services.overlap import (
    apply_adjustments,
    boxes_overlap,
    detect_and_resolve_overlaps,
    find_overlaps,
    node_bounding_box,
    nudge_adjustments,
    overlap_amount,
    residual_overlaps,
)


def _node(node_id: str, x: float, y: float, *, allow_overlap: bool = False) -> LayoutNode:
    return LayoutNode(
        id=node_id,
        position=Point(x, y),
        size=Size(100, 50),
        allow_overlap=allow_overlap,
    )


def test_only_close_pair_is_reported() -> None:
    nodes = [_node("a", 0, 0), _node("b", 10, 0), _node("c", 200, 0)]

    assert find_overlaps(nodes, padding=10) == [("a", "b")]


def test_pairs_apart_by_size_plus_padding_do_not_overlap() -> None:
    # 100 wide plus a 10 gap.
    nodes = [_node("a", 0, 0), _node("b", 110, 0), _node("c", 0, 60)]

    assert find_overlaps(nodes, padding=10) == []


def test_allow_overlap_nodes_are_exempt() -> None:
    nodes = [_node("a", 0, 0), _node("b", 5, 5, allow_overlap=True)]

    result = detect_and_resolve_overlaps(nodes, "nudge", padding=10)

    assert result.overlaps == []
    assert result.adjustments == {}


def test_nudge_separates_pair_along_shallower_axis() -> None:
    # Vertical penetration is 60 against 100 horizontally.
    nodes = [_node("a", 0, 0), _node("b", 10, 0)]

    result = detect_and_resolve_overlaps(nodes, "nudge", padding=10)

    assert result.overlaps == [("a", "b")]
    assert result.adjustments["a"] == Point(0, -31)
    assert result.adjustments["b"] == Point(0, 31)
    moved = apply_adjustments(nodes, result.adjustments)
    assert find_overlaps(moved, padding=10) == []
    assert residual_overlaps(nodes, result, padding=10) == []


def test_vertical_stack_is_pushed_vertically() -> None:
    nodes = [_node("top", 0, 0), _node("bottom", 0, 30)]

    adjustments = nudge_adjustments(nodes, padding=10)

    assert adjustments["top"].x == 0
    assert adjustments["top"].y < 0
    assert adjustments["bottom"].y > 0


def test_nudge_leaves_untouched_nodes_out() -> None:
    nodes = [_node("a", 0, 0), _node("b", 10, 0), _node("far", 1000, 1000)]

    adjustments = nudge_adjustments(nodes, padding=10)

    assert "far" not in adjustments


def test_nudge_clears_a_small_cluster() -> None:
    nodes = [_node("a", 0, 0), _node("b", 20, 5), _node("c", 40, 10)]

    result = detect_and_resolve_overlaps(nodes, "nudge", padding=10)
    moved = apply_adjustments(nodes, result.adjustments)

    assert len(result.overlaps) == 3
    for first, second in combinations(moved, 2):
        assert not boxes_overlap(node_bounding_box(first), node_bounding_box(second))


@pytest.mark.parametrize("strategy", ["repel", "reflow"])
def test_repel_and_reflow_match_nudge(strategy: str) -> None:
    nodes = [_node("a", 0, 0), _node("b", 10, 0)]

    assert detect_and_resolve_overlaps(nodes, strategy, 10) == detect_and_resolve_overlaps(
        nodes, "nudge", 10
    )


def test_error_strategy_reports_without_moving() -> None:
    nodes = [_node("a", 0, 0), _node("b", 10, 0)]

    result = detect_and_resolve_overlaps(nodes, "error", padding=10)

    assert result.overlaps == [("a", "b")]
    assert result.adjustments == {}
    assert residual_overlaps(nodes, result, padding=10) == [("a", "b")]


def test_overlap_amount_and_touching_edges() -> None:
    a = BoundingBox(0, 0, 100, 50)
    b = BoundingBox(60, 20, 100, 50)
    touching = BoundingBox(100, 0, 100, 50)

    assert overlap_amount(a, b) == (40, 30)
    assert boxes_overlap(a, b)
    assert not boxes_overlap(a, touching)
    assert overlap_amount(a, BoundingBox(500, 500, 10, 10)) == (0, 0)


def test_apply_adjustments_keeps_unmoved_nodes() -> None:
    nodes = [_node("a", 0, 0), _node("b", 10, 0)]

    moved = apply_adjustments(nodes, {"b": Point(5, -5)})

    assert moved[0] is nodes[0]
    assert moved[1].position == Point(15, -5)
    assert moved[1].size == nodes[1].size
