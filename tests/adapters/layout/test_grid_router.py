from __future__ import annotations

from itertools import count, pairwise

import pytest

from adapters.layout.grid_router import GridRoutingBackend, Obstacle
from domain.models import LayoutEdge, LayoutNode, Point, Size
from domain.ports.layout import RoutingError, RoutingOptions, RoutingTimeoutError
from domain.services.edge_routing import EdgeRouter

SOURCE = LayoutNode("a", Point(0, 0), Size(100, 50))
TARGET = LayoutNode("b", Point(400, 0), Size(100, 50))
BLOCKER = LayoutNode("c", Point(200, 0), Size(100, 50))
EDGE = LayoutEdge("ab", "a", "b")


def _assert_avoids(path: list[Point], obstacle: Obstacle) -> None:
    for start, end in pairwise(path):
        assert not obstacle.crosses(start, end), (start, end)


def test_orthogonal_route_detours_around_blocker() -> None:
    options = RoutingOptions(style="orthogonal", edge_padding=20)

    paths = GridRoutingBackend().route([SOURCE, TARGET, BLOCKER], [EDGE], options)

    path = paths["ab"]
    assert path[0] == SOURCE.position
    assert path[-1] == TARGET.position
    assert len(path) >= 4
    _assert_avoids(path, Obstacle.around(BLOCKER, 20))
    for start, end in pairwise(path):
        assert start.x == end.x or start.y == end.y


def test_orthogonal_route_is_straight_when_clear() -> None:
    paths = GridRoutingBackend().route([SOURCE, TARGET], [EDGE], RoutingOptions())

    path = paths["ab"]
    assert path[0] == SOURCE.position
    assert path[-1] == TARGET.position
    assert all(point.y == 0 for point in path)


def test_router_simplifies_clear_grid_route() -> None:
    router = EdgeRouter(backend=GridRoutingBackend())

    routed = router.route([SOURCE, TARGET], [EDGE])

    assert routed[0].path == (SOURCE.position, TARGET.position)


def test_straight_style_keeps_direct_segment() -> None:
    options = RoutingOptions(style="straight")

    paths = GridRoutingBackend().route([SOURCE, TARGET], [EDGE], options)

    assert paths["ab"] == [SOURCE.position, TARGET.position]


def test_straight_style_bends_around_blocker() -> None:
    options = RoutingOptions(style="straight", edge_padding=20)

    paths = GridRoutingBackend().route([SOURCE, TARGET, BLOCKER], [EDGE], options)

    path = paths["ab"]
    assert path[0] == SOURCE.position
    assert path[-1] == TARGET.position
    assert len(path) > 2
    _assert_avoids(path, Obstacle.around(BLOCKER, 20))


def test_spline_style_smooths_the_detour() -> None:
    orthogonal = GridRoutingBackend().route(
        [SOURCE, TARGET, BLOCKER], [EDGE], RoutingOptions(style="orthogonal")
    )["ab"]
    spline = GridRoutingBackend().route(
        [SOURCE, TARGET, BLOCKER], [EDGE], RoutingOptions(style="spline")
    )["ab"]

    assert spline[0] == orthogonal[0]
    assert spline[-1] == orthogonal[-1]
    assert len(spline) > len(orthogonal)


def test_enclosed_target_has_no_route() -> None:
    walls = [
        LayoutNode("north", Point(400, -120), Size(400, 100)),
        LayoutNode("south", Point(400, 120), Size(400, 100)),
        LayoutNode("west", Point(250, 0), Size(100, 400)),
        LayoutNode("east", Point(550, 0), Size(100, 400)),
    ]

    paths = GridRoutingBackend().route([SOURCE, TARGET, *walls], [EDGE], RoutingOptions())

    assert "ab" not in paths


def test_unknown_style_raises() -> None:
    options = RoutingOptions(style="zigzag")  # type: ignore[arg-type]

    with pytest.raises(RoutingError):
        GridRoutingBackend().route([SOURCE, TARGET], [EDGE], options)


def test_deadline_raises_timeout() -> None:
    ticks = count(step=10)
    backend = GridRoutingBackend(clock=lambda: float(next(ticks)))

    with pytest.raises(RoutingTimeoutError):
        backend.route([SOURCE, TARGET], [EDGE], RoutingOptions(timeout_seconds=1.0))


def test_deadline_is_checked_while_building_the_grid() -> None:
    ticks = count(step=10)
    backend = GridRoutingBackend(clock=lambda: float(next(ticks)))

    # No edges to route, so only the grid build can notice the expired budget.
    with pytest.raises(RoutingTimeoutError):
        backend.route([SOURCE, TARGET], [], RoutingOptions(timeout_seconds=1.0))


def test_timeout_falls_back_to_straight_lines() -> None:
    ticks = count(step=10)
    router = EdgeRouter(backend=GridRoutingBackend(clock=lambda: float(next(ticks))))

    routed = router.route([SOURCE, TARGET], [EDGE], RoutingOptions(timeout_seconds=1.0))

    assert routed[0].path == (SOURCE.position, TARGET.position)


def test_obstacle_crossing_ignores_boundary_contact() -> None:
    obstacle = Obstacle("c", 0, 0, 100, 100)

    assert obstacle.crosses(Point(-10, 50), Point(110, 50))
    assert not obstacle.crosses(Point(-10, 0), Point(110, 0))
    assert not obstacle.crosses(Point(-10, -10), Point(0, 0))
    assert not obstacle.crosses(Point(200, 200), Point(300, 300))
