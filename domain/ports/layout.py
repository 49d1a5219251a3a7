from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

from domain.models import LayoutEdge, LayoutNode, Point, RoutingStyle


class RoutingError(RuntimeError):
    pass


class RoutingTimeoutError(RoutingError):
    pass


@dataclass(frozen=True)
class RoutingOptions:
    style: RoutingStyle = "orthogonal"
    edge_padding: float = 20.0
    timeout_seconds: float = 2.0


class EdgeRoutingBackend(Protocol):
    def route(
        self,
        obstacles: Sequence[LayoutNode],
        edges: Sequence[LayoutEdge],
        options: RoutingOptions,
    ) -> Mapping[str, Sequence[Point]]:
        ...
