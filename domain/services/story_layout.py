from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Tuple

from domain.models import (
    DEFAULT_CAMERA,
    AnchorSide,
    Camera,
    Easing,
    LayoutConfig,
    LayoutEdge,
    LayoutNode,
    Point,
    Size,
    Story,
    StoryStep,
    Viewport,
    Visibility,
)
from domain.ports.layout import RoutingOptions
from domain.services.camera import (
    CameraAnimation,
    clamp_to_bounds,
    fit_to_region,
    world_to_screen,
)
from domain.services.edge_routing import EdgeRouter, anchor_sides
from domain.services.overlap import (
    apply_adjustments,
    detect_and_resolve_overlaps,
    residual_overlaps,
)
from domain.services.step_state import StepState, resolve_step_state, resolve_sub_states

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NodeFrame:
    id: str
    position: Point
    world_position: Point
    size: Size
    visibility: Visibility
    is_new: bool
    sub_state: str | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "position": {"x": self.position.x, "y": self.position.y},
            "world_position": {"x": self.world_position.x, "y": self.world_position.y},
            "size": {"width": self.size.width, "height": self.size.height},
            "visibility": self.visibility.value,
            "is_new": self.is_new,
            "sub_state": self.sub_state,
        }


@dataclass(frozen=True)
class EdgeFrame:
    id: str
    source: str
    target: str
    path: Tuple[Point, ...]
    visibility: Visibility
    is_new: bool
    source_side: AnchorSide | None = None
    target_side: AnchorSide | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "path": [{"x": point.x, "y": point.y} for point in self.path],
            "visibility": self.visibility.value,
            "is_new": self.is_new,
            "source_side": self.source_side,
            "target_side": self.target_side,
        }


@dataclass(frozen=True)
class CameraTransition:
    duration_ms: float
    easing: Easing


@dataclass(frozen=True)
class LayoutFrame:
    step_index: int
    step_count: int
    camera: Camera
    transition: CameraTransition | None = None
    nodes: List[NodeFrame] = field(default_factory=list)
    edges: List[EdgeFrame] = field(default_factory=list)
    hidden_node_ids: List[str] = field(default_factory=list)
    hidden_edge_ids: List[str] = field(default_factory=list)
    overlaps: List[Tuple[str, str]] = field(default_factory=list)
    residual_overlaps: List[Tuple[str, str]] = field(default_factory=list)

    def node(self, node_id: str) -> NodeFrame | None:
        return next((node for node in self.nodes if node.id == node_id), None)

    def edge(self, edge_id: str) -> EdgeFrame | None:
        return next((edge for edge in self.edges if edge.id == edge_id), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_index": self.step_index,
            "step_count": self.step_count,
            "camera": {
                "center": {"x": self.camera.center.x, "y": self.camera.center.y},
                "zoom": self.camera.zoom,
            },
            "transition": (
                {"duration_ms": self.transition.duration_ms, "easing": self.transition.easing}
                if self.transition
                else None
            ),
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
            "hidden_node_ids": list(self.hidden_node_ids),
            "hidden_edge_ids": list(self.hidden_edge_ids),
            "overlaps": [list(pair) for pair in self.overlaps],
            "residual_overlaps": [list(pair) for pair in self.residual_overlaps],
        }


def story_layout_nodes(story: Story) -> List[LayoutNode]:
    return [
        LayoutNode(
            id=node.id,
            position=node.position,
            size=node.resolved_size(),
            allow_overlap=node.allow_overlap,
        )
        for node in story.nodes
    ]


def story_layout_edges(story: Story) -> List[LayoutEdge]:
    return [LayoutEdge(id=edge.id, source=edge.source, target=edge.target) for edge in story.edges]


def select_target_camera(
    step: StoryStep | None,
    revealed_nodes: Sequence[LayoutNode],
    viewport: Viewport,
    config: LayoutConfig,
    base_camera: Camera,
) -> Camera:
    """Pick the camera for a step: an explicit step override wins over auto-fit.

    Without an override and with nothing revealed the identity camera is used.
    """
    has_override = step is not None and step.camera is not None
    if not viewport.has_area() or not (revealed_nodes or has_override):
        return DEFAULT_CAMERA

    if step is not None and step.camera is not None:
        override = step.camera
        camera = Camera(
            center=Point(*override.center) if override.center else base_camera.center,
            zoom=override.zoom if override.zoom is not None else base_camera.zoom,
            bounds=override.bounds or base_camera.bounds,
        )
    elif config.auto_fit and revealed_nodes:
        fitted = fit_to_region(
            [node.position for node in revealed_nodes],
            [node.size for node in revealed_nodes],
            viewport,
            config.fit_padding,
        )
        camera = replace(fitted, bounds=base_camera.bounds)
    else:
        camera = base_camera

    if camera.bounds is not None:
        camera = clamp_to_bounds(camera, camera.bounds)
    return camera


def step_transition(step: StoryStep | None, config: LayoutConfig) -> CameraTransition:
    duration = config.default_transition_ms
    easing = config.default_easing
    if step is not None and step.camera is not None:
        if step.camera.transition is not None:
            duration = step.camera.transition
        if step.camera.easing is not None:
            easing = step.camera.easing
    return CameraTransition(duration_ms=duration, easing=easing)


def build_frame(
    story: Story,
    index: int,
    viewport: Viewport,
    config: LayoutConfig | None = None,
    camera: Camera | None = None,
    router: EdgeRouter | None = None,
) -> LayoutFrame:
    config = config or LayoutConfig()
    router = router or EdgeRouter(simplify_tolerance=config.simplify_tolerance)
    base_camera = camera or story.initial_camera()

    state = resolve_step_state(story.steps, index)
    step = story.steps[state.index] if story.steps else None

    all_nodes = story_layout_nodes(story)
    revealed_nodes = [node for node in all_nodes if node.id in state.nodes.revealed]

    overlaps: List[Tuple[str, str]] = []
    residual: List[Tuple[str, str]] = []
    adjusted = revealed_nodes
    if config.overlap_detection and revealed_nodes:
        result = detect_and_resolve_overlaps(
            revealed_nodes, config.overlap_strategy, config.overlap_padding
        )
        overlaps = result.overlaps
        residual = residual_overlaps(revealed_nodes, result, config.overlap_padding)
        if result.adjustments:
            adjusted = apply_adjustments(revealed_nodes, result.adjustments)

    target_camera = select_target_camera(step, adjusted, viewport, config, base_camera)
    sub_states = resolve_sub_states(story.steps, state.index, story.nodes)

    node_frames = [
        NodeFrame(
            id=node.id,
            position=world_to_screen(node.position, target_camera, viewport),
            world_position=node.position,
            size=node.size,
            visibility=state.nodes.visibility(node.id),
            is_new=node.id in state.nodes.new,
            sub_state=sub_states.get(node.id),
        )
        for node in adjusted
    ]
    edge_frames = _edge_frames(story, state, adjusted, target_camera, viewport, config, router)

    return LayoutFrame(
        step_index=state.index,
        step_count=state.step_count,
        camera=target_camera,
        transition=step_transition(step, config) if step is not None else None,
        nodes=node_frames,
        edges=edge_frames,
        hidden_node_ids=[node.id for node in all_nodes if node.id not in state.nodes.revealed],
        hidden_edge_ids=[
            edge.id for edge in story.edges if edge.id not in state.edges.revealed
        ],
        overlaps=overlaps,
        residual_overlaps=residual,
    )


def _edge_frames(
    story: Story,
    state: StepState,
    adjusted: Sequence[LayoutNode],
    camera: Camera,
    viewport: Viewport,
    config: LayoutConfig,
    router: EdgeRouter,
) -> List[EdgeFrame]:
    revealed_edges = [edge for edge in story.edges if edge.id in state.edges.revealed]
    if not revealed_edges:
        return []

    positions: Dict[str, Point] = {node.id: node.position for node in adjusted}
    # Edges touching a hidden node are listed without geometry.
    routable = [
        edge
        for edge in story_layout_edges(story)
        if edge.id in state.edges.revealed
        and edge.source in positions
        and edge.target in positions
    ]
    routed = {
        edge.id: edge
        for edge in router.route(
            adjusted,
            routable,
            RoutingOptions(
                style=config.edge_routing,
                edge_padding=config.edge_padding,
                timeout_seconds=config.routing_timeout_seconds,
            ),
        )
    }

    frames: List[EdgeFrame] = []
    for edge in revealed_edges:
        source = positions.get(edge.source)
        target = positions.get(edge.target)
        world_path: Tuple[Point, ...] = ()
        sides: Tuple[AnchorSide | None, AnchorSide | None] = (None, None)
        if source is not None and target is not None:
            routed_edge = routed.get(edge.id)
            world_path = routed_edge.path if routed_edge and routed_edge.path else (source, target)
            sides = anchor_sides(source, target, edge.source_anchor, edge.target_anchor)
        frames.append(
            EdgeFrame(
                id=edge.id,
                source=edge.source,
                target=edge.target,
                path=tuple(world_to_screen(point, camera, viewport) for point in world_path),
                visibility=state.edges.visibility(edge.id),
                is_new=edge.id in state.edges.new,
                source_side=sides[0],
                target_side=sides[1],
            )
        )
    return frames


@dataclass(frozen=True)
class _FrameKey:
    index: int
    viewport: Viewport
    camera: Camera | None
    config: LayoutConfig


class StoryLayoutEngine:
    """Caller-owned wrapper around ``build_frame`` that recomputes on change only."""

    def __init__(
        self,
        story: Story,
        viewport: Viewport,
        config: LayoutConfig | None = None,
        router: EdgeRouter | None = None,
    ) -> None:
        self.config = config or LayoutConfig()
        self.router = router or EdgeRouter(simplify_tolerance=self.config.simplify_tolerance)
        self._story = story
        self._viewport = viewport
        self._camera: Camera | None = None
        self._cached_key: _FrameKey | None = None
        self._cached_frame: LayoutFrame | None = None

    @property
    def story(self) -> Story:
        return self._story

    @property
    def step_count(self) -> int:
        return len(self._story.steps)

    def set_story(self, story: Story) -> None:
        if story is not self._story:
            self._story = story
            self._invalidate()

    def set_viewport(self, viewport: Viewport) -> None:
        self._viewport = viewport

    def set_camera(self, camera: Camera | None) -> None:
        self._camera = camera

    def set_config(self, config: LayoutConfig) -> None:
        self.config = config

    def frame(self, index: int) -> LayoutFrame:
        key = _FrameKey(
            index=index,
            viewport=self._viewport,
            camera=self._camera,
            config=self.config,
        )
        if self._cached_frame is not None and key == self._cached_key:
            return self._cached_frame
        logger.debug("Recomputing layout frame for step %s of %s", index, self._story.id)
        frame = build_frame(
            self._story,
            index,
            self._viewport,
            config=self.config,
            camera=self._camera,
            router=self.router,
        )
        self._cached_key = key
        self._cached_frame = frame
        return frame

    def animation_to(self, index: int, current: Camera) -> CameraAnimation:
        frame = self.frame(index)
        transition = frame.transition or CameraTransition(0.0, self.config.default_easing)
        return CameraAnimation(
            start=current,
            end=frame.camera,
            duration_ms=transition.duration_ms,
            easing=transition.easing,
        )

    def _invalidate(self) -> None:
        self._cached_key = None
        self._cached_frame = None
