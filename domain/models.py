from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Literal, Optional, Set, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

Easing = Literal["linear", "ease-in", "ease-out", "ease-in-out"]
OverlapStrategy = Literal["nudge", "repel", "reflow", "error"]
RoutingStyle = Literal["orthogonal", "spline", "straight"]
AnchorSide = Literal["top", "bottom", "left", "right"]


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class Viewport:
    width: float
    height: float

    def has_area(self) -> bool:
        return self.width > 0 and self.height > 0


@dataclass(frozen=True)
class CameraBounds:
    min_x: float
    max_x: float
    min_y: float
    max_y: float


@dataclass(frozen=True)
class Camera:
    center: Point = Point(0.0, 0.0)
    zoom: float = 1.0
    bounds: CameraBounds | None = None


DEFAULT_CAMERA = Camera()

NODE_SIZES: Dict[str, Size] = {
    "actor": Size(80, 80),
    "action": Size(140, 50),
    "system": Size(160, 60),
    "decision": Size(100, 100),
    "event": Size(150, 50),
    "state": Size(120, 40),
    "start": Size(40, 40),
    "end": Size(40, 40),
    "default": Size(120, 50),
}


@dataclass(frozen=True)
class BoundingBox:
    x: float
    y: float
    width: float
    height: float

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class LayoutNode:
    id: str
    position: Point  # world center
    size: Size
    allow_overlap: bool = False


@dataclass(frozen=True)
class LayoutEdge:
    id: str
    source: str
    target: str
    path: Tuple[Point, ...] | None = None


@dataclass(frozen=True)
class OverlapResult:
    overlaps: List[Tuple[str, str]]
    adjustments: Dict[str, Point]


@dataclass(frozen=True)
class LayoutConfig:
    edge_routing: RoutingStyle = "orthogonal"
    edge_padding: float = 20.0
    overlap_detection: bool = True
    overlap_strategy: OverlapStrategy = "nudge"
    overlap_padding: float = 10.0
    fit_padding: float = 50.0
    auto_fit: bool = True
    routing_timeout_seconds: float = 2.0
    simplify_tolerance: float = 1.0
    default_transition_ms: float = 300.0
    default_easing: Easing = "ease-out"


class Visibility(str, Enum):
    NOT_REVEALED = "not_revealed"
    ACTIVE = "active"
    COMPLETED = "completed"
    FADED = "faded"


class SubStateKind(str, Enum):
    UNSET = "unset"
    VALUE = "value"
    CLEARED = "cleared"


@dataclass(frozen=True)
class SubState:
    kind: SubStateKind
    value: str | None = None

    @classmethod
    def of(cls, value: str) -> SubState:
        return cls(SubStateKind.VALUE, value)

    @property
    def is_set(self) -> bool:
        return self.kind is not SubStateKind.UNSET


UNSET = SubState(SubStateKind.UNSET)
CLEARED = SubState(SubStateKind.CLEARED)


# Story definition, as loaded from author files.


class CameraSpec(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    center: Optional[Tuple[float, float]] = None
    zoom: Optional[float] = Field(default=None, gt=0)
    transition: Optional[float] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("transition", "duration", "transition_ms"),
    )
    easing: Optional[Easing] = None
    bounds: Optional[CameraBounds] = None


class StoryNode(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    type: str = "default"
    label: str = ""
    position: Point = Point(0.0, 0.0)
    size: Optional[Size] = None
    allow_overlap: bool = Field(
        default=False, validation_alias=AliasChoices("allow_overlap", "allowOverlap")
    )
    substates: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("substates", "sub_states")
    )
    initial_substate: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "initial_substate", "initialSubstate", "initial_sub_state"
        ),
    )

    @field_validator("size", mode="after")
    @classmethod
    def ensure_positive_size(cls, size: Optional[Size]) -> Optional[Size]:
        if size is not None and (size.width <= 0 or size.height <= 0):
            msg = "Node size must be positive"
            raise ValueError(msg)
        return size

    def resolved_size(self) -> Size:
        if self.size is not None:
            return self.size
        return NODE_SIZES.get(self.type, NODE_SIZES["default"])


class StoryEdge(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    source: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    type: str = "flow"
    label: str = ""
    source_anchor: AnchorSide | Literal["auto"] = Field(
        default="auto", validation_alias=AliasChoices("source_anchor", "sourceAnchor")
    )
    target_anchor: AnchorSide | Literal["auto"] = Field(
        default="auto", validation_alias=AliasChoices("target_anchor", "targetAnchor")
    )


class StoryStep(BaseModel):
    """One entry of the narrative sequence.

    ``substates`` maps a node id to a state name; a ``None`` value is an
    explicit clear that persists until the node is assigned again.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: Optional[str] = None
    order: Optional[int] = None
    title: str = ""
    narrative: str = ""
    active_nodes: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("active_nodes", "activeNodes", "nodeIds", "node_ids"),
    )
    active_edges: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("active_edges", "activeEdges", "edgeIds", "edge_ids"),
    )
    reveal_nodes: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("reveal_nodes", "revealNodes")
    )
    reveal_edges: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("reveal_edges", "revealEdges")
    )
    substates: Dict[str, Optional[str]] = Field(
        default_factory=dict, validation_alias=AliasChoices("substates", "sub_states")
    )
    camera: Optional[CameraSpec] = None

    def sub_state_entry(self, node_id: str) -> SubState:
        if node_id not in self.substates:
            return UNSET
        value = self.substates[node_id]
        return CLEARED if value is None else SubState.of(value)


class Story(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    title: str = ""
    nodes: List[StoryNode] = Field(default_factory=list)
    edges: List[StoryEdge] = Field(default_factory=list)
    steps: List[StoryStep] = Field(default_factory=list)
    camera: Optional[CameraSpec] = None

    @field_validator("nodes", "edges", mode="after")
    @classmethod
    def ensure_unique_ids(cls, items: List[StoryNode] | List[StoryEdge]) -> list:
        seen: Set[str] = set()
        for item in items:
            if item.id in seen:
                msg = f"Duplicate id found: {item.id}"
                raise ValueError(msg)
            seen.add(item.id)
        return items

    @field_validator("steps", mode="after")
    @classmethod
    def order_steps(cls, steps: List[StoryStep]) -> List[StoryStep]:
        numbered = [
            step if step.order is not None else step.model_copy(update={"order": idx + 1})
            for idx, step in enumerate(steps)
        ]
        return sorted(numbered, key=lambda step: step.order or 0)

    def node(self, node_id: str) -> StoryNode | None:
        return next((node for node in self.nodes if node.id == node_id), None)

    def initial_camera(self) -> Camera:
        if self.camera is None:
            return DEFAULT_CAMERA
        center = self.camera.center or (0.0, 0.0)
        return Camera(
            center=Point(center[0], center[1]),
            zoom=self.camera.zoom or 1.0,
            bounds=self.camera.bounds,
        )


@dataclass(frozen=True)
class StoryValidationResult:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors
