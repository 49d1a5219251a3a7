from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from domain.models import (
    DEFAULT_CAMERA,
    Camera,
    CameraBounds,
    Easing,
    Point,
    Size,
    Viewport,
)

FALLBACK_NODE_SIZE = Size(100, 50)


def world_to_screen(point: Point, camera: Camera, viewport: Viewport) -> Point:
    return Point(
        (point.x - camera.center.x) * camera.zoom + viewport.width / 2,
        (point.y - camera.center.y) * camera.zoom + viewport.height / 2,
    )


def screen_to_world(point: Point, camera: Camera, viewport: Viewport) -> Point:
    return Point(
        (point.x - viewport.width / 2) / camera.zoom + camera.center.x,
        (point.y - viewport.height / 2) / camera.zoom + camera.center.y,
    )


def clamp_to_bounds(camera: Camera, bounds: CameraBounds) -> Camera:
    return Camera(
        center=Point(
            max(bounds.min_x, min(bounds.max_x, camera.center.x)),
            max(bounds.min_y, min(bounds.max_y, camera.center.y)),
        ),
        zoom=camera.zoom,
        bounds=camera.bounds,
    )


def apply_easing(t: float, easing: Easing) -> float:
    if easing == "ease-in":
        return t * t
    if easing == "ease-out":
        return 1 - (1 - t) * (1 - t)
    if easing == "ease-in-out":
        if t < 0.5:
            return 2 * t * t
        return 1 - ((-2 * t + 2) ** 2) / 2
    return t


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def interpolate(
    start: Camera,
    end: Camera,
    progress: float,
    easing: Easing = "ease-out",
) -> Camera:
    if progress >= 1:
        return end
    t = apply_easing(max(0.0, progress), easing)
    return Camera(
        center=Point(
            lerp(start.center.x, end.center.x, t),
            lerp(start.center.y, end.center.y, t),
        ),
        zoom=lerp(start.zoom, end.zoom, t),
        bounds=end.bounds,
    )


def fit_to_region(
    positions: Sequence[Point],
    sizes: Sequence[Size | None],
    viewport: Viewport,
    padding: float = 50.0,
) -> Camera:
    """Center on the bounding box of the given rectangles.

    Zoom is capped at 1.0 so content is only ever shrunk to fit.
    """
    if not positions or not viewport.has_area():
        return DEFAULT_CAMERA

    min_x = min_y = float("inf")
    max_x = max_y = float("-inf")
    for idx, position in enumerate(positions):
        size = sizes[idx] if idx < len(sizes) and sizes[idx] is not None else FALLBACK_NODE_SIZE
        min_x = min(min_x, position.x - size.width / 2)
        max_x = max(max_x, position.x + size.width / 2)
        min_y = min(min_y, position.y - size.height / 2)
        max_y = max(max_y, position.y + size.height / 2)

    content_width = max_x - min_x + padding * 2
    content_height = max_y - min_y + padding * 2
    zoom = 1.0
    if content_width > 0:
        zoom = min(zoom, viewport.width / content_width)
    if content_height > 0:
        zoom = min(zoom, viewport.height / content_height)
    return Camera(center=Point((min_x + max_x) / 2, (min_y + max_y) / 2), zoom=zoom)


def visible_bounds(camera: Camera, viewport: Viewport) -> CameraBounds:
    half_width = (viewport.width / 2) / camera.zoom
    half_height = (viewport.height / 2) / camera.zoom
    return CameraBounds(
        min_x=camera.center.x - half_width,
        max_x=camera.center.x + half_width,
        min_y=camera.center.y - half_height,
        max_y=camera.center.y + half_height,
    )


def is_in_view(point: Point, camera: Camera, viewport: Viewport, margin: float = 0.0) -> bool:
    bounds = visible_bounds(camera, viewport)
    return (
        bounds.min_x - margin <= point.x <= bounds.max_x + margin
        and bounds.min_y - margin <= point.y <= bounds.max_y + margin
    )


@dataclass(frozen=True)
class CameraAnimation:
    """A camera move sampled by the host once per frame tick."""

    start: Camera
    end: Camera
    duration_ms: float
    easing: Easing = "ease-out"

    def progress(self, elapsed_ms: float) -> float:
        if self.duration_ms <= 0:
            return 1.0
        return max(0.0, min(1.0, elapsed_ms / self.duration_ms))

    def sample(self, elapsed_ms: float) -> Camera:
        return interpolate(self.start, self.end, self.progress(elapsed_ms), self.easing)

    def finished(self, elapsed_ms: float) -> bool:
        return self.progress(elapsed_ms) >= 1.0
