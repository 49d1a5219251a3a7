from __future__ import annotations

from adapters.filesystem.story_repository import FileSystemStoryRepository
from adapters.layout.grid_router import GridRoutingBackend
from app.config import AppSettings
from domain.ports.repositories import StoryRepository
from domain.services.edge_routing import EdgeRouter


def build_story_repository(settings: AppSettings) -> StoryRepository:
    return FileSystemStoryRepository(settings.stories.stories_dir)


def build_edge_router(settings: AppSettings) -> EdgeRouter:
    layout = settings.layout
    backend = GridRoutingBackend() if layout.routing_enabled else None
    return EdgeRouter(backend=backend, simplify_tolerance=layout.simplify_tolerance)
