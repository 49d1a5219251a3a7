from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import ORJSONResponse
from pydantic import ValidationError

from app.config import AppSettings, load_settings
from app.layout_wiring import build_edge_router, build_story_repository
from domain.models import LayoutConfig, Story, Viewport
from domain.ports.repositories import StoryNotFoundError, StoryRepository
from domain.services.edge_routing import EdgeRouter
from domain.services.story_layout import build_frame
from domain.services.story_validation import validate_story

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoryContext:
    settings: AppSettings
    repository: StoryRepository
    router: EdgeRouter
    layout_config: LayoutConfig


def create_app(settings: AppSettings) -> FastAPI:
    app = FastAPI(title=settings.stories.title)
    context = StoryContext(
        settings=settings,
        repository=build_story_repository(settings),
        router=build_edge_router(settings),
        layout_config=settings.layout.to_layout_config(),
    )

    def get_context() -> StoryContext:
        return context

    def load_story(story_id: str, context: StoryContext) -> Story:
        try:
            return context.repository.load(story_id)
        except StoryNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Story not found") from exc
        except ValidationError as exc:
            logger.exception("Story %s failed validation", story_id)
            raise HTTPException(status_code=422, detail="Story is invalid") from exc

    @app.get("/api/stories")
    def api_stories(context: StoryContext = Depends(get_context)) -> ORJSONResponse:
        return ORJSONResponse({"stories": list(context.repository.list_ids())})

    @app.get("/api/stories/{story_id}")
    def api_story(
        story_id: str,
        context: StoryContext = Depends(get_context),
    ) -> ORJSONResponse:
        story = load_story(story_id, context)
        validation = validate_story(story)
        payload: dict[str, Any] = {
            "id": story.id,
            "title": story.title,
            "step_count": len(story.steps),
            "steps": [
                {
                    "index": idx,
                    "order": step.order,
                    "title": step.title,
                    "narrative": step.narrative,
                }
                for idx, step in enumerate(story.steps)
            ],
            "errors": validation.errors,
            "warnings": validation.warnings,
        }
        return ORJSONResponse(payload)

    @app.get("/api/stories/{story_id}/frames/{index}")
    def api_story_frame(
        story_id: str,
        index: int,
        width: float | None = Query(default=None, ge=0),
        height: float | None = Query(default=None, ge=0),
        context: StoryContext = Depends(get_context),
    ) -> ORJSONResponse:
        story = load_story(story_id, context)
        default_viewport = context.settings.stories.viewport()
        viewport = Viewport(
            width if width is not None else default_viewport.width,
            height if height is not None else default_viewport.height,
        )
        frame = build_frame(
            story,
            index,
            viewport,
            config=context.layout_config,
            router=context.router,
        )
        return ORJSONResponse(frame.to_dict())

    return app


def create_default_app() -> FastAPI:
    return create_app(load_settings())
