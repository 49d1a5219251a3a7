from __future__ import annotations

from functools import cache, lru_cache
from pathlib import Path
from typing import Any

from adapters.filesystem.story_repository import FileSystemStoryRepository
from domain.models import Story, StoryStep


@lru_cache(maxsize=1)
def repo_root() -> Path:
    for parent in Path(__file__).resolve().parents:
        if (parent / "pyproject.toml").exists():
            return parent
    raise RuntimeError("Repository root not found")


def example_stories_dir() -> Path:
    return repo_root() / "examples" / "stories"


@cache
def _load_story_cached(name: str) -> Story:
    return FileSystemStoryRepository(example_stories_dir()).load(name)


def load_story_fixture(name: str) -> Story:
    return _load_story_cached(name).model_copy(deep=True)


def make_steps(*payloads: dict[str, Any]) -> list[StoryStep]:
    return [StoryStep.model_validate(payload) for payload in payloads]


def make_story(**payload: Any) -> Story:
    payload.setdefault("id", "story")
    return Story.model_validate(payload)
