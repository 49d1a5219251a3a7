from __future__ import annotations

import os
from collections.abc import Callable, Generator

import pytest

from app.config import AppSettings, LayoutSettings, StorySettings
from domain.models import Story
from tests.helpers.story_fixtures import example_stories_dir, load_story_fixture


def _clear_flowstory_env() -> None:
    for key in list(os.environ):
        if key.startswith("FLOWSTORY_"):
            os.environ.pop(key, None)


_clear_flowstory_env()


@pytest.fixture(autouse=True)
def clear_flowstory_env() -> Generator[None, None, None]:
    _clear_flowstory_env()
    yield
    _clear_flowstory_env()


@pytest.fixture
def order_story() -> Story:
    return load_story_fixture("order_pipeline")


@pytest.fixture
def story_settings() -> StorySettings:
    return StorySettings(
        title="Test Stories",
        stories_dir=example_stories_dir(),
        viewport_width=800,
        viewport_height=600,
        log_level="WARNING",
    )


@pytest.fixture
def layout_settings() -> LayoutSettings:
    return LayoutSettings(routing_timeout_seconds=5.0)


@pytest.fixture
def app_settings(story_settings: StorySettings, layout_settings: LayoutSettings) -> AppSettings:
    return AppSettings(stories=story_settings, layout=layout_settings)


@pytest.fixture
def app_settings_factory(
    story_settings: StorySettings,
    layout_settings: LayoutSettings,
) -> Callable[..., AppSettings]:
    def _factory(**overrides: object) -> AppSettings:
        return AppSettings(
            stories=story_settings.model_copy(update=overrides),
            layout=layout_settings,
        )

    return _factory
