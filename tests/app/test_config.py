from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from app.config import (
    DEFAULT_CONFIG_PATH,
    AppSettings,
    LayoutSettings,
    load_settings,
    resolve_config_path,
)
from domain.models import LayoutConfig, Viewport


def test_defaults_match_layout_config() -> None:
    settings = AppSettings()

    assert settings.layout.to_layout_config() == LayoutConfig()
    assert settings.stories.viewport() == Viewport(1280, 720)
    assert settings.layout.routing_enabled


def test_yaml_config_is_loaded(tmp_path: Path) -> None:
    config_path = tmp_path / "flowstory.yaml"
    config_path.write_text(
        "\n".join(
            [
                "stories:",
                "  title: Demo",
                "  stories_dir: demo/stories",
                "  log_level: debug",
                "layout:",
                "  edge_routing: Spline",
                "  overlap_padding: 4",
            ]
        ),
        encoding="utf-8",
    )

    settings = load_settings(config_path)

    assert settings.stories.title == "Demo"
    assert settings.stories.stories_dir == Path("demo/stories")
    assert settings.stories.log_level == "DEBUG"
    assert settings.layout.edge_routing == "spline"
    assert settings.layout.overlap_padding == 4


def test_env_overrides_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "flowstory.yaml"
    config_path.write_text("layout:\n  auto_fit: true\n", encoding="utf-8")
    monkeypatch.setenv("FLOWSTORY_CONFIG_PATH", str(config_path))
    monkeypatch.setenv("FLOWSTORY_LAYOUT__AUTO_FIT", "false")
    monkeypatch.setenv("FLOWSTORY_STORIES__VIEWPORT_WIDTH", "640")

    settings = load_settings()

    assert settings.layout.auto_fit is False
    assert settings.stories.viewport_width == 640


def test_missing_config_path_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "missing.yaml")


def test_missing_env_config_path_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLOWSTORY_CONFIG_PATH", str(tmp_path / "gone.yaml"))

    with pytest.raises(FileNotFoundError):
        load_settings()


def test_default_config_path_is_optional(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("FLOWSTORY_CONFIG_PATH", raising=False)
    monkeypatch.chdir(tmp_path)

    assert resolve_config_path() is None

    DEFAULT_CONFIG_PATH.parent.mkdir(parents=True)
    DEFAULT_CONFIG_PATH.write_text("stories:\n  title: Local\n", encoding="utf-8")

    assert resolve_config_path() == DEFAULT_CONFIG_PATH
    assert load_settings().stories.title == "Local"


def test_invalid_choice_is_rejected() -> None:
    with pytest.raises(ValidationError):
        LayoutSettings(overlap_strategy="scatter")


def test_negative_padding_is_rejected() -> None:
    with pytest.raises(ValidationError):
        LayoutSettings(edge_padding=-1)
