from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from domain.models import Easing, LayoutConfig, OverlapStrategy, RoutingStyle, Viewport

DEFAULT_CONFIG_PATH = Path("config/flowstory.yaml")


class LayoutSettings(BaseModel):
    edge_routing: RoutingStyle = "orthogonal"
    edge_padding: float = Field(default=20.0, ge=0)
    overlap_detection: bool = True
    overlap_strategy: OverlapStrategy = "nudge"
    overlap_padding: float = Field(default=10.0, ge=0)
    fit_padding: float = Field(default=50.0, ge=0)
    auto_fit: bool = True
    routing_enabled: bool = True
    routing_timeout_seconds: float = Field(default=2.0, ge=0)
    simplify_tolerance: float = Field(default=1.0, ge=0)
    default_transition_ms: float = Field(default=300.0, ge=0)
    default_easing: Easing = "ease-out"

    @field_validator("edge_routing", "overlap_strategy", "default_easing", mode="before")
    @classmethod
    def normalize_choice(cls, value: object) -> str:
        return str(value).strip().lower()

    def to_layout_config(self) -> LayoutConfig:
        return LayoutConfig(
            edge_routing=self.edge_routing,
            edge_padding=self.edge_padding,
            overlap_detection=self.overlap_detection,
            overlap_strategy=self.overlap_strategy,
            overlap_padding=self.overlap_padding,
            fit_padding=self.fit_padding,
            auto_fit=self.auto_fit,
            routing_timeout_seconds=self.routing_timeout_seconds,
            simplify_tolerance=self.simplify_tolerance,
            default_transition_ms=self.default_transition_ms,
            default_easing=self.default_easing,
        )


class StorySettings(BaseModel):
    title: str = "FlowStory"
    stories_dir: Path = Path("data/stories")
    viewport_width: float = Field(default=1280.0, ge=0)
    viewport_height: float = Field(default=720.0, ge=0)
    log_level: str = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: object) -> str:
        return str(value).upper() if value else "INFO"

    def viewport(self) -> Viewport:
        return Viewport(self.viewport_width, self.viewport_height)


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FLOWSTORY_", env_nested_delimiter="__")

    stories: StorySettings = StorySettings()
    layout: LayoutSettings = LayoutSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Lowest priority last; reads nothing unless model_config names a yaml_file.
        yaml_settings = YamlConfigSettingsSource(settings_cls)
        return init_settings, env_settings, dotenv_settings, file_secret_settings, yaml_settings


def resolve_config_path(config_path: Path | None = None) -> Path | None:
    """Pick the YAML file to load: argument, then FLOWSTORY_CONFIG_PATH, then the default."""
    env_value = os.environ.get("FLOWSTORY_CONFIG_PATH")
    explicit = config_path or (Path(env_value) if env_value else None)
    if explicit is None:
        return DEFAULT_CONFIG_PATH if DEFAULT_CONFIG_PATH.is_file() else None
    if not explicit.exists():
        raise FileNotFoundError(f"Config file not found: {explicit}")
    return explicit


def load_settings(config_path: Path | None = None) -> AppSettings:
    yaml_file = resolve_config_path(config_path)
    if yaml_file is None:
        return AppSettings()

    class FileBackedSettings(AppSettings):
        model_config = SettingsConfigDict(yaml_file=yaml_file)

    return FileBackedSettings()
