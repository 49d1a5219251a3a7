from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
import uvicorn
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from adapters.filesystem.json_utils import dump_json_bytes, write_frame_json
from adapters.filesystem.story_repository import FileSystemStoryRepository
from app.config import AppSettings, load_settings
from app.layout_wiring import build_edge_router
from app.web_main import create_app
from domain.models import Story, Viewport
from domain.ports.repositories import StoryNotFoundError
from domain.services.story_layout import build_frame
from domain.services.story_validation import validate_story

app = typer.Typer(no_args_is_help=True)
console = Console()


def _settings(config: Path | None) -> AppSettings:
    settings = load_settings(config)
    logging.basicConfig(level=settings.stories.log_level)
    return settings


def _load_story(story_path: Path) -> Story:
    repo = FileSystemStoryRepository(story_path.parent)
    try:
        return repo.load_by_path(story_path)
    except StoryNotFoundError as exc:
        console.print(f"[red]File not found:[/] {story_path}")
        raise typer.Exit(code=1) from exc
    except ValidationError as exc:
        console.print(f"[red]Invalid story:[/] {exc}")
        raise typer.Exit(code=1) from exc


@app.command("frame")
def frame(
    story_path: Path = typer.Argument(..., help="Story YAML or JSON file."),
    step: int = typer.Option(0, help="Step index; clamped into range."),
    width: Optional[float] = typer.Option(None, help="Viewport width, defaults to settings."),
    height: Optional[float] = typer.Option(None, help="Viewport height, defaults to settings."),
    output: Optional[Path] = typer.Option(None, help="Write the frame JSON to this file."),
    config: Optional[Path] = typer.Option(None, help="Settings YAML file."),
) -> None:
    settings = _settings(config)
    story = _load_story(story_path)
    default_viewport = settings.stories.viewport()
    viewport = Viewport(
        width if width is not None else default_viewport.width,
        height if height is not None else default_viewport.height,
    )
    layout_frame = build_frame(
        story,
        step,
        viewport,
        config=settings.layout.to_layout_config(),
        router=build_edge_router(settings),
    )
    if output is not None:
        write_frame_json(output, layout_frame)
        console.print(f"[green]Wrote[/] {output}")
        return
    typer.echo(dump_json_bytes(layout_frame.to_dict()).decode("utf-8"))


@app.command("validate")
def validate(
    story_path: Path = typer.Argument(..., help="Story YAML or JSON file to validate."),
) -> None:
    story = _load_story(story_path)
    result = validate_story(story)
    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/] {warning}")
    for error in result.errors:
        console.print(f"[red]Error:[/] {error}")
    if not result.valid:
        raise typer.Exit(code=1)
    console.print(f"[green]Valid story:[/] {story_path}")


@app.command("steps")
def steps(
    story_path: Path = typer.Argument(..., help="Story YAML or JSON file."),
) -> None:
    story = _load_story(story_path)
    table = Table(title=story.title or story.id)
    table.add_column("#", justify="right")
    table.add_column("Order", justify="right")
    table.add_column("Title")
    table.add_column("Active nodes")
    table.add_column("Active edges")
    for idx, step in enumerate(story.steps):
        table.add_row(
            str(idx),
            str(step.order),
            step.title or step.id or "",
            ", ".join(step.active_nodes),
            ", ".join(step.active_edges),
        )
    console.print(table)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Interface to bind."),
    port: int = typer.Option(8080, help="Port to listen on."),
    config: Optional[Path] = typer.Option(None, help="Settings YAML file."),
) -> None:
    settings = _settings(config)
    console.print(f"[green]Serving frames from[/] {settings.stories.stories_dir}")
    uvicorn.run(
        create_app(settings),
        host=host,
        port=port,
        log_level=settings.stories.log_level.lower(),
    )


if __name__ == "__main__":
    app()
