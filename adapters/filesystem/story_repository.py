from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, List

import yaml

from adapters.filesystem.json_utils import load_json
from domain.models import Story
from domain.ports.repositories import StoryNotFoundError, StoryRepository

STORY_SUFFIXES = (".yaml", ".yml", ".json")


class FileSystemStoryRepository(StoryRepository):
    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def list_ids(self) -> List[str]:
        return sorted({path.stem for path in self._iter_paths()})

    def load(self, story_id: str) -> Story:
        for suffix in STORY_SUFFIXES:
            path = self.directory / f"{story_id}{suffix}"
            if path.is_file():
                return self.load_by_path(path)
        msg = f"Story not found: {story_id}"
        raise StoryNotFoundError(msg)

    def load_by_path(self, path: Path) -> Story:
        if not path.is_file():
            msg = f"Story not found: {path}"
            raise StoryNotFoundError(msg)
        content = self._read_payload(path)
        content.setdefault("id", path.stem)
        return Story.model_validate(content)

    def load_all_with_paths(self) -> List[tuple[Path, Story]]:
        return [(path, self.load_by_path(path)) for path in sorted(self._iter_paths())]

    def _iter_paths(self) -> Iterable[Path]:
        if not self.directory.is_dir():
            return
        for suffix in STORY_SUFFIXES:
            yield from self.directory.glob(f"*{suffix}")

    def _read_payload(self, path: Path) -> dict[str, Any]:
        if path.suffix == ".json":
            return load_json(path)
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        return data if isinstance(data, dict) else {}
