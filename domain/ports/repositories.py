from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from domain.models import Story


class StoryNotFoundError(FileNotFoundError):
    pass


class StoryRepository(Protocol):
    def list_ids(self) -> Sequence[str]: ...

    def load(self, story_id: str) -> Story: ...

    def load_by_path(self, path: Path) -> Story: ...

    def load_all_with_paths(self) -> Sequence[tuple[Path, Story]]: ...
