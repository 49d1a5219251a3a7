from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson

from domain.services.story_layout import LayoutFrame


def load_json(path: Path) -> dict[str, Any]:
    data = orjson.loads(path.read_bytes())
    return data if isinstance(data, dict) else {}


def dump_json_bytes(payload: Any, *, pretty: bool = True) -> bytes:
    option = orjson.OPT_NON_STR_KEYS
    if pretty:
        option |= orjson.OPT_INDENT_2
    return orjson.dumps(payload, option=option)


def write_frame_json(path: Path, frame: LayoutFrame) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(f"{path.suffix}.tmp")
    tmp_path.write_bytes(dump_json_bytes(frame.to_dict()))
    tmp_path.replace(path)
