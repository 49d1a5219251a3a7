from __future__ import annotations

import argparse
import json
import time
import urllib.error
import urllib.request
from typing import Any

POLL_INTERVAL_SECONDS = 0.5


def get_json(url: str, timeout: float) -> Any:
    """GET ``url`` until it answers with JSON or ``timeout`` seconds pass."""
    give_up_at = time.monotonic() + timeout
    while True:
        try:
            with urllib.request.urlopen(url, timeout=min(timeout, 10)) as response:
                return json.load(response)
        except (urllib.error.URLError, ConnectionError) as exc:
            if time.monotonic() >= give_up_at:
                raise RuntimeError(f"{url} did not respond within {timeout}s: {exc}") from exc
        time.sleep(POLL_INTERVAL_SECONDS)


def main() -> None:
    parser = argparse.ArgumentParser(description="Smoke test for a running frame API.")
    parser.add_argument("--base", default="http://localhost:8080")
    parser.add_argument("--timeout", type=float, default=60.0)
    args = parser.parse_args()

    base = args.base.rstrip("/")

    listing = get_json(f"{base}/api/stories", args.timeout)
    story_ids = listing.get("stories", [])
    if not story_ids:
        raise RuntimeError("No stories available")

    story_id = story_ids[0]
    story = get_json(f"{base}/api/stories/{story_id}", args.timeout)
    step_count = int(story.get("step_count", 0))
    if step_count == 0:
        raise RuntimeError(f"Story {story_id} has no steps")

    for index in range(step_count):
        frame = get_json(f"{base}/api/stories/{story_id}/frames/{index}", args.timeout)
        if frame.get("step_index") != index:
            raise RuntimeError(f"Frame {index} reported step {frame.get('step_index')}")
        if not frame.get("nodes"):
            raise RuntimeError(f"Frame {index} has no visible nodes")

    print(f"Smoke test passed for {story_id} ({step_count} steps).")


if __name__ == "__main__":
    main()
