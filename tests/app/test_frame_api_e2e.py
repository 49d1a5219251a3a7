from __future__ import annotations

import socket
import sys
import threading
import time

import httpx
import pytest
import uvicorn

from app.config import AppSettings
from app.web_main import create_app
from scripts import smoke_demo


def find_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return int(sock.getsockname()[1])


def start_frame_server(settings: AppSettings) -> tuple[uvicorn.Server, threading.Thread, int]:
    port = find_free_port()
    config = uvicorn.Config(
        create_app(settings),
        host="127.0.0.1",
        port=port,
        log_level="error",
    )
    server = uvicorn.Server(config)
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()

    deadline = time.time() + 5
    while time.time() < deadline:
        if server.started:
            return server, thread, port
        time.sleep(0.05)
    raise RuntimeError("Frame server did not start in time")


def test_frames_served_over_http(
    app_settings: AppSettings,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    server, thread, port = start_frame_server(app_settings)
    base = f"http://127.0.0.1:{port}"
    try:
        with httpx.Client(base_url=base, timeout=5) as client:
            frames = [
                client.get(f"/api/stories/order_pipeline/frames/{index}") for index in range(4)
            ]
        assert [response.status_code for response in frames] == [200, 200, 200, 200]
        visible = [len(response.json()["nodes"]) for response in frames]
        assert visible == [2, 4, 5, 5]

        monkeypatch.setattr(sys, "argv", ["smoke_demo", "--base", base, "--timeout", "5"])
        smoke_demo.main()
        assert "Smoke test passed for order_pipeline (4 steps)." in capsys.readouterr().out
    finally:
        server.should_exit = True
        thread.join(timeout=5)
