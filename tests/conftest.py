"""Shared test fixtures."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

from cronprobe.ledger.store import LedgerStore

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class StepClock:
    """Deterministic clock: each call returns ``start + n * step``."""

    def __init__(self, start: datetime = T0, step: timedelta = timedelta(minutes=1)) -> None:
        self.start = start
        self.step = step
        self.calls = 0

    def __call__(self) -> datetime:
        value = self.start + self.step * self.calls
        self.calls += 1
        return value


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def ledger(tmp_path: Path, clock: StepClock) -> LedgerStore:
    """LedgerStore backed by a temp SQLite file with a stepping clock."""
    return LedgerStore(tmp_path / "test_executions.db", max_page_size=50, clock=clock)


class _ProbeHandler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:  # noqa: N802
        if self.path.startswith("/missing"):
            status, body = 404, b""
        else:
            status, body = 200, b"ok"
        self.send_response(status)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, *args: object) -> None:
        pass


@pytest.fixture
def http_server() -> Iterator[str]:
    """Local server: ``/missing*`` answers 404, everything else 200 "ok"."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _ProbeHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()
