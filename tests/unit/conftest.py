from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from archive_lite.config import BrowserConfig, CaptureConfig, StorageConfig
from archive_lite.store import ArchiveStore
from archive_lite.transport import RateLimitedTransport, build_session


@dataclass
class Hit:
    path: str
    at: float
    headers: Dict[str, str]


@dataclass
class SiteState:
    routes: Dict[str, Tuple[int, Dict[str, str], bytes]] = field(default_factory=dict)
    hits: List[Hit] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)


class _Handler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:  # noqa: N802
        state: SiteState = self.server.state  # type: ignore[attr-defined]
        with state.lock:
            state.hits.append(Hit(self.path, time.monotonic(), dict(self.headers.items())))
        status, headers, body = state.routes.get(self.path, (404, {}, b"not found"))
        self.send_response(status)
        for name, value in headers.items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args) -> None:  # noqa: A002
        return


class Site:
    """Local HTTP server standing in for a remote web site."""

    def __init__(self) -> None:
        self.state = SiteState()
        self.server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
        self.server.state = self.state  # type: ignore[attr-defined]
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)

    @property
    def base_url(self) -> str:
        host, port = self.server.server_address[:2]
        return f"http://{host}:{port}"

    def url(self, path: str) -> str:
        return self.base_url + path

    def add(
        self,
        path: str,
        body: bytes | str,
        status: int = 200,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.state.routes[path] = (status, dict(headers or {}), body)

    def redirect(self, path: str, location: str, status: int = 302) -> None:
        self.state.routes[path] = (status, {"Location": location}, b"")

    @property
    def hits(self) -> List[Hit]:
        with self.state.lock:
            return list(self.state.hits)

    def start(self) -> None:
        self.thread.start()

    def stop(self) -> None:
        self.server.shutdown()
        self.server.server_close()


@pytest.fixture
def site():
    server = Site()
    server.start()
    try:
        yield server
    finally:
        server.stop()


def _make_transport(min_interval: float = 0.0) -> RateLimitedTransport:
    session = build_session()
    session.trust_env = False
    return RateLimitedTransport(min_interval=min_interval, session=session, timeout=5.0)


@pytest.fixture
def make_transport():
    return _make_transport


@pytest.fixture
def transport() -> RateLimitedTransport:
    return _make_transport()


@pytest.fixture
def capture_config(tmp_path: Path) -> CaptureConfig:
    return CaptureConfig(
        storage=StorageConfig(data_dir=tmp_path / "data"),
        browser=BrowserConfig(timeout=1.0, settle_delay=0.0),
        db_path=tmp_path / "archive.db",
        request_delay=0.0,
        screenshots_enabled=False,
    )


@pytest.fixture
def store(capture_config: CaptureConfig) -> ArchiveStore:
    archive_store = ArchiveStore(capture_config.db_path)
    archive_store.initialize()
    return archive_store
