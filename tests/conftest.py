"""
pytest configuration and fixtures.
"""

import socket
import threading
import time
from dataclasses import replace
from pathlib import Path
from typing import Generator

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserver import StaticFileServer, ServerConfig
from staticserver.core.connection import Connection


# Files every test web root contains
WEBROOT_FILES = {
    "index.html": b"hello world!",
    "style.css": b"body { color: #333; }\n",
    "app.js": b"console.log('hi');\n",
    "photo.jpg": bytes(range(256)) * 4,
    "notes.txt": b"not whitelisted",
    "README": b"no extension",
    "sub/page.html": b"<p>nested</p>",
}


@pytest.fixture
def webroot(tmp_path: Path) -> Path:
    """A web root populated with WEBROOT_FILES."""
    root = tmp_path / "www"
    for name, content in WEBROOT_FILES.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    return root


@pytest.fixture
def config(webroot: Path) -> ServerConfig:
    """Test configuration: loopback, OS-chosen port, short timeouts."""
    return ServerConfig(
        port=0,
        root_directory=str(webroot),
        host="127.0.0.1",
        worker_count=2,
        queue_size=8,
        request_timeout=5.0,
        accept_timeout=0.1,
        shutdown_timeout=5.0,
        log_level="WARNING",
    )


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # Not a test class

    def __init__(self, server: StaticFileServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Bind synchronously, then accept in a background thread."""
        self.server.open()
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    @property
    def stopped(self) -> bool:
        return self._thread is not None and not self._thread.is_alive()

    def request(self, raw: bytes) -> bytes:
        """Send raw bytes, read until the server closes, return everything."""
        return send_raw(self.port, raw)

    def get(self, uri: str, version: str = "HTTP/1.1") -> bytes:
        return self.request(f"GET {uri} {version}\r\nHost: localhost\r\n\r\n".encode())


def send_raw(port: int, raw: bytes, timeout: float = 5.0) -> bytes:
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as sock:
        if raw:
            sock.sendall(raw)
        chunks = []
        while True:
            chunk = sock.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def split_response(data: bytes) -> tuple[str, dict, bytes]:
    """Split raw response bytes into (status line, headers, body)."""
    head, _, body = data.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name] = value
    return lines[0], headers, body


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running server on a free port."""
    srv = TestServer(StaticFileServer(config))
    srv.start()

    yield srv

    srv.stop()


@pytest.fixture
def server_factory(config: ServerConfig):
    """Start servers with config overrides; all are stopped at teardown."""
    started = []

    def factory(**overrides) -> TestServer:
        srv = TestServer(StaticFileServer(replace(config, **overrides)))
        srv.start()
        started.append(srv)
        return srv

    yield factory

    for srv in started:
        srv.stop()


@pytest.fixture
def socket_pair() -> Generator[tuple[socket.socket, socket.socket], None, None]:
    """A connected (server side, client side) socket pair."""
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    for sock in (server_side, client_side):
        try:
            sock.close()
        except OSError:
            pass


@pytest.fixture
def make_connection(socket_pair):
    """Factory for a Connection over the server side of socket_pair."""
    server_side, _ = socket_pair

    def factory(timeout: float = 2.0, **kwargs) -> Connection:
        return Connection(
            socket=server_side,
            address=("127.0.0.1", 40000),
            deadline=time.monotonic() + timeout,
            **kwargs,
        )

    return factory


@pytest.fixture
def parse_response():
    """The split_response helper, for tests outside this module."""
    return split_response
