"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Callable, Generator, Tuple

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fileserver import FileServer, ServerConfig
from fileserver.core import Connection
from fileserver.resources import ResourceStore


INDEX_HTML = b"<html></html>"
NOT_FOUND_HTML = b"<html><body>404 page</body></html>"
INTERNAL_ERROR_HTML = b"<html><body>500 page</body></html>"


def write_site(root: Path, index=True, not_found=True, internal_error=True) -> Path:
    """Create a small static site under ``root``."""
    root.mkdir(parents=True, exist_ok=True)
    if index:
        (root / "index.html").write_bytes(INDEX_HTML)
    if not_found:
        (root / "404.html").write_bytes(NOT_FOUND_HTML)
    if internal_error:
        (root / "internal_error.html").write_bytes(INTERNAL_ERROR_HTML)

    (root / "style.css").write_bytes(b"body { color: red; }")
    (root / "data.unknownext").write_bytes(b"\x00\x01\x02")
    (root / "docs").mkdir(exist_ok=True)
    (root / "docs" / "index.html").write_bytes(b"<html>docs</html>")
    (root / "a b.html").write_bytes(b"<html>space</html>")
    return root


def read_all(sock: socket.socket) -> bytes:
    """Read from ``sock`` until the peer closes it."""
    chunks = []
    while True:
        try:
            chunk = sock.recv(65536)
        except ConnectionResetError:
            break
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


def split_response(raw: bytes) -> Tuple[str, dict, bytes]:
    """Split raw response bytes into (status line, headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name] = value
    return lines[0], headers, body


@pytest.fixture
def static_root(tmp_path: Path) -> Path:
    """A static root holding index, 404 and internal error pages."""
    return write_site(tmp_path / "site")


@pytest.fixture
def store(static_root: Path) -> ResourceStore:
    """A resource store with an empty cache over ``static_root``."""
    return ResourceStore(static_root)


@pytest.fixture
def socket_pair() -> Generator[Tuple[socket.socket, socket.socket], None, None]:
    """(server side, client side) of a connected socket pair."""
    server_sock, client_sock = socket.socketpair()
    client_sock.settimeout(5.0)
    yield server_sock, client_sock
    server_sock.close()
    client_sock.close()


@pytest.fixture
def connection(socket_pair) -> Connection:
    """Connection wrapping the server side of ``socket_pair``."""
    server_sock, _ = socket_pair
    return Connection(socket=server_sock, address=("socketpair", 0), timeout=2.0)


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def running_server(static_root: Path) -> Generator[FileServer, None, None]:
    """A FileServer on an OS-assigned port, running in a background thread."""
    server = FileServer(ServerConfig(
        host="127.0.0.1",
        port=0,
        pool_size=4,
        timeout_ms=2000,
        static_dir=str(static_root),
        log_level="WARNING",
    ))

    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()
    if not server.wait_until_ready(timeout=5.0):
        raise RuntimeError("Server failed to start")

    yield server

    server.shutdown()
    thread.join(timeout=10.0)


@pytest.fixture
def send_request(running_server: FileServer) -> Callable[[bytes], bytes]:
    """Send raw bytes to ``running_server`` and return everything it replies."""
    def send(raw: bytes) -> bytes:
        with socket.create_connection(("127.0.0.1", running_server.port), timeout=5.0) as sock:
            sock.sendall(raw)
            return read_all(sock)
    return send
