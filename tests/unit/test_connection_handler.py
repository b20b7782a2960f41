"""
Unit tests for the connection handler.

Each test drives a ConnectionHandler over a socket pair: the client side
writes a request and shuts down its write half, the handler runs on the
server side in the test thread, and the client reads whatever came back.
"""

import socket
from pathlib import Path

import pytest

from conftest import (
    INDEX_HTML,
    INTERNAL_ERROR_HTML,
    NOT_FOUND_HTML,
    read_all,
    split_response,
    write_site,
)
from fileserver import FileServer, ServerConfig
from fileserver.core import Connection, ConnectionState
from fileserver.handlers import (
    ConnectionHandler,
    GetRequestHandler,
    create_request_handler,
)
from fileserver.http.request import HTTPRequest, Method
from fileserver.resources import ResourceReadError, ResourceStore


def exchange(
    connection: Connection,
    client: socket.socket,
    store: ResourceStore,
    raw: bytes,
):
    """Send ``raw``, run the handler, close, and return (response, reply bytes)."""
    client.sendall(raw)
    client.shutdown(socket.SHUT_WR)

    response = ConnectionHandler(connection, store).handle()
    connection.close()

    return response, read_all(client)


class TestSuccessfulResponses:
    """Requests that produce a response."""

    def test_get_index(self, connection, socket_pair, store):
        _, client = socket_pair
        response, raw = exchange(connection, client, store, b"GET /index.html HTTP/1.1\n\n")

        status_line, headers, body = split_response(raw)
        assert status_line == "HTTP/1.1 200 OK"
        assert headers["Content-type"] == "text/html"
        assert headers["Content-length"] == "13"
        assert body == INDEX_HTML
        assert response.status == 200

    def test_header_order_on_wire(self, connection, socket_pair, store):
        _, client = socket_pair
        _, raw = exchange(connection, client, store, b"GET /index.html HTTP/1.1\r\n\r\n")

        _, headers, _ = split_response(raw)
        assert list(headers) == ["Date", "Server", "Content-type", "Content-length"]

    def test_missing_path_sends_404_page(self, connection, socket_pair, store):
        _, client = socket_pair
        response, raw = exchange(connection, client, store, b"GET /missing.html HTTP/1.1\r\n\r\n")

        status_line, headers, body = split_response(raw)
        assert status_line == "HTTP/1.1 404 Not Found"
        assert body == NOT_FOUND_HTML
        assert headers["Content-length"] == str(len(NOT_FOUND_HTML))
        assert response.status == 404

    def test_missing_404_page_sends_500_page(self, tmp_path: Path, connection, socket_pair):
        _, client = socket_pair
        store = ResourceStore(write_site(tmp_path / "site", not_found=False))

        _, raw = exchange(connection, client, store, b"GET /missing.html HTTP/1.1\r\n\r\n")

        status_line, _, body = split_response(raw)
        assert status_line == "HTTP/1.1 500 Internal Server Error"
        assert body == INTERNAL_ERROR_HTML

    @pytest.mark.parametrize("raw", [
        b"GET /a%00b?x=1 HTTP/1.1\r\n\r\n",              # NUL byte after decoding
        b"GET /" + b"a" * 5000 + b" HTTP/1.1\r\n\r\n",   # Longer than any file name
    ])
    def test_unusable_path_sends_404_page(self, connection, socket_pair, store, raw: bytes):
        _, client = socket_pair
        response, reply = exchange(connection, client, store, raw)

        status_line, _, body = split_response(reply)
        assert status_line == "HTTP/1.1 404 Not Found"
        assert body == NOT_FOUND_HTML
        assert response.status == 404

    def test_head_uses_get_handler(self, connection, socket_pair, store):
        _, client = socket_pair
        _, raw = exchange(connection, client, store, b"HEAD /index.html HTTP/1.1\r\n\r\n")

        status_line, _, body = split_response(raw)
        assert status_line == "HTTP/1.1 200 OK"
        assert body == INDEX_HTML

    def test_query_string_ignored(self, connection, socket_pair, store):
        _, client = socket_pair
        _, raw = exchange(connection, client, store, b"GET /index.html?lang=en HTTP/1.1\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 200 OK\r\n")

    def test_connection_left_open_after_response(self, connection, socket_pair, store):
        _, client = socket_pair
        client.sendall(b"GET /index.html HTTP/1.1\r\n\r\n")

        ConnectionHandler(connection, store).handle()

        assert connection.state == ConnectionState.DONE
        assert not connection.closed
        connection.close()

    def test_cache_populated(self, connection, socket_pair, store):
        _, client = socket_pair
        exchange(connection, client, store, b"GET /index.html HTTP/1.1\r\n\r\n")

        assert "/index.html" in store.cache


class TestClosedWithoutResponse:
    """Failures that close the connection with nothing written."""

    @pytest.mark.parametrize("raw", [
        b"GET /index.html\r\n\r\n",                      # Wrong argument count
        b"GET /index.html HTTP/1.1 extra\r\n\r\n",
        b"POST /index.html HTTP/1.1\r\n\r\n",            # Unsupported method
        b"GET /index.html HTTP/1.0\r\n\r\n",             # Unsupported version
        b" GET /index.html HTTP/1.1\r\n\r\n",            # Malformed request line
        b"GET /index.html HTTP/1.1\r\nBadHeader\r\n\r\n",
        b"GET /index.html HTTP/1.1\r\nHost: x\r\n",      # Unterminated headers
        b"GET /index.html?param=ttt&% HTTP/1.1\r\n\r\n",  # Encoding error
        b"",
    ])
    def test_bad_request(self, connection, socket_pair, store, raw: bytes):
        _, client = socket_pair
        response, reply = exchange(connection, client, store, raw)

        assert response is None
        assert reply == b""
        assert connection.closed

    def test_request_head_too_large(self, connection, socket_pair, store):
        _, client = socket_pair
        client.sendall(b"GET /" + b"a" * 4096 + b" HTTP/1.1\r\n\r\n")
        client.shutdown(socket.SHUT_WR)

        response = ConnectionHandler(connection, store, max_request_size=1024).handle()

        assert response is None
        assert connection.closed
        assert read_all(client) == b""

    def test_no_fallback_pages(self, tmp_path: Path, connection, socket_pair, caplog):
        _, client = socket_pair
        store = ResourceStore(write_site(tmp_path / "site", not_found=False, internal_error=False))

        response, reply = exchange(connection, client, store, b"GET /missing.html HTTP/1.1\r\n\r\n")

        assert response is None
        assert reply == b""
        assert "Internal server error" in caplog.text

    def test_read_failure(self, static_root: Path, connection, socket_pair):
        class FailingStore(ResourceStore):
            def _read(self, file_path):
                raise ResourceReadError("disk on fire")

        _, client = socket_pair
        response, reply = exchange(
            connection, client, FailingStore(static_root), b"GET /index.html HTTP/1.1\r\n\r\n"
        )

        assert response is None
        assert reply == b""

    def test_read_timeout(self, socket_pair, store):
        server_sock, client = socket_pair
        connection = Connection(socket=server_sock, address=("socketpair", 0), timeout=0.2)

        # Client connects but never sends anything
        response = ConnectionHandler(connection, store).handle()

        assert response is None
        assert connection.closed
        assert read_all(client) == b""

    def test_partial_request_then_timeout(self, socket_pair, store):
        server_sock, client = socket_pair
        connection = Connection(socket=server_sock, address=("socketpair", 0), timeout=0.2)
        client.sendall(b"GET /index.html HTTP/1.1\r\nHost: x\r\n")

        assert ConnectionHandler(connection, store).handle() is None
        assert read_all(client) == b""


class TestCreateRequestHandler:
    """Tests for create_request_handler."""

    @pytest.mark.parametrize("method", [Method.GET, Method.HEAD])
    def test_get_handler_for_get_and_head(self, store, method: Method):
        request = HTTPRequest(method=method, path="/")
        handler = create_request_handler(request, store, writer=None)

        assert isinstance(handler, GetRequestHandler)
        assert handler.request is request


class BrokenStreamsConnection(Connection):
    """Connection whose socket streams cannot be opened."""

    @property
    def reader(self):
        raise OSError("makefile failed")


class TestStreamFailure:
    """The connection streams cannot be opened."""

    def test_handler_returns_without_closing(self, socket_pair, store):
        server_sock, _ = socket_pair
        conn = BrokenStreamsConnection(socket=server_sock, address=("socketpair", 0))

        assert ConnectionHandler(conn, store).handle() is None
        assert conn.state == ConnectionState.INIT
        assert not conn.closed

    def test_worker_closes_socket_afterwards(self, socket_pair, static_root: Path):
        server_sock, client = socket_pair
        conn = BrokenStreamsConnection(socket=server_sock, address=("socketpair", 0))
        server = FileServer(ServerConfig(port=0, pool_size=1, static_dir=str(static_root)))

        server._process_connection(conn)

        assert conn.closed
        assert read_all(client) == b""
