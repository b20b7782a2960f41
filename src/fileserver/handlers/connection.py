"""
=============================================================================
CONNECTION HANDLER
=============================================================================

Runs one accepted connection from first byte to response, on a worker
thread.

=============================================================================
FLOW
=============================================================================

    ┌──────────────┐
    │     INIT     │  open reader/writer streams
    └──────┬───────┘       │ OSError → log, return; the caller closes
           ▼
    ┌──────────────┐
    │   PARSING    │  RequestParser(reader, max_request_size).parse()
    └──────┬───────┘       │ ParseError / EncodingError / OSError
           │               │   → log, close, nothing written
           ▼
    ┌──────────────┐
    │ DISPATCHING  │  create_request_handler(request.method, ...)
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │  RESPONDING  │  header block, flush, body, flush
    └──────┬───────┘       │ InternalServerError → log ERROR, close
           │               │ OSError (read or write) → log, close
           ▼
    ┌──────────────┐
    │     DONE     │  return; the caller closes the socket
    └──────────────┘

Every failure path ends with the connection closed. Nothing here
retries.

=============================================================================
"""

import logging
from typing import BinaryIO, Dict, Optional, Type

from ..core.connection import Connection, ConnectionState
from ..http.request import (
    DEFAULT_MAX_REQUEST_SIZE,
    EncodingError,
    HTTPRequest,
    Method,
    ParseError,
    RequestParser,
)
from ..http.response import HTTPResponse, SERVER_NAME
from ..resources.store import ResourceStore
from .base import InternalServerError, RequestHandler
from .get import GetRequestHandler


logger = logging.getLogger(__name__)


# HEAD has no handler of its own and falls back to GET
REQUEST_HANDLERS: Dict[Method, Type[RequestHandler]] = {
    Method.GET: GetRequestHandler,
}

DEFAULT_REQUEST_HANDLER: Type[RequestHandler] = GetRequestHandler


def create_request_handler(
    request: HTTPRequest,
    store: ResourceStore,
    writer: BinaryIO,
    server_name: str = SERVER_NAME,
    connection_id: str = "-",
) -> RequestHandler:
    """
    Pick the handler class for ``request.method`` and instantiate it.

    Methods without a registered handler (HEAD) get GetRequestHandler, so a
    HEAD response carries a body.
    """
    handler_class = REQUEST_HANDLERS.get(request.method)
    if handler_class is None:
        logger.debug(
            f"[{connection_id}] No handler for {request.method.value}, "
            f"using {DEFAULT_REQUEST_HANDLER.__name__}"
        )
        handler_class = DEFAULT_REQUEST_HANDLER

    return handler_class(
        request=request,
        store=store,
        writer=writer,
        server_name=server_name,
        connection_id=connection_id,
    )


class ConnectionHandler:
    """
    Owns one connection for its whole lifetime.

    Usage:
        with conn:
            ConnectionHandler(conn, store).handle()
    """

    def __init__(
        self,
        connection: Connection,
        store: ResourceStore,
        server_name: str = SERVER_NAME,
        max_request_size: int = DEFAULT_MAX_REQUEST_SIZE,
    ):
        self.connection = connection
        self.store = store
        self.server_name = server_name
        self.max_request_size = max_request_size

    def handle(self) -> Optional[HTTPResponse]:
        """
        Read one request and answer it.

        Returns:
            The response that was written, or None when the connection was
            closed without one. Never raises for per-connection failures.
        """
        conn = self.connection

        # ─────────────────────────────────────────────────────────────────
        # INIT
        # ─────────────────────────────────────────────────────────────────
        try:
            reader = conn.reader
            writer = conn.writer
        except OSError as e:
            logger.error(f"[{conn.id}] Unable to open connection streams: {e}")
            return None

        # ─────────────────────────────────────────────────────────────────
        # PARSING
        # ─────────────────────────────────────────────────────────────────
        conn.state = ConnectionState.PARSING
        try:
            request = RequestParser(reader, max_request_size=self.max_request_size).parse()
        except (ParseError, EncodingError) as e:
            logger.warning(f"[{conn.id}] Bad request from {conn.client_ip}: {type(e).__name__}: {e}")
            conn.close()
            return None
        except OSError as e:
            # Includes socket.timeout
            logger.warning(f"[{conn.id}] Error reading request from {conn.client_ip}: {e}")
            conn.close()
            return None

        logger.debug(f"[{conn.id}] {request.method.value} {request.path}")

        # ─────────────────────────────────────────────────────────────────
        # DISPATCHING
        # ─────────────────────────────────────────────────────────────────
        conn.state = ConnectionState.DISPATCHING
        handler = create_request_handler(
            request,
            self.store,
            writer,
            server_name=self.server_name,
            connection_id=conn.id,
        )

        # ─────────────────────────────────────────────────────────────────
        # RESPONDING
        # ─────────────────────────────────────────────────────────────────
        conn.state = ConnectionState.RESPONDING
        try:
            response = handler.handle()
        except InternalServerError as e:
            logger.error(f"[{conn.id}] Internal server error: {e}")
            conn.close()
            return None
        except OSError as e:
            logger.error(f"[{conn.id}] Failed to respond to {request.path}: {e}")
            conn.close()
            return None

        # ─────────────────────────────────────────────────────────────────
        # DONE
        # ─────────────────────────────────────────────────────────────────
        conn.state = ConnectionState.DONE
        logger.info(
            f'[{conn.id}] {conn.client_ip} "{request.method.value} {request.path}" '
            f"{response.status} {response.length}"
        )
        return response
