"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket: its read timeout, the buffered streams the
request parser and handlers use, its lifecycle state, and closing it.

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

    TCP Connect
        │
        ├── request line + headers   (read through the reader stream)
        ├── response header block    (written + flushed)
        ├── response body            (written + flushed)
        │
    TCP Close

There is no keep-alive. Every connection carries exactly one request, or
none if the request head could not be parsed.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    INIT ──► PARSING ──► DISPATCHING ──► RESPONDING ──► DONE ──┐
      │         │             │               │                 │
      │         │ parse error │ not found     │ write failed    │
      │         ▼             ▼ (fallback)    ▼                 ▼
      └──────────────────────────────────────────────────────► CLOSED

State is tracked for logging only; nothing branches on it except close(),
which is a no-op once CLOSED.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import BinaryIO, Optional, Tuple
import uuid


logger = logging.getLogger(__name__)


# Upper bound on bytes discarded while draining a closing socket
DRAIN_LIMIT = 64 * 1024


class ConnectionState(Enum):
    """Connection lifecycle states."""
    INIT = "init"                # Accepted, nothing read yet
    PARSING = "parsing"          # Reading the request head
    DISPATCHING = "dispatching"  # Looking up the resource
    RESPONDING = "responding"    # Writing the response
    DONE = "done"                # Response fully written
    CLOSED = "closed"            # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        timeout: Read timeout in seconds, applied as soon as the
                 connection is created. None leaves the socket blocking.
        id: Unique connection identifier (for logging).
        state: Current connection state.
        created_at: Timestamp when connection was accepted.
    """

    # Required parameters
    socket: socket.socket
    address: Tuple[str, int]

    timeout: Optional[float] = None

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.INIT
    created_at: float = field(default_factory=time.time)

    _reader: Optional[BinaryIO] = field(default=None, repr=False)
    _writer: Optional[BinaryIO] = field(default=None, repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        # AF_UNIX sockets (socketpair) report a plain string or bytes
        if isinstance(self.address, tuple):
            return str(self.address[0])
        return str(self.address)

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # STREAMS
    # =========================================================================

    @property
    def reader(self) -> BinaryIO:
        """Buffered binary stream for reading the request."""
        if self._reader is None:
            self._reader = self.socket.makefile("rb")
        return self._reader

    @property
    def writer(self) -> BinaryIO:
        """Buffered binary stream for writing the response."""
        if self._writer is None:
            self._writer = self.socket.makefile("wb")
        return self._writer

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        ┌─────────────────────────────────────────────────────────────────┐
        │   1. Flush and close the streams                                 │
        │   2. shutdown(SHUT_WR): send FIN, client sees end of response    │
        │   3. Drain what the client sent that we never read               │
        │   4. close(): release the file descriptor                        │
        └─────────────────────────────────────────────────────────────────┘

        Step 3 keeps the kernel from answering unread data with a reset,
        which could destroy a response the client has not read yet.

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self._close_streams()

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.settimeout(0.5)
            drained = 0
            while drained < DRAIN_LIMIT:
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass  # socket.timeout is an OSError

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def _close_streams(self):
        # makefile() objects hold a reference to the socket's fd; the fd is
        # only released once they are closed as well.
        for stream in (self._writer, self._reader):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError as e:
                logger.debug(f"[{self.id}] Error closing stream: {e}")
        self._reader = None
        self._writer = None

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        """
        Allows using Connection with 'with' statement for automatic cleanup:

            with conn:
                handler.handle()
            # Connection closed here, whatever happened inside
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions
