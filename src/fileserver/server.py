"""
=============================================================================
FILE SERVER
=============================================================================

Wires the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer ──accept──► FileServer._handle_connection             │
    │                                      │                               │
    │                                      │ submit                        │
    │                                      ▼                               │
    │                               ThreadPool worker                      │
    │                                      │                               │
    │                                      ▼                               │
    │                    with conn: ConnectionHandler.handle()             │
    │                                      │                               │
    │                                      ▼                               │
    │                     ResourceStore (one cache per server)             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

One ResourceStore, and so one cache, is created per FileServer and shared
by every worker thread.

=============================================================================
USAGE
=============================================================================

    # Blocking, stops on Ctrl+C / SIGTERM
    FileServer(ServerConfig(port=8000)).run()

    # In the background (tests)
    server = FileServer(ServerConfig(port=0))
    thread = threading.Thread(target=server.run)
    thread.start()
    server.wait_until_ready()
    ...  # connect to server.port
    server.shutdown()
    thread.join()

=============================================================================
"""

import logging
import socket
from typing import Optional

from .config import ServerConfig
from .core import Connection, SocketServer, ThreadPool
from .handlers import ConnectionHandler
from .resources import ResourceStore


logger = logging.getLogger(__name__)


def setup_logging(log_level: str):
    """
    Install the log format and set the package log level.

    Safe to call more than once: the format is installed by the first call
    only, the level is updated every time.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("fileserver").setLevel(level)


class FileServer:
    """
    Multi-threaded static file server.

    =========================================================================
    LIFECYCLE
    =========================================================================

        __init__   validate config, create store, pool and socket server
        run()      start pool, bind, accept until shutdown (blocks)
        shutdown() stop accepting; run() then drains the pool and returns

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None, store: Optional[ResourceStore] = None):
        """
        Args:
            config: Server configuration. Defaults are used if not provided.
            store: Resource store to serve from. Built from
                   ``config.static_dir`` when omitted.

        Raises:
            ValueError: The configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self.store = store if store is not None else ResourceStore(self.config.static_dir)

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(size=self.config.pool_size)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def port(self) -> int:
        """Port the server listens on; the real one once bound."""
        return self._socket_server.address[1]

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start the server (blocking).

        Raises:
            OSError: The listening socket could not be bound.
        """
        self._setup_logging()
        self._log_host_name()

        self._thread_pool.start()

        logger.info(
            f"Starting file server on {self.config.host}:{self.config.port} "
            f"({self.config.pool_size} workers, {self.config.timeout_ms}ms read timeout, "
            f"serving {self.store.root})"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask a running server to stop. Returns immediately."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the server is accepting connections.

        Returns:
            False if ``timeout`` seconds passed first.
        """
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self):
        """Configure logging based on config."""
        setup_logging(self.config.log_level)

    def _log_host_name(self):
        try:
            host_name = socket.gethostname()
        except OSError as e:
            logger.warning(f"Unable to determine host name: {e}")
            host_name = ""
        logger.info(f"Host name: {host_name or self.config.default_host_label}")

    def _shutdown(self):
        """
        Stop accepting, then let workers finish the connections they hold
        and whatever is still queued.
        """
        logger.info("Shutting down server...")
        self._socket_server.shutdown()
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Queue a freshly accepted connection on the thread pool."""
        try:
            self._thread_pool.submit(self._process_connection, args=(conn,))
        except RuntimeError as e:
            logger.warning(f"[{conn.id}] Rejecting connection: {e}")
            conn.close()

    def _process_connection(self, conn: Connection):
        """Runs on a worker thread. The connection is always closed after."""
        with conn:
            ConnectionHandler(
                conn,
                self.store,
                server_name=self.config.server_name,
                max_request_size=self.config.max_request_size,
            ).handle()
