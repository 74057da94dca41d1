"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Owns the listening socket: bind, listen, accept in a loop, and hand
every accepted client to a callback. It never reads from a client
itself, so a slow client cannot hold up the accept loop.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create a TCP socket
    2. bind()      Reserve host:port
    3. listen()    Start queueing incoming connections (backlog)
    4. accept()    Take one queued connection → NEW socket for that client
    5. close()     Release the listening socket

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Owned by SocketServer
                    └───────────┬───────────┘
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │Connection │         │Connection │         │Connection │
    │ (thread)  │         │ (thread)  │         │ (thread)  │
    └───────────┘         └───────────┘         └───────────┘

=============================================================================
STOPPING A BLOCKED accept()
=============================================================================

accept() can block forever if no client connects. Rather than poking
the server by connecting to our own port, the loop uses two pieces:

    _shutdown_event    set by shutdown() (from a signal handler or any
                       other thread)
    settimeout(poll)   accept() gives up every `accept_poll_interval`
                       seconds so the loop can check the event

    while not _shutdown_event.is_set():
        try:
            accept()              # at most `poll` seconds
        except socket.timeout:
            continue              # re-check the event

Shutdown only stops accepting. Connections already handed off keep
running in their own threads; nobody waits for them.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(callback)                                                   │
    │        ├──► _create_socket()   socket + SO_REUSEADDR + poll timeout  │
    │        ├──► bind() / listen()                                        │
    │        ├──► _setup_signals()   SIGINT/SIGTERM → shutdown()          │
    │        └──► _accept_loop()     blocks until shutdown                 │
    │                 └──► callback(Connection(...))                      │
    │                                                                      │
    │    shutdown()  ──► _shutdown_event.set()                             │
    │                                                                      │
    │    _cleanup()  ──► restore signal handlers, close socket             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        server = SocketServer(config)
        server.start(lambda conn: ...)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Cancellation flag checked by the accept loop
        self._shutdown_event = threading.Event()

        # Set once the socket is listening (tests and embedders wait on it)
        self._ready_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port).

        With port=0 the OS picks the port; once listening this reports
        the real one.
        """
        if self._socket is not None:
            try:
                return self._socket.getsockname()[:2]
            except OSError:
                pass
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Avoid "Address already in use" while the old socket sits in TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Lower latency for small responses
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() wakes up at least this often to check for shutdown
        sock.settimeout(self.config.accept_poll_interval)

        return sock

    def _setup_signals(self):
        """
        Route SIGINT (Ctrl+C) and SIGTERM to shutdown().

        Python only allows signal handlers on the main thread, so when the
        server runs on another thread (tests, embedding) this is skipped
        and shutdown() must be called directly.
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on main thread, signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and accept connections until shutdown().

        This method BLOCKS. A shutdown() requested before start() is
        honoured: the socket is bound, then the loop exits straight away.

        Args:
            connection_handler: Called with each accepted Connection. It
                must return quickly (hand the connection off to a thread);
                the next accept() waits for it.

        Raises:
            OSError: If binding fails, or accept() fails for any reason
                other than shutdown.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
            self._socket.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._running = True
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until the shutdown event is set.

        ┌─────────────────────────────────────────────────────────────────┐
        │   while not shutdown:                                            │
        │       accept()  ──timeout──►  continue (re-check shutdown)       │
        │           │                                                      │
        │           ├──► Connection(client_socket, ...)                    │
        │           └──► connection_handler(conn)                          │
        └─────────────────────────────────────────────────────────────────┘
        """
        while not self._shutdown_event.is_set():
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError:
                if self._shutdown_event.is_set():
                    break
                logger.exception("Accept failed, stopping server")
                raise

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
            )
            logger.debug(f"[{conn.id}] Accepted connection from {client_address[0]}:{client_address[1]}")

            connection_handler(conn)

    def shutdown(self):
        """
        Ask the accept loop to stop.

        Safe to call from a signal handler, from another thread, and more
        than once. Returns immediately; the loop exits within one
        accept_poll_interval.
        """
        if not self._shutdown_event.is_set():
            logger.info("Shutting down socket server...")
        self._shutdown_event.set()

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._ready_event.clear()
        self._shutdown_event.clear()  # a later start() serves again
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until shutdown() has been called. Returns False on timeout."""
        return self._shutdown_event.wait(timeout)
