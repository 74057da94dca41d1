"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the server, as a dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m minihttp --port 3000                             │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTP_PORT=3000 python -m minihttp                          │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    NETWORK SETTINGS
    - host, port, backlog, buffer_size

    TIMEOUTS
    - timeout, accept_poll_interval

    LOGGING
    - log_level
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only (development)
    - "0.0.0.0" - All network interfaces
    """

    port: int = 2000
    """
    The port number to listen on. 0 lets the OS pick a free port
    (read it back from HTTPServer.address once running).
    """

    backlog: int = 128
    """
    Maximum number of queued connections before new ones are refused.
    """

    buffer_size: int = 8192
    """
    Size of each recv() chunk in bytes.
    """

    # ─────────────────────────────────────────────────────────────────────
    # TIMEOUTS
    # ─────────────────────────────────────────────────────────────────────

    timeout: Optional[float] = None
    """
    Socket timeout for client connections, in seconds.
    None = block forever: a silent client holds its thread open
    indefinitely. When set, a read that times out is answered with 500.
    """

    accept_poll_interval: float = 1.0
    """
    How long accept() may block before the loop re-checks for shutdown.
    Upper bound on how long shutdown() takes to stop the loop.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    DEBUG logs every pipeline stage of every connection.
    """

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        HTTP_HOST       Server host (default: 127.0.0.1)
        HTTP_PORT       Server port (default: 2000)
        HTTP_TIMEOUT    Client socket timeout in seconds (default: none)
        HTTP_LOG_LEVEL  Logging level (default: INFO)
        """
        timeout = os.getenv("HTTP_TIMEOUT")
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "2000")),
            timeout=float(timeout) if timeout else None,
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called by HTTPServer at construction so a bad value fails at
        startup rather than on the first connection.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.accept_poll_interval <= 0:
            raise ValueError("accept_poll_interval must be > 0")
