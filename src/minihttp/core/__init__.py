"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing underneath the HTTP pipeline.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Creates the listening socket, binds, listens                     │
    │  • Runs the accept() loop                                           │
    │  • Stops on shutdown() / SIGINT / SIGTERM                           │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ one Connection per client
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Buffered readline() / read_exact() over the client socket        │
    │  • send_response() writes the single response                       │
    │  • Tracks the pipeline state, closes cleanly                        │
    └─────────────────────────────────────────────────────────────────────┘

THREAD-PER-CONNECTION
─────────────────────
Each accepted connection gets its own short-lived thread (started by
HTTPServer). There is no pool and no limit: every connection is one
request, read, answered, closed.
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
]
