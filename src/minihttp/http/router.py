"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path) pairs to handler functions.

Routing here is an exact-match table lookup: no path parameters, no
wildcards, no prefix groups. "GET /users" and "POST /users" are two
unrelated routes, and "/users/" is not "/users".

=============================================================================
TWO PHASES: REGISTER, THEN SERVE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTER LIFECYCLE                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   STARTUP (single thread)            SERVING (many threads)          │
    │                                                                      │
    │   router = Router()                                                  │
    │   @router.get("/")                                                   │
    │   def index(body): ...                                               │
    │            │                                                         │
    │            ▼                                                         │
    │   table = router.freeze()  ───────►  table.lookup(request)           │
    │            │                         table.lookup(request)           │
    │            ▼                         table.lookup(request)           │
    │   router.add_route(...)                                              │
    │   └── RuntimeError                   (read-only, no locks needed)    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Connection threads only ever see the RouteTable, a read-only mapping
over a snapshot of the routes, so they never race on it.

=============================================================================
DUPLICATE ROUTES
=============================================================================

Registering the same (method, path) twice replaces the first handler.
A warning is logged because it is almost always a mistake.

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple
import logging

from .errors import ProtocolError
from .request import Request
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


# Handler: takes the decoded body (or None) and returns text or JSON data
Handler = Callable[[Any], Any]

RouteKey = Tuple[str, str]


class ResultKind(Enum):
    """
    What a handler declares it returns.

    Decides how a bare (untagged) return value is sent back:

        TEXT  - value must be a str, sent as text/plain
        JSON  - value is always JSON-encoded, sent as application/json
        AUTO  - a str is sent as text, anything else as JSON
    """
    TEXT = "text"
    JSON = "json"
    AUTO = "auto"


@dataclass(frozen=True)
class Route:
    """A registered route."""

    method: str
    path: str
    handler: Handler
    kind: ResultKind = ResultKind.AUTO

    @property
    def key(self) -> RouteKey:
        return (self.method, self.path)


class RouteTable(Mapping):
    """
    Read-only view of a Router's routes, shared by all connections.

    Behaves like a Mapping keyed by (method, path). Backed by a
    MappingProxyType over a private copy, so neither the owner nor the
    readers can change it.
    """

    def __init__(self, routes: Dict[RouteKey, Route]):
        self._routes = MappingProxyType(dict(routes))

    def __getitem__(self, key: RouteKey) -> Route:
        return self._routes[key]

    def __iter__(self) -> Iterator[RouteKey]:
        return iter(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    def lookup(self, request: Request) -> Route:
        """
        Find the route for a parsed request line.

        Raises:
            ProtocolError(404): If no route is registered for the
                request's exact (method, path). A path known under a
                different method is reported the same way.
        """
        route = self._routes.get(request.route_key)
        if route is None:
            raise ProtocolError(
                f"Path/method not found: ({request.method}, {request.path})",
                HTTPStatus.NOT_FOUND,
            )
        return route


class Router:
    """
    Collects routes before the server starts.

    ==========================================================================
    USAGE
    ==========================================================================

        router = Router()

        @router.get("/")
        def index(body):
            return "hi"                         # text/plain

        @router.post("/sum")
        def total(body):
            return sum(body["data"])            # application/json

        router.add_route("GET", "/version", lambda body: {"v": 1})

        table = router.freeze()                 # hand this to the server

    ==========================================================================
    """

    def __init__(self):
        self._routes: Dict[RouteKey, Route] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        method: str,
        path: str,
        handler: Handler,
        kind: ResultKind = ResultKind.AUTO,
    ) -> Route:
        """
        Register a handler for an exact (method, path) pair.

        Args:
            method: HTTP method, matched case-sensitively ("GET").
            path: Request path, matched exactly ("/sum").
            handler: Callable taking the decoded body (or None).
            kind: Declared result kind, see ResultKind.

        Returns:
            The registered Route.

        Raises:
            RuntimeError: If the router has already been frozen.
        """
        if self._frozen:
            raise RuntimeError(
                f"Cannot register ({method}, {path}): router is frozen while serving"
            )

        route = Route(method=method, path=path, handler=handler, kind=kind)

        if route.key in self._routes:
            logger.warning(f"Route ({method}, {path}) registered twice, replacing earlier handler")

        self._routes[route.key] = route
        return route

    def route(
        self,
        method: str,
        path: str,
        kind: ResultKind = ResultKind.AUTO,
    ) -> Callable[[Handler], Handler]:
        """
        Decorator form of add_route().

            @router.route("DELETE", "/cache")
            def clear(body):
                ...
        """
        def decorator(handler: Handler) -> Handler:
            self.add_route(method, path, handler, kind)
            return handler  # unchanged, so decorators can stack
        return decorator

    def get(self, path: str, kind: ResultKind = ResultKind.AUTO) -> Callable[[Handler], Handler]:
        """Register a GET route."""
        return self.route("GET", path, kind)

    def post(self, path: str, kind: ResultKind = ResultKind.AUTO) -> Callable[[Handler], Handler]:
        """Register a POST route."""
        return self.route("POST", path, kind)

    def put(self, path: str, kind: ResultKind = ResultKind.AUTO) -> Callable[[Handler], Handler]:
        """Register a PUT route."""
        return self.route("PUT", path, kind)

    def delete(self, path: str, kind: ResultKind = ResultKind.AUTO) -> Callable[[Handler], Handler]:
        """Register a DELETE route."""
        return self.route("DELETE", path, kind)

    def patch(self, path: str, kind: ResultKind = ResultKind.AUTO) -> Callable[[Handler], Handler]:
        """Register a PATCH route."""
        return self.route("PATCH", path, kind)

    # =========================================================================
    # SERVING
    # =========================================================================

    def freeze(self) -> RouteTable:
        """
        Stop accepting registrations and return the read-only table.

        Safe to call more than once; each call returns an equivalent table.
        """
        self._frozen = True
        return RouteTable(self._routes)

    def lookup(self, method: str, path: str) -> Optional[Route]:
        """Return the route for (method, path), or None."""
        return self._routes.get((method, path))

    def routes(self) -> List[Route]:
        """All registered routes, in registration order."""
        return list(self._routes.values())

    def print_routes(self) -> None:
        """
        Print all registered routes (useful for debugging).

        Example output:
            Registered Routes:
            ------------------------------------------------------------
              GET      /
              POST     /sum
            ------------------------------------------------------------
        """
        print("\nRegistered Routes:")
        print("-" * 60)
        for route in self.routes():
            print(f"  {route.method:8} {route.path}")
        print("-" * 60)
