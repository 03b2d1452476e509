"""
=============================================================================
ROUTE TABLE AND DISPATCHER
=============================================================================

Maps (method, path) pairs to handler functions.

=============================================================================
ROUTING ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   startup                                                            │
    │   ───────                                                            │
    │   RouteTableBuilder                                                  │
    │     .register(GET,  "/",         home)                               │
    │     .register(GET,  "/login",    login)                              │
    │     .register(POST, "/register", register)                           │
    │     .build()  ──────────►  RouteTable (read-only from here on)       │
    │                                  │                                   │
    │   request time                   ▼                                   │
    │   ────────────            Dispatcher(table, fallback=static)         │
    │                                  │                                   │
    │        POST /register ──► POST table hit ────────► register()        │
    │        POST /login    ──► POST table miss ───────► static()          │
    │        PUT  /login    ──► no PUT table ─► GET table ► login()        │
    │        GET  /css/a.css ─► miss ────────────────────► static()        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CROSS-METHOD FALLBACK
=============================================================================

A method with no routes of its own borrows the GET routes: "PUT /login"
reaches the login handler. A method that does have routes only uses
its own, so "POST /login" misses and is served as a static file.

This permissive default is a compatibility behavior that existing clients
rely on. It is deliberate; see the tests named after it.

There are no 404 or 405 responses: an unmatched path is always handed to
the static-file fallback.

=============================================================================
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, Iterator, Mapping, Optional, Tuple, Union

from .request import HttpMethod, Request
from .response import HTTPResponse


# A handler takes a request and returns a response. Nothing else.
Handler = Callable[[Request], HTTPResponse]

RouteKey = Tuple[HttpMethod, str]


@dataclass(frozen=True)
class Route:
    """A registered (method, path) → handler binding."""

    method: HttpMethod
    path: str
    handler: Handler


def _as_method(method: Union[HttpMethod, str]) -> HttpMethod:
    if isinstance(method, HttpMethod):
        return method
    return HttpMethod(method.upper())


class RouteTable:
    """
    Immutable mapping of (method, path) to Route.

    Built once by RouteTableBuilder. Safe to share between worker threads
    because nothing can change it after construction.
    """

    def __init__(self, routes: Mapping[RouteKey, Route]):
        self._routes: Mapping[RouteKey, Route] = MappingProxyType(dict(routes))
        self._methods = frozenset(method for method, _ in self._routes)

    def lookup(self, method: HttpMethod, path: str) -> Optional[Route]:
        return self._routes.get((method, path))

    def has_method(self, method: HttpMethod) -> bool:
        """True if at least one route is registered for the method."""
        return method in self._methods

    def __contains__(self, key: RouteKey) -> bool:
        return key in self._routes

    def __iter__(self) -> Iterator[Route]:
        return iter(self._routes.values())

    def __len__(self) -> int:
        return len(self._routes)


class RouteTableBuilder:
    """
    Collects routes at initialization time.

    Routes can be added with register() or with decorators:

        routes = RouteTableBuilder()

        @routes.get("/")
        def home(request):
            return ok("Hello world!")

        routes.register("POST", "/register", register)
        table = routes.build()

    Registering the same (method, path) twice raises ValueError: a table
    holds at most one handler per pair.
    """

    def __init__(self):
        self._routes: Dict[RouteKey, Route] = {}

    def register(
        self,
        method: Union[HttpMethod, str],
        path: str,
        handler: Handler,
    ) -> "RouteTableBuilder":
        key = (_as_method(method), path)
        if key in self._routes:
            raise ValueError(f"Route already registered: {key[0].value} {path}")
        self._routes[key] = Route(method=key[0], path=path, handler=handler)
        return self

    def route(self, method: Union[HttpMethod, str], path: str) -> Callable[[Handler], Handler]:
        """Decorator form of register()."""
        def decorator(handler: Handler) -> Handler:
            self.register(method, path, handler)
            return handler  # Unchanged, so decorators can stack
        return decorator

    def get(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(HttpMethod.GET, path)

    def post(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(HttpMethod.POST, path)

    def build(self) -> RouteTable:
        return RouteTable(self._routes)


class Dispatcher:
    """
    Selects and runs exactly one handler per request.

    Lookup order:
        1. the routes of the request's method, or the GET routes when
           nothing at all is registered for that method
        2. the fallback handler (static files)
    """

    def __init__(self, routes: RouteTable, fallback: Handler):
        self._routes = routes
        self._fallback = fallback

    @property
    def routes(self) -> RouteTable:
        return self._routes

    def resolve(self, request: Request) -> Handler:
        """Pick the handler for a request without running it."""
        method = request.method
        if not self._routes.has_method(method):
            method = HttpMethod.GET

        route = self._routes.lookup(method, request.path)
        if route is None:
            return self._fallback
        return route.handler

    def dispatch(self, request: Request) -> HTTPResponse:
        return self.resolve(request)(request)
