"""
=============================================================================
APPLICATION WIRING
=============================================================================

Builds the complete application from its parts, once, at startup:

    ServerConfig
        │
        ├──► StaticAssets(config.static_dir)
        ├──► InMemoryUserRepository(seed users)
        │
        ▼
    RouteTableBuilder
        GET  /          home
        GET  /login     AccountHandlers.login
        POST /register  AccountHandlers.register
        │
        ▼  build()
    Dispatcher(table, fallback=StaticFileHandler)
        │
        ▼
    HTTPServer(config, dispatcher)

Nothing registers routes after this point; the table is read-only.

=============================================================================
"""

from typing import Iterable, Optional

from .config import ServerConfig
from .db import InMemoryUserRepository, User
from .handlers import AccountHandlers, StaticAssets, StaticFileHandler, home
from .http import Dispatcher, HttpMethod, RouteTableBuilder
from .server import HTTPServer


# Demo account so the login page works out of the box
DEFAULT_USERS = (
    User(account="admin", password="password", email="admin@example.com"),
)


def build_dispatcher(
    assets: StaticAssets,
    users: InMemoryUserRepository,
) -> Dispatcher:
    """Route table for the bundled handlers, with static files as the fallback."""
    accounts = AccountHandlers(users, assets)
    static = StaticFileHandler(assets)

    routes = (RouteTableBuilder()
        .register(HttpMethod.GET, "/", home)
        .register(HttpMethod.GET, "/login", accounts.login)
        .register(HttpMethod.POST, "/register", accounts.register))

    return Dispatcher(routes.build(), fallback=static.handle)


def create_app(
    config: Optional[ServerConfig] = None,
    users: Optional[InMemoryUserRepository] = None,
    seed_users: Iterable[User] = DEFAULT_USERS,
) -> HTTPServer:
    """
    Create the server with every bundled route registered.

    Args:
        config: Server configuration. Defaults to ServerConfig().
        users: User store to share with the caller (tests pass their own).
               A new store seeded with seed_users is created if omitted.
        seed_users: Accounts to create in a new store.

    Example:
        app = create_app(ServerConfig(port=3000))
        app.run()
    """
    config = config or ServerConfig()
    if users is None:
        users = InMemoryUserRepository(seed_users)

    dispatcher = build_dispatcher(StaticAssets(config.static_dir), users)
    return HTTPServer(config, dispatcher)
