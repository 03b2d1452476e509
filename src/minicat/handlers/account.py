"""
=============================================================================
ACCOUNT HANDLERS
=============================================================================

Login and registration, backed by the user store.

=============================================================================
LOGIN  (GET /login)
=============================================================================

    query string                          result
    ────────────────────────────────────  ────────────────────────────
    (none)                                200, login form
    account=admin&password=password       302, Location: index.html
    account=admin&password=wrong          302, Location: 401.html
    account=ghost&password=anything       302, Location: 401.html

=============================================================================
REGISTER  (POST /register)
=============================================================================

    body: account=foo&password=bar&email=x%40y.com
          │
          ▼
    users.save(User("foo", "bar", "x@y.com"))
          │
          ▼
    302, Location: /index.html

=============================================================================
BODY ON REDIRECT
=============================================================================

Every response here, redirects included, carries the login page as its
body. Browsers ignore a 302 body, but existing clients read it, so it is
kept.

=============================================================================
"""

import logging

from ..db.users import InMemoryUserRepository, User
from ..http.request import Request
from ..http.response import HTTPResponse, ResponseBuilder
from ..http.status_codes import HTTPStatus
from .static import StaticAssets


logger = logging.getLogger(__name__)


LOGIN_PAGE = "/login.html"
LOGIN_SUCCESS_LOCATION = "index.html"
LOGIN_FAILURE_LOCATION = "401.html"
REGISTER_SUCCESS_LOCATION = "/index.html"


class AccountHandlers:
    """
    Handlers sharing one user store and one assets directory.

    Usage:
        accounts = AccountHandlers(users, assets)
        routes.register("GET", "/login", accounts.login)
        routes.register("POST", "/register", accounts.register)
    """

    def __init__(self, users: InMemoryUserRepository, assets: StaticAssets):
        self.users = users
        self.assets = assets

    def _login_page(self) -> bytes:
        return self.assets.read_or_empty(LOGIN_PAGE)

    def login(self, request: Request) -> HTTPResponse:
        header = request.header
        builder = (ResponseBuilder()
            .content_type(header.content_type)
            .body(self._login_page()))

        if not header.query:
            # Nothing submitted yet: show the form
            return builder.status(HTTPStatus.OK).build()

        account = header.get_query("account")
        user = self.users.find_by_account(account)

        if user is not None and user.check_password(header.get_query("password")):
            logger.info(f"Login succeeded for {account}")
            return builder.redirect(LOGIN_SUCCESS_LOCATION).build()

        logger.info(f"Login failed for {account}")
        return builder.redirect(LOGIN_FAILURE_LOCATION).build()

    def register(self, request: Request) -> HTTPResponse:
        body = request.body
        user = User(
            account=body.get("account", ""),
            password=body.get("password", ""),
            email=body.get("email", ""),
        )
        self.users.save(user)

        return (ResponseBuilder()
            .redirect(REGISTER_SUCCESS_LOCATION)
            .content_type(request.header.content_type)
            .body(self._login_page())
            .build())
