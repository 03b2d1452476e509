"""
Request handlers.

    home                  GET /
    AccountHandlers       GET /login, POST /register
    StaticFileHandler     everything else (fallback)
"""

from .account import AccountHandlers
from .home import home
from .static import ResourceNotFound, StaticAssets, StaticFileHandler

__all__ = [
    "AccountHandlers",
    "home",
    "ResourceNotFound",
    "StaticAssets",
    "StaticFileHandler",
]
