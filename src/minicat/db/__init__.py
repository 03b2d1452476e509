"""Storage collaborators used by the handlers."""

from .users import InMemoryUserRepository, User

__all__ = ["InMemoryUserRepository", "User"]
