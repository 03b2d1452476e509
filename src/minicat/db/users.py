"""
In-memory user store.

Registration writes and login reads happen on different worker threads,
possibly at the same time, so every access goes through one lock.
Nothing is persisted; a restart starts from the seed users again.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, Optional


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class User:
    """A registered account."""

    account: str
    password: str
    email: str
    id: Optional[int] = None

    def check_password(self, password: Optional[str]) -> bool:
        return password is not None and self.password == password


class InMemoryUserRepository:
    """
    Thread-safe user store keyed by account name.

    Usage:
        users = InMemoryUserRepository([User("admin", "password", "a@b.c")])
        users.save(User("foo", "bar", "x@y.com"))
        users.find_by_account("foo")   # User(account='foo', ..., id=2)
    """

    def __init__(self, initial: Iterable[User] = ()):
        self._lock = threading.Lock()
        self._users: Dict[str, User] = {}
        self._next_id = 1
        for user in initial:
            self.save(user)

    def find_by_account(self, account: Optional[str]) -> Optional[User]:
        if account is None:
            return None
        with self._lock:
            return self._users.get(account)

    def save(self, user: User) -> User:
        """
        Store a user, assigning the next id.

        Saving an existing account replaces it (and gives it a new id).
        """
        with self._lock:
            stored = User(
                account=user.account,
                password=user.password,
                email=user.email,
                id=self._next_id,
            )
            self._next_id += 1
            self._users[user.account] = stored
        logger.info(f"Saved user {stored.account} (id={stored.id})")
        return stored

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)
