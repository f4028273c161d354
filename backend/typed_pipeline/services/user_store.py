"""User Store — in-memory stand-in for a record lookup service.

Invariants:
    - Lookups never raise for unknown names: they return None
    - Store is seeded once; middlewares read from it, only the create handler writes

Design Decisions:
    - Async methods even though in-memory: same shape as a real repository
      (ADR: Protocol boundary, implementations do IO)
"""

from typing import Iterable, Protocol

from typed_pipeline.schemas.user import User


class UserRepository(Protocol):
    """Contract consulted by the user lookup middleware."""
    async def get(self, name: str) -> User | None: ...
    async def add(self, user: User) -> bool: ...


class InMemoryUserStore:
    """Dict-backed UserRepository."""

    def __init__(self, names: Iterable[str] = ()):
        self._users: dict[str, User] = {n: User(name=n) for n in names}

    async def get(self, name: str) -> User | None:
        return self._users.get(name)

    async def add(self, user: User) -> bool:
        """Insert user; False when the name is already taken."""
        if user.name in self._users:
            return False
        self._users[user.name] = user
        return True
