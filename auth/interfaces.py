"""
auth/interfaces.py -- Storage contracts the auth core depends on.

The session manager and the gates are written against these protocols, not
against auth/store.py or boards/store.py. Any object with matching methods
satisfies them (the SQL stores in production, small fakes in tests).

Contract for implementations:
  - Reads and writes are atomic and strongly consistent. The core does not
    cache what it reads, so a revocation is visible on the next call.
  - Any backend failure is raised as core.errors.StorageUnavailable. The core
    never retries; it lets that error reach the pipeline adapter as-is.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional, Protocol

from auth.models import Session, User


class OwnedResource(Protocol):
    """Anything a gate can check ownership of (Board, Task)."""

    user_id: int


class SessionBackend(Protocol):
    def create_session(self, user_id: int, ttl: timedelta) -> Session: ...

    def get_session(self, session_id: int) -> Optional[Session]: ...

    def revoke_session(self, session_id: int) -> None: ...

    def get_user(self, user_id: int) -> Optional[User]: ...

    def get_user_by_email(self, email: str) -> Optional[User]: ...


class ResourceLookup(Protocol):
    def get_board(self, board_id: int) -> Optional[OwnedResource]: ...

    def get_task(self, task_id: int) -> Optional[OwnedResource]: ...
