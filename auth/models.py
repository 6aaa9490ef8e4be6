"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic), mirroring
boards/models.py. Stores and the session manager do the work.

Layer rule: no imports from api/ or boards/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """An identity record.

    email is only consulted when a session is created (POST /auth). It is never
    re-checked afterwards; the session id carried by the credential is the
    authority from then on.
    """

    email: str
    first_name: str
    id: int | None = None
    last_name: str | None = None
    is_admin: bool = False


@dataclass
class Session:
    """Server-side record behind one issued credential (table "tokens").

    The credential embeds only this id. Usability is decided here on every
    request: valid must be True and now must be before expiration.
    """

    id: int
    user_id: int
    expiration: datetime  # timezone-aware UTC
    valid: bool = True

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expiration


@dataclass(frozen=True)
class Identity:
    """The resolved, trusted caller produced once per request.

    Nothing downstream of SessionManager.resolve_identity() re-derives
    privilege from the raw credential.
    """

    user_id: int
    session_id: int
    is_admin: bool
