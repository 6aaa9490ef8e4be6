"""
auth/store.py -- SQLAlchemy Core persistence layer for users and sessions.

Pattern: Repository + Data Mapper (same as boards/store.py).
UserStore is the repository; _row_to_user / _row_to_session are the mappers.
Route and session code never touches SQL directly.

UserStore satisfies auth.interfaces.SessionBackend, the contract the session
manager is written against.

Security:
  All queries use bound parameters. No f-strings in SQL.

Atomicity:
  delete_user() removes the user's session rows and the user row inside one
  engine.begin() transaction. Either both deletes commit or neither does.

Errors:
  Every method runs inside core.db.storage_errors(): a duplicate email is
  raised as Conflict, any other database failure as StorageUnavailable.

Ids: every table is created with SQLite AUTOINCREMENT, so the id of a deleted
user or session is never handed out again. A row elsewhere that still holds
an old user_id can then never be inherited by a newer user.

DB path: taskboard.db at the repo root unless DATABASE_URL says otherwise.

Layer rule: no imports from api/ or boards/.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import Boolean, Column, ForeignKey, Integer, MetaData, String, Table, text
from sqlalchemy.engine import Engine

from auth.models import Session, User
from core.config import get_settings
from core.db import make_engine, storage_errors
from core.errors import StorageUnavailable

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("first_name", String(255), nullable=False),
    Column("last_name", String(255)),
    Column("is_admin", Boolean, nullable=False, server_default="0"),
    sqlite_autoincrement=True,
)

# "tokens" is the session table: one row per issued credential.
_tokens = Table(
    "tokens",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("expiration", String(32), nullable=False),  # ISO 8601, UTC
    Column("valid", Boolean, nullable=False, server_default="1"),
    sqlite_autoincrement=True,
)

# Columns a caller may change through update_user(). id is immutable.
_UPDATABLE_USER_FIELDS = frozenset({"email", "first_name", "last_name", "is_admin"})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: str) -> datetime:
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        # Naive timestamps are written by nothing in this repo; treat as UTC.
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and Session entities.

    Usage:
        store = UserStore()
        uid = store.create_user(User(email="hari@example.com", first_name="Hari"))
        session = store.create_session(uid, timedelta(hours=168))
        store.revoke_session(session.id)
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        with storage_errors("create auth schema"):
            _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises Conflict if the email is already registered.
        """
        with storage_errors("create_user"), self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    email=user.email,
                    first_name=user.first_name,
                    last_name=user.last_name,
                    is_admin=user.is_admin,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_user(self, user_id: int) -> User | None:
        with storage_errors("get_user"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_user_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with storage_errors("get_user_by_email"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users ordered by id. Admin-only operation."""
        with storage_errors("list_users"), self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.id)).fetchall()
        return [_row_to_user(r) for r in rows]

    def update_user(self, user_id: int, **fields) -> bool:
        """Update mutable fields on an existing user.

        Accepted fields: email, first_name, last_name, is_admin. Unknown keys
        raise ValueError. Returns True if a row was updated, False if user_id
        was not found.
        """
        unknown = set(fields) - _UPDATABLE_USER_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        if not fields:
            return self.get_user(user_id) is not None
        with storage_errors("update_user"), self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_user(self, user_id: int) -> bool:
        """Delete a user and every session they own, atomically.

        Returns True if the user existed. Boards and tasks live in another
        store; the route refuses the delete while the user still owns any.
        """
        with storage_errors("delete_user"), self.engine.begin() as conn:
            conn.execute(_tokens.delete().where(_tokens.c.user_id == user_id))
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, user_id: int, ttl: timedelta) -> Session:
        """Insert a valid session expiring ttl from now and return it."""
        expiration = _utcnow() + ttl
        with storage_errors("create_session"), self.engine.connect() as conn:
            result = conn.execute(
                _tokens.insert().values(
                    user_id=user_id,
                    expiration=expiration.isoformat(),
                    valid=True,
                )
            )
            conn.commit()
            session_id = result.inserted_primary_key[0]
        return Session(id=session_id, user_id=user_id, expiration=expiration, valid=True)

    def get_session(self, session_id: int) -> Session | None:
        with storage_errors("get_session"), self.engine.connect() as conn:
            row = conn.execute(_tokens.select().where(_tokens.c.id == session_id)).fetchone()
        return _row_to_session(row) if row is not None else None

    def revoke_session(self, session_id: int) -> None:
        """Mark a session invalid. Revoking twice, or an unknown id, is a no-op."""
        with storage_errors("revoke_session"), self.engine.connect() as conn:
            conn.execute(_tokens.update().where(_tokens.c.id == session_id).values(valid=False))
            conn.commit()

    def list_sessions(self, user_id: int) -> list[Session]:
        """Return every session row for a user, newest first."""
        with storage_errors("list_sessions"), self.engine.connect() as conn:
            rows = conn.execute(
                _tokens.select().where(_tokens.c.user_id == user_id).order_by(_tokens.c.id.desc())
            ).fetchall()
        return [_row_to_session(r) for r in rows]

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with storage_errors("ping"), self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except StorageUnavailable:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        first_name=row.first_name,
        last_name=row.last_name,
        is_admin=bool(row.is_admin),
    )


def _row_to_session(row) -> Session:
    return Session(
        id=row.id,
        user_id=row.user_id,
        expiration=_parse_ts(row.expiration),
        valid=bool(row.valid),
    )
