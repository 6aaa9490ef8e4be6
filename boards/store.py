"""
boards/store.py -- SQLAlchemy-backed persistence layer for boards and tasks.

Uses SQLAlchemy Core (not ORM) so the dataclasses in boards/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. BoardStore is the repository; the
_row_to_* functions are the mappers. Route handlers never touch SQL directly.

BoardStore satisfies auth.interfaces.ResourceLookup (get_board / get_task),
which is all the ownership gates need from it.

Atomicity: delete_board() deletes the board's tasks and the board itself in
one engine.begin() transaction.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = BoardStore()
    board_id = store.create_board(Board(user_id=1, title="Sprint", description="..."))
    task_id = store.create_task(Task(board_id=board_id, user_id=1, title="Ship", weight=3))
    store.move_task(task_id, other_board_id)
    store.delete_board(board_id)
    store.close()
"""

from typing import Optional

from sqlalchemy import Column, Float, ForeignKey, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine

from boards.models import Board, Task
from core.config import get_settings
from core.db import make_engine, storage_errors

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_boards = Table(
    "boards",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("title", String(255), nullable=False),
    Column("description", Text, nullable=False),
    sqlite_autoincrement=True,
)

_tasks = Table(
    "tasks",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("board_id", Integer, ForeignKey("boards.id"), nullable=False, index=True),
    Column("user_id", Integer, nullable=False),
    Column("title", String(255), nullable=False),
    Column("weight", Float, nullable=False),
    sqlite_autoincrement=True,
)

_BOARD_FIELDS = frozenset({"title", "description"})
_TASK_FIELDS = frozenset({"title", "weight"})


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class BoardStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        with storage_errors("create board schema"):
            metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Boards
    # ------------------------------------------------------------------

    def create_board(self, board: Board) -> int:
        """Insert a new board and return its assigned database ID."""
        with storage_errors("create_board"), self.engine.connect() as conn:
            result = conn.execute(
                _boards.insert().values(
                    user_id=board.user_id,
                    title=board.title,
                    description=board.description,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_board(self, board_id: int) -> Optional[Board]:
        with storage_errors("get_board"), self.engine.connect() as conn:
            row = conn.execute(_boards.select().where(_boards.c.id == board_id)).fetchone()
        return _row_to_board(row) if row is not None else None

    def list_boards(self, user_id: int) -> list[Board]:
        """Return the boards owned by user_id, oldest first."""
        with storage_errors("list_boards"), self.engine.connect() as conn:
            rows = conn.execute(
                _boards.select().where(_boards.c.user_id == user_id).order_by(_boards.c.id)
            ).fetchall()
        return [_row_to_board(r) for r in rows]

    def count_boards(self, user_id: int) -> int:
        with storage_errors("count_boards"), self.engine.connect() as conn:
            result = conn.execute(
                select(func.count()).select_from(_boards).where(_boards.c.user_id == user_id)
            ).scalar()
        return result or 0

    def count_tasks(self, user_id: int) -> int:
        """Count tasks owned by user_id on any board, including other users' boards."""
        with storage_errors("count_tasks"), self.engine.connect() as conn:
            result = conn.execute(
                select(func.count()).select_from(_tasks).where(_tasks.c.user_id == user_id)
            ).scalar()
        return result or 0

    def update_board(self, board_id: int, **fields) -> bool:
        """Update title and/or description. Returns False if the board does not exist."""
        unknown = set(fields) - _BOARD_FIELDS
        if unknown:
            raise ValueError(f"Unknown board fields: {unknown!r}")
        if not fields:
            return self.get_board(board_id) is not None
        with storage_errors("update_board"), self.engine.connect() as conn:
            result = conn.execute(_boards.update().where(_boards.c.id == board_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_board(self, board_id: int) -> bool:
        """Delete a board and all of its tasks in one transaction.

        Returns True if the board existed. If either delete fails, neither is
        applied.
        """
        with storage_errors("delete_board"), self.engine.begin() as conn:
            conn.execute(_tasks.delete().where(_tasks.c.board_id == board_id))
            result = conn.execute(_boards.delete().where(_boards.c.id == board_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def create_task(self, task: Task) -> int:
        with storage_errors("create_task"), self.engine.connect() as conn:
            result = conn.execute(
                _tasks.insert().values(
                    board_id=task.board_id,
                    user_id=task.user_id,
                    title=task.title,
                    weight=task.weight,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_task(self, task_id: int) -> Optional[Task]:
        with storage_errors("get_task"), self.engine.connect() as conn:
            row = conn.execute(_tasks.select().where(_tasks.c.id == task_id)).fetchone()
        return _row_to_task(row) if row is not None else None

    def list_tasks(self, board_id: int) -> list[Task]:
        """Return every task on a board regardless of who created it."""
        with storage_errors("list_tasks"), self.engine.connect() as conn:
            rows = conn.execute(
                _tasks.select().where(_tasks.c.board_id == board_id).order_by(_tasks.c.id)
            ).fetchall()
        return [_row_to_task(r) for r in rows]

    def update_task(self, task_id: int, **fields) -> bool:
        """Update title and/or weight. Returns False if the task does not exist."""
        unknown = set(fields) - _TASK_FIELDS
        if unknown:
            raise ValueError(f"Unknown task fields: {unknown!r}")
        if not fields:
            return self.get_task(task_id) is not None
        with storage_errors("update_task"), self.engine.connect() as conn:
            result = conn.execute(_tasks.update().where(_tasks.c.id == task_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def move_task(self, task_id: int, board_id: int) -> bool:
        """Reattach a task to another board. user_id is left untouched."""
        with storage_errors("move_task"), self.engine.connect() as conn:
            result = conn.execute(_tasks.update().where(_tasks.c.id == task_id).values(board_id=board_id))
            conn.commit()
        return result.rowcount > 0

    def delete_task(self, task_id: int) -> bool:
        with storage_errors("delete_task"), self.engine.connect() as conn:
            result = conn.execute(_tasks.delete().where(_tasks.c.id == task_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_board(row) -> Board:
    return Board(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        description=row.description,
    )


def _row_to_task(row) -> Task:
    return Task(
        id=row.id,
        board_id=row.board_id,
        user_id=row.user_id,
        title=row.title,
        weight=row.weight,
    )
