"""
boards/models.py -- Domain dataclasses for boards and tasks.

These are pure data containers with zero logic. Ownership (user_id) is
stored here but enforced by the gates in auth/gates.py, not by the store.

id is None before the record is written to the database.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Board:
    user_id: int
    title: str
    description: str
    id: Optional[int] = None


@dataclass
class Task:
    """A task on exactly one board.

    user_id is the creator and stays fixed when the task is moved to another
    board; it is what the task gate checks.
    """

    board_id: int
    user_id: int
    title: str
    weight: float
    id: Optional[int] = None
