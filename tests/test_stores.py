"""Unit tests for auth/store.py and boards/store.py.

Covers:
- user CRUD, duplicate email -> Conflict, unknown update fields -> ValueError
- delete_user() removes the user's sessions in the same transaction
- session create/get/revoke round-trip through the ISO timestamp column
- delete_board() removes the board's tasks atomically (and rolls back as a unit)
- move_task() keeps the task owner
- a broken table surfaces as StorageUnavailable
"""

from datetime import timedelta

import pytest
from sqlalchemy import text

from auth.models import User
from auth.store import UserStore
from boards.models import Board, Task
from boards.store import BoardStore
from core.errors import Conflict, StorageUnavailable


class TestUserStore:
    def test_create_and_get(self, user_store: UserStore) -> None:
        uid = user_store.create_user(User(email="a@example.com", first_name="A", last_name="Z"))
        user = user_store.get_user(uid)
        assert user == User(id=uid, email="a@example.com", first_name="A", last_name="Z", is_admin=False)
        assert user_store.get_user_by_email("a@example.com") == user

    def test_duplicate_email_is_conflict(self, user_store: UserStore) -> None:
        user_store.create_user(User(email="a@example.com", first_name="A"))
        with pytest.raises(Conflict):
            user_store.create_user(User(email="a@example.com", first_name="Again"))

    def test_update_user(self, user_store: UserStore) -> None:
        uid = user_store.create_user(User(email="a@example.com", first_name="A"))
        assert user_store.update_user(uid, first_name="Ada", is_admin=True) is True
        user = user_store.get_user(uid)
        assert (user.first_name, user.is_admin) == ("Ada", True)

    def test_update_missing_user_returns_false(self, user_store: UserStore) -> None:
        assert user_store.update_user(777, first_name="Nobody") is False

    def test_update_rejects_unknown_fields(self, user_store: UserStore) -> None:
        uid = user_store.create_user(User(email="a@example.com", first_name="A"))
        with pytest.raises(ValueError):
            user_store.update_user(uid, id=5)

    def test_delete_user_cascades_sessions(self, user_store: UserStore) -> None:
        uid = user_store.create_user(User(email="a@example.com", first_name="A"))
        other = user_store.create_user(User(email="b@example.com", first_name="B"))
        s1 = user_store.create_session(uid, timedelta(hours=1))
        s2 = user_store.create_session(uid, timedelta(hours=1))
        kept = user_store.create_session(other, timedelta(hours=1))

        assert user_store.delete_user(uid) is True

        assert user_store.get_user(uid) is None
        assert user_store.get_session(s1.id) is None
        assert user_store.get_session(s2.id) is None
        assert user_store.get_session(kept.id) is not None

    def test_delete_missing_user_returns_false(self, user_store: UserStore) -> None:
        assert user_store.delete_user(31337) is False


class TestSessionRows:
    def test_create_get_round_trip(self, user_store: UserStore) -> None:
        uid = user_store.create_user(User(email="a@example.com", first_name="A"))
        created = user_store.create_session(uid, timedelta(hours=168))
        fetched = user_store.get_session(created.id)
        assert fetched == created
        assert fetched.expiration.tzinfo is not None

    def test_revoke_sets_valid_false_idempotently(self, user_store: UserStore) -> None:
        uid = user_store.create_user(User(email="a@example.com", first_name="A"))
        session = user_store.create_session(uid, timedelta(hours=1))
        user_store.revoke_session(session.id)
        user_store.revoke_session(session.id)
        assert user_store.get_session(session.id).valid is False

    def test_get_missing_session_is_none(self, user_store: UserStore) -> None:
        assert user_store.get_session(1) is None

    def test_broken_table_is_storage_unavailable(self, user_store: UserStore) -> None:
        with user_store.engine.connect() as conn:
            conn.execute(text("DROP TABLE tokens"))
            conn.commit()
        with pytest.raises(StorageUnavailable):
            user_store.get_session(1)
        assert user_store.ping() is True


class TestBoardStore:
    def _board_with_tasks(self, board_store: BoardStore, owner: int = 1, n: int = 3) -> int:
        board_id = board_store.create_board(Board(user_id=owner, title="B", description="d"))
        for i in range(n):
            board_store.create_task(Task(board_id=board_id, user_id=owner, title=f"t{i}", weight=i))
        return board_id

    def test_list_boards_only_for_owner(self, board_store: BoardStore) -> None:
        mine = board_store.create_board(Board(user_id=1, title="mine", description=""))
        board_store.create_board(Board(user_id=2, title="theirs", description=""))
        assert [b.id for b in board_store.list_boards(1)] == [mine]
        assert board_store.count_boards(2) == 1

    def test_delete_board_cascades_tasks(self, board_store: BoardStore) -> None:
        doomed = self._board_with_tasks(board_store)
        survivor = self._board_with_tasks(board_store, n=2)
        doomed_tasks = [t.id for t in board_store.list_tasks(doomed)]

        assert board_store.delete_board(doomed) is True

        assert board_store.get_board(doomed) is None
        assert all(board_store.get_task(t) is None for t in doomed_tasks)
        assert len(board_store.list_tasks(survivor)) == 2

    def test_delete_board_rolls_back_as_a_unit(self, board_store: BoardStore) -> None:
        """If the board delete fails, the task delete is rolled back too."""
        board_id = self._board_with_tasks(board_store, n=2)
        with board_store.engine.connect() as conn:
            conn.execute(
                text(
                    "CREATE TRIGGER block_board_delete BEFORE DELETE ON boards "
                    "BEGIN SELECT RAISE(ABORT, 'blocked'); END"
                )
            )
            conn.commit()

        with pytest.raises((StorageUnavailable, Conflict)):
            board_store.delete_board(board_id)

        assert board_store.get_board(board_id) is not None
        assert len(board_store.list_tasks(board_id)) == 2

    def test_delete_missing_board_returns_false(self, board_store: BoardStore) -> None:
        assert board_store.delete_board(999) is False

    def test_move_task_keeps_owner(self, board_store: BoardStore) -> None:
        source = board_store.create_board(Board(user_id=1, title="src", description=""))
        target = board_store.create_board(Board(user_id=1, title="dst", description=""))
        task_id = board_store.create_task(Task(board_id=source, user_id=7, title="t", weight=2.5))

        assert board_store.move_task(task_id, target) is True

        task = board_store.get_task(task_id)
        assert (task.board_id, task.user_id) == (target, 7)

    def test_update_task_partial(self, board_store: BoardStore) -> None:
        board_id = board_store.create_board(Board(user_id=1, title="b", description=""))
        task_id = board_store.create_task(Task(board_id=board_id, user_id=1, title="old", weight=1))
        assert board_store.update_task(task_id, weight=5) is True
        task = board_store.get_task(task_id)
        assert (task.title, task.weight) == ("old", 5)

    def test_update_board_rejects_unknown_fields(self, board_store: BoardStore) -> None:
        board_id = board_store.create_board(Board(user_id=1, title="b", description=""))
        with pytest.raises(ValueError):
            board_store.update_board(board_id, user_id=2)


class TestIdsNeverReused:
    def test_deleted_top_user_id_is_not_reissued(self, user_store: UserStore) -> None:
        user_store.create_user(User(email="a@example.com", first_name="A"))
        top = user_store.create_user(User(email="b@example.com", first_name="B"))
        user_store.delete_user(top)

        newcomer = user_store.create_user(User(email="c@example.com", first_name="C"))

        assert newcomer > top

    def test_deleted_top_session_id_is_not_reissued(self, user_store: UserStore) -> None:
        uid = user_store.create_user(User(email="a@example.com", first_name="A"))
        other = user_store.create_user(User(email="b@example.com", first_name="B"))
        doomed = user_store.create_session(other, timedelta(hours=1))
        user_store.delete_user(other)

        assert user_store.create_session(uid, timedelta(hours=1)).id > doomed.id

    def test_deleted_top_task_id_is_not_reissued(self, board_store: BoardStore) -> None:
        board_id = board_store.create_board(Board(user_id=1, title="b", description=""))
        top = board_store.create_task(Task(board_id=board_id, user_id=1, title="t", weight=1))
        board_store.delete_task(top)

        assert board_store.create_task(Task(board_id=board_id, user_id=1, title="t2", weight=1)) > top


class TestCountTasks:
    def test_counts_tasks_on_any_board(self, board_store: BoardStore) -> None:
        alices = board_store.create_board(Board(user_id=1, title="alice", description=""))
        board_store.create_task(Task(board_id=alices, user_id=1, title="hers", weight=1))
        board_store.create_task(Task(board_id=alices, user_id=9, title="admin's", weight=1))

        assert board_store.count_tasks(9) == 1
        assert board_store.count_boards(9) == 0
        assert board_store.count_tasks(5) == 0
