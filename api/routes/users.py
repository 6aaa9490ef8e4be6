"""
api/routes/users.py -- User management endpoints.

Routes:
  GET    /users              -- list users (admin)
  POST   /users              -- create user (admin)
  GET    /users/{user_id}    -- read one user (self or admin)
  PUT    /users/{user_id}    -- update one user (self or admin)
  DELETE /users/{user_id}    -- delete user and their sessions (admin)

A user who still owns boards or tasks cannot be deleted (409). Tasks count
even when they sit on someone else's board, e.g. one an admin created there.
Everything they own must be removed first so no row is left pointing at a
missing owner.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.models import UserCreate, UserResponse, UserUpdate
from auth.dependencies import ResourceId, require_admin, require_self_or_admin
from auth.models import User
from auth.store import UserStore
from boards.store import BoardStore
from core.errors import Conflict, ResourceNotFound

router = APIRouter()


@router.get("/users", response_model=list[UserResponse], dependencies=[Depends(require_admin)])
def list_users(request: Request) -> list[UserResponse]:
    user_store: UserStore = request.app.state.user_store
    return [_user_to_response(u) for u in user_store.list_users()]


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
def create_user(request: Request, body: UserCreate) -> UserResponse:
    """Create a user. 409 if the email is already registered."""
    user_store: UserStore = request.app.state.user_store
    try:
        user_id = user_store.create_user(
            User(
                email=body.email,
                first_name=body.first_name,
                last_name=body.last_name,
                is_admin=body.is_admin,
            )
        )
    except Conflict as exc:
        raise Conflict("A user with that email already exists.") from exc
    return _user_to_response(_get_or_404(user_store, user_id))


@router.get(
    "/users/{user_id}",
    response_model=UserResponse,
    dependencies=[Depends(require_self_or_admin)],
)
def get_user(request: Request, user_id: ResourceId) -> UserResponse:
    user_store: UserStore = request.app.state.user_store
    return _user_to_response(_get_or_404(user_store, user_id))


@router.put(
    "/users/{user_id}",
    response_model=UserResponse,
    dependencies=[Depends(require_self_or_admin)],
)
def update_user(request: Request, user_id: ResourceId, body: UserUpdate) -> UserResponse:
    """Apply the fields that were sent. last_name may be cleared with null."""
    user_store: UserStore = request.app.state.user_store
    updates = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None or k == "last_name"}
    try:
        found = user_store.update_user(user_id, **updates)
    except Conflict as exc:
        raise Conflict("A user with that email already exists.") from exc
    if not found:
        raise ResourceNotFound("User not found")
    return _user_to_response(_get_or_404(user_store, user_id))


@router.delete("/users/{user_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_user(request: Request, user_id: ResourceId) -> Response:
    """Delete a user and their sessions. 409 while they own boards or tasks.

    The ownership check and the delete are not one transaction: boards and
    tasks live in BoardStore, users in UserStore, each on its own engine. A
    board or task the user creates between the two steps survives with a
    user_id that no longer exists. Ids are never reused (see auth/store.py),
    so such a row is reachable by admins only and cannot be inherited by a
    later user.
    """
    user_store: UserStore = request.app.state.user_store
    board_store: BoardStore = request.app.state.board_store
    if board_store.count_boards(user_id) > 0:
        raise Conflict("User still owns boards. Delete them first.")
    if board_store.count_tasks(user_id) > 0:
        raise Conflict("User still owns tasks. Delete them first.")
    if not user_store.delete_user(user_id):
        raise ResourceNotFound("User not found")
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_or_404(user_store: UserStore, user_id: int) -> User:
    user = user_store.get_user(user_id)
    if user is None:
        raise ResourceNotFound("User not found")
    return user


def _user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        is_admin=user.is_admin,
    )
