"""
api/routes/tasks.py -- Task endpoints.

Routes (and the gates that run before each, in order):
  GET    /boards/{board_id}/tasks                   board owner or admin
  POST   /boards/{board_id}/tasks                   board owner or admin
  GET    /tasks/{task_id}                           task owner or admin
  PUT    /tasks/{task_id}                           task owner or admin
  DELETE /tasks/{task_id}                           task owner or admin
  PUT    /tasks/{task_id}/move/target/{board_id}    task owner or admin,
                                                    then target board owner or admin

The move route checks the target board as well as the task, so a non-admin
can only move their tasks between their own boards. This is deliberately
stricter than a task-only check, under which the owner of a task could move
it onto any board, including one they could not otherwise read or write.
"""

from fastapi import APIRouter, Depends, Request, Response

from api.models import TaskCreate, TaskResponse, TaskUpdate
from api.routes.boards import get_board_or_404
from auth.dependencies import (
    ResourceId,
    get_identity,
    require_board_owner_or_admin,
    require_task_owner_or_admin,
)
from auth.models import Identity
from boards.models import Task
from boards.store import BoardStore
from core.errors import ResourceNotFound

router = APIRouter()

_board_gate = [Depends(require_board_owner_or_admin)]
_task_gate = [Depends(require_task_owner_or_admin)]


@router.get("/boards/{board_id}/tasks", response_model=list[TaskResponse], dependencies=_board_gate)
def list_tasks(request: Request, board_id: ResourceId) -> list[TaskResponse]:
    board_store: BoardStore = request.app.state.board_store
    get_board_or_404(board_store, board_id)
    return [_task_to_response(t) for t in board_store.list_tasks(board_id)]


@router.post(
    "/boards/{board_id}/tasks",
    response_model=TaskResponse,
    status_code=201,
    dependencies=_board_gate,
)
def create_task(
    request: Request,
    board_id: ResourceId,
    body: TaskCreate,
    identity: Identity = Depends(get_identity),
) -> TaskResponse:
    """Create a task on the board. The caller becomes the task's owner."""
    board_store: BoardStore = request.app.state.board_store
    get_board_or_404(board_store, board_id)
    task_id = board_store.create_task(
        Task(board_id=board_id, user_id=identity.user_id, title=body.title, weight=body.weight)
    )
    return _task_to_response(_get_task_or_404(board_store, task_id))


@router.get("/tasks/{task_id}", response_model=TaskResponse, dependencies=_task_gate)
def get_task(request: Request, task_id: ResourceId) -> TaskResponse:
    board_store: BoardStore = request.app.state.board_store
    return _task_to_response(_get_task_or_404(board_store, task_id))


@router.put("/tasks/{task_id}", response_model=TaskResponse, dependencies=_task_gate)
def update_task(request: Request, task_id: ResourceId, body: TaskUpdate) -> TaskResponse:
    board_store: BoardStore = request.app.state.board_store
    if not board_store.update_task(task_id, **body.model_dump(exclude_none=True)):
        raise ResourceNotFound("Task not found")
    return _task_to_response(_get_task_or_404(board_store, task_id))


@router.delete("/tasks/{task_id}", status_code=204, dependencies=_task_gate)
def delete_task(request: Request, task_id: ResourceId) -> Response:
    board_store: BoardStore = request.app.state.board_store
    if not board_store.delete_task(task_id):
        raise ResourceNotFound("Task not found")
    return Response(status_code=204)


@router.put(
    "/tasks/{task_id}/move/target/{board_id}",
    response_model=TaskResponse,
    dependencies=_task_gate + _board_gate,
)
def move_task(request: Request, task_id: ResourceId, board_id: ResourceId) -> TaskResponse:
    """Move a task to another board. Its owner does not change.

    Both gates must pass: the caller owns the task and the target board (or
    is an admin). The target board check is a deliberate tightening over
    gating on the task alone.
    """
    board_store: BoardStore = request.app.state.board_store
    get_board_or_404(board_store, board_id)
    if not board_store.move_task(task_id, board_id):
        raise ResourceNotFound("Task not found")
    return _task_to_response(_get_task_or_404(board_store, task_id))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_task_or_404(board_store: BoardStore, task_id: int) -> Task:
    task = board_store.get_task(task_id)
    if task is None:
        raise ResourceNotFound("Task not found")
    return task


def _task_to_response(task: Task) -> TaskResponse:
    return TaskResponse(
        id=task.id,
        board_id=task.board_id,
        user_id=task.user_id,
        title=task.title,
        weight=task.weight,
    )
