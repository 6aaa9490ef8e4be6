"""
api/routes/boards.py -- Board endpoints.

Routes:
  GET    /boards                     -- the caller's own boards
  POST   /boards                     -- create a board owned by the caller
  GET    /boards/{board_id}          -- board owner or admin
  PUT    /boards/{board_id}          -- board owner or admin
  DELETE /boards/{board_id}          -- board owner or admin; tasks go with it

Ownership is checked by require_board_owner_or_admin before the handler
runs. Handlers still 404 when the board is missing, because an admin skips
the gate's lookup.
"""

from fastapi import APIRouter, Depends, Request, Response

from api.models import BoardCreate, BoardResponse, BoardUpdate
from auth.dependencies import ResourceId, get_identity, require_board_owner_or_admin
from auth.models import Identity
from boards.models import Board
from boards.store import BoardStore
from core.errors import ResourceNotFound

router = APIRouter()

_board_gate = [Depends(require_board_owner_or_admin)]


@router.get("/boards", response_model=list[BoardResponse])
def list_boards(request: Request, identity: Identity = Depends(get_identity)) -> list[BoardResponse]:
    board_store: BoardStore = request.app.state.board_store
    return [_board_to_response(b) for b in board_store.list_boards(identity.user_id)]


@router.post("/boards", response_model=BoardResponse, status_code=201)
def create_board(
    request: Request,
    body: BoardCreate,
    identity: Identity = Depends(get_identity),
) -> BoardResponse:
    board_store: BoardStore = request.app.state.board_store
    board_id = board_store.create_board(
        Board(user_id=identity.user_id, title=body.title, description=body.description)
    )
    return _board_to_response(get_board_or_404(board_store, board_id))


@router.get("/boards/{board_id}", response_model=BoardResponse, dependencies=_board_gate)
def get_board(request: Request, board_id: ResourceId) -> BoardResponse:
    board_store: BoardStore = request.app.state.board_store
    return _board_to_response(get_board_or_404(board_store, board_id))


@router.put("/boards/{board_id}", response_model=BoardResponse, dependencies=_board_gate)
def update_board(request: Request, board_id: ResourceId, body: BoardUpdate) -> BoardResponse:
    board_store: BoardStore = request.app.state.board_store
    if not board_store.update_board(board_id, **body.model_dump(exclude_none=True)):
        raise ResourceNotFound("Board not found")
    return _board_to_response(get_board_or_404(board_store, board_id))


@router.delete("/boards/{board_id}", status_code=204, dependencies=_board_gate)
def delete_board(request: Request, board_id: ResourceId) -> Response:
    """Delete the board and every task on it in one transaction."""
    board_store: BoardStore = request.app.state.board_store
    if not board_store.delete_board(board_id):
        raise ResourceNotFound("Board not found")
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def get_board_or_404(board_store: BoardStore, board_id: int) -> Board:
    board = board_store.get_board(board_id)
    if board is None:
        raise ResourceNotFound("Board not found")
    return board


def _board_to_response(board: Board) -> BoardResponse:
    return BoardResponse(
        id=board.id,
        user_id=board.user_id,
        title=board.title,
        description=board.description,
    )
