"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and gates.

get_identity() reads the Authorization: Bearer <credential> header and asks
the SessionManager on app.state to resolve it. FastAPI caches a dependency's
result for the duration of one request, so however many gates a route
declares, the credential is resolved exactly once.

The require_* dependencies wrap the pure gate functions in auth/gates.py:

    @router.delete(
        "/boards/{board_id}",
        dependencies=[Depends(require_board_owner_or_admin)],
    )

A route may list several; FastAPI runs them in declaration order and the
first one to raise stops the request before the handler runs.

Path parameters are declared on the dependency itself (user_id, board_id,
task_id) so FastAPI parses and validates them the same way it does for the
handler. Errors raised here are core.errors types; api/main.py renders them.

Layer rule: no imports from api/ or boards/. The stores are read from
app.state and used only through auth.interfaces.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Path, Request

from auth import gates
from auth.interfaces import ResourceLookup
from auth.models import Identity
from auth.sessions import SessionManager
from core.errors import CredentialFailure, InvalidCredential

# Row ids as they appear in a path. Bounded to SQLite INTEGER so an oversized
# id is a 422 instead of a driver overflow.
MAX_ROW_ID = 2**63 - 1
ResourceId = Annotated[int, Path(ge=1, le=MAX_ROW_ID)]


def _bearer_credential(request: Request) -> str:
    scheme, _, credential = request.headers.get("Authorization", "").partition(" ")
    credential = credential.strip()
    if scheme.lower() != "bearer" or not credential:
        raise InvalidCredential(CredentialFailure.missing)
    return credential


def get_identity(request: Request) -> Identity:
    """Require a valid credential. Raises InvalidCredential (401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/boards")
        def route(identity: Identity = Depends(get_identity)): ...
    """
    sessions: SessionManager = request.app.state.sessions
    return sessions.resolve_identity(_bearer_credential(request))


def _lookup(request: Request) -> ResourceLookup:
    return request.app.state.board_store


def require_admin(identity: Identity = Depends(get_identity)) -> Identity:
    gates.enforce(gates.require_admin(identity))
    return identity


def require_self_or_admin(user_id: ResourceId, identity: Identity = Depends(get_identity)) -> Identity:
    gates.enforce(gates.require_self_or_admin(identity, user_id))
    return identity


def require_board_owner_or_admin(
    request: Request,
    board_id: ResourceId,
    identity: Identity = Depends(get_identity),
) -> Identity:
    gates.enforce(gates.require_board_owner_or_admin(identity, board_id, _lookup(request)))
    return identity


def require_task_owner_or_admin(
    request: Request,
    task_id: ResourceId,
    identity: Identity = Depends(get_identity),
) -> Identity:
    gates.enforce(gates.require_task_owner_or_admin(identity, task_id, _lookup(request)))
    return identity
