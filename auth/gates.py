"""
auth/gates.py -- Authorization gates evaluated before a protected operation.

Each gate answers one question: may this resolved Identity act on this
resource? It returns a Decision and never mutates anything. The route
adapter (auth/dependencies.py) calls enforce() on the result, which raises
Forbidden or ResourceNotFound for anything but ALLOW.

Rules:
  require_admin                  admin only
  require_self_or_admin          admin, or the user record is the caller's own
  require_board_owner_or_admin   admin, or board.user_id == caller
  require_task_owner_or_admin    admin, or task.user_id == caller

The admin check always runs first, so an admin never triggers a lookup.
For boards and tasks the existence check runs before the ownership check:
a missing resource is NOT_FOUND even for a caller who could never own it.

Layer rule: no imports from api/ or boards/. Lookups come in through
auth.interfaces.ResourceLookup.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from auth.interfaces import OwnedResource, ResourceLookup
from auth.models import Identity
from core.errors import Forbidden, ResourceNotFound


class Outcome(str, Enum):
    allow = "allow"
    forbidden = "forbidden"
    not_found = "not_found"


@dataclass(frozen=True)
class Decision:
    """Result of a gate check."""

    outcome: Outcome
    message: str = ""

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.allow


ALLOW = Decision(Outcome.allow)
_FORBIDDEN = Decision(Outcome.forbidden, "You do not have access to this resource.")


def enforce(decision: Decision) -> None:
    """Raise the typed error matching a non-allow decision."""
    if decision.outcome is Outcome.allow:
        return
    if decision.outcome is Outcome.not_found:
        raise ResourceNotFound(decision.message)
    if decision.outcome is Outcome.forbidden:
        raise Forbidden(decision.message)
    raise AssertionError(f"Unhandled gate outcome: {decision.outcome!r}")


def require_admin(identity: Identity) -> Decision:
    return ALLOW if identity.is_admin else Decision(Outcome.forbidden, "Admin access required.")


def require_self_or_admin(identity: Identity, target_user_id: int) -> Decision:
    if identity.is_admin:
        return ALLOW
    if identity.user_id == target_user_id:
        return ALLOW
    return _FORBIDDEN


def _owner_or_admin(identity: Identity, resource: OwnedResource | None, not_found: str) -> Decision:
    if resource is None:
        return Decision(Outcome.not_found, not_found)
    if resource.user_id == identity.user_id:
        return ALLOW
    return _FORBIDDEN


def require_board_owner_or_admin(identity: Identity, board_id: int, lookup: ResourceLookup) -> Decision:
    if identity.is_admin:
        return ALLOW
    return _owner_or_admin(identity, lookup.get_board(board_id), "Board not found")


def require_task_owner_or_admin(identity: Identity, task_id: int, lookup: ResourceLookup) -> Decision:
    if identity.is_admin:
        return ALLOW
    return _owner_or_admin(identity, lookup.get_task(task_id), "Task not found")
