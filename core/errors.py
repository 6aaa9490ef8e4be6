"""
core/errors.py -- Error taxonomy shared by the auth core and the stores.

Two-tier model: every error carries a rich internal reason for the logs and
a deliberately coarse public message for the response body. The mapping from
error class to HTTP status lives in api/main.py and nowhere else.

  TaskBoardError
   +-- InvalidCredential   bad, expired, revoked or missing credential
   +-- Unauthorized        POST /auth with an email that matches no user
   +-- Forbidden           identity resolved, gate denies
   +-- ResourceNotFound    gate lookup (or handler lookup) finds nothing
   +-- Conflict            write rejected by a uniqueness/ownership rule
   +-- StorageUnavailable  the store raised; propagated without retry

Layer rule: core/ is the kernel. No imports from api/, auth/, or boards/.
"""

from __future__ import annotations

from enum import Enum


class CredentialFailure(str, Enum):
    """Internal reason an InvalidCredential was raised. Logged, never rendered."""

    missing = "missing"
    malformed = "malformed"
    bad_signature = "bad_signature"
    session_not_found = "session_not_found"
    revoked = "revoked"
    expired = "expired"
    user_not_found = "user_not_found"


class TaskBoardError(Exception):
    """Base class for every error the pipeline adapter knows how to render."""

    code: str = "error"
    public_message: str = "Request failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class InvalidCredential(TaskBoardError):
    """The presented credential cannot be used.

    reason distinguishes malformed / bad signature / revoked / expired /
    dangling for diagnostics. The public message is identical for all of them.
    """

    code = "invalid_credential"
    public_message = "Invalid or expired credential."

    def __init__(self, reason: CredentialFailure) -> None:
        super().__init__(f"Credential rejected: {reason.value}")
        self.reason = reason
        # The internal reason stays in self.reason; the body never carries it.
        self.message = self.public_message


class Unauthorized(TaskBoardError):
    code = "unauthorized"
    public_message = "Authentication failed."


class Forbidden(TaskBoardError):
    code = "forbidden"
    public_message = "You do not have access to this resource."


class ResourceNotFound(TaskBoardError):
    code = "not_found"
    public_message = "Resource not found."


class Conflict(TaskBoardError):
    code = "conflict"
    public_message = "The request conflicts with existing data."


class StorageUnavailable(TaskBoardError):
    code = "storage_unavailable"
    public_message = "Storage is temporarily unavailable."
