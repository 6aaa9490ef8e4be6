"""
auth/sessions.py -- Session lifecycle: issue, resolve, revoke.

SessionManager is the only code that turns a presented credential into an
Identity. It combines the stateless codec (auth/tokens.py) with server-side
session state (auth/interfaces.SessionBackend):

  authenticate(email)           -> new session row + signed credential
  resolve_identity(credential)  -> Identity, or InvalidCredential
  revoke(session_id)            -> valid=False (idempotent)

Session states:
  Active  -- valid and now < expiration
  Expired -- valid but now >= expiration. Computed on read; nothing ever
             writes this state and no background job sweeps expired rows.
  Revoked -- valid=False. Terminal. The only stored transition.

Every rejection in resolve_identity() is the same InvalidCredential to the
caller. The reason (revoked, expired, ...) goes to the log only.

Known limitation: authenticate() accepts any registered email with no
password or other proof of possession. This is how the system has always
worked; it is fit for a trusted internal deployment only.

Layer rule: no imports from api/ or boards/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from auth.interfaces import SessionBackend
from auth.models import Identity
from auth.tokens import CredentialCodec
from core.errors import CredentialFailure, InvalidCredential, Unauthorized

logger = logging.getLogger("taskboard.auth")

# Fixed lifetime of every session. Not configurable.
SESSION_TTL = timedelta(hours=168)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionManager:
    """Issue and validate session credentials.

    Args:
        store: any SessionBackend (UserStore in production).
        codec: the CredentialCodec holding the signing secret.
        clock: returns the current aware UTC datetime. Tests pass a fixed or
               advanced clock to exercise expiry without sleeping.
    """

    def __init__(
        self,
        store: SessionBackend,
        codec: CredentialCodec,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.codec = codec
        self._clock = clock

    def authenticate(self, email: str) -> str:
        """Create a session for the user with this exact email and return its credential.

        Raises Unauthorized (and creates nothing) if no user has this email.
        """
        user = self.store.get_user_by_email(email)
        if user is None:
            logger.info("Authentication refused: no user for submitted email")
            raise Unauthorized()
        session = self.store.create_session(user.id, SESSION_TTL)
        logger.info("Session %d issued for user %d", session.id, user.id)
        return self.codec.issue(session.id)

    def resolve_identity(self, credential: str) -> Identity:
        """Validate a credential against stored session state.

        Order of checks: signature, session exists, not revoked, not expired,
        owning user exists. The first failure wins.
        """
        try:
            session_id = self.codec.verify(credential)
        except InvalidCredential as exc:
            logger.info("Credential rejected (%s)", exc.reason.value)
            raise

        session = self.store.get_session(session_id)
        if session is None:
            raise self._reject(CredentialFailure.session_not_found, session_id)
        if not session.valid:
            raise self._reject(CredentialFailure.revoked, session_id)
        if session.is_expired(self._clock()):
            raise self._reject(CredentialFailure.expired, session_id)

        user = self.store.get_user(session.user_id)
        if user is None:
            raise self._reject(CredentialFailure.user_not_found, session_id)

        return Identity(user_id=session.user_id, session_id=session.id, is_admin=user.is_admin)

    def revoke(self, session_id: int) -> None:
        """Revoke a session. Revoking an already revoked or unknown session is a no-op."""
        self.store.revoke_session(session_id)
        logger.info("Session %d revoked", session_id)

    @staticmethod
    def _reject(reason: CredentialFailure, session_id: int) -> InvalidCredential:
        logger.info("Credential rejected (%s) for session %d", reason.value, session_id)
        return InvalidCredential(reason)
