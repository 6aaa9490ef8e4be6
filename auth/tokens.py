"""
auth/tokens.py -- Credential codec: sign and verify session credentials.

Security design decisions:
  JWT: python-jose with a single HMAC algorithm (HS256 unless configured
       otherwise). The payload carries exactly one claim, tokenId, the
       primary key of the server-side session row. No user id, no role, no
       expiry: those live in the database and are re-checked on every request
       by auth/sessions.py. No iat claim either; lifetime is the session's
       expiration column, not a client-visible timestamp.

  Algorithm pinning: verify() passes algorithms=[self.algorithm] to
       jwt.decode() and additionally rejects any token whose header names a
       different algorithm (including "none") before touching the signature.
       There is no negotiation.

  Constant-time compare: python-jose's HMAC verification uses
       hmac.compare_digest internally.

  Injection: the secret and algorithm are constructor arguments, never read
       from ambient process state here. api/main.py builds the codec from
       core.config.get_settings(); tests build one per secret.

Failure: every verification failure raises InvalidCredential. The reason
(malformed vs bad_signature) is for logs only.

Layer rule: no imports from api/ or boards/.
"""

from __future__ import annotations

from jose import JWTError, jwt

from core.config import SUPPORTED_ALGORITHMS
from core.errors import CredentialFailure, InvalidCredential

_CLAIM = "tokenId"


class CredentialCodec:
    """Encode a session id into a signed credential and back.

    Usage:
        codec = CredentialCodec(settings.secret_key, settings.jwt_algorithm)
        credential = codec.issue(42)
        codec.verify(credential)  # -> 42
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256") -> None:
        if not secret_key:
            raise ValueError("secret_key must not be empty.")
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"Unsupported signing algorithm: {algorithm!r}")
        self._secret_key = secret_key
        self.algorithm = algorithm

    def issue(self, session_id: int) -> str:
        """Return a signed credential carrying only session_id.

        Deterministic: the same session id and key always produce the same
        string, since there is no timestamp in the payload.
        """
        return jwt.encode({_CLAIM: session_id}, self._secret_key, algorithm=self.algorithm)

    def verify(self, credential: str) -> int:
        """Return the session id inside a credential signed by this codec.

        Raises InvalidCredential(malformed) when the token cannot be parsed or
        the payload does not hold an integer tokenId, and
        InvalidCredential(bad_signature) when the header algorithm is not the
        pinned one or the signature does not match.
        """
        try:
            header = jwt.get_unverified_header(credential)
        except JWTError as exc:
            raise InvalidCredential(CredentialFailure.malformed) from exc

        if header.get("alg") != self.algorithm:
            raise InvalidCredential(CredentialFailure.bad_signature)

        try:
            payload = jwt.decode(credential, self._secret_key, algorithms=[self.algorithm])
        except JWTError as exc:
            raise InvalidCredential(CredentialFailure.bad_signature) from exc

        session_id = payload.get(_CLAIM)
        # bool is a subclass of int; {"tokenId": true} is not a session id.
        if not isinstance(session_id, int) or isinstance(session_id, bool):
            raise InvalidCredential(CredentialFailure.malformed)
        return session_id
