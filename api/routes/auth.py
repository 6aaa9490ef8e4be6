"""
api/routes/auth.py -- Credential issuance and session revocation.

Routes:
  POST /auth          -- exchange a registered email for a credential (public)
  POST /auth/logout   -- revoke the session behind the presented credential

Security:
  POST /auth has no password step. Anyone who knows a registered email can
  obtain a credential for that user. See auth/sessions.py.
  Cache-Control: no-store on the credential response so proxies never keep it.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from api.models import AuthRequest, TokenResponse
from auth.dependencies import get_identity
from auth.models import Identity
from auth.sessions import SessionManager

router = APIRouter()


@router.post("/auth", response_model=TokenResponse)
def authenticate(request: Request, body: AuthRequest) -> JSONResponse:
    """Create a session for the user with this email and return its credential.

    401 if no user has this email; nothing is written in that case.
    """
    sessions: SessionManager = request.app.state.sessions
    token = sessions.authenticate(body.email)
    resp = JSONResponse(status_code=200, content=TokenResponse(token=token).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", status_code=204)
def logout(request: Request, identity: Identity = Depends(get_identity)) -> Response:
    """Revoke the current session. The same credential gets 401 from now on."""
    sessions: SessionManager = request.app.state.sessions
    sessions.revoke(identity.session_id)
    return Response(status_code=204)
