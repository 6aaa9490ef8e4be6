"""
api/main.py -- FastAPI application entry point for TaskBoard.

Run with:      uvicorn asgi:app --reload
               python main.py serve

Middleware stack (outermost to innermost):
  1. CORSMiddleware  -- adds CORS headers for allowed browser origins
  2. log_requests    -- one log line per request with status and latency

Lifespan builds the stores, the credential codec and the session manager on
startup and closes the stores on shutdown.

Error rendering: this module is the only place that turns core.errors types
into HTTP status codes (_ERROR_STATUS). Every InvalidCredential renders the
same 401 body whatever its internal reason; the reason is logged by
auth/sessions.py and never sent to the client.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.boards import router as boards_router
from api.routes.tasks import router as tasks_router
from api.routes.users import router as users_router
from auth.sessions import SessionManager
from auth.store import UserStore
from auth.tokens import CredentialCodec
from boards.store import BoardStore
from core.config import get_settings
from core.errors import (
    Conflict,
    Forbidden,
    InvalidCredential,
    ResourceNotFound,
    StorageUnavailable,
    TaskBoardError,
    Unauthorized,
)

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("taskboard.api")

# ---------------------------------------------------------------------------
# Error taxonomy -> HTTP status
#
# Every TaskBoardError subclass must appear here. tests/test_errors.py walks
# the subclasses and fails if one is missing.
# ---------------------------------------------------------------------------

_ERROR_STATUS: dict[type[TaskBoardError], int] = {
    InvalidCredential: 401,
    Unauthorized: 401,
    Forbidden: 403,
    ResourceNotFound: 404,
    Conflict: 409,
    StorageUnavailable: 503,
}


def status_for(exc: TaskBoardError) -> int:
    for cls in type(exc).__mro__:
        if cls in _ERROR_STATUS:
            return _ERROR_STATUS[cls]
    return 500


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create stores and the session manager; close the stores on shutdown."""
    settings = get_settings()
    logger.info("TaskBoard API starting up")
    app.state.user_store = UserStore(settings.database_url)
    app.state.board_store = BoardStore(settings.database_url)
    codec = CredentialCodec(settings.secret_key, settings.jwt_algorithm)
    app.state.sessions = SessionManager(app.state.user_store, codec)
    logger.info("Auth initialized (algorithm=%s)", codec.algorithm)

    yield

    app.state.board_store.close()
    app.state.user_store.close()
    logger.info("TaskBoard API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="TaskBoard API",
    description="Multi-tenant task boards with revocable session credentials.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origin_list,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, tags=["Auth"])
app.include_router(users_router, tags=["Users"])
app.include_router(boards_router, tags=["Boards"])
app.include_router(tasks_router, tags=["Tasks"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(TaskBoardError)
async def taskboard_error_handler(request: Request, exc: TaskBoardError) -> JSONResponse:
    """Render a core error. The message is exc.message, never the internal reason."""
    response = _error_response(status_for(exc), exc.code, exc.message)
    if isinstance(exc, (InvalidCredential, Unauthorized)):
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or params fail validation."""
    return _error_response(422, "validation_error", "Request validation failed.", str(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes (404) and wrong methods (405) in the same envelope."""
    response = _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is logged only, never written to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness plus a database round-trip check. No authentication."""
    db_ok = request.app.state.user_store.ping()
    return HealthResponse(
        version=VERSION,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
