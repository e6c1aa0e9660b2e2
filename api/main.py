"""
api/main.py -- FastAPI application entry point for userdir.

Run with:      python main.py serve
               uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. log_requests -- one access-log line per request with latency

Lifespan loads the UserStore from Settings.users_file before the first request.
A missing or corrupt store raises StorageError there and the server refuses to
start; the same goes for a missing SECRET_KEY (get_settings() raises).

Error reporting: every exception reaching FastAPI goes through one of the
handlers below. They call core.errors.describe_failure() (pure) and
log_failure() (side effect), then write the single ErrorResponse envelope.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse, HealthResponse
from api.routes.users import router as users_router
from auth.store import UserStore
from core.config import get_settings
from core.errors import AppError, FailureDescription, ValidationError, describe_failure, log_failure

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("userdir.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Load settings and the credential store; fail fast if either is unusable."""
    settings = get_settings()
    if settings.debug:
        logging.getLogger("userdir").setLevel(logging.DEBUG)
    logger.info("userdir API starting up")
    app.state.user_store = UserStore(settings.users_file)
    logger.info("User store loaded from %s (%d users)", settings.users_file, len(app.state.user_store))

    yield

    logger.info("userdir API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="userdir API",
    description="Bearer credentials and role gates for a small user directory.",
    version=__version__,
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


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

app.include_router(users_router, tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope:
#   {"success": false, "message": "...", "code": "..."}
# Stack, cause and detail from the FailureDescription are logged, never sent.
# ---------------------------------------------------------------------------


def _error_response(description: FailureDescription) -> JSONResponse:
    response = JSONResponse(
        status_code=description.status_code,
        content=ErrorResponse(message=description.message, code=description.code).model_dump(),
    )
    response.headers["Cache-Control"] = "no-store"
    return response


def _report(request: Request, exc: Exception) -> JSONResponse:
    description = describe_failure(exc)
    log_failure(description, request.method, request.url.path)
    return _error_response(description)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 when the request body fails validation.

    Only the failing field locations go in the message -- the raw input values
    pydantic includes in exc.errors() may contain the submitted password.
    """
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        return _report(request, ValidationError("Request body is not valid JSON."))
    fields = sorted({".".join(str(p) for p in err.get("loc", ())[1:]) or "body" for err in errors})
    error = ValidationError(f"Invalid or missing fields: {', '.join(fields)}.")
    return _report(request, error)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap framework HTTP errors (404, 405, ...) in the standard envelope."""
    description = FailureDescription(
        status_code=exc.status_code,
        code=f"http_{exc.status_code}",
        message=str(exc.detail),
        name=type(exc).__name__,
    )
    log_failure(description, request.method, request.url.path)
    return _error_response(description)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Return the status and message carried by a domain error (401, 403, 409, 500...)."""
    return _report(request, exc)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The client receives only a generic message; the exception and its stack
    go to the log via log_failure().
    """
    return _report(request, exc)


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return liveness and current version. Public, so it reveals nothing about the directory."""
    return HealthResponse(version=__version__)
