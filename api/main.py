"""
api/main.py -- FastAPI application entry point for Usersvc.

Run with:      python main.py
               uvicorn api.main:app --reload

Middleware stack, outermost first (Starlette makes the last one registered
the outermost):
  1. log_requests          -- one access log line per request
  2. security_headers      -- helmet-style hardening headers on every response
  3. CORSMiddleware        -- adds CORS headers for allowed browser origins,
                              including on 429s from the limiter below
  4. SlowAPIMiddleware     -- enforces default and per-route rate limits
  5. TrustedHostMiddleware -- rejects requests with unexpected Host headers

Unhandled exceptions become a 500 in ServerErrorMiddleware, outside all of
the above, so the catch-all handler sets the security headers itself.

Lifespan builds the account store selected by Settings.account_store, wraps
it in an AccountService on app.state, and closes it on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from accounts.errors import AccountError, ConflictError, NotFoundError, ValidationError
from accounts.service import AccountService
from accounts.store import build_store
from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.users import router as users_router
from core.config import get_settings

__version__ = "0.1.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.DEBUG if _settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("usersvc.api")

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the account store for the full server lifetime.

    The store is the only shared mutable resource. It is created here and
    reached by routes through app.state, never through a module global.
    """
    logger.info("Usersvc API starting up")
    store = build_store(_settings.account_store, _settings.database_url)
    app.state.accounts = AccountService(store)
    logger.info("Account store initialized (%s)", _settings.account_store)

    yield

    app.state.accounts.close()
    logger.info("Usersvc API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Usersvc API",
    description="Minimal user management: create, read, update and delete accounts with bcrypt-hashed passwords.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Each add_middleware() call wraps the stack built so far, so TrustedHost
# ends up innermost, CORS wraps SlowAPI, and the @app.middleware functions
# below run first.
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.trusted_hosts,
)

app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.allowed_origins,
    allow_credentials=_settings.cors_allow_credentials,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# Security headers middleware
#
# Equivalent of helmet()'s defaults for a JSON API. Applied to every response
# that passes through the middleware stack, which covers every exception
# handler below except the Exception catch-all; that one sets them directly.
# ---------------------------------------------------------------------------

_SECURITY_HEADERS: dict[str, str] = {
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Frame-Options": "DENY",
    "X-Permitted-Cross-Domain-Policies": "none",
}


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in _SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    # Account data is per-user; never let an intermediary cache it.
    if request.url.path.startswith("/api/v1/users"):
        response.headers["Cache-Control"] = "no-store"
    return response


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Logs method, path, status and latency only. Bodies are never logged: they
# carry plaintext passwords on create, update and verify.
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

app.include_router(users_router, prefix="/api/v1", tags=["Users"])

# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------

_STATUS_BY_ERROR: dict[type[AccountError], int] = {
    ValidationError: 400,
    NotFoundError: 404,
    ConflictError: 409,
}


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(AccountError)
async def account_error_handler(request: Request, exc: AccountError) -> JSONResponse:
    """Map domain failures onto 400 / 404 / 409.

    The message is the fixed string the domain raised with; none of them
    carry request data, so nothing submitted is echoed back.
    """
    status_code = _STATUS_BY_ERROR.get(type(exc), 400)
    return _error_response(status_code, exc.code, exc.message)


@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded.

    Sync on purpose: SlowAPIMiddleware calls this handler directly (without
    awaiting) when a default limit trips inside the middleware.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(429, "rate_limited", "Too many requests.", str(exc.detail))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 when the request body or path fails schema validation.

    Pydantic includes the offending input in each error. Those inputs are
    dropped here because the body may contain a plaintext password.
    """
    errors = [{k: v for k, v in err.items() if k not in ("input", "ctx", "url")} for err in exc.errors()]
    return _error_response(422, "validation_error", "Request validation failed.", str(errors))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for FastAPI/Starlette HTTP exceptions (404 routes, 405, ...)."""
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    response = _error_response(500, "internal_error", "An unexpected error occurred.")
    response.headers.update(_SECURITY_HEADERS)
    return response


# ---------------------------------------------------------------------------
# Health endpoint
#
# Exempt from rate limiting -- probes from load balancers must not be throttled.
# ---------------------------------------------------------------------------


@limiter.exempt
@app.get("/api/v1/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=__version__)
