"""
api/main.py -- FastAPI application factory for Natours.

Run with:      uvicorn asgi:app --reload
               python main.py serve

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

create_app() takes an explicit Settings (and optionally pre-built store and
email sender, used by tests). Lifespan wires the auth components onto
app.state on startup and closes the store it created on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.users import router as users_router
from auth.errors import AppError
from auth.mailer import EmailSender, build_email_sender
from auth.passwords import PasswordHasher
from auth.reset import PasswordResetFlow
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer
from core.config import Settings, get_settings

API_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("natours.api")


def _error(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


def create_app(
    settings: Settings | None = None,
    user_store: UserStore | None = None,
    email_sender: EmailSender | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    # -----------------------------------------------------------------------
    # Lifespan
    # -----------------------------------------------------------------------

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Build the auth components once per process and share them via app.state.

        Everything on app.state is either immutable (settings) or stateless
        apart from the database, so concurrent requests share nothing mutable.
        """
        logger.info("Natours API starting up (environment=%s)", settings.environment)
        owns_store = user_store is None
        store = user_store if user_store is not None else UserStore(settings.database_url)
        hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
        issuer = TokenIssuer(settings.secret_key, settings.token_expire_seconds)
        auth_service = AuthService(store, hasher, issuer)
        sender = email_sender if email_sender is not None else build_email_sender(settings)

        app.state.settings = settings
        app.state.user_store = store
        app.state.token_issuer = issuer
        app.state.auth_service = auth_service
        app.state.reset_flow = PasswordResetFlow(store, auth_service, sender)
        logger.info("Auth initialized")

        yield

        if owns_store:
            store.close()
        logger.info("Natours API shutdown complete")

    app = FastAPI(
        title="Natours API",
        description="Authentication and access control for the Natours tours API.",
        version=API_VERSION,
        lifespan=lifespan,
    )

    # -----------------------------------------------------------------------
    # Middleware stack -- register in the order you want the request to
    # encounter them: TrustedHost -> CORS -> SlowAPI.
    # -----------------------------------------------------------------------

    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )
    app.add_middleware(SlowAPIMiddleware)
    # SlowAPI looks for app.state.limiter by convention.
    app.state.limiter = limiter

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

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------

    app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
    app.include_router(users_router, prefix="/api/v1", tags=["Users"])

    # -----------------------------------------------------------------------
    # Exception handlers
    #
    # All handlers return the same ErrorResponse envelope so API clients can
    # parse errors uniformly without inspecting status codes to choose a schema.
    # -----------------------------------------------------------------------

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        """Operational errors: expected, and their message is safe to show."""
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
        return _error(exc.status_code, exc.code, exc.message)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        """Return 429 with a structured error when a rate limit is exceeded."""
        retry_after = int(getattr(exc, "retry_after", 60))
        response = _error(429, "rate_limited", "Too many requests from this IP, please try again later.", str(exc))
        response.headers["Retry-After"] = str(retry_after)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Malformed request body or params are a client error: 400."""
        return _error(400, "validation_error", "Invalid input data.", str(exc.errors()))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Routing errors (unknown path, wrong method) raised by Starlette itself."""
        response = _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for non-operational errors.

        The raw exception goes to the log only, never to the response body.
        """
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return _error(500, "internal_error", "Something went very wrong!")

    # -----------------------------------------------------------------------
    # Health endpoint -- never rate limited.
    # -----------------------------------------------------------------------

    @app.get("/api/v1/health", tags=["Health"])
    async def health() -> HealthResponse:
        """Return API liveness and current version."""
        return HealthResponse(version=API_VERSION)

    return app
