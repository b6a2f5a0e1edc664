"""focus-sync - offline-first task and focus timer sync server."""

import logging
import sys
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from focus_sync.core.config import DEFAULT_TOKEN_SECRET, constants, settings
from focus_sync.core.errors import ApiError, FocusSyncError
from focus_sync.core.logging import configure_logfire, instrument_fastapi
from focus_sync.core.user_store import UserLocks, UserRepository, create_user_repository
from focus_sync.domain.records import format_timestamp
from focus_sync.interface.auth_router import router as auth_router
from focus_sync.interface.sync_router import router as sync_router
from focus_sync.services.auth_service import AuthService
from focus_sync.services.sync_service import SyncService
from focus_sync.services.token_service import TokenManager


logger = logging.getLogger(__name__)

_started_at = time.monotonic()

health_router = APIRouter(tags=["health"])


def validate_startup_configuration() -> None:
    """Validate required credentials before serving requests.

    Raises:
        ValueError: If the token secret is missing, or left at its development
            default in production
    """
    logger.info("startup_validation_begin")

    settings.require_credential("token_secret", "Token signing secret")
    if settings.is_production and settings.token_secret == DEFAULT_TOKEN_SECRET:
        msg = "TOKEN_SECRET must be changed from its development default in production."
        raise ValueError(msg)

    logger.info("startup_validation_complete", extra={"status": "ok", "storage": settings.storage_backend})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Configure logging first so validation logs are captured
    configure_logfire()

    try:
        validate_startup_configuration()
    except ValueError as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\n❌ Startup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    yield

    # Shutdown
    close = getattr(app.state.user_repository, "close", None)
    if close is not None:
        await close()


def _error_response(status_code: int, message: str, details: str | None = None) -> JSONResponse:
    body = ApiError(message=message, details=details)
    return JSONResponse(content=body.model_dump(exclude_none=True), status_code=status_code)


async def handle_focus_sync_error(_request: Request, exc: FocusSyncError) -> JSONResponse:
    """Render domain errors as ``{message, details?}``."""
    return _error_response(exc.status_code, exc.message, exc.details)


async def handle_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    """Reject malformed bodies with a 400 instead of FastAPI's default 422."""
    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', '')}" for error in exc.errors()
    )
    logger.info("request_validation_failed", extra={"details": details})
    return _error_response(constants.HTTP_BAD_REQUEST, "Invalid request body.", details)


async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Echo method and path for unknown routes.

    A known path called with the wrong method is reported the same way.
    """
    if exc.status_code in (constants.HTTP_NOT_FOUND, constants.HTTP_METHOD_NOT_ALLOWED):
        return _error_response(constants.HTTP_NOT_FOUND, "Route not found", f"{request.method} {request.url.path}")
    return _error_response(exc.status_code, str(exc.detail))


@health_router.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(
        content={
            "status": "ok",
            "uptime": time.monotonic() - _started_at,
            "timestamp": format_timestamp(datetime.now(UTC)),
            "message": "Service healthy",
        },
        status_code=200,
    )


@health_router.get("/healthz")
async def liveness_check() -> PlainTextResponse:
    """Bare liveness probe."""
    return PlainTextResponse("ok", status_code=200)


def create_app(
    *,
    repository: UserRepository | None = None,
    token_secret: str | None = None,
    access_ttl_seconds: int | None = None,
    refresh_ttl_seconds: int | None = None,
) -> FastAPI:
    """Build the application with its services wired in.

    Args:
        repository: Account storage (defaults to the backend chosen by settings)
        token_secret: Token signing secret (defaults to settings)
        access_ttl_seconds: Access token lifetime override
        refresh_ttl_seconds: Refresh token lifetime override
    """
    app = FastAPI(
        title="focus-sync",
        description="Offline-first task and focus timer sync",
        version="0.1.0",
        lifespan=lifespan,
    )

    user_repository = repository if repository is not None else create_user_repository()
    locks = UserLocks()
    tokens = TokenManager(
        repository=user_repository,
        locks=locks,
        secret=token_secret,
        access_ttl_seconds=access_ttl_seconds,
        refresh_ttl_seconds=refresh_ttl_seconds,
    )

    app.state.user_repository = user_repository
    app.state.token_manager = tokens
    app.state.auth_service = AuthService(repository=user_repository, locks=locks, tokens=tokens)
    app.state.sync_service = SyncService(repository=user_repository, locks=locks, tokens=tokens)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.client_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Instrument FastAPI with Logfire
    instrument_fastapi(app)

    app.add_exception_handler(FocusSyncError, handle_focus_sync_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)

    # Register routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(sync_router)

    return app


app = create_app()
