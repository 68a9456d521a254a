"""
FastAPI Application Factory.

Creates and configures the console application: CORS, security headers,
domain error mapping, the health endpoint and the API routers.
"""

import logging
from typing import Any, Callable, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from grafana_console.app_context import AppContext
from grafana_console.directory.exceptions import DirectoryError
from grafana_console.platform.exceptions import (
    PlatformAuthError,
    PlatformConflictError,
    PlatformConnectionError,
    PlatformError,
    PlatformNotFoundError,
    PlatformValidationError,
)
from grafana_console.repository.exceptions import (
    DuplicateRecordError,
    MissingValueError,
    RecordNotFoundError,
    RepositoryError,
)
from grafana_console.sync.coordinator import SyncInProgressError

_logger = logging.getLogger(__name__)

# Most specific first; Starlette resolves handlers along the exception MRO.
ERROR_STATUS: dict[type[Exception], int] = {
    SyncInProgressError: status.HTTP_409_CONFLICT,
    DuplicateRecordError: status.HTTP_409_CONFLICT,
    PlatformConflictError: status.HTTP_409_CONFLICT,
    RecordNotFoundError: status.HTTP_404_NOT_FOUND,
    MissingValueError: status.HTTP_400_BAD_REQUEST,
    PlatformNotFoundError: status.HTTP_404_NOT_FOUND,
    PlatformValidationError: status.HTTP_400_BAD_REQUEST,
    PlatformAuthError: status.HTTP_502_BAD_GATEWAY,
    PlatformConnectionError: status.HTTP_502_BAD_GATEWAY,
    DirectoryError: status.HTTP_502_BAD_GATEWAY,
    PlatformError: status.HTTP_502_BAD_GATEWAY,
    RepositoryError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def create_app(
    context: AppContext,
    lifespan: Optional[Callable[[FastAPI], Any]] = None,
    title: str = "Grafana User Console API",
    description: str = "Opoppo directory and Grafana synchronization",
    version: str = "1.0.0",
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        context: Application context for logging and configuration.
        lifespan: Lifespan that wires repository and sources into app.state.
        title: API title for OpenAPI documentation.
        description: API description for OpenAPI documentation.
        version: API version string.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(title=title, description=description, version=version, lifespan=lifespan)
    app.state.context = context

    _configure_cors(app, context)

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    _register_error_handlers(app)
    _register_routes(app)
    return app


def _configure_cors(app: FastAPI, context: AppContext) -> None:
    config = context.config
    base_url = config.get("server.base_url", "")
    is_debug = config.get("app.debug", False)

    allowed_origins: list[str] = []
    if base_url:
        allowed_origins.append(base_url)
    if is_debug:
        allowed_origins.extend([
            "http://localhost:5000",
            "http://127.0.0.1:5000",
            "http://localhost:5173",
        ])

    if not allowed_origins:
        _logger.warning(
            "BASE_URL not configured and not in debug mode. "
            "CORS will reject all cross-origin requests."
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    if allowed_origins:
        _logger.info(f"CORS configured with {len(allowed_origins)} origin(s): {allowed_origins}")


def _register_error_handlers(app: FastAPI) -> None:
    """Map domain exceptions to HTTP status codes with ``{"detail": message}``."""

    def make_handler(status_code: int):
        async def handler(request: Request, exc: Exception) -> JSONResponse:
            if status_code >= 500:
                _logger.error(f"{request.method} {request.url.path} failed: {type(exc).__name__}: {exc}")
            else:
                _logger.info(f"{request.method} {request.url.path} -> {status_code}: {exc}")
            return JSONResponse(status_code=status_code, content={"detail": str(exc)})

        return handler

    for exc_class, status_code in ERROR_STATUS.items():
        app.add_exception_handler(exc_class, make_handler(status_code))


def _register_routes(app: FastAPI) -> None:
    from grafana_console.api import data_router, settings_router, sync_router, users_router

    for router in (sync_router, data_router, users_router, settings_router):
        app.include_router(router, prefix="/api")

    @app.get("/health")
    async def health_check(request: Request) -> dict[str, Any]:
        """Health check endpoint."""
        coordinator = getattr(request.app.state, "coordinator", None)
        return {
            "status": "ok",
            "service": "Grafana User Console",
            "syncRunning": bool(coordinator and coordinator.is_running),
        }
