"""
FastAPI application factory and main app configuration.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.errors import APIError
from .api.routers import auth, health, images
from .api.utils.responses import fail
from .core.config import get_settings
from .core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BackingStoreError,
    InvalidFileError,
    ReviewMediaException,
)
from .core.structured_logger import configure_logging
from .middleware.auth_middleware import JwtAuthenticationMiddleware

logger = logging.getLogger(__name__)

_STATUS_BY_EXCEPTION = (
    (InvalidFileError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (BackingStoreError, 502),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    logger.info(f"🚀 Starting {settings.app_name} v{settings.app_version} ({settings.app_env})")

    # Container existence is ensured once here, never per request
    from .adapters.storage.azure_blob_service import get_azure_blob_service

    blob_service = get_azure_blob_service()
    if await blob_service.ensure_container_exists():
        logger.info("✅ Azure Blob Storage initialized")
    else:
        logger.error("⚠️  Azure Blob Storage initialization failed, image routes will report errors")

    yield

    logger.info(f"🛑 Shutting down {settings.app_name}")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()
    configure_logging(settings.logging)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.allowed_origins,
        allow_credentials=True,
        allow_methods=settings.cors.allowed_methods,
        allow_headers=settings.cors.allowed_headers,
        max_age=600,
    )

    # Added last so it runs first: identity is resolved before any route
    app.add_middleware(JwtAuthenticationMiddleware)

    app.include_router(health.router)
    app.include_router(images.router)
    app.include_router(auth.router)

    @app.exception_handler(ReviewMediaException)
    async def service_error_handler(request: Request, exc: ReviewMediaException):
        status_code = 500
        for exc_type, code in _STATUS_BY_EXCEPTION:
            if isinstance(exc, exc_type):
                status_code = code
                break
        log = logger.error if status_code >= 500 else logger.warning
        log(f"{type(exc).__name__}: {exc.error_code} ({status_code}) {exc.message}")
        return JSONResponse(
            status_code=status_code,
            content=fail(request, exc.error_code or "SERVICE_ERROR", exc.message, exc.details).model_dump(),
        )

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        logger.warning(f"APIError: {exc.code} ({exc.http_status}) {exc.message}")
        headers = {"WWW-Authenticate": "Bearer"} if exc.http_status == 401 else None
        return JSONResponse(
            status_code=exc.http_status,
            content=fail(request, exc.code, exc.message, exc.details).model_dump(),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def pydantic_error_handler(request: Request, exc: RequestValidationError):
        error_details = exc.errors()
        logger.warning(f"ValidationError on {request.method} {request.url.path}: {error_details}")

        error_messages = []
        for error in error_details:
            loc = " -> ".join(str(x) for x in error.get("loc", []))
            msg = error.get("msg", "Validation error")
            error_messages.append(f"{loc}: {msg}")

        return JSONResponse(
            status_code=422,
            content=fail(
                request,
                "INVALID_INPUT",
                f"Input validation failed: {'; '.join(error_messages)}",
                {"path": request.url.path, "errors": [str(e) for e in error_messages]},
            ).model_dump(),
        )

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=fail(
                request,
                "INTERNAL_ERROR",
                "An unexpected error has occurred. Please try again later.",
            ).model_dump(),
        )

    @app.get("/", tags=["health"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.app_env,
            "status": "running",
        }

    return app


# Create the app instance
app = create_app()
