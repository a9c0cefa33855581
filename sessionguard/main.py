"""FastAPI application entry point.

Run with:
    uvicorn --factory sessionguard.main:create_app
"""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi

from sessionguard.application.exceptions import ApplicationError
from sessionguard.domain.exceptions import DomainException
from sessionguard.domain.repositories.key_value_store import IKeyValueStore
from sessionguard.infrastructure.config.settings import Settings, get_settings
from sessionguard.presentation.api.v1 import auth
from sessionguard.presentation.dependencies import ServiceContainer, build_container, get_store
from sessionguard.presentation.error_schemas import ValidationErrorResponse
from sessionguard.presentation.exception_handlers import (
    application_error_handler,
    domain_exception_handler,
    generic_exception_handler,
    validation_error_handler,
)

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """Configure root logging once, at the level from LOG_LEVEL."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(
    settings: Settings | None = None,
    container: ServiceContainer | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use (loaded from environment when omitted)
        container: Pre-built services (tests inject fakes); built from
            settings during startup when omitted
    """
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        services = container or build_container(settings)
        app.state.container = services
        logger.info(f"{settings.app_name} {settings.app_version} started ({settings.environment})")
        try:
            yield
        finally:
            await services.aclose()

    app = FastAPI(
        title=settings.app_name,
        description="Admin session token service: login, refresh token rotation with reuse detection, logout",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    # Configure CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register exception handlers
    # - ApplicationError handles ALL application layer exceptions (InvalidTokenError, etc.)
    # - DomainException handles ALL domain layer exceptions (StoreUnavailableException, etc.)
    # - RequestValidationError handles Pydantic validation errors
    # - Exception handles everything else
    app.add_exception_handler(ApplicationError, application_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DomainException, domain_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)

    # Include routers
    app.include_router(auth.router, prefix="/api/v1")

    @app.get("/")
    async def root() -> dict[str, str]:
        """Service banner."""
        return {
            "message": settings.app_name,
            "status": "running",
            "version": settings.app_version,
            "environment": settings.environment,
        }

    @app.get("/health")
    async def health(store: IKeyValueStore = Depends(get_store)) -> dict[str, str | float]:
        """Report whether the shared store answers."""
        started = time.perf_counter()
        connected = await store.ping()
        elapsed_ms = (time.perf_counter() - started) * 1000

        return {
            "status": "ok" if connected else "degraded",
            "store": "connected" if connected else "disconnected",
            "response_time_ms": round(elapsed_ms, 2),
        }

    app.openapi = lambda: custom_openapi(app)
    return app


def custom_openapi(app: FastAPI) -> dict:
    """
    Customize OpenAPI schema to use our custom validation error format.

    Replaces the default HTTPValidationError schema with ValidationErrorResponse
    to match the actual error format returned by our validation_error_handler.
    """
    # Return cached schema if it exists
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    schemas = openapi_schema.setdefault("components", {}).setdefault("schemas", {})
    schemas.pop("HTTPValidationError", None)
    schemas.pop("ValidationError", None)
    schemas["ValidationErrorResponse"] = ValidationErrorResponse.model_json_schema()

    # Update all 422 response references to use our custom schema
    for path_data in openapi_schema.get("paths", {}).values():
        for operation in path_data.values():
            if isinstance(operation, dict) and "422" in operation.get("responses", {}):
                operation["responses"]["422"] = {
                    "description": "Validation Error",
                    "content": {
                        "application/json": {
                            "schema": {"$ref": "#/components/schemas/ValidationErrorResponse"}
                        }
                    },
                }

    app.openapi_schema = openapi_schema
    return app.openapi_schema
