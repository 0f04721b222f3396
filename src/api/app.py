"""
FastAPI application factory for hybrid search service.

Creates and configures the FastAPI application with routes, CORS, the
uniform error envelope, and the collaborator lifecycle.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from src.api.dependencies import ServiceContainer, build_services
from src.core.config import Settings, get_settings
from src.core.logging import correlation_id_scope
from src.search.exceptions import HybridSearchError, InvalidQueryError
from src.search.hybrid import MISSING_QUERY_MESSAGE

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def create_app(
    settings: Settings | None = None,
    services: ServiceContainer | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Optional settings; loaded from the environment if omitted
        services: Optional pre-configured service container

    Returns:
        Configured FastAPI application
    """
    cfg = settings or get_settings()
    if services is None:
        services = build_services(cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.services.aclose()

    app = FastAPI(
        title="Hybrid Search Service",
        description="Full-text + semantic hybrid search API",
        version=services.config.version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Import routes here to avoid circular imports
    from src.api.routes import (
        CORS_ALLOW_HEADERS,
        CORS_ALLOW_METHODS,
        cors_response_headers,
        router,
    )

    app.state.cors_allow_origins = cfg.cors_allow_origins

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_allow_origins,
        allow_credentials=False,
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
    )

    @app.middleware("http")
    async def correlation_id_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        with correlation_id_scope(correlation_id):
            start_time = time.perf_counter()
            response = await call_next(request)
            logger.info(
                "%s %s -> %d",
                request.method,
                request.url.path,
                response.status_code,
                extra={
                    "context": {
                        "method": request.method,
                        "path": request.url.path,
                        "status_code": response.status_code,
                        "duration_ms": round((time.perf_counter() - start_time) * 1000, 1),
                    }
                },
            )
        # CORSMiddleware skips requests without an Origin header
        for name, value in cors_response_headers(
            app.state.cors_allow_origins,
            request.headers.get("origin"),
        ).items():
            response.headers.setdefault(name, value)
        response.headers[REQUEST_ID_HEADER] = correlation_id
        return response

    app.add_exception_handler(HybridSearchError, _hybrid_search_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    configure_app_services(app, services)
    app.include_router(router)

    return app


def configure_app_services(app: FastAPI, services: ServiceContainer) -> None:
    """
    Configure services for an existing app.

    This allows reconfiguring services after app creation,
    useful for testing.

    Args:
        app: FastAPI application instance
        services: Service container to use
    """
    from src.api.routes import get_services

    app.state.services = services

    def _get_services() -> ServiceContainer:
        return app.state.services

    app.dependency_overrides[get_services] = _get_services


async def _hybrid_search_error_handler(request: Request, exc: HybridSearchError) -> JSONResponse:
    if isinstance(exc, InvalidQueryError):
        logger.info("Rejected search request: %s", exc.message)
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        logger.error(
            "Hybrid search failed: %s",
            exc.message,
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=status_code, content={"error": exc.message})


async def _validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    message = describe_validation_errors(exc.errors())
    logger.info("Rejected search request: %s", message)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


def describe_validation_errors(errors: Any) -> str:
    """Turn pydantic error dicts into one client-facing message.

    Any problem with the query field (or a missing body) reads as the
    missing-query message; other fields are reported as ``field: reason``.
    """
    messages: list[str] = []
    for error in errors:
        loc = tuple(error.get("loc", ()))
        if error.get("type") == "json_invalid":
            return "Request body must be valid JSON"
        if "query" in loc or loc == ("body",):
            return MISSING_QUERY_MESSAGE
        field_name = ".".join(str(part) for part in loc if part != "body") or "body"
        messages.append(f"{field_name}: {error.get('msg', 'invalid value')}")
    return "; ".join(messages) or "Invalid request"
