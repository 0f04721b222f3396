"""
API routes for hybrid search service.

Provides the hybrid search endpoint, its bare pre-flight handler, and a
health check.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response

from src.api.dependencies import ServiceContainer
from src.api.models import (
    ErrorResponse,
    HealthResponse,
    HybridSearchRequest,
    HybridSearchResponse,
)
from src.search.exceptions import HybridSearchError

logger = logging.getLogger(__name__)

router = APIRouter()

SEARCH_PATH = "/v1/search/hybrid"
LEGACY_SEARCH_PATH = "/hybrid-search"

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]
CORS_ALLOW_METHODS = ["GET", "POST", "OPTIONS"]


def cors_response_headers(allowed_origins: list[str], request_origin: str | None) -> dict[str, str]:
    """CORS headers for a response, honouring the configured origins.

    A wildcard allows every caller, with or without an ``Origin`` header.
    Otherwise only a listed origin is echoed back; anything else gets no
    CORS headers.
    """
    if "*" in allowed_origins:
        allow_origin = "*"
    elif request_origin and request_origin in allowed_origins:
        allow_origin = request_origin
    else:
        return {}

    headers = {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Headers": ", ".join(CORS_ALLOW_HEADERS),
        "Access-Control-Allow-Methods": ", ".join(CORS_ALLOW_METHODS),
    }
    if allow_origin != "*":
        headers["Vary"] = "Origin"
    return headers


def get_services() -> ServiceContainer:
    """Get service container - injected at runtime."""
    # This is overridden by dependency injection in create_app
    msg = "Services not configured"
    raise RuntimeError(msg)


@router.post(
    SEARCH_PATH,
    response_model=HybridSearchResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid query"},
        500: {"model": ErrorResponse, "description": "Embedding or ranking failure"},
    },
    tags=["search"],
    summary="Perform hybrid full-text + semantic search",
)
@router.post(LEGACY_SEARCH_PATH, response_model=HybridSearchResponse, include_in_schema=False)
async def hybrid_search(
    request: HybridSearchRequest,
    services: ServiceContainer = Depends(get_services),  # noqa: B008
) -> HybridSearchResponse:
    """
    Execute a hybrid search combining full-text and vector similarity.

    The query is embedded once, then the corpus store's ranking procedure
    scores every chunk by both signals and returns the top ``match_count``
    rows ordered by combined score, conceptually:
    `full_text_weight * lexical_score + semantic_weight * vector_similarity`

    Args:
        request: Query text, result limit and the two weights
        services: Injected service container

    Returns:
        HybridSearchResponse with the original query and the ranked rows
    """
    if services.search_service is None:
        raise HybridSearchError("Hybrid search service is not configured")

    try:
        result = await services.search_service.search(
            query=request.query,
            match_count=request.match_count,
            full_text_weight=request.full_text_weight,
            semantic_weight=request.semantic_weight,
        )
    except HybridSearchError:
        raise
    except Exception as e:
        logger.exception("Unexpected hybrid search failure")
        raise HybridSearchError(str(e), cause=e) from e

    return HybridSearchResponse(
        query=result.query,
        match_count=result.match_count,
        results=result.results,
    )


@router.options(SEARCH_PATH, include_in_schema=False)
@router.options(LEGACY_SEARCH_PATH, include_in_schema=False)
async def hybrid_search_preflight(request: Request) -> Response:
    """Answer a pre-flight that carries no CORS request headers."""
    headers = cors_response_headers(
        request.app.state.cors_allow_origins,
        request.headers.get("origin"),
    )
    return Response(content="ok", media_type="text/plain", headers=headers)


@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check endpoint",
)
async def health_check(
    services: ServiceContainer = Depends(get_services),  # noqa: B008
) -> HealthResponse:
    """
    Report whether the collaborators are configured.

    No outbound calls are made: a configured provider or store may still
    fail on the next search.

    Args:
        services: Injected service container

    Returns:
        HealthResponse with collaborator statuses
    """
    service_statuses = {
        "embedding": _configuration_status(services.embedding_provider),
        "corpus": _configuration_status(services.corpus_store),
    }

    all_configured = all(s == "configured" for s in service_statuses.values())
    overall_status = "healthy" if all_configured else "degraded"

    return HealthResponse(
        status=overall_status,
        services=service_statuses,
        version=services.config.version,
    )


def _configuration_status(collaborator: object | None) -> str:
    if collaborator is None:
        return "not_configured"
    return "configured" if getattr(collaborator, "is_configured", True) else "not_configured"
