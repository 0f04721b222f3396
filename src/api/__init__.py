"""
API module for hybrid search service.

Provides the FastAPI application factory and the hybrid search routes.
"""

from src.api.app import create_app
from src.api.models import (
    ErrorResponse,
    HealthResponse,
    HybridSearchRequest,
    HybridSearchResponse,
)
from src.api.routes import router

__all__ = [
    "create_app",
    "router",
    "ErrorResponse",
    "HealthResponse",
    "HybridSearchRequest",
    "HybridSearchResponse",
]
