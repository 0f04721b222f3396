"""
Pydantic models for API request/response validation.

These models define the contract for the hybrid search API endpoints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.search.hybrid import (
    DEFAULT_FULL_TEXT_WEIGHT,
    DEFAULT_MATCH_COUNT,
    DEFAULT_SEMANTIC_WEIGHT,
    MISSING_QUERY_MESSAGE,
)


class HybridSearchRequest(BaseModel):
    """Request model for hybrid search endpoint."""

    model_config = ConfigDict(extra="ignore")

    query: str = Field(
        description="Text query to search for",
        min_length=1,
    )
    match_count: int = Field(
        default=DEFAULT_MATCH_COUNT,
        ge=1,
        description="Maximum number of results to return",
    )
    full_text_weight: float = Field(
        default=DEFAULT_FULL_TEXT_WEIGHT,
        ge=0.0,
        description="Multiplier applied to the full-text match score",
    )
    semantic_weight: float = Field(
        default=DEFAULT_SEMANTIC_WEIGHT,
        ge=0.0,
        description="Multiplier applied to the vector similarity score",
    )

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        """Ensure query is not blank."""
        if not v.strip():
            raise ValueError(MISSING_QUERY_MESSAGE)
        return v


class HybridSearchResponse(BaseModel):
    """Response model for hybrid search endpoint."""

    query: str = Field(description="Original query text")
    match_count: int = Field(description="Number of results actually returned")
    results: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Ranked rows as returned by the corpus store",
    )


class ErrorResponse(BaseModel):
    """Uniform error envelope."""

    error: str = Field(description="Error message")


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(description="Overall health status")
    services: dict[str, str] = Field(
        default_factory=dict,
        description="Configuration status of each collaborator",
    )
    version: str = Field(description="API version")
