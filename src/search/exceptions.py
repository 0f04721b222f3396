"""
Custom exceptions for the hybrid search module.

Every failure on the search path is one of these types so the API layer can
map it onto a single ``{"error": ...}`` envelope with the right status code.
"""

from __future__ import annotations


class HybridSearchError(Exception):
    """Base exception for all hybrid search errors."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        """Initialize with message and optional cause.

        Args:
            message: Human-readable error description
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.cause = cause


class InvalidQueryError(HybridSearchError):
    """Raised when the caller omits the query or sends a blank one."""

    pass


class EmbeddingError(HybridSearchError):
    """Base exception for embedding provider failures."""

    pass


class EmbeddingConfigurationError(EmbeddingError):
    """Raised when the embedding provider has no credentials configured."""

    pass


class EmbeddingProviderError(EmbeddingError):
    """Raised when the embedding call fails or returns an unusable payload."""

    pass


class RankingStoreError(HybridSearchError):
    """Raised when the ranking procedure call fails."""

    pass


class RankingStoreConfigurationError(RankingStoreError):
    """Raised when the ranked corpus store is not configured."""

    pass
