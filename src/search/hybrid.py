"""
Hybrid search implementation.

Orchestrates one ranked-search request:

1. validate the query text,
2. obtain the query embedding from the embedding provider,
3. hand the raw query, the embedding and the caller's weights to the
   corpus store's ranking procedure,
4. wrap the ordered rows in a HybridSearchResult.

The fusion formula and tie-break rule belong to the store; this service
passes the caller's parameters through unmodified and never degrades to a
single-signal search when one collaborator fails. Nothing is retried and
nothing is kept between calls.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from src.search.exceptions import (
    EmbeddingError,
    EmbeddingProviderError,
    InvalidQueryError,
    RankingStoreError,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

DEFAULT_MATCH_COUNT = 10
DEFAULT_FULL_TEXT_WEIGHT = 1.0
DEFAULT_SEMANTIC_WEIGHT = 1.0
DEFAULT_EMBEDDING_DIMENSION = 1536
MISSING_QUERY_MESSAGE = "query parameter is required"


# =============================================================================
# Protocols for Duck Typing
# =============================================================================


@runtime_checkable
class EmbeddingProviderProtocol(Protocol):
    """Protocol for the embedding provider."""

    async def embed(self, text: str, dimension: int) -> list[float]:
        """Return a single dense vector of ``dimension`` floats for ``text``."""
        ...


@runtime_checkable
class RankedCorpusStoreProtocol(Protocol):
    """Protocol for the store-side ranking procedure.

    Contract: return at most ``match_count`` rows ordered by combined
    score descending; each row carries at least an ``id``, the content,
    and the combined score.
    """

    async def rank(
        self,
        query_text: str,
        query_embedding: list[float],
        match_count: int,
        full_text_weight: float,
        semantic_weight: float,
    ) -> list[dict[str, Any]]:
        """Rank the corpus against the query."""
        ...


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class HybridSearchResult:
    """Outcome of one hybrid search.

    Attributes:
        query: The query text as supplied by the caller
        results: Rows returned by the ranking procedure, in store order
    """

    query: str
    results: list[dict[str, Any]] = field(default_factory=list)

    @property
    def match_count(self) -> int:
        """Number of results actually returned."""
        return len(self.results)


# =============================================================================
# HybridSearchService
# =============================================================================


class HybridSearchService:
    """Service for hybrid full-text + semantic search.

    Usage:
        service = HybridSearchService(
            embedding_provider=provider,
            corpus_store=store,
            embedding_dimension=1536,
        )

        result = await service.search("soil moisture sensor calibration", match_count=3)
    """

    def __init__(
        self,
        embedding_provider: EmbeddingProviderProtocol,
        corpus_store: RankedCorpusStoreProtocol,
        embedding_dimension: int = DEFAULT_EMBEDDING_DIMENSION,
    ) -> None:
        """Initialize hybrid search service.

        Args:
            embedding_provider: Turns the query into a dense vector
            corpus_store: Owns the corpus and the combined-score ranking
            embedding_dimension: Dimension of the stored corpus embeddings
        """
        self._embedding_provider = embedding_provider
        self._corpus_store = corpus_store
        self._embedding_dimension = embedding_dimension

    @property
    def embedding_dimension(self) -> int:
        """Dimension requested from the embedding provider."""
        return self._embedding_dimension

    async def search(
        self,
        query: str | None,
        match_count: int = DEFAULT_MATCH_COUNT,
        full_text_weight: float = DEFAULT_FULL_TEXT_WEIGHT,
        semantic_weight: float = DEFAULT_SEMANTIC_WEIGHT,
    ) -> HybridSearchResult:
        """Execute a hybrid search.

        Args:
            query: Text to search for; must not be blank
            match_count: Maximum number of results
            full_text_weight: Multiplier for the lexical signal
            semantic_weight: Multiplier for the vector signal

        Returns:
            HybridSearchResult with at most ``match_count`` rows

        Raises:
            InvalidQueryError: If the query is missing or blank
            EmbeddingError: If the embedding cannot be obtained
            RankingStoreError: If the ranking procedure fails
        """
        if not query or not query.strip():
            raise InvalidQueryError(MISSING_QUERY_MESSAGE)

        start_time = time.perf_counter()

        embedding = await self._embed(query)
        rows = await self._rank(query, embedding, match_count, full_text_weight, semantic_weight)

        if len(rows) > match_count:
            logger.warning(
                "Ranking store returned %d rows for match_count=%d, truncating",
                len(rows),
                match_count,
            )
            rows = rows[:match_count]

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Hybrid search returned %d/%d results in %.1fms",
            len(rows),
            match_count,
            latency_ms,
            extra={
                "context": {
                    "match_count": match_count,
                    "result_count": len(rows),
                    "full_text_weight": full_text_weight,
                    "semantic_weight": semantic_weight,
                    "latency_ms": round(latency_ms, 1),
                }
            },
        )

        return HybridSearchResult(query=query, results=rows)

    async def _embed(self, query: str) -> list[float]:
        try:
            return await self._embedding_provider.embed(query, self._embedding_dimension)
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingProviderError(f"Embedding request failed: {e}", cause=e) from e

    async def _rank(
        self,
        query: str,
        embedding: list[float],
        match_count: int,
        full_text_weight: float,
        semantic_weight: float,
    ) -> list[dict[str, Any]]:
        try:
            rows = await self._corpus_store.rank(
                query_text=query,
                query_embedding=embedding,
                match_count=match_count,
                full_text_weight=full_text_weight,
                semantic_weight=semantic_weight,
            )
        except RankingStoreError:
            raise
        except Exception as e:
            raise RankingStoreError(str(e), cause=e) from e
        return list(rows or [])
