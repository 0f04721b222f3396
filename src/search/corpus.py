"""
Ranked corpus stores.

The ranked corpus store owns the document chunks and the combined-score
ranking procedure. The hybrid search service only calls ``rank(...)``.

- SupabaseCorpusStore: calls the ``hybrid_search`` Postgres function through
  PostgREST RPC. One httpx client is created on first use and reused for the
  life of the process; ``aclose()`` releases it at shutdown.
- InMemoryCorpusStore: reference implementation of the same ranking contract
  over records held in memory. Used for local runs and tests.
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx

from src.search.exceptions import RankingStoreConfigurationError, RankingStoreError
from src.search.ranker import ResultRanker, id_sort_key

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

_DEFAULT_FUNCTION = "hybrid_search"
_CANDIDATE_MULTIPLIER = 2  # Each side contributes up to match_count * 2 candidates
_TOKEN_PATTERN = re.compile(r"[a-z0-9]+")


# =============================================================================
# Supabase (PostgREST RPC)
# =============================================================================


class SupabaseCorpusStore:
    """Ranked corpus store backed by a Supabase Postgres function.

    Usage:
        store = SupabaseCorpusStore(url=settings.supabase_url, service_role_key=key)
        rows = await store.rank("soil moisture", embedding, 10, 1.0, 1.0)
        await store.aclose()
    """

    def __init__(
        self,
        url: str | None,
        service_role_key: str | None,
        function_name: str = _DEFAULT_FUNCTION,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            url: Supabase project URL
            service_role_key: Service-role key used for ``apikey`` and bearer auth
            function_name: Name of the ranking function exposed over RPC
            timeout: Optional client-side timeout in seconds
            transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        """
        self._url = url
        self._key = service_role_key
        self._function_name = function_name
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        """Whether URL and key are both present."""
        return bool(self._url and self._key)

    @property
    def function_name(self) -> str:
        """Name of the ranking function."""
        return self._function_name

    async def _get_client(self) -> httpx.AsyncClient:
        if not self.is_configured:
            raise RankingStoreConfigurationError(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be configured"
            )
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=f"{self._url.rstrip('/')}/rest/v1",
                headers={
                    "apikey": self._key,
                    "Authorization": f"Bearer {self._key}",
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def rank(
        self,
        query_text: str,
        query_embedding: list[float],
        match_count: int,
        full_text_weight: float,
        semantic_weight: float,
    ) -> list[dict[str, Any]]:
        """Invoke the ranking function and return its rows in store order.

        Raises:
            RankingStoreConfigurationError: If URL or key is missing
            RankingStoreError: On transport failure, error status, or a
                response body that is not a list of rows
        """
        client = await self._get_client()
        try:
            response = await client.post(
                f"/rpc/{self._function_name}",
                json={
                    "query_text": query_text,
                    "query_embedding": query_embedding,
                    "match_count": match_count,
                    "full_text_weight": full_text_weight,
                    "semantic_weight": semantic_weight,
                },
            )
        except httpx.HTTPError as e:
            raise RankingStoreError(f"Ranking store request failed: {e}", cause=e) from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error:
            message = None
            if isinstance(payload, dict):
                message = payload.get("message") or payload.get("error")
            raise RankingStoreError(
                message or f"Ranking store returned HTTP {response.status_code}"
            )

        if payload is None:
            return []
        if not isinstance(payload, list):
            raise RankingStoreError(
                f"Unexpected ranking response: expected a list, got {type(payload).__name__}"
            )
        return payload

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None


# =============================================================================
# In-memory reference implementation
# =============================================================================


@dataclass
class CorpusRecord:
    """One indexed chunk of content with its precomputed embedding."""

    id: str
    content: str
    embedding: list[float]
    metadata: dict[str, Any] = field(default_factory=dict)


def tokenize(text: str) -> list[str]:
    """Lower-case alphanumeric terms of ``text``."""
    return _TOKEN_PATTERN.findall(text.lower())


def lexical_score(query_terms: set[str], content: str) -> float:
    """Score a document against the query terms.

    The integer part is the number of distinct query terms present; the
    fractional part grows with their total frequency, so term coverage
    always outranks repetition. Returns 0.0 when nothing matches.
    """
    counts = Counter(tokenize(content))
    matched = [term for term in query_terms if counts[term]]
    if not matched:
        return 0.0
    frequency = sum(counts[term] for term in matched)
    return len(matched) + frequency / (frequency + 1)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity of two vectors; 0.0 if either is all zeros."""
    if len(a) != len(b):
        raise ValueError(f"Dimension mismatch: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def _top_candidates(scores: dict[str, float], limit: int) -> dict[str, float]:
    ordered = sorted(scores.items(), key=lambda x: (-x[1], id_sort_key(x[0])))
    return dict(ordered[:limit])


class InMemoryCorpusStore:
    """Ranked corpus store holding its records in process memory.

    Implements the same contract as the ``hybrid_search`` SQL function:
    each side keeps its top ``match_count * 2`` candidates, the sides are
    fused with the configured strategy, and the result is ordered by
    combined score descending with ties broken by ID ascending.
    """

    def __init__(
        self,
        records: list[CorpusRecord] | None = None,
        strategy: str = "rrf",
        rrf_k: int = 50,
    ) -> None:
        self._records: dict[str, CorpusRecord] = {}
        self._strategy = strategy
        self._rrf_k = rrf_k
        for record in records or []:
            self.add(record)

    @classmethod
    def from_jsonl(cls, path: str | Path, strategy: str = "rrf", rrf_k: int = 50) -> InMemoryCorpusStore:
        """Load records from a JSON Lines file.

        Each line holds ``id``, ``content``, ``embedding`` and optional
        ``metadata``. Blank lines are skipped.
        """
        records = []
        with open(path, encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    row = json.loads(line)
                    records.append(
                        CorpusRecord(
                            id=str(row["id"]),
                            content=row["content"],
                            embedding=[float(v) for v in row["embedding"]],
                            metadata=row.get("metadata") or {},
                        )
                    )
                except (KeyError, TypeError, ValueError) as e:
                    raise ValueError(f"Invalid corpus record on line {line_number}: {e}") from e
        logger.info("Loaded %d corpus records from %s", len(records), path)
        return cls(records, strategy=strategy, rrf_k=rrf_k)

    def __len__(self) -> int:
        return len(self._records)

    def add(self, record: CorpusRecord) -> None:
        """Insert or replace a record by ID."""
        self._records[record.id] = record

    async def rank(
        self,
        query_text: str,
        query_embedding: list[float],
        match_count: int,
        full_text_weight: float,
        semantic_weight: float,
    ) -> list[dict[str, Any]]:
        """Rank the corpus by weighted fusion of lexical and vector signals."""
        try:
            ranker = ResultRanker(
                strategy=self._strategy,
                full_text_weight=full_text_weight,
                semantic_weight=semantic_weight,
                rrf_k=self._rrf_k,
            )
            candidate_limit = max(match_count, 0) * _CANDIDATE_MULTIPLIER
            query_terms = set(tokenize(query_text))

            full_text_scores = {}
            semantic_scores = {}
            for record in self._records.values():
                score = lexical_score(query_terms, record.content)
                if score > 0:
                    full_text_scores[record.id] = score
                semantic_scores[record.id] = cosine_similarity(query_embedding, record.embedding)

            full_text_scores = _top_candidates(full_text_scores, candidate_limit)
            semantic_scores = _top_candidates(semantic_scores, candidate_limit)
        except ValueError as e:
            raise RankingStoreError(str(e), cause=e) from e

        full_text_ranking = ranker.scores_to_ranking(full_text_scores)
        semantic_ranking = ranker.scores_to_ranking(semantic_scores)

        rows = []
        for doc_id, score in ranker.rank(full_text_scores, semantic_scores, limit=match_count):
            record = self._records[doc_id]
            rows.append(
                {
                    "id": record.id,
                    "content": record.content,
                    "metadata": dict(record.metadata),
                    "full_text_rank": full_text_ranking.get(doc_id),
                    "semantic_rank": semantic_ranking.get(doc_id),
                    "score": score,
                }
            )
        return rows

    async def aclose(self) -> None:
        """Nothing to release."""
        return None
