"""
Result ranker for hybrid search.

Fuses a full-text (lexical) signal and a semantic (vector) signal into one
combined score per document. Used by the in-memory corpus store; the
``hybrid_search`` Postgres function implements the same ``rrf`` contract.

Strategies:
- rrf: Weighted Reciprocal Rank Fusion
  full_text_weight / (k + ft_rank) + semantic_weight / (k + sem_rank)
- linear: Weighted sum of min-max normalised lexical scores and raw
  semantic similarity

A document absent from one side contributes 0 from that side. Ranking is
by combined score descending, ties broken by document ID ascending.
"""

from __future__ import annotations

# =============================================================================
# Constants
# =============================================================================

_DEFAULT_STRATEGY = "rrf"
_DEFAULT_FULL_TEXT_WEIGHT = 1.0
_DEFAULT_SEMANTIC_WEIGHT = 1.0
_DEFAULT_RRF_K = 50
_VALID_STRATEGIES = {"rrf", "linear"}


# =============================================================================
# ResultRanker Class
# =============================================================================


class ResultRanker:
    """Configurable result ranker with weighted fusion strategies.

    Usage:
        ranker = ResultRanker(strategy="rrf", full_text_weight=1.0, semantic_weight=2.0)
        fused = ranker.fuse(full_text_scores, semantic_scores)
        ranked = ranker.rank(full_text_scores, semantic_scores, limit=10)
    """

    def __init__(
        self,
        strategy: str = _DEFAULT_STRATEGY,
        full_text_weight: float = _DEFAULT_FULL_TEXT_WEIGHT,
        semantic_weight: float = _DEFAULT_SEMANTIC_WEIGHT,
        rrf_k: int = _DEFAULT_RRF_K,
    ) -> None:
        """Initialize the ranker with configuration.

        Args:
            strategy: Fusion strategy ("rrf", "linear")
            full_text_weight: Multiplier for the lexical signal (>= 0)
            semantic_weight: Multiplier for the vector signal (>= 0)
            rrf_k: Smoothing constant for RRF (default: 50)

        Raises:
            ValueError: If strategy is invalid, a weight is negative,
                or rrf_k is not positive
        """
        if strategy not in _VALID_STRATEGIES:
            raise ValueError(
                f"Invalid strategy '{strategy}'. "
                f"Valid options: {', '.join(sorted(_VALID_STRATEGIES))}"
            )
        if full_text_weight < 0 or semantic_weight < 0:
            raise ValueError(
                f"Weights must be non-negative, got full_text_weight={full_text_weight}, "
                f"semantic_weight={semantic_weight}"
            )
        if rrf_k < 1:
            raise ValueError(f"rrf_k must be positive, got {rrf_k}")

        self._strategy = strategy
        self._full_text_weight = full_text_weight
        self._semantic_weight = semantic_weight
        self._rrf_k = rrf_k

    @property
    def strategy(self) -> str:
        """Get the current fusion strategy."""
        return self._strategy

    @property
    def full_text_weight(self) -> float:
        """Get the lexical score weight."""
        return self._full_text_weight

    @property
    def semantic_weight(self) -> float:
        """Get the semantic score weight."""
        return self._semantic_weight

    @property
    def rrf_k(self) -> int:
        """Get the RRF k parameter."""
        return self._rrf_k

    def fuse(
        self,
        full_text_scores: dict[str, float],
        semantic_scores: dict[str, float],
    ) -> dict[str, float]:
        """Fuse lexical and semantic scores using the configured strategy.

        Args:
            full_text_scores: Dictionary of {doc_id: score} from full-text matching
            semantic_scores: Dictionary of {doc_id: score} from vector similarity

        Returns:
            Dictionary of {doc_id: fused_score}
        """
        if self._strategy == "linear":
            return self._linear_fusion(full_text_scores, semantic_scores)
        return self._rrf_fusion(full_text_scores, semantic_scores)

    def rank(
        self,
        full_text_scores: dict[str, float],
        semantic_scores: dict[str, float],
        limit: int | None = None,
    ) -> list[tuple[str, float]]:
        """Fuse both signals and order by combined score.

        Returns:
            (doc_id, score) pairs, best first; at most ``limit`` when given
        """
        ranked = sorted(self.fuse(full_text_scores, semantic_scores).items(), key=_best_first)
        return ranked if limit is None else ranked[:limit]

    def min_max_normalize(self, scores: dict[str, float]) -> dict[str, float]:
        """Scale scores into [0, 1]; a flat distribution maps to 1.0."""
        if not scores:
            return {}

        low = min(scores.values())
        spread = max(scores.values()) - low
        if spread == 0:
            return dict.fromkeys(scores, 1.0)
        return {doc_id: (score - low) / spread for doc_id, score in scores.items()}

    def scores_to_ranking(self, scores: dict[str, float]) -> dict[str, int]:
        """Map each document to its 1-based position, best first."""
        ordered = sorted(scores.items(), key=_best_first)
        return {doc_id: position for position, (doc_id, _) in enumerate(ordered, start=1)}

    def _linear_fusion(
        self,
        full_text_scores: dict[str, float],
        semantic_scores: dict[str, float],
    ) -> dict[str, float]:
        lexical = self.min_max_normalize(full_text_scores)
        return {
            doc_id: self._full_text_weight * lexical.get(doc_id, 0.0)
            + self._semantic_weight * semantic_scores.get(doc_id, 0.0)
            for doc_id in set(full_text_scores) | set(semantic_scores)
        }

    def _rrf_fusion(
        self,
        full_text_scores: dict[str, float],
        semantic_scores: dict[str, float],
    ) -> dict[str, float]:
        sides = (
            (self._full_text_weight, self.scores_to_ranking(full_text_scores)),
            (self._semantic_weight, self.scores_to_ranking(semantic_scores)),
        )
        fused: dict[str, float] = {}
        for weight, positions in sides:
            for doc_id, position in positions.items():
                fused[doc_id] = fused.get(doc_id, 0.0) + weight / (self._rrf_k + position)
        return fused


def id_sort_key(doc_id: str) -> tuple[int, int, str]:
    """Order IDs the way Postgres orders ``bigint`` keys.

    All-digit IDs compare numerically and sort before any other ID, which
    compare as text.
    """
    if doc_id.isascii() and doc_id.isdigit():
        return (0, int(doc_id), "")
    return (1, 0, doc_id)


def _best_first(item: tuple[str, float]) -> tuple[float, tuple[int, int, str]]:
    doc_id, score = item
    return (-score, id_sort_key(doc_id))
