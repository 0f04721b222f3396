"""
Search module for hybrid-search-service.

Provides the hybrid search orchestrator, the ranked corpus stores it calls,
and the weighted score fusion used by the in-memory store.
"""

from __future__ import annotations

from src.search.corpus import CorpusRecord, InMemoryCorpusStore, SupabaseCorpusStore
from src.search.hybrid import HybridSearchResult, HybridSearchService
from src.search.ranker import ResultRanker

__all__ = [
    "CorpusRecord",
    "HybridSearchResult",
    "HybridSearchService",
    "InMemoryCorpusStore",
    "ResultRanker",
    "SupabaseCorpusStore",
]
