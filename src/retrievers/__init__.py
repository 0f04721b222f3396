"""
LangChain-compatible retrievers for hybrid-search-service.

- HybridSearchRetriever: BaseRetriever adapter over HybridSearchService
- RetrieverError: raised when the underlying search fails
"""

from src.retrievers.hybrid_retriever import HybridSearchRetriever, RetrieverError

__all__ = [
    "HybridSearchRetriever",
    "RetrieverError",
]
