"""
LangChain retriever over the hybrid search service.

Exposes the same full-text + semantic ranking the HTTP endpoint serves as a
LangChain BaseRetriever, so it can be used inside LCEL chains.
"""

from __future__ import annotations

import asyncio
from typing import Any

from langchain_core.callbacks import (
    AsyncCallbackManagerForRetrieverRun,
    CallbackManagerForRetrieverRun,
)
from langchain_core.documents import Document
from langchain_core.retrievers import BaseRetriever
from pydantic import Field

from src.search.exceptions import HybridSearchError

_CONTENT_KEY = "content"


class RetrieverError(Exception):
    """Raised when the hybrid search behind a retriever fails."""


class HybridSearchRetriever(BaseRetriever):
    """LangChain retriever backed by HybridSearchService.

    Attributes:
        k: Number of documents to return (default: 4)
        full_text_weight: Multiplier for the lexical signal (default: 1.0)
        semantic_weight: Multiplier for the vector signal (default: 1.0)

    Usage:
        retriever = HybridSearchRetriever(service=search_service, k=5)
        docs = await retriever.ainvoke("soil moisture sensor calibration")

        # In LCEL chain
        chain = retriever | prompt | llm
    """

    k: int = Field(default=4, ge=1, description="Number of documents to return")
    full_text_weight: float = Field(default=1.0, ge=0.0, description="Weight for full-text score")
    semantic_weight: float = Field(default=1.0, ge=0.0, description="Weight for semantic score")

    # Private attributes (not Pydantic fields)
    _service: Any = None

    def __init__(
        self,
        service: Any,
        k: int = 4,
        full_text_weight: float = 1.0,
        semantic_weight: float = 1.0,
        **kwargs: Any,
    ) -> None:
        """Initialize retriever with a hybrid search service.

        Args:
            service: HybridSearchService (or any object with a matching ``search``)
            k: Number of documents to return
            full_text_weight: Multiplier for the lexical signal
            semantic_weight: Multiplier for the vector signal
            **kwargs: Additional arguments for BaseRetriever
        """
        super().__init__(
            k=k,
            full_text_weight=full_text_weight,
            semantic_weight=semantic_weight,
            **kwargs,
        )
        self._service = service

    def _get_relevant_documents(
        self,
        query: str,
        *,
        run_manager: CallbackManagerForRetrieverRun | None = None,
    ) -> list[Document]:
        """Retrieve documents synchronously.

        Raises:
            RetrieverError: If the search fails
        """
        _ = run_manager
        if not query or not query.strip():
            return []
        return asyncio.run(self._aget_relevant_documents(query))

    async def _aget_relevant_documents(
        self,
        query: str,
        *,
        run_manager: AsyncCallbackManagerForRetrieverRun | None = None,
    ) -> list[Document]:
        """Retrieve documents asynchronously.

        Raises:
            RetrieverError: If the search fails
        """
        _ = run_manager
        if not query or not query.strip():
            return []

        try:
            result = await self._service.search(
                query,
                match_count=self.k,
                full_text_weight=self.full_text_weight,
                semantic_weight=self.semantic_weight,
            )
        except HybridSearchError as e:
            raise RetrieverError(f"Hybrid search failed: {e}") from e

        return [self._to_document(row) for row in result.results]

    @staticmethod
    def _to_document(row: dict[str, Any]) -> Document:
        metadata = {key: value for key, value in row.items() if key != _CONTENT_KEY}
        return Document(page_content=str(row.get(_CONTENT_KEY, "")), metadata=metadata)
