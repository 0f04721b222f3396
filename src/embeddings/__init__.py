"""
Embedding provider module for hybrid-search-service.

Turns query text into the dense vector the ranking procedure compares
against the stored corpus embeddings.
"""

from __future__ import annotations

from src.embeddings.openai_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
