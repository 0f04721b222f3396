"""
Dependency injection for API services.

Provides the service container and builds it from settings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from src.core.config import Settings
from src.embeddings.openai_provider import OpenAIEmbeddingProvider
from src.search.corpus import InMemoryCorpusStore, SupabaseCorpusStore
from src.search.hybrid import (
    DEFAULT_EMBEDDING_DIMENSION,
    EmbeddingProviderProtocol,
    HybridSearchService,
    RankedCorpusStoreProtocol,
)

logger = logging.getLogger(__name__)


@dataclass
class ServiceConfig:
    """Configuration for services."""

    embedding_dimension: int = DEFAULT_EMBEDDING_DIMENSION
    corpus_backend: str = "supabase"
    version: str = "1.0.0"


@dataclass
class ServiceContainer:
    """Container for all service dependencies.

    The embedding provider and corpus store hold the process-wide
    clients; ``aclose()`` releases them at application shutdown.
    """

    config: ServiceConfig = field(default_factory=ServiceConfig)
    embedding_provider: EmbeddingProviderProtocol | None = None
    corpus_store: RankedCorpusStoreProtocol | None = None
    search_service: HybridSearchService | None = None

    def __post_init__(self) -> None:
        if (
            self.search_service is None
            and self.embedding_provider is not None
            and self.corpus_store is not None
        ):
            self.search_service = HybridSearchService(
                embedding_provider=self.embedding_provider,
                corpus_store=self.corpus_store,
                embedding_dimension=self.config.embedding_dimension,
            )

    async def aclose(self) -> None:
        """Close the collaborators' clients, if they own any."""
        for collaborator in (self.embedding_provider, self.corpus_store):
            closer: Any = getattr(collaborator, "aclose", None)
            if closer is None:
                continue
            try:
                await closer()
            except Exception:
                logger.exception("Failed to close %s", type(collaborator).__name__)


def build_corpus_store(settings: Settings) -> RankedCorpusStoreProtocol:
    """Create the corpus store selected by ``settings.corpus_backend``."""
    if settings.corpus_backend == "memory":
        if settings.corpus_seed_path:
            return InMemoryCorpusStore.from_jsonl(
                settings.corpus_seed_path,
                strategy=settings.fusion_strategy,
                rrf_k=settings.rrf_k,
            )
        logger.warning("In-memory corpus backend selected without a seed file; corpus is empty")
        return InMemoryCorpusStore(strategy=settings.fusion_strategy, rrf_k=settings.rrf_k)

    return SupabaseCorpusStore(
        url=settings.supabase_url,
        service_role_key=settings.supabase_service_role_key,
        function_name=settings.ranking_function,
        timeout=settings.upstream_timeout,
    )


def build_services(settings: Settings) -> ServiceContainer:
    """Create the production service container from settings."""
    embedding_provider = OpenAIEmbeddingProvider(
        api_key=settings.openai_api_key,
        model=settings.embedding_model,
        base_url=settings.openai_base_url,
        timeout=settings.upstream_timeout,
    )
    return ServiceContainer(
        config=ServiceConfig(
            embedding_dimension=settings.embedding_dimension,
            corpus_backend=settings.corpus_backend,
        ),
        embedding_provider=embedding_provider,
        corpus_store=build_corpus_store(settings),
    )
