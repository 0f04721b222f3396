"""
End-to-end tests for POST /v1/search/hybrid.

Each test wires real collaborators (the in-memory ranking store, or the
OpenAI and Supabase clients over httpx.MockTransport) behind the FastAPI
application, so only the network is simulated.
"""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.dependencies import ServiceConfig, ServiceContainer
from src.core.config import Settings
from src.embeddings.openai_provider import OpenAIEmbeddingProvider
from src.search.corpus import InMemoryCorpusStore, SupabaseCorpusStore
from tests.fakes import FakeEmbeddingProvider

SEARCH_URL = "/v1/search/hybrid"
QUERY = "soil moisture sensor calibration"


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def embedder(query_embedding: list[float]) -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider(vector=query_embedding)


@pytest.fixture
def rank_spy(agronomy_corpus: InMemoryCorpusStore) -> AsyncMock:
    """Record calls to the in-memory store while keeping its behaviour."""
    spy = AsyncMock(side_effect=agronomy_corpus.rank)
    agronomy_corpus.rank = spy  # type: ignore[method-assign]
    return spy


@pytest.fixture
def client(
    settings: Settings,
    embedder: FakeEmbeddingProvider,
    agronomy_corpus: InMemoryCorpusStore,
    rank_spy: AsyncMock,
) -> TestClient:
    services = ServiceContainer(
        config=ServiceConfig(embedding_dimension=4, corpus_backend="memory"),
        embedding_provider=embedder,
        corpus_store=agronomy_corpus,
    )
    return TestClient(create_app(settings=settings, services=services))


# =============================================================================
# Test: In-memory ranking store
# =============================================================================


class TestHybridSearchInMemory:
    """Full request path against the in-memory ranking store."""

    def test_calibration_query(
        self,
        client: TestClient,
        embedder: FakeEmbeddingProvider,
        rank_spy: AsyncMock,
        query_embedding: list[float],
    ) -> None:
        response = client.post(SEARCH_URL, json={"query": QUERY, "match_count": 3})

        assert response.status_code == 200
        body = response.json()
        assert body["query"] == QUERY
        assert body["match_count"] == 3
        assert [row["id"] for row in body["results"]] == ["c1", "c2", "c3"]

        assert embedder.calls == [(QUERY, 4)]
        rank_spy.assert_awaited_once_with(
            query_text=QUERY,
            query_embedding=query_embedding,
            match_count=3,
            full_text_weight=1.0,
            semantic_weight=1.0,
        )

    def test_row_carries_store_fields(self, client: TestClient) -> None:
        body = client.post(SEARCH_URL, json={"query": QUERY, "match_count": 3}).json()

        top = body["results"][0]
        assert top["content"] == "Calibration of the soil probe before planting"
        assert top["metadata"] == {"document": "probe-manual.pdf"}
        assert top["full_text_rank"] == 1
        assert top["score"] == pytest.approx(1 / 51 + 1 / 54)

    def test_semantic_only_weighting(self, client: TestClient) -> None:
        body = client.post(
            SEARCH_URL,
            json={"query": QUERY, "match_count": 3, "full_text_weight": 0},
        ).json()

        assert [row["id"] for row in body["results"]] == ["c3", "c4", "c5"]

    def test_full_text_only_weighting(self, client: TestClient) -> None:
        body = client.post(
            SEARCH_URL,
            json={"query": QUERY, "match_count": 2, "semantic_weight": 0},
        ).json()

        assert [row["id"] for row in body["results"]] == ["c1", "c2"]

    def test_repeated_request_is_stable(self, client: TestClient) -> None:
        payload = {"query": QUERY, "match_count": 5}

        first = client.post(SEARCH_URL, json=payload)
        second = client.post(SEARCH_URL, json=payload)

        assert first.content == second.content


# =============================================================================
# Test: OpenAI + Supabase over HTTP
# =============================================================================


class TestHybridSearchOverHTTP:
    """Full request path through the real httpx clients."""

    def test_embedding_then_rpc(self, settings: Settings) -> None:
        sent: list[httpx.Request] = []
        ranked_rows: list[dict[str, Any]] = [
            {
                "id": 7,
                "content": "Sensor calibration checklist",
                "metadata": {"document": "checklists.pdf"},
                "full_text_rank": 1,
                "semantic_rank": 2,
                "score": 0.0388,
            }
        ]

        def openai_handler(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            return httpx.Response(200, json={"data": [{"index": 0, "embedding": [1.0, 0.0, 0.0, 0.0]}]})

        def supabase_handler(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            return httpx.Response(200, json=ranked_rows)

        services = ServiceContainer(
            config=ServiceConfig(embedding_dimension=4),
            embedding_provider=OpenAIEmbeddingProvider(
                api_key=settings.openai_api_key,
                transport=httpx.MockTransport(openai_handler),
            ),
            corpus_store=SupabaseCorpusStore(
                url=settings.supabase_url,
                service_role_key=settings.supabase_service_role_key,
                transport=httpx.MockTransport(supabase_handler),
            ),
        )

        with TestClient(create_app(settings=settings, services=services)) as client:
            response = client.post(SEARCH_URL, json={"query": QUERY, "match_count": 1})

        assert response.status_code == 200
        assert response.json() == {"query": QUERY, "match_count": 1, "results": ranked_rows}

        assert [str(r.url) for r in sent] == [
            "https://api.openai.com/v1/embeddings",
            "https://farm-project.supabase.co/rest/v1/rpc/hybrid_search",
        ]
        assert json.loads(sent[1].content) == {
            "query_text": QUERY,
            "query_embedding": [1.0, 0.0, 0.0, 0.0],
            "match_count": 1,
            "full_text_weight": 1.0,
            "semantic_weight": 1.0,
        }

    def test_rpc_error_message_surfaces(self, settings: Settings) -> None:
        def openai_handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": [{"index": 0, "embedding": [1.0, 0.0, 0.0, 0.0]}]})

        def supabase_handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                404,
                json={
                    "code": "PGRST202",
                    "message": "Could not find the function public.hybrid_search",
                },
            )

        services = ServiceContainer(
            config=ServiceConfig(embedding_dimension=4),
            embedding_provider=OpenAIEmbeddingProvider(
                api_key="sk-test",
                transport=httpx.MockTransport(openai_handler),
            ),
            corpus_store=SupabaseCorpusStore(
                url="https://farm-project.supabase.co",
                service_role_key="service-role-test",
                transport=httpx.MockTransport(supabase_handler),
            ),
        )
        client = TestClient(create_app(settings=settings, services=services))

        response = client.post(SEARCH_URL, json={"query": QUERY})

        assert response.status_code == 500
        assert response.json() == {"error": "Could not find the function public.hybrid_search"}
