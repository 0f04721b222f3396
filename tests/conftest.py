"""
Pytest configuration and fixtures for hybrid-search-service tests.
"""

import pytest

from src.core.config import Settings
from src.search.corpus import CorpusRecord, InMemoryCorpusStore


@pytest.fixture
def settings() -> Settings:
    """Provide test settings that ignore any local .env file."""
    return Settings(
        _env_file=None,
        openai_api_key="sk-test",
        supabase_url="https://farm-project.supabase.co",
        supabase_service_role_key="service-role-test",
        embedding_dimension=4,
    )


@pytest.fixture
def query_embedding() -> list[float]:
    """Query vector used with ``agronomy_corpus``."""
    return [1.0, 0.0, 0.0, 0.0]


@pytest.fixture
def agronomy_records() -> list[CorpusRecord]:
    """Five chunks: two mention calibration, three sit close to the query vector."""
    return [
        CorpusRecord(
            id="c1",
            content="Calibration of the soil probe before planting",
            embedding=[0.0, 0.0, 1.0, 0.0],
            metadata={"document": "probe-manual.pdf"},
        ),
        CorpusRecord(
            id="c2",
            content="Sensor calibration checklist",
            embedding=[0.0, 0.0, 0.0, 1.0],
            metadata={"document": "checklists.pdf"},
        ),
        CorpusRecord(
            id="c3",
            content="Readings drift when probes dry out",
            embedding=[0.95, 0.05, 0.0, 0.0],
        ),
        CorpusRecord(
            id="c4",
            content="Irrigation scheduling for wheat fields",
            embedding=[0.8, 0.2, 0.0, 0.0],
        ),
        CorpusRecord(
            id="c5",
            content="Tractor maintenance log",
            embedding=[0.6, 0.4, 0.0, 0.0],
        ),
    ]


@pytest.fixture
def agronomy_corpus(agronomy_records: list[CorpusRecord]) -> InMemoryCorpusStore:
    """In-memory corpus store seeded with ``agronomy_records``."""
    return InMemoryCorpusStore(agronomy_records)
