"""
Shared pytest fixtures for search-spine tests.

This module provides:
- Settings with two configured entity types
- In-memory engine and canonical store doubles
- A service built from them, initialized or not
- Log context cleanup between tests
"""

import os

import pytest
import pytest_asyncio
import structlog

from searchspine.adapters.memory import InMemoryCanonicalStore, InMemorySearchEngine
from searchspine.core.logging import clear_context
from searchspine.core.settings import SearchSpineSettings
from searchspine.framework.handlers import SearchService

INDEX = "test-records"

USER = {"base": "sys", "name": "user"}
TICKET = {"zone": "eu", "base": "ops", "name": "ticket"}


@pytest.fixture(autouse=True)
def _clean_log_context():
    clear_context()
    yield
    clear_context()
    structlog.reset_defaults()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep SEARCH_* variables and stray .env files out of tests."""
    for key in list(os.environ):
        if key.startswith("SEARCH_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def settings():
    return SearchSpineSettings(
        index=INDEX,
        ping_timeout=0.5,
        database_url="sqlite://",
        entities=[
            {
                **USER,
                "indexed_attributes": {
                    "email": {"type": "keyword"},
                    "display_name": True,
                    "password": False,
                },
            },
            {**TICKET, "indexedAttributes": ["title", "body"]},
        ],
    )


@pytest.fixture
def engine():
    return InMemorySearchEngine()


@pytest.fixture
def store():
    return InMemoryCanonicalStore()


@pytest.fixture
def service(settings, engine, store):
    return SearchService(settings, engine, store)


@pytest_asyncio.fixture
async def ready_service(service):
    await service.dispatch("init")
    return service
