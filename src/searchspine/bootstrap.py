"""Composition root: settings and capabilities in, a wired service out."""

from __future__ import annotations

from functools import lru_cache

from searchspine.core.logging import configure_logging
from searchspine.core.protocols import CanonicalStore, SearchEngine
from searchspine.core.settings import SearchSpineSettings
from searchspine.framework.handlers import SearchService


@lru_cache(maxsize=1)
def get_settings() -> SearchSpineSettings:
    """Cached settings, loaded once per process."""
    return SearchSpineSettings()


def build_service(
    settings: SearchSpineSettings | None = None,
    *,
    engine: SearchEngine | None = None,
    store: CanonicalStore | None = None,
) -> SearchService:
    """Build a :class:`SearchService` from settings.

    Capabilities that are not passed in are created from settings: an
    Elasticsearch client for the engine and a SQLAlchemy database for the
    canonical store.
    """
    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_format=settings.json_logs)

    if engine is None:
        from searchspine.adapters.elasticsearch import ElasticsearchEngine

        engine = ElasticsearchEngine.from_settings(settings)
    if store is None:
        from searchspine.adapters.sql_store import SqlCanonicalStore

        store = SqlCanonicalStore.from_url(settings.database_url)

    return SearchService(settings, engine, store)
