"""Concrete capability adapters.

The Elasticsearch and SQL adapters import their client libraries; import
them from their modules. The in-memory doubles are re-exported here.
"""

from searchspine.adapters.memory import InMemoryCanonicalStore, InMemorySearchEngine

__all__ = ["InMemoryCanonicalStore", "InMemorySearchEngine"]
