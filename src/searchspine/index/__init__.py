"""Index side of search-spine: projection, lifecycle, writes, search and reconciliation."""

from searchspine.index.lifecycle import IndexLifecycleManager
from searchspine.index.projection import ProjectionConfig, ProjectionRule
from searchspine.index.query import SearchRequest, compile_query
from searchspine.index.reconcile import Reconciler
from searchspine.index.requests import DocumentRequest, build_request
from searchspine.index.search import SearchExecutor, SearchHit, SearchResult
from searchspine.index.writer import DocumentRemover, DocumentWriter

__all__ = [
    "IndexLifecycleManager",
    "ProjectionConfig",
    "ProjectionRule",
    "SearchRequest",
    "compile_query",
    "Reconciler",
    "DocumentRequest",
    "build_request",
    "SearchExecutor",
    "SearchHit",
    "SearchResult",
    "DocumentRemover",
    "DocumentWriter",
]
