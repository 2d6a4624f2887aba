"""Operation routing and handlers."""

from searchspine.framework.handlers import SearchService
from searchspine.framework.router import CommandRouter, RouteKey

__all__ = ["CommandRouter", "RouteKey", "SearchService"]
