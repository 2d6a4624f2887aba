"""HTTP surface for search-spine."""

from searchspine.api.app import create_app

__all__ = ["create_app"]
