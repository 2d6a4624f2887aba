"""search-spine: a search index kept consistent with a canonical record store.

Writes go to the canonical store first and are projected into the search
index afterwards. Searches run against the index and are rehydrated from
the canonical store, so callers never see a stale index payload.
"""

__version__ = "0.1.0"
