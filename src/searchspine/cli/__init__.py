"""Command-line interface for search-spine."""
