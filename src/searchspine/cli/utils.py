"""
CLI utility helpers: service construction, operation runner, output formatting.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from dataclasses import asdict
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from searchspine.bootstrap import build_service
from searchspine.core.errors import SearchSpineError
from searchspine.core.settings import SearchSpineSettings
from searchspine.framework.handlers import SearchService
from searchspine.framework.router import INIT_OPERATION

console = Console()
err_console = Console(stderr=True)


# ── Service helpers ──────────────────────────────────────────────────────


def load_settings(config: Path | None = None) -> SearchSpineSettings:
    """Settings from a JSON file when given, else from the environment."""
    if config is not None:
        return SearchSpineSettings.from_json_file(config)
    return SearchSpineSettings()


def make_service(config: Path | None = None) -> SearchService:
    """Build the service for one CLI invocation."""
    return build_service(load_settings(config))


async def _execute(
    service: SearchService,
    operation: str,
    args: Mapping[str, Any],
) -> Any:
    try:
        summary = await service.dispatch(INIT_OPERATION)
        if operation == INIT_OPERATION:
            return summary
        return await service.dispatch(operation, args)
    finally:
        await service.close()


def run_operation(
    operation: str,
    args: Mapping[str, Any] | None = None,
    *,
    config: Path | None = None,
) -> Any:
    """Initialize a service, dispatch one operation, and return its result.

    Errors are printed and turned into exit code 1.
    """
    try:
        service = make_service(config)
        return asyncio.run(_execute(service, operation, args or {}))
    except SearchSpineError as e:
        err_console.print(f"[bold red]Error[/bold red] ({e.category.value}): {e.message}")
        raise typer.Exit(code=1) from e


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert a result value, dataclass, pydantic model or dict to a plain dict."""
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def output_result(data: Any, *, as_json: bool = False, title: str = "") -> None:
    """Render an operation result to the terminal."""
    if as_json:
        payload = None if data is None else _to_dict(data)
        console.print_json(json.dumps(payload, default=str))
        return

    if data is None:
        console.print("[dim]Not found.[/dim]")
        return
    _print_dict(_to_dict(data), title=title)


def output_hits(hits: list[dict[str, Any]], *, total: int, title: str = "") -> None:
    """Render search hits as a table, one row per hit."""
    if not hits:
        console.print("[dim]No hits.[/dim]")
        return

    table = Table(title=title or None, show_lines=False, pad_edge=False)
    table.add_column("id", overflow="fold")
    table.add_column("score")
    table.add_column("record", overflow="fold")
    for hit in hits:
        score = "" if hit.get("score") is None else f"{hit['score']:.3f}"
        table.add_row(str(hit["id"]), score, json.dumps(hit["source"], default=str))
    console.print(table)
    console.print(f"\n[dim]{total} hit(s)[/dim]")


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
