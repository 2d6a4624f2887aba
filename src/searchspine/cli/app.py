"""
Root Typer application for the search-spine CLI.

Every command builds a service from settings, runs ``init`` against the
engine and then dispatches one operation through the command router.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from typer import Typer

from searchspine import __version__
from searchspine.cli.utils import (
    console,
    err_console,
    load_settings,
    output_hits,
    output_result,
    run_operation,
)
from searchspine.core.errors import ConfigError

app = Typer(
    name="searchspine",
    help="search-spine: a search index reconciled against a canonical store.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
index_app = Typer(no_args_is_help=True)
record_app = Typer(no_args_is_help=True)
config_app = Typer(no_args_is_help=True)

app.add_typer(index_app, name="index", help="Search index lifecycle.")
app.add_typer(record_app, name="record", help="Canonical records.")
app.add_typer(config_app, name="config", help="Configuration.")

ConfigOption = typer.Option(None, "--config", "-c", help="JSON settings file.")
JsonOption = typer.Option(False, "--json")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"searchspine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """search-spine CLI: initialize the index, search and inspect records."""


@app.command("init")
def init(
    config: Path | None = ConfigOption,
    json_out: bool = JsonOption,
) -> None:
    """Ping the engine, ensure the index and apply every mapping."""
    summary = run_operation("init", config=config)
    output_result(summary, as_json=json_out, title="Initialized")


@app.command("search")
def search(
    text: str | None = typer.Argument(None, help="Free text; every term must match."),
    entity_type: str | None = typer.Option(None, "--type", "-t", help="Restrict to one entity type."),
    size: int | None = typer.Option(None, "--size", "-n", min=0),
    offset: int | None = typer.Option(None, "--from", min=0),
    query: str | None = typer.Option(None, "--query", "-q", help="Structured search body as JSON."),
    config: Path | None = ConfigOption,
    json_out: bool = JsonOption,
) -> None:
    """Search the index and print canonical records."""
    args: dict = {"type": entity_type, "size": size, "from": offset}
    if query is not None:
        try:
            args["query"] = json.loads(query)
        except json.JSONDecodeError as e:
            raise typer.BadParameter(f"not valid JSON: {e}", param_hint="--query") from e
    elif text:
        args["query_text"] = text

    result = run_operation("record.search", args, config=config)
    if json_out:
        output_result(result, as_json=True)
        return
    payload = result.to_dict()
    output_hits(payload["hits"], total=payload["total"], title="Search")


# ── index ────────────────────────────────────────────────────────────────


@index_app.command("create")
def index_create(
    index: str | None = typer.Argument(None, help="Index name; defaults to the configured one."),
    config: Path | None = ConfigOption,
    json_out: bool = JsonOption,
) -> None:
    """Create the index if it does not exist."""
    output_result(run_operation("index.create", {"index": index}, config=config), as_json=json_out)


@index_app.command("exists")
def index_exists(
    index: str | None = typer.Argument(None),
    config: Path | None = ConfigOption,
    json_out: bool = JsonOption,
) -> None:
    """Report whether the index exists."""
    output_result(run_operation("index.exists", {"index": index}, config=config), as_json=json_out)


@index_app.command("delete")
def index_delete(
    index: str | None = typer.Argument(None),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
    config: Path | None = ConfigOption,
    json_out: bool = JsonOption,
) -> None:
    """Delete the index."""
    if not yes:
        typer.confirm(f"Delete index {index or 'configured index'}?", abort=True)
    output_result(run_operation("index.delete", {"index": index}, config=config), as_json=json_out)


# ── record ───────────────────────────────────────────────────────────────


@record_app.command("load")
def record_load(
    entity_type: str = typer.Argument(..., help="Entity type key, e.g. sys_user."),
    entity_id: str = typer.Argument(...),
    config: Path | None = ConfigOption,
    json_out: bool = JsonOption,
) -> None:
    """Load one indexed document by type and id."""
    document = run_operation("record.load", {"type": entity_type, "id": entity_id}, config=config)
    output_result(document, as_json=json_out, title=f"{entity_type}/{entity_id}")
    if document is None:
        raise typer.Exit(code=1)


# ── config ───────────────────────────────────────────────────────────────


@config_app.command("show")
def config_show(
    config: Path | None = ConfigOption,
) -> None:
    """Print the effective settings."""
    try:
        settings = load_settings(config)
    except ConfigError as e:
        err_console.print(f"[bold red]Error[/bold red] (CONFIG): {e.message}")
        raise typer.Exit(code=1) from e
    console.print_json(settings.model_dump_json())
