"""
CLI for the resource cache.

Commands:
    stitch fetch RESOURCE - Fetch a resource through the cache and print it
    stitch config - Show current configuration
    stitch version - Print version
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Annotated, Any, Optional

import orjson
import typer
from rich.console import Console
from pydantic import ValidationError
from rich.markup import escape
from rich.table import Table

from stitch import __version__
from stitch.auth.credentials import (
    TOKEN_KEY,
    USER_KEY,
    CredentialStorage,
    FileCredentialStorage,
    MemoryCredentialStorage,
)
from stitch.auth.session import Session
from stitch.config import Settings, clear_settings_cache, get_settings
from stitch.context import DataContext
from stitch.exceptions import ConfigurationError, CredentialError, UnknownResourceError
from stitch.logging import setup_logging
from stitch.types import FetchResult, Resource

app = typer.Typer(
    name="stitch",
    help="Smart Stitch resource cache - fetch backend resources through the cache",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

MAX_TABLE_ROWS = 50


def _load_settings() -> Settings:
    """Load settings, reporting validation failures as ConfigurationError."""
    clear_settings_cache()
    try:
        return get_settings()
    except ValidationError as e:
        fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        raise ConfigurationError("Configuration is invalid", {"fields": fields}) from e


def _build_storage(
    settings: Settings, token: str | None, role: str | None = None
) -> CredentialStorage:
    token = token or settings.API_TOKEN
    if token:
        return MemoryCredentialStorage({TOKEN_KEY: token})

    storage = FileCredentialStorage(settings.credentials_path)
    if not role:
        return storage

    # A role override only lives for this command; the file is left as is.
    values: dict[str, str] = {}
    for key in (TOKEN_KEY, USER_KEY):
        value = storage.get(key)
        if value is not None:
            values[key] = value
    return MemoryCredentialStorage(values)


def _render(resource: Resource, result: FetchResult) -> None:
    data = result.data
    rows = data if isinstance(data, list) else None
    if rows and all(isinstance(row, dict) for row in rows):
        columns = [k for k, v in rows[0].items() if not isinstance(v, (dict, list))]
        table = Table(title=f"{resource.value} ({len(rows)})")
        for column in columns:
            table.add_column(column)
        for row in rows[:MAX_TABLE_ROWS]:
            table.add_row(*("" if row.get(c) is None else str(row.get(c)) for c in columns))
        console.print(table)
        if len(rows) > MAX_TABLE_ROWS:
            console.print(f"[dim]... {len(rows) - MAX_TABLE_ROWS} more rows[/dim]")
        return
    console.print_json(orjson.dumps(data, default=str).decode())


async def _fetch(
    settings: Settings,
    resource: Resource,
    token: str | None,
    role: str | None,
    force: bool,
    args: dict[str, Any],
    search: str | None = None,
) -> FetchResult:
    session = Session(_build_storage(settings, token, role))
    session.restore()
    if role:
        session.login({**(session.user or {}), "role": role})

    context = DataContext.create(session, settings=settings)
    try:
        result = await context.orchestrator.fetch(resource, force=force, **args)
        if search and result.success:
            context.set_search_query(search)
            result = replace(result, data=context.search.apply(resource, result.data))
        return result
    finally:
        await context.aclose()


@app.command()
def fetch(
    resource: Annotated[str, typer.Argument(help="Resource name (e.g., workers, myOrders)")],
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Ignore cached data")
    ] = False,
    token: Annotated[
        Optional[str], typer.Option("--token", "-t", help="Bearer token to use")
    ] = None,
    role: Annotated[
        Optional[str], typer.Option("--role", help="Session role (for profile)")
    ] = None,
    query: Annotated[
        Optional[str], typer.Option("--query", "-q", help="Search query (allShops)")
    ] = None,
    limit: Annotated[
        Optional[int], typer.Option("--limit", "-l", help="Row limit (recentActivities)")
    ] = None,
    customer_id: Annotated[
        Optional[str],
        typer.Option("--customer-id", help="Customer ID (measurementProfiles)"),
    ] = None,
    search: Annotated[
        Optional[str],
        typer.Option("--filter", help="Only show matching rows (orders, customers, workers)"),
    ] = None,
) -> None:
    """Fetch a resource through the cache and print the normalized payload."""
    try:
        settings = _load_settings()
    except ConfigurationError as e:
        error_console.print(
            f"[red]Error:[/red] {escape(str(e))}. Run 'stitch config' for details."
        )
        raise typer.Exit(1)

    try:
        target = Resource.parse(resource)
    except UnknownResourceError as e:
        valid = ", ".join(r.value for r in Resource)
        error_console.print(f"[red]Error:[/red] {e.message}. Valid resources: {valid}")
        raise typer.Exit(2)

    setup_logging(settings.LOG_LEVEL, log_file=settings.LOG_FILE)

    args: dict[str, Any] = {}
    if query is not None:
        args["search_query"] = query
    if limit is not None:
        args["limit"] = limit
    if customer_id is not None:
        args["customer_id"] = customer_id

    try:
        result = asyncio.run(_fetch(settings, target, token, role, force, args, search))
    except CredentialError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not result.success:
        error_console.print(f"[red]Error:[/red] {result.error}")
        raise typer.Exit(1)

    _render(target, result)


@app.command()
def config() -> None:
    """Show current configuration (token redacted)."""
    try:
        settings = _load_settings()
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in settings.redacted_display().items():
        table.add_row(key, "[dim]not set[/dim]" if value is None else str(value))
    console.print(table)


@app.command()
def version() -> None:
    """Print version."""
    console.print(f"stitch {__version__}")


if __name__ == "__main__":
    app()
