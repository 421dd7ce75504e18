"""CLI for tokenvault: verify / status / clear commands."""

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from tokenvault.core.config import AppSettings, ObservabilityConfig, PersistenceConfig
from tokenvault.core.startup_checks import validate_settings
from tokenvault.exceptions import PersistenceError, ValidationFailure
from tokenvault.hooks.logging_config import setup_logging
from tokenvault.persistence.factory import create_persistence
from tokenvault.persistence.file_backend import FilePersistence

app = typer.Typer(name="tokenvault", help="Inspect and manage persisted token caches")
console = Console()


def _build_settings(
    backend: Optional[str],
    cache_path: Optional[Path],
    service: Optional[str],
    account: Optional[str],
    verbose: bool,
    verify: bool,
) -> AppSettings:
    """Build settings, overriding env defaults with CLI flags."""
    overrides: dict = {"verify_on_startup": verify}
    if backend:
        overrides["backend"] = backend
    if cache_path:
        overrides["cache_path"] = cache_path
    if service:
        overrides["service_name"] = service
    if account:
        overrides["account_name"] = account

    settings = AppSettings(
        persistence=PersistenceConfig(**overrides),
        observability=ObservabilityConfig(log_level="DEBUG" if verbose else "WARNING"),
    )
    try:
        validate_settings(settings)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
    setup_logging(settings.observability)
    return settings


BackendOpt = typer.Option(None, "--backend", help="'file' or 'keyring'")
CachePathOpt = typer.Option(None, "--cache-path", help="Cache file (shadow file for keyring)")
ServiceOpt = typer.Option(None, "--service", help="Keyring service name")
AccountOpt = typer.Option(None, "--account", help="Keyring account name")
VerboseOpt = typer.Option(False, "--verbose", "-v")


@app.command()
def verify(
    backend: Optional[str] = BackendOpt,
    cache_path: Optional[Path] = CachePathOpt,
    service: Optional[str] = ServiceOpt,
    account: Optional[str] = AccountOpt,
    verbose: bool = VerboseOpt,
) -> None:
    """Check that the configured backend works on this host."""
    settings = _build_settings(backend, cache_path, service, account, verbose, verify=True)
    try:
        persistence = asyncio.run(create_persistence(settings))
    except ValidationFailure as e:
        console.print(f"[red]Validation failed:[/red] {e.message}")
        raise typer.Exit(code=1)
    except PersistenceError as e:
        console.print(f"[red]{e.kind.value}:[/red] {e.message}")
        raise typer.Exit(code=1)
    console.print(f"[green]OK[/green] {persistence.identity.describe()}")


@app.command()
def status(
    backend: Optional[str] = BackendOpt,
    cache_path: Optional[Path] = CachePathOpt,
    service: Optional[str] = ServiceOpt,
    account: Optional[str] = AccountOpt,
    verbose: bool = VerboseOpt,
) -> None:
    """Show where the cache lives and whether anything is stored. Never prints contents."""
    settings = _build_settings(backend, cache_path, service, account, verbose, verify=False)

    async def _status() -> tuple[str, Optional[str], Optional[float]]:
        persistence = await create_persistence(settings)
        contents = await persistence.load()
        modified = FilePersistence(persistence.location).last_modified()
        return persistence.identity.describe(), contents, modified

    try:
        identity, contents, modified = asyncio.run(_status())
    except PersistenceError as e:
        console.print(f"[red]{e.kind.value}:[/red] {e.message}")
        raise typer.Exit(code=1)

    table = Table(title="Token cache")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Backend", settings.persistence.backend)
    table.add_row("Identity", identity)
    table.add_row("Stored", "yes" if contents is not None else "no")
    table.add_row("Length", str(len(contents)) if contents is not None else "-")
    table.add_row(
        "Last modified",
        datetime.fromtimestamp(modified).isoformat(timespec="seconds") if modified else "-",
    )
    console.print(table)


@app.command()
def clear(
    backend: Optional[str] = BackendOpt,
    cache_path: Optional[Path] = CachePathOpt,
    service: Optional[str] = ServiceOpt,
    account: Optional[str] = AccountOpt,
    verbose: bool = VerboseOpt,
) -> None:
    """Delete the persisted cache."""
    settings = _build_settings(backend, cache_path, service, account, verbose, verify=False)

    async def _clear() -> bool:
        persistence = await create_persistence(settings)
        return await persistence.delete()

    try:
        removed = asyncio.run(_clear())
    except PersistenceError as e:
        console.print(f"[red]{e.kind.value}:[/red] {e.message}")
        raise typer.Exit(code=1)
    console.print("Removed persisted cache." if removed else "Nothing to remove.")


if __name__ == "__main__":
    app()
