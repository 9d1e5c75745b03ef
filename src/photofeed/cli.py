"""Command line interface for PhotoFeed."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from photofeed.admin import clear_index, get_index_data, set_folder
from photofeed.config import AppConfig, PropertyStore
from photofeed.errors import ConfigurationError, LockUnavailableError
from photofeed.index.lock import IndexLock, lock_path_for
from photofeed.index.reconciler import STATUS_OK, build_reconciler
from photofeed.index.store import IndexStore
from photofeed.storage.local import LocalFolderBackend
from photofeed.triggers import PeriodicTrigger

console = Console()
app = typer.Typer(help="PhotoFeed - bounded JSON feed of uploaded images")

INDEX_OPTION = typer.Option(None, "--index", help="Index JSON document path")
STORAGE_OPTION = typer.Option(None, "--storage", help="Storage root directory")
SETTINGS_OPTION = typer.Option(None, "--settings", help="Settings JSON path")
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Verbose logging")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _config(
    index: Optional[Path],
    storage: Optional[Path] = None,
    settings: Optional[Path] = None,
    **extra: object,
) -> AppConfig:
    return AppConfig.from_env(
        index_path=index,
        storage_root=storage,
        settings_path=settings,
        **extra,
    )


@app.command()
def reconcile(
    index: Optional[Path] = INDEX_OPTION,
    storage: Optional[Path] = STORAGE_OPTION,
    settings: Optional[Path] = SETTINGS_OPTION,
    max_items: Optional[int] = typer.Option(None, "--max-items", help="Index capacity"),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Run one reconciliation pass."""
    _setup_logging(verbose)
    config = _config(index, storage, settings, max_index_items=max_items)
    backend = LocalFolderBackend(config.resolve_storage_root(Path.cwd()))
    properties = PropertyStore(config.resolve_settings_path(Path.cwd()))
    reconciler = build_reconciler(config, backend, properties)

    stats = reconciler.run_pass("manual")
    if stats.status != STATUS_OK:
        console.print(f"[red]Reconciliation {stats.status}: {stats.reason}[/red]")
        raise typer.Exit(code=1)

    console.print(
        f"Scanned: {stats.scanned}, new: {stats.discovered}, dropped: {stats.dropped}, "
        f"grant failures: {stats.grant_failures}, metadata fallbacks: {stats.metadata_fallbacks}"
    )
    if not stats.persisted:
        console.print("[yellow]Index unchanged.[/yellow]")


@app.command("set-folder")
def set_folder_command(
    folder: str = typer.Argument(..., help="Folder reference to scan"),
    index: Optional[Path] = INDEX_OPTION,
    storage: Optional[Path] = STORAGE_OPTION,
    settings: Optional[Path] = SETTINGS_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Configure the storage folder to scan."""
    _setup_logging(verbose)
    config = _config(index, storage, settings)
    properties = PropertyStore(config.resolve_settings_path(Path.cwd()))
    try:
        set_folder(properties, folder)
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc
    console.print(f"Folder set to [bold]{folder.strip()}[/bold]")


@app.command()
def clear(
    index: Optional[Path] = INDEX_OPTION,
    storage: Optional[Path] = STORAGE_OPTION,
    settings: Optional[Path] = SETTINGS_OPTION,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Delete the persisted index so it is rebuilt on the next pass."""
    _setup_logging(verbose)
    config = _config(index, storage, settings)
    store = IndexStore(config.resolve_index_path(Path.cwd()))
    if not store.exists():
        console.print("[yellow]Index not found, nothing to clear.[/yellow]")
        return
    if not yes:
        typer.confirm(f"Delete {store.path}?", abort=True)
    lock = IndexLock(
        lock_path_for(store.path),
        timeout=config.lock_timeout,
        stale_after=config.lock_stale_after,
    )
    try:
        clear_index(store, lock)
    except LockUnavailableError as exc:
        console.print(f"[red]Index is busy: {exc}[/red]")
        raise typer.Exit(code=1) from exc
    console.print(f"Removed {store.path}.")


@app.command()
def show(
    index: Optional[Path] = INDEX_OPTION,
    storage: Optional[Path] = STORAGE_OPTION,
    settings: Optional[Path] = SETTINGS_OPTION,
    limit: int = typer.Option(20, help="Number of entries to display"),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Print the newest index entries."""
    _setup_logging(verbose)
    config = _config(index, storage, settings)
    entries = get_index_data(IndexStore(config.resolve_index_path(Path.cwd())))
    if not entries:
        console.print("[yellow]Index is empty.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID")
    table.add_column("Type")
    table.add_column("Size")
    table.add_column("Created")

    for entry in entries[:limit]:
        size = f"{entry.width}x{entry.height}" if entry.width and entry.height else "-"
        table.add_row(entry.id, entry.mime_type, size, entry.created)

    console.print(table)
    console.print(f"{len(entries)} entries in index.")


@app.command()
def watch(
    index: Optional[Path] = INDEX_OPTION,
    storage: Optional[Path] = STORAGE_OPTION,
    settings: Optional[Path] = SETTINGS_OPTION,
    interval: Optional[float] = typer.Option(None, help="Seconds between passes"),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Reconcile periodically until interrupted."""
    _setup_logging(verbose)
    config = _config(index, storage, settings, sync_interval=interval)
    if config.sync_interval <= 0:
        raise typer.BadParameter("interval must be positive")
    backend = LocalFolderBackend(config.resolve_storage_root(Path.cwd()))
    properties = PropertyStore(config.resolve_settings_path(Path.cwd()))
    trigger = PeriodicTrigger(build_reconciler(config, backend, properties), config.sync_interval)

    console.print(f"Reconciling every {config.sync_interval:.0f}s, press Ctrl+C to stop.")
    try:
        trigger.run_forever()
    except KeyboardInterrupt:
        trigger.stop()
        console.print("Stopped.")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
    index: Optional[Path] = INDEX_OPTION,
    storage: Optional[Path] = STORAGE_OPTION,
    settings: Optional[Path] = SETTINGS_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Start the web interface."""
    _setup_logging(verbose)
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - depends on extras
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    from photofeed.web import deps
    from photofeed.web.app import app as web_app

    config = _config(index, storage, settings)
    deps.configure(config)

    console.print(
        f"Starting web interface on http://{host}:{port} (index: {config.resolve_index_path()})"
    )
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="debug" if verbose else "info",
    )
