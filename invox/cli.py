"""CLI entry point for Invox.

Imports invoice documents, runs batch extraction against Gemini models and
exports the structured results.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .catalog import ModelCatalog, ModelCatalogStore
from .core import (
    CredentialMissingError,
    CredentialProvider,
    InvoxConfig,
    InvoxError,
    PreferenceStore,
    get_config,
)
from .extraction import ALLOWED_EXTENSIONS
from .orchestration import BatchOrchestrator, UsageTracker
from .output import ResultsExporter
from .storage import LocalFileSystem, SQLiteStore
from .types import BatchResult, FileStatus, FileTask

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# CLI app
app = typer.Typer(
    name="invox",
    help="Invox - Extract structured data from invoice documents with Gemini",
    add_completion=False,
)

console = Console()


@dataclass
class Services:
    """Collaborators wired from configuration."""

    config: InvoxConfig
    preferences: PreferenceStore
    store: SQLiteStore
    catalog_store: ModelCatalogStore
    catalog: ModelCatalog
    usage_tracker: UsageTracker


def open_services(config: Optional[InvoxConfig] = None) -> Services:
    """Build the store, catalog and usage tracker from configuration."""
    config = config or get_config()
    store = SQLiteStore(config.db_path)
    catalog_store = ModelCatalogStore(config.catalog_path)
    return Services(
        config=config,
        preferences=PreferenceStore(),
        store=store,
        catalog_store=catalog_store,
        catalog=catalog_store.load(),
        usage_tracker=UsageTracker(store, timezone=config.usage_timezone),
    )


def _load_services() -> Services:
    config = get_config()
    errors = config.validate()
    if errors:
        console.print("[red]Configuration errors:[/red]")
        for error in errors:
            console.print(f"  - {error}")
        raise typer.Exit(1)
    if config.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    return open_services(config)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"invox version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable verbose logging",
    ),
) -> None:
    """Invox - batch invoice extraction."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@app.command()
def add(
    paths: list[Path] = typer.Argument(..., help="Invoice documents to import"),
) -> None:
    """Import documents so they can be processed."""
    services = _load_services()

    table = Table(title="Imported Files")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Result")

    for path in paths:
        if not path.is_file():
            console.print(f"[red]Not a file: {path}[/red]")
            raise typer.Exit(1)
        if path.suffix.lower() not in ALLOWED_EXTENSIONS:
            console.print(f"[yellow]Skipping unsupported file type: {path.name}[/yellow]")
            continue
        file, duplicate = services.store.add_file(path)
        result = "[yellow]duplicate[/yellow]" if duplicate else "[green]imported[/green]"
        table.add_row(file.short_id, file.file_name, result)

    console.print(table)


@app.command()
def files(
    status: Optional[FileStatus] = typer.Option(
        None,
        "--status",
        "-s",
        help="Only list files with this status",
    ),
) -> None:
    """List imported files."""
    services = _load_services()

    table = Table(title="Files")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Size", justify="right")

    styles = {
        FileStatus.PROCESSED: "green",
        FileStatus.FAILED: "red",
        FileStatus.PROCESSING: "yellow",
        FileStatus.UNPROCESSED: "white",
    }
    for file in services.store.list_files(status):
        style = styles[file.status]
        table.add_row(
            file.id,
            file.file_name,
            f"[{style}]{file.status.value}[/{style}]",
            f"{file.size_bytes:,}",
        )

    console.print(table)


def _select_files(services: Services, file_ids: list[str], retry: bool) -> list[FileTask]:
    if file_ids:
        selected = []
        for file_id in file_ids:
            file = services.store.get_file(file_id)
            if file is None:
                console.print(f"[red]Unknown file: {file_id}[/red]")
                raise typer.Exit(1)
            selected.append(file)
        return selected

    selected = services.store.list_files(FileStatus.UNPROCESSED)
    if retry:
        selected += services.store.list_files(FileStatus.PROCESSING)
        selected += services.store.list_files(FileStatus.FAILED)
    return selected


async def run_batch(services: Services, selected: list[FileTask]) -> BatchResult:
    """Run the orchestrator with a rich progress display."""
    services.usage_tracker.sync_in_background(services.catalog.models)

    orchestrator = BatchOrchestrator(
        catalog=services.catalog,
        usage_tracker=services.usage_tracker,
        filesystem=LocalFileSystem(),
        status_store=services.store,
        credentials=CredentialProvider(services.config, services.preferences),
        attempt_timeout_seconds=services.config.attempt_timeout_seconds,
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Starting...", total=len(selected))

        def on_status_update(message: str) -> None:
            progress.update(task, description=message)

        def on_progress(completed: int, total: int) -> None:
            progress.update(task, completed=completed, total=total)

        return await orchestrator.run(selected, on_status_update, on_progress)


@app.command()
def process(
    file_ids: Optional[list[str]] = typer.Argument(
        None,
        help="File IDs to process (default: all unprocessed files)",
    ),
    retry: bool = typer.Option(
        False,
        "--retry",
        "-r",
        help="Also re-submit files left Processing or Failed",
    ),
) -> None:
    """Run extraction for imported files."""
    services = _load_services()
    selected = _select_files(services, file_ids or [], retry)

    if not selected:
        console.print("[yellow]No files to process.[/yellow]")
        raise typer.Exit(0)

    console.print("\n[bold]Invoice Extraction[/bold]")
    console.print(f"Files: {len(selected)}")
    console.print(f"Models: {', '.join(services.catalog.fallback_order)}")
    console.print()

    try:
        result = asyncio.run(run_batch(services, selected))
    except CredentialMissingError as e:
        console.print(f"[red]{e}[/red]")
        console.print("Run `invox configure --api-key ...` or set GEMINI_API_KEY.")
        raise typer.Exit(1)
    except InvoxError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print()
    console.print(f"[bold]Processed:[/bold] [green]{result.processed_files}[/green]")
    console.print(f"[bold]Failed:[/bold] [red]{result.failed_files}[/red]")
    console.print(f"[bold]Duration:[/bold] {result.duration_seconds:.1f}s")

    if result.failed_files:
        raise typer.Exit(2)


@app.command()
def models() -> None:
    """List catalog models in fallback order with their rate limits."""
    services = _load_services()
    catalog = services.catalog

    table = Table(title="Gemini Models")
    table.add_column("#", justify="right")
    table.add_column("Model", style="cyan")
    table.add_column("RPM", justify="right")
    table.add_column("RPD", justify="right")
    table.add_column("Default")

    for entry in catalog.entries():
        table.add_row(
            str(entry.position + 1),
            entry.model,
            str(entry.limit.rpm or "-"),
            str(entry.limit.rpd or "-"),
            "*" if entry.model == catalog.default_model else "",
        )

    console.print(table)


@app.command()
def usage() -> None:
    """Show stored request counters per model."""
    services = _load_services()
    rows = asyncio.run(services.usage_tracker.snapshot())

    table = Table(title="Model Usage")
    table.add_column("Model", style="cyan")
    table.add_column("Day")
    table.add_column("This minute", justify="right")
    table.add_column("Today", justify="right")
    table.add_column("Daily limit", justify="right")

    for row in rows:
        limit = services.catalog.limit_for(row.model)
        table.add_row(
            row.model,
            row.day,
            str(row.requests_minute),
            str(row.requests_day),
            str(limit.rpd or "-"),
        )

    console.print(table)


@app.command()
def reset_usage(
    model: Optional[str] = typer.Argument(None, help="Model to reset (default: all)"),
) -> None:
    """Reset the request counters of one or all models."""
    services = _load_services()
    reset = asyncio.run(services.usage_tracker.reset(model))
    if not reset:
        console.print("[yellow]No usage records to reset.[/yellow]")
        return
    for name in reset:
        console.print(f"[green]Reset:[/green] {name}")


@app.command()
def refresh_catalog(
    url: Optional[str] = typer.Option(None, "--url", help="Catalog URL (overrides configuration)"),
) -> None:
    """Download the model catalog and store it locally."""
    services = _load_services()
    catalog_url = url or services.preferences.get_catalog_url() or services.config.catalog_url

    with console.status("Refreshing model catalog..."):
        catalog = asyncio.run(
            services.catalog_store.refresh(catalog_url, services.usage_tracker)
        )

    console.print(f"[green]Default model:[/green] {catalog.default_model}")
    console.print(f"[green]Fallback order:[/green] {', '.join(catalog.fallback_order)}")


@app.command()
def export(
    output_dir: Path = typer.Option(
        Path("./results"),
        "--output-dir",
        "-o",
        help="Output directory",
    ),
    output_format: str = typer.Option(
        "ndjson",
        "--format",
        "-f",
        help="Output format: ndjson, json, or both",
    ),
    include_failed: bool = typer.Option(
        False,
        "--include-failed",
        help="Also export failed files with their error payloads",
    ),
) -> None:
    """Export parsed invoice data."""
    services = _load_services()
    selected = services.store.list_files(FileStatus.PROCESSED)
    if include_failed:
        selected += services.store.list_files(FileStatus.FAILED)

    exporter = ResultsExporter(output_dir)
    try:
        written = exporter.write(selected, output_format)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(f"[bold]Exported:[/bold] {len(selected)} files")
    for path in written:
        console.print(f"[bold]Output:[/bold] {path}")


@app.command()
def configure(
    api_key: Optional[str] = typer.Option(None, "--api-key", help="Store a Gemini API key"),
    catalog_url: Optional[str] = typer.Option(None, "--catalog-url", help="Store a catalog URL"),
    clear_key: bool = typer.Option(False, "--clear-key", help="Forget the stored API key"),
) -> None:
    """Store preferences."""
    preferences = PreferenceStore()
    if clear_key:
        preferences.clear_api_key()
        console.print("[green]Stored API key removed.[/green]")
    if api_key:
        preferences.set_api_key(api_key)
        console.print("[green]API key saved.[/green]")
    if catalog_url:
        preferences.set_catalog_url(catalog_url)
        console.print("[green]Catalog URL saved.[/green]")
    if not (api_key or catalog_url or clear_key):
        console.print(f"Preferences file: {preferences.path}")


@app.command()
def check_config() -> None:
    """Check configuration."""
    services = _load_services()
    config = services.config

    console.print("[bold]Configuration Check[/bold]\n")
    console.print(f"[green]Database:[/green] {config.db_path}")
    console.print(f"[green]Catalog:[/green] {config.catalog_path}")
    console.print(f"[green]Attempt timeout:[/green] {config.attempt_timeout_seconds:g}s")
    console.print(f"[green]Usage timezone:[/green] {config.usage_timezone}")

    api_key = CredentialProvider(config, services.preferences).get_api_key()
    if not api_key:
        console.print("[red]Gemini API key:[/red] not configured")
        raise typer.Exit(1)
    console.print(f"[green]Gemini API key:[/green] {api_key[:6]}...")


# Alias commands
app.command("check")(check_config)


if __name__ == "__main__":
    app()
