"""Shared CLI app objects and store helpers."""

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from sqlalchemy.engine import Engine

from cvetrack.errors import RuleLoadError, StoreUnavailableError
from cvetrack.modules.ingest import IngestSummary
from cvetrack.modules.validation import SchemaValidator, load_rule_registry

from .deps import cli_module

app = typer.Typer(
    name="cvetrack",
    help="Advisory ingestion and product catalog",
    no_args_is_help=True,
)
console = Console()

# Exit code for a store that cannot be reached at startup
EXIT_STORE_UNAVAILABLE = 2


def setup_logging(verbose: bool = False) -> None:
    """Route log records through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def open_store(db_url: str) -> Engine:
    """Initialize the store or exit with EXIT_STORE_UNAVAILABLE."""
    try:
        return cli_module().init_db(db_url)
    except StoreUnavailableError as e:
        console.print(f"[red]Store unavailable:[/red] {e}")
        raise typer.Exit(EXIT_STORE_UNAVAILABLE) from e


def build_validator(settings) -> SchemaValidator:
    """Validator over the configured rule documents, or exit on load failure."""
    try:
        registry = load_rule_registry(settings.rules_dir) if settings.rules_dir else None
    except RuleLoadError as e:
        console.print(f"[red]Cannot load rules:[/red] {e}")
        raise typer.Exit(1) from e
    return SchemaValidator(registry)


def render_summary(summary: IngestSummary) -> None:
    """Print one row per document and a totals line."""
    table = Table(title="Ingestion")
    table.add_column("Source", style="dim", overflow="fold")
    table.add_column("Advisory", style="cyan")
    table.add_column("Valid")
    table.add_column("Products", justify="right")
    table.add_column("Status")

    for result in summary.results:
        if not result.ok:
            status = f"[red]failed: {result.error}[/red]"
        elif result.warnings:
            status = f"[yellow]{len(result.warnings)} warning(s)[/yellow]"
        else:
            status = "[green]ok[/green]"
        valid = "[green]yes[/green]" if result.valid else f"[yellow]no ({result.validation_errors})[/yellow]"
        table.add_row(
            result.source,
            result.advisory_id or "-",
            valid if result.ok else "-",
            str(result.products),
            status,
        )
    console.print(table)
    console.print(
        f"[bold]{summary.succeeded}/{summary.total}[/bold] ingested, "
        f"{summary.created} new, {summary.invalid} with validation errors, "
        f"{summary.failed} failed"
    )
