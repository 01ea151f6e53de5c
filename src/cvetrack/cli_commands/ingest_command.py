"""Ingestion CLI commands: local files and remote fetch."""

from pathlib import Path

import typer

from cvetrack.config import UPSERT_POLICIES
from cvetrack.errors import SourceError
from cvetrack.modules.ingest import iter_json_files

from .deps import cli_module
from .shared import app, build_validator, console, open_store, render_summary


def _resolve_policy(policy: str | None, default: str) -> str:
    policy = (policy or default).lower()
    if policy not in UPSERT_POLICIES:
        console.print(f"[red]Unknown policy {policy!r}. Use one of: {', '.join(UPSERT_POLICIES)}[/red]")
        raise typer.Exit(1)
    return policy


@app.command()
def ingest(
    path: Path = typer.Argument(..., help="Advisory JSON file or directory to scan"),
    workers: int | None = typer.Option(None, "--workers", "-w", help="Worker threads"),
    policy: str | None = typer.Option(None, "--policy", help="Upsert policy: merge or replace"),
) -> None:
    """Ingest advisory files into the record store and product catalog."""
    cli = cli_module()
    settings = cli.load_settings()
    policy = _resolve_policy(policy, settings.upsert_policy)

    try:
        files = list(iter_json_files(path))
    except SourceError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    if not files:
        console.print(f"[yellow]No JSON files found under {path}[/yellow]")
        return

    engine = open_store(settings.db_url)
    pipeline = cli.IngestPipeline(
        engine,
        validator=build_validator(settings),
        policy=policy,
        workers=workers or settings.workers,
    )
    summary = pipeline.run((str(p), p) for p in files)
    render_summary(summary)
    if summary.failed:
        raise typer.Exit(1)


@app.command()
def fetch(
    advisory_ids: list[str] = typer.Argument(..., help="Advisory identifiers, e.g. CVE-2024-1234"),
    policy: str | None = typer.Option(None, "--policy", help="Upsert policy: merge or replace"),
) -> None:
    """Fetch advisories from the remote repository and ingest them."""
    cli = cli_module()
    settings = cli.load_settings()
    policy = _resolve_policy(policy, settings.upsert_policy)

    items = []
    fetch_failures = 0
    with cli.RemoteSource(settings.remote_base_url) as source:
        for advisory_id in advisory_ids:
            try:
                items.append((advisory_id, source.fetch(advisory_id)))
            except SourceError as e:
                fetch_failures += 1
                console.print(f"[yellow]{e}[/yellow]")

    if not items:
        console.print("[red]Nothing fetched.[/red]")
        raise typer.Exit(1)

    engine = open_store(settings.db_url)
    pipeline = cli.IngestPipeline(engine, validator=build_validator(settings), policy=policy)
    summary = pipeline.run(items)
    render_summary(summary)
    if summary.failed or fetch_failures:
        raise typer.Exit(1)
