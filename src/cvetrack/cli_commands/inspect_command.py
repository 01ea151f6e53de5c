"""Read-only CLI commands: validate, show, product and decode."""

from pathlib import Path

import typer
from rich.panel import Panel
from rich.table import Table

from cvetrack.errors import MalformedInputError
from cvetrack.modules.catalog import ProductCatalog
from cvetrack.modules.ingest import load_document
from cvetrack.modules.records import AdvisoryStore
from cvetrack.modules.scoring import decode_vector, score_to_mapping

from .deps import cli_module
from .shared import app, build_validator, console, open_store

SEVERITY_COLORS = {
    "CRITICAL": "red",
    "HIGH": "red",
    "MEDIUM": "yellow",
    "LOW": "green",
    "NONE": "dim",
}


@app.command()
def validate(
    file: Path = typer.Argument(..., help="Advisory JSON file"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
) -> None:
    """Validate one advisory file and list every violation."""
    settings = cli_module().load_settings()
    try:
        document = load_document(file)
    except MalformedInputError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    report = build_validator(settings).validate(document)
    if as_json:
        console.print_json(data=report.to_dict())
    elif report.valid:
        console.print(f"[green]✓[/green] {file} is valid")
    else:
        table = Table(title=f"{len(report.errors)} violation(s) in {file}")
        table.add_column("Path", style="cyan", overflow="fold")
        table.add_column("Message")
        table.add_column("Rule", style="dim")
        for issue in report.errors:
            table.add_row(issue.path, issue.message, issue.rule)
        console.print(table)
    if not report.valid:
        raise typer.Exit(1)


@app.command()
def show(advisory_id: str = typer.Argument(..., help="Advisory identifier")) -> None:
    """Show a stored advisory."""
    settings = cli_module().load_settings()
    store = AdvisoryStore(open_store(settings.db_url))
    record = store.get(advisory_id)
    if record is None:
        console.print(f"[red]{advisory_id} not found.[/red]")
        raise typer.Exit(1)

    summary = record.severity()
    severity = "-"
    if summary.severity:
        color = SEVERITY_COLORS.get(summary.severity, "white")
        severity = f"[{color}]{summary.severity}[/{color}] {summary.score} (CVSS {summary.version})"

    lines = [
        f"[bold]State:[/bold] {record.state or '-'}",
        f"[bold]Published:[/bold] {record.published_date or '-'}",
        f"[bold]Severity:[/bold] {severity}",
        "",
        record.description() or "-",
    ]
    affected = [
        f"  {entry.vendor or '?'} / {entry.product or '?'}" for entry in record.affected_products
    ]
    if affected:
        lines += ["", "[bold]Affected:[/bold]", *affected]
    references = [f"  {ref.url}" for ref in record.references]
    if references:
        lines += ["", "[bold]References:[/bold]", *references]

    title = advisory_id if not record.title else f"{advisory_id}: {record.title}"
    console.print(Panel("\n".join(lines), title=title, border_style="cyan"))


@app.command()
def product(
    vendor: str = typer.Argument(..., help="Vendor name"),
    name: str = typer.Argument(..., help="Product name"),
) -> None:
    """Show a catalog product with its versions and advisories."""
    settings = cli_module().load_settings()
    view = ProductCatalog(open_store(settings.db_url)).get(vendor, name)
    if view is None:
        console.print(f"[red]No product {vendor}/{name} in the catalog.[/red]")
        raise typer.Exit(1)

    console.print(f"[bold]{view.vendor} / {view.product}[/bold] (revision {view.revision})")
    for label, values in (
        ("Default status", [view.default_status] if view.default_status else []),
        ("Package", [view.package_name] if view.package_name else []),
        ("Repository", [view.repo] if view.repo else []),
        ("CPEs", view.cpes),
        ("Platforms", view.platforms),
        ("Modules", view.modules),
        ("Advisories", view.advisories),
    ):
        if values:
            console.print(f"[bold]{label}:[/bold] {', '.join(values)}")

    if view.versions:
        table = Table(title="Versions")
        table.add_column("Version", style="cyan")
        table.add_column("Status")
        table.add_column("Type", style="dim")
        table.add_column("Upper bound")
        table.add_column("Changes")
        for item in view.versions:
            bound = (
                f"< {item.less_than}"
                if item.less_than
                else f"<= {item.less_than_or_equal}"
                if item.less_than_or_equal
                else ""
            )
            changes = ", ".join(f"{c.at}: {c.status}" for c in item.changes or [])
            table.add_row(item.version, item.status or "", item.version_type or "", bound, changes)
        console.print(table)


@app.command()
def decode(vector: str = typer.Argument(..., help="CVSS vector string")) -> None:
    """Decode a CVSS vector into its metric values."""
    score = decode_vector(vector)
    if score is None:
        console.print(f"[red]Cannot determine the CVSS version of {vector!r}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"CVSS {score.version}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    for key, value in score_to_mapping(score).items():
        table.add_row(key, str(value))
    console.print(table)
