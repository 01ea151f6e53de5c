"""cvetrack CLI - advisory ingestion and product catalog."""

import typer

from cvetrack.cli_commands.shared import app, console, setup_logging
from cvetrack.config import load_settings
from cvetrack.db.init import init_db
from cvetrack.modules.ingest import IngestPipeline, RemoteSource

# Import command modules for registration side-effects.
from cvetrack.cli_commands import ingest_command as _ingest_command  # noqa: F401,E402
from cvetrack.cli_commands import inspect_command as _inspect_command  # noqa: F401,E402

__all__ = [
    "IngestPipeline",
    "RemoteSource",
    "app",
    "console",
    "init_db",
    "load_settings",
    "main",
]


@app.callback()
def _root(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Advisory ingestion and product catalog."""
    setup_logging(verbose or load_settings().verbose)


@app.command()
def version() -> None:
    """Show the installed cvetrack version."""
    from importlib.metadata import PackageNotFoundError, version as pkg_version

    try:
        current_version = pkg_version("cvetrack")
    except PackageNotFoundError:
        current_version = "0.0.0+unknown"

    console.print(f"cvetrack {current_version}")


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
