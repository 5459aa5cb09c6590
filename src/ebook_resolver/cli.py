"""Command-line interface for ebook-resolver."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import aiofiles
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ebook_resolver import __version__
from ebook_resolver.config import AppConfig
from ebook_resolver.mirrors import MirrorRegistry
from ebook_resolver.models import (
    Failed,
    ResolutionHints,
    ResolutionRequest,
    ResolvedBytes,
    ResolvedUrl,
)
from ebook_resolver.orchestrator import Orchestrator
from ebook_resolver.utils.filename import readable_filename

app = typer.Typer(
    name="ebook-resolver",
    help="Resolve ebook catalog entries to downloadable files.",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool):
    if value:
        console.print(f"ebook-resolver version {__version__}")
        raise typer.Exit()


def _setup_logging(verbose: bool, quiet: bool = False) -> None:
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=verbose)],
        force=True,
    )


def _load_config(config_path: Optional[Path]) -> AppConfig:
    if config_path is None:
        return AppConfig()
    try:
        return AppConfig.from_toml(config_path)
    except (OSError, ValueError) as e:
        console.print(f"[red]Could not load config {config_path}: {e}[/red]")
        raise typer.Exit(1)


def _output_name(outcome: ResolvedBytes, title: Optional[str], author: Optional[str]) -> str:
    """Name a downloaded file "Title - Author.ext" when a title is known."""
    if not title or "." not in outcome.suggested_name:
        return outcome.suggested_name
    file_format = outcome.suggested_name.rsplit(".", 1)[-1]
    return readable_filename(title, author or "Unknown", file_format)


async def _save_bytes(outcome: ResolvedBytes, output_dir: Path, name: str) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / name
    async with aiofiles.open(path, "wb") as f:
        await f.write(outcome.data)
    return path


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
):
    """Download-link resolver for ebook mirrors."""
    pass


@app.command()
def resolve(
    url: str = typer.Argument(..., help="Entry (file info) page URL"),
    source: str = typer.Option(
        "aggregator",
        "--source",
        "-s",
        help="Declared source: 'aggregator', 'libgen', 'trustedArchive', 'gutenberg', ...",
    ),
    file_hash: Optional[str] = typer.Option(
        None,
        "--hash",
        help="MD5 of the wanted file; mirrors for other files are ignored",
    ),
    mirror_base: Optional[str] = typer.Option(
        None,
        "--mirror-base",
        help="Base URL for resolving relative mirror links",
    ),
    title: Optional[str] = typer.Option(
        None,
        "--title",
        help="Book title, used to name a downloaded file",
    ),
    author: Optional[str] = typer.Option(
        None,
        "--author",
        help="Book author, used with --title to name a downloaded file",
    ),
    output: Path = typer.Option(
        Path("."),
        "--output",
        "-o",
        help="Directory for files downloaded during resolution",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the outcome as JSON",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="TOML configuration file",
    ),
    headless: bool = typer.Option(
        True,
        "--headless/--no-headless",
        help="Run the browser without a window",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
):
    """
    Resolve an entry page to a direct download URL or file.

    Examples:

        ebook-resolver resolve "https://libgen.li/file.php?md5=..."

        ebook-resolver resolve "https://libgen.li/file.php?md5=..." --json

        ebook-resolver resolve "https://www.gutenberg.org/ebooks/1342.epub3.images" -s gutenberg
    """
    config = _load_config(config_path)
    config.verbose = config.verbose or verbose
    config.browser.headless = headless
    _setup_logging(config.verbose, quiet=as_json)

    try:
        request = ResolutionRequest(
            entry_url=url,
            declared_source=source,
            hints=ResolutionHints(file_hash=file_hash, mirror_base_url=mirror_base),
        )
    except ValidationError as e:
        console.print(f"[red]Invalid request: {e.errors()[0]['msg']}[/red]")
        raise typer.Exit(1)

    orchestrator = Orchestrator(config)
    try:
        outcome = asyncio.run(orchestrator.resolve(request))
    except KeyboardInterrupt:
        console.print("\n[yellow]Resolution cancelled.[/yellow]")
        raise typer.Exit(130)

    saved: Path | None = None
    if isinstance(outcome, ResolvedBytes):
        saved = asyncio.run(_save_bytes(outcome, output, _output_name(outcome, title, author)))

    if as_json:
        payload = outcome.to_payload()
        if saved:
            payload["path"] = str(saved)
        console.print_json(json.dumps(payload))
    elif isinstance(outcome, ResolvedUrl):
        console.print(f"[green]Resolved:[/green] {outcome.url}")
    elif isinstance(outcome, ResolvedBytes):
        console.print(f"[green]Downloaded {outcome.size} bytes to {saved}[/green]")
    else:
        console.print(f"[red]Automatic resolution failed ({outcome.reason.value}).[/red]")
        if outcome.message:
            console.print(f"[dim]{outcome.message}[/dim]")
        console.print(f"Download manually from: {outcome.original_url}")

    if isinstance(outcome, Failed):
        raise typer.Exit(1)


@app.command("list-mirrors")
def list_mirrors():
    """List known mirror families in the order they are tried."""
    table = Table(title="Mirror Families")
    table.add_column("Priority", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Kind")
    table.add_column("Browser", justify="center")
    table.add_column("Description")

    for family in MirrorRegistry.list_families():
        table.add_row(
            str(family.priority),
            family.name,
            family.kind.value,
            "Yes" if family.requires_browser else "No",
            family.description,
        )

    console.print(table)


@app.command("show-config")
def show_config(
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="TOML configuration file",
    ),
    all_values: bool = typer.Option(
        False,
        "--all",
        help="Include values left at their defaults",
    ),
):
    """Print the effective configuration as TOML."""
    config = _load_config(config_path)
    console.print(
        config.to_toml(exclude_defaults=not all_values) or "# all defaults",
        markup=False,
    )


if __name__ == "__main__":
    app()
