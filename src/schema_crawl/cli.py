"""
Command-line interface for schema_crawl.

Provides enrich and info commands: enrich a base-pass catalog with extended
metadata from a live database, and summarize a saved catalog.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from schema_crawl import __version__
from schema_crawl.models import Catalog

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with Rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def print_catalog_summary(catalog: Catalog, title: str) -> None:
    """Print one row per table with counts of its enriched objects."""
    table = Table(title=title)
    table.add_column("Table", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Columns", style="green", justify="right")
    table.add_column("Indexes", style="green", justify="right")
    table.add_column("Triggers", style="yellow", justify="right")
    table.add_column("Constraints", style="yellow", justify="right")
    table.add_column("Privileges", style="blue", justify="right")

    for tbl in sorted(catalog.tables, key=lambda t: t.full_name):
        table.add_row(
            tbl.full_name,
            tbl.table_type,
            str(len(tbl.columns)),
            str(len(tbl.indexes)),
            str(len(tbl.triggers)),
            str(len(tbl.table_constraints)),
            str(len(tbl.privileges)),
        )

    console.print(table)


@click.group()
@click.version_option(version=__version__, prog_name="schema-crawl")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def cli(verbose: bool) -> None:
    """
    Schema Crawl - Catalog enrichment from live database metadata

    Reads extended metadata (views, triggers, constraints, privileges and
    vendor attributes) and merges it into a catalog skeleton.
    """
    setup_logging(verbose)


@cli.command()
@click.option(
    "--skeleton",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="YAML or JSON catalog skeleton produced by the base pass",
)
@click.option(
    "--queries",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="YAML file or directory of <QUERY_NAME>.sql metadata queries",
)
@click.option(
    "--options",
    "options_file",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="YAML file with crawl options",
)
@click.option(
    "--sqlite",
    "sqlite_path",
    type=click.Path(path_type=Path),
    default=None,
    help="SQLite database file to read metadata from",
)
@click.option(
    "--oracle_conn",
    type=str,
    default=None,
    help="Oracle connection string (user/pwd@host:port/service)",
)
@click.option(
    "--quote_string",
    type=str,
    default='"',
    help="Identifier quote string of the data source",
)
@click.option(
    "--row_counts",
    is_flag=True,
    default=False,
    help="Also count the rows of every table",
)
@click.option(
    "--output",
    type=click.Path(path_type=Path),
    required=True,
    help="Output path for the enriched catalog (.json or .yaml)",
)
def enrich(
    skeleton: Path,
    queries: Path,
    options_file: Optional[Path],
    sqlite_path: Optional[Path],
    oracle_conn: Optional[str],
    quote_string: str,
    row_counts: bool,
    output: Path,
) -> None:
    """
    Enrich a catalog skeleton with extended metadata.

    Examples:

        # Enrich from a SQLite database
        schema-crawl enrich --skeleton catalog.yaml \\
            --queries queries/sqlite.yaml --sqlite app.db \\
            --output enriched.json

        # Enrich from Oracle using a directory of query files
        schema-crawl enrich --skeleton catalog.yaml \\
            --queries queries/oracle/ \\
            --oracle_conn "user/pwd@localhost:1521/ORCL" \\
            --output enriched.yaml
    """
    from schema_crawl.connections import connect_oracle, connect_sqlite
    from schema_crawl.crawl import CrawlOptions, CrawlSession, InformationSchemaViews
    from schema_crawl.identifiers import Identifiers

    console.print("[bold blue]Schema Crawl Enrichment[/bold blue]")

    if bool(sqlite_path) == bool(oracle_conn):
        console.print("[red]Error: Provide exactly one of --sqlite or --oracle_conn[/red]")
        sys.exit(1)

    identifiers = Identifiers(quote_string=quote_string)
    try:
        catalog = Catalog.load(skeleton, identifiers)
        options = CrawlOptions.from_yaml(options_file) if options_file else CrawlOptions()
        views = InformationSchemaViews.load(queries)
    except (OSError, KeyError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error: Could not load configuration: {e}[/red]")
        sys.exit(1)
    if row_counts:
        options.load_row_counts = True

    console.print(f"Skeleton: {len(catalog.tables)} tables")
    console.print(f"Queries: {len(views)} configured")

    try:
        connection = connect_sqlite(sqlite_path) if sqlite_path else connect_oracle(oracle_conn)
    except Exception as e:
        console.print(f"[red]Error: Could not connect: {e}[/red]")
        sys.exit(1)

    try:
        session = CrawlSession(
            connection,
            catalog,
            views,
            options=options,
            identifiers=identifiers,
        )
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Retrieving extended metadata...", total=None)
            session.enrich()
            progress.update(task, completed=True)
    finally:
        connection.close()

    catalog.save(output)
    console.print(f"\n[green]Enriched catalog saved to: {output}[/green]")

    print_catalog_summary(catalog, "Enriched Tables")

    counts = session.sink.counts()
    if counts:
        diag_table = Table(title="Diagnostics")
        diag_table.add_column("Kind", style="cyan")
        diag_table.add_column("Events", style="green", justify="right")
        for kind, count in sorted(counts.items()):
            diag_table.add_row(kind, str(count))
        console.print(diag_table)

    failed = counts.get("query_failed", 0)
    if failed:
        console.print(f"\n[yellow]{failed} metadata queries failed; see log for details.[/yellow]")


@cli.command()
@click.option(
    "--catalog",
    "catalog_path",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Path to a saved catalog (.json or .yaml)",
)
def info(catalog_path: Path) -> None:
    """
    Display a summary of a saved catalog.

    Example:

        schema-crawl info --catalog enriched.json
    """
    console.print("[bold blue]Catalog Information[/bold blue]")

    catalog = Catalog.load(catalog_path)

    info_table = Table(title="Catalog Details")
    info_table.add_column("Property", style="cyan")
    info_table.add_column("Value", style="green")
    info_table.add_row("Name", catalog.name or "N/A")
    info_table.add_row("Schemas", str(len(catalog.schemas)))
    info_table.add_row("Tables", str(len(catalog.tables)))
    console.print(info_table)

    print_catalog_summary(catalog, "Tables")


if __name__ == "__main__":
    cli()
