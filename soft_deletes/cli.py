#!/usr/bin/env python3
"""
Command-line interface for soft-deletes.

Provides inspection and maintenance of soft-deleted rows directly on database
tables, without importing the application's models.
"""

import sys
from datetime import timedelta
from typing import Any, List, Optional, Sequence

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table as RichTable
from sqlalchemy import Column, MetaData, Table, create_engine, delete, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .config import get_config

console = Console()


def _resolve_url(url: Optional[str]) -> str:
    resolved = url or get_config().database_url
    if not resolved:
        raise click.UsageError(
            "No database URL given. Use --url or set SOFT_DELETES_DATABASE_URL."
        )
    return resolved


def _reflect(engine: Engine, table_name: str) -> Table:
    """Reflect a table and check it carries a deleted_at column."""
    table = Table(table_name, MetaData(), autoload_with=engine)
    if "deleted_at" not in table.c:
        raise click.ClickException(f"Table '{table_name}' has no deleted_at column")
    return table


def _primary_key(table: Table) -> Column[Any]:
    columns = list(table.primary_key.columns)
    if len(columns) != 1:
        raise click.ClickException(
            f"Table '{table.name}' needs a single-column primary key"
        )
    return columns[0]


def _coerce_ids(column: Column[Any], ids: Sequence[str]) -> List[Any]:
    """Convert command-line ids to the primary key's Python type."""
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return list(ids)

    try:
        return [python_type(value) for value in ids]
    except (TypeError, ValueError):
        raise click.BadParameter(
            f"ids must be of type {python_type.__name__}", param_hint="IDS"
        )


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Soft Deletes - Maintenance tools for soft-deleted data."""
    if ctx.invoked_subcommand is None:
        console.print(
            Panel.fit(
                f"[bold blue]Soft Deletes[/bold blue] v{__version__}\n"
                "[dim]Maintenance tools for soft-deleted data[/dim]\n\n"
                "Use [bold]soft-deletes --help[/bold] to see available commands.",
                border_style="blue",
            )
        )


@cli.group()
def config() -> None:
    """Inspect soft-deletes configuration."""
    pass


@config.command("show")
@click.option("--format", type=click.Choice(["table", "json", "yaml"]), default="table")
def config_show(format: str) -> None:
    """Display current configuration."""
    try:
        config_dict = get_config().to_dict()

        if format == "json":
            console.print_json(data=config_dict)
        elif format == "yaml":
            import yaml

            console.print(yaml.dump(config_dict, default_flow_style=False))
        else:
            table = RichTable(title="Soft Deletes Configuration", show_header=True)
            table.add_column("Setting", style="cyan")
            table.add_column("Value", style="green")

            for setting, value in config_dict.items():
                if value is None:
                    value = "[dim]Not configured[/dim]"
                elif isinstance(value, bool):
                    value = "✓" if value else "✗"
                table.add_row(setting, str(value))

            console.print(table)

    except Exception as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        sys.exit(1)


@cli.group()
def trash() -> None:
    """List, restore and purge soft-deleted rows."""
    pass


@trash.command("list")
@click.argument("table_name")
@click.option("--url", help="Database URL (defaults to configuration)")
@click.option("--limit", type=int, help="Maximum rows to show")
def trash_list(table_name: str, url: Optional[str], limit: Optional[int]) -> None:
    """List soft-deleted rows of TABLE_NAME, newest first."""
    engine = create_engine(_resolve_url(url))
    try:
        table = _reflect(engine, table_name)
        query = (
            select(table)
            .where(table.c.deleted_at.is_not(None))
            .order_by(table.c.deleted_at.desc())
            .limit(limit or get_config().list_limit)
        )
        with engine.connect() as conn:
            rows = conn.execute(query).all()

        if not rows:
            console.print(f"[green]No soft-deleted rows in {table_name}[/green]")
            return

        output = RichTable(title=f"Soft-deleted rows in {table_name}")
        for column in table.columns:
            output.add_column(column.name)
        for row in rows:
            output.add_row(*["" if value is None else str(value) for value in row])
        console.print(output)

    except SQLAlchemyError as e:
        console.print(f"[red]Error reading {table_name}: {e}[/red]")
        sys.exit(1)
    finally:
        engine.dispose()


@trash.command("restore")
@click.argument("table_name")
@click.argument("ids", nargs=-1, required=True)
@click.option("--url", help="Database URL (defaults to configuration)")
def trash_restore(table_name: str, ids: Sequence[str], url: Optional[str]) -> None:
    """Restore soft-deleted rows of TABLE_NAME by primary key."""
    engine = create_engine(_resolve_url(url))
    try:
        table = _reflect(engine, table_name)
        pk = _primary_key(table)

        values: dict = {"deleted_at": None}
        if "updated_at" in table.c:
            values["updated_at"] = get_config().now()

        statement = (
            update(table)
            .where(pk.in_(_coerce_ids(pk, ids)), table.c.deleted_at.is_not(None))
            .values(**values)
        )
        with engine.begin() as conn:
            restored = conn.execute(statement).rowcount

        console.print(f"[green]✓ Restored {restored} row(s) in {table_name}[/green]")

    except SQLAlchemyError as e:
        console.print(f"[red]Error restoring rows: {e}[/red]")
        sys.exit(1)
    finally:
        engine.dispose()


@trash.command("purge")
@click.argument("table_name")
@click.option(
    "--older-than",
    "older_than",
    type=click.IntRange(min=0),
    required=True,
    help="Only rows soft-deleted more than this many days ago",
)
@click.option("--url", help="Database URL (defaults to configuration)")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
def trash_purge(
    table_name: str, older_than: int, url: Optional[str], yes: bool
) -> None:
    """Permanently delete old soft-deleted rows of TABLE_NAME."""
    engine = create_engine(_resolve_url(url))
    try:
        table = _reflect(engine, table_name)
        cutoff = get_config().now() - timedelta(days=older_than)

        if not yes:
            click.confirm(
                f"Permanently delete rows of {table_name} soft-deleted "
                f"before {cutoff:%Y-%m-%d %H:%M}?",
                abort=True,
            )

        statement = delete(table).where(
            table.c.deleted_at.is_not(None), table.c.deleted_at < cutoff
        )
        with engine.begin() as conn:
            purged = conn.execute(statement).rowcount

        console.print(f"[green]✓ Purged {purged} row(s) from {table_name}[/green]")

    except SQLAlchemyError as e:
        console.print(f"[red]Error purging rows: {e}[/red]")
        sys.exit(1)
    finally:
        engine.dispose()


if __name__ == "__main__":
    cli()
