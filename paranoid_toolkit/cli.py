#!/usr/bin/env python3
"""
Command-line interface for Paranoid Toolkit.

Provides inspection of paranoid record types and maintenance commands.
"""

import importlib
import sys
from datetime import timedelta
from typing import Any, List

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import get_config
from .soft_delete import ParanoidService, is_paranoid, registry

console = Console()


def _import_object(path: str) -> Any:
    """Import ``package.module:Name``."""
    module_name, _, attribute = path.partition(":")
    module = importlib.import_module(module_name)
    if not attribute:
        return module
    try:
        return getattr(module, attribute)
    except AttributeError:
        raise click.BadParameter(f"{module_name} has no attribute {attribute}")


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Paranoid Toolkit - Recoverable soft deletion for SQLAlchemy models."""
    if ctx.invoked_subcommand is None:
        console.print(
            Panel.fit(
                f"[bold blue]Paranoid Toolkit[/bold blue] v{__version__}\n"
                "[dim]Recoverable soft deletion for SQLAlchemy models[/dim]\n\n"
                "Use [bold]paranoid --help[/bold] to see available commands.",
                border_style="blue",
            )
        )


@cli.group()
def config() -> None:
    """Show paranoid defaults."""
    pass


@config.command("show")
@click.option("--format", type=click.Choice(["table", "json", "yaml"]), default="table")
def config_show(format: str) -> None:
    """Display current defaults."""
    try:
        config_dict = get_config().to_dict()
    except Exception as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        sys.exit(1)

    if format == "json":
        console.print_json(data=config_dict)
    elif format == "yaml":
        import yaml  # type: ignore[import-untyped]

        console.print(yaml.dump(config_dict, default_flow_style=False))
    else:
        table = Table(title="Paranoid Defaults", show_header=True)
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        for setting, value in config_dict.items():
            if value is None:
                value = "[dim]Not configured[/dim]"
            elif isinstance(value, bool):
                value = "✓" if value else "✗"
            table.add_row(setting, str(value))

        console.print(table)


@cli.command("inspect")
@click.argument("modules", nargs=-1, required=True)
def inspect_types(modules: List[str]) -> None:
    """List paranoid record types registered by MODULES."""
    for module in modules:
        try:
            importlib.import_module(module)
        except ImportError as e:
            console.print(f"[red]Cannot import {module}: {e}[/red]")
            sys.exit(1)

    record_types = registry.configured_types()
    if not record_types:
        console.print("[yellow]No paranoid record types registered[/yellow]")
        return

    table = Table(title="Paranoid Record Types", show_header=True)
    table.add_column("Type", style="cyan")
    table.add_column("Primary", style="green")
    table.add_column("Secondary")
    table.add_column("Recovery")
    table.add_column("Dependents", style="dim")

    for record_type in sorted(record_types, key=lambda t: t.__name__):
        configuration = registry.get(record_type)
        primary = configuration.primary
        secondary = ", ".join(
            f"{column.column} ({column.column_type.value})"
            for column in configuration.secondary
        )
        recovery = (
            f"cascade, ±{int(primary.dependent_recovery_window.total_seconds())}s"
            if primary.recover_dependent_associations
            else "no cascade"
        )
        dependents = ", ".join(
            f"{association.name} [{association.kind.value}, "
            f"{association.dependent.value}]"
            for association in registry.dependent_associations(record_type)
        )
        table.add_row(
            record_type.__name__,
            f"{primary.column} ({primary.column_type.value})",
            secondary or "-",
            recovery,
            dependents or "-",
        )

    console.print(table)


@cli.command("purge")
@click.argument("record_type")
@click.option("--database-url", required=True, help="SQLAlchemy database URL")
@click.option(
    "--older-than-days",
    type=click.IntRange(min=0),
    required=True,
    help="Remove records deleted more than this many days ago",
)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
def purge(record_type: str, database_url: str, older_than_days: int, yes: bool) -> None:
    """Physically remove old deleted rows of RECORD_TYPE (module:Class)."""
    from sqlalchemy import create_engine
    from sqlalchemy.orm import Session

    target = _import_object(record_type)
    if not isinstance(target, type) or not is_paranoid(target):
        console.print(f"[red]{record_type} is not a paranoid record type[/red]")
        sys.exit(1)

    if not yes:
        click.confirm(
            f"Permanently remove {target.__name__} rows deleted more than "
            f"{older_than_days} days ago?",
            abort=True,
        )

    engine = create_engine(database_url)
    try:
        with Session(engine) as session:
            count = ParanoidService(session).purge(
                target, timedelta(days=older_than_days)
            )
    except Exception as e:
        console.print(f"[red]Purge failed: {e}[/red]")
        sys.exit(1)
    finally:
        engine.dispose()

    console.print(f"[green]Purged {count} {target.__name__} rows[/green]")


if __name__ == "__main__":
    cli()
