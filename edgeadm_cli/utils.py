"""
Shared utilities for edgeadm CLI commands.

This module provides common functionality used across multiple CLI commands:
- Logging setup
- Output formatting helpers
- Building installer inputs from command options
"""

import logging
from typing import NoReturn, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .errors import EdgeInstallError
from .params import Advisory
from .version import ToolVersion

console = Console()


def configure_logging(verbose: bool = False) -> None:
    """Route log records through rich; DEBUG when verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=verbose)],
        force=True,
    )


def print_error(message: str, hint: str = None):
    """Print an error message with optional hint."""
    console.print(f"[red]✗[/red] {message}")
    if hint:
        console.print(f"[dim]{hint}[/dim]")


def print_success(message: str):
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_warning(message: str):
    """Print a warning message."""
    console.print(f"[yellow]![/yellow] {message}")


def print_info(message: str):
    """Print an info message."""
    console.print(f"[blue]ℹ[/blue] {message}")


def print_advisories(advisories: list[Advisory]) -> None:
    """Show the outcome of best-effort steps without failing the command."""
    for advisory in advisories:
        if advisory.ok:
            if advisory.message:
                console.print(f"[dim]{escape(advisory.message)}[/dim]")
        else:
            print_warning(escape(advisory.message))


def fail(exc: EdgeInstallError, hint: Optional[str] = None) -> NoReturn:
    """Report an installer error and abort the command."""
    print_error(f"{exc.step}: {escape(exc.message)}", hint)
    raise SystemExit(1)


def parse_version(ctx: click.Context, param: click.Parameter, value: str) -> ToolVersion:
    """Click callback turning ``--kubeedge-version`` into a ToolVersion."""
    try:
        return ToolVersion.parse(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc), ctx=ctx, param=param) from exc
