"""Shared utilities for starlxc CLI modules."""
from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from starlxc.core.config import ProvisionSettings
from starlxc.core.errors import ProvisionError
from starlxc.core.logger import set_console_level, setup_file_logging


def load_settings(console: Console, verbose: bool = False, log_file: Optional[str] = None) -> ProvisionSettings:
    """Read runtime settings and set up logging for a command."""
    try:
        settings = ProvisionSettings.from_env()
    except ProvisionError as e:
        handle_cli_error(e, console, verbose)
    set_console_level(verbose)
    if not settings.mock:
        setup_file_logging(log_file=log_file or settings.log_file or None, verbose=verbose)
    return settings


def confirm_action(message: str, yes_flag: bool = False, mock: bool = False) -> bool:
    """Prompt user for confirmation unless --yes or mock mode."""
    if yes_flag or mock:
        return True
    return typer.confirm(message, default=True)


def handle_cli_error(
    e: Exception,
    console: Console,
    verbose: bool = False,
    exit_code: int = 1
) -> None:
    """Print a single diagnostic line and exit non-zero.

    Args:
        e: Exception to handle
        console: Rich console for output
        verbose: Show exception traceback if True
        exit_code: Exit code to use
    """
    console.print(f"[red]Error:[/red] {e}")
    if verbose:
        console.print_exception()
    raise typer.Exit(exit_code)


def print_success(console: Console, message: str, prefix: str = "✓") -> None:
    console.print(f"[green]{prefix}[/green] {message}")


def print_error(console: Console, message: str, prefix: str = "✗") -> None:
    console.print(f"[red]{prefix}[/red] {message}")


def print_warning(console: Console, message: str, prefix: str = "⚠") -> None:
    console.print(f"[yellow]{prefix}[/yellow] {message}")


def print_info(console: Console, message: str, prefix: str = "ℹ") -> None:
    console.print(f"[cyan]{prefix}[/cyan] {message}")
