"""Command-line interface for git-leave."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from ._version import __version__
from .config import load_config
from .core import LeaveManager
from .formatters import OutputFormatter
from .log_setup import setup_logging
from .models import ConfigError, CrawlError
from .prompt import AskDefault, ask
from .schema import get_tool_schema

app = typer.Typer(
    name="git-leave",
    help="Check for unsaved or uncommitted changes on your machine.",
    add_completion=False,
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        print(f"git-leave {__version__}")
        raise typer.Exit()


def schema_callback(value: bool):
    """Print the tool schema and exit."""
    if value:
        print(json.dumps(get_tool_schema(), indent=2))
        raise typer.Exit()


def get_console_and_formatter(
    json_output: bool, trim: bool = True
) -> tuple[Console, OutputFormatter]:
    """Create console and formatter."""
    console = Console(force_terminal=not json_output)
    formatter = OutputFormatter(console, use_json=json_output, trim=trim)
    return console, formatter


def _fail(console: Console, message: str):
    console.print(f"[red]Error:[/] {escape(message)}")
    raise typer.Exit(1)


@app.command()
def main(
    directory: Path = typer.Argument(
        None,
        help="The directory to search in",
    ),
    push: bool = typer.Option(
        False,
        "--push",
        "-p",
        help="Push commits to remote",
    ),
    default: bool = typer.Option(
        False,
        "--default",
        "-d",
        help="Use the configured default folder (leaveTool.defaultFolder) as the directory",
    ),
    notrim: bool = typer.Option(
        False,
        "--notrim",
        "-n",
        help="Don't trim output (keep the home directory in paths)",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output as JSON",
    ),
    sequential: bool = typer.Option(
        False,
        "--sequential",
        "-s",
        help="Run sequentially instead of parallel",
    ),
    workers: int = typer.Option(
        None,
        "--workers",
        "-w",
        help="Size of the crawl and classification worker pool",
    ),
    connections: int = typer.Option(
        None,
        "--connections",
        help="Maximum number of simultaneous pushes",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    schema: bool = typer.Option(
        False,
        "--schema",
        callback=schema_callback,
        is_eager=True,
        help="Output MCP-compatible tool schema for AI agents",
    ),
):
    """Find dirty repositories and unpushed branches, and optionally push them."""
    console, formatter = get_console_and_formatter(json_output, trim=not notrim)
    setup_logging(verbose)

    try:
        config = load_config(max_workers=workers, max_connections=connections)
    except ConfigError as e:
        _fail(console, str(e))

    if default:
        if config.default_folder is None:
            _fail(
                console,
                "No default folder configured. Set leaveTool.defaultFolder in your "
                "global git config or $GIT_LEAVE_DEFAULT_FOLDER.",
            )
        directory = config.default_folder

    try:
        search_directory = (directory or Path(".")).expanduser().resolve(strict=True)
    except OSError as e:
        _fail(console, f"Could not get absolute path of specified directory: {e}")

    manager = LeaveManager(search_directory, config)

    try:
        if not json_output:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                progress.add_task("Scanning repositories...", total=None)
                report = manager.scan(sequential=sequential)
        else:
            report = manager.scan(sequential=sequential)
    except CrawlError as e:
        _fail(console, f"Something went wrong while trying to crawl the directory: {e}")

    interactive = not json_output and sys.stdin.isatty()
    if not push and report.ahead_repositories and interactive:
        formatter.print_report(report)
        if ask("Push commits to remote?", AskDefault.NO, console=console):
            manager.push_all(report, sink=formatter.print_push_event, sequential=sequential)
            formatter.print_push_results(report)
        return

    if push:
        manager.push_all(report, sink=formatter.print_push_event, sequential=sequential)
    formatter.print_report(report)
