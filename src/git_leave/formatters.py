"""Output formatters for console and JSON display."""

from __future__ import annotations

import json
from collections import defaultdict
from pathlib import Path
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .models import (
    BranchState,
    PushOutcome,
    ReferenceUpdate,
    SidebandMessage,
    TransferProgress,
)

if TYPE_CHECKING:
    from .models import LeaveSummary, PushEvent, PushResult, ScanReport


def compute_unique_display_names(
    items: list[Any],
    name_attr: str = "name",
    path_attr: str = "path",
) -> dict[Path, str]:
    """Compute unique display names for items with duplicate names.

    When multiple items share the same name, parent directory components
    are added until each name becomes unique.

    Args:
        items: List of objects with name and path attributes
        name_attr: Name of the attribute containing the item name
        path_attr: Name of the attribute containing the item path

    Returns:
        Dictionary mapping path to display name
    """
    name_groups: dict[str, list[Any]] = defaultdict(list)
    for item in items:
        name_groups[getattr(item, name_attr)].append(item)

    result: dict[Path, str] = {}
    for name, group in name_groups.items():
        if len(group) == 1:
            result[getattr(group[0], path_attr)] = name
        else:
            paths = [getattr(item, path_attr) for item in group]
            for path, unique_name in zip(paths, _make_paths_unique(paths)):
                result[path] = unique_name

    return result


def _make_paths_unique(paths: list[Path]) -> list[str]:
    """Generate shortest unique display names for a list of paths.

    For each path, adds parent directory components until the name
    is unique among all paths.
    """
    # Reversed parts: the last component comes first
    path_parts_list = [list(reversed(p.parts)) for p in paths]

    result = []
    for i, parts in enumerate(path_parts_list):
        for depth in range(1, len(parts) + 1):
            candidate = "/".join(reversed(parts[:depth]))
            clashes = any(
                candidate == "/".join(reversed(other[: min(depth, len(other))]))
                for j, other in enumerate(path_parts_list)
                if i != j
            )
            if not clashes:
                result.append(candidate)
                break
        else:
            result.append("/".join(reversed(parts)))

    return result


def trim_home(path: Path, home: Path | None = None) -> str:
    """Replace the home directory prefix with `~`."""
    home = home or Path.home()
    try:
        return str(Path("~") / path.relative_to(home))
    except ValueError:
        return str(path)


_OUTCOME_DISPLAY = {
    PushOutcome.SKIPPED: "[dim]skipped[/]",
    PushOutcome.SUCCEEDED: "[green]✓ pushed[/]",
    PushOutcome.NO_REMOTE_FOUND: "[yellow]no remote[/]",
    PushOutcome.AUTHENTICATION_FAILED: "[red]✗ auth failed[/]",
    PushOutcome.NETWORK_OR_PROTOCOL_ERROR: "[red]✗ network error[/]",
    PushOutcome.REJECTED_NON_FAST_FORWARD: "[red]✗ rejected (non-fast-forward)[/]",
}


class OutputFormatter:
    """Format output for console or JSON."""

    def __init__(self, console: Console, use_json: bool = False, trim: bool = True):
        self.console = console
        self.use_json = use_json
        self.trim = trim

    def _display_path(self, path: Path) -> str:
        return trim_home(path) if self.trim else str(path)

    # -------------------------------------------------------------------------
    # Report
    # -------------------------------------------------------------------------

    def print_report(self, report: ScanReport):
        """Print the result of a run."""
        if self.use_json:
            self.console.print(
                json.dumps(report.to_dict(), indent=2, default=str),
                markup=False,
                highlight=False,
                soft_wrap=True,
            )
            return

        self.print_found(report)
        if not report.repositories:
            return
        self._print_dirty(report)
        self._print_ahead(report)
        self._print_branch_notes(report)
        if report.push_results is not None:
            self._print_push_table(report.push_results)
        self._print_warnings(report)
        self.console.print()
        self._print_summary(report.summary)

    def print_push_results(self, report: ScanReport):
        """Print push results after a report has already been shown."""
        if self.use_json:
            self.print_report(report)
            return
        if report.push_results is not None:
            self._print_push_table(report.push_results)
        self._print_warnings(report)
        self.console.print()
        self._print_summary(report.summary)

    def print_found(self, report: ScanReport):
        """Print how many repositories the crawl found."""
        if self.use_json:
            return
        if not report.repositories:
            self.console.print("[cyan]Empty[/] No git repositories found")
            return
        self.console.print(
            f"[cyan]Found[/] [bold]{len(report.repositories)}[/] repositories "
            f"in {report.elapsed:.3f}s"
        )

    def _print_dirty(self, report: ScanReport):
        dirty = report.dirty_repositories
        if not dirty:
            return
        self.console.print(f"[cyan]Found[/] [bold]{len(dirty)}[/] dirty repositories")
        for repo in dirty:
            self.console.print(f"  [yellow]✎[/] {self._display_path(repo.path)}")

    def _print_ahead(self, report: ScanReport):
        ahead = report.ahead_repositories
        if not ahead:
            return
        self.console.print(
            f"[cyan]Found[/] [bold]{len(ahead)}[/] repositories "
            "that have not pushed commits to remote"
        )
        display_names = compute_unique_display_names([repo for repo, _ in ahead])

        table = Table(show_header=True, header_style="bold")
        table.add_column("Repository", style="cyan", no_wrap=True)
        table.add_column("Branches ahead", style="yellow")
        table.add_column("Path", style="dim")
        for repo, branches in ahead:
            table.add_row(
                display_names.get(repo.path, repo.name),
                "/".join(branches),
                self._display_path(repo.path),
            )
        self.console.print(table)

    def _print_branch_notes(self, report: ScanReport):
        """Informational lines: no upstream, and behind-or-diverged branches."""
        for repo in report.repositories:
            for branch in repo.branches:
                if branch.state == BranchState.NO_UPSTREAM:
                    self.console.print(
                        f"[dim]Info: No upstream branch for {branch.branch_name} "
                        f"in {self._display_path(repo.path)}[/]"
                    )
                elif branch.state == BranchState.NOT_AHEAD:
                    self.console.print(
                        f"[dim]Info: {branch.branch_name} in {self._display_path(repo.path)} "
                        f"is behind or diverged from {branch.upstream_name}[/]"
                    )

    def _print_push_table(self, results: list[PushResult]):
        display_names = compute_unique_display_names(results)

        table = Table(title="Push Results")
        table.add_column("Repository", style="cyan")
        table.add_column("Remote")
        table.add_column("Outcome", justify="center")
        table.add_column("Message")

        for result in results:
            message = escape(result.message[:60]) if result.message else ""
            if not result.success:
                message = f"[red]{message}[/]"
            table.add_row(
                display_names.get(result.path, result.name),
                result.remote,
                _OUTCOME_DISPLAY[result.outcome],
                message,
            )

        self.console.print(table)

    def _print_warnings(self, report: ScanReport):
        if not report.warnings:
            return
        self.console.print(f"[bold yellow]⚠ {len(report.warnings)} warning(s)[/]")
        for warning in report.warnings:
            where = self._display_path(warning.path)
            if warning.branch:
                where = f"{where} ({warning.branch})"
            self.console.print(f"  [yellow]{where}:[/] {escape(warning.message)}")

    def _print_summary(self, summary: LeaveSummary):
        parts = [f"[bold]Total:[/] {summary.total}"]

        if summary.dirty > 0:
            parts.append(f"[yellow]✎ Dirty:[/] {summary.dirty}")
        if summary.with_ahead_branches > 0:
            parts.append(
                f"[yellow]⬆ Ahead:[/] {summary.with_ahead_branches} "
                f"({summary.ahead_branches} branches)"
            )
        if summary.pushed > 0:
            parts.append(f"[green]✓ Pushed:[/] {summary.pushed}")
        if summary.push_failed > 0:
            parts.append(f"[red]✗ Push failed:[/] {summary.push_failed}")
        if summary.warnings > 0:
            parts.append(f"[yellow]⚠ Warnings:[/] {summary.warnings}")

        self.console.print(" | ".join(parts))

    # -------------------------------------------------------------------------
    # Live push progress
    # -------------------------------------------------------------------------

    def print_push_event(self, event: PushEvent):
        """Print one push progress event as it arrives."""
        if self.use_json:
            return

        prefix = f"{event.path.name}: "
        match event:
            case SidebandMessage(text=text):
                for line in text.splitlines():
                    if line.strip():
                        self._raw(f"{prefix}remote: {line}")
            case TransferProgress() if event.resolving_deltas:
                self._raw(
                    f"{prefix}Resolving deltas {event.indexed_deltas}/{event.total_deltas}",
                    end="\r",
                )
            case TransferProgress() if event.total_objects > 0:
                self._raw(
                    f"{prefix}Received {event.received_objects}/{event.total_objects} objects "
                    f"({event.indexed_objects}) in {event.received_bytes} bytes",
                    end="\r",
                )
            case ReferenceUpdate() if event.is_new:
                self._raw(f"{prefix}[new]     {event.new[:20]:20} {event.refname}")
            case ReferenceUpdate():
                self._raw(f"{prefix}[updated] {event.old[:10]}..{event.new[:10]} {event.refname}")

    def _raw(self, text: str, end: str = "\n"):
        self.console.print(text, end=end, markup=False, highlight=False)
