"""Tests for console and JSON output."""

from __future__ import annotations

import json
from io import StringIO
from pathlib import Path

from rich.console import Console

from git_leave.formatters import OutputFormatter, compute_unique_display_names, trim_home
from git_leave.models import (
    BranchState,
    BranchStatus,
    PushOutcome,
    PushResult,
    ReferenceUpdate,
    RepositoryReport,
    ScanReport,
    ScanWarning,
    SidebandMessage,
    TransferProgress,
)

ROOT = Path("/work")


def _formatter(use_json: bool = False) -> tuple[OutputFormatter, StringIO]:
    output = StringIO()
    console = Console(file=output, force_terminal=False, width=200)
    return OutputFormatter(console, use_json=use_json, trim=False), output


def _report() -> ScanReport:
    ahead = RepositoryReport(
        path=ROOT / "api",
        name="api",
        branches=[
            BranchStatus("main", True, True, "origin/main", BranchState.AHEAD),
            BranchStatus("dev", True, True, "origin/dev", BranchState.AHEAD),
        ],
    )
    dirty = RepositoryReport(
        path=ROOT / "web",
        name="web",
        dirty=True,
        branches=[BranchStatus.without_upstream("main")],
    )
    behind = RepositoryReport(
        path=ROOT / "docs",
        name="docs",
        branches=[BranchStatus("main", True, False, "origin/main", BranchState.NOT_AHEAD)],
    )
    return ScanReport(
        root=ROOT,
        elapsed=0.25,
        repositories=[ahead, behind, dirty],
        warnings=[ScanWarning(ROOT / "docs", "Could not read [status]", "main")],
    )


class TestHelpers:
    def test_trim_home(self):
        home = Path("/home/me")

        assert trim_home(home / "code" / "app", home) == "~/code/app"
        assert trim_home(Path("/srv/app"), home) == "/srv/app"

    def test_unique_display_names(self):
        items = [
            RepositoryReport(path=Path("/a/client/app"), name="app"),
            RepositoryReport(path=Path("/a/server/app"), name="app"),
            RepositoryReport(path=Path("/a/tools"), name="tools"),
        ]

        names = compute_unique_display_names(items)

        assert names == {
            Path("/a/client/app"): "client/app",
            Path("/a/server/app"): "server/app",
            Path("/a/tools"): "tools",
        }


class TestReport:
    def test_summary_counts(self):
        report = _report()
        report.push_results = [
            PushResult(ROOT / "api", "api", PushOutcome.SUCCEEDED),
            PushResult(ROOT / "docs", "docs", PushOutcome.SKIPPED),
            PushResult(ROOT / "web", "web", PushOutcome.AUTHENTICATION_FAILED),
        ]

        summary = report.summary

        assert summary.total == 3
        assert summary.dirty == 1
        assert summary.with_ahead_branches == 1
        assert summary.ahead_branches == 2
        assert summary.pushed == 1
        assert summary.push_failed == 1
        assert summary.warnings == 1

    def test_text_sections(self):
        formatter, output = _formatter()

        formatter.print_report(_report())

        text = output.getvalue()
        assert "Found 3 repositories in 0.250s" in text
        assert "Found 1 dirty repositories" in text
        assert "Found 1 repositories that have not pushed commits to remote" in text
        assert "main/dev" in text
        assert "Info: No upstream branch for main in /work/web" in text
        assert "is behind or diverged from origin/main" in text
        assert "Could not read [status]" in text
        assert "Push Results" not in text

    def test_push_table(self):
        report = _report()
        report.push_results = [
            PushResult(ROOT / "api", "api", PushOutcome.REJECTED_NON_FAST_FORWARD, "origin"),
        ]
        formatter, output = _formatter()

        formatter.print_push_results(report)

        text = output.getvalue()
        assert "Push Results" in text
        assert "rejected (non-fast-forward)" in text
        assert "Push failed:" in text

    def test_empty_report(self):
        formatter, output = _formatter()

        formatter.print_report(ScanReport(root=ROOT))

        assert "No git repositories found" in output.getvalue()

    def test_json(self):
        formatter, output = _formatter(use_json=True)

        formatter.print_report(_report())

        data = json.loads(output.getvalue())
        assert data["ahead_repositories"] == [{"path": "/work/api", "branches": ["main", "dev"]}]
        assert data["dirty_repositories"] == ["/work/web"]
        assert data["warnings"][0]["branch"] == "main"
        assert data["repositories"][1]["branches"][0]["state"] == "not_ahead"


class TestPushEvents:
    def test_event_lines(self):
        formatter, output = _formatter()
        path = ROOT / "api"

        formatter.print_push_event(SidebandMessage(path, "Processing changes\n\n"))
        formatter.print_push_event(
            ReferenceUpdate(path, "refs/remotes/origin/dev", "0" * 40, "c" * 40)
        )
        formatter.print_push_event(
            ReferenceUpdate(path, "refs/remotes/origin/main", "a" * 40, "b" * 40)
        )

        lines = output.getvalue().splitlines()
        assert lines[0] == "api: remote: Processing changes"
        assert lines[1].startswith("api: [new]")
        assert lines[1].endswith("refs/remotes/origin/dev")
        assert lines[2] == f"api: [updated] {'a' * 10}..{'b' * 10} refs/remotes/origin/main"

    def test_transfer_progress(self):
        formatter, output = _formatter()

        formatter.print_push_event(
            TransferProgress(ROOT / "api", received_objects=2, total_objects=4, received_bytes=10)
        )

        assert "Received 2/4 objects" in output.getvalue()

    def test_json_mode_prints_nothing(self):
        formatter, output = _formatter(use_json=True)

        formatter.print_push_event(SidebandMessage(ROOT / "api", "hello\n"))

        assert output.getvalue() == ""
