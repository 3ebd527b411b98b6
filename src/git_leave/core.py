"""
git-leave: check your repositories before leaving your desk.

Crawls a directory tree for Git working trees, reports which ones are dirty
and which have local branches ahead of their upstream, and optionally pushes
those branches to their remotes.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, as_completed, wait
from pathlib import Path
from typing import Any

import pygit2
from pygit2.enums import FileStatus, RepositoryOpenFlag

from .config import LeaveConfig, load_config
from .models import (
    BranchState,
    BranchStatus,
    CrawlError,
    PushOutcome,
    PushResult,
    RepositoryReport,
    ScanReport,
    ScanWarning,
)
from .push import EventSink, PushOrchestrator

logger = logging.getLogger(__name__)

# Errors pygit2 raises while reading repository state.
REPOSITORY_ERRORS = (pygit2.GitError, KeyError, ValueError, OSError)


# =============================================================================
# Repository Handle
# =============================================================================


class RepositoryHandle:
    """An opened, non-bare Git working tree."""

    def __init__(self, repo: pygit2.Repository):
        if repo.is_bare:
            raise ValueError(f"Bare repository at {repo.path} has no working tree")
        self.repo = repo
        self.root_path = Path(repo.workdir)
        self.name = self.root_path.name

    def __repr__(self) -> str:
        return f"RepositoryHandle({str(self.root_path)!r})"


def open_repository(path: Path) -> pygit2.Repository | None:
    """Open `path` itself as a repository, without searching parent directories."""
    try:
        return pygit2.Repository(str(path), RepositoryOpenFlag.NO_SEARCH)
    except (pygit2.GitError, OSError, KeyError):
        return None


# =============================================================================
# Filesystem Crawler
# =============================================================================


def scan_directory(directory: Path) -> tuple[list[RepositoryHandle], list[Path]]:
    """Look at the direct children of `directory`.

    Returns the repositories found and the plain subdirectories still to be
    crawled. Repository roots (bare or not) are never descended into. A link
    to a directory is opened as a repository but never crawled through.

    Raises:
        OSError: If `directory` itself cannot be listed.
    """
    repos: list[RepositoryHandle] = []
    subdirs: list[Path] = []

    with os.scandir(directory) as entries:
        for entry in entries:
            # Metadata of a crawl root that is itself a working tree.
            if entry.name == ".git":
                continue
            try:
                is_link = entry.is_symlink()
                # A broken link is not a directory.
                if not entry.is_dir():
                    continue
            except OSError as e:
                logger.debug("Skipping %s: %s", entry.path, e)
                continue

            path = Path(entry.path)
            repo = open_repository(path)
            if is_link:
                if repo is not None and not repo.is_bare:
                    repos.append(RepositoryHandle(repo))
                continue

            if repo is None:
                subdirs.append(path)
            elif repo.is_bare:
                logger.debug("Skipping bare repository %s", path)
            else:
                repos.append(RepositoryHandle(repo))

    return repos, subdirs


def crawl_directory_for_repos(root: Path, max_workers: int = 8) -> list[RepositoryHandle]:
    """Find every non-bare repository below `root`.

    Subdirectories are scanned on a bounded thread pool. The calling thread
    owns the frontier and submits new directories as scans complete, so no
    worker ever waits on another. Unreadable subdirectories are skipped.

    Raises:
        CrawlError: If `root` does not exist or cannot be read.
    """
    if not root.is_dir():
        raise CrawlError(f"{root} is not a directory")

    try:
        found, frontier = scan_directory(root)
    except OSError as e:
        raise CrawlError(f"Could not read {root}: {e}") from e

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        pending: dict[Future, Path] = {
            executor.submit(scan_directory, directory): directory for directory in frontier
        }
        while pending:
            done, _ = wait(pending, return_when=FIRST_COMPLETED)
            for future in done:
                directory = pending.pop(future)
                try:
                    repos, subdirs = future.result()
                except OSError as e:
                    logger.debug("Skipping %s: %s", directory, e)
                    continue
                found.extend(repos)
                for subdir in subdirs:
                    pending[executor.submit(scan_directory, subdir)] = subdir

    # A repository can be reached both directly and through a link.
    unique: dict[Path, RepositoryHandle] = {}
    for handle in found:
        unique.setdefault(handle.root_path.resolve(), handle)
    return list(unique.values())


# =============================================================================
# Status Classifier & Ahead-Branch Detector
# =============================================================================


def _warn(warnings: list[ScanWarning] | None, warning: ScanWarning) -> None:
    logger.debug("%s: %s", warning.path, warning.message)
    if warnings is not None:
        warnings.append(warning)


def is_repo_dirty(handle: RepositoryHandle, warnings: list[ScanWarning] | None = None) -> bool:
    """Check whether any path has a status other than "ignored".

    A repository whose status cannot be read counts as clean, with a warning.
    """
    try:
        statuses = handle.repo.status()
    except REPOSITORY_ERRORS as e:
        _warn(warnings, ScanWarning(handle.root_path, f"Could not read status: {e}"))
        return False

    return any(flags != FileStatus.IGNORED for flags in statuses.values())


def _branch_status(
    handle: RepositoryHandle,
    name: str,
    warnings: list[ScanWarning] | None,
) -> BranchStatus:
    repo = handle.repo
    try:
        branch = repo.branches.local[name]
        upstream = branch.upstream
    except REPOSITORY_ERRORS as e:
        _warn(warnings, ScanWarning(handle.root_path, f"Could not resolve upstream: {e}", name))
        return BranchStatus(name, upstream_present=False, state=BranchState.ERROR)

    if upstream is None:
        logger.info("No upstream branch for %s in %s", name, handle.root_path)
        return BranchStatus.without_upstream(name)

    status = BranchStatus(
        name, upstream_present=True, is_ahead=False, upstream_name=upstream.shorthand
    )
    try:
        local_tip = branch.peel(pygit2.Commit).id
        upstream_tip = upstream.peel(pygit2.Commit).id
        # Strict: equal tips are not descendants of each other.
        status.is_ahead = repo.descendant_of(local_tip, upstream_tip)
    except REPOSITORY_ERRORS as e:
        message = f"Could not compare with {upstream.shorthand}: {e}"
        _warn(warnings, ScanWarning(handle.root_path, message, name))
        status.state = BranchState.ERROR
        return status

    if status.is_ahead:
        status.state = BranchState.AHEAD
    elif local_tip == upstream_tip:
        status.state = BranchState.UP_TO_DATE
    else:
        status.state = BranchState.NOT_AHEAD
    return status


def detect_branch_statuses(
    handle: RepositoryHandle, warnings: list[ScanWarning] | None = None
) -> list[BranchStatus]:
    """Get the upstream relation of every local branch.

    Only tests whether the local tip descends from the upstream tip, so a
    branch that has diverged from its upstream is reported as not ahead.
    """
    try:
        names = list(handle.repo.branches.local)
    except REPOSITORY_ERRORS as e:
        _warn(warnings, ScanWarning(handle.root_path, f"Could not list local branches: {e}"))
        return []

    return [_branch_status(handle, name, warnings) for name in names]


def find_ahead_branches(
    handle: RepositoryHandle, warnings: list[ScanWarning] | None = None
) -> list[str]:
    """Names of the local branches strictly ahead of their upstream."""
    return [s.branch_name for s in detect_branch_statuses(handle, warnings) if s.is_ahead]


# =============================================================================
# Run Coordinator
# =============================================================================


class LeaveManager:
    """Crawl, classify and push every repository under a root directory."""

    def __init__(
        self,
        root_path: Path,
        config: LeaveConfig | None = None,
        *,
        orchestrator: PushOrchestrator | None = None,
    ):
        self.root_path = root_path.resolve()
        self.config = config or load_config()
        self.max_workers = self.config.max_workers
        self.orchestrator = orchestrator or PushOrchestrator(self.config)
        self.elapsed = 0.0
        self._repositories: list[RepositoryHandle] | None = None

    def discover_repositories(self) -> list[RepositoryHandle]:
        """Discover all repositories under root path."""
        if self._repositories is not None:
            return self._repositories

        started = time.perf_counter()
        repos = crawl_directory_for_repos(self.root_path, self.max_workers)
        self.elapsed = time.perf_counter() - started

        # Sort by path for consistent ordering
        repos.sort(key=lambda r: r.root_path)
        self._repositories = repos
        logger.info("Found %d repositories in %.3fs", len(repos), self.elapsed)
        return repos

    def _execute_parallel(
        self,
        operation: Callable[[Any], Any],
        items: Iterable[Any],
        sequential: bool = False,
    ) -> list:
        """Execute operation on each item in parallel or sequentially."""
        items = list(items)
        if sequential or len(items) <= 1:
            return [operation(item) for item in items]

        results = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(operation, item) for item in items]
            for future in as_completed(futures):
                results.append(future.result())
        return results

    @staticmethod
    def classify_repository(
        handle: RepositoryHandle,
    ) -> tuple[RepositoryReport, list[ScanWarning]]:
        """Dirty state and branch statuses of one repository."""
        warnings: list[ScanWarning] = []
        report = RepositoryReport(
            path=handle.root_path,
            name=handle.name,
            dirty=is_repo_dirty(handle, warnings),
            branches=detect_branch_statuses(handle, warnings),
        )
        return report, warnings

    def classify_all(
        self, sequential: bool = False
    ) -> list[tuple[RepositoryReport, list[ScanWarning]]]:
        """Classify every discovered repository, one task per repository."""
        repos = self.discover_repositories()
        return self._execute_parallel(self.classify_repository, repos, sequential)

    def scan(self, sequential: bool = False) -> ScanReport:
        """Crawl and classify, without pushing."""
        classified = self.classify_all(sequential)

        report = ScanReport(root=self.root_path, elapsed=self.elapsed)
        for repo_report, warnings in sorted(classified, key=lambda c: c[0].path):
            report.repositories.append(repo_report)
            report.warnings.extend(warnings)
        return report

    def push_all(
        self,
        report: ScanReport,
        sink: EventSink | None = None,
        sequential: bool = False,
    ) -> list[PushResult]:
        """Push every repository with ahead branches; the rest are skipped.

        Results are stored on `report`, and fallback-remote warnings are added
        to its warnings.
        """
        handles = {h.root_path: h for h in self.discover_repositories()}

        def push_one(repo_report: RepositoryReport) -> PushResult:
            if not repo_report.has_ahead_branches:
                return PushResult(
                    path=repo_report.path,
                    name=repo_report.name,
                    outcome=PushOutcome.SKIPPED,
                    message="No branches ahead of upstream",
                )
            return self.orchestrator.push(
                handles[repo_report.path], repo_report.ahead_branches, sink
            )

        results = self._execute_parallel(push_one, report.repositories, sequential)
        results.sort(key=lambda r: r.path)

        for result in results:
            if result.warning:
                report.warnings.append(ScanWarning(result.path, result.warning))
        report.push_results = results
        return results

    def run(
        self,
        push: bool = False,
        sink: EventSink | None = None,
        sequential: bool = False,
    ) -> ScanReport:
        """Crawl, classify, and push if requested."""
        report = self.scan(sequential=sequential)
        if push:
            self.push_all(report, sink=sink, sequential=sequential)
        return report
