"""Domain models shared by the crawler, classifiers, push orchestrator and CLI."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import StrEnum
from pathlib import Path

# =============================================================================
# Errors
# =============================================================================


class GitLeaveError(Exception):
    """Base class for errors that abort a git-leave run."""


class CrawlError(GitLeaveError):
    """The crawl root could not be read."""


class ConfigError(GitLeaveError):
    """Configuration is missing or invalid."""


# =============================================================================
# Enums
# =============================================================================


class BranchState(StrEnum):
    """Relation of a local branch to its upstream."""

    NO_UPSTREAM = "no_upstream"
    AHEAD = "ahead"
    UP_TO_DATE = "up_to_date"
    # Behind or diverged: the ancestry test only looks in one direction.
    NOT_AHEAD = "not_ahead"
    ERROR = "error"


class PushOutcome(StrEnum):
    """Result of pushing one repository."""

    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    NO_REMOTE_FOUND = "no_remote_found"
    AUTHENTICATION_FAILED = "authentication_failed"
    NETWORK_OR_PROTOCOL_ERROR = "network_or_protocol_error"
    REJECTED_NON_FAST_FORWARD = "rejected_non_fast_forward"


# =============================================================================
# Scan results
# =============================================================================


@dataclass
class ScanWarning:
    """Something failed for one repository or branch without stopping the run."""

    path: Path
    message: str
    branch: str | None = None

    def to_dict(self) -> dict:
        return {
            "path": str(self.path),
            "message": self.message,
            "branch": self.branch,
        }


@dataclass
class BranchStatus:
    """Ahead-detection result for one local branch."""

    branch_name: str
    upstream_present: bool
    is_ahead: bool | None = None
    upstream_name: str = ""
    state: BranchState = BranchState.NO_UPSTREAM

    @classmethod
    def without_upstream(cls, branch_name: str) -> BranchStatus:
        return cls(branch_name=branch_name, upstream_present=False)

    def to_dict(self) -> dict:
        return {
            "branch_name": self.branch_name,
            "upstream_present": self.upstream_present,
            "is_ahead": self.is_ahead,
            "upstream_name": self.upstream_name,
            "state": self.state.value,
        }


@dataclass
class RepositoryReport:
    """Classification of a single repository."""

    path: Path
    name: str
    dirty: bool = False
    branches: list[BranchStatus] = field(default_factory=list)

    @property
    def ahead_branches(self) -> list[str]:
        return [b.branch_name for b in self.branches if b.is_ahead]

    @property
    def has_ahead_branches(self) -> bool:
        return bool(self.ahead_branches)

    def to_dict(self) -> dict:
        return {
            "path": str(self.path),
            "name": self.name,
            "dirty": self.dirty,
            "ahead_branches": self.ahead_branches,
            "branches": [b.to_dict() for b in self.branches],
        }


# =============================================================================
# Push events and results
# =============================================================================


@dataclass(frozen=True)
class SidebandMessage:
    """Text printed by the remote side (hook output, server messages)."""

    path: Path
    text: str


@dataclass(frozen=True)
class TransferProgress:
    """Object transfer counters reported by the transport."""

    path: Path
    received_objects: int = 0
    indexed_objects: int = 0
    total_objects: int = 0
    received_bytes: int = 0
    indexed_deltas: int = 0
    total_deltas: int = 0

    @property
    def resolving_deltas(self) -> bool:
        return self.total_objects > 0 and self.received_objects == self.total_objects


@dataclass(frozen=True)
class ReferenceUpdate:
    """A reference was created or moved as part of the push."""

    path: Path
    refname: str
    old: str
    new: str

    @property
    def is_new(self) -> bool:
        return set(self.old) <= {"0"}


PushEvent = SidebandMessage | TransferProgress | ReferenceUpdate


@dataclass
class PushResult:
    """Outcome of pushing one repository."""

    path: Path
    name: str
    outcome: PushOutcome
    remote: str = ""
    message: str = ""
    warning: str = ""
    updated_refs: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.outcome in (PushOutcome.SUCCEEDED, PushOutcome.SKIPPED)

    def to_dict(self) -> dict:
        return {
            "path": str(self.path),
            "name": self.name,
            "outcome": self.outcome.value,
            "remote": self.remote,
            "message": self.message,
            "warning": self.warning,
            "updated_refs": self.updated_refs,
        }


# =============================================================================
# Run report
# =============================================================================


@dataclass
class LeaveSummary:
    """Counts for the final summary line."""

    total: int = 0
    dirty: int = 0
    with_ahead_branches: int = 0
    ahead_branches: int = 0
    pushed: int = 0
    push_failed: int = 0
    warnings: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ScanReport:
    """Everything a run found, ready for presentation."""

    root: Path
    elapsed: float = 0.0
    repositories: list[RepositoryReport] = field(default_factory=list)
    warnings: list[ScanWarning] = field(default_factory=list)
    push_results: list[PushResult] | None = None

    @property
    def dirty_repositories(self) -> list[RepositoryReport]:
        return [r for r in self.repositories if r.dirty]

    @property
    def ahead_repositories(self) -> list[tuple[RepositoryReport, list[str]]]:
        return [(r, r.ahead_branches) for r in self.repositories if r.has_ahead_branches]

    @property
    def summary(self) -> LeaveSummary:
        summary = LeaveSummary(
            total=len(self.repositories),
            dirty=len(self.dirty_repositories),
            warnings=len(self.warnings),
        )
        for _, branches in self.ahead_repositories:
            summary.with_ahead_branches += 1
            summary.ahead_branches += len(branches)
        for result in self.push_results or []:
            if result.outcome == PushOutcome.SUCCEEDED:
                summary.pushed += 1
            elif result.outcome != PushOutcome.SKIPPED:
                summary.push_failed += 1
        return summary

    def to_dict(self) -> dict:
        return {
            "root": str(self.root),
            "elapsed": round(self.elapsed, 3),
            "repositories": [r.to_dict() for r in self.repositories],
            "dirty_repositories": [str(r.path) for r in self.dirty_repositories],
            "ahead_repositories": [
                {"path": str(r.path), "branches": branches}
                for r, branches in self.ahead_repositories
            ],
            "push_results": (
                [p.to_dict() for p in self.push_results]
                if self.push_results is not None
                else None
            ),
            "warnings": [w.to_dict() for w in self.warnings],
            "summary": self.summary.to_dict(),
        }
