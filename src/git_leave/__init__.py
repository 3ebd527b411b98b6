"""git-leave: check for unsaved or uncommitted changes before leaving your desk."""

from ._version import __version__
from .cli import app
from .config import LeaveConfig, load_config
from .core import (
    LeaveManager,
    RepositoryHandle,
    crawl_directory_for_repos,
    detect_branch_statuses,
    find_ahead_branches,
    is_repo_dirty,
)
from .formatters import OutputFormatter
from .models import (
    BranchState,
    BranchStatus,
    ConfigError,
    CrawlError,
    GitLeaveError,
    PushOutcome,
    PushResult,
    ReferenceUpdate,
    RepositoryReport,
    ScanReport,
    ScanWarning,
    SidebandMessage,
    TransferProgress,
)
from .prompt import AskDefault, ask
from .push import PushOrchestrator
from .schema import get_tool_schema

__all__ = [
    # Version
    "__version__",
    # CLI
    "app",
    # Models
    "BranchState",
    "BranchStatus",
    "PushOutcome",
    "PushResult",
    "ReferenceUpdate",
    "RepositoryReport",
    "ScanReport",
    "ScanWarning",
    "SidebandMessage",
    "TransferProgress",
    # Errors
    "ConfigError",
    "CrawlError",
    "GitLeaveError",
    # Operations
    "LeaveConfig",
    "LeaveManager",
    "PushOrchestrator",
    "RepositoryHandle",
    "crawl_directory_for_repos",
    "detect_branch_statuses",
    "find_ahead_branches",
    "is_repo_dirty",
    "load_config",
    # Prompt
    "AskDefault",
    "ask",
    # Formatters
    "OutputFormatter",
    "get_tool_schema",
]
