"""MCP-compatible tool schema for AI agents."""

from __future__ import annotations

from ._version import __version__
from .models import BranchState, PushOutcome


def get_tool_schema() -> dict:
    """Generate MCP-compatible tool schema for AI agents."""
    return {
        "name": "git-leave",
        "version": __version__,
        "description": "Check every Git repository under a directory before leaving your desk. Finds dirty working trees and local branches with commits their upstream does not have, and can push those branches to their remotes.",
        "usage": "git-leave [directory] [options]",
        "tools": [
            {
                "name": "git-leave",
                "description": "Crawl a directory for Git repositories, report dirty repositories and branches ahead of their upstream, and optionally push them. Bare repositories and repositories nested inside another repository are not reported.",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "directory": {
                            "type": "string",
                            "description": "Root directory to search (default: current directory)",
                            "default": ".",
                        },
                        "push": {
                            "type": "boolean",
                            "description": "Push ahead branches using the SSH key at ~/.ssh/id_rsa",
                            "default": False,
                        },
                        "default": {
                            "type": "boolean",
                            "description": "Search the configured default folder ($GIT_LEAVE_DEFAULT_FOLDER or leaveTool.defaultFolder in the global git config)",
                            "default": False,
                        },
                        "json": {
                            "type": "boolean",
                            "description": "Output as JSON for machine parsing",
                            "default": False,
                        },
                        "sequential": {
                            "type": "boolean",
                            "description": "Run sequentially instead of parallel",
                            "default": False,
                        },
                    },
                    "required": [],
                },
                "outputSchema": {
                    "type": "object",
                    "properties": {
                        "root": {"type": "string"},
                        "elapsed": {
                            "type": "number",
                            "description": "Seconds spent crawling",
                        },
                        "repositories": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "path": {"type": "string"},
                                    "name": {"type": "string"},
                                    "dirty": {"type": "boolean"},
                                    "ahead_branches": {
                                        "type": "array",
                                        "items": {"type": "string"},
                                    },
                                    "branches": {
                                        "type": "array",
                                        "items": {
                                            "type": "object",
                                            "properties": {
                                                "branch_name": {"type": "string"},
                                                "upstream_present": {"type": "boolean"},
                                                "is_ahead": {"type": ["boolean", "null"]},
                                                "upstream_name": {"type": "string"},
                                                "state": {
                                                    "type": "string",
                                                    "enum": [s.value for s in BranchState],
                                                },
                                            },
                                        },
                                    },
                                },
                            },
                        },
                        "dirty_repositories": {
                            "type": "array",
                            "items": {"type": "string"},
                        },
                        "ahead_repositories": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "path": {"type": "string"},
                                    "branches": {"type": "array", "items": {"type": "string"}},
                                },
                            },
                        },
                        "push_results": {
                            "type": ["array", "null"],
                            "description": "Present only when push was requested",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "path": {"type": "string"},
                                    "outcome": {
                                        "type": "string",
                                        "enum": [o.value for o in PushOutcome],
                                    },
                                    "remote": {"type": "string"},
                                    "message": {"type": "string"},
                                    "warning": {"type": "string"},
                                },
                            },
                        },
                        "warnings": {
                            "type": "array",
                            "description": "Per-repository or per-branch failures that did not stop the run",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "path": {"type": "string"},
                                    "message": {"type": "string"},
                                    "branch": {"type": ["string", "null"]},
                                },
                            },
                        },
                        "summary": {
                            "type": "object",
                            "properties": {
                                "total": {"type": "integer"},
                                "dirty": {"type": "integer"},
                                "with_ahead_branches": {"type": "integer"},
                                "ahead_branches": {"type": "integer"},
                                "pushed": {"type": "integer"},
                                "push_failed": {"type": "integer"},
                                "warnings": {"type": "integer"},
                            },
                        },
                    },
                },
                "examples": [
                    {
                        "description": "Report repositories under the current directory",
                        "command": "git-leave --json",
                    },
                    {
                        "description": "Push everything under ~/Development",
                        "command": "git-leave ~/Development --push --json",
                    },
                ],
            },
        ],
        "notes": [
            "A branch that has diverged from its upstream is reported as not ahead (state 'not_ahead'), never as up to date",
            "Push failures are reported per repository and never stop the run",
            "Use --json without --push first to see what would be pushed",
        ],
    }
