"""Shared fixtures: real repositories built with pygit2 in a temporary directory."""

from __future__ import annotations

from pathlib import Path

import pygit2
import pytest
from helpers import commit_file, init_repo

from git_leave.config import LeaveConfig
from git_leave.core import RepositoryHandle


@pytest.fixture
def make_repo(tmp_path: Path):
    """Factory: a non-bare repository with one commit on `main`."""

    def _make(relative: str = "repo") -> pygit2.Repository:
        repo = init_repo(tmp_path / relative)
        commit_file(repo)
        return repo

    return _make


@pytest.fixture
def handle(make_repo) -> RepositoryHandle:
    return RepositoryHandle(make_repo())


@pytest.fixture
def config(tmp_path: Path) -> LeaveConfig:
    return LeaveConfig(
        ssh_key_path=tmp_path / "keys" / "id_rsa",
        max_workers=2,
        max_connections=2,
    )
