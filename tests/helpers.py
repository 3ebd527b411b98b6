"""Builders for real repositories used across the test suite."""

from __future__ import annotations

from pathlib import Path

import pygit2


SIGNATURE = pygit2.Signature("Test User", "test@example.com")


def init_repo(path: Path, bare: bool = False) -> pygit2.Repository:
    """Create a repository whose initial branch is `main`."""
    path.mkdir(parents=True, exist_ok=True)
    return pygit2.init_repository(str(path), bare=bare, initial_head="main")


def commit_file(
    repo: pygit2.Repository,
    name: str = "README.md",
    content: str = "hello\n",
    message: str | None = None,
) -> pygit2.Oid:
    """Write a file, stage it and commit it on HEAD, leaving the tree clean."""
    (Path(repo.workdir) / name).write_text(content)
    repo.index.add(name)
    repo.index.write()
    tree = repo.index.write_tree()
    parents = [] if repo.head_is_unborn else [repo.head.target]
    return repo.create_commit(
        "HEAD", SIGNATURE, SIGNATURE, message or f"Update {name}", tree, parents
    )


def detached_commit(repo: pygit2.Repository, parent: pygit2.Oid, message: str) -> pygit2.Oid:
    """Create a commit on top of `parent` without moving any reference."""
    tree = repo.get(parent).tree.id
    return repo.create_commit(None, SIGNATURE, SIGNATURE, message, tree, [parent])


def set_upstream(
    repo: pygit2.Repository,
    target: pygit2.Oid,
    branch: str = "main",
    remote: str = "origin",
    url: str = "/nonexistent/remote.git",
) -> None:
    """Point `<remote>/<branch>` at `target` and make it the branch's upstream."""
    if remote not in list(repo.remotes.names()):
        repo.remotes.create(remote, url)
    repo.references.create(f"refs/remotes/{remote}/{branch}", target, force=True)
    repo.branches.local[branch].upstream = repo.branches.remote[f"{remote}/{branch}"]


