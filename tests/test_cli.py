"""Tests for the typer command line."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from helpers import commit_file, set_upstream
from typer.testing import CliRunner

from git_leave import __version__
from git_leave.cli import app
from git_leave.config import ENV_DEFAULT_FOLDER

runner = CliRunner()


@pytest.fixture
def workspace(tmp_path: Path, make_repo) -> Path:
    clean = make_repo("projects/clean")
    set_upstream(clean, clean.head.target)

    dirty = make_repo("projects/dirty")
    (Path(dirty.workdir) / "notes.txt").write_text("wip")

    ahead = make_repo("projects/ahead")
    set_upstream(ahead, ahead.head.target, url=str(tmp_path / "gone.git"))
    commit_file(ahead, "feature.txt", "unpushed")

    return (tmp_path / "projects").resolve()


@pytest.fixture(autouse=True)
def no_global_default(monkeypatch):
    monkeypatch.delenv(ENV_DEFAULT_FOLDER, raising=False)
    monkeypatch.setattr("git_leave.config.read_global_default_folder", lambda: None)


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_schema():
    result = runner.invoke(app, ["--schema"])

    assert result.exit_code == 0
    schema = json.loads(result.stdout)
    assert schema["name"] == "git-leave"


def test_json_report(workspace: Path):
    result = runner.invoke(app, [str(workspace), "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["summary"]["total"] == 3
    assert data["dirty_repositories"] == [str(workspace / "dirty")]
    assert data["ahead_repositories"] == [
        {"path": str(workspace / "ahead"), "branches": ["main"]}
    ]
    assert data["push_results"] is None


def test_json_push_failure_still_exits_zero(workspace: Path):
    result = runner.invoke(app, [str(workspace), "--json", "--push", "--sequential"])

    assert result.exit_code == 0
    outcomes = {p["name"]: p["outcome"] for p in json.loads(result.stdout)["push_results"]}
    assert outcomes == {
        "ahead": "network_or_protocol_error",
        "clean": "skipped",
        "dirty": "skipped",
    }


def test_text_report(workspace: Path):
    result = runner.invoke(app, [str(workspace), "--notrim"])

    assert result.exit_code == 0
    assert "dirty repositories" in result.stdout
    assert "have not pushed commits to remote" in result.stdout
    assert "No upstream branch for main" in result.stdout


def test_empty_directory(tmp_path: Path):
    result = runner.invoke(app, [str(tmp_path)])

    assert result.exit_code == 0
    assert "No git repositories found" in result.stdout


def test_missing_directory_exits_with_error(tmp_path: Path):
    result = runner.invoke(app, [str(tmp_path / "missing")])

    assert result.exit_code == 1
    assert "Could not get absolute path" in result.stdout


def test_default_folder_from_environment(workspace: Path, monkeypatch):
    monkeypatch.setenv(ENV_DEFAULT_FOLDER, str(workspace))

    result = runner.invoke(app, ["--default", "--json"])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["root"] == str(workspace)


def test_default_folder_unset_exits_with_error():
    result = runner.invoke(app, ["--default"])

    assert result.exit_code == 1
    assert "No default folder configured" in result.stdout


def test_invalid_worker_count(workspace: Path):
    result = runner.invoke(app, [str(workspace), "--workers", "0"])

    assert result.exit_code == 1
    assert "Worker count must be at least" in result.stdout
