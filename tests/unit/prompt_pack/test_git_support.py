from __future__ import annotations

import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from prompt_pack import git_support
from prompt_pack.exceptions import GitCommandError
from prompt_pack.file_store import LocalFileNode
from prompt_pack.git_support import (
    FALLBACK_REF,
    GitOutput,
    diff_against,
    find_repo_root,
    resolve_default_ref,
    run_git,
)

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


def _out(returncode: int = 0, stdout: str = "", stderr: str = "") -> GitOutput:
    return GitOutput(returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.mark.unit
def test_run_git_captures_output(tmp_path: Path, mocker: MockerFixture) -> None:
    completed = subprocess.CompletedProcess(args=["git"], returncode=1, stdout="diff", stderr="warn")
    run = mocker.patch.object(git_support.subprocess, "run", return_value=completed)

    out = run_git(tmp_path, ["status"])

    assert out == GitOutput(returncode=1, stdout="diff", stderr="warn")
    assert run.call_args.args[0] == ["git", "status"]
    assert run.call_args.kwargs["cwd"] == str(tmp_path)
    assert run.call_args.kwargs["check"] is False


@pytest.mark.unit
def test_run_git_raises_when_git_is_missing(tmp_path: Path, mocker: MockerFixture) -> None:
    mocker.patch.object(git_support.subprocess, "run", side_effect=FileNotFoundError("git"))

    with pytest.raises(GitCommandError) as exc_info:
        run_git(tmp_path, ["status"])

    assert exc_info.value.command == "git status"
    assert exc_info.value.returncode == -1


@pytest.mark.unit
def test_resolve_default_ref_prefers_configured(tmp_path: Path, mocker: MockerFixture) -> None:
    run = mocker.patch.object(git_support, "run_git")

    assert resolve_default_ref(tmp_path, "  origin/develop ") == "origin/develop"
    run.assert_not_called()


@pytest.mark.unit
def test_resolve_default_ref_uses_origin_head(tmp_path: Path, mocker: MockerFixture) -> None:
    mocker.patch.object(git_support, "run_git", return_value=_out(stdout="origin/trunk\n"))

    assert resolve_default_ref(tmp_path, None) == "origin/trunk"


@pytest.mark.unit
def test_resolve_default_ref_parses_remote_show(tmp_path: Path, mocker: MockerFixture) -> None:
    remote_show = "* remote origin\n  Fetch URL: git@host:x.git\n  HEAD branch: release\n"
    mocker.patch.object(
        git_support,
        "run_git",
        side_effect=[_out(returncode=1), _out(stdout=remote_show)],
    )

    assert resolve_default_ref(tmp_path, "") == "origin/release"


@pytest.mark.unit
def test_resolve_default_ref_falls_back(tmp_path: Path, mocker: MockerFixture) -> None:
    mocker.patch.object(
        git_support,
        "run_git",
        side_effect=[_out(returncode=1), _out(stdout="  HEAD branch: (unknown)\n")],
    )

    assert resolve_default_ref(tmp_path, "") == FALLBACK_REF


@pytest.mark.unit
def test_diff_against_passes_paths_after_separator(tmp_path: Path, mocker: MockerFixture) -> None:
    run = mocker.patch.object(git_support, "run_git", return_value=_out(stdout="d"))

    diff_against(tmp_path, "origin/main", ["src/a.py", "b.txt"])

    args = run.call_args.args[1]
    assert args[0] == "diff"
    assert args[-4:] == ["origin/main", "--", "src/a.py", "b.txt"]


@pytest.mark.unit
def test_find_repo_root(tmp_path: Path) -> None:
    project = tmp_path / "proj"
    (project / "sub" / ".git").mkdir(parents=True)
    (project / "sub" / "src").mkdir()
    (project / "sub" / "src" / "a.py").write_text("x", encoding="utf-8")
    (project / "other").mkdir()
    root = LocalFileNode(project)

    found = find_repo_root(root, [LocalFileNode(project / "sub" / "src" / "a.py")])

    assert found is not None
    assert found.path == LocalFileNode(project / "sub").path
    assert find_repo_root(root, [LocalFileNode(project / "other")]) is None
    assert find_repo_root(None, [LocalFileNode(project / "other")]) is None

    (project / ".git").mkdir()
    assert find_repo_root(root, [LocalFileNode(project / "other")]) == root
