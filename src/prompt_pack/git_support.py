from __future__ import annotations

import subprocess  # noqa: S404
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from prompt_pack.exceptions import GitCommandError
from prompt_pack.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from prompt_pack.file_store import FileNode

GIT_TIMEOUT_SECONDS = 60
FALLBACK_REF = "origin/main"
_HEAD_BRANCH_PREFIX = "HEAD branch: "


class GitOutput(BaseModel):
    """Captured result of a git invocation."""

    model_config = ConfigDict(frozen=True)

    returncode: int
    stdout: str
    stderr: str


def run_git(workdir: Path, args: Sequence[str], timeout: int = GIT_TIMEOUT_SECONDS) -> GitOutput:
    """Run ``git <args>`` in ``workdir`` and capture its output.

    A non-zero exit is returned, not raised: some commands report differences
    through their exit code.

    Raises:
        GitCommandError: if git cannot be started or times out
    """
    cmd = ["git", *args]
    logger.info("git_invocation", cwd=str(workdir), args=list(args))
    try:
        out = subprocess.run(  # noqa: S603
            cmd,
            cwd=str(workdir),
            text=True,
            capture_output=True,
            check=False,
            timeout=timeout,
            encoding="utf-8",
            errors="replace",
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise GitCommandError(command=" ".join(cmd), returncode=-1, stdout="", stderr=str(e)) from e
    return GitOutput(returncode=out.returncode, stdout=out.stdout or "", stderr=out.stderr or "")


def _has_git_dir(node: FileNode | None) -> bool:
    return node is not None and node.is_dir and any(c.name == ".git" for c in node.children())


def find_repo_root(project_root: FileNode | None, selection: Sequence[FileNode]) -> FileNode | None:
    """Return the git work tree root for a selection.

    The project root wins when it holds ``.git``; otherwise the nearest
    ancestor of a selected entry (up to the project root) holding ``.git``.
    """
    if project_root is None:
        return None
    if _has_git_dir(project_root):
        return project_root
    stop = project_root.parent.path if project_root.parent else None
    for entry in selection:
        cur: FileNode | None = entry if entry.is_dir else entry.parent
        while cur is not None and cur.path != stop:
            if _has_git_dir(cur):
                return cur
            cur = cur.parent
    return None


def resolve_default_ref(repo_root: Path, configured: str | None) -> str:
    """Pick the ref to diff against.

    Uses ``configured`` when set, then ``origin/HEAD``, then the ``HEAD branch``
    reported by ``git remote show origin``, then ``origin/main``.
    """
    cfg = (configured or "").strip()
    if cfg:
        return cfg

    sym = run_git(repo_root, ["symbolic-ref", "--quiet", "--short", "refs/remotes/origin/HEAD"])
    if sym.returncode == 0 and sym.stdout.strip():
        return sym.stdout.strip()

    show = run_git(repo_root, ["remote", "show", "origin"])
    if show.returncode == 0:
        for line in show.stdout.splitlines():
            line = line.strip()  # noqa: PLW2901
            if line.startswith(_HEAD_BRANCH_PREFIX):
                head = line.removeprefix(_HEAD_BRANCH_PREFIX).strip()
                if head and head != "(unknown)":
                    return f"origin/{head}"

    return FALLBACK_REF


def diff_against(repo_root: Path, ref: str, rel_paths: Sequence[str]) -> GitOutput:
    """Run a unified diff of ``rel_paths`` against ``ref``."""
    return run_git(repo_root, ["diff", "--no-color", "--unified=3", "-M", ref, "--", *rel_paths])
