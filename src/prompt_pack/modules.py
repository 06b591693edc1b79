"""Module root detection.

A module is a directory recognised by a manifest file, by a project-relative
path pattern, or (when both detectors are off) by containing a public folder.
Detection looks both below the selected directories and up through the
ancestors of every selected entry, so a selected file inherits its enclosing
module.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, field_validator

from prompt_pack.cancellation import check_cancelled
from prompt_pack.file_store import rel_or_abs_key, relative_path
from prompt_pack.filters import Visit, is_ignored_dir, normalize_names, walk
from prompt_pack.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from prompt_pack.cancellation import CancellationToken
    from prompt_pack.file_store import FileNode


class ModuleDetectionConfig(BaseModel):
    """Rules used to recognise module root directories."""

    model_config = ConfigDict(frozen=True)

    detect_by_manifest: bool = True
    manifest_names: frozenset[str] = Field(default_factory=frozenset, description="Globs on file names.")
    detect_by_path_patterns: bool = False
    path_patterns: frozenset[str] = Field(default_factory=frozenset, description="Globs on relative paths.")
    require_public_folder: bool = True
    public_folder_names: frozenset[str] = Field(default_factory=frozenset)
    ignored_dirs: frozenset[str] = Field(default_factory=frozenset)

    @field_validator("manifest_names", "public_folder_names", "ignored_dirs", mode="before")
    @classmethod
    def _normalize(cls, value: Iterable[str] | str | None) -> frozenset[str]:
        return normalize_names(value)

    @field_validator("path_patterns", mode="before")
    @classmethod
    def _normalize_patterns(cls, value: Iterable[str] | str | None) -> frozenset[str]:
        return frozenset(p.strip("/").replace("\\", "/") for p in normalize_names(value))


@lru_cache(maxsize=256)
def _glob_regex(pattern: str) -> re.Pattern[str]:
    parts: list[str] = []
    for ch in pattern:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("".join(parts), re.DOTALL)


def glob_match(text: str, pattern: str) -> bool:
    """Match ``text`` against a glob supporting only ``*`` and ``?``.

    Matching is case-insensitive and anchored at both ends; ``*`` also matches
    ``/``.

    Args:
        text (str): the name or path to test
        pattern (str): the glob pattern

    Returns:
        bool: True if the whole of ``text`` matches
    """
    return _glob_regex(pattern.lower()).fullmatch(text.lower()) is not None


def has_manifest(directory: FileNode, patterns: Iterable[str]) -> bool:
    """Check if an immediate file child of ``directory`` matches a manifest glob."""
    pats = list(patterns)
    if not pats:
        return False
    for child in directory.children():
        if child.is_dir:
            continue
        if any(glob_match(child.name, p) for p in pats):
            return True
    return False


def matches_path_patterns(project_root: FileNode | None, directory: FileNode, patterns: Iterable[str]) -> bool:
    """Check the lower-cased project-relative path of ``directory`` against ``patterns``."""
    rel = relative_path(directory, project_root)
    if rel is None:
        return False
    return any(glob_match(rel, p) for p in patterns)


def has_public_folder(
    directory: FileNode,
    public_names: frozenset[str],
    ignored_dirs: frozenset[str] = frozenset(),
    *,
    cancel: CancellationToken | None = None,
) -> bool:
    """Check if any descendant directory of ``directory`` is named like a public folder.

    Ignored directories are not descended into. The search stops on the first hit.
    """
    found = False

    def visit(node: FileNode) -> Visit:
        nonlocal found
        if not node.is_dir:
            return Visit.SKIP
        if node is directory:
            return Visit.CONTINUE
        name = node.name.lower()
        if name in public_names:
            found = True
            return Visit.STOP
        if name in ignored_dirs:
            return Visit.SKIP
        return Visit.CONTINUE

    walk(directory, visit, cancel=cancel, phase="has_public_folder")
    return found


def is_module_dir(
    directory: FileNode,
    project_root: FileNode | None,
    config: ModuleDetectionConfig,
    *,
    cancel: CancellationToken | None = None,
) -> bool:
    """Apply the module predicate to a single directory.

    ``(manifest OR path OR (no detector enabled AND has public folder))
    AND (public folder not required OR has public folder)``.
    """
    if not directory.is_dir:
        return False
    by_manifest = config.detect_by_manifest and has_manifest(directory, config.manifest_names)
    by_path = config.detect_by_path_patterns and matches_path_patterns(
        project_root,
        directory,
        config.path_patterns,
    )
    if by_manifest or by_path:
        if not config.require_public_folder:
            return True
        return has_public_folder(directory, config.public_folder_names, config.ignored_dirs, cancel=cancel)
    if config.detect_by_manifest or config.detect_by_path_patterns:
        return False
    return has_public_folder(directory, config.public_folder_names, config.ignored_dirs, cancel=cancel)


def detect_modules(
    project_root: FileNode | None,
    selection: Sequence[FileNode],
    config: ModuleDetectionConfig,
    *,
    cancel: CancellationToken | None = None,
) -> list[FileNode]:
    """Find module root directories for a selection.

    Selected directories are searched downward (themselves included, ignored
    directories pruned); every selected entry is then walked upward through
    its ancestors up to the project root. Results are deduplicated and sorted
    by lower-cased root-relative path (absolute path outside the root).

    Args:
        project_root (FileNode | None): the project root; None disables the ancestor stop
        selection (Sequence[FileNode]): the selected files and directories
        config (ModuleDetectionConfig): detection rules
        cancel (CancellationToken | None): cooperative cancellation

    Returns:
        list[FileNode]: the detected module directories
    """
    found: dict[str, FileNode] = {}

    def visit(node: FileNode) -> Visit:
        if not node.is_dir:
            return Visit.SKIP
        if is_ignored_dir(node.name, config.ignored_dirs):
            return Visit.SKIP
        if is_module_dir(node, project_root, config, cancel=cancel):
            found.setdefault(node.path, node)
        return Visit.CONTINUE

    stop_path = project_root.parent.path if project_root is not None and project_root.parent else None
    for entry in selection:
        check_cancelled(cancel, "detect_modules")
        if entry.is_dir:
            walk(entry, visit, cancel=cancel, phase="detect_modules")
        cur: FileNode | None = entry if entry.is_dir else entry.parent
        while cur is not None and cur.path != stop_path:
            if cur.is_dir and is_module_dir(cur, project_root, config, cancel=cancel):
                found.setdefault(cur.path, cur)
            cur = cur.parent

    modules = sorted(found.values(), key=lambda m: rel_or_abs_key(m, project_root))
    logger.info("detected_modules", count=len(modules), modules=[m.path for m in modules])
    return modules
