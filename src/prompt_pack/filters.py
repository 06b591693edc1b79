from __future__ import annotations

from enum import StrEnum, auto
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, field_validator

from prompt_pack.cancellation import check_cancelled
from prompt_pack.logging import logger

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from prompt_pack.cancellation import CancellationToken
    from prompt_pack.file_store import FileNode


def normalize_names(values: Iterable[str] | str | None, *, strip_dots: bool = False) -> frozenset[str]:
    """Normalize a collection of names for case-insensitive membership tests.

    Entries are trimmed and lower-cased, blank entries are dropped. A single
    string is treated as a comma separated list.

    Args:
        values (Iterable[str] | str | None): the raw names
        strip_dots (bool): remove leading dots (used for extensions)

    Returns:
        frozenset[str]: the normalized names
    """
    if values is None:
        return frozenset()
    if isinstance(values, str):
        values = values.split(",")
    out: set[str] = set()
    for v in values:
        v2 = str(v).strip().lower()
        if strip_dots:
            v2 = v2.lstrip(".")
        if v2:
            out.add(v2)
    return frozenset(out)


class FilterConfig(BaseModel):
    """Ignore lists applied to directory names, extensions and exact file names."""

    model_config = ConfigDict(frozen=True)

    ignored_dirs: frozenset[str] = Field(default_factory=frozenset, description="Directory names to prune.")
    ignored_exts: frozenset[str] = Field(default_factory=frozenset, description="Extensions, without dot.")
    ignored_files: frozenset[str] = Field(default_factory=frozenset, description="Exact file names.")

    @field_validator("ignored_dirs", "ignored_files", mode="before")
    @classmethod
    def _normalize_names(cls, value: Iterable[str] | str | None) -> frozenset[str]:
        return normalize_names(value)

    @field_validator("ignored_exts", mode="before")
    @classmethod
    def _normalize_exts(cls, value: Iterable[str] | str | None) -> frozenset[str]:
        return normalize_names(value, strip_dots=True)


def is_ignored_dir(name: str, ignored_dirs: frozenset[str] | set[str]) -> bool:
    """Check if a directory name is in the ignore list (case-insensitive)."""
    return name.lower() in ignored_dirs


def should_include(
    node: FileNode,
    ignored_exts: frozenset[str] | set[str],
    ignored_files: frozenset[str] | set[str],
) -> bool:
    """Decide whether a single file passes the filters.

    A file is excluded when its lower-cased name is in ``ignored_files``, its
    lower-cased extension is in ``ignored_exts``, or its content is binary.

    Args:
        node (FileNode): the file to test
        ignored_exts (frozenset[str]): lower-cased extensions without dot
        ignored_files (frozenset[str]): lower-cased exact file names

    Returns:
        bool: True if the file should be included
    """
    if node.name.lower() in ignored_files:
        return False
    ext = node.extension
    if ext is not None and ext.lower() in ignored_exts:
        return False
    return not node.is_binary()


class Visit(StrEnum):
    """Decision returned by a :func:`walk` visitor for each node."""

    CONTINUE = auto()
    SKIP = auto()
    STOP = auto()


def walk(
    start: FileNode,
    visitor: Callable[[FileNode], Visit],
    *,
    cancel: CancellationToken | None = None,
    phase: str = "walk",
) -> None:
    """Depth-first, pre-order walk of ``start`` and its descendants.

    ``visitor`` is called for every reached node, ``start`` included.
    CONTINUE descends into a directory, SKIP prunes its subtree (it has no
    effect on files), STOP ends the walk. A directory whose real path was
    already expanded during this walk is not expanded again, so symlink loops
    terminate.

    Args:
        start (FileNode): the first node to visit
        visitor (Callable[[FileNode], Visit]): decision function
        cancel (CancellationToken | None): checked before each directory expansion
        phase (str): label reported on cancellation
    """
    stack: list[FileNode] = [start]
    expanded: set[str] = set()
    while stack:
        node = stack.pop()
        decision = visitor(node)
        if decision is Visit.STOP:
            return
        if decision is Visit.SKIP or not node.is_dir:
            continue
        if node.real_path in expanded:
            logger.warning("directory_cycle_skipped", path=node.path, real_path=node.real_path)
            continue
        expanded.add(node.real_path)
        check_cancelled(cancel, phase)
        stack.extend(reversed(node.children()))


def collect_files(
    start: FileNode,
    out: dict[str, FileNode],
    *,
    ignored_dirs: frozenset[str] | set[str],
    ignored_exts: frozenset[str] | set[str],
    ignored_files: frozenset[str] | set[str],
    cancel: CancellationToken | None = None,
) -> None:
    """Collect the eligible files under ``start`` into ``out``.

    ``out`` maps ``FileNode.path`` to the node and keeps first-insertion order,
    so calling this for several starts yields a deduplicated, first-visit ordered
    set.

    Args:
        start (FileNode): a file or directory
        out (dict[str, FileNode]): destination ordered set
        ignored_dirs (frozenset[str]): directory names pruned at any depth
        ignored_exts (frozenset[str]): ignored extensions
        ignored_files (frozenset[str]): ignored exact file names
        cancel (CancellationToken | None): cooperative cancellation
    """
    if not start.is_dir:
        if should_include(start, ignored_exts, ignored_files):
            out.setdefault(start.path, start)
        return
    if is_ignored_dir(start.name, ignored_dirs):
        return

    def visit(node: FileNode) -> Visit:
        if node.is_dir:
            return Visit.SKIP if is_ignored_dir(node.name, ignored_dirs) else Visit.CONTINUE
        if should_include(node, ignored_exts, ignored_files):
            out.setdefault(node.path, node)
        return Visit.SKIP

    walk(start, visit, cancel=cancel, phase="collect_files")


def collect_selection(
    selection: Iterable[FileNode],
    filters: FilterConfig,
    *,
    cancel: CancellationToken | None = None,
) -> list[FileNode]:
    """Collect the eligible files of every selection entry, deduplicated in first-visit order."""
    out: dict[str, FileNode] = {}
    for start in selection:
        collect_files(
            start,
            out,
            ignored_dirs=filters.ignored_dirs,
            ignored_exts=filters.ignored_exts,
            ignored_files=filters.ignored_files,
            cancel=cancel,
        )
    logger.info("collected_files", count=len(out))
    return list(out.values())
