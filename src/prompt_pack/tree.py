from __future__ import annotations

from typing import TYPE_CHECKING, assert_never

from prompt_pack.blocks import fenced
from prompt_pack.config import DEFAULT_TREE_INDENT, DEFAULT_TREE_MAX_ENTRIES, TreeScope
from prompt_pack.filters import is_ignored_dir

if TYPE_CHECKING:
    from collections.abc import Sequence

    from prompt_pack.file_store import FileNode


def tree_header(scope: TreeScope) -> str:
    """Return the one-line header for a tree scope."""
    match scope:
        case TreeScope.PROJECT:
            return "File tree (project):"
        case TreeScope.SELECTION:
            return "File tree (selection):"
        case TreeScope.NONE:
            return "File tree: off"
        case _:
            assert_never(scope)


def tree_roots(
    scope: TreeScope,
    project_root: FileNode | None,
    selection: Sequence[FileNode],
) -> list[FileNode]:
    match scope:
        case TreeScope.PROJECT:
            return [project_root] if project_root is not None else []
        case TreeScope.SELECTION:
            return list(selection)
        case TreeScope.NONE:
            return []
        case _:
            assert_never(scope)


def _filtered_children(
    directory: FileNode,
    ignored_dirs: frozenset[str],
    ignored_exts: frozenset[str],
) -> list[FileNode]:
    kept: list[FileNode] = []
    for child in directory.children():
        if child.is_dir:
            if not is_ignored_dir(child.name, ignored_dirs):
                kept.append(child)
            continue
        ext = child.extension
        if ext is not None and ext.lower() in ignored_exts:
            continue
        if child.is_binary():
            continue
        kept.append(child)
    return sorted(kept, key=lambda n: (not n.is_dir, n.name.lower()))


def render_tree_body(
    roots: Sequence[FileNode],
    ignored_dirs: frozenset[str],
    ignored_exts: frozenset[str],
    *,
    max_entries: int = DEFAULT_TREE_MAX_ENTRIES,
    indent_size: int = DEFAULT_TREE_INDENT,
    show_dir_slash: bool = True,
) -> str:
    """Render an indented, pre-order listing of ``roots``.

    Directories come before files, then names sort case-insensitively. A node
    reached twice (same path and kind) is rendered once. Rendering stops after
    ``max_entries`` lines and a truncation marker is appended.

    Args:
        roots (Sequence[FileNode]): the nodes rendered at depth 0
        ignored_dirs (frozenset[str]): directory names left out with their subtree
        ignored_exts (frozenset[str]): extensions left out
        max_entries (int): cap on rendered nodes
        indent_size (int): spaces per depth level
        show_dir_slash (bool): suffix directory names with ``/``

    Returns:
        str: the rendered lines, newline terminated
    """
    max_entries = max(1, max_entries)
    lines: list[str] = []
    visited: set[tuple[str, bool]] = set()
    stack: list[tuple[FileNode, int]] = [(r, 0) for r in reversed(roots)]

    while stack and len(lines) < max_entries:
        node, depth = stack.pop()
        key = (node.path, node.is_dir)
        if key in visited:
            continue
        visited.add(key)

        label = node.name or node.path
        if node.is_dir and show_dir_slash:
            label += "/"
        lines.append(" " * (depth * indent_size) + label)

        if node.is_dir and len(lines) < max_entries:
            children = _filtered_children(node, ignored_dirs, ignored_exts)
            stack.extend((c, depth + 1) for c in reversed(children))

    if len(lines) >= max_entries:
        lines.append(f"... (truncated at {max_entries} entries)")
    return "".join(f"{ln}\n" for ln in lines)


def render_tree(
    scope: TreeScope,
    project_root: FileNode | None,
    selection: Sequence[FileNode],
    ignored_dirs: frozenset[str],
    ignored_exts: frozenset[str],
    *,
    max_entries: int = DEFAULT_TREE_MAX_ENTRIES,
    indent_size: int = DEFAULT_TREE_INDENT,
    show_dir_slash: bool = True,
) -> str:
    """Render the tree header followed by the fenced tree body.

    With scope NONE, or no root to render, only the header line is returned.
    """
    header = tree_header(scope) + "\n"
    roots = tree_roots(scope, project_root, selection)
    if not roots:
        return header
    body = render_tree_body(
        roots,
        ignored_dirs,
        ignored_exts,
        max_entries=max_entries,
        indent_size=indent_size,
        show_dir_slash=show_dir_slash,
    )
    return header + fenced(body.rstrip(), "text")
