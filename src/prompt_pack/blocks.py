from __future__ import annotations

import re
from typing import TYPE_CHECKING

from prompt_pack.config import EXT_TO_LANG
from prompt_pack.exceptions import FileProcessingError
from prompt_pack.file_store import relative_path

if TYPE_CHECKING:
    from collections.abc import Mapping

    from prompt_pack.file_store import FileNode

_BACKTICK_RUN = re.compile(r"`+")

DIRECTORY_PLACEHOLDER = "(directory)"


def fenced(content: str, lang: str | None = None) -> str:
    """Wrap ``content`` in a Markdown fenced block that cannot collide with it.

    The fence is one backtick longer than the longest backtick run inside
    ``content`` (minimum 3).

    Args:
        content (str): the text to wrap, kept byte-identical
        lang (str | None): info string of the opening fence; blank means ``text``

    Returns:
        str: the fenced block, without a trailing newline
    """
    longest = max((len(m.group(0)) for m in _BACKTICK_RUN.finditer(content)), default=0)
    fence = "`" * max(3, longest + 1)
    info = lang if lang and lang.strip() else "text"
    return f"{fence}{info}\n{content}\n{fence}"


def code_fence_language_hint(node: FileNode) -> str | None:
    """Return the fence language for a file, from its extension.

    Unknown extensions pass through lower-cased, a missing extension gives None.
    """
    ext = node.extension
    if ext is None:
        return None
    ext = ext.lower()
    return EXT_TO_LANG.get(ext, ext)


def path_label(node: FileNode, project_root: FileNode | None) -> str:
    """Return ``./relative/path`` for nodes under the root, the absolute path otherwise."""
    rel = relative_path(node, project_root)
    if rel:
        return f"./{rel}"
    return node.path


def binary_placeholder(node: FileNode) -> str:
    return f"(binary file: {node.byte_length} bytes)"


def read_text_for(node: FileNode, overlay: Mapping[str, str] | None = None) -> str:
    """Return the current text of ``node``.

    Unsaved text from ``overlay`` (keyed by ``FileNode.path``) wins over the
    stored content; directories and binary files get a placeholder.

    Raises:
        FileProcessingError: if the stored content cannot be read
    """
    if overlay is not None and node.path in overlay:
        return overlay[node.path]
    if node.is_dir:
        return DIRECTORY_PLACEHOLDER
    if node.is_binary():
        return binary_placeholder(node)
    try:
        return node.read_text()
    except OSError as e:
        raise FileProcessingError(path=node.path, message=f"Cannot read {node.path}: {e}") from e


def build_block(
    node: FileNode,
    project_root: FileNode | None,
    overlay: Mapping[str, str] | None = None,
) -> str:
    """Render one file as ``path:`` followed by its fenced content."""
    content = read_text_for(node, overlay)
    return f"{path_label(node, project_root)}:\n{fenced(content, code_fence_language_hint(node))}"
