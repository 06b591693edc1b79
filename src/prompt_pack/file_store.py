"""Read-only view of the host file store, plus the export sink that writes artifacts.

The core only consumes the :class:`FileNode` protocol. :class:`LocalFileNode`
implements it over :mod:`pathlib` for the command line; an editor host would
provide its own implementation backed by its virtual file system.
"""

from __future__ import annotations

import codecs
import os
from functools import cached_property
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from prompt_pack.exceptions import ExportWriteError
from prompt_pack.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence

SNIFF_BYTES = 8192


@runtime_checkable
class FileNode(Protocol):
    """Handle to a file or directory owned by the host file store."""

    @property
    def name(self) -> str: ...

    @property
    def path(self) -> str: ...

    @property
    def real_path(self) -> str: ...

    @property
    def is_dir(self) -> bool: ...

    @property
    def extension(self) -> str | None: ...

    @property
    def byte_length(self) -> int: ...

    @property
    def parent(self) -> FileNode | None: ...

    def children(self) -> Sequence[FileNode]: ...

    def is_binary(self) -> bool: ...

    def read_text(self) -> str: ...


def extension_of(name: str) -> str | None:
    """Return the text after the last dot of ``name``, or None when there is none.

    Args:
        name (str): a file name without directory components

    Returns:
        str | None: the extension without its dot (``".gitignore"`` gives ``"gitignore"``)
    """
    _, dot, ext = name.rpartition(".")
    if not dot or not ext:
        return None
    return ext


def sniff_binary(data: bytes) -> bool:
    """Check if a leading chunk of file content looks binary.

    A NUL byte or an invalid UTF-8 sequence means binary. A multi-byte
    character cut by the end of the chunk is not an error.

    Args:
        data (bytes): the first bytes of a file

    Returns:
        bool: True if the content should be treated as binary
    """
    if b"\x00" in data:
        return True
    decoder = codecs.getincrementaldecoder("utf-8")()
    try:
        decoder.decode(data, final=False)
    except UnicodeDecodeError:
        return True
    return False


class LocalFileNode:
    """A :class:`FileNode` backed by a local filesystem path."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(os.path.abspath(path))  # noqa: PTH100

    def __repr__(self) -> str:
        return f"LocalFileNode({self.path!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LocalFileNode):
            return NotImplemented
        return self.path == other.path

    def __hash__(self) -> int:
        return hash(self.path)

    @property
    def fs_path(self) -> Path:
        return self._path

    @property
    def name(self) -> str:
        return self._path.name

    @cached_property
    def path(self) -> str:
        return self._path.as_posix()

    @cached_property
    def real_path(self) -> str:
        return Path(os.path.realpath(self._path)).as_posix()

    @cached_property
    def is_dir(self) -> bool:
        return self._path.is_dir()

    @property
    def extension(self) -> str | None:
        return extension_of(self.name)

    @property
    def byte_length(self) -> int:
        try:
            return self._path.stat().st_size
        except OSError:
            return 0

    @property
    def parent(self) -> LocalFileNode | None:
        parent = self._path.parent
        if parent == self._path:
            return None
        return LocalFileNode(parent)

    def children(self) -> list[LocalFileNode]:
        if not self.is_dir:
            return []
        try:
            entries = sorted(self._path.iterdir(), key=lambda p: p.name)
        except OSError as e:
            logger.warning("list_directory_failed", path=self.path, error=str(e))
            return []
        return [LocalFileNode(p) for p in entries]

    def is_binary(self) -> bool:
        if self.is_dir:
            return False
        try:
            with self._path.open("rb") as f:
                chunk = f.read(SNIFF_BYTES)
        except OSError:
            return True
        return sniff_binary(chunk)

    def read_text(self) -> str:
        return self._path.read_text(encoding="utf-8", errors="replace")


def relative_path(node: FileNode, root: FileNode | None) -> str | None:
    """Return the ``/``-separated path of ``node`` relative to ``root``.

    Args:
        node (FileNode): the node to relativise
        root (FileNode | None): the project root

    Returns:
        str | None: ``""`` for the root itself, the relative path for a descendant,
            or None when ``node`` is not under ``root`` (or there is no root)
    """
    if root is None:
        return None
    base = root.path.rstrip("/")
    if node.path == root.path or node.path == base:
        return ""
    prefix = base + "/"
    if node.path.startswith(prefix):
        return node.path[len(prefix) :]
    return None


def rel_or_abs_key(node: FileNode, root: FileNode | None) -> str:
    """Sort key: lower-cased relative path, or absolute path when outside ``root``."""
    rel = relative_path(node, root)
    return (rel if rel is not None else node.path).lower()


class ExportSink(Protocol):
    """Destination for export artifacts."""

    def ensure_directory(self, path: Path) -> Path: ...

    def create_or_overwrite(self, dir_path: Path, file_name: str, content: str) -> Path: ...


class LocalExportSink:
    """Write export artifacts as UTF-8 files on the local filesystem."""

    def ensure_directory(self, path: Path) -> Path:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ExportWriteError(path=path, message=f"Cannot create export directory: {e}") from e
        return path

    def create_or_overwrite(self, dir_path: Path, file_name: str, content: str) -> Path:
        target = dir_path / file_name
        try:
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ExportWriteError(path=target, message=f"Cannot write export artifact: {e}") from e
        return target
