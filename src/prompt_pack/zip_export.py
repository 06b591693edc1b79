from __future__ import annotations

import zipfile
from typing import TYPE_CHECKING

from prompt_pack.cancellation import check_cancelled
from prompt_pack.exceptions import ExportWriteError, FileProcessingError
from prompt_pack.file_store import LocalFileNode, relative_path
from prompt_pack.logging import logger

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path

    from prompt_pack.cancellation import CancellationToken
    from prompt_pack.file_store import FileNode

ZIP_NAME = "selected.zip"


def _entry_bytes(node: FileNode, overlay: Mapping[str, str] | None) -> bytes:
    if overlay is not None and node.path in overlay:
        return overlay[node.path].encode("utf-8")
    if isinstance(node, LocalFileNode):
        try:
            return node.fs_path.read_bytes()
        except OSError as e:
            raise FileProcessingError(path=node.path, message=f"Cannot read {node.path}: {e}") from e
    try:
        return node.read_text().encode("utf-8")
    except OSError as e:
        raise FileProcessingError(path=node.path, message=f"Cannot read {node.path}: {e}") from e


def _unique_entry(entry: str, used: set[str]) -> str:
    if entry not in used:
        return entry
    stem, dot, ext = entry.rpartition(".")
    if not stem or "/" in ext:
        stem, dot, ext = entry, "", ""
    n = 2
    while f"{stem}-{n}{dot}{ext}" in used:
        n += 1
    return f"{stem}-{n}{dot}{ext}"


def write_zip(
    project_root: FileNode | None,
    files: Sequence[FileNode],
    zip_path: Path,
    *,
    overlay: Mapping[str, str] | None = None,
    cancel: CancellationToken | None = None,
) -> Path:
    """Write ``files`` into a ZIP archive under their project-relative paths.

    Files outside the project root are stored under their bare name, with a
    ``-2``, ``-3``... suffix before the extension when that name is taken.
    Unsaved text from ``overlay`` replaces the stored content.

    Raises:
        FileProcessingError: if a file cannot be read
        ExportWriteError: if the archive cannot be written
    """
    used: set[str] = set()
    try:
        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for node in files:
                check_cancelled(cancel, "write_zip")
                if node.is_dir:
                    continue
                entry = _unique_entry(relative_path(node, project_root) or node.name, used)
                used.add(entry)
                zf.writestr(entry, _entry_bytes(node, overlay))
    except OSError as e:
        raise ExportWriteError(path=zip_path, message=f"Cannot write archive: {e}") from e
    logger.info("zip_written", path=str(zip_path), entries=len(files))
    return zip_path
