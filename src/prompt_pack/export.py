"""Size-bounded Markdown export.

Blocks are joined with a blank line. When the whole document fits the limit it
is written as a single ``content.md``; otherwise blocks are packed greedily
into ``part-NN.md`` files without ever splitting a block. An ``index.md``
links every part.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from prompt_pack.cancellation import check_cancelled
from prompt_pack.config import DEFAULT_CHUNK_LIMIT, EXPORT_SUBDIR
from prompt_pack.file_store import LocalExportSink
from prompt_pack.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from prompt_pack.cancellation import CancellationToken
    from prompt_pack.file_store import ExportSink

BLOCK_SEPARATOR = "\n\n"
INDEX_NAME = "index.md"
SINGLE_PART_NAME = "content.md"
TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


class ExportResult(BaseModel):
    """Artifacts written by :func:`export_markdown`."""

    model_config = ConfigDict(frozen=True)

    parts: tuple[Path, ...] = Field(..., description="Part documents in order.")
    index: Path = Field(..., description="The index document.")
    directory: Path = Field(..., description="Directory holding the export.")
    total_chars: int = Field(..., ge=0, description="Character count computed before splitting.")


def split_into_parts(blocks: Sequence[str], limit: int) -> list[str]:
    """Pack blocks into parts of at most ``limit`` characters.

    A new part starts whenever appending the next block (with its separating
    blank line) would exceed ``limit``. Blocks are never split, so a block
    longer than ``limit`` becomes a part of its own.

    Args:
        blocks (Sequence[str]): rendered blocks, in output order
        limit (int): soft size bound of a part

    Returns:
        list[str]: the parts; joining them with a blank line gives back the joined blocks
    """
    parts: list[str] = []
    current: list[str] = []
    size = 0
    for block in blocks:
        added = len(block) + (len(BLOCK_SEPARATOR) if current else 0)
        if current and size + added > limit:
            parts.append(BLOCK_SEPARATOR.join(current))
            current = [block]
            size = len(block)
        else:
            current.append(block)
            size += added
    if current:
        parts.append(BLOCK_SEPARATOR.join(current))
    return parts


def assemble_parts(header: str, blocks: Sequence[str], limit: int) -> tuple[list[str], int]:
    """Return the part texts and the total size of header plus joined blocks.

    The total counts one extra character for the newline between header and body.
    """
    joined = BLOCK_SEPARATOR.join(blocks)
    total = len(header) + 1 + len(joined)
    if total <= limit:
        return [joined], total
    return split_into_parts(blocks, limit), total


def part_name(index: int, count: int) -> str:
    """File name of the ``index``-th (0-based) part out of ``count``."""
    if count == 1:
        return SINGLE_PART_NAME
    return f"part-{index + 1:02d}.md"


def build_index(header: str, block_count: int, part_names: Sequence[str], chunk_limit: int) -> str:
    lines = [
        "# PromptPack export",
        f"blocks={block_count} parts={len(part_names)} chunk_limit={chunk_limit}",
        "",
    ]
    if header.strip():
        lines.append(header.rstrip("\n"))
        lines.append("")
    lines.append("## Parts")
    lines.extend(f"- [{name}]({name})" for name in part_names)
    return "\n".join(lines) + "\n"


def unique_export_dir(base_dir: Path, now: datetime | None = None) -> Path:
    """Return a fresh, time-stamped directory path under ``base_dir/.promptpack/exports``."""
    stamp = (now or datetime.now().astimezone()).strftime(TIMESTAMP_FORMAT)
    parent = base_dir.joinpath(*EXPORT_SUBDIR)
    candidate = parent / stamp
    n = 2
    while candidate.exists():
        candidate = parent / f"{stamp}-{n}"
        n += 1
    return candidate


def export_markdown(
    base_dir: Path,
    header: str,
    blocks: Sequence[str],
    chunk_limit: int = DEFAULT_CHUNK_LIMIT,
    *,
    sink: ExportSink | None = None,
    now: datetime | None = None,
    cancel: CancellationToken | None = None,
) -> ExportResult:
    """Write blocks as Markdown parts plus an index into a new export directory.

    Args:
        base_dir (Path): the project root (or any base) receiving ``.promptpack/exports``
        header (str): tree header, repeated in the index when not blank
        blocks (Sequence[str]): rendered blocks
        chunk_limit (int): soft size bound of a part
        sink (ExportSink | None): artifact writer, local files by default
        now (datetime | None): timestamp used for the directory name
        cancel (CancellationToken | None): checked before each written part

    Raises:
        ExportWriteError: if a directory or file cannot be written

    Returns:
        ExportResult: the written artifacts
    """
    sink = sink or LocalExportSink()
    chunk_limit = max(1, chunk_limit)
    texts, total = assemble_parts(header, blocks, chunk_limit)
    directory = sink.ensure_directory(unique_export_dir(base_dir, now))

    names = [part_name(i, len(texts)) for i in range(len(texts))]
    written: list[Path] = []
    for name, text in zip(names, texts, strict=True):
        check_cancelled(cancel, "export_markdown")
        written.append(sink.create_or_overwrite(directory, name, text))

    index = sink.create_or_overwrite(directory, INDEX_NAME, build_index(header, len(blocks), names, chunk_limit))
    logger.info("export_written", directory=str(directory), parts=len(written), total_chars=total)
    return ExportResult(parts=tuple(written), index=index, directory=directory, total_chars=total)
