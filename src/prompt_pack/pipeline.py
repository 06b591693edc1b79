"""Operations split into a compute phase and a deliver phase.

``compute_*`` functions are synchronous, free of thread affinity, and return
an immutable :class:`PackOutcome`. Export artifacts are written during
compute. :func:`deliver` performs the user-facing side effects and is meant
to run on whichever thread owns user I/O.
"""

from __future__ import annotations

from enum import StrEnum, auto
from pathlib import Path
from typing import TYPE_CHECKING, Any, assert_never

from pydantic import BaseModel, ConfigDict, Field

from prompt_pack.blocks import build_block, fenced
from prompt_pack.cancellation import check_cancelled
from prompt_pack.config import Severity, TreeScope
from prompt_pack.export import BLOCK_SEPARATOR, ExportResult, export_markdown, unique_export_dir
from prompt_pack.file_store import LocalExportSink, LocalFileNode, relative_path
from prompt_pack.filters import collect_selection
from prompt_pack.git_support import diff_against, find_repo_root, resolve_default_ref
from prompt_pack.logging import logger
from prompt_pack.modules import detect_modules
from prompt_pack.public_api import collect_public_api
from prompt_pack.tree import render_tree
from prompt_pack.zip_export import ZIP_NAME, write_zip

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from concurrent.futures import Executor, Future
    from datetime import datetime

    from prompt_pack.cancellation import CancellationToken
    from prompt_pack.delivery import Delivery
    from prompt_pack.file_store import ExportSink, FileNode
    from prompt_pack.settings import Settings

PUBLIC_API_HEADING = "## Public API"


class OutcomeKind(StrEnum):
    """What the deliver phase has to do with an outcome."""

    CLIPBOARD = auto()
    EXPORT = auto()
    ARCHIVE = auto()
    NOTHING = auto()


class Notice(BaseModel):
    """A user-facing message produced by the compute phase."""

    model_config = ConfigDict(frozen=True)

    message: str
    severity: Severity = Severity.INFO


class PackOutcome(BaseModel):
    """Immutable result of a compute phase."""

    model_config = ConfigDict(frozen=True)

    kind: OutcomeKind
    text: str = Field(default="", description="Clipboard payload for CLIPBOARD outcomes.")
    block_count: int = 0
    export: ExportResult | None = None
    archive: Path | None = None
    notices: tuple[Notice, ...] = ()


def _nothing(message: str, severity: Severity = Severity.WARNING) -> PackOutcome:
    logger.info("nothing_to_deliver", message=message)
    return PackOutcome(kind=OutcomeKind.NOTHING, notices=(Notice(message=message, severity=severity),))


def export_base_for(project_root: FileNode | None) -> Path:
    """Directory that receives ``.promptpack/exports``: the project root, or the home directory."""
    if isinstance(project_root, LocalFileNode):
        return project_root.fs_path
    if project_root is not None:
        return Path(project_root.path)
    return Path.home()


def build_tree_header(
    project_root: FileNode | None,
    selection: Sequence[FileNode],
    settings: Settings,
) -> str:
    """Render the tree header for the configured scope, or ``""`` when the tree is off."""
    match settings.tree_scope:
        case TreeScope.NONE:
            return ""
        case TreeScope.PROJECT | TreeScope.SELECTION:
            return render_tree(
                settings.tree_scope,
                project_root,
                selection,
                settings.effective_ignored_dirs(),
                settings.ignored_exts,
                max_entries=settings.tree_max_entries,
                indent_size=settings.tree_indent_size,
            )
        case _:
            assert_never(settings.tree_scope)


def _public_api_files(
    project_root: FileNode | None,
    selection: Sequence[FileNode],
    settings: Settings,
    cancel: CancellationToken | None,
) -> tuple[list[FileNode], list[Notice]]:
    if not settings.public_enabled:
        return [], []
    modules = detect_modules(project_root, selection, settings.module_detection_config(), cancel=cancel)
    result = collect_public_api(project_root, modules, settings.public_api_config(), cancel=cancel)
    notices: list[Notice] = []
    if result.trimmed_per_module_count > 0:
        notices.append(
            Notice(message=f"Public API: limited per-module ({result.trimmed_per_module_count} modules trimmed)."),
        )
    if result.trimmed_total:
        notices.append(Notice(message=f"Public API: reached total cap ({settings.public_max_total})."))
    return list(result.files), notices


def _main_and_public(
    project_root: FileNode | None,
    selection: Sequence[FileNode],
    settings: Settings,
    cancel: CancellationToken | None,
) -> tuple[list[FileNode], list[FileNode], list[Notice]]:
    main = collect_selection(selection, settings.filter_config(), cancel=cancel)
    public, notices = _public_api_files(project_root, selection, settings, cancel)
    if public and settings.public_skip_duplicates_in_main:
        public_paths = {n.path for n in public}
        main = [n for n in main if n.path not in public_paths]
    return main, public, notices


def compute_pack(
    project_root: FileNode | None,
    selection: Sequence[FileNode],
    settings: Settings,
    *,
    overlay: Mapping[str, str] | None = None,
    sink: ExportSink | None = None,
    cancel: CancellationToken | None = None,
    now: datetime | None = None,
) -> PackOutcome:
    """Collect, render and size the contents of a selection.

    The document goes to the clipboard when header plus blocks fit
    ``settings.chunk_limit``; otherwise it is exported as Markdown parts.

    Args:
        project_root (FileNode | None): the project root
        selection (Sequence[FileNode]): selected files and directories
        settings (Settings): configuration snapshot
        overlay (Mapping[str, str] | None): unsaved text by ``FileNode.path``
        sink (ExportSink | None): export writer
        cancel (CancellationToken | None): cooperative cancellation
        now (datetime | None): timestamp for the export directory

    Returns:
        PackOutcome: a CLIPBOARD, EXPORT or NOTHING outcome
    """
    if not selection:
        return _nothing("Nothing selected.")

    header = build_tree_header(project_root, selection, settings)
    main, public, notices = _main_and_public(project_root, selection, settings, cancel)
    if not main and not public:
        return _nothing("No text files in selection.")

    check_cancelled(cancel, "build_blocks")
    blocks = [build_block(n, project_root, overlay) for n in main]
    if public:
        blocks.append(PUBLIC_API_HEADING)
        blocks.extend(build_block(n, project_root, overlay) for n in public)
    file_count = len(main) + len(public)

    joined = BLOCK_SEPARATOR.join(blocks)
    single_text = f"{header}\n{joined}" if header else joined
    if len(single_text) <= settings.chunk_limit:
        notices.insert(0, Notice(message=f"Copied contents of {file_count} files to the clipboard."))
        return PackOutcome(
            kind=OutcomeKind.CLIPBOARD,
            text=single_text,
            block_count=len(blocks),
            notices=tuple(notices),
        )

    result = export_markdown(
        export_base_for(project_root),
        header,
        blocks,
        settings.chunk_limit,
        sink=sink,
        now=now,
        cancel=cancel,
    )
    notices.insert(0, Notice(message=f"Exported to {result.directory} ({len(result.parts)} parts)."))
    return PackOutcome(kind=OutcomeKind.EXPORT, block_count=len(blocks), export=result, notices=tuple(notices))


def compute_diff(
    project_root: FileNode | None,
    selection: Sequence[FileNode],
    settings: Settings,
    *,
    sink: ExportSink | None = None,
    cancel: CancellationToken | None = None,
    now: datetime | None = None,
) -> PackOutcome:
    """Diff the selected files against the default branch.

    A git failure with no output becomes an error notice; a non-zero exit
    that still produced a diff is accepted. Diffs larger than
    ``settings.max_clipboard_kb`` (UTF-8 bytes) are exported instead of copied.
    """
    if not selection:
        return _nothing("Nothing selected.")
    repo = find_repo_root(project_root, selection)
    if repo is None:
        return _nothing("No git repository found for the selection.")

    files = collect_selection(selection, settings.filter_config(), cancel=cancel)
    if not files:
        return _nothing("No text files in selection.")

    repo_dir = export_base_for(repo)
    ref = resolve_default_ref(repo_dir, settings.default_diff_ref)
    rel_paths = [r for r in (relative_path(f, repo) for f in files) if r]
    if not rel_paths:
        # an empty pathspec would diff the whole repository
        return _nothing("The selection is outside the git repository.", Severity.WARNING)
    header = build_tree_header(project_root, selection, settings)

    check_cancelled(cancel, "git_diff")
    out = diff_against(repo_dir, ref, rel_paths)
    if out.returncode != 0 and not out.stdout.strip():
        err = out.stderr.strip() or f"exit_code={out.returncode}"
        logger.warning("git_diff_failed", ref=ref, returncode=out.returncode, stderr=out.stderr)
        return _nothing(f"git diff failed: {err}", Severity.ERROR)

    diff_text = out.stdout.strip()
    if not diff_text:
        return _nothing(f"No differences against {ref}.", Severity.INFO)

    body = f"# Diff vs {ref}\n\n{fenced(diff_text, 'diff')}"
    payload = f"{header}\n\n{body}" if header else body
    if len(payload.encode("utf-8")) <= settings.max_clipboard_kb * 1024:
        return PackOutcome(
            kind=OutcomeKind.CLIPBOARD,
            text=payload,
            block_count=1,
            notices=(Notice(message=f"Diff against {ref} copied to the clipboard."),),
        )

    result = export_markdown(
        export_base_for(project_root),
        header,
        [body],
        settings.chunk_limit,
        sink=sink,
        now=now,
        cancel=cancel,
    )
    return PackOutcome(
        kind=OutcomeKind.EXPORT,
        block_count=1,
        export=result,
        notices=(Notice(message=f"Exported to {result.directory} ({len(result.parts)} parts)."),),
    )


def compute_zip(
    project_root: FileNode | None,
    selection: Sequence[FileNode],
    settings: Settings,
    *,
    overlay: Mapping[str, str] | None = None,
    sink: ExportSink | None = None,
    cancel: CancellationToken | None = None,
    now: datetime | None = None,
) -> PackOutcome:
    """Archive the selected files, and the public API files when enabled, into ``selected.zip``."""
    if not selection:
        return _nothing("Nothing selected.")
    main, public, notices = _main_and_public(project_root, selection, settings, cancel)
    merged: dict[str, FileNode] = {n.path: n for n in main}
    for n in public:
        merged.setdefault(n.path, n)
    if not merged:
        return _nothing("Nothing to zip (no matching files).")

    sink = sink or LocalExportSink()
    directory = sink.ensure_directory(unique_export_dir(export_base_for(project_root), now))
    archive = write_zip(project_root, list(merged.values()), directory / ZIP_NAME, overlay=overlay, cancel=cancel)
    notices.insert(0, Notice(message=f"ZIP written: {archive}"))
    return PackOutcome(kind=OutcomeKind.ARCHIVE, block_count=len(merged), archive=archive, notices=tuple(notices))


def deliver(outcome: PackOutcome, delivery: Delivery) -> None:
    """Perform the user-facing side effects of ``outcome``."""
    match outcome.kind:
        case OutcomeKind.CLIPBOARD:
            delivery.copy_to_clipboard(outcome.text)
        case OutcomeKind.EXPORT:
            if outcome.export is not None:
                delivery.copy_to_clipboard(str(outcome.export.index))
                delivery.open_document(outcome.export.index)
        case OutcomeKind.ARCHIVE | OutcomeKind.NOTHING:
            pass
        case _:
            assert_never(outcome.kind)
    for notice in outcome.notices:
        delivery.show_notification(notice.message, notice.severity)


def submit(
    executor: Executor,
    compute: Callable[..., PackOutcome],
    *args: Any,  # noqa: ANN401
    **kwargs: Any,  # noqa: ANN401
) -> Future[PackOutcome]:
    """Schedule a compute phase on ``executor``; deliver the future's result on the caller's thread."""
    logger.info("compute_submitted", compute=getattr(compute, "__name__", repr(compute)))
    return executor.submit(compute, *args, **kwargs)
