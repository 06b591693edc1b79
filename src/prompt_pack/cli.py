"""
prompt_pack: pack project files into LLM-ready Markdown.

Overview
--------
Three commands share one selection model (files and directories given as
arguments, defaulting to the project root):

1) **copy**: file blocks, optionally preceded by a project tree and followed
   by a public API section, copied to the clipboard or exported as numbered
   Markdown parts under ``.promptpack/exports`` when too large.

2) **diff**: a unified diff of the selection against the default branch.

3) **zip**: the selected files archived into ``selected.zip``.

Configuration is read from ``.promptpack.yaml`` (or ``--config`` /
``PROMPTPACK_CONFIG``); command-line flags override it.

Usage
-----
    - Copy a package with the project tree:
        prompt-pack copy src/app --root .

    - Print instead of copying, tests excluded:
        prompt-pack copy --print --tests exclude

    - Diff against the default branch, logging to a file:
        prompt-pack diff src --log-file prompt_pack.log
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from prompt_pack import __version__
from prompt_pack.config import Severity, TestFilesMode, TreeScope
from prompt_pack.delivery import ConsoleDelivery, StdoutDelivery
from prompt_pack.exceptions import FileProcessingError, PromptPackError
from prompt_pack.file_store import LocalFileNode
from prompt_pack.logging import logger, setup_logging
from prompt_pack.pipeline import compute_diff, compute_pack, compute_zip, deliver
from prompt_pack.settings import load_settings

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from prompt_pack.pipeline import PackOutcome
    from prompt_pack.settings import Settings

    ComputeFn = Callable[..., PackOutcome]

COMMANDS: dict[str, ComputeFn] = {
    "copy": compute_pack,
    "diff": compute_diff,
    "zip": compute_zip,
}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="prompt-pack",
        description="Pack project files into Markdown for LLM prompts.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("command", choices=sorted(COMMANDS), help="Operation to run.")
    p.add_argument("paths", nargs="*", default=[], help="Selected files or directories (default: the root).")
    p.add_argument("--root", type=str, default=".", help="Project root.")
    p.add_argument("--config", type=str, default="", help="YAML configuration file.")
    p.add_argument(
        "--tree-scope",
        choices=[s.value for s in TreeScope],
        default=None,
        help="Tree header scope.",
    )
    p.add_argument(
        "--public-api",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Append the public API section.",
    )
    p.add_argument(
        "--tests",
        choices=[m.value for m in TestFilesMode],
        default=None,
        help="Include or exclude test directories.",
    )
    p.add_argument("--chunk-limit", type=int, default=None, help="Characters per export part.")
    p.add_argument("--print", action="store_true", help="Write the document to stdout instead of the clipboard.")
    p.add_argument("--log-file", type=str, default="", help="Log file path.")
    return p


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def settings_from_args(args: argparse.Namespace, root: Path) -> Settings:
    """Load configuration for ``root`` with the command-line overrides applied."""
    return load_settings(
        root,
        args.config or None,
        tree_scope=args.tree_scope,
        public_enabled=args.public_api,
        test_files_mode=args.tests,
        chunk_limit=args.chunk_limit,
    )


def build_selection(root: Path, paths: Sequence[str]) -> list[LocalFileNode]:
    """Turn command-line paths into file nodes; an empty list selects the root.

    Raises:
        FileProcessingError: if a path does not exist
    """
    if not paths:
        return [LocalFileNode(root)]
    selection: list[LocalFileNode] = []
    for raw in paths:
        p = Path(raw)
        if not p.is_absolute():
            p = root / p
        if not p.exists():
            raise FileProcessingError(path=str(p), message=f"No such file or directory: {p}")
        selection.append(LocalFileNode(p))
    return selection


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    if args.log_file:
        setup_logging(args.log_file)

    root = Path(args.root).resolve()
    delivery = StdoutDelivery() if args.print else ConsoleDelivery()
    try:
        settings = settings_from_args(args, root)
        selection = build_selection(root, args.paths)
        outcome = COMMANDS[args.command](LocalFileNode(root), selection, settings)
        deliver(outcome, delivery)
    except PromptPackError as e:
        logger.error("command_failed", command=args.command, error=str(e), error_type=type(e).__name__)
        print(f"error: {e}", file=sys.stderr)
        return 1
    if any(n.severity is Severity.ERROR for n in outcome.notices):
        logger.error("command_failed", command=args.command, kind=str(outcome.kind))
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
