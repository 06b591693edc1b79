from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Protocol, TextIO

import pyperclip

from prompt_pack.config import Severity
from prompt_pack.exceptions import DeliveryError
from prompt_pack.logging import logger

if TYPE_CHECKING:
    from pathlib import Path


class Delivery(Protocol):
    """User-facing side effects of an operation: clipboard, notifications, opened documents."""

    def copy_to_clipboard(self, text: str) -> None: ...

    def show_notification(self, message: str, severity: Severity) -> None: ...

    def open_document(self, path: Path) -> None: ...


class ConsoleDelivery:
    """Deliver to the system clipboard and report on a text stream."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream if stream is not None else sys.stderr

    def copy_to_clipboard(self, text: str) -> None:
        """Copy ``text`` to the system clipboard.

        Raises:
            DeliveryError: if no clipboard mechanism is available
        """
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as e:
            raise DeliveryError(message=f"Clipboard unavailable ({e}); use --print.") from e
        logger.info("clipboard_written", chars=len(text))

    def show_notification(self, message: str, severity: Severity) -> None:
        logger.info("notification", severity=str(severity), message=message)
        print(f"[{severity}] {message}", file=self.stream)

    def open_document(self, path: Path) -> None:
        print(f"Open: {path}", file=self.stream)


class StdoutDelivery(ConsoleDelivery):
    """Print the document to stdout instead of copying it."""

    def __init__(self, out: TextIO | None = None, stream: TextIO | None = None) -> None:
        super().__init__(stream)
        self.out = out if out is not None else sys.stdout

    def copy_to_clipboard(self, text: str) -> None:
        self.out.write(text)
        if not text.endswith("\n"):
            self.out.write("\n")
