from __future__ import annotations

import threading

from prompt_pack.exceptions import OperationCancelledError
from prompt_pack.logging import logger


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and a running operation."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self, phase: str = "") -> None:
        """Raise if cancellation was requested.

        Args:
            phase (str): label of the phase being checked, reported in the error

        Raises:
            OperationCancelledError: if :meth:`cancel` was called
        """
        if self._event.is_set():
            logger.info("operation_cancelled", phase=phase)
            raise OperationCancelledError(phase=phase)


def check_cancelled(cancel: CancellationToken | None, phase: str) -> None:
    """Check ``cancel`` when one was supplied."""
    if cancel is not None:
        cancel.check(phase)
