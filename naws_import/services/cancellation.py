"""
naws_import/services/cancellation.py

Cooperative cancellation for import runs.
"""

from __future__ import annotations

import threading

from naws_import.domain.errors import ImportCancelledError


class CancellationToken:
    """
    Externally settable abort signal polled at import checkpoints.

    Setting the token never interrupts work already in flight; the engine
    observes it at its next checkpoint.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ImportCancelledError()
