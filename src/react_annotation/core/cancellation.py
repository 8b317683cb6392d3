"""Cooperative cancellation for long-running analysis hosts."""

import threading

from .exceptions import AnalysisCancelled


class CancellationToken:
    """
    Thread-safe flag checked by the engine between components.

    An interactive host keeps a reference to the token and calls ``cancel()``;
    the engine calls ``raise_if_cancelled()`` before each component's usage
    walk, so an aborted run never leaves half-built state behind.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, file_path: str = None) -> None:
        if self._event.is_set():
            raise AnalysisCancelled(file_path=file_path)
