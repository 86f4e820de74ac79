"""Cooperative cancellation handle shared by every worker in a batch."""

from __future__ import annotations

import threading

from category_attributes.errors import GenerationCancelledError


class CancellationToken:
    """Thread-safe one-shot cancellation flag.

    Workers check it between units of work and pass it into the completion
    gateway, which checks it while reading the response body.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: str | None = None

    def cancel(self, reason: str = "cancelled") -> None:
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or timeout; return whether cancellation happened."""

        return self._event.wait(timeout=timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise GenerationCancelledError(f"Generation was cancelled ({self._reason}).")

