"""
Cooperative cancellation for long-running searches.

A CancellationToken is handed to a search and checked at every backtracking
step. It trips when ``cancel()`` is called or when its deadline passes.
"""

import threading
import time
from typing import Optional

from mcs_atom_mapper.exceptions import SearchCancelled


class CancellationToken:
    """
    Cancellation flag with an optional absolute deadline.

    Args:
        timeout: Seconds from now after which the token trips by itself,
            or None for no deadline
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._deadline: Optional[float] = (
            None if timeout is None else time.monotonic() + timeout
        )

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def start_clock(self, timeout: Optional[float]) -> None:
        """Set the deadline to ``timeout`` seconds from now, None clears it."""
        self._deadline = None if timeout is None else time.monotonic() + timeout

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._event.set()
            return True
        return False

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise SearchCancelled("search cancelled or past its deadline")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the token trips or ``timeout`` seconds pass."""
        end = None if timeout is None else time.monotonic() + timeout
        if self._deadline is not None:
            end = self._deadline if end is None else min(end, self._deadline)
        while not self.cancelled:
            if end is None:
                self._event.wait()
                continue
            remaining = end - time.monotonic()
            if remaining <= 0:
                break
            self._event.wait(remaining)
        return self.cancelled


def check(token: Optional[CancellationToken]) -> None:
    """Raise SearchCancelled if ``token`` has tripped; no-op for None."""
    if token is not None:
        token.raise_if_cancelled()
