"""Run-wide cancellation signal.

The reorganization loop is single-threaded; the only concurrent actor is the
signal handler installed by :func:`watch_signals`, which flips the token so the
retry executor, the tree walker and the driver can return early with a summary.
"""

import logging
import signal
import threading
from collections.abc import Callable

from drive_organizer.errors import OperationCancelledError

logger = logging.getLogger(__name__)


class CancellationToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if cancelled meanwhile."""
        if seconds <= 0:
            return self._event.is_set()
        return self._event.wait(seconds)

    def sleep(self, seconds: float) -> None:
        """Sleep, raising OperationCancelledError as soon as the token fires."""
        if self.wait(seconds):
            raise OperationCancelledError()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError()


def watch_signals(
    token: CancellationToken,
    on_signal: Callable[[], None] | None = None,
) -> Callable[[], None]:
    """Route SIGINT/SIGTERM into ``token``.

    The first signal cancels the token and restores the default handlers, so a
    second Ctrl-C aborts immediately. Returns a function restoring the handlers
    that were active before the call.
    """
    watched = [signal.SIGINT, signal.SIGTERM]
    previous = {signum: signal.getsignal(signum) for signum in watched}

    def restore() -> None:
        for signum, handler in previous.items():
            signal.signal(signum, handler)

    def handler(signum, frame) -> None:
        logger.warning(f"Received signal {signum}, cancelling run")
        token.cancel()
        restore()
        if on_signal is not None:
            on_signal()

    for signum in watched:
        signal.signal(signum, handler)

    return restore
