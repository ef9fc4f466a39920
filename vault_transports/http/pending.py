"""
Handle for an in-flight asynchronous transfer.
"""

from concurrent.futures import CancelledError, Future
from typing import Callable, Optional

from ..message import HttpResponse


class PendingResult:
    """
    Wraps the native future of an asynchronous send.

    The future resolves to an HttpResponse or fails with TransportError;
    translation already happened inside the engine task, so waiting only
    unwraps the future.

    Cancellation is best-effort. The native future is cancelled (which
    aborts the transfer when the engine supports it), and the handle
    stops delivering a result either way.

    Examples:
        >>> pending = transport.send_async(request)
        >>> response = pending.wait(timeout=30)
    """

    def __init__(self, future: Future):
        self._future = future
        self._cancelled = False

    def wait(self, timeout: Optional[float] = None) -> HttpResponse:
        """
        Block until the transfer completes.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely

        Returns:
            HttpResponse

        Raises:
            TransportError: On transfer failure
            CancelledError: If the handle was cancelled
            concurrent.futures.TimeoutError: If ``timeout`` elapsed first
        """
        if self._cancelled:
            raise CancelledError()

        response = self._future.result(timeout)

        if self._cancelled:
            raise CancelledError()
        return response

    def cancel(self) -> bool:
        """
        Cancel the transfer if it has not completed.

        Returns:
            True if the handle was cancelled, False if it had already
            completed (the result stays available)
        """
        if self._cancelled:
            return True
        if self._future.done() and not self._future.cancelled():
            return False

        self._cancelled = True
        self._future.cancel()
        return True

    def done(self) -> bool:
        return self._cancelled or self._future.done()

    def cancelled(self) -> bool:
        return self._cancelled

    def add_done_callback(self, fn: Callable[["PendingResult"], None]) -> None:
        """Call ``fn(self)`` once the native future completes."""
        self._future.add_done_callback(lambda _: fn(self))

    def __repr__(self) -> str:
        if self._cancelled:
            state = "cancelled"
        elif self._future.done():
            state = "done"
        else:
            state = "pending"
        return f"<PendingResult {state}>"
