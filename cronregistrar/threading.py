import logging
import signal
from threading import Condition
from time import time
from typing import Any, Optional


class CancellationToken:
    """
    Cancellation token for a scheduler runtime's run loop.

    Tokens form a tree. A child made with ``create_child_token`` shares its parent's condition variable, so cancelling
    the parent wakes every thread waiting on any of its children, while cancelling a child leaves the parent running.
    """

    def __init__(self, condition: Optional[Condition] = None) -> None:
        self._cv: Condition = condition or Condition()
        self._cancelled = False
        self._parent: Optional["CancellationToken"] = None

    def __repr__(self) -> str:
        cls = self.__class__
        status = "cancelled" if self.is_cancelled else "not cancelled"
        return f"<{cls.__module__}.{cls.__qualname__} at {id(self):#x}: {status}>"

    @property
    def is_cancelled(self) -> bool:
        token: Optional[CancellationToken] = self
        while token is not None:
            if token._cancelled:
                return True
            token = token._parent
        return False

    def cancel(self) -> None:
        with self._cv:
            if self._cancelled:
                return
            self._cancelled = True
            self._cv.notify_all()

    def wait_until(self, deadline: float) -> bool:
        """
        Block until the token is cancelled or the wall clock reaches ``deadline`` (a unix timestamp).

        Returns:
            True if the token was cancelled.
        """
        with self._cv:
            while not self.is_cancelled:
                remaining = deadline - time()
                if remaining <= 0:
                    break
                self._cv.wait(remaining)
            return self.is_cancelled

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the token is cancelled, or for at most ``timeout`` seconds. Waits forever if ``timeout`` is None.

        Returns:
            True if the token was cancelled, False on timeout.
        """
        if timeout is not None:
            return self.wait_until(time() + timeout)

        with self._cv:
            self._cv.wait_for(lambda: self.is_cancelled)
        return True

    def create_child_token(self) -> "CancellationToken":
        child = CancellationToken(self._cv)
        child._parent = self
        return child

    def cancel_on_interrupt(self) -> None:
        """
        Cancel this token on the first SIGINT instead of raising KeyboardInterrupt. The next SIGINT is handled by
        Python's default handler again.
        """
        logger = logging.getLogger(__name__)

        def on_interrupt(sig_num: int, frame: Any) -> None:
            logger.warning("Interrupted, stopping scheduler runtime after running callbacks finish")
            signal.signal(signal.SIGINT, signal.default_int_handler)
            self.cancel()

        try:
            signal.signal(signal.SIGINT, on_interrupt)
        except ValueError as e:
            # Only the main thread may install signal handlers
            logger.warning(f"Could not register handler for interrupt signals: {e!s}")
