from threading import RLock, Thread
from time import time
from typing import List, Optional, Set

import arrow
from humps import pascalize

from cronregistrar.models import Occurrence
from cronregistrar.threading import CancellationToken

from ._memory import InMemorySchedulerRuntime


class ThreadedSchedulerRuntime(InMemorySchedulerRuntime):
    """
    In-memory runtime with a run loop. Waits until the next occurrence is due and fires its callbacks on a separate
    thread, so a slow callback doesn't delay other triggers.

    Args:
        cancellation_token: Parent token. The runtime runs on a child of it, so cancelling the parent stops the run
            loop while ``stop()`` leaves the parent untouched.
        idle_interval: Max number of seconds to sleep before re-checking for new occurrences
    """

    def __init__(self, cancellation_token: Optional[CancellationToken] = None, idle_interval: float = 60) -> None:
        super().__init__()
        self._cancellation_token = (cancellation_token or CancellationToken()).create_child_token()
        self._idle_interval = idle_interval
        self._running: Set[str] = set()
        self._threads: List[Thread] = []
        self._running_lock = RLock()

    @property
    def cancellation_token(self) -> CancellationToken:
        return self._cancellation_token

    def _fire(self, occurrence: Occurrence) -> None:
        with self._running_lock:
            if occurrence.trigger in self._running:
                if occurrence.interval is None:
                    self.logger.warning(
                        f"Trigger {occurrence.trigger} already running, dropping single event with args "
                        f"{list(occurrence.args)}"
                    )
                else:
                    self.logger.warning(f"Trigger {occurrence.trigger} already running, skipping this occurrence")
                return
            self._running.add(occurrence.trigger)

        def wrap() -> None:
            try:
                super(ThreadedSchedulerRuntime, self)._fire(occurrence)
                self.logger.info(f"Trigger {occurrence.trigger} done")
            finally:
                with self._running_lock:
                    self._running.discard(occurrence.trigger)

        thread = Thread(target=wrap, name=f"Run{pascalize(occurrence.trigger)}")
        with self._running_lock:
            self._threads = [t for t in self._threads if t.is_alive()]
            self._threads.append(thread)
        thread.start()

    def run(self) -> None:
        while not self._cancellation_token.is_cancelled:
            next_time = self.next_due()
            deadline = time() + self._idle_interval
            if next_time is not None and next_time < deadline:
                deadline = next_time
                self.logger.debug(f"Waiting until {arrow.get(next_time).isoformat()}")

            if self._cancellation_token.wait_until(deadline):
                break

            self.run_due()

    def stop(self, join_timeout: Optional[float] = None) -> None:
        """
        Stop the run loop and wait for callbacks that are still running.

        Args:
            join_timeout: Max number of seconds to wait for each callback thread. ``None`` waits until they finish.
        """
        self._cancellation_token.cancel()

        with self._running_lock:
            threads = list(self._threads)
        for thread in threads:
            thread.join(join_timeout)
            if thread.is_alive():
                self.logger.warning(f"Callback thread {thread.name} still running after stop")

        with self._running_lock:
            self._threads = [t for t in self._threads if t.is_alive()]
