import logging
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Sequence

from cronregistrar._inner_util import _now
from cronregistrar.exceptions import SchedulerRuntimeError, UnknownIntervalError
from cronregistrar.models import Occurrence

from ._base import SchedulerRuntime


class InMemorySchedulerRuntime(SchedulerRuntime):
    """
    Dict-backed scheduler runtime. Keeps bindings and pending occurrences in memory and fires them when ``run_due``
    is called.

    This class is thread-safe.
    """

    def __init__(self) -> None:
        super().__init__()
        self._bindings: Dict[str, List[Callable[..., Any]]] = {}
        self._pending: List[Occurrence] = []
        self.lock = RLock()

        self.logger = logging.getLogger(__name__)

    def bind(self, trigger: str, callback: Callable[..., Any]) -> None:
        with self.lock:
            callbacks = self._bindings.setdefault(trigger, [])
            if callback not in callbacks:
                callbacks.append(callback)

    def unbind(self, trigger: str, callback: Callable[..., Any]) -> None:
        with self.lock:
            callbacks = self._bindings.get(trigger, [])
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks:
                self._bindings.pop(trigger, None)

    def bindings(self, trigger: str) -> List[Callable[..., Any]]:
        with self.lock:
            return list(self._bindings.get(trigger, []))

    def find_pending(self, trigger: str, args: Sequence[Any]) -> Optional[Occurrence]:
        key = tuple(args)
        with self.lock:
            matches = [o for o in self._pending if o.matches(trigger, key)]
        return min(matches, key=lambda o: o.timestamp) if matches else None

    def schedule_recurring(self, start: int, interval_name: str, trigger: str, args: Sequence[Any]) -> Occurrence:
        definition = self.interval_definitions().get(interval_name)
        if definition is None:
            raise UnknownIntervalError(interval_name)

        occurrence = Occurrence(
            trigger=trigger,
            args=tuple(args),
            timestamp=int(start),
            schedule=interval_name,
            interval=int(definition["interval"]),
        )
        with self.lock:
            self._pending.append(occurrence)
        return occurrence

    def schedule_once(self, start: int, trigger: str, args: Sequence[Any]) -> Occurrence:
        occurrence = Occurrence(trigger=trigger, args=tuple(args), timestamp=int(start))
        with self.lock:
            self._pending.append(occurrence)
        return occurrence

    def cancel(self, occurrence: Occurrence, trigger: str, args: Sequence[Any]) -> None:
        with self.lock:
            for i, pending in enumerate(self._pending):
                if pending.matches(trigger, tuple(args)) and pending.timestamp == occurrence.timestamp:
                    del self._pending[i]
                    return
        raise SchedulerRuntimeError(f"No pending occurrence of {trigger} at {occurrence.timestamp}")

    def pending(self, trigger: Optional[str] = None) -> List[Occurrence]:
        with self.lock:
            return [o for o in self._pending if trigger is None or o.trigger == trigger]

    def next_due(self) -> Optional[int]:
        with self.lock:
            return min((o.timestamp for o in self._pending), default=None)

    def _pop_due(self, now: int) -> List[Occurrence]:
        with self.lock:
            due = sorted((o for o in self._pending if o.timestamp <= now), key=lambda o: o.timestamp)
            for occurrence in due:
                self._pending.remove(occurrence)
                if occurrence.interval:
                    next_run = occurrence.timestamp
                    while next_run <= now:
                        next_run += occurrence.interval
                    self._pending.append(
                        Occurrence(
                            trigger=occurrence.trigger,
                            args=occurrence.args,
                            timestamp=next_run,
                            schedule=occurrence.schedule,
                            interval=occurrence.interval,
                        )
                    )
        return due

    def _fire(self, occurrence: Occurrence) -> None:
        for callback in self.bindings(occurrence.trigger):
            try:
                callback(*occurrence.args)
            except Exception:
                self.logger.exception(f"Callback for {occurrence.trigger} failed")

    def run_due(self, now: Optional[int] = None) -> int:
        """
        Fire every occurrence that is due. Recurring occurrences are re-queued one or more intervals later.

        Args:
            now: Current time as a UNIX timestamp, defaults to the wall clock

        Returns:
            Number of occurrences fired
        """
        due = self._pop_due(_now() if now is None else now)
        for occurrence in due:
            self.logger.debug(f"Firing {occurrence.trigger}")
            self._fire(occurrence)
        return len(due)

    def clear(self) -> None:
        with self.lock:
            self._bindings.clear()
            self._pending.clear()
