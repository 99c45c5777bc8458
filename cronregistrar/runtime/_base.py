from abc import ABC, abstractmethod
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Sequence

from cronregistrar.models import Occurrence

IntervalDefinitions = Dict[str, Dict[str, Any]]
IntervalProvider = Callable[[IntervalDefinitions], IntervalDefinitions]

BUILTIN_INTERVALS: IntervalDefinitions = {
    "hourly": {"interval": 60 * 60, "display": "Once Hourly"},
    "twicedaily": {"interval": 12 * 60 * 60, "display": "Twice Daily"},
    "daily": {"interval": 24 * 60 * 60, "display": "Once Daily"},
    "weekly": {"interval": 7 * 24 * 60 * 60, "display": "Once Weekly"},
}


class SchedulerRuntime(ABC):
    """
    The component that wakes up when an occurrence is due and invokes the callbacks bound to its trigger.

    Registries never run callbacks themselves, they only bind callbacks to trigger names and ask the runtime to
    schedule or cancel occurrences. Recurrence definitions are pulled from the registered providers every time the
    runtime needs them.
    """

    def __init__(self) -> None:
        self._providers: List[IntervalProvider] = []
        self._providers_lock = RLock()

    def register_interval_definitions(self, provider: IntervalProvider) -> None:
        with self._providers_lock:
            if provider not in self._providers:
                self._providers.append(provider)

    def interval_definitions(self) -> IntervalDefinitions:
        """
        Built-in recurrence definitions merged with everything the registered providers add.
        """
        with self._providers_lock:
            providers = list(self._providers)

        definitions = {name: dict(definition) for name, definition in BUILTIN_INTERVALS.items()}
        for provider in providers:
            definitions = provider(definitions)
        return definitions

    @abstractmethod
    def bind(self, trigger: str, callback: Callable[..., Any]) -> None:
        pass

    @abstractmethod
    def unbind(self, trigger: str, callback: Callable[..., Any]) -> None:
        pass

    @abstractmethod
    def find_pending(self, trigger: str, args: Sequence[Any]) -> Optional[Occurrence]:
        pass

    @abstractmethod
    def schedule_recurring(self, start: int, interval_name: str, trigger: str, args: Sequence[Any]) -> Occurrence:
        pass

    @abstractmethod
    def schedule_once(self, start: int, trigger: str, args: Sequence[Any]) -> Occurrence:
        pass

    @abstractmethod
    def cancel(self, occurrence: Occurrence, trigger: str, args: Sequence[Any]) -> None:
        pass
