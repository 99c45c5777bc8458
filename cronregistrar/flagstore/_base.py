import logging
import threading
from abc import ABC, abstractmethod
from types import TracebackType
from typing import Optional, Type


class _BaseFlagStore(ABC):
    def __init__(self) -> None:
        self._initialized = False

        self.logger = logging.getLogger(__name__)
        self.lock = threading.RLock()

    @abstractmethod
    def initialize(self, force: bool = False) -> None:
        """
        Load flags from the backing store
        """
        pass

    @abstractmethod
    def synchronize(self) -> None:
        """
        Write flags to the backing store
        """
        pass

    def __enter__(self) -> "_BaseFlagStore":
        self.initialize()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.synchronize()
