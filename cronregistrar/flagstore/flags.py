#  Copyright 2020 Cognite AS
#
#  Licensed under the Apache License, Version 2.0 (the "License");
#  you may not use this file except in compliance with the License.
#  You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
#  Unless required by applicable law or agreed to in writing, software
#  distributed under the License is distributed on an "AS IS" BASIS,
#  WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#  See the License for the specific language governing permissions and
#  limitations under the License.
"""
Key/value flag stores.

This module provides the following implementations:
- `LocalFlagStore`: A flag store that uses a local JSON file.
- `NoFlagStore`: A flag store that keeps flags in memory only.
"""

import json
from abc import ABC
from typing import Any, Dict, Iterator, Optional

from ._base import _BaseFlagStore


class AbstractFlagStore(_BaseFlagStore, ABC):
    """
    Base class for a flag store.

    This class is thread-safe.
    """

    def __init__(self) -> None:
        super().__init__()

        self._flags: Dict[str, Any] = {}

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        """
        Get the value stored under a key.

        Args:
            key: Key to look up
            default: Value to return if the key is not set

        Returns:
            The stored value, or the default
        """
        with self.lock:
            return self._flags.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Store a value, overwriting any previous value for the key.

        Args:
            key: Key to store under
            value: JSON serializable value
        """
        with self.lock:
            self._flags[key] = value

    def delete(self, key: str) -> None:
        """
        Remove a key. Removing a key that is not set does nothing.

        Args:
            key: Key to remove
        """
        with self.lock:
            self._flags.pop(key, None)

    def __getitem__(self, key: str) -> Any:
        with self.lock:
            return self._flags[key]

    def __contains__(self, key: str) -> bool:
        return key in self._flags

    def __len__(self) -> int:
        return len(self._flags)

    def __iter__(self) -> Iterator[str]:
        yield from list(self._flags)


class LocalFlagStore(AbstractFlagStore):
    """
    A flag store using a local JSON file as backend. Every ``set`` and ``delete`` is written to the file immediately.

    Args:
        file_path: File path to JSON file to use
    """

    def __init__(self, file_path: str) -> None:
        super().__init__()

        self._file_path = file_path

    def initialize(self, force: bool = False) -> None:
        """
        Load flags from specified JSON file.

        Args:
            force: Enable re-initialization, ie overwrite when called multiple times
        """
        if self._initialized and not force:
            return

        with self.lock:
            try:
                with open(self._file_path) as f:
                    self._flags = json.load(f)
            except FileNotFoundError:
                pass
            except json.decoder.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in flag store file: {e!s}") from e

        self._initialized = True

    def synchronize(self) -> None:
        """
        Save flags to specified JSON file.
        """
        with self.lock:
            with open(self._file_path, "w") as f:
                json.dump(self._flags, f)

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        self.initialize()
        return super().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self.lock:
            self.initialize()
            super().set(key, value)
            self.synchronize()

    def delete(self, key: str) -> None:
        with self.lock:
            self.initialize()
            super().delete(key)
            self.synchronize()


class NoFlagStore(AbstractFlagStore):
    """
    A flag store that only keeps flags in memory and never stores or initializes from external sources.

    This class is thread-safe.
    """

    def __init__(self) -> None:
        super().__init__()

    def initialize(self, force: bool = False) -> None:
        """
        Does nothing.
        """
        pass

    def synchronize(self) -> None:
        """
        Does nothing.
        """
        pass
