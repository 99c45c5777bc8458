#  Copyright 2023 Cognite AS
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
Data classes describing schedules, jobs and the pending occurrences a scheduler runtime keeps track of.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

INSTALLED_FLAG_SUFFIX = "cron_installed"


@dataclass(frozen=True)
class Schedule:
    """
    A named recurrence definition.

    Args:
        name: Qualified name of the schedule
        interval: Number of seconds between recurrences
        display: Human readable label
    """

    name: str
    interval: int
    display: str

    def as_definition(self) -> Dict[str, Any]:
        return {"interval": self.interval, "display": self.display}


@dataclass(frozen=True)
class Job:
    """
    A named unit of scheduled work.

    Args:
        name: Qualified trigger name
        callback: Function to invoke when the trigger fires
        schedule: Name of a recurrence definition, or None for a one-shot job
        start: UNIX timestamp (seconds) of the first occurrence
        args: Arguments passed to the callback. Part of the identity of a pending occurrence.
    """

    name: str
    callback: Callable[..., Any] = field(compare=False)
    schedule: Optional[str]
    start: int
    args: Tuple[Any, ...] = ()

    @property
    def is_recurring(self) -> bool:
        return self.schedule is not None


@dataclass
class Occurrence:
    """
    A single pending firing of a trigger, identified by ``(trigger, args)``.
    """

    trigger: str
    args: Tuple[Any, ...]
    timestamp: int
    schedule: Optional[str] = None
    interval: Optional[int] = None

    def matches(self, trigger: str, args: Tuple[Any, ...]) -> bool:
        return self.trigger == trigger and self.args == tuple(args)


class EntryType(Enum):
    SCHEDULE = "schedule"
    JOB = "job"


@dataclass(frozen=True)
class Rejection:
    """
    A definition that was skipped during registration, and why.
    """

    entry_type: EntryType
    name: str
    reason: str


@dataclass
class ValidationResult:
    """
    Outcome of adding one or more definitions to a registry. Truthy if nothing was rejected.
    """

    accepted: List[str] = field(default_factory=list)
    rejected: List[Rejection] = field(default_factory=list)

    def __bool__(self) -> bool:
        return not self.rejected

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        self.accepted.extend(other.accepted)
        self.rejected.extend(other.rejected)
        return self


@dataclass(frozen=True)
class InstallationPlan:
    """
    Immutable snapshot of a registry, consumed by the installer.
    """

    prefix: str
    schedules: Mapping[str, Schedule]
    jobs: Tuple[Job, ...]

    @classmethod
    def create(cls, prefix: str, schedules: Mapping[str, Schedule], jobs: Mapping[str, Job]) -> "InstallationPlan":
        return cls(prefix=prefix, schedules=MappingProxyType(dict(schedules)), jobs=tuple(jobs.values()))

    @property
    def flag_key(self) -> str:
        return f"{self.prefix}_{INSTALLED_FLAG_SUFFIX}" if self.prefix else INSTALLED_FLAG_SUFFIX

    def qualify(self, name: str) -> str:
        return f"{self.prefix}_{name}" if self.prefix else name
