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
The ``registry`` module contains ``CronRegistry``, which collects schedule and job definitions for one namespace.

Definitions are validated one by one. An invalid definition is logged (in debug mode) and skipped, it never aborts
the rest of a batch:

.. code-block:: python

    registry = CronRegistry("my_plugin", runtime=runtime, flag_store=flags)

    result = registry.add_schedules(
        {
            "twice_daily": {"interval": 12 * 60 * 60, "display": "Twice Daily"},
            "Bad Name": {"interval": 60, "display": "Skipped"},
        }
    )
    result.accepted  # ["my_plugin_twice_daily"]
    result.rejected  # [Rejection(entry_type=EntryType.SCHEDULE, name="Bad Name", reason=...)]

    registry.add_job("sync_data", {"callback": sync_data, "schedule": "twice_daily", "args": ["a", "b"]})
    registry.install()

All names are qualified with the effective prefix of the registry (the explicit prefix if set, otherwise the
identity) before they are stored or handed to the runtime.
"""

import logging
import re
from decimal import Decimal
from threading import RLock
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from cronregistrar._inner_util import _log_line, _now, _resolve_debug, _resolve_log_level, _to_timestamp
from cronregistrar._metrics import ENTRIES_REJECTED
from cronregistrar.exceptions import InvalidArgumentError
from cronregistrar.flagstore import AbstractFlagStore
from cronregistrar.installer import Installer
from cronregistrar.models import EntryType, InstallationPlan, Job, Rejection, Schedule, ValidationResult
from cronregistrar.runtime import IntervalDefinitions, SchedulerRuntime

NAME_PATTERN = re.compile(r"[a-z0-9_-]+")


def is_valid_name(name: Any) -> bool:
    """
    Check a hook or schedule name against the naming policy: non-empty, lowercase letters, digits, ``_`` and ``-``.
    """
    return isinstance(name, str) and NAME_PATTERN.fullmatch(name) is not None


def _coerce_interval(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float, Decimal)):
            return int(value)
        if isinstance(value, str):
            return int(float(value.strip()))
    except (ValueError, OverflowError):
        return None
    return None


class CronRegistry:
    """
    Pending schedule and job definitions for a single namespace.

    Add operations, ``install`` and ``uninstall`` are serialized with a lock, so one registry can be shared between
    threads.

    Args:
        identity: Identity token of the owning caller. Used as prefix unless an explicit prefix is set.
        runtime: Scheduler runtime to install jobs into
        flag_store: Store for the installation flag
        prefix: Explicit prefix, overrides the identity when non-empty
        debug: Emit log lines. Defaults to the ``CRONREGISTRAR_DEBUG`` environment variable.
        log_level: Level to emit log lines at when debug is enabled
    """

    def __init__(
        self,
        identity: str,
        runtime: SchedulerRuntime,
        flag_store: AbstractFlagStore,
        prefix: str = "",
        debug: Optional[bool] = None,
        log_level: str = "INFO",
    ) -> None:
        if not identity:
            raise InvalidArgumentError("A registry needs a non-empty identity", argument="identity")

        self.identity = identity
        self.runtime = runtime
        self.flag_store = flag_store
        self.debug = _resolve_debug(debug)
        self.log_level = log_level

        self._prefix = prefix or ""
        self._schedules: Dict[str, Schedule] = {}
        # Replaced on every schedule write, read by merge_schedules without the lock
        self._definitions: Mapping[str, Dict[str, Any]] = MappingProxyType({})
        self._jobs: Dict[str, Job] = {}
        self.rejections: List[Rejection] = []

        self.lock = RLock()
        self.logger = logging.getLogger(__name__)

        runtime.register_interval_definitions(self.merge_schedules)

    def __repr__(self) -> str:
        return f"<CronRegistry {self.effective_prefix}: {len(self._schedules)} schedules, {len(self._jobs)} jobs>"

    def __len__(self) -> int:
        return len(self._schedules) + len(self._jobs)

    @property
    def effective_prefix(self) -> str:
        return self._prefix or self.identity

    @property
    def schedules(self) -> Mapping[str, Schedule]:
        return MappingProxyType(self._schedules)

    @property
    def jobs(self) -> Mapping[str, Job]:
        return MappingProxyType(self._jobs)

    def set_prefix(self, prefix: str) -> "CronRegistry":
        """
        Override the prefix used to qualify names added from now on. An empty string falls back to the identity.
        """
        with self.lock:
            self._prefix = prefix or ""
        return self

    def qualify(self, name: str) -> str:
        return f"{self.effective_prefix}_{name}"

    def _log(self, message: str, level: Optional[int] = None, **context: Any) -> None:
        if self.debug:
            _log_line(
                self.logger,
                level if level is not None else _resolve_log_level(self.log_level),
                self.effective_prefix,
                message,
                context,
            )

    def _reject(self, entry_type: EntryType, name: Any, reason: str) -> ValidationResult:
        rejection = Rejection(entry_type=entry_type, name=str(name), reason=reason)
        self.rejections.append(rejection)
        ENTRIES_REJECTED.labels(self.effective_prefix, entry_type.value).inc()
        self._log(f"{reason}: {name}")
        return ValidationResult(rejected=[rejection])

    def add_schedule(self, name: str, schedule: Mapping[str, Any]) -> ValidationResult:
        """
        Add a recurrence definition.

        Args:
            name: Unqualified schedule name
            schedule: Mapping with ``interval`` (positive number of seconds) and ``display`` (label)

        Returns:
            The outcome, with the qualified name if accepted
        """
        with self.lock:
            if not is_valid_name(name):
                return self._reject(EntryType.SCHEDULE, name, "Invalid schedule name")

            if not isinstance(schedule, Mapping):
                return self._reject(EntryType.SCHEDULE, name, "Invalid definition for schedule")

            interval = _coerce_interval(schedule.get("interval"))
            if interval is None or interval <= 0:
                return self._reject(EntryType.SCHEDULE, name, "Invalid interval for schedule")

            display = schedule.get("display")
            if display is None or not str(display).strip():
                return self._reject(EntryType.SCHEDULE, name, "Missing display name for schedule")

            qualified = self.qualify(name)
            self._schedules[qualified] = Schedule(name=qualified, interval=interval, display=str(display))
            self._definitions = MappingProxyType(
                {key: entry.as_definition() for key, entry in self._schedules.items()}
            )
            return ValidationResult(accepted=[qualified])

    def add_schedules(self, schedules: Mapping[str, Mapping[str, Any]]) -> ValidationResult:
        result = ValidationResult()
        with self.lock:
            for name, schedule in schedules.items():
                result.merge(self.add_schedule(name, schedule))
        return result

    def add_job(self, name: str, job: Mapping[str, Any]) -> ValidationResult:
        """
        Add a job. Missing fields default to a one-shot job starting now with no arguments.

        Args:
            name: Unqualified hook name
            job: Mapping with ``callback`` (required), ``schedule``, ``start`` and ``args``

        Returns:
            The outcome, with the qualified name if accepted
        """
        with self.lock:
            if not is_valid_name(name):
                return self._reject(EntryType.JOB, name, "Invalid hook name")

            if not isinstance(job, Mapping):
                return self._reject(EntryType.JOB, name, "Invalid definition for job")

            callback = job.get("callback")
            if not callable(callback):
                return self._reject(EntryType.JOB, name, "Invalid callback for job")

            schedule = job.get("schedule")
            if schedule is False or schedule == "":
                schedule = None
            if schedule is not None and not isinstance(schedule, str):
                return self._reject(EntryType.JOB, name, "Invalid schedule for job")

            try:
                start = _now() if job.get("start") is None else _to_timestamp(job["start"])
            except ValueError:
                return self._reject(EntryType.JOB, name, "Invalid start time for job")

            args = job.get("args")
            if args is None:
                args = ()
            if not isinstance(args, (list, tuple)):
                return self._reject(EntryType.JOB, name, "Invalid args for job")

            qualified = self.qualify(name)
            self._jobs[qualified] = Job(
                name=qualified, callback=callback, schedule=schedule, start=start, args=tuple(args)
            )
            return ValidationResult(accepted=[qualified])

    def add_jobs(self, jobs: Mapping[str, Mapping[str, Any]]) -> ValidationResult:
        result = ValidationResult()
        with self.lock:
            for name, job in jobs.items():
                result.merge(self.add_job(name, job))
        return result

    def merge_schedules(self, existing: IntervalDefinitions) -> IntervalDefinitions:
        """
        Interval provider for the runtime: the given definitions with this registry's schedules added on top.

        Never takes the registry lock. The runtime calls every provider while some registry is installing, and that
        registry holds its own lock.
        """
        custom = self._definitions
        merged = dict(existing)
        merged.update({name: dict(definition) for name, definition in custom.items()})
        return merged

    def plan(self) -> InstallationPlan:
        with self.lock:
            return InstallationPlan.create(self.effective_prefix, self._schedules, self._jobs)

    def _installer(self) -> Installer:
        return Installer(self.runtime, self.flag_store, debug=self.debug, log_level=self.log_level)

    def install(self) -> bool:
        """
        Hand every registered job to the runtime. Jobs that already have a pending occurrence are left alone.

        Returns:
            False if no jobs are registered, True otherwise
        """
        with self.lock:
            return self._installer().install(self.plan())

    def uninstall(self) -> bool:
        """
        Cancel pending occurrences and unbind callbacks for every registered job, and clear the installation flag.

        Returns:
            True
        """
        with self.lock:
            return self._installer().uninstall(self.plan())

    def is_installed(self) -> bool:
        return bool(self.flag_store.get(self.plan().flag_key, False))
