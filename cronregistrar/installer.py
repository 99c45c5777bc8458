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
Reconciles an ``InstallationPlan`` with a scheduler runtime.
"""

import logging
from typing import Any, Optional

from cronregistrar._inner_util import _log_line, _resolve_debug, _resolve_log_level
from cronregistrar._metrics import JOBS_ALREADY_SCHEDULED, JOBS_CANCELLED, JOBS_SCHEDULED
from cronregistrar.flagstore import AbstractFlagStore
from cronregistrar.models import InstallationPlan
from cronregistrar.runtime import SchedulerRuntime


class Installer:
    """
    Drives the jobs of an installation plan through a scheduler runtime, and keeps the installation flag of the
    plan's namespace up to date.

    Errors from the runtime or the flag store are not handled here, they propagate to the caller.

    Args:
        runtime: Scheduler runtime to bind, schedule and cancel through
        flag_store: Store for installation flags
        debug: Emit log lines. Defaults to the ``CRONREGISTRAR_DEBUG`` environment variable.
        log_level: Level to emit log lines at when debug is enabled
    """

    def __init__(
        self,
        runtime: SchedulerRuntime,
        flag_store: AbstractFlagStore,
        debug: Optional[bool] = None,
        log_level: str = "INFO",
    ) -> None:
        self.runtime = runtime
        self.flag_store = flag_store
        self.debug = _resolve_debug(debug)
        self.log_level = _resolve_log_level(log_level)

        self.logger = logging.getLogger(__name__)

    def _log(self, plan: InstallationPlan, message: str, level: Optional[int] = None, **context: Any) -> None:
        if self.debug:
            _log_line(self.logger, level if level is not None else self.log_level, plan.prefix, message, context)

    def _resolve_interval(self, plan: InstallationPlan, schedule: Optional[str]) -> Optional[str]:
        if schedule is None:
            return None

        for candidate in (plan.qualify(schedule), schedule):
            if candidate in plan.schedules:
                return candidate

        definitions = self.runtime.interval_definitions()
        for candidate in (plan.qualify(schedule), schedule):
            if candidate in definitions:
                return candidate

        return None

    def install(self, plan: InstallationPlan) -> bool:
        """
        Bind and schedule every job in the plan, then set the installation flag.

        Jobs are processed in the order they were added. A job that already has a pending occurrence with the same
        arguments is bound but not scheduled again, so installing twice never creates duplicates.

        Args:
            plan: Plan to install

        Returns:
            False without touching the runtime if the plan has no jobs, True otherwise
        """
        if not plan.jobs:
            return False

        for job in plan.jobs:
            self.runtime.bind(job.name, job.callback)

            if self.runtime.find_pending(job.name, job.args) is not None:
                JOBS_ALREADY_SCHEDULED.labels(plan.prefix).inc()
                self._log(plan, f"Cron job already scheduled: {job.name}")
                continue

            interval_name = self._resolve_interval(plan, job.schedule)
            if interval_name is not None:
                self.runtime.schedule_recurring(job.start, interval_name, job.name, job.args)
                JOBS_SCHEDULED.labels(plan.prefix, "recurring").inc()
            else:
                if job.schedule is not None:
                    self._log(
                        plan,
                        f"Unknown schedule for cron job, scheduling single event: {job.name}",
                        level=logging.WARNING,
                        schedule=job.schedule,
                    )
                self.runtime.schedule_once(job.start, job.name, job.args)
                JOBS_SCHEDULED.labels(plan.prefix, "once").inc()

            self._log(plan, f"Scheduled cron job: {job.name}", schedule=interval_name, start=job.start)

        self.flag_store.set(plan.flag_key, True)

        return True

    def uninstall(self, plan: InstallationPlan) -> bool:
        """
        Cancel the pending occurrence of every job in the plan, unbind the callbacks and clear the installation flag.

        Args:
            plan: Plan to uninstall

        Returns:
            True
        """
        for job in plan.jobs:
            occurrence = self.runtime.find_pending(job.name, job.args)
            if occurrence is not None:
                self.runtime.cancel(occurrence, job.name, job.args)
                JOBS_CANCELLED.labels(plan.prefix).inc()
                self._log(plan, f"Unscheduled cron job: {job.name}")

            self.runtime.unbind(job.name, job.callback)

        self.flag_store.delete(plan.flag_key)

        return True
