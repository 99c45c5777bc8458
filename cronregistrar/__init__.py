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
Namespaced registration of cron schedules and jobs with a scheduler runtime.

Each caller gets its own ``CronRegistry`` through a ``TenantRegistry``, keyed by the caller's identity (usually its
file path). Schedule and job names are qualified with the caller's prefix, so callers never step on each other's
triggers, and installing the same registry twice never creates duplicate occurrences.
"""

__version__ = "1.0.0"

from .exceptions import InvalidArgumentError, InvalidConfigError, SchedulerRuntimeError, UnknownIntervalError
from .installer import Installer
from .models import EntryType, InstallationPlan, Job, Occurrence, Rejection, Schedule, ValidationResult
from .registry import CronRegistry, is_valid_name
from .tenants import TenantRegistry, identity_token

__all__ = [
    "CronRegistry",
    "EntryType",
    "Installer",
    "InstallationPlan",
    "InvalidArgumentError",
    "InvalidConfigError",
    "Job",
    "Occurrence",
    "Rejection",
    "Schedule",
    "SchedulerRuntimeError",
    "TenantRegistry",
    "UnknownIntervalError",
    "ValidationResult",
    "identity_token",
    "is_valid_name",
]
