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

from prometheus_client import Counter, Gauge

JOBS_SCHEDULED = Counter(
    "cronregistrar_jobs_scheduled", "Total number of occurrences handed to the runtime", labelnames=["namespace", "kind"]
)
JOBS_ALREADY_SCHEDULED = Counter(
    "cronregistrar_jobs_already_scheduled",
    "Total number of jobs skipped on install because an occurrence was already pending",
    labelnames=["namespace"],
)
JOBS_CANCELLED = Counter(
    "cronregistrar_jobs_cancelled", "Total number of pending occurrences cancelled", labelnames=["namespace"]
)
ENTRIES_REJECTED = Counter(
    "cronregistrar_entries_rejected",
    "Total number of schedule and job definitions rejected by validation",
    labelnames=["namespace", "entry_type"],
)
NAMESPACES = Gauge("cronregistrar_namespaces", "Number of registries created in this process")
