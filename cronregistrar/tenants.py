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
Maps caller identities to their own ``CronRegistry``, so unrelated callers never share a namespace.

An identity is usually the path of the module or plugin doing the registration. It is reduced to a token (the file
name without extension) which becomes the default prefix of every schedule and job name:

.. code-block:: python

    tenants = TenantRegistry(runtime=runtime, flag_store=flags)

    # Jobs end up as "acme_sync" and "billing_sync" in the runtime
    tenants.register("/srv/plugins/acme/acme.py", jobs={"sync": {"callback": acme_sync}})
    tenants.register("/srv/plugins/billing/billing.py", jobs={"sync": {"callback": billing_sync}})

The ``register`` family never raises for a bad identity, it logs (in debug mode) and returns ``False``. Use
``get_or_create`` directly to get an ``InvalidArgumentError`` instead.
"""

import logging
import os
import re
from threading import RLock
from typing import Any, Dict, Iterator, Mapping, Optional, Union

from cronregistrar._inner_util import _log_line, _resolve_debug, _resolve_log_level
from cronregistrar._metrics import NAMESPACES
from cronregistrar.exceptions import InvalidArgumentError
from cronregistrar.flagstore import AbstractFlagStore
from cronregistrar.registry import CronRegistry
from cronregistrar.runtime import SchedulerRuntime

Identity = Union[str, "os.PathLike[str]"]
Definitions = Optional[Mapping[str, Mapping[str, Any]]]


def identity_token(identity: Identity) -> str:
    """
    Reduce an identity to a namespace token: the last path component without its extension, with characters other
    than letters, digits, ``_`` and ``-`` replaced by ``_``.

    Args:
        identity: A file path or an explicit token

    Returns:
        The token

    Raises:
        InvalidArgumentError: If the identity is empty or has no usable basename
    """
    if isinstance(identity, os.PathLike):
        identity = os.fspath(identity)
    if not isinstance(identity, str) or not identity.strip():
        raise InvalidArgumentError("Identity must be a non-empty string or path", argument="identity")

    parts = [part for part in re.split(r"[\\/]+", identity.strip()) if part]
    basename = parts[-1] if parts else ""
    stem, _ = os.path.splitext(basename)
    token = re.sub(r"[^A-Za-z0-9_-]", "_", stem or basename)

    if not token.strip("_"):
        raise InvalidArgumentError(f"Could not derive a namespace from identity {identity!r}", argument="identity")
    return token


class TenantRegistry:
    """
    One ``CronRegistry`` per identity token, created on first request and kept for the lifetime of this object.

    Create a single instance at the composition root of the application and pass it to whoever needs to register
    jobs. This class is thread-safe.

    Args:
        runtime: Scheduler runtime shared by all registries
        flag_store: Store for installation flags, shared by all registries
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
        self.log_level = log_level

        self._registries: Dict[str, CronRegistry] = {}
        self.lock = RLock()
        self.logger = logging.getLogger(__name__)

    def _log(self, message: str, **context: Any) -> None:
        if self.debug:
            _log_line(self.logger, _resolve_log_level(self.log_level), "", message, context)

    def get_or_create(self, identity: Identity) -> CronRegistry:
        """
        Get the registry for an identity, creating it if this is the first request for its token.

        Raises:
            InvalidArgumentError: If the identity is empty
        """
        token = identity_token(identity)

        with self.lock:
            registry = self._registries.get(token)
            if registry is None:
                registry = CronRegistry(
                    token, self.runtime, self.flag_store, debug=self.debug, log_level=self.log_level
                )
                self._registries[token] = registry
                NAMESPACES.inc()
                self._log(f"Created registry: {token}")
            return registry

    instance = get_or_create

    def __contains__(self, identity: Identity) -> bool:
        try:
            token = identity_token(identity)
        except InvalidArgumentError:
            return False
        with self.lock:
            return token in self._registries

    def __len__(self) -> int:
        with self.lock:
            return len(self._registries)

    def __iter__(self) -> Iterator[str]:
        # Snapshot, so the lock is not held while the caller iterates
        with self.lock:
            return iter(list(self._registries))

    def _resolve(self, identity: Identity) -> Optional[CronRegistry]:
        try:
            return self.get_or_create(identity)
        except InvalidArgumentError as e:
            self._log(f"Registration failed: {e.message}", identity=str(identity))
            return None

    @staticmethod
    def _fill(registry: CronRegistry, schedules: Definitions, jobs: Definitions, prefix: str) -> None:
        registry.set_prefix(prefix)
        registry.add_schedules(schedules or {})
        registry.add_jobs(jobs or {})

    def register(
        self, identity: Identity, schedules: Definitions = None, jobs: Definitions = None, prefix: str = ""
    ) -> bool:
        """
        Add schedules and jobs to the registry of an identity and install it.

        Args:
            identity: Caller identity, such as ``__file__``
            schedules: Schedule definitions by unqualified name
            jobs: Job definitions by unqualified name
            prefix: Explicit prefix, the identity token is used if empty

        Returns:
            Result of ``install``, or False if the identity is invalid
        """
        registry = self._resolve(identity)
        if registry is None:
            return False

        with registry.lock:
            self._fill(registry, schedules, jobs, prefix)
            return registry.install()

    def unregister(
        self, identity: Identity, schedules: Definitions = None, jobs: Definitions = None, prefix: str = ""
    ) -> bool:
        """
        Add schedules and jobs to the registry of an identity and uninstall it. Pass the same definitions that were
        registered, so the registry knows which occurrences to cancel.

        Returns:
            Result of ``uninstall``, or False if the identity is invalid
        """
        registry = self._resolve(identity)
        if registry is None:
            return False

        with registry.lock:
            self._fill(registry, schedules, jobs, prefix)
            return registry.uninstall()

    def register_schedules(self, identity: Identity, schedules: Definitions, prefix: str = "") -> bool:
        return self.register(identity, schedules=schedules, prefix=prefix)

    def register_jobs(self, identity: Identity, jobs: Definitions, prefix: str = "") -> bool:
        return self.register(identity, jobs=jobs, prefix=prefix)

    def unregister_jobs(self, identity: Identity, jobs: Definitions, prefix: str = "") -> bool:
        return self.unregister(identity, jobs=jobs, prefix=prefix)
