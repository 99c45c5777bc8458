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

from pathlib import PurePosixPath
from threading import Barrier, Thread
from unittest.mock import Mock

import pytest

from cronregistrar.exceptions import InvalidArgumentError
from cronregistrar.flagstore import NoFlagStore
from cronregistrar.runtime import InMemorySchedulerRuntime, SchedulerRuntime
from cronregistrar.tenants import TenantRegistry, identity_token

T = 1767225600


def sync(*args):
    pass


@pytest.mark.parametrize(
    "identity,token",
    [
        ("/srv/plugins/acme/acme.py", "acme"),
        ("C:\\plugins\\billing\\billing.php", "billing"),
        ("tenantA", "tenantA"),
        ("my plugin.v2.py", "my_plugin_v2"),
        ("plugins/acme/", "acme"),
        (PurePosixPath("/srv/plugins/reports.py"), "reports"),
    ],
)
def test_identity_token(identity, token: str) -> None:
    assert identity_token(identity) == token


@pytest.mark.parametrize("identity", ["", "   ", "/", "...", None])
def test_invalid_identity_token(identity) -> None:
    with pytest.raises(InvalidArgumentError):
        identity_token(identity)


def test_get_or_create_caches() -> None:
    tenants = TenantRegistry(InMemorySchedulerRuntime(), NoFlagStore())

    first = tenants.get_or_create("/srv/plugins/acme/acme.py")
    second = tenants.instance("/opt/other/acme.py")

    assert first is second
    assert first.identity == "acme"
    assert len(tenants) == 1
    assert "acme" in tenants
    assert "" not in tenants
    assert list(tenants) == ["acme"]


def test_get_or_create_empty_identity() -> None:
    tenants = TenantRegistry(InMemorySchedulerRuntime(), NoFlagStore())

    with pytest.raises(InvalidArgumentError):
        tenants.get_or_create("")


def test_register_empty_identity() -> None:
    runtime = Mock(spec=SchedulerRuntime)
    flags = NoFlagStore()
    tenants = TenantRegistry(runtime, flags)

    assert tenants.register("", jobs={"sync": {"callback": sync}}) is False
    assert tenants.unregister("", jobs={"sync": {"callback": sync}}) is False

    assert runtime.mock_calls == []
    assert len(flags) == 0
    assert len(tenants) == 0


def test_namespaces_are_isolated() -> None:
    runtime = InMemorySchedulerRuntime()
    tenants = TenantRegistry(runtime, NoFlagStore())

    tenants.register("tenantA", jobs={"sync": {"callback": sync, "start": T}})
    tenants.register("tenantB", jobs={"sync": {"callback": sync, "start": T}})

    assert [o.trigger for o in runtime.pending("tenantA_sync")] == ["tenantA_sync"]
    assert [o.trigger for o in runtime.pending("tenantB_sync")] == ["tenantB_sync"]

    tenants.unregister("tenantA", jobs={"sync": {"callback": sync, "start": T}})

    assert runtime.pending("tenantA_sync") == []
    assert len(runtime.pending("tenantB_sync")) == 1


def test_register_with_prefix() -> None:
    runtime = InMemorySchedulerRuntime()
    flags = NoFlagStore()
    tenants = TenantRegistry(runtime, flags)

    assert tenants.register(
        "/srv/plugins/acme-plugin/main.py",
        schedules={"twice_daily": {"interval": 43200, "display": "Twice Daily"}},
        jobs={"sync": {"callback": sync, "schedule": "twice_daily", "start": T}},
        prefix="acme",
    )

    assert runtime.interval_definitions()["acme_twice_daily"]["interval"] == 43200
    assert runtime.pending("acme_sync")[0].interval == 43200
    assert flags.get("acme_cron_installed") is True
    assert "main" in tenants


def test_register_schedules_only() -> None:
    runtime = InMemorySchedulerRuntime()
    tenants = TenantRegistry(runtime, NoFlagStore())

    assert tenants.register_schedules("acme", {"twice_daily": {"interval": 43200, "display": "Twice Daily"}}) is False
    assert "acme_twice_daily" in runtime.interval_definitions()


def test_register_and_unregister_jobs() -> None:
    runtime = InMemorySchedulerRuntime()
    flags = NoFlagStore()
    tenants = TenantRegistry(runtime, flags)
    jobs = {"sync": {"callback": sync, "schedule": "hourly", "start": T}}

    assert tenants.register_jobs("acme", jobs)
    assert tenants.register_jobs("acme", jobs)
    assert len(runtime.pending("acme_sync")) == 1

    assert tenants.unregister_jobs("acme", jobs)
    assert runtime.pending() == []
    assert runtime.bindings("acme_sync") == []
    assert "acme_cron_installed" not in flags


def test_concurrent_registration() -> None:
    runtime = InMemorySchedulerRuntime()
    tenants = TenantRegistry(runtime, NoFlagStore())

    def worker() -> None:
        tenants.register("acme", jobs={"sync": {"callback": sync, "start": T}})

    threads = [Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(tenants) == 1
    assert len(runtime.pending("acme_sync")) == 1


class LockstepRuntime(InMemorySchedulerRuntime):
    """
    Makes two installs reach ``schedule_recurring`` at the same time, each while holding its own registry lock.
    """

    def __init__(self) -> None:
        super().__init__()
        self.barrier = Barrier(2, timeout=5)

    def schedule_recurring(self, start, interval_name, trigger, args):
        self.barrier.wait()
        return super().schedule_recurring(start, interval_name, trigger, args)


def test_concurrent_install_in_different_namespaces() -> None:
    runtime = LockstepRuntime()
    tenants = TenantRegistry(runtime, NoFlagStore())
    results = {}

    def worker(identity: str) -> None:
        results[identity] = tenants.register(
            identity,
            schedules={"twice_daily": {"interval": 43200, "display": "Twice Daily"}},
            jobs={"sync": {"callback": sync, "schedule": "twice_daily", "start": T}},
        )

    threads = [Thread(target=worker, args=(identity,)) for identity in ("tenantA", "tenantB")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(5)

    assert not any(thread.is_alive() for thread in threads)
    assert results == {"tenantA": True, "tenantB": True}
    assert runtime.pending("tenantA_sync")[0].interval == 43200
    assert runtime.pending("tenantB_sync")[0].interval == 43200


def test_membership_waits_for_lock() -> None:
    tenants = TenantRegistry(InMemorySchedulerRuntime(), NoFlagStore())
    tenants.get_or_create("acme")
    seen = []

    with tenants.lock:
        reader = Thread(target=lambda: seen.extend([len(tenants), "acme" in tenants]))
        reader.start()
        reader.join(0.1)
        assert reader.is_alive()
        assert seen == []

    reader.join(5)
    assert seen == [1, True]


def test_iteration_does_not_hold_lock() -> None:
    tenants = TenantRegistry(InMemorySchedulerRuntime(), NoFlagStore())
    tenants.get_or_create("acme")

    for identity in tenants:
        creator = Thread(target=tenants.get_or_create, args=("billing",))
        creator.start()
        creator.join(5)
        assert not creator.is_alive()

    assert sorted(tenants) == ["acme", "billing"]
