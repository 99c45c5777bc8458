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

import logging
from unittest.mock import Mock, call

import pytest
from prometheus_client import REGISTRY

from cronregistrar.exceptions import SchedulerRuntimeError
from cronregistrar.flagstore import NoFlagStore
from cronregistrar.installer import Installer
from cronregistrar.models import InstallationPlan, Job, Schedule
from cronregistrar.registry import CronRegistry
from cronregistrar.runtime import InMemorySchedulerRuntime, SchedulerRuntime

T = 1767225600


def sync(*args):
    pass


def cleanup(*args):
    pass


def mock_runtime() -> Mock:
    runtime = Mock(spec=SchedulerRuntime)
    runtime.find_pending.return_value = None
    runtime.interval_definitions.return_value = {"daily": {"interval": 86400, "display": "Once Daily"}}
    return runtime


def test_install_without_jobs() -> None:
    runtime = mock_runtime()
    flags = NoFlagStore()
    registry = CronRegistry("acme", runtime, flags)
    runtime.reset_mock()

    registry.add_schedule("twice_daily", {"interval": 43200, "display": "Twice Daily"})

    assert registry.install() is False
    assert runtime.mock_calls == []
    assert "acme_cron_installed" not in flags


def test_install_calls_runtime_in_order() -> None:
    runtime = mock_runtime()
    plan = InstallationPlan.create(
        "acme",
        {"acme_twice_daily": Schedule("acme_twice_daily", 43200, "Twice Daily")},
        {
            "acme_sync": Job("acme_sync", sync, "twice_daily", T, ("a",)),
            "acme_cleanup": Job("acme_cleanup", cleanup, None, T),
        },
    )

    assert Installer(runtime, NoFlagStore()).install(plan) is True

    assert runtime.mock_calls == [
        call.bind("acme_sync", sync),
        call.find_pending("acme_sync", ("a",)),
        call.schedule_recurring(T, "acme_twice_daily", "acme_sync", ("a",)),
        call.bind("acme_cleanup", cleanup),
        call.find_pending("acme_cleanup", ()),
        call.schedule_once(T, "acme_cleanup", ()),
    ]


def test_install_sets_flag() -> None:
    flags = NoFlagStore()
    registry = CronRegistry("acme", InMemorySchedulerRuntime(), flags)
    registry.add_job("sync", {"callback": sync, "start": T})

    assert not registry.is_installed()
    assert registry.install()
    assert flags.get("acme_cron_installed") is True
    assert registry.is_installed()


def test_install_is_idempotent() -> None:
    runtime = InMemorySchedulerRuntime()
    registry = CronRegistry("acme", runtime, NoFlagStore())
    registry.add_schedule("twice_daily", {"interval": 43200, "display": "Twice Daily"})
    registry.add_job("sync", {"callback": sync, "schedule": "twice_daily", "start": T, "args": [1]})

    assert registry.install()
    assert registry.install()

    assert len(runtime.pending("acme_sync")) == 1
    assert runtime.bindings("acme_sync") == [sync]


def test_already_scheduled_metric() -> None:
    runtime = InMemorySchedulerRuntime()
    registry = CronRegistry("metered", runtime, NoFlagStore())
    registry.add_job("sync", {"callback": sync, "start": T})
    registry.install()

    before = REGISTRY.get_sample_value("cronregistrar_jobs_already_scheduled_total", {"namespace": "metered"}) or 0
    registry.install()
    after = REGISTRY.get_sample_value("cronregistrar_jobs_already_scheduled_total", {"namespace": "metered"})

    assert after == before + 1


def test_different_args_are_different_occurrences() -> None:
    runtime = InMemorySchedulerRuntime()
    registry = CronRegistry("acme", runtime, NoFlagStore())
    registry.add_job("sync", {"callback": sync, "schedule": "daily", "start": T, "args": [1]})
    registry.install()

    registry.add_job("sync", {"callback": sync, "schedule": "daily", "start": T, "args": [2]})
    registry.install()

    assert sorted(o.args for o in runtime.pending("acme_sync")) == [(1,), (2,)]


def test_custom_schedule_exposed() -> None:
    runtime = InMemorySchedulerRuntime()
    registry = CronRegistry("acme", runtime, NoFlagStore())
    registry.add_schedule("twice_daily", {"interval": 43200, "display": "Twice Daily"})
    registry.add_job("sync", {"callback": sync, "schedule": "twice_daily", "start": T})
    registry.install()

    assert runtime.interval_definitions()["acme_twice_daily"]["interval"] == 43200
    (occurrence,) = runtime.pending("acme_sync")
    assert occurrence.schedule == "acme_twice_daily"
    assert occurrence.interval == 43200
    assert occurrence.timestamp == T


def test_one_shot_job() -> None:
    runtime = InMemorySchedulerRuntime()
    registry = CronRegistry("acme", runtime, NoFlagStore())
    registry.add_job("cleanup", {"callback": cleanup, "start": T})
    registry.install()

    (occurrence,) = runtime.pending("acme_cleanup")
    assert occurrence.timestamp == T
    assert occurrence.schedule is None
    assert occurrence.interval is None


def test_builtin_schedule() -> None:
    runtime = InMemorySchedulerRuntime()
    registry = CronRegistry("acme", runtime, NoFlagStore())
    registry.add_job("report", {"callback": sync, "schedule": "daily", "start": T})
    registry.install()

    (occurrence,) = runtime.pending("acme_report")
    assert occurrence.schedule == "daily"
    assert occurrence.interval == 86400


def test_unknown_schedule_falls_back_to_single_event(caplog) -> None:
    caplog.set_level(logging.INFO, logger="cronregistrar")
    runtime = InMemorySchedulerRuntime()
    registry = CronRegistry("acme", runtime, NoFlagStore(), debug=True)
    registry.add_job("sync", {"callback": sync, "schedule": "fortnightly", "start": T})

    assert registry.install()

    (occurrence,) = runtime.pending("acme_sync")
    assert occurrence.schedule is None
    assert any(
        record.levelno == logging.WARNING and "Unknown schedule for cron job" in record.getMessage()
        for record in caplog.records
    )


def test_install_uninstall_round_trip() -> None:
    runtime = InMemorySchedulerRuntime()
    flags = NoFlagStore()
    registry = CronRegistry("acme", runtime, flags)
    registry.add_schedule("twice_daily", {"interval": 43200, "display": "Twice Daily"})
    registry.add_jobs(
        {
            "sync": {"callback": sync, "schedule": "twice_daily", "start": T, "args": ["x"]},
            "cleanup": {"callback": cleanup, "start": T},
        }
    )

    registry.install()
    assert registry.uninstall() is True

    assert runtime.pending() == []
    assert runtime.bindings("acme_sync") == []
    assert runtime.bindings("acme_cleanup") == []
    assert "acme_cron_installed" not in flags
    assert not registry.is_installed()

    # Entries survive, so the namespace can be installed again
    assert len(registry.jobs) == 2
    assert registry.install()
    assert len(runtime.pending()) == 2


def test_uninstall_without_pending() -> None:
    runtime = mock_runtime()
    flags = NoFlagStore()
    flags.set("acme_cron_installed", True)
    plan = InstallationPlan.create("acme", {}, {"acme_sync": Job("acme_sync", sync, None, T)})

    assert Installer(runtime, flags).uninstall(plan) is True

    runtime.cancel.assert_not_called()
    runtime.unbind.assert_called_once_with("acme_sync", sync)
    assert "acme_cron_installed" not in flags


def test_uninstall_without_jobs_clears_flag() -> None:
    runtime = mock_runtime()
    flags = NoFlagStore()
    flags.set("acme_cron_installed", True)

    assert Installer(runtime, flags).uninstall(InstallationPlan.create("acme", {}, {})) is True

    assert runtime.mock_calls == []
    assert "acme_cron_installed" not in flags


def test_runtime_errors_propagate() -> None:
    runtime = mock_runtime()
    runtime.schedule_once.side_effect = SchedulerRuntimeError("Runtime is down")
    flags = NoFlagStore()
    plan = InstallationPlan.create("acme", {}, {"acme_sync": Job("acme_sync", sync, None, T)})

    with pytest.raises(SchedulerRuntimeError):
        Installer(runtime, flags).install(plan)

    assert "acme_cron_installed" not in flags
