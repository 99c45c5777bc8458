"""
Scheduler runtimes.

A runtime owns the actual triggering of callbacks. Registries only talk to it through the ``SchedulerRuntime``
interface:

- ``bind`` / ``unbind`` attach callbacks to trigger names,
- ``find_pending``, ``schedule_recurring``, ``schedule_once`` and ``cancel`` manage pending occurrences,
- ``register_interval_definitions`` lets registries expose their custom recurrence definitions.

Two implementations are included. ``InMemorySchedulerRuntime`` keeps everything in memory and fires due occurrences
when ``run_due`` is called, which suits tests and request-driven hosts that check for due work on each request.
``ThreadedSchedulerRuntime`` adds a blocking ``run`` loop that sleeps until the next occurrence is due:

.. code-block:: python

    runtime = ThreadedSchedulerRuntime()
    runtime.cancellation_token.cancel_on_interrupt()

    tenants = TenantRegistry(runtime=runtime, flag_store=LocalFlagStore("flags.json"))
    tenants.register(__file__, schedules=..., jobs=...)

    runtime.run()
"""

from ._base import BUILTIN_INTERVALS, IntervalDefinitions, IntervalProvider, SchedulerRuntime
from ._memory import InMemorySchedulerRuntime
from ._threaded import ThreadedSchedulerRuntime

__all__ = [
    "BUILTIN_INTERVALS",
    "InMemorySchedulerRuntime",
    "IntervalDefinitions",
    "IntervalProvider",
    "SchedulerRuntime",
    "ThreadedSchedulerRuntime",
]
