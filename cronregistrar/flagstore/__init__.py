"""
Module containing flag stores.

A flag store is a small persisted key/value store. Registries use it to remember which namespaces have been
installed, under the key ``{prefix}_cron_installed``.

You can choose the back-end with which class you're instantiating:

.. code-block:: python

    # Flags persisted in a JSON file:
    flags = LocalFlagStore("flags.json")
    flags.initialize()

    # Flags kept in memory for the lifetime of the process:
    flags = NoFlagStore()

Flags are read and written with ``get``, ``set`` and ``delete``:

.. code-block:: python

    flags.set("acme_cron_installed", True)
    flags.get("acme_cron_installed")  # True
    flags.delete("acme_cron_installed")

``LocalFlagStore`` writes through to its file on every ``set`` and ``delete``.
"""

from .flags import AbstractFlagStore, LocalFlagStore, NoFlagStore

__all__ = [
    "AbstractFlagStore",
    "LocalFlagStore",
    "NoFlagStore",
]
