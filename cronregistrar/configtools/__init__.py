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
Module containing tools for loading registrations from config files.

Configs are described as ``dataclass``\\es. ``CronConfig`` describes a complete setup: logging, the flag store, and
one entry per namespace with its schedules and jobs. Job callbacks are given as import references:

.. code-block:: yaml

    version: 1

    logger:
      console:
        level: INFO

    debug: ${CRONREGISTRAR_DEBUG}

    flag-store:
      local:
        path: flags.json

    idle-interval: 30s

    namespaces:
      - identity: /srv/plugins/acme/acme.py
        schedules:
          - name: twice_daily
            interval: 12h
            display: Twice Daily
        jobs:
          - name: sync
            callback: acme.tasks:sync
            schedule: twice_daily
            args: [full]

You can then load a YAML file into this dataclass with the ``load_yaml`` function:

.. code-block:: python

    with open("config.yaml") as infile:
        config: CronConfig = load_yaml(infile, CronConfig)

The config object can additionally set up logging and create the configured flag store:

.. code-block:: python

    config.logger.setup_logging()
    flags = config.flag_store.create_flag_store()

Values on the form ``${VAR}`` are replaced with the content of the environment variable ``VAR``.
"""

from .elements import (
    BaseConfig,
    CronConfig,
    FlagStoreConfig,
    JobConfig,
    LocalFlagStoreConfig,
    LoggingConfig,
    NamespaceConfig,
    ScheduleConfig,
    TimeIntervalConfig,
    import_callback,
)
from .loaders import load_yaml, load_yaml_dict

__all__ = [
    "BaseConfig",
    "CronConfig",
    "FlagStoreConfig",
    "JobConfig",
    "LocalFlagStoreConfig",
    "LoggingConfig",
    "NamespaceConfig",
    "ScheduleConfig",
    "TimeIntervalConfig",
    "import_callback",
    "load_yaml",
    "load_yaml_dict",
]
