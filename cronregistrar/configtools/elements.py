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
import importlib
import logging
import os
import re
import time
from dataclasses import dataclass, field
from datetime import timedelta
from logging.handlers import TimedRotatingFileHandler
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import yaml

from cronregistrar._inner_util import _parse_flag
from cronregistrar.exceptions import InvalidConfigError
from cronregistrar.flagstore import AbstractFlagStore, LocalFlagStore, NoFlagStore
from cronregistrar.logging_prometheus import export_log_stats_on_root_logger
from cronregistrar.tenants import TenantRegistry

_logger = logging.getLogger(__name__)


class TimeIntervalConfig(yaml.YAMLObject):
    """
    Configuration parameter for setting a time interval, such as ``90``, ``30s``, ``5m``, ``12h``, ``1d`` or ``2w``.
    Plain numbers are seconds.
    """

    _UNITS = {"s": 1, "m": 60, "h": 60 * 60, "d": 60 * 60 * 24, "w": 60 * 60 * 24 * 7}

    def __init__(self, expression: Union[str, int]) -> None:
        self._interval, self._expression = TimeIntervalConfig._parse_expression(expression)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TimeIntervalConfig):
            return NotImplemented
        return self._interval == other._interval

    def __hash__(self) -> int:
        return hash(self._interval)

    @classmethod
    def _parse_expression(cls, expression: Union[str, int]) -> Tuple[int, str]:
        if isinstance(expression, bool):
            raise InvalidConfigError(f"Invalid interval: {expression}")
        if isinstance(expression, int):
            return expression, f"{expression}s"

        match = re.fullmatch(r"\s*(\d+)\s*([smhdw]?)\s*", str(expression))
        if not match:
            raise InvalidConfigError(f"Invalid interval pattern: {expression}")

        number, unit = match.groups()
        return int(number) * cls._UNITS[unit or "s"], str(expression).strip()

    @property
    def seconds(self) -> int:
        return self._interval

    @property
    def timedelta(self) -> timedelta:
        return timedelta(seconds=self._interval)

    def __int__(self) -> int:
        return int(self._interval)

    def __float__(self) -> float:
        return float(self._interval)

    def __str__(self) -> str:
        return self._expression

    def __repr__(self) -> str:
        return self._expression


@dataclass
class _ConsoleLoggingConfig:
    level: str = "INFO"


@dataclass
class _FileLoggingConfig:
    path: str
    level: str = "INFO"
    retention: int = 7


@dataclass
class LoggingConfig:
    """
    Logging settings, such as log levels and path to log file
    """

    console: Optional[_ConsoleLoggingConfig]
    file: Optional[_FileLoggingConfig]
    # Count log messages per logger and level in a Prometheus counter
    metrics: Optional[bool] = False

    def setup_logging(self, suppress_console: bool = False) -> None:
        """
        Sets up the root logger as defined in this config object

        Args:
            suppress_console: Don't log to console regardless of config
        """
        fmt = logging.Formatter(
            "%(asctime)s.%(msecs)03d UTC [%(levelname)-8s] %(threadName)s - %(message)s",
            "%Y-%m-%d %H:%M:%S",
        )
        # Set logging to UTC
        fmt.converter = time.gmtime

        root = logging.getLogger()

        if self.console and not suppress_console and not root.hasHandlers():
            console_handler = logging.StreamHandler()
            console_handler.setLevel(self.console.level)
            console_handler.setFormatter(fmt)

            root.addHandler(console_handler)

            if root.getEffectiveLevel() > console_handler.level:
                root.setLevel(console_handler.level)

        if self.file:
            file_path = os.path.abspath(self.file.path)
            already_attached = any(getattr(handler, "baseFilename", None) == file_path for handler in root.handlers)

            if not already_attached:
                file_handler = TimedRotatingFileHandler(
                    filename=file_path,
                    when="midnight",
                    utc=True,
                    backupCount=self.file.retention,
                )
                file_handler.setLevel(self.file.level)
                file_handler.setFormatter(fmt)

                root.addHandler(file_handler)

                if root.getEffectiveLevel() > file_handler.level:
                    root.setLevel(file_handler.level)

        if self.metrics:
            export_log_stats_on_root_logger(root)


def _default_logging() -> LoggingConfig:
    return LoggingConfig(console=_ConsoleLoggingConfig(), file=None)


@dataclass
class LocalFlagStoreConfig:
    """
    Configuration of a flag store using a local JSON file
    """

    path: str


@dataclass
class FlagStoreConfig:
    """
    Configuration of the flag store. Flags are kept in memory if no backend is configured.
    """

    local: Optional[LocalFlagStoreConfig] = None

    def create_flag_store(self, default_to_local: bool = False) -> AbstractFlagStore:
        """
        Create a flag store object based on the config.

        Args:
            default_to_local: If true, return a LocalFlagStore using ``flags.json`` if no flag store is configured.
                Otherwise return a NoFlagStore

        Returns:
            An (uninitialized) flag store
        """
        if self.local:
            return LocalFlagStore(file_path=self.local.path)

        if default_to_local:
            return LocalFlagStore(file_path="flags.json")
        else:
            return NoFlagStore()


def import_callback(reference: str) -> Optional[Callable[..., Any]]:
    """
    Resolve a ``package.module:function`` (or ``package.module.function``) reference to the object it names.

    Returns:
        The referenced object, or None if it can't be imported. Whether it is callable is left to the registry.
    """
    if ":" in reference:
        module_name, _, attribute_path = reference.partition(":")
    else:
        module_name, _, attribute_path = reference.rpartition(".")

    if not module_name or not attribute_path:
        _logger.warning(f"Invalid callback reference: {reference}")
        return None

    try:
        target: Any = importlib.import_module(module_name)
        for attribute in attribute_path.split("."):
            target = getattr(target, attribute)
    except (ImportError, AttributeError) as e:
        _logger.warning(f"Could not import callback {reference}: {e!s}")
        return None

    return target


@dataclass
class ScheduleConfig:
    """
    A recurrence definition
    """

    name: str
    interval: TimeIntervalConfig
    display: str

    def as_definition(self) -> Dict[str, Any]:
        return {"interval": self.interval.seconds, "display": self.display}


@dataclass
class JobConfig:
    """
    A job, with its callback given as an import reference
    """

    name: str
    callback: str
    schedule: Optional[str] = None
    start: Optional[Any] = None
    args: List[Any] = field(default_factory=list)

    def as_definition(self) -> Dict[str, Any]:
        return {
            "callback": import_callback(self.callback),
            "schedule": self.schedule,
            "start": self.start,
            "args": list(self.args),
        }


@dataclass
class NamespaceConfig:
    """
    Schedules and jobs registered under one identity
    """

    identity: str
    prefix: str = ""
    schedules: List[ScheduleConfig] = field(default_factory=list)
    jobs: List[JobConfig] = field(default_factory=list)

    def apply(self, tenants: TenantRegistry, uninstall: bool = False) -> bool:
        """
        Register (or unregister) this namespace with a tenant registry.

        Returns:
            Result of ``TenantRegistry.register`` or ``TenantRegistry.unregister``
        """
        schedules = {schedule.name: schedule.as_definition() for schedule in self.schedules}
        jobs = {job.name: job.as_definition() for job in self.jobs}

        if uninstall:
            return tenants.unregister(self.identity, schedules=schedules, jobs=jobs, prefix=self.prefix)
        return tenants.register(self.identity, schedules=schedules, jobs=jobs, prefix=self.prefix)


@dataclass
class BaseConfig:
    """
    Basis for a config file, containing config version and ``LoggingConfig``
    """

    version: Optional[Union[str, int]]
    logger: LoggingConfig = field(default_factory=_default_logging)


@dataclass
class CronConfig(BaseConfig):
    """
    Config for running registries from a YAML file
    """

    debug: Optional[Union[bool, str]] = None
    flag_store: FlagStoreConfig = field(default_factory=FlagStoreConfig)
    idle_interval: TimeIntervalConfig = TimeIntervalConfig("60s")
    namespaces: List[NamespaceConfig] = field(default_factory=list)

    def debug_enabled(self) -> Optional[bool]:
        """
        Debug setting for the tenant registry. ``None`` leaves the decision to the ``CRONREGISTRAR_DEBUG`` environment
        variable, which is also what an empty or unexpanded ``${VAR}`` value gives.
        """
        if self.debug is None or isinstance(self.debug, bool):
            return self.debug
        if not self.debug.strip() or self.debug.startswith("${"):
            return None
        return _parse_flag(self.debug)
