#  Copyright 2020 Cognite AS
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
A module containing utilities meant for use inside the cronregistrar package
"""

import json
import logging
import os
from datetime import datetime
from decimal import Decimal
from time import time
from typing import Any, Dict, Optional

import arrow

DEBUG_ENV_VAR = "CRONREGISTRAR_DEBUG"


def _resolve_log_level(level: str) -> int:
    return {"NOTSET": 0, "DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40, "CRITICAL": 50}[level.upper()]


def _parse_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _debug_from_env() -> bool:
    return _parse_flag(os.environ.get(DEBUG_ENV_VAR, ""))


def _resolve_debug(debug: Optional[bool]) -> bool:
    return _debug_from_env() if debug is None else debug


def _now() -> int:
    return int(time())


def _to_timestamp(value: Any) -> int:
    """
    Convert a start time given as a UNIX timestamp, a datetime or an ISO-8601 string to whole seconds since epoch.

    Raises:
        ValueError: If the value can't be interpreted as a point in time
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a timestamp: {value!r}")
    if isinstance(value, (int, float, Decimal)):
        return int(value)
    if isinstance(value, (str, datetime)):
        try:
            return arrow.get(value).int_timestamp
        except (ValueError, TypeError) as e:
            raise ValueError(f"Not a timestamp: {value!r}") from e
    raise ValueError(f"Not a timestamp: {value!r}")


class _ContextEncoder(json.JSONEncoder):
    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return str(obj)
        if callable(obj):
            return getattr(obj, "__qualname__", repr(obj))
        return repr(obj)


def _format_context(context: Dict[str, Any]) -> str:
    return json.dumps(context, cls=_ContextEncoder, sort_keys=True) if context else ""


def _log_line(logger: logging.Logger, level: int, prefix: str, message: str, context: Dict[str, Any]) -> None:
    tag = f"[{prefix}] " if prefix else ""
    logger.log(level, f"{tag}Cron: {message} {_format_context(context)}".rstrip())
