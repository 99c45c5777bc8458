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


from typing import List, Optional


class InvalidConfigError(Exception):
    """
    Exception thrown from ``load_yaml`` and ``load_yaml_dict`` if config file is invalid. This can be due to

      * Missing fields
      * Incompatible types
      * Unkown fields
      * Invalid interval expressions
    """

    def __init__(self, message: str, details: Optional[List[str]] = None):
        super(InvalidConfigError, self).__init__()
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return f"Invalid config: {self.message}"

    def __repr__(self) -> str:
        return self.__str__()


class InvalidArgumentError(ValueError):
    """
    Raised when a registry is requested for an identity that can't be turned into a namespace, such as an empty
    string.
    """

    def __init__(self, message: str, argument: Optional[str] = None):
        super(InvalidArgumentError, self).__init__(message)
        self.message = message
        self.argument = argument


class SchedulerRuntimeError(Exception):
    """
    Base class for errors raised by the scheduler runtimes shipped with this package.
    """

    pass


class UnknownIntervalError(SchedulerRuntimeError):
    """
    Raised when a recurring occurrence refers to an interval name the runtime has no definition for.
    """

    def __init__(self, interval_name: str):
        super(UnknownIntervalError, self).__init__(interval_name)
        self.interval_name = interval_name

    def __str__(self) -> str:
        return f"Unknown interval: {self.interval_name}"
