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
import re
from typing import Any, Callable, Dict

# Values under these keys are passed to callbacks untouched
_VERBATIM_KEYS = frozenset({"args"})


def _to_snake_case(dictionary: Dict[str, Any], case_style: str) -> Dict[str, Any]:
    """
    Ensure that all keys in the dictionary follows the snake casing convention (recursively, so any sub-dictionaries
    and dictionaries inside lists are changed too). Job arguments are left as written.

    Args:
        dictionary: Dictionary to update.
        case_style: Existing casing convention. Either 'snake', 'hyphen' or 'camel'.

    Returns:
        An updated dictionary with keys in the given convention.
    """
    translators: Dict[str, Callable[[str], str]] = {
        "hyphen": lambda key: key.replace("-", "_"),
        "kebab": lambda key: key.replace("-", "_"),
        "camel": lambda key: re.sub(r"([A-Z]+)", r"_\1", key).strip("_").lower(),
        "pascal": lambda key: re.sub(r"([A-Z]+)", r"_\1", key).strip("_").lower(),
    }

    if case_style in ("snake", "underscore"):
        return dictionary
    if case_style not in translators:
        raise ValueError(f"Invalid case style: {case_style}")

    translate = translators[case_style]

    def fix(value: Any) -> Any:
        if isinstance(value, dict):
            return {
                translate(key): item if key in _VERBATIM_KEYS else fix(item)
                for key, item in value.items()
            }
        if isinstance(value, list):
            return [fix(item) for item in value]
        return value

    return fix(dictionary or {})
