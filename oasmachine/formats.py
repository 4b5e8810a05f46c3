"""
OpenAPI string/number formats.

JSON Schema only knows a handful of formats. OpenAPI adds ``int32``, ``int64``,
``float``, ``double``, ``byte``, ``binary`` and ``password``; these are
registered on a :class:`jsonschema.FormatChecker` together with any custom
formats passed in ``Options.custom_formats``.

A custom format can be given as:

- a callable ``(value) -> bool``, applied to every value;
- a regular expression string, applied to string values;
- a mapping ``{"type": "string" | "number" | "integer", "validate": callable | regex}``,
  applied only to values of that JSON type.
"""

import logging
import re
from typing import Any, Callable, Dict, Mapping, Optional

from jsonschema import FormatChecker

logger = logging.getLogger(__name__)

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

# The largest integer a double can represent exactly. int64 values are bounded
# to this range rather than the full 64 bit range.
MAX_SAFE_INTEGER = 2 ** 53 - 1
MIN_SAFE_INTEGER = -MAX_SAFE_INTEGER


def is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


_TYPE_TESTS: Dict[str, Callable[[Any], bool]] = {
    "string": lambda value: isinstance(value, str),
    "number": is_number,
    "integer": lambda value: is_integer(value) or (isinstance(value, float) and value.is_integer()),
}


def _check_int32(value: Any) -> bool:
    return INT32_MIN <= value <= INT32_MAX


def _check_int64(value: Any) -> bool:
    return MIN_SAFE_INTEGER <= value <= MAX_SAFE_INTEGER


def _always_valid(value: Any) -> bool:
    return True


DEFAULT_FORMATS: Dict[str, Any] = {
    # Range checked for floats too, so 1e10 is not a valid int32.
    "int32": {"type": "number", "validate": _check_int32},
    "int64": {"type": "number", "validate": _check_int64},
    "double": {"type": "number", "validate": _always_valid},
    "float": {"type": "number", "validate": _always_valid},
    # Hints about the representation; there is nothing to check at runtime.
    "password": _always_valid,
    "binary": _always_valid,
    "byte": _always_valid,
    "base64": _always_valid,
}


def _pattern_check(pattern: "re.Pattern[str]") -> Callable[[Any], bool]:
    def check(value: Any) -> bool:
        return pattern.search(value if isinstance(value, str) else str(value)) is not None

    return check


def _to_check(name: str, definition: Any) -> Callable[[Any], bool]:
    """Turn a format definition into a ``(value) -> bool`` check."""
    value_type: Optional[str] = None
    validate = definition

    if isinstance(definition, Mapping):
        value_type = definition.get("type")
        validate = definition.get("validate")
        if value_type is not None and value_type not in _TYPE_TESTS:
            raise ValueError(f"Format {name!r} has unsupported type {value_type!r}")

    if isinstance(validate, (str, re.Pattern)):
        value_type = value_type or "string"
        validate = _pattern_check(re.compile(validate))

    if not callable(validate):
        raise ValueError(f"Format {name!r} must be a callable, a regular expression or a mapping")

    if value_type is None:
        return validate

    applies = _TYPE_TESTS[value_type]

    def check(value: Any) -> bool:
        if not applies(value):
            return True
        return bool(validate(value))

    return check


def build_format_checker(custom_formats: Optional[Mapping[str, Any]] = None) -> FormatChecker:
    """Return a FormatChecker with the OpenAPI formats and ``custom_formats``.

    Custom formats replace default formats of the same name.

    Raises:
        ValueError: If a custom format definition is malformed.
    """
    checker = FormatChecker()
    formats = dict(DEFAULT_FORMATS)
    formats.update(custom_formats or {})

    for name, definition in formats.items():
        checker.checks(name)(_to_check(name, definition))

    if custom_formats:
        logger.debug(f"Registered custom formats: {', '.join(sorted(custom_formats))}")
    return checker
