"""
The ``simple`` style, plus helpers shared by the other style parsers.

``simple`` is the default for path and header parameters::

    scalar                   5
    array                    3,4,5
    object                   role,admin,firstName,Alex
    object (explode=true)    role=admin,firstName=Alex
"""

from typing import Any, Callable, Dict, List
from urllib.parse import unquote

StringParser = Callable[[str], Any]


def schema_type(schema: Dict[str, Any]) -> str:
    """Classify a schema as ``"array"``, ``"object"`` or ``"scalar"``."""
    declared = schema.get("type")
    if isinstance(declared, list):
        declared = next((t for t in declared if t != "null"), None)
    if declared in ("array", "object"):
        return declared
    if declared is None:
        if "items" in schema:
            return "array"
        if "properties" in schema or "additionalProperties" in schema:
            return "object"
    return "scalar"


def get_decoder(uri_encoded: bool) -> StringParser:
    if uri_encoded:
        return unquote
    return lambda value: value


def split_list(value: str, separator: str = ",") -> List[str]:
    if value == "":
        return []
    return value.split(separator)


def pairs_to_object(items: List[str], decode: StringParser) -> Dict[str, Any]:
    """``["role", "admin", "firstName", "Alex"]`` -> ``{"role": "admin", ...}``."""
    if len(items) % 2 != 0:
        raise ValueError("Expected an even number of comma separated keys and values")
    return {decode(items[i]): decode(items[i + 1]) for i in range(0, len(items), 2)}


def assignments_to_object(items: List[str], decode: StringParser) -> Dict[str, Any]:
    """``["role=admin", "firstName=Alex"]`` -> ``{"role": "admin", ...}``."""
    result: Dict[str, Any] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep:
            raise ValueError(f"Expected key=value but got {item!r}")
        result[decode(key)] = decode(value)
    return result


def get_simple_string_parser(schema: Dict[str, Any], explode: bool, uri_encoded: bool = True) -> StringParser:
    """Return a parser for one raw ``simple`` style string."""
    decode = get_decoder(uri_encoded)
    kind = schema_type(schema)

    if kind == "array":
        return lambda value: [decode(item) for item in split_list(value)]

    if kind == "object":
        if explode:
            return lambda value: assignments_to_object(split_list(value), decode)
        return lambda value: pairs_to_object(split_list(value), decode)

    return decode
