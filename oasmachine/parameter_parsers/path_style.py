"""
The ``matrix`` and ``label`` styles (path parameters only).

Given the parameter ``id``::

                             matrix                        label
    scalar                   ;id=5                         .5
    array                    ;id=3,4,5                     .3,4,5
    array (explode=true)     ;id=3;id=4;id=5               .3.4.5
    object                   ;id=role,admin,first,Alex     .role,admin,first,Alex
    object (explode=true)    ;role=admin;first=Alex        .role=admin.first=Alex
"""

from typing import Any, Dict, List, Tuple

from ..models import ParameterLocation, ValuesBag
from .simple import assignments_to_object, get_decoder, pairs_to_object, schema_type, split_list
from .types import ParserContext


def _strip_prefix(value: str, prefix: str) -> str:
    if not value.startswith(prefix):
        raise ValueError(f"Expected value to start with {prefix!r}")
    return value[len(prefix):]


def _matrix_segments(value: str) -> List[Tuple[str, str]]:
    segments = []
    for segment in _strip_prefix(value, ";").split(";"):
        key, _, item = segment.partition("=")
        segments.append((key, item))
    return segments


def _raw_value(location: ParameterLocation, values: ValuesBag) -> Any:
    raw = values.get(location.name)
    if isinstance(raw, list):
        raw = raw[0] if raw else None
    return raw


def generate_matrix_parser(schema: Dict[str, Any], explode: bool, uri_encoded: bool = True):
    decode = get_decoder(uri_encoded)
    kind = schema_type(schema)

    def matrix_parser(
        location: ParameterLocation,
        values: ValuesBag,
        raw_query: str,
        context: ParserContext,
    ) -> Any:
        raw = _raw_value(location, values)
        if raw is None:
            return None

        segments = _matrix_segments(raw)
        named = [item for key, item in segments if decode(key) == location.name]

        if kind == "object" and explode:
            return assignments_to_object([f"{key}={item}" for key, item in segments], decode)

        if not named:
            raise ValueError(f"Expected ;{location.name}=... but got {raw!r}")

        if kind == "array":
            if explode:
                return [decode(item) for item in named]
            return [decode(item) for item in split_list(named[0])]

        if kind == "object":
            return pairs_to_object(split_list(named[0]), decode)

        return decode(named[0])

    return matrix_parser


def generate_label_parser(schema: Dict[str, Any], explode: bool, uri_encoded: bool = True):
    decode = get_decoder(uri_encoded)
    kind = schema_type(schema)

    def label_parser(
        location: ParameterLocation,
        values: ValuesBag,
        raw_query: str,
        context: ParserContext,
    ) -> Any:
        raw = _raw_value(location, values)
        if raw is None:
            return None

        value = _strip_prefix(raw, ".")
        separator = "." if explode else ","

        if kind == "array":
            return [decode(item) for item in split_list(value, separator)]

        if kind == "object":
            if explode:
                return assignments_to_object(split_list(value, "."), decode)
            return pairs_to_object(split_list(value), decode)

        return decode(value)

    return label_parser
