"""
The ``spaceDelimited`` and ``pipeDelimited`` styles (query arrays only).

    spaceDelimited           id=3%204%205
    pipeDelimited            id=3|4|5

Exploded, both styles are the same as an exploded ``form`` array.
"""

import re
from typing import Any, Pattern

from ..models import ParameterLocation, ValuesBag
from .simple import get_decoder
from .types import ParserContext

# Raw values are still percent-encoded, so match the encoded separators too.
SPACE_SEPARATOR = re.compile(r"%20| |\+")
PIPE_SEPARATOR = re.compile(r"%7[cC]|\|")


def _generate_delimited_parser(separator: Pattern[str], uri_encoded: bool):
    decode = get_decoder(uri_encoded)

    def delimited_parser(
        location: ParameterLocation,
        values: ValuesBag,
        raw_query: str,
        context: ParserContext,
    ) -> Any:
        raw = values.get(location.name)
        if raw is None:
            return None
        if isinstance(raw, list):
            return [decode(item) for item in raw]
        if raw == "":
            return []
        return [decode(item) for item in separator.split(raw)]

    return delimited_parser


def generate_space_delimited_parser(uri_encoded: bool = True):
    return _generate_delimited_parser(SPACE_SEPARATOR, uri_encoded)


def generate_pipe_delimited_parser(uri_encoded: bool = True):
    return _generate_delimited_parser(PIPE_SEPARATOR, uri_encoded)
