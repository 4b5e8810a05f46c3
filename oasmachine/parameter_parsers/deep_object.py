"""
The ``deepObject`` style: nested objects in the query string.

    ?filter[color]=red&filter[size][min]=2&tags[]=a&tags[]=b

parses to::

    {"filter": {"color": "red", "size": {"min": "2"}}, "tags": ["a", "b"]}

The whole query string is parsed once per request; every ``deepObject``
parameter then reads its own key from the cached result.
"""

import logging
import re
from typing import Any, Dict, List, Tuple
from urllib.parse import unquote

from ..models import ParameterLocation, ValuesBag
from .types import ParserContext

logger = logging.getLogger(__name__)

# Keys nested deeper than this are kept as literal strings below the limit.
MAX_DEPTH = 5

_KEY_RE = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
_SEGMENT_RE = re.compile(r"\[([^\[\]]*)\]")


def _split_key(key: str) -> Tuple[str, List[str]]:
    match = _KEY_RE.match(key)
    if not match:
        return key, []
    segments = _SEGMENT_RE.findall(match.group(2))
    if len(segments) > MAX_DEPTH:
        rest = "".join(f"[{segment}]" for segment in segments[MAX_DEPTH:])
        segments = segments[:MAX_DEPTH] + [rest]
    return match.group(1), segments


def _add_value(container: Dict[str, Any], key: str, value: str) -> None:
    existing = container.get(key)
    if existing is None:
        container[key] = value
    elif isinstance(existing, list):
        existing.append(value)
    elif isinstance(existing, str):
        container[key] = [existing, value]
    # A plain value never replaces a nested object.


def _assign(container: Dict[str, Any], key: str, segments: List[str], value: str) -> None:
    if not segments:
        _add_value(container, key, value)
        return

    segment = segments[0]
    child = container.get(key)

    if segment == "":
        if not isinstance(child, list):
            child = [] if child is None or isinstance(child, dict) else [child]
            container[key] = child
        child.append(value)
        return

    if not isinstance(child, dict):
        child = {}
        container[key] = child
    _assign(child, segment, segments[1:], value)


def parse_nested_query(query: str) -> Dict[str, Any]:
    """Parse a raw query string with ``name[prop]=value`` keys into nested dicts."""
    result: Dict[str, Any] = {}
    for pair in query.split("&"):
        if not pair:
            continue
        raw_key, _, raw_value = pair.partition("=")
        root, segments = _split_key(unquote(raw_key))
        _assign(result, root, segments, unquote(raw_value))
    return result


def deep_object_parser(
    location: ParameterLocation,
    values: ValuesBag,
    raw_query: str,
    context: ParserContext,
) -> Any:
    if context.deep_object_parsed is None:
        context.deep_object_parsed = parse_nested_query(raw_query)
        context.deep_object_parse_count += 1
    return context.deep_object_parsed.get(location.name)
