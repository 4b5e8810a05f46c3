"""
Parameter parsers.

:func:`generate_parser` turns a parameter descriptor into a function::

    parser(location, raw_values, raw_query_string, parser_context) -> ParseResult

Raw values are exactly as they arrived (path and query values are still
percent-encoded). Parsers never raise for bad input: a malformed value, or a
missing required value, comes back as ``ParseResult(error=...)`` so callers can
collect the errors of every parameter before reporting them.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import unquote

from ..exceptions import CompileError
from ..models import ParameterLocation, ParametersMap, ValidationErrorDetail, ValuesBag
from .deep_object import deep_object_parser
from .delimited import generate_pipe_delimited_parser, generate_space_delimited_parser
from .path_style import generate_label_parser, generate_matrix_parser
from .simple import get_simple_string_parser, schema_type
from .structured import generate_form_parser
from .types import (
    MediaTypeParameterDescriptor,
    ParameterDescriptor,
    ParameterParser,
    ParserContext,
    ParseResult,
    StyledParameterDescriptor,
)

logger = logging.getLogger(__name__)

__all__ = [
    "MediaTypeParameterDescriptor",
    "ParameterDescriptor",
    "ParameterParser",
    "ParserContext",
    "ParseResult",
    "StyledParameterDescriptor",
    "generate_parser",
    "parse_cookie_header",
    "parse_parameter_group",
    "parse_query_parameters",
    "parse_raw_query",
]

ParserEntry = Tuple[ParameterLocation, ParameterParser]


def get_raw_value(location: ParameterLocation, values: ValuesBag) -> Any:
    """Look up a parameter's raw value. Header names are case-insensitive."""
    value = values.get(location.name)
    if value is None and location.in_ == "header":
        value = values.get(location.name.lower())
    return value


def _to_structured_parser(string_parser, kind: str):
    """Apply a single-string parser to a raw value or to each of a list of values."""

    def structured_parser(location, values, raw_query, context):
        raw = get_raw_value(location, values)
        if raw is None:
            return None
        if isinstance(raw, list):
            if kind == "array":
                # Repeated headers are one comma separated list.
                return string_parser(",".join(raw))
            return [string_parser(item) for item in raw]
        return string_parser(raw)

    return structured_parser


def _generate_style_parser(descriptor: StyledParameterDescriptor):
    schema, explode, uri_encoded = descriptor.schema, descriptor.explode, descriptor.uri_encoded
    style = descriptor.style

    if style == "simple":
        return _to_structured_parser(get_simple_string_parser(schema, explode, uri_encoded), schema_type(schema))
    if style == "form":
        return generate_form_parser(schema, explode, uri_encoded)
    if style == "matrix":
        return generate_matrix_parser(schema, explode, uri_encoded)
    if style == "label":
        return generate_label_parser(schema, explode, uri_encoded)
    if style in ("spaceDelimited", "pipeDelimited"):
        if explode:
            return generate_form_parser(schema, True, uri_encoded)
        if style == "spaceDelimited":
            return generate_space_delimited_parser(uri_encoded)
        return generate_pipe_delimited_parser(uri_encoded)
    if style == "deepObject":
        return deep_object_parser
    raise CompileError(f"Don't know how to parse parameters with style {style}")


def _generate_media_type_parser(descriptor: MediaTypeParameterDescriptor):
    parser = descriptor.parser

    def media_type_parser(location, values, raw_query, context):
        value = get_raw_value(location, values)
        if value is None:
            return None

        if descriptor.uri_encoded:
            value = [unquote(item) for item in value] if isinstance(value, list) else unquote(value)

        if isinstance(value, list):
            return [parser.parse_string(item) for item in value]
        return parser.parse_string(value)

    return media_type_parser


def _required_parameter_guard(parser: ParameterParser) -> ParameterParser:
    """Wrap ``parser`` so a missing value becomes a "missing required parameter" error."""

    def required_parameter(location, values, raw_query, context) -> ParseResult:
        result = parser(location, values, raw_query, context)
        if result.ok and result.value is None:
            return ParseResult(error=ValidationErrorDetail(f"Missing required parameter {location.name}", location))
        return result

    return required_parameter


def generate_parser(descriptor: ParameterDescriptor) -> ParameterParser:
    """Build the parser for one parameter.

    Raises:
        CompileError: If the descriptor's style is unknown.
    """
    if descriptor.kind == "media-type":
        raw_parser = _generate_media_type_parser(descriptor)  # type: ignore[arg-type]
        described_as = f"type {descriptor.content_type}"  # type: ignore[union-attr]
    elif descriptor.kind == "styled":
        raw_parser = _generate_style_parser(descriptor)  # type: ignore[arg-type]
        described_as = f"style {descriptor.style}"  # type: ignore[union-attr]
    else:
        raise CompileError(f"Unknown parameter descriptor kind {descriptor.kind!r}")

    def parameter_parser(location, values, raw_query, context) -> ParseResult:
        try:
            return ParseResult(raw_parser(location, values, raw_query, context))
        except Exception as e:
            message = getattr(e, "message", None) or str(e)
            logger.debug(f"Failed to parse {location.in_} parameter {location.name!r}: {message}")
            return ParseResult(
                error=ValidationErrorDetail(
                    f"Error parsing parameter {location.name} of {described_as}: {message}",
                    location,
                )
            )

    if descriptor.required:
        return _required_parameter_guard(parameter_parser)
    return parameter_parser


def parse_raw_query(query: str) -> ValuesBag:
    """Split a query string into raw values.

    Keys are percent-decoded, values are left as they are. Repeated keys
    collect into a list.
    """
    values: ValuesBag = {}
    if query.startswith("?"):
        query = query[1:]
    for pair in query.split("&"):
        if not pair:
            continue
        raw_key, _, raw_value = pair.partition("=")
        key = unquote(raw_key)
        existing = values.get(key)
        if existing is None:
            values[key] = raw_value
        elif isinstance(existing, list):
            existing.append(raw_value)
        else:
            values[key] = [existing, raw_value]
    return values


def parse_cookie_header(header: Optional[Any]) -> ValuesBag:
    """Split one or more ``Cookie`` header values into raw values."""
    values: ValuesBag = {}
    if not header:
        return values
    headers = header if isinstance(header, list) else [header]
    for line in headers:
        for pair in line.split(";"):
            name, sep, value = pair.strip().partition("=")
            if not sep or not name:
                continue
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] == '"':
                value = value[1:-1]
            existing = values.get(name)
            if existing is None:
                values[name] = value
            elif isinstance(existing, list):
                existing.append(value)
            else:
                values[name] = [existing, value]
    return values


def parse_parameter_group(
    parsers: Sequence[ParserEntry],
    raw_values: ValuesBag,
    raw_query: str = "",
    context: Optional[ParserContext] = None,
) -> Tuple[ParametersMap, List[ValidationErrorDetail]]:
    """Run every parser in ``parsers`` against ``raw_values``.

    Returns the parsed values by parameter name, and the errors of every
    parameter that failed (in the order given).
    """
    context = context or ParserContext()
    result: Dict[str, Any] = {}
    errors: List[ValidationErrorDetail] = []
    for location, parser in parsers:
        parsed = parser(location, raw_values, raw_query, context)
        if parsed.ok:
            result[location.name] = parsed.value
        else:
            errors.append(parsed.error)  # type: ignore[arg-type]
    return result, errors


def parse_query_parameters(
    parsers: Sequence[ParserEntry],
    query: str,
    context: Optional[ParserContext] = None,
) -> Tuple[ParametersMap, List[ValidationErrorDetail]]:
    return parse_parameter_group(parsers, parse_raw_query(query), query, context)
