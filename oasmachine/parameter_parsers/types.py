"""Types shared by the parameter parsers."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Union

from ..models import ParameterLocation, ValidationErrorDetail, ValuesBag


@dataclass(frozen=True)
class StyledParameterDescriptor:
    """A parameter described by ``schema`` plus ``style``/``explode``.

    ``schema`` is the parameter's schema with any top level ``$ref`` already
    followed; only its ``type``, ``properties`` and ``items`` are consulted.
    """

    style: str
    explode: bool
    schema: Dict[str, Any]
    required: bool = False
    # Raw values from the path, query string and cookies are percent-encoded.
    uri_encoded: bool = True
    kind: str = field(default="styled", init=False)


@dataclass(frozen=True)
class MediaTypeParameterDescriptor:
    """A parameter described by ``content``: one media type and its parser."""

    content_type: str
    parser: Any
    required: bool = False
    uri_encoded: bool = False
    kind: str = field(default="media-type", init=False)


ParameterDescriptor = Union[StyledParameterDescriptor, MediaTypeParameterDescriptor]


class ParserContext:
    """Per-request scratch space shared by the parsers of one parameter group.

    Holds the parsed form of the whole query string for ``deepObject``
    parameters so it is parsed at most once per request.
    """

    def __init__(self):
        self.deep_object_parsed: Optional[Dict[str, Any]] = None
        self.deep_object_parse_count = 0


@dataclass
class ParseResult:
    """Either a parsed value or the error explaining why parsing failed."""

    value: Any = None
    error: Optional[ValidationErrorDetail] = None

    @property
    def ok(self) -> bool:
        return self.error is None


ParameterParser = Callable[[ParameterLocation, ValuesBag, str, ParserContext], ParseResult]
