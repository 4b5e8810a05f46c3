"""
Parsers which turn a raw request body or a raw parameter string into a value.

Two kinds of parser can be registered against a MIME type pattern:

- A *string parser* exposes ``parse_string(value)``. It can be used for
  parameters declared with ``content`` and, wrapped in a
  :class:`BodyParserWrapper`, for request bodies.
- A *body parser* exposes ``parse_body(body, content_type)`` (sync or async)
  and is only used for request bodies.
"""

import json
import logging
from typing import Any, BinaryIO, Optional, Union
from urllib.parse import parse_qs

from .exceptions import BodyParseError, HttpError

logger = logging.getLogger(__name__)

RawBody = Union[bytes, str, BinaryIO]


def extract_charset(content_type: Optional[str]) -> Optional[str]:
    """Extract the charset parameter from a Content-Type header.

    Examples:
        >>> extract_charset("application/json; charset=utf-8")
        'utf-8'
        >>> extract_charset("application/json") is None
        True
    """
    if not content_type:
        return None

    for part in content_type.split(";")[1:]:
        part = part.strip()
        if part.lower().startswith("charset="):
            charset = part.split("=", 1)[1].strip()
            return charset.strip("\"'")
    return None


def decode_bytes(data: bytes, content_type: Optional[str] = None) -> str:
    """Decode bytes using the charset from ``content_type``.

    Falls back to UTF-8, then Latin1 (which maps every byte and never fails).
    """
    if not data:
        return ""

    charset = extract_charset(content_type)
    if charset:
        try:
            return data.decode(charset)
        except (UnicodeDecodeError, LookupError):
            pass

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("latin1")


def read_body(body: RawBody, max_body_size: int) -> bytes:
    """Read a raw body into bytes, enforcing ``max_body_size``.

    Raises:
        HttpError: 413 if the body is larger than ``max_body_size``.
    """
    if isinstance(body, str):
        data = body.encode("utf-8")
    elif isinstance(body, (bytes, bytearray)):
        data = bytes(body)
    else:
        # Read one byte past the limit so oversize bodies are detected
        # without reading the whole stream.
        data = body.read(max_body_size + 1)

    if len(data) > max_body_size:
        raise HttpError(413, f"Request body is larger than {max_body_size} bytes")
    return data


class JsonParser:
    """Parses ``application/json`` values."""

    def parse_string(self, value: str) -> Any:
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise BodyParseError(f"Invalid JSON - {e}", original_exception=e)


class TextParser:
    """Parses ``text/*`` values (the raw string, unchanged)."""

    def parse_string(self, value: str) -> str:
        return value


class FormUrlEncodedParser:
    """Parses ``application/x-www-form-urlencoded`` values.

    Keys that appear once map to a string, repeated keys to a list.
    """

    def parse_string(self, value: str) -> dict:
        try:
            parsed = parse_qs(value, keep_blank_values=True, strict_parsing=bool(value))
        except ValueError as e:
            raise BodyParseError(f"Invalid form data - {e}", original_exception=e)
        return {key: values[0] if len(values) == 1 else values for key, values in parsed.items()}


class BodyParserWrapper:
    """Adapts a string parser so it can parse request bodies."""

    def __init__(self, parser: Any, max_body_size: int):
        self.parser = parser
        self.max_body_size = max_body_size

    def parse_body(self, body: RawBody, content_type: Optional[str] = None) -> Any:
        data = read_body(body, self.max_body_size)
        text = decode_bytes(data, content_type)
        return self.parser.parse_string(text)

    def __repr__(self):
        return f"BodyParserWrapper({self.parser!r}, max_body_size={self.max_body_size})"


def default_mime_type_parsers() -> dict:
    """The parsers registered when no user parser overrides them."""
    return {
        "text/*": TextParser(),
        "application/json": JsonParser(),
        "application/x-www-form-urlencoded": FormUrlEncodedParser(),
    }


def is_string_parser(parser: Any) -> bool:
    return callable(getattr(parser, "parse_string", None))


def is_body_parser(parser: Any) -> bool:
    return callable(getattr(parser, "parse_body", None))
