"""Registry mapping MIME type patterns to values (body parsers, media types)."""

import logging
from typing import Dict, Generic, Iterator, Mapping, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def parse_mime_type(content_type: str) -> Tuple[str, str]:
    """Split a content type into lower-case ``(type, subtype)``.

    Parameters such as ``; charset=utf-8`` are discarded.

    Raises:
        ValueError: If the value is not of the form ``type/subtype``.
    """
    base = content_type.split(";", 1)[0].strip().lower()
    type_, sep, subtype = base.partition("/")
    if not sep or not type_ or not subtype:
        raise ValueError(f"Invalid MIME type: {content_type!r}")
    return type_, subtype


class MimeTypeRegistry(Generic[T]):
    """Ordered lookup of concrete MIME types against registered patterns.

    Patterns are ``type/subtype``, ``type/*`` or ``*/*``. A lookup returns the
    most specific registration: exact match, then subtype wildcard, then the
    full wildcard.

    Example::

        registry = MimeTypeRegistry({"text/*": text_parser})
        registry.register("application/json", json_parser)
        registry.get("application/json; charset=utf-8")  # json_parser
        registry.get("text/plain")                       # text_parser
        registry.get("image/png")                        # None
    """

    def __init__(self, patterns: Optional[Mapping[str, T]] = None):
        self._exact: Dict[str, T] = {}
        self._subtype_wildcards: Dict[str, T] = {}
        self._full_wildcard: Optional[T] = None
        self._has_full_wildcard = False
        self._patterns: Dict[str, T] = {}

        for pattern, value in (patterns or {}).items():
            if value is not None:
                self.register(pattern, value)

    def register(self, pattern: str, value: T) -> None:
        """Register ``value`` under ``pattern``.

        Raises:
            ValueError: If the pattern is malformed or already registered.
        """
        type_, subtype = parse_mime_type(pattern)
        key = f"{type_}/{subtype}"
        if key in self._patterns:
            raise ValueError(f"MIME type {key} is registered more than once")

        if type_ == "*":
            if subtype != "*":
                raise ValueError(f"Invalid MIME type pattern: {pattern!r}")
            self._full_wildcard = value
            self._has_full_wildcard = True
        elif subtype == "*":
            self._subtype_wildcards[type_] = value
        else:
            self._exact[key] = value
        self._patterns[key] = value

    def get(self, content_type: Optional[str]) -> Optional[T]:
        """Return the most specific value registered for ``content_type``."""
        if not content_type:
            return None
        try:
            type_, subtype = parse_mime_type(content_type)
        except ValueError:
            logger.debug(f"Ignoring malformed content type {content_type!r}")
            return None

        key = f"{type_}/{subtype}"
        if key in self._exact:
            return self._exact[key]
        if type_ in self._subtype_wildcards:
            return self._subtype_wildcards[type_]
        if self._has_full_wildcard:
            return self._full_wildcard
        return None

    lookup = get

    def get_registered_types(self) -> list:
        """Registered patterns, in registration order."""
        return list(self._patterns.keys())

    def items(self) -> Iterator[Tuple[str, T]]:
        return iter(self._patterns.items())

    def __contains__(self, content_type: object) -> bool:
        return isinstance(content_type, str) and self.get(content_type) is not None

    def __len__(self) -> int:
        return len(self._patterns)
