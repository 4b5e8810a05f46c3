"""
Core data models shared by the compiler and the request runner.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, BinaryIO, Dict, Iterable, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

# Parameter locations, in the order they are parsed and validated.
PARAMETER_LOCATIONS = ("path", "header", "server", "query", "cookie")

RawValue = Union[str, List[str]]
ValuesBag = Dict[str, RawValue]
ParametersMap = Dict[str, Any]
ParametersByLocation = Dict[str, ParametersMap]


def empty_parameters() -> ParametersByLocation:
    """Return a fresh ``{location: {}}`` mapping for every parameter location."""
    return {location: {} for location in PARAMETER_LOCATIONS}


class HTTPMethod(Enum):
    """HTTP methods an OpenAPI path item can declare."""

    GET = "GET"
    PUT = "PUT"
    POST = "POST"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"
    HEAD = "HEAD"
    PATCH = "PATCH"
    TRACE = "TRACE"


class Headers:
    """
    Multi-value, case-insensitive headers container.

    HTTP headers are case-insensitive and the same header can appear more than
    once (``WWW-Authenticate``, ``Set-Cookie``). Lookups ignore case; the casing
    of the first occurrence is kept for output.

    Example::

        headers = Headers({"Content-Type": "application/json"})
        headers.get("content-type")          # 'application/json'
        headers.add("WWW-Authenticate", "Basic")
        headers.add("WWW-Authenticate", "Bearer")
        headers.get_all("www-authenticate")  # ['Basic', 'Bearer']
    """

    def __init__(self, data=None):
        # Dict[lowercase_name, List[Tuple[original_name, value]]]
        self._headers: Dict[str, List[Tuple[str, str]]] = {}

        if data is None:
            return
        if isinstance(data, Headers):
            self._headers = {k: list(v) for k, v in data._headers.items()}
        elif isinstance(data, dict):
            for key, value in data.items():
                if isinstance(value, (list, tuple)):
                    for v in value:
                        self.add(key, v)
                elif value is not None:
                    self.add(key, value)
        else:
            for key, value in data:
                self.add(key, value)

    def add(self, name: str, value: Any) -> None:
        """Add a header value, keeping any existing values for the same name."""
        self._headers.setdefault(name.lower(), []).append((name, str(value)))

    def set(self, name: str, value: Union[str, Iterable[str]]) -> None:
        """Set a header, replacing any existing values."""
        self._headers.pop(name.lower(), None)
        if isinstance(value, (list, tuple)):
            for v in value:
                self.add(name, v)
        else:
            self.add(name, value)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Return the first value for ``name``, or ``default``."""
        if not isinstance(name, str):
            return default
        values = self._headers.get(name.lower())
        if values:
            return values[0][1]
        return default

    def get_all(self, name: str) -> List[str]:
        """Return every value for ``name`` (empty list if absent)."""
        return [value for _, value in self._headers.get(name.lower(), [])]

    def remove(self, name: str) -> None:
        self._headers.pop(name.lower(), None)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._headers

    def __getitem__(self, name: str) -> str:
        value = self.get(name)
        if value is None:
            raise KeyError(name)
        return value

    def __setitem__(self, name: str, value: str) -> None:
        self.set(name, value)

    def __iter__(self):
        for values in self._headers.values():
            yield values[0][0]

    def __len__(self) -> int:
        return len(self._headers)

    def names(self) -> List[str]:
        return list(self)

    def raw_values(self) -> ValuesBag:
        """Return ``{lower-case name: value | [values]}`` for parameter parsing."""
        result: ValuesBag = {}
        for name_lower, values in self._headers.items():
            if len(values) == 1:
                result[name_lower] = values[0][1]
            else:
                result[name_lower] = [value for _, value in values]
        return result

    def to_dict(self) -> Dict[str, Union[str, List[str]]]:
        """Return ``{name: value}``, using a list only for repeated headers."""
        return {
            values[0][0]: values[0][1] if len(values) == 1 else [v for _, v in values]
            for values in self._headers.values() if values
        }

    def copy(self) -> "Headers":
        return Headers(self)

    def __repr__(self):
        return f"Headers({self.to_dict()!r})"


@dataclass
class Request:
    """An incoming HTTP request, as handed to the runner by a transport adapter.

    ``url`` is the raw request target (path plus optional query string), exactly
    as it arrived; nothing in it has been percent-decoded.
    """

    method: Union[HTTPMethod, str]
    url: str
    headers: Union[Dict[str, Any], Headers] = field(default_factory=dict)
    body: Optional[Union[bytes, str, BinaryIO]] = None

    def __post_init__(self):
        if not isinstance(self.method, HTTPMethod):
            self.method = HTTPMethod(str(self.method).upper())
        if not isinstance(self.headers, Headers):
            self.headers = Headers(self.headers)

    @property
    def path(self) -> str:
        return self.url.partition("?")[0] or "/"

    @property
    def query_string(self) -> str:
        return self.url.partition("?")[2]

    @property
    def host(self) -> Optional[str]:
        return self.headers.get("host")

    def get_content_type(self) -> Optional[str]:
        return self.headers.get("content-type")

    def has_body(self) -> bool:
        """True if the request carries a body.

        A body is present when ``Transfer-Encoding`` is set or ``Content-Length``
        is non-zero. Requests built in-process without those headers count as
        having a body when ``body`` is non-empty.
        """
        if self.headers.get("transfer-encoding"):
            return True
        content_length = self.headers.get("content-length")
        if content_length is not None:
            return content_length.strip() not in ("", "0")
        if self.body is None:
            return False
        if isinstance(self.body, (bytes, str)):
            return len(self.body) > 0
        return True


@dataclass(frozen=True)
class ParameterLocation:
    """Where a value came from: ``in`` (``query``, ``request``, ...), its name,
    the JSON pointer of its definition in the document, and a JSON pointer into
    the value itself.
    """

    in_: str
    name: str
    doc_path: str
    path: str = ""

    def child(self, pointer: str) -> "ParameterLocation":
        return ParameterLocation(self.in_, self.name, self.doc_path, self.path + pointer)

    def to_dict(self) -> Dict[str, str]:
        return {"in": self.in_, "name": self.name, "docPath": self.doc_path, "path": self.path}


@dataclass(frozen=True)
class ValidationErrorDetail:
    """A single validation failure."""

    message: str
    location: ParameterLocation

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "location": self.location.to_dict()}


@dataclass
class Authenticated:
    """Identity produced by an authenticator for one security scheme.

    Authenticators may return an instance of this class, a mapping with the same
    keys, or a falsy value. A ``type`` other than ``"success"`` is treated as
    "not authenticated".
    """

    type: str = "success"
    user: Any = None
    roles: Optional[List[str]] = None
    scopes: Optional[List[str]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.type == "success"

    @classmethod
    def from_value(cls, value: Any) -> Optional["Authenticated"]:
        """Normalize an authenticator's return value."""
        if not value:
            return None
        if isinstance(value, Authenticated):
            return value
        if isinstance(value, dict):
            known = {k: value[k] for k in ("type", "user", "roles", "scopes") if k in value}
            extra = {k: v for k, v in value.items() if k not in known}
            return cls(**known, extra=extra)
        # Any other truthy object is treated as the user.
        return cls(user=value)


@dataclass
class HttpResult:
    """Transport-agnostic result of running a request.

    ``body`` is a readable binary stream, or None when there is no body. This is
    the only thing a transport adapter needs to render.
    """

    status: int
    headers: Dict[str, Union[str, List[str]]] = field(default_factory=dict)
    body: Optional[BinaryIO] = None

    def read_body(self) -> bytes:
        """Read the remaining body bytes (empty if there is no body)."""
        if self.body is None:
            return b""
        return self.body.read()

    def text(self, encoding: str = "utf-8") -> str:
        return self.read_body().decode(encoding)

    def json(self) -> Any:
        return json.loads(self.text())
