"""
Per-request context handed to authenticators, hooks and controllers.

A :class:`RequestContext` belongs to exactly one request. It carries the
request, the matched operation, the parsed parameters and body once they are
available, the authenticated identities, and a :class:`ResponseBuilder` that
controllers may write to directly.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Union

from .exceptions import ValidationError
from .models import (
    Authenticated,
    Headers,
    ParameterLocation,
    ParametersByLocation,
    Request,
    ValidationErrorDetail,
    empty_parameters,
)
from .parameter_parsers import ParserContext, parse_cookie_header, parse_raw_query

if TYPE_CHECKING:
    from .oas3 import OpenApi, ResolvedOperation

logger = logging.getLogger(__name__)

HeaderValue = Union[str, int, List[str]]


class ResponseBuilder:
    """The response a controller (or hook, or authenticator) builds directly.

    Setting a body ends the response. Once ended, any further change raises
    RuntimeError.

    Example::

        async def create_pet(context):
            context.res.set_status(201).set_header("Location", "/pets/1")
            return {"id": 1}
    """

    def __init__(self):
        self.status_code = 200
        self.headers = Headers()
        self._body: Any = None
        self.ended = False

    def _check_not_ended(self, action: str) -> None:
        if self.ended:
            raise RuntimeError(f"Trying to {action} after response has been ended.")

    def set_status(self, status: int) -> "ResponseBuilder":
        self._check_not_ended("set status")
        self.status_code = int(status)
        return self

    def set_header(self, name: str, value: HeaderValue) -> "ResponseBuilder":
        self._check_not_ended("set header")
        if isinstance(value, (list, tuple)):
            self.headers.set(name, [str(v) for v in value])
        else:
            self.headers.set(name, str(value))
        return self

    header = set_header

    def get_header(self, name: str) -> Optional[str]:
        return self.headers.get(name)

    def has_header(self, name: str) -> bool:
        return name in self.headers

    def remove_header(self, name: str) -> "ResponseBuilder":
        self._check_not_ended("remove header")
        self.headers.remove(name)
        return self

    def get_headers(self) -> Dict[str, Union[str, List[str]]]:
        return self.headers.to_dict()

    def json(self, value: Any) -> "ResponseBuilder":
        self._check_not_ended("set JSON content")
        if not self.has_header("content-type"):
            self.headers.set("Content-Type", "application/json")
        self._body = value
        self.ended = True
        return self

    def set_body(self, body: Any) -> "ResponseBuilder":
        self._check_not_ended("set body")
        self._body = body
        self.ended = True
        return self

    @property
    def body(self) -> Any:
        return self._body

    @body.setter
    def body(self, body: Any) -> None:
        self.set_body(body)

    def end(self) -> None:
        self.ended = True

    def write_head(self, status: int, headers: Optional[Mapping[str, HeaderValue]] = None) -> "ResponseBuilder":
        self.set_status(status)
        for name, value in (headers or {}).items():
            self.set_header(name, value)
        return self

    def __repr__(self):
        return f"ResponseBuilder(status={self.status_code}, ended={self.ended})"


class RequestContext:
    """Everything known about one request while it is being dispatched.

    Attributes:
        req: The incoming :class:`~oasmachine.models.Request`.
        res: The :class:`ResponseBuilder` for this request.
        api: The compiled :class:`~oasmachine.oas3.OpenApi`.
        operation: The matched operation.
        params: Parsed and validated parameters by location, once available.
        body: Parsed and validated request body, once available.
        security: Identities by security scheme name, after authentication.
        user: The user, when exactly one security scheme authenticated the request.
    """

    def __init__(self, request: Request, resolved: "ResolvedOperation", api: Optional["OpenApi"] = None):
        self.req = request
        self.res = ResponseBuilder()
        self.api = api
        self.resolved = resolved
        self.operation = resolved.operation

        self.params: Optional[ParametersByLocation] = None
        self.body: Any = None
        self.security: Optional[Dict[str, Authenticated]] = None
        self.user: Any = None

        # Shared by every parameter parser during this request only.
        self.parser_context = ParserContext()

    def is_response_finished(self) -> bool:
        return self.res.ended

    def make_validation_error(self, message: str, location_in: str = "request", name: str = "body") -> ValidationError:
        location = ParameterLocation(in_=location_in, name=name, doc_path=self.operation.context.json_pointer)
        return ValidationError([ValidationErrorDetail(message, location)])

    def raw_parameter_values(self) -> Dict[str, Any]:
        """Raw, still encoded, values for every parameter location."""
        headers = self.req.headers
        return {
            "path": dict(self.resolved.raw_path_params),
            "header": headers.raw_values(),
            "server": dict(self.resolved.raw_server_params),
            "query": parse_raw_query(self.req.query_string),
            "cookie": parse_cookie_header(headers.get_all("cookie")),
        }

    def parse_parameters(self) -> List[ValidationErrorDetail]:
        """Parse and validate every parameter into ``self.params``.

        Returns the errors of every parameter that failed.
        """
        values, errors = self.operation.parse_parameters(
            self.raw_parameter_values(),
            self.req.query_string,
            self.parser_context,
        )
        errors.extend(self.operation.validate_parameters(values))
        values["server"] = dict(self.resolved.raw_server_params)
        self.params = values
        return errors

    async def parse_body(self) -> List[ValidationErrorDetail]:
        """Parse and validate the request body into ``self.body``."""
        value, errors = await self.operation.parse_body(
            self.req.body,
            self.req.get_content_type(),
            self.req.has_body(),
        )
        self.body = value
        return errors

    async def parse_request(self) -> None:
        """Parse parameters and body.

        Raises:
            ValidationError: With the errors of every parameter and the body.
        """
        errors = self.parse_parameters()
        errors.extend(await self.parse_body())
        if errors:
            raise ValidationError(errors)

    def get_params(self) -> ParametersByLocation:
        return self.params if self.params is not None else empty_parameters()
