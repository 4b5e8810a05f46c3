"""
A compiled operation: one HTTP method under one path.

Everything an operation needs at request time is worked out here, once: the
effective controller and operation id, the security requirements and roles,
the merged parameter list and the request body media types.
"""

import inspect
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..controllers import resolve_controller
from ..exceptions import BodyParseError, CompileError, HttpError
from ..mime import MimeTypeRegistry
from ..models import (
    PARAMETER_LOCATIONS,
    ParameterLocation,
    ParametersByLocation,
    ValidationErrorDetail,
    ValuesBag,
    empty_parameters,
)
from ..parameter_parsers import ParserContext, parse_parameter_group
from . import extensions
from .context import CompileContext
from .media_type import MediaType
from .parameter import Parameter
from .security import SecurityEvaluator

logger = logging.getLogger(__name__)

METHODS_WITH_BODY = ("post", "put", "patch")


def get_security_requirements(context: CompileContext, oa_operation: Dict[str, Any]) -> Tuple[List[dict], List[str]]:
    """Return the operation's effective ``(security requirements, required roles)``.

    Operation level ``security`` and roles replace the document level ones.

    Raises:
        CompileError: If roles are required but there is no security to check
            them against, or roles are not strings.
    """
    document = context.document
    security = oa_operation.get("security")
    if security is None:
        security = document.get("security") or []

    if extensions.ROLES in oa_operation:
        roles_pointer = f"{context.json_pointer}/{extensions.ROLES}"
        roles = extensions.read_roles(oa_operation[extensions.ROLES], roles_pointer)
    else:
        roles = extensions.read_roles(document.get(extensions.ROLES), f"/{extensions.ROLES}")
    roles = roles or []

    if roles and not security:
        if "security" in oa_operation and extensions.ROLES not in oa_operation:
            # The operation explicitly opts out of security and does not ask for
            # roles itself; the document's roles do not apply.
            roles = []
        else:
            raise CompileError(
                f"Operation {context.json_pointer} has no security requirements, "
                f"but requires roles: {','.join(roles)}"
            )

    return [dict(requirement) for requirement in security], roles


def _security_schemes(context: CompileContext) -> Dict[str, Dict[str, Any]]:
    components = context.document.get("components") or {}
    schemes: Dict[str, Dict[str, Any]] = {}
    for name, scheme in (components.get("securitySchemes") or {}).items():
        _, resolved = context.resolve(scheme)
        schemes[name] = resolved if isinstance(resolved, dict) else {}
    return schemes


class Operation:
    """One operation, compiled. Immutable and shared by every request."""

    def __init__(
        self,
        context: CompileContext,
        oa_operation: Dict[str, Any],
        oa_path: Dict[str, Any],
        method: str,
        controller: Optional[str] = None,
        parent_parameters: Sequence[Parameter] = (),
    ):
        self.context = context
        self.oa_operation = oa_operation
        self.oa_path = oa_path
        self.method = method.lower()
        options = context.options

        self.controller: Optional[str] = oa_operation.get(extensions.CONTROLLER) or controller
        self.operation_id: Optional[str] = (
            oa_operation.get(extensions.OPERATION_ID) or oa_operation.get("operationId")
        )

        self.security_requirements, self.required_roles = get_security_requirements(context, oa_operation)
        for requirement in self.security_requirements:
            for scheme_name in requirement:
                if scheme_name not in options.authenticators:
                    raise CompileError(
                        f'Operation {context.json_pointer} references security scheme "{scheme_name}" '
                        "but no authenticator was provided."
                    )
        self.security = SecurityEvaluator(
            self.security_requirements,
            self.required_roles,
            options.authenticators,
            _security_schemes(context),
            run_sync_in_thread=options.run_sync_controllers_in_thread,
        )

        self._compile_request_body()
        # With a request body, each media type was checked for a controller instead.
        self.handler: Optional[Callable] = self._bind_handler(
            context, self.controller, self.operation_id, check_missing=self.request_body is None
        )

        local_parameters = [
            Parameter(context.child_context("parameters", index), oa_parameter)
            for index, oa_parameter in enumerate(oa_operation.get("parameters") or [])
        ]
        # Local parameters replace inherited ones with the same name and location.
        merged: Dict[Tuple[str, str], Parameter] = {parameter.key: parameter for parameter in parent_parameters}
        for parameter in local_parameters:
            merged[parameter.key] = parameter

        self.parameters: Dict[str, List[Parameter]] = {location: [] for location in PARAMETER_LOCATIONS}
        for parameter in merged.values():
            self.parameters[parameter.location.in_].append(parameter)

        logger.debug(
            f"Compiled operation {self.method.upper()} {context.json_pointer} "
            f"({self.controller or '-'}#{self.operation_id or '-'})"
        )

    def _compile_request_body(self) -> None:
        self.request_body: Optional[Dict[str, Any]] = None
        self.body_required = False
        self.request_content_types: List[str] = []
        self._media_types: MimeTypeRegistry = MimeTypeRegistry()
        self._body_location: Optional[ParameterLocation] = None

        if "requestBody" not in self.oa_operation or self.method not in METHODS_WITH_BODY:
            return

        body_context, request_body = self.context.child_context("requestBody").resolve()
        if not isinstance(request_body, dict) or not isinstance(request_body.get("content"), dict):
            raise CompileError(f"Request body at {body_context.json_pointer} must have a 'content' object")

        self.request_body = request_body
        self.body_required = bool(request_body.get("required", False))
        content_context = body_context.child_context("content")
        location = ParameterLocation(in_="request", name="body", doc_path=content_context.json_pointer)
        self._body_location = location

        for media_type_name, oa_media_type in request_body["content"].items():
            media_context = content_context.child_context(media_type_name)
            parser = self.context.options.body_parsers.get(media_type_name)
            if parser is None:
                raise CompileError(
                    f"Unable to find suitable mime type parser for type {media_type_name} "
                    f"in {media_context.json_pointer}"
                )
            media_type = MediaType(
                media_context,
                oa_media_type,
                location,
                self.body_required,
                parser,
                controller=self.controller,
                operation_id=self.operation_id,
            )
            media_type.handler = self._bind_handler(media_context, media_type.controller, media_type.operation_id)
            try:
                self._media_types.register(media_type_name, media_type)
            except ValueError as e:
                raise CompileError(f"{e} in {content_context.json_pointer}") from e
            self.request_content_types.append(media_type_name)

    def _bind_handler(
        self,
        context: CompileContext,
        controller: Optional[str],
        operation_id: Optional[str],
        check_missing: bool = True,
    ) -> Optional[Callable]:
        options = context.options
        check_missing = check_missing and not options.allow_missing_controllers
        if not controller and check_missing:
            raise CompileError(f"Missing {extensions.CONTROLLER} for {context.json_pointer}")
        if not operation_id and check_missing:
            raise CompileError(f"Missing operationId or {extensions.OPERATION_ID} for {context.json_pointer}")
        if not controller or not operation_id:
            return None

        if controller not in options.controllers:
            raise CompileError(f"Could not find controller {controller} defined in {context.json_pointer}")
        handler = resolve_controller(options.controllers, controller, operation_id)
        if handler is None:
            raise CompileError(f"Could not find operation {controller}#{operation_id} defined in {context.json_pointer}")
        return handler

    def get_media_type(self, content_type: Optional[str]) -> Optional[MediaType]:
        """Return the request body media type matching ``content_type``."""
        return self._media_types.get(content_type)

    def get_handler(self, content_type: Optional[str] = None) -> Tuple[Optional[str], Optional[str], Optional[Callable]]:
        """Return ``(controller, operation_id, handler)`` for a request.

        A request body media type with its own controller takes precedence.
        """
        media_type = self.get_media_type(content_type) if self.request_body else None
        if media_type is not None:
            return media_type.controller, media_type.operation_id, media_type.handler
        return self.controller, self.operation_id, self.handler

    async def authenticate(self, context: Any):
        return await self.security.authenticate(context)

    def parse_parameters(
        self,
        raw_values: Dict[str, ValuesBag],
        raw_query: str = "",
        parser_context: Optional[ParserContext] = None,
    ) -> Tuple[ParametersByLocation, List[ValidationErrorDetail]]:
        """Parse raw values for every location. Returns the values and all parse errors."""
        parser_context = parser_context or ParserContext()
        values = empty_parameters()
        errors: List[ValidationErrorDetail] = []
        for location in PARAMETER_LOCATIONS:
            parsers = [(parameter.location, parameter.parser) for parameter in self.parameters[location]]
            if not parsers:
                continue
            parsed, parse_errors = parse_parameter_group(
                parsers,
                raw_values.get(location) or {},
                raw_query if location == "query" else "",
                parser_context,
            )
            values[location] = parsed
            errors.extend(parse_errors)
        return values, errors

    def validate_parameters(self, values: ParametersByLocation) -> List[ValidationErrorDetail]:
        """Validate parsed values, replacing each with its coerced value."""
        errors: List[ValidationErrorDetail] = []
        for location in PARAMETER_LOCATIONS:
            location_values = values.get(location)
            if location_values is None:
                continue
            for parameter in self.parameters[location]:
                if parameter.name not in location_values:
                    # Failed to parse; already reported.
                    continue
                parsed = location_values[parameter.name]
                result = parameter.validate(parsed)
                if result.errors:
                    errors.extend(result.errors)
                elif parsed is None and result.value is None:
                    # Absent, optional and without a default.
                    del location_values[parameter.name]
                else:
                    location_values[parameter.name] = result.value
        return errors

    async def parse_body(self, body: Any, content_type: Optional[str], has_body: bool):
        """Parse and validate a request body.

        Returns ``(value, errors)``.

        Raises:
            HttpError: 415 if the content type matches no media type; any
                HttpError a body parser raises (413 for oversize bodies).
        """
        if self.request_body is None:
            return None, []

        location = self._body_location
        if not has_body:
            if self.body_required:
                return None, [ValidationErrorDetail("Missing required request body", location)]
            return None, []

        media_type = self.get_media_type(content_type)
        if media_type is None:
            raise HttpError(
                415,
                f"Invalid content type {content_type!r}; expected one of: {', '.join(self.request_content_types)}",
            )

        try:
            value = media_type.parser.parse_body(body, content_type)
            if inspect.isawaitable(value):
                value = await value
        except HttpError:
            raise
        except BodyParseError as e:
            return None, [ValidationErrorDetail(f"Could not parse request body: {e.message}", media_type.location)]
        except Exception as e:
            logger.debug(f"Body parser for {content_type} failed: {e}")
            return None, [ValidationErrorDetail(f"Could not parse request body: {e}", media_type.location)]

        result = media_type.validate(value)
        return result.value, list(result.errors or [])

    def __repr__(self):
        return f"Operation({self.method.upper()} {self.context.json_pointer!r})"
