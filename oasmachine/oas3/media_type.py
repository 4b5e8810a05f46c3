"""A media type entry: a ``content`` key with its schema, parser and validator."""

import logging
from typing import Any, Callable, Dict, Optional

from ..models import ParameterLocation, ValidationErrorDetail
from ..schema import ValidationResult, generate_request_validator
from . import extensions
from .context import CompileContext

logger = logging.getLogger(__name__)


class MediaType:
    """One entry of a ``content`` map.

    Used for request bodies (with a body parser) and for parameters declared
    with ``content`` (with a string parser).
    """

    def __init__(
        self,
        context: CompileContext,
        oa_media_type: Dict[str, Any],
        location: ParameterLocation,
        required: bool,
        parser: Any,
        controller: Optional[str] = None,
        operation_id: Optional[str] = None,
    ):
        self.context = context
        self.oa_media_type = oa_media_type or {}
        self.location = location
        self.required = required
        self.parser = parser

        # Request body media types may name their own controller.
        self.controller = self.oa_media_type.get(extensions.CONTROLLER) or controller
        self.operation_id = self.oa_media_type.get(extensions.OPERATION_ID) or operation_id
        self.handler: Optional[Callable] = None

        if "schema" in self.oa_media_type:
            self._validator = generate_request_validator(context.child_context("schema"), location, required)
        else:
            self._validator = self._validate_presence

    def _validate_presence(self, value: Any) -> ValidationResult:
        if value is None and self.required:
            message = (
                "Missing required request body" if self.location.in_ == "request"
                else f"Missing required parameter {self.location.name}"
            )
            return ValidationResult([ValidationErrorDetail(message, self.location)], None)
        return ValidationResult(None, value)

    def validate(self, value: Any) -> ValidationResult:
        return self._validator(value)

    def __repr__(self):
        return f"MediaType({self.context.json_pointer!r})"
