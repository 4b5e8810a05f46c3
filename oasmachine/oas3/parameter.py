"""A compiled parameter: where it lives, how to parse it and how to validate it."""

import logging
from typing import Any, Dict

from ..exceptions import CompileError
from ..models import ParameterLocation
from ..parameter_parsers import (
    MediaTypeParameterDescriptor,
    StyledParameterDescriptor,
    generate_parser,
)
from ..schema import generate_request_validator
from .context import CompileContext
from .media_type import MediaType

logger = logging.getLogger(__name__)

DEFAULT_STYLE = {
    "path": "simple",
    "query": "form",
    "cookie": "form",
    "header": "simple",
}


def default_explode(style: str) -> bool:
    return style == "form"


class Parameter:
    """One parameter, compiled.

    Attributes:
        location: Where values for this parameter come from. ``doc_path`` is
                  the pointer of the parameter as it appears in the operation or
                  path item (even when that is a ``$ref``).
        parser: ``(location, raw_values, raw_query, parser_context) -> ParseResult``.
        validate: ``(value) -> ValidationResult``.
    """

    def __init__(self, context: CompileContext, oa_parameter: Any = None):
        target_context, resolved = context.resolve(oa_parameter)
        if not isinstance(resolved, dict):
            raise CompileError(f"Parameter at {context.json_pointer} must be an object")

        location_in = resolved.get("in")
        name = resolved.get("name")
        if location_in not in DEFAULT_STYLE:
            raise CompileError(f"Parameter at {context.json_pointer} has invalid location {location_in!r}")
        if not isinstance(name, str) or not name:
            raise CompileError(f"Parameter at {context.json_pointer} has no name")

        self.context = context
        self.oa_parameter: Dict[str, Any] = resolved
        self.name = name
        self.required = bool(resolved.get("required", False))
        self.location = ParameterLocation(in_=location_in, name=name, doc_path=context.json_pointer)

        if "schema" in resolved and "content" in resolved:
            raise CompileError(f"Parameter {name} at {context.json_pointer} has both a 'schema' and a 'content'")

        if "schema" in resolved:
            self._compile_schema(target_context.child_context("schema"))
        elif "content" in resolved:
            self._compile_content(target_context.child_context("content"), resolved["content"])
        else:
            raise CompileError(f"Parameter {name} should have a 'schema' or a 'content'")

        logger.debug(f"Compiled {location_in} parameter {name!r} at {context.json_pointer}")

    def _compile_schema(self, schema_context: CompileContext) -> None:
        _, schema = schema_context.resolve()
        style = self.oa_parameter.get("style") or DEFAULT_STYLE[self.location.in_]
        explode = self.oa_parameter.get("explode")
        if explode is None:
            explode = default_explode(style)

        self.parser = generate_parser(
            StyledParameterDescriptor(
                style=style,
                explode=bool(explode),
                schema=schema if isinstance(schema, dict) else {},
                required=self.required,
                uri_encoded=self.location.in_ != "header",
            )
        )
        self.validate = generate_request_validator(schema_context, self.location, self.required, coerce=True)

    def _compile_content(self, content_context: CompileContext, content: Any) -> None:
        if not isinstance(content, dict) or len(content) != 1:
            raise CompileError(
                f"Parameter {self.name} at {self.context.json_pointer}: 'content' must have exactly one media type"
            )

        media_type_name, oa_media_type = next(iter(content.items()))
        parser = self.context.options.parameter_parsers.get(media_type_name)
        if parser is None:
            raise CompileError(
                f"Unable to find suitable mime type parser for type {media_type_name} "
                f"in {content_context.json_pointer}"
            )

        self.parser = generate_parser(
            MediaTypeParameterDescriptor(
                content_type=media_type_name,
                parser=parser,
                required=self.required,
                uri_encoded=self.location.in_ in ("query", "path"),
            )
        )
        media_type = MediaType(
            content_context.child_context(media_type_name),
            oa_media_type,
            self.location,
            self.required,
            parser,
        )
        self.validate = media_type.validate

    @property
    def key(self):
        """Parameters are identified by name and location."""
        return (self.location.in_, self.name)

    def __repr__(self):
        return f"Parameter({self.location.in_!r}, {self.name!r})"
