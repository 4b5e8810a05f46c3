"""
Schema validator generation.

:func:`generate_request_validator` compiles the schema at a document location
into a function ``(value) -> ValidationResult``. Validation is done by
``jsonschema``; the validator is built once at compile time and references the
schema by URI inside a ``referencing`` registry holding the whole document, so
``$ref`` between schemas resolves the same way it does in the document.

OpenAPI 3.0 schemas differ from plain JSON Schema in a few ways that matter for
requests, and the validator class is extended to handle them:

- ``nullable: true`` admits ``null``;
- ``readOnly`` properties are never required in a request.

Parameter values arrive as strings, so parameter validators also coerce values
to the declared type (``"7"`` -> ``7``, ``"x"`` -> ``["x"]``) before validating.
"""

import copy
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional

from jsonschema import ValidationError as SchemaError
from jsonschema import validators
from jsonschema.exceptions import best_match
from referencing.exceptions import Unresolvable

from .exceptions import CompileError
from .models import ParameterLocation, ValidationErrorDetail

logger = logging.getLogger(__name__)

_INTEGER_RE = re.compile(r"^[-+]?\d+$")
_NUMBER_RE = re.compile(r"^[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?$")


@dataclass
class ValidationResult:
    """Outcome of validating one value: ``errors`` is None when it passed."""

    errors: Optional[List[ValidationErrorDetail]]
    value: Any

    @property
    def ok(self) -> bool:
        return not self.errors


Validator = Callable[[Any], ValidationResult]


def extend_for_openapi(base_class: Any) -> Any:
    """Return ``base_class`` extended with OpenAPI's request semantics."""
    type_check = base_class.VALIDATORS["type"]
    enum_check = base_class.VALIDATORS["enum"]

    def nullable_type(validator, types, instance, schema):
        if instance is None and schema.get("nullable") is True:
            return
        yield from type_check(validator, types, instance, schema)

    def nullable_enum(validator, enums, instance, schema):
        if instance is None and schema.get("nullable") is True:
            return
        yield from enum_check(validator, enums, instance, schema)

    def request_required(validator, required, instance, schema):
        if not validator.is_type(instance, "object"):
            return
        properties = schema.get("properties") or {}
        for name in required:
            if name in instance:
                continue
            property_schema = properties.get(name)
            if isinstance(property_schema, dict) and property_schema.get("readOnly") is True:
                continue
            yield SchemaError(f"{name!r} is a required property")

    return validators.extend(
        base_class,
        {"type": nullable_type, "enum": nullable_enum, "required": request_required},
    )


def _schema_types(schema: Any) -> List[str]:
    if not isinstance(schema, dict):
        return []
    declared = schema.get("type")
    if isinstance(declared, str):
        return [declared]
    if isinstance(declared, list):
        return [t for t in declared if isinstance(t, str)]
    return []


def _coerce_string(value: str, types: Iterable[str]) -> Any:
    for schema_type in types:
        if schema_type == "string":
            return value
        if schema_type == "integer" and _INTEGER_RE.match(value):
            return int(value)
        if schema_type == "number" and _NUMBER_RE.match(value):
            number = float(value)
            return int(number) if _INTEGER_RE.match(value) else number
        if schema_type == "boolean" and value in ("true", "false"):
            return value == "true"
        if schema_type == "null" and value == "":
            return None
    return value


def coerce_value(value: Any, schema: Any, resolve: Callable[[Any], Any]) -> Any:
    """Coerce a parsed parameter value towards the types ``schema`` declares.

    Values that cannot be coerced are returned unchanged so that validation
    reports them.
    """
    schema = resolve(schema)
    types = _schema_types(schema)
    if value is None or not types:
        return value

    if "array" in types:
        if not isinstance(value, list):
            value = [value]
        items = schema.get("items")
        if isinstance(items, dict):
            value = [coerce_value(item, items, resolve) for item in value]
        return value

    if isinstance(value, list) and len(value) == 1:
        value = value[0]

    if "object" in types and isinstance(value, dict):
        properties = schema.get("properties") or {}
        return {
            key: coerce_value(item, properties[key], resolve) if key in properties else item
            for key, item in value.items()
        }

    if isinstance(value, str):
        return _coerce_string(value, types)
    return value


def apply_defaults(value: Any, schema: Any, resolve: Callable[[Any], Any]) -> Any:
    """Fill in ``default`` for a missing value and for missing object properties."""
    schema = resolve(schema)
    if not isinstance(schema, dict):
        return value

    if value is None:
        if "default" in schema:
            return copy.deepcopy(schema["default"])
        return value

    if isinstance(value, dict):
        for name, property_schema in (schema.get("properties") or {}).items():
            if name in value:
                value[name] = apply_defaults(value[name], property_schema, resolve)
                continue
            property_schema = resolve(property_schema)
            if isinstance(property_schema, dict) and "default" in property_schema:
                value[name] = copy.deepcopy(property_schema["default"])
    return value


def _error_pointer(error: SchemaError) -> str:
    return "".join(
        "/" + str(segment).replace("~", "~0").replace("/", "~1")
        for segment in error.absolute_path
    )


def _missing_message(location: ParameterLocation) -> str:
    if location.in_ == "request":
        return "Missing required request body"
    return f"Missing required parameter {location.name}"


def generate_request_validator(
    context: Any,
    location: ParameterLocation,
    required: bool,
    coerce: bool = False,
) -> Validator:
    """Compile the schema at ``context`` into a validator for request values.

    Args:
        context: Compile context pointing at the schema.
        location: Where validated values come from; used in error details.
        required: If true, a missing (None) value is one "missing" error.
            Otherwise a missing value passes, taking the schema's default.
        coerce: Coerce string values to the declared types first (parameters).

    Raises:
        CompileError: If the schema reference does not resolve.
    """
    try:
        context.registry.resolver(context.uri).lookup(context.uri)
    except Unresolvable as e:
        raise CompileError(f"Cannot resolve schema at {context.json_pointer}") from e

    schema_context, schema = context.resolve()

    def resolve(value: Any) -> Any:
        if value is None:
            return None
        return schema_context.resolve(value)[1]

    validator = context.validator_class(
        {"$ref": context.uri},
        registry=context.registry,
        format_checker=context.options.format_checker,
    )
    all_errors = context.options.all_errors

    def validate(value: Any) -> ValidationResult:
        if value is None:
            if required:
                return ValidationResult([ValidationErrorDetail(_missing_message(location), location)], None)
            value = apply_defaults(None, schema, resolve)
            return ValidationResult(None, value)

        if coerce:
            value = coerce_value(value, schema, resolve)
        value = apply_defaults(value, schema, resolve)

        if all_errors:
            schema_errors = list(validator.iter_errors(value))
        else:
            match = best_match(validator.iter_errors(value))
            schema_errors = [match] if match is not None else []

        if not schema_errors:
            return ValidationResult(None, value)

        return ValidationResult(
            [
                ValidationErrorDetail(error.message, location.child(_error_pointer(error)))
                for error in schema_errors
            ],
            value,
        )

    logger.debug(f"Compiled validator for {location.in_} {location.name!r} at {context.json_pointer}")
    return validate
