"""Tests for request validators: OpenAPI dialect, formats, coercion and defaults."""

import pytest

from oasmachine.exceptions import CompileError
from oasmachine.models import ParameterLocation
from oasmachine.options import Options
from oasmachine.schema import generate_request_validator
from tests.fixtures import make_compile_context, make_openapi_doc

BODY = ParameterLocation(in_="request", name="body", doc_path="/components/schemas/Pet")


def make_document(schemas, openapi="3.0.1"):
    return make_openapi_doc(openapi=openapi, components={"schemas": schemas})


def validator_for(schemas, name, required=False, coerce=False, options=None, openapi="3.0.1", location=BODY):
    context = make_compile_context(
        make_document(schemas, openapi), "components", "schemas", name, options=options
    )
    return generate_request_validator(context, location, required, coerce=coerce)


class TestValidation:
    def test_string_parameter(self):
        location = ParameterLocation(in_="query", name="myparam", doc_path="/components/schemas/Param")
        validate = validator_for({"Param": {"type": "string"}}, "Param", location=location)

        assert validate("7").ok
        result = validate({"foo": "bar"})
        assert not result.ok
        assert len(result.errors) >= 1
        assert result.errors[0].location.name == "myparam"

    def test_error_location_points_into_the_value(self):
        validate = validator_for(
            {"Pet": {"type": "object", "properties": {"tags": {"type": "array", "items": {"type": "string"}}}}},
            "Pet",
        )
        result = validate({"tags": ["ok", 7]})
        assert not result.ok
        assert result.errors[0].location.path == "/tags/1"
        assert result.errors[0].location.doc_path == "/components/schemas/Pet"

    def test_refs_between_schemas(self):
        schemas = {
            "Pet": {"type": "object", "properties": {"owner": {"$ref": "#/components/schemas/Owner"}}},
            "Owner": {"type": "object", "required": ["name"], "properties": {"name": {"type": "string"}}},
        }
        validate = validator_for(schemas, "Pet")
        assert validate({"owner": {"name": "Alex"}}).ok
        assert not validate({"owner": {}}).ok

    def test_unresolvable_ref_fails_compilation(self):
        with pytest.raises(CompileError):
            validator_for({"Pet": {"$ref": "#/components/schemas/Missing"}}, "Pet")

    def test_missing_required_body(self):
        validate = validator_for({"Pet": {"type": "object"}}, "Pet", required=True)
        result = validate(None)
        assert result.errors[0].message == "Missing required request body"

    def test_missing_required_parameter(self):
        location = ParameterLocation(in_="query", name="limit", doc_path="/x")
        validate = validator_for({"Limit": {"type": "integer"}}, "Limit", required=True, location=location)
        assert validate(None).errors[0].message == "Missing required parameter limit"

    def test_all_errors(self):
        schema = {
            "type": "object",
            "properties": {"a": {"type": "string"}, "b": {"type": "string"}},
        }
        one = validator_for({"Pet": schema}, "Pet")
        every = validator_for({"Pet": schema}, "Pet", options=Options(all_errors=True))
        assert len(one({"a": 1, "b": 2}).errors) == 1
        assert len(every({"a": 1, "b": 2}).errors) == 2


class TestOpenApiDialect:
    def test_nullable(self):
        nullable = validator_for(
            {"Pet": {"type": "object", "properties": {"n": {"type": "string", "nullable": True}}}}, "Pet"
        )
        strict = validator_for({"Pet": {"type": "object", "properties": {"n": {"type": "string"}}}}, "Pet")
        assert nullable({"n": None}).ok
        assert not strict({"n": None}).ok

    def test_nullable_enum(self):
        schema = {
            "type": "object",
            "properties": {"color": {"type": "string", "enum": ["red"], "nullable": True}},
        }
        validate = validator_for({"Pet": schema}, "Pet")
        assert validate({"color": None}).ok
        assert not validate({"color": "blue"}).ok

    def test_read_only_properties_are_not_required(self):
        schema = {
            "type": "object",
            "required": ["id", "name"],
            "properties": {"id": {"type": "integer", "readOnly": True}, "name": {"type": "string"}},
        }
        validate = validator_for({"Pet": schema}, "Pet")
        assert validate({"name": "Rex"}).ok
        assert not validate({"id": 1}).ok

    def test_openapi_31_uses_2020_12(self):
        schema = {"type": "object", "properties": {"n": {"type": ["string", "null"]}}}
        validate = validator_for({"Pet": schema}, "Pet", openapi="3.1.0")
        assert validate({"n": "x"}).ok
        assert validate({"n": None}).ok
        assert not validate({"n": 5}).ok


class TestFormats:
    def test_int32(self):
        validate = validator_for({"N": {"type": "integer", "format": "int32"}}, "N")
        assert validate(2 ** 31 - 1).ok
        assert not validate(2 ** 31).ok

    def test_int64_is_bounded_to_safe_integers(self):
        validate = validator_for({"N": {"type": "integer", "format": "int64"}}, "N")
        assert validate(2 ** 53 - 1).ok
        assert not validate(2 ** 53).ok

    def test_int32_range_applies_to_floats(self):
        validate = validator_for({"N": {"type": "number", "format": "int32"}}, "N")
        assert validate(1.5).ok
        assert not validate(1e10).ok
        assert not validate(-1e10).ok

    def test_int64_range_applies_to_floats(self):
        validate = validator_for({"N": {"type": "number", "format": "int64"}}, "N")
        assert not validate(1e20).ok

    def test_int32_integral_float_on_openapi_31(self):
        validate = validator_for({"N": {"type": "integer", "format": "int32"}}, "N", openapi="3.1.0")
        assert validate(3.0).ok
        assert not validate(3000000000.0).ok

    def test_custom_format_callable(self):
        options = Options(custom_formats={"even": {"type": "integer", "validate": lambda n: n % 2 == 0}})
        validate = validator_for({"N": {"type": "integer", "format": "even"}}, "N", options=options)
        assert validate(4).ok
        assert not validate(3).ok

    def test_custom_format_regex(self):
        options = Options(custom_formats={"slug": r"^[a-z-]+$"})
        validate = validator_for({"S": {"type": "string", "format": "slug"}}, "S", options=options)
        assert validate("my-pet").ok
        assert not validate("My Pet").ok

    def test_invalid_custom_format_fails_compilation(self):
        with pytest.raises(CompileError):
            validator_for({"S": {"type": "string"}}, "S", options=Options(custom_formats={"bad": 42}))


class TestCoercionAndDefaults:
    def test_strings_are_coerced_for_parameters(self):
        location = ParameterLocation(in_="query", name="limit", doc_path="/x")
        validate = validator_for({"Limit": {"type": "integer"}}, "Limit", coerce=True, location=location)
        result = validate("7")
        assert result.ok
        assert result.value == 7
        assert not validate("seven").ok

    def test_booleans_and_numbers(self):
        location = ParameterLocation(in_="query", name="q", doc_path="/x")
        flag = validator_for({"F": {"type": "boolean"}}, "F", coerce=True, location=location)
        number = validator_for({"N": {"type": "number"}}, "N", coerce=True, location=location)
        assert flag("true").value is True
        assert number("1.5").value == 1.5

    def test_scalar_to_array(self):
        location = ParameterLocation(in_="query", name="ids", doc_path="/x")
        validate = validator_for(
            {"Ids": {"type": "array", "items": {"type": "integer"}}}, "Ids", coerce=True, location=location
        )
        assert validate("3").value == [3]
        assert validate(["3", "4"]).value == [3, 4]

    def test_bodies_are_not_coerced(self):
        validate = validator_for({"N": {"type": "integer"}}, "N")
        assert not validate("7").ok

    def test_default_for_missing_value(self):
        validate = validator_for({"Limit": {"type": "integer", "default": 10}}, "Limit")
        assert validate(None).value == 10

    def test_defaults_for_missing_properties(self):
        schema = {
            "type": "object",
            "properties": {"name": {"type": "string"}, "kind": {"type": "string", "default": "dog"}},
        }
        validate = validator_for({"Pet": schema}, "Pet")
        assert validate({"name": "Rex"}).value == {"name": "Rex", "kind": "dog"}
