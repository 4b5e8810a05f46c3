"""
Tests for parameter parsing: every style, explode, encoding and the
per-request deepObject cache.
"""

import pytest

from oasmachine.body_parsers import JsonParser
from oasmachine.exceptions import CompileError
from oasmachine.models import ParameterLocation
from oasmachine.parameter_parsers import (
    MediaTypeParameterDescriptor,
    ParserContext,
    StyledParameterDescriptor,
    generate_parser,
    parse_cookie_header,
    parse_parameter_group,
    parse_query_parameters,
    parse_raw_query,
)
from oasmachine.parameter_parsers.deep_object import parse_nested_query

STRING = {"type": "string"}
ARRAY = {"type": "array", "items": {"type": "string"}}
OBJECT = {"type": "object", "properties": {"role": {"type": "string"}, "firstName": {"type": "string"}}}


def location(name="id", in_="query"):
    return ParameterLocation(in_=in_, name=name, doc_path=f"/paths/~1test/get/parameters/{name}")


def parse(descriptor, raw_values, name="id", in_="query", raw_query=""):
    parser = generate_parser(descriptor)
    return parser(location(name, in_), raw_values, raw_query, ParserContext())


def styled(style, schema, explode=None, **kwargs):
    if explode is None:
        explode = style == "form"
    return StyledParameterDescriptor(style=style, explode=explode, schema=schema, **kwargs)


class TestQueryParameters:
    def test_query_form_string(self):
        parser = generate_parser(styled("form", STRING))
        values, errors = parse_query_parameters([(location("myparam"), parser)], "myparam=7")
        assert values == {"myparam": "7"}
        assert errors == []

    def test_values_are_decoded(self):
        result = parse(styled("form", STRING), parse_raw_query("id=a%20b%2Fc"))
        assert result.value == "a b/c"

    def test_raw_query_keeps_values_encoded(self):
        assert parse_raw_query("?a%20b=c%20d&x=1&x=2") == {"a b": "c%20d", "x": ["1", "2"]}

    def test_missing_optional_parameter(self):
        result = parse(styled("form", STRING), {})
        assert result.ok
        assert result.value is None

    def test_missing_required_parameter(self):
        result = parse(styled("form", STRING, required=True), {})
        assert not result.ok
        assert result.error.message == "Missing required parameter id"
        assert result.error.location.name == "id"


class TestFormStyle:
    def test_array(self):
        assert parse(styled("form", ARRAY, explode=False), {"id": "3,4,5"}).value == ["3", "4", "5"]

    def test_exploded_array(self):
        assert parse(styled("form", ARRAY), {"id": ["3", "4", "5"]}).value == ["3", "4", "5"]

    def test_exploded_array_single_value(self):
        assert parse(styled("form", ARRAY), {"id": "3"}).value == ["3"]

    def test_object(self):
        result = parse(styled("form", OBJECT, explode=False), {"id": "role,admin,firstName,Alex"})
        assert result.value == {"role": "admin", "firstName": "Alex"}

    def test_object_with_odd_number_of_items_is_an_error(self):
        result = parse(styled("form", OBJECT, explode=False), {"id": "role,admin,firstName"})
        assert not result.ok
        assert result.error.message.startswith("Error parsing parameter id of style form")

    def test_exploded_object_claims_declared_properties(self):
        result = parse(styled("form", OBJECT), {"role": "admin", "firstName": "Alex", "other": "x"})
        assert result.value == {"role": "admin", "firstName": "Alex"}

    def test_exploded_object_without_matching_keys(self):
        assert parse(styled("form", OBJECT), {"other": "x"}).value is None

    def test_repeated_scalar_is_a_list(self):
        # Validation rejects this; the parser just reports what it saw.
        assert parse(styled("form", STRING), {"id": ["1", "2"]}).value == ["1", "2"]


class TestSimpleStyle:
    def test_path_scalar(self):
        assert parse(styled("simple", STRING), {"id": "a%2Fb"}, in_="path").value == "a/b"

    def test_array(self):
        assert parse(styled("simple", ARRAY), {"id": "3,4,5"}, in_="path").value == ["3", "4", "5"]

    def test_object(self):
        result = parse(styled("simple", OBJECT), {"id": "role,admin,firstName,Alex"}, in_="path")
        assert result.value == {"role": "admin", "firstName": "Alex"}

    def test_exploded_object(self):
        result = parse(styled("simple", OBJECT, explode=True), {"id": "role=admin,firstName=Alex"}, in_="path")
        assert result.value == {"role": "admin", "firstName": "Alex"}

    def test_headers_are_not_decoded(self):
        descriptor = styled("simple", STRING, uri_encoded=False)
        assert parse(descriptor, {"x-token": "a%20b"}, name="X-Token", in_="header").value == "a%20b"

    def test_header_names_are_case_insensitive(self):
        descriptor = styled("simple", STRING, uri_encoded=False)
        assert parse(descriptor, {"x-token": "abc"}, name="X-Token", in_="header").value == "abc"

    def test_repeated_header_array(self):
        descriptor = styled("simple", ARRAY, uri_encoded=False)
        assert parse(descriptor, {"x-ids": ["1,2", "3"]}, name="x-ids", in_="header").value == ["1", "2", "3"]


class TestMatrixAndLabelStyles:
    def test_matrix_scalar(self):
        assert parse(styled("matrix", STRING), {"id": ";id=5"}, in_="path").value == "5"

    def test_matrix_array(self):
        assert parse(styled("matrix", ARRAY), {"id": ";id=3,4,5"}, in_="path").value == ["3", "4", "5"]

    def test_matrix_exploded_array(self):
        result = parse(styled("matrix", ARRAY, explode=True), {"id": ";id=3;id=4;id=5"}, in_="path")
        assert result.value == ["3", "4", "5"]

    def test_matrix_exploded_object(self):
        result = parse(styled("matrix", OBJECT, explode=True), {"id": ";role=admin;firstName=Alex"}, in_="path")
        assert result.value == {"role": "admin", "firstName": "Alex"}

    def test_matrix_without_prefix_is_an_error(self):
        result = parse(styled("matrix", STRING), {"id": "5"}, in_="path")
        assert not result.ok
        assert "style matrix" in result.error.message

    def test_label_scalar(self):
        assert parse(styled("label", STRING), {"id": ".5"}, in_="path").value == "5"

    def test_label_arrays(self):
        assert parse(styled("label", ARRAY), {"id": ".3,4,5"}, in_="path").value == ["3", "4", "5"]
        assert parse(styled("label", ARRAY, explode=True), {"id": ".3.4.5"}, in_="path").value == ["3", "4", "5"]


class TestDelimitedStyles:
    def test_space_delimited(self):
        assert parse(styled("spaceDelimited", ARRAY), {"id": "3%204%205"}).value == ["3", "4", "5"]

    def test_pipe_delimited(self):
        assert parse(styled("pipeDelimited", ARRAY), {"id": "3|4%7C5"}).value == ["3", "4", "5"]

    def test_exploded_behaves_like_form(self):
        assert parse(styled("pipeDelimited", ARRAY, explode=True), {"id": ["3", "4"]}).value == ["3", "4"]


class TestDeepObject:
    def test_parse_nested_query(self):
        parsed = parse_nested_query("filter[color]=red&filter[size][min]=2&tags[]=a&tags[]=b")
        assert parsed == {"filter": {"color": "red", "size": {"min": "2"}}, "tags": ["a", "b"]}

    def test_query_string_is_parsed_once_per_request(self):
        parser = generate_parser(styled("deepObject", OBJECT, explode=True))
        raw_query = "a[role]=admin&b[firstName]=Alex"
        context = ParserContext()

        values, errors = parse_parameter_group(
            [(location("a"), parser), (location("b"), parser)],
            parse_raw_query(raw_query),
            raw_query,
            context,
        )

        assert errors == []
        assert values == {"a": {"role": "admin"}, "b": {"firstName": "Alex"}}
        assert context.deep_object_parse_count == 1

    def test_contexts_are_not_shared(self):
        parser = generate_parser(styled("deepObject", OBJECT, explode=True))
        first = parser(location("a"), {}, "a[role]=admin", ParserContext())
        second = parser(location("a"), {}, "a[role]=user", ParserContext())
        assert first.value == {"role": "admin"}
        assert second.value == {"role": "user"}


class TestMediaTypeParameters:
    def test_json_query_parameter(self):
        descriptor = MediaTypeParameterDescriptor(
            content_type="application/json", parser=JsonParser(), uri_encoded=True
        )
        result = parse(descriptor, {"id": "%7B%22a%22%3A1%7D"})
        assert result.value == {"a": 1}

    def test_invalid_json_is_a_parse_error(self):
        descriptor = MediaTypeParameterDescriptor(content_type="application/json", parser=JsonParser())
        result = parse(descriptor, {"id": "{nope"})
        assert not result.ok
        assert result.error.message.startswith("Error parsing parameter id of type application/json: Invalid JSON")


class TestUnknownStyle:
    def test_unknown_style_fails_compilation(self):
        with pytest.raises(CompileError):
            generate_parser(styled("fancy", STRING))


class TestCookies:
    def test_parse_cookie_header(self):
        assert parse_cookie_header('a=1; b="two"; a=3') == {"a": ["1", "3"], "b": "two"}

    def test_multiple_cookie_headers(self):
        assert parse_cookie_header(["a=1", "b=2"]) == {"a": "1", "b": "2"}

    def test_no_cookies(self):
        assert parse_cookie_header(None) == {}
