"""Tests for path compilation and resolution."""

import pytest

from oasmachine import compile_api
from oasmachine.exceptions import CompileError
from tests.fixtures import DUMMY_PATH_OBJECT, assert_valid_openapi, make_openapi_doc


def make_api(paths):
    document = make_openapi_doc(paths=paths)
    return compile_api(document)


def templated_path(*names):
    """A path item whose `get` declares each of `names` as a path parameter."""
    parameters = [{"name": name, "in": "path", "required": True, "schema": {"type": "string"}} for name in names]
    return {"parameters": parameters, **DUMMY_PATH_OBJECT}


class TestPathResolution:
    def setup_method(self):
        paths = {
            "/pets": DUMMY_PATH_OBJECT,
            "/pets/{id}": templated_path("id"),
            "/pets/mine": DUMMY_PATH_OBJECT,
            "/owners/{ownerId}/pets/{petId}": templated_path("ownerId", "petId"),
            "x-foo": {},
        }
        assert_valid_openapi(make_openapi_doc(paths=paths))
        self.api = make_api(paths)

    def test_literal_path(self):
        resolved = self.api.paths.resolve_path("/pets")
        assert resolved.template == "/pets"
        assert resolved.raw_path_params == {}

    def test_templated_path(self):
        resolved = self.api.paths.resolve_path("/pets/7")
        assert resolved.template == "/pets/{id}"
        assert resolved.raw_path_params == {"id": "7"}

    def test_every_variable_is_populated(self):
        resolved = self.api.paths.resolve_path("/owners/alex/pets/rex")
        assert resolved.template == "/owners/{ownerId}/pets/{petId}"
        assert resolved.raw_path_params == {"ownerId": "alex", "petId": "rex"}

    def test_literal_template_wins_over_variable(self):
        assert self.api.paths.resolve_path("/pets/mine").template == "/pets/mine"

    def test_variables_match_one_segment(self):
        assert self.api.paths.resolve_path("/pets/7/toys") is None
        assert self.api.paths.resolve_path("/pets/") is None

    def test_raw_values_are_not_decoded(self):
        assert self.api.paths.resolve_path("/pets/a%20b").raw_path_params == {"id": "a%20b"}

    def test_extension_keys_are_not_routes(self):
        assert len(self.api.paths) == 4
        assert self.api.paths.resolve_path("x-foo") is None
        assert self.api.resolve("GET", "x-foo") is None

    def test_resolve_operation(self):
        resolved = self.api.resolve("get", "/pets/7?verbose=true")
        assert resolved.path_template == "/pets/{id}"
        assert resolved.operation.method == "get"
        assert resolved.raw_path_params == {"id": "7"}

    def test_unknown_method(self):
        assert self.api.resolve("DELETE", "/pets/7") is None

    def test_unknown_path(self):
        assert self.api.resolve("GET", "/toys") is None

    def test_resolving_twice_gives_the_same_result(self):
        first = self.api.resolve("GET", "/pets/7")
        second = self.api.resolve("GET", "/pets/7")
        assert first == second


class TestPathCompilation:
    def test_path_must_start_with_slash(self):
        with pytest.raises(CompileError, match='Invalid path "foo"'):
            make_api({"foo": DUMMY_PATH_OBJECT})

    def test_duplicate_variable_names(self):
        with pytest.raises(CompileError, match="duplicate variable"):
            make_api({"/a/{id}/b/{id}": DUMMY_PATH_OBJECT})

    def test_document_order_breaks_ties(self):
        api = make_api({"/{a}/x": DUMMY_PATH_OBJECT, "/y/{b}": DUMMY_PATH_OBJECT})
        assert api.paths.resolve_path("/y/x").template == "/{a}/x"

    def test_path_item_ref(self):
        document = make_openapi_doc(
            paths={"/pets": {"$ref": "#/x-path-items/pets"}},
        )
        document["x-path-items"] = {"pets": DUMMY_PATH_OBJECT}
        api = compile_api(document)
        assert api.resolve("GET", "/pets") is not None

    def test_unsupported_version(self):
        with pytest.raises(CompileError):
            compile_api({"openapi": "2.0", "info": {}, "paths": {}})
