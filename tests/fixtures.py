"""Shared builders for OpenAPI documents and compile/request contexts."""

import copy
from typing import Any, Dict, Optional

from openapi_spec_validator import validate

from oasmachine.oas3.context import CompileContext
from oasmachine.options import Options, compile_options

DUMMY_RESPONSES = {"200": {"description": "OK!"}}

DUMMY_PATH_OBJECT = {"get": {"responses": copy.deepcopy(DUMMY_RESPONSES)}}


def make_openapi_doc(**overrides: Any) -> Dict[str, Any]:
    """A minimal, valid OpenAPI 3.0 document with no paths."""
    document: Dict[str, Any] = {
        "openapi": "3.0.1",
        "info": {"title": "Test API", "version": "1.0.0"},
        "paths": {},
    }
    document.update(overrides)
    return document


def assert_valid_openapi(document: Dict[str, Any]) -> None:
    """Fail if ``document`` is not a valid OpenAPI document."""
    validate(copy.deepcopy(document))


def make_compile_context(document: Dict[str, Any], *path: str, options: Optional[Options] = None) -> CompileContext:
    context = CompileContext.for_document(document, compile_options(options))
    return context.child_context(*path) if path else context


class FakeResponse:
    def __init__(self):
        self.ended = False


class FakeRequestContext:
    """Stands in for a RequestContext where only authentication is exercised."""

    def __init__(self):
        self.res = FakeResponse()
        self.security = None
        self.user = None

    def is_response_finished(self) -> bool:
        return self.res.ended
