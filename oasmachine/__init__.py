"""
Compile OpenAPI 3.x documents into request routers and validators.

A document is compiled once: paths, parameters, request bodies, security
requirements and controllers are all checked and turned into parsers and
validators up front. Requests are then resolved against the compiled document,
authenticated, parsed and validated, and dispatched to controllers.

Example::

    from oasmachine import Options, Request, compile_runner

    runner = compile_runner("openapi.yaml", Options(controllers={"pets": pets}))
    result = await runner(Request("GET", "/pets/1"))
"""

from typing import Optional

from .context import RequestContext, ResponseBuilder
from .controllers import load_controllers
from .error_models import ErrorResponse
from .exceptions import (
    BodyParseError,
    CompileError,
    ConfigurationError,
    HttpError,
    OasMachineError,
    ValidationError,
)
from .loader import DocumentSource, load_document
from .models import Authenticated, Headers, HttpResult, HTTPMethod, Request
from .oas3 import OpenApi, ResolvedOperation
from .options import Options, compile_options
from .runner import RequestRunner

__version__ = "0.1.0"
__license__ = "MIT"


def compile_api(document: DocumentSource, options: Optional[Options] = None) -> OpenApi:
    """Compile ``document`` (a mapping or a path to a JSON/YAML file).

    Raises:
        CompileError: If the document or the options are invalid.
    """
    return OpenApi(load_document(document), compile_options(options))


def compile_runner(document: DocumentSource, options: Optional[Options] = None) -> RequestRunner:
    """Compile ``document`` and return an awaitable runner for requests.

    Raises:
        CompileError: If the document or the options are invalid.
    """
    compiled_options = compile_options(options)
    return RequestRunner(OpenApi(load_document(document), compiled_options), compiled_options)


__all__ = [
    "Authenticated",
    "BodyParseError",
    "CompileError",
    "ConfigurationError",
    "ErrorResponse",
    "Headers",
    "HTTPMethod",
    "HttpError",
    "HttpResult",
    "OasMachineError",
    "OpenApi",
    "Options",
    "Request",
    "RequestContext",
    "RequestRunner",
    "ResolvedOperation",
    "ResponseBuilder",
    "ValidationError",
    "compile_api",
    "compile_runner",
    "load_controllers",
]
