"""
Exceptions raised while compiling an OpenAPI document or dispatching a request.
"""
from typing import Dict, List, Optional, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ValidationErrorDetail


class OasMachineError(Exception):
    """Base exception for oasmachine errors."""

    pass


class CompileError(OasMachineError):
    """Raised when the OpenAPI document cannot be compiled.

    These are always fatal: they surface from ``compile_api``/``compile_runner``
    before any request is served.
    """

    pass


class ConfigurationError(OasMachineError):
    """Raised at request time when an operation has no bound controller."""

    pass


class HttpError(OasMachineError):
    """An error which carries an HTTP status code.

    The runner converts these into a JSON error envelope when
    ``auto_handle_http_errors`` is enabled.
    """

    def __init__(
        self,
        status: int,
        message: str,
        headers: Optional[Dict[str, Union[str, List[str]]]] = None,
    ):
        self.status = int(status)
        self.message = message
        self.headers = headers or {}
        super().__init__(message)


class ValidationError(HttpError):
    """One or more parameters or the request body failed validation."""

    def __init__(
        self,
        errors: List["ValidationErrorDetail"],
        message: str = "Validation errors",
        status: int = 400,
    ):
        self.errors = list(errors)
        super().__init__(status, message)

    def __str__(self) -> str:
        return "; ".join(error.message for error in self.errors) or self.message


class BodyParseError(OasMachineError):
    """Raised by a string or body parser when a raw value cannot be parsed."""

    def __init__(self, message: str = "Failed to parse value", original_exception=None):
        self.message = message
        self.original_exception = original_exception
        super().__init__(self.message)
