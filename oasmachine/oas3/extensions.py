"""OpenAPI extensions (``x-`` keys) understood by the compiler."""

from typing import Any, List, Optional

from ..exceptions import CompileError

# Name of the controller which handles an operation. Allowed on the document,
# a path item, an operation or a request body media type; the innermost wins.
CONTROLLER = "x-oasmachine-controller"

# Name of the function within the controller. Allowed on an operation or a
# request body media type; falls back to the operation's ``operationId``.
OPERATION_ID = "x-oasmachine-operation-id"

# Roles an authenticated user must have. Allowed on the document or an operation.
ROLES = "x-oasmachine-roles"


def is_extension(key: str) -> bool:
    return key.startswith("x-")


def read_roles(value: Any, pointer: str) -> Optional[List[str]]:
    """Normalize an ``x-oasmachine-roles`` value to a list of strings.

    Raises:
        CompileError: If the value is not a string or a list of strings.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(role, str) for role in value):
        return list(value)
    raise CompileError(f"{pointer} must be an array of strings.")
