"""A compiled path item: its operations, keyed by method."""

import logging
from typing import Any, Dict, List, Optional

from ..exceptions import CompileError
from . import extensions
from .context import CompileContext
from .operation import Operation
from .parameter import Parameter

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")


class Path:
    def __init__(self, context: CompileContext, oa_path: Any, controller: Optional[str] = None):
        context, oa_path = context.resolve(oa_path)
        if not isinstance(oa_path, dict):
            raise CompileError(f"Path item at {context.json_pointer} must be an object")

        self.context = context
        self.oa_path: Dict[str, Any] = oa_path
        self.controller = oa_path.get(extensions.CONTROLLER) or controller

        self.parameters: List[Parameter] = [
            Parameter(context.child_context("parameters", index), oa_parameter)
            for index, oa_parameter in enumerate(oa_path.get("parameters") or [])
        ]

        self.operations: Dict[str, Operation] = {
            method: Operation(
                context.child_context(method),
                oa_path[method],
                oa_path,
                method,
                self.controller,
                self.parameters,
            )
            for method in HTTP_METHODS
            if method in oa_path
        }

    def get_operation(self, method: str) -> Optional[Operation]:
        return self.operations.get(method.lower())

    @property
    def allowed_methods(self) -> List[str]:
        return [method.upper() for method in self.operations]

    def __repr__(self):
        return f"Path({self.context.json_pointer!r})"
