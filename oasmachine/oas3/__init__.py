"""Compiler for OpenAPI 3.x documents."""

from .context import CompileContext
from .openapi import OpenApi, ResolvedOperation
from .operation import Operation
from .parameter import Parameter
from .path import Path
from .paths import Paths
from .servers import Servers

__all__ = [
    "CompileContext",
    "OpenApi",
    "Operation",
    "Parameter",
    "Path",
    "Paths",
    "ResolvedOperation",
    "Servers",
]
