"""
The compiled document.

:class:`OpenApi` compiles a whole OpenAPI 3.x document up front; every error in
the document surfaces from the constructor. Afterwards :meth:`OpenApi.resolve`
maps a request's method, URL and headers to a :class:`ResolvedOperation`.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

from ..exceptions import CompileError
from ..models import Headers, HTTPMethod
from ..options import CompiledOptions
from . import extensions
from .context import CompileContext
from .operation import Operation
from .paths import Paths
from .servers import Servers

logger = logging.getLogger(__name__)


@dataclass
class ResolvedOperation:
    """A request matched to an operation, before any parameter is parsed."""

    operation: Operation
    path_template: str
    base_path: str
    raw_path_params: Dict[str, str] = field(default_factory=dict)
    raw_server_params: Dict[str, str] = field(default_factory=dict)


class OpenApi:
    def __init__(self, document: Dict[str, Any], options: CompiledOptions):
        if not isinstance(document, dict):
            raise CompileError("OpenAPI document must be an object")
        version = str(document.get("openapi", ""))
        if not version.startswith("3."):
            raise CompileError(f"Unsupported OpenAPI version {version or '(missing)'}; expected 3.x")

        self.document = document
        self.options = options
        self.context = CompileContext.for_document(document, options)

        self.servers = None if options.ignore_servers else Servers(
            self.context.child_context("servers"), document.get("servers")
        )
        self.paths = Paths(self.context.child_context("paths"), document.get(extensions.CONTROLLER))

        operation_count = sum(len(template.path.operations) for template in self.paths)
        logger.info(f"Compiled OpenAPI {version} document: {len(self.paths)} paths, {operation_count} operations")

    def resolve(
        self,
        method: Union[str, HTTPMethod],
        url: str,
        headers: Optional[Union[Mapping[str, Any], Headers]] = None,
    ) -> Optional[ResolvedOperation]:
        """Match a request to an operation.

        Returns None when no server, path or method matches; the caller
        decides whether that is a 404 or something to pass on.
        """
        if isinstance(method, HTTPMethod):
            method = method.value
        if not isinstance(headers, Headers):
            headers = Headers(headers or {})

        path = url.partition("?")[0] or "/"

        base_path = ""
        raw_server_params: Dict[str, str] = {}
        if self.servers is not None:
            server = self.servers.resolve(headers.get("host"), path)
            if server is None:
                logger.debug(f"No server matches {path}")
                return None
            base_path, path, raw_server_params = server.base_path, server.path, server.raw_server_params

        resolved_path = self.paths.resolve_path(path)
        if resolved_path is None:
            logger.debug(f"No path matches {path}")
            return None

        operation = resolved_path.path.get_operation(str(method))
        if operation is None:
            logger.debug(f"No {method} operation for {resolved_path.template}")
            return None

        return ResolvedOperation(
            operation=operation,
            path_template=resolved_path.template,
            base_path=base_path,
            raw_path_params=resolved_path.raw_path_params,
            raw_server_params=raw_server_params,
        )
