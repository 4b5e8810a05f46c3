"""
Server resolution.

The document's ``servers`` say where the API is mounted. Each server URL is a
template (``https://{region}.example.com/api/{version}``); a request is matched
against the ``Host`` header and the start of its path. The base path is then
stripped so that paths can be resolved, and the matched variables become the
request's "server" parameters.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Pattern, Tuple
from urllib.parse import unquote

from ..exceptions import CompileError
from .context import CompileContext

logger = logging.getLogger(__name__)

_VARIABLE_RE = re.compile(r"\{([^{}]+)\}")
_ABSOLUTE_RE = re.compile(r"^(?:[a-zA-Z][a-zA-Z0-9+.-]*:)?//([^/]*)(.*)$")


def _template_to_regex(template: str, segment_chars: str) -> Tuple[str, List[str]]:
    """Convert ``{var}`` placeholders to capture groups. Returns the pattern and variable names."""
    names: List[str] = []
    pattern = ""
    position = 0
    for match in _VARIABLE_RE.finditer(template):
        pattern += re.escape(template[position:match.start()])
        pattern += f"(?P<v{len(names)}>{segment_chars})"
        names.append(match.group(1))
        position = match.end()
    pattern += re.escape(template[position:])
    return pattern, names


@dataclass
class ResolvedServer:
    server: "Server"
    base_path: str
    path: str
    raw_server_params: Dict[str, str] = field(default_factory=dict)


class Server:
    """One compiled server URL template."""

    def __init__(self, url: str, variables: Optional[Dict[str, Any]] = None):
        self.url = url
        self.variables = variables or {}

        absolute = _ABSOLUTE_RE.match(url)
        if absolute:
            host_template, path_template = absolute.group(1), absolute.group(2)
        else:
            host_template, path_template = None, url

        path_template = path_template.rstrip("/")
        if path_template and not path_template.startswith("/"):
            path_template = "/" + path_template

        self.host_regex: Optional[Pattern[str]] = None
        self.host_names: List[str] = []
        self.match_port = False
        if host_template:
            host_pattern, self.host_names = _template_to_regex(host_template.lower(), "[^/]+?")
            self.host_regex = re.compile(host_pattern)
            self.match_port = ":" in host_template

        path_pattern, self.path_names = _template_to_regex(path_template, "[^/]+")
        # The base path must end at a segment boundary.
        self.path_regex = re.compile(path_pattern + r"(?=/|$)")

    def _check_enum(self, name: str, value: str) -> bool:
        enum = (self.variables.get(name) or {}).get("enum")
        return not enum or value in enum

    def _collect(self, match, names: List[str], into: Dict[str, str]) -> bool:
        for index, name in enumerate(names):
            value = unquote(match.group(f"v{index}"))
            if not self._check_enum(name, value):
                return False
            into[name] = value
        return True

    def match(self, host: Optional[str], path: str) -> Optional[ResolvedServer]:
        raw_server_params: Dict[str, str] = {}

        if self.host_regex is not None:
            if not host:
                logger.debug(f"{self!r} needs a Host header to match")
                return None
            host = host.lower()
            if not self.match_port:
                host = host.split(":", 1)[0]
            host_match = self.host_regex.fullmatch(host)
            if not host_match or not self._collect(host_match, self.host_names, raw_server_params):
                return None

        path_match = self.path_regex.match(path)
        if not path_match or not self._collect(path_match, self.path_names, raw_server_params):
            return None

        base_path = path_match.group(0)
        return ResolvedServer(
            server=self,
            base_path=base_path,
            path=path[len(base_path):] or "/",
            raw_server_params=raw_server_params,
        )

    def __repr__(self):
        return f"Server({self.url!r})"


class Servers:
    """The document's servers, tried in document order.

    Servers with an absolute url only match requests carrying a ``Host``
    header; without one, resolution falls through to the next server.
    """

    def __init__(self, context: CompileContext, oa_servers: Optional[List[Dict[str, Any]]] = None):
        if not oa_servers:
            oa_servers = [{"url": "/"}]

        self.servers: List[Server] = []
        for index, oa_server in enumerate(oa_servers):
            url = oa_server.get("url") if isinstance(oa_server, dict) else None
            if not isinstance(url, str):
                raise CompileError(f"Server at {context.child_context(index).json_pointer} has no url")
            self.servers.append(Server(url, oa_server.get("variables")))
        logger.debug(f"Compiled servers: {', '.join(server.url for server in self.servers)}")

    def resolve(self, host: Optional[str], path: str) -> Optional[ResolvedServer]:
        for server in self.servers:
            resolved = server.match(host, path)
            if resolved is not None:
                return resolved
        return None
