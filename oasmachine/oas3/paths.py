"""
Path resolution.

Each path template is compiled to a regular expression with one capture per
``{variable}``; variables match a single, non-empty path segment (or part of
one), so a template only ever matches paths with the same number of segments.

Templates are tried in order of how many variables they have, then document
order, and the first match wins: ``/pets/mine`` is tried before
``/pets/{id}``.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern, Tuple

from ..exceptions import CompileError
from .context import CompileContext
from .extensions import is_extension
from .path import Path

logger = logging.getLogger(__name__)

_VARIABLE_RE = re.compile(r"\{([^{}/]+)\}")


def compile_template(template: str) -> Tuple[Pattern[str], List[str]]:
    """``/pets/{id}`` -> (regex matching ``/pets/<segment>``, ``["id"]``)."""
    names: List[str] = []
    pattern = ""
    position = 0
    for match in _VARIABLE_RE.finditer(template):
        pattern += re.escape(template[position:match.start()])
        pattern += f"(?P<p{len(names)}>[^/]+)"
        names.append(match.group(1))
        position = match.end()
    pattern += re.escape(template[position:])
    return re.compile(pattern), names


@dataclass
class PathTemplate:
    template: str
    regex: Pattern[str]
    names: List[str]
    index: int
    path: Path


@dataclass
class ResolvedPath:
    path: Path
    template: str
    raw_path_params: Dict[str, str] = field(default_factory=dict)


class Paths:
    """Every routable path of the document, compiled."""

    def __init__(self, context: CompileContext, controller: Optional[str] = None):
        self.context = context
        try:
            oa_paths = context.node or {}
        except KeyError:
            oa_paths = {}
        if not isinstance(oa_paths, dict):
            raise CompileError(f"{context.json_pointer} must be an object")

        templates: List[PathTemplate] = []
        for index, (key, oa_path) in enumerate(oa_paths.items()):
            if is_extension(key):
                continue
            if not key.startswith("/"):
                raise CompileError(f'Invalid path "{key}"')
            regex, names = compile_template(key)
            if len(set(names)) != len(names):
                raise CompileError(f'Invalid path "{key}": duplicate variable name')
            path = Path(context.child_context(key), oa_path, controller)
            templates.append(PathTemplate(key, regex, names, index, path))
            logger.debug(f"Compiled path {key} ({', '.join(path.allowed_methods) or 'no operations'})")

        self.templates = sorted(templates, key=lambda template: (len(template.names), template.index))

    def resolve_path(self, url_path: str) -> Optional[ResolvedPath]:
        """Match ``url_path`` (already stripped of any server base path)."""
        for template in self.templates:
            match = template.regex.fullmatch(url_path)
            if match:
                raw_path_params = {name: match.group(f"p{i}") for i, name in enumerate(template.names)}
                return ResolvedPath(template.path, template.template, raw_path_params)
        return None

    def __iter__(self):
        return iter(self.templates)

    def __len__(self) -> int:
        return len(self.templates)
