"""
Compile-time context.

Every node of the compiled tree is built with a :class:`CompileContext`: the
whole document, the JSON pointer of the node being compiled and the compiled
options. Contexts are immutable; :meth:`CompileContext.child_context` returns a
new context one or more levels deeper.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Tuple, Union
from urllib.parse import quote, unquote

from jsonschema import Draft4Validator, Draft202012Validator
from referencing import Registry, Resource
from referencing.exceptions import Unresolvable
from referencing.jsonschema import DRAFT4, DRAFT202012

from ..exceptions import CompileError
from ..options import CompiledOptions
from ..schema import extend_for_openapi

logger = logging.getLogger(__name__)

DOCUMENT_URI = "urn:oasmachine:openapi"

Segment = Union[str, int]


def escape_pointer_segment(segment: Segment) -> str:
    return str(segment).replace("~", "~0").replace("/", "~1")


def to_json_pointer(path: Tuple[str, ...]) -> str:
    """``("paths", "/pets", "get")`` -> ``"/paths/~1pets/get"``."""
    return "".join("/" + escape_pointer_segment(segment) for segment in path)


@dataclass(frozen=True)
class CompileContext:
    """Immutable handle on one node of the document being compiled."""

    document: Dict[str, Any]
    options: CompiledOptions
    registry: Registry
    validator_class: Any
    openapi_version: str
    path: Tuple[str, ...] = ()

    @classmethod
    def for_document(cls, document: Dict[str, Any], options: CompiledOptions) -> "CompileContext":
        """Create the root context, choosing the schema dialect from ``openapi``.

        3.0.x documents are validated with Draft 4 plus the OpenAPI keywords,
        3.1.x documents with Draft 2020-12.
        """
        version = str(document.get("openapi", ""))
        if version.startswith("3.1"):
            dialect, base_class = DRAFT202012, Draft202012Validator
        else:
            dialect, base_class = DRAFT4, Draft4Validator

        resource = Resource.from_contents(document, default_specification=dialect)
        registry = Registry().with_resource(DOCUMENT_URI, resource)
        return cls(
            document=document,
            options=options,
            registry=registry,
            validator_class=extend_for_openapi(base_class),
            openapi_version=version,
        )

    @property
    def json_pointer(self) -> str:
        return to_json_pointer(self.path)

    @property
    def uri(self) -> str:
        """Absolute URI of this node, usable as a ``$ref`` target."""
        return DOCUMENT_URI + "#" + quote(self.json_pointer, safe="/~")

    def child_context(self, *segments: Segment) -> "CompileContext":
        return replace(self, path=self.path + tuple(str(segment) for segment in segments))

    @property
    def node(self) -> Any:
        """The raw object at this context's pointer."""
        node: Any = self.document
        for segment in self.path:
            if isinstance(node, list):
                node = node[int(segment)]
            else:
                node = node[segment]
        return node

    def resolve_ref(self, ref: str) -> Tuple["CompileContext", Any]:
        """Resolve a local ``$ref``, returning the target's context and value.

        Raises:
            CompileError: If the reference is external or does not resolve.
        """
        if not ref.startswith("#"):
            raise CompileError(f"Cannot resolve external reference {ref!r} at {self.json_pointer or '/'}")
        try:
            resolved = self.registry.resolver(DOCUMENT_URI).lookup(ref)
        except Unresolvable as e:
            raise CompileError(f"Cannot resolve {ref!r} at {self.json_pointer or '/'}") from e

        pointer = unquote(ref[1:])
        segments = tuple(
            segment.replace("~1", "/").replace("~0", "~")
            for segment in pointer.split("/")[1:]
        ) if pointer else ()
        return replace(self, path=segments), resolved.contents

    def resolve(self, value: Any = None) -> Tuple["CompileContext", Any]:
        """Follow ``$ref`` chains starting at ``value`` (or this node).

        Returns the context of the final target, and the target itself. A value
        that is not a reference is returned with this context.
        """
        context: CompileContext = self
        if value is None:
            value = self.node
        seen = set()
        while isinstance(value, dict) and isinstance(value.get("$ref"), str):
            ref = value["$ref"]
            if ref in seen:
                raise CompileError(f"Circular reference {ref!r} at {self.json_pointer or '/'}")
            seen.add(ref)
            context, value = context.resolve_ref(ref)
        return context, value
