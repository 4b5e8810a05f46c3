"""Loading OpenAPI documents from mappings, JSON files and YAML files."""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Union

import yaml

from .exceptions import CompileError

logger = logging.getLogger(__name__)

DocumentSource = Union[Mapping[str, Any], str, "os.PathLike[str]"]


def load_document(source: DocumentSource) -> Dict[str, Any]:
    """Return the OpenAPI document in ``source`` as a dict.

    ``source`` is either the document itself (it is copied, so later changes
    by the caller have no effect) or a path to a ``.json``, ``.yaml`` or
    ``.yml`` file.

    Raises:
        CompileError: If the file cannot be read or parsed, or the document is
            not an OpenAPI 3.x object.
    """
    if isinstance(source, Mapping):
        document: Any = copy.deepcopy(dict(source))
    else:
        document = _load_file(Path(source))

    if not isinstance(document, dict):
        raise CompileError("OpenAPI document must be an object")

    version = document.get("openapi")
    if not isinstance(version, str) or not version.startswith("3."):
        raise CompileError(f"Unsupported OpenAPI version {version!r}; expected 3.x")
    return document


def _load_file(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise CompileError(f"Could not read OpenAPI document {path}: {e}") from e

    logger.debug(f"Loading OpenAPI document from {path}")
    try:
        if path.suffix.lower() == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise CompileError(f"Could not parse OpenAPI document {path}: {e}") from e
