"""
Format detection and parsing of raw dynamic config.

Bad input never raises here. The payload is classified into a FormatKind and
the caller decides whether that classification is fatal.
"""

import datetime
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import yaml

from .source import RawPayload


class FormatKind(str, Enum):
    """How far a payload got through parsing."""
    EMPTY = "empty"
    NON_PARSEABLE = "non_parseable"
    PARSED_NON_OBJECT = "parsed_non_object"
    MISSING_HTTP = "missing_http"
    PARSED_OBJECT = "parsed_object"


YAML_SUFFIXES = (".yml", ".yaml")
YAML_CONTENT_TYPES = ("yaml", "x-yaml")
CONTAINERS = (dict, list, tuple)


@dataclass(frozen=True)
class Document:
    """Normalized config tree and its format classification."""
    kind: FormatKind
    syntax: str
    root: Any = None
    error: Optional[str] = None

    @property
    def http(self) -> dict:
        """The http section, empty unless the document parsed as an object."""
        if self.kind != FormatKind.PARSED_OBJECT:
            return {}
        return self.root["http"]


def normalize(node: Any) -> Any:
    """
    Convert a parsed tree into plain mappings, lists and scalars.

    Mapping keys become strings and YAML-only scalars (dates, timestamps)
    become their ISO text, so every later stage sees the same shapes no
    matter which parser produced them.

    The walk uses an explicit stack so nesting depth is not limited by the
    interpreter's recursion limit. Containers shared through YAML aliases
    (including self-referencing ones) are converted once.
    """
    if not isinstance(node, CONTAINERS):
        return _normalize_scalar(node)

    root = _empty_like(node)
    converted = {id(node): root}
    pending = [(node, root)]

    while pending:
        source, target = pending.pop()
        items = source.items() if isinstance(source, dict) else enumerate(source)

        for key, value in items:
            if isinstance(value, CONTAINERS):
                child = converted.get(id(value))
                if child is None:
                    child = _empty_like(value)
                    converted[id(value)] = child
                    pending.append((value, child))
            else:
                child = _normalize_scalar(value)

            if isinstance(target, dict):
                target[str(key)] = child
            else:
                target.append(child)

    return root


def _empty_like(node: Any) -> Any:
    return {} if isinstance(node, dict) else []


def _normalize_scalar(node: Any) -> Any:
    if isinstance(node, (datetime.date, datetime.datetime)):
        return node.isoformat()
    if node is None or isinstance(node, (str, int, float, bool)):
        return node
    return str(node)


def detect_syntax(payload: RawPayload) -> str:
    """Pick YAML only when the payload is explicitly YAML-bearing."""
    if payload.source.lower().endswith(YAML_SUFFIXES):
        return "yaml"

    content_type = (payload.content_type or "").lower()
    if any(marker in content_type for marker in YAML_CONTENT_TYPES):
        return "yaml"

    return "json"


def _load(text: str, syntax: str) -> Any:
    if syntax == "yaml":
        return yaml.safe_load(text)
    return json.loads(text)


def classify(tree: Any, syntax: str) -> Document:
    """Classify an already parsed tree."""
    if not isinstance(tree, dict):
        return Document(kind=FormatKind.PARSED_NON_OBJECT, syntax=syntax)

    root = normalize(tree)
    if not isinstance(root.get("http"), dict):
        return Document(kind=FormatKind.MISSING_HTTP, syntax=syntax, root=root)

    return Document(kind=FormatKind.PARSED_OBJECT, syntax=syntax, root=root)


def parse_payload(payload: RawPayload, syntax: str = "json") -> Document:
    """
    Parse a raw payload into a Document.

    Args:
        payload: Raw bytes from the source adapter
        syntax: "json", "yaml" or "auto"

    Returns:
        Document tagged with its FormatKind
    """
    if syntax == "auto":
        syntax = detect_syntax(payload)
    if syntax not in ("json", "yaml"):
        raise ValueError(f"Unsupported syntax: {syntax}")

    text = payload.text.strip()
    if not text:
        return Document(kind=FormatKind.EMPTY, syntax=syntax)

    try:
        tree = _load(text, syntax)
    except (ValueError, yaml.YAMLError) as e:
        return Document(kind=FormatKind.NON_PARSEABLE, syntax=syntax, error=str(e))
    except RecursionError:
        return Document(
            kind=FormatKind.NON_PARSEABLE,
            syntax=syntax,
            error="document is nested too deeply to parse",
        )

    # A YAML document holding only comments loads as None
    if tree is None and syntax == "yaml":
        return Document(kind=FormatKind.EMPTY, syntax=syntax)

    return classify(tree, syntax)
