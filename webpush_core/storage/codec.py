"""
webpush_core.storage.codec
--------------------------
Helpers shared by every storage provider:

- ``hash_value``: deterministic lookup hash so sensitive values (owners,
  endpoints, ids) never appear in plaintext in index structures
- ``encode_document`` / ``decode_document``: escape mapping keys so any
  document can be stored and addressed with dotted paths
- dotted-path access, equality filters and projections
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, Mapping, Optional

from webpush_core.utils import sha256

_ESCAPES = (("%", "%25"), ("$", "%24"), (".", "%2E"))


def hash_value(value: str) -> str:
    return sha256(value.encode("utf-8"))


def _escape_key(key: str) -> str:
    for raw, escaped in _ESCAPES:
        key = key.replace(raw, escaped)
    return key


def _unescape_key(key: str) -> str:
    for raw, escaped in reversed(_ESCAPES):
        key = key.replace(escaped, raw)
    return key


def _walk(value: Any, fix_key) -> Any:
    if isinstance(value, Mapping):
        return {fix_key(k): _walk(v, fix_key) for k, v in value.items()}
    if isinstance(value, list):
        return [_walk(v, fix_key) for v in value]
    return value


def encode_document(doc: Mapping[str, Any]) -> Dict[str, Any]:
    return _walk(doc, _escape_key)


def decode_document(doc: Mapping[str, Any]) -> Dict[str, Any]:
    return _walk(doc, _unescape_key)


_MISSING = object()


def get_path(doc: Mapping[str, Any], path: str, default: Any = None) -> Any:
    node: Any = doc
    for part in path.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return default
        node = node[part]
    return node


def set_path(doc: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    node = doc
    for part in parts[:-1]:
        node = node.setdefault(part, {})
    node[parts[-1]] = value


def matches(doc: Mapping[str, Any], query: Mapping[str, Any]) -> bool:
    return all(get_path(doc, path, _MISSING) == value for path, value in query.items())


def project(doc: Mapping[str, Any], paths: Optional[Iterable[str]]) -> Dict[str, Any]:
    """Copy of ``doc`` restricted to ``paths``; ``None`` keeps everything."""
    if paths is None:
        return dict(doc)
    out: Dict[str, Any] = {}
    for path in paths:
        value = get_path(doc, path, _MISSING)
        if value is not _MISSING:
            set_path(out, path, value)
    return out
