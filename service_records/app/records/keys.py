"""
Cache key naming for service data.

Every cache entry key is derived from a field path of the document:
the namespace token followed by the path segments joined with ``.``::

    ["svc"]          -> "service_data::svc"
    ["svc", "port"]  -> "service_data::svc.port"

A literal ``.`` or ``\\`` inside a segment is backslash-escaped, so a
top-level field called ``"a.b"`` and the nested path ``a -> b`` never map
to the same key.
"""

from typing import Any, Dict, Iterator, List, Sequence, Tuple

from shared.errors import InvalidInput

DEFAULT_NAMESPACE = "service_data::"
PATH_SEPARATOR = "."

_GLOB_SPECIAL = "\\*?[]"


def _escape_segment(segment: str) -> str:
    return segment.replace("\\", "\\\\").replace(PATH_SEPARATOR, "\\" + PATH_SEPARATOR)


def _escape_glob(text: str) -> str:
    return "".join("\\" + ch if ch in _GLOB_SPECIAL else ch for ch in text)


def cache_key(path: Sequence[str], namespace: str = DEFAULT_NAMESPACE) -> str:
    """Build the cache key for a field path."""
    if not path:
        raise InvalidInput("Field path must not be empty")
    return namespace + PATH_SEPARATOR.join(_escape_segment(segment) for segment in path)


def split_key_path(key: str) -> List[str]:
    """Split a dotted key such as ``"svc.port"`` into path segments."""
    if key is None or not key.strip():
        raise InvalidInput("Missing 'key' parameter")

    segments = key.split(PATH_SEPARATOR)
    if any(segment == "" for segment in segments):
        raise InvalidInput(f'Invalid key path "{key}"', details="Path segments must not be empty")
    return segments


def cache_entries(
    document: Dict[str, Any],
    namespace: str = DEFAULT_NAMESPACE,
    prefix: Sequence[str] = (),
) -> Iterator[Tuple[str, Any]]:
    """Flatten a document into ``(cache key, value)`` pairs.

    Every field gets an entry holding its full value. Mapping values are
    expanded recursively so each nested field also gets its own entry, down
    to the leaves; list elements are not expanded.
    """
    for field, value in document.items():
        path = [*prefix, field]
        yield cache_key(path, namespace), value
        if isinstance(value, dict):
            yield from cache_entries(value, namespace, path)


def descendant_pattern(path: Sequence[str], namespace: str = DEFAULT_NAMESPACE) -> str:
    """SCAN pattern matching every key nested below ``path`` (not ``path`` itself)."""
    return _escape_glob(cache_key(path, namespace)) + PATH_SEPARATOR + "*"


def namespace_pattern(namespace: str = DEFAULT_NAMESPACE) -> str:
    """SCAN pattern matching every key in the namespace."""
    return _escape_glob(namespace) + "*"
