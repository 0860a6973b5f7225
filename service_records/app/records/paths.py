"""
Path resolution inside a service data document.
"""

from typing import Any, Sequence


class _Absent:
    """Marker for a path that does not resolve to a value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = _Absent()


def resolve(root: Any, path: Sequence[str]) -> Any:
    """Walk ``path`` from ``root`` and return the value found, or ``ABSENT``.

    Only mappings are descended into. Indexing a scalar or a list, or a
    missing segment, ends the walk with ``ABSENT``. ``None`` stored in the
    document is a real value.
    """
    current = root
    for segment in path:
        if not isinstance(current, dict) or segment not in current:
            return ABSENT
        current = current[segment]
    return current
