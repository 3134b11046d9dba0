"""Dot-path field access on documents.

Sort keys address nested fields with dot notation (``imdb.rating``). Only
mappings are walked into: values such as ``datetime``, ``ObjectId`` or
``UUID`` are leaves even though some of them are object-shaped, so a path
that continues past one of them resolves to ``None``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from mongo_keyset.core.exceptions import UnsupportedSortException

_ARRAY_TYPES = (list, tuple)


def is_atomic(value: Any) -> bool:
    """Return True for defined values that are not containers."""
    return value is not None and not isinstance(value, (Mapping, *_ARRAY_TYPES))


def _reject_array(path: str, value: Any) -> None:
    if isinstance(value, _ARRAY_TYPES):
        raise UnsupportedSortException(
            detail=f"Sort field '{path}' resolves to an array value, which cannot be paginated",
            extra={"field": path},
        )


def get_document_value(document: Mapping[str, Any], path: str) -> Any:
    """Resolve a dot-separated path on a document.

    A literal key containing dots wins when it holds an atomic value.

    Args:
        document: Document as returned by the driver.
        path: Dot-separated field path.

    Returns:
        The value at ``path`` or None when any segment is missing.

    Raises:
        UnsupportedSortException: If an array is met on the path.

    Example:
        >>> get_document_value({"imdb": {"rating": 7.1}}, "imdb.rating")
        7.1
    """
    if "." in path and is_atomic(document.get(path)):
        return document[path]

    current: Any = document
    for segment in path.split("."):
        _reject_array(path, current)
        if not isinstance(current, Mapping):
            return None
        current = current.get(segment)

    _reject_array(path, current)
    return current


def get_skip_values(document: Mapping[str, Any], sort: Mapping[str, int]) -> dict[str, Any]:
    """Collect the value of every sort field on ``document``, in sort order."""
    return {field: get_document_value(document, field) for field in sort}


__all__ = ["get_document_value", "get_skip_values", "is_atomic"]
