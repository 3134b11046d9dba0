"""Sort normalization for keyset pagination.

MongoDB does not guarantee a stable order between documents that tie on
every sort key. Without a unique final key, page one can return
``[1, 2, 5, 3]`` and a ``_id > 3`` seek then returns ``5`` a second time.
Every paginated sort therefore ends with the unique key (``_id`` by default).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from mongo_keyset.core.exceptions import UnsupportedSortException

ASCENDING = 1
DESCENDING = -1

SortSpec = dict[str, int]

_DIRECTION_ALIASES: dict[str, int] = {
    "asc": ASCENDING,
    "ascending": ASCENDING,
    "desc": DESCENDING,
    "descending": DESCENDING,
}


def parse_direction(field: str, direction: Any) -> int:
    """Convert a sort direction to ``1`` or ``-1``.

    Args:
        field: Field the direction belongs to (for error context).
        direction: ``1``, ``-1`` or one of ``asc``/``ascending``/``desc``/``descending``.

    Raises:
        UnsupportedSortException: For ``$meta`` sorts, booleans, or any
            other value.
    """
    if isinstance(direction, bool):
        raise UnsupportedSortException(
            detail=f"Sort direction for '{field}' must be 1 or -1, got a boolean",
            extra={"field": field},
        )
    if isinstance(direction, int) and direction in (ASCENDING, DESCENDING):
        return direction
    if isinstance(direction, str) and direction.lower() in _DIRECTION_ALIASES:
        return _DIRECTION_ALIASES[direction.lower()]
    raise UnsupportedSortException(
        detail=f"Unsupported sort direction for '{field}': {direction!r}",
        extra={"field": field, "direction": repr(direction)},
    )


def validate_field_path(field: Any) -> str:
    """Reject field names that cannot be used as a plain sort key."""
    if not isinstance(field, str) or not field:
        raise UnsupportedSortException(
            detail=f"Sort field must be a non-empty string, got {field!r}",
        )
    if field.startswith("$") or any(not part for part in field.split(".")):
        raise UnsupportedSortException(
            detail=f"Unsupported sort field path: {field!r}",
            extra={"field": field},
        )
    return field


def normalize_sort(sort: Mapping[str, Any] | None = None, unique_key: str = "_id") -> SortSpec:
    """Build the effective, tie-break-safe sort.

    The unique key is always the last entry. Its direction is descending
    only when the caller asked for it explicitly.

    Args:
        sort: Ordered ``{field: direction}`` mapping, or None.
        unique_key: Field guaranteed unique per document.

    Returns:
        New dict with normalized directions and the unique key last.

    Raises:
        UnsupportedSortException: If the sort is not a mapping or holds an
            invalid field or direction.

    Example:
        >>> normalize_sort({"_id": -1, "year": "asc"})
        {'year': 1, '_id': -1}
    """
    if sort is None:
        sort = {}
    if not isinstance(sort, Mapping):
        raise UnsupportedSortException(
            detail=f"Sort must be a mapping of field to direction, got {type(sort).__name__}",
        )

    normalized: SortSpec = {}
    unique_direction = ASCENDING
    for field, direction in sort.items():
        validate_field_path(field)
        parsed = parse_direction(field, direction)
        if field == unique_key:
            unique_direction = parsed
            continue
        normalized[field] = parsed

    normalized[unique_key] = DESCENDING if unique_direction == DESCENDING else ASCENDING
    return normalized


__all__ = [
    "ASCENDING",
    "DESCENDING",
    "SortSpec",
    "normalize_sort",
    "parse_direction",
    "validate_field_path",
]
