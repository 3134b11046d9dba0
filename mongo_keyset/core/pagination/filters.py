"""Keyset filter for MongoDB queries.

The KeysetFilter implements the seek method for multi-field sorts:
- Instead of ``skip()``, the query filter selects documents strictly after
  the last document of the previous page
- Cost does not grow with the page number
- Results are stable even when documents are inserted between requests

How it works:
    For sort ``{year: 1, title: -1, _id: 1}`` resuming at ``(y, t, id)``::

        {"$or": [
            {"year": {"$gt": y}},
            {"year": y, "$or": [
                {"title": {"$lt": t}},
                {"title": None},
                {"title": t, "_id": {"$gt": id}},
            ]},
        ]}

Null handling follows MongoDB ordering, where missing and null sort before
every other value:
- ascending from a null position, "after" means ``{"$exists": True, "$ne": None}``
- descending from a null position, only the remaining nulls follow
- descending from a present value, nulls still follow, so ``{field: None}``
  joins the range alternative

The seek condition is built as a small clause tree (``FieldEquals``,
``FieldRange``, ``FieldPresent``, ``AllOf``, ``AnyOf``) and rendered to
query syntax only at the end.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from mongo_keyset.core.exceptions import InvalidResumeTokenException, UnsupportedSortException
from mongo_keyset.core.pagination.cursor import ResumePoint, coerce_resume_point
from mongo_keyset.core.pagination.sort import ASCENDING, DESCENDING
from mongo_keyset.infra.logging.lazy import get_lazy_logger

logger = get_lazy_logger(__name__)


class Clause(ABC):
    """Node of a seek condition."""

    @abstractmethod
    def render(self) -> dict[str, Any]:
        """Render the clause as a MongoDB query document."""
        ...


@dataclass(frozen=True)
class FieldEquals(Clause):
    field: str
    value: Any

    def render(self) -> dict[str, Any]:
        return {self.field: self.value}


@dataclass(frozen=True)
class FieldRange(Clause):
    """Strict comparison; ``operator`` is ``$gt`` or ``$lt``."""

    field: str
    operator: str
    value: Any

    def render(self) -> dict[str, Any]:
        return {self.field: {self.operator: self.value}}


@dataclass(frozen=True)
class FieldPresent(Clause):
    """Field exists and is not null."""

    field: str

    def render(self) -> dict[str, Any]:
        return {self.field: {"$exists": True, "$ne": None}}


@dataclass(frozen=True)
class AllOf(Clause):
    """Conjunction, rendered as one document when the keys do not collide."""

    clauses: tuple[Clause, ...]

    def render(self) -> dict[str, Any]:
        rendered = [clause.render() for clause in self.clauses]
        merged: dict[str, Any] = {}
        for part in rendered:
            if any(key in merged for key in part):
                return {"$and": rendered}
            merged.update(part)
        return merged


@dataclass(frozen=True)
class AnyOf(Clause):
    clauses: tuple[Clause, ...]

    def render(self) -> dict[str, Any]:
        return {"$or": [clause.render() for clause in self.clauses]}


def range_operator(direction: int) -> str:
    """Operator selecting values after the current one for ``direction``."""
    return "$lt" if direction == DESCENDING else "$gt"


def _beyond(field: str, direction: int, value: Any) -> list[Clause]:
    """Alternatives for documents strictly after ``value`` on ``field`` alone."""
    if value is None:
        return [FieldPresent(field)] if direction == ASCENDING else []

    clauses: list[Clause] = [FieldRange(field, range_operator(direction), value)]
    if direction == DESCENDING:
        clauses.append(FieldEquals(field, None))
    return clauses


def _seek_alternatives(
    keys: list[str],
    sort: Mapping[str, int],
    skip_values: Mapping[str, Any],
) -> list[Clause]:
    """Alternatives for ``keys[0]`` onwards; ``keys`` has at least two entries."""
    current, next_key = keys[0], keys[1]
    value = skip_values.get(current)
    alternatives = _beyond(current, sort.get(current, ASCENDING), value)

    if len(keys) > 2:
        tail: Clause = AnyOf(tuple(_seek_alternatives(keys[1:], sort, skip_values)))
    else:
        tail = FieldRange(
            next_key,
            range_operator(sort.get(next_key, ASCENDING)),
            skip_values.get(next_key),
        )
    alternatives.append(AllOf((FieldEquals(current, value), tail)))
    return alternatives


def build_seek_clause(
    sort: Mapping[str, int],
    skip_values: Mapping[str, Any],
    unique_key: str = "_id",
) -> Clause:
    """Build the condition matching documents strictly after ``skip_values``.

    Args:
        sort: Effective sort; the unique key is used last whatever its position.
        skip_values: Sort field values of the last document of the previous page.
        unique_key: Field guaranteed unique per document.

    Returns:
        A FieldRange on the unique key when it is the only sort field,
        otherwise an AnyOf over one alternative per sort key.
    """
    keys = [key for key in sort if key != unique_key]
    keys.append(unique_key)

    if len(keys) == 1:
        return FieldRange(
            unique_key,
            range_operator(sort.get(unique_key, ASCENDING)),
            skip_values.get(unique_key),
        )
    return AnyOf(tuple(_seek_alternatives(keys, sort, skip_values)))


def merge_filters(query_filter: Mapping[str, Any], seek: Mapping[str, Any]) -> dict[str, Any]:
    """Combine the caller filter with a rendered seek condition.

    A top-level ``$or`` in the caller filter (or any other shared key) cannot
    be merged key by key without changing its meaning, so both sides are
    wrapped in ``$and`` instead.

    Example:
        >>> merge_filters({"$or": [{"a": 1}, {"b": 2}]}, {"$or": [{"c": {"$gt": 3}}]})
        {'$and': [{'$or': [{'a': 1}, {'b': 2}]}, {'$or': [{'c': {'$gt': 3}}]}]}
    """
    base = dict(query_filter)
    if any(key in base for key in seek):
        return {"$and": [base, dict(seek)]}
    return {**base, **seek}


class KeysetFilter:
    """Apply a resume point to a MongoDB query filter.

    Example:
        from mongo_keyset.core.pagination import KeysetFilter

        query = KeysetFilter(resume_point).apply({"genres": "Drama"})
        docs = collection.find(query).sort(list(resume_point.sort.items())).limit(10)

    Attributes:
        resume_point: Position to resume after (None for the first page).
        unique_key: Field guaranteed unique per document.
    """

    def __init__(
        self,
        resume_point: ResumePoint | Mapping[str, Any] | None,
        *,
        unique_key: str = "_id",
    ) -> None:
        """Initialize keyset filter.

        Args:
            resume_point: ResumePoint, mapping with ``sort``/``limit``/``skipValues``,
                or None for the first page.
            unique_key: Field guaranteed unique per document.

        Raises:
            InvalidResumeTokenException: If the resume point is present but
                structurally invalid or its sort does not end with the unique key.
            UnsupportedSortException: If a resume value is an array.
        """
        self.unique_key = unique_key
        self.resume_point = None if resume_point is None else coerce_resume_point(resume_point)
        if self.resume_point is not None:
            self._validate(self.resume_point)

    def _validate(self, resume_point: ResumePoint) -> None:
        if self.unique_key not in resume_point.sort:
            raise InvalidResumeTokenException(
                detail=f"Resume point sort does not include the unique key '{self.unique_key}'",
                extra={"sort_keys": list(resume_point.sort)},
            )
        # The resumed sort is run as-is, so it must already end with the unique key
        if list(resume_point.sort)[-1] != self.unique_key:
            raise InvalidResumeTokenException(
                detail=f"Resume point sort must end with the unique key '{self.unique_key}'",
                extra={"sort_keys": list(resume_point.sort)},
            )
        for field, value in resume_point.skip_values.items():
            if isinstance(value, (list, tuple)):
                raise UnsupportedSortException(
                    detail=f"Resume value for '{field}' is an array, which cannot be paginated",
                    extra={"field": field},
                )

    @property
    def seek_clause(self) -> Clause | None:
        """Seek condition for the resume point, or None on the first page."""
        if self.resume_point is None:
            return None
        return build_seek_clause(
            self.resume_point.sort,
            self.resume_point.skip_values,
            self.unique_key,
        )

    def apply(self, query_filter: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Return a new filter continuing after the resume point.

        The caller's filter is never mutated. Without a resume point the
        result is a copy equal to ``query_filter``.
        """
        base = dict(query_filter or {})
        clause = self.seek_clause
        if clause is None:
            return base

        # Key presence, not truthiness: {"_id": 0} pins the unique key too
        if isinstance(clause, FieldRange) and self.unique_key in base:
            return base

        compiled = merge_filters(base, clause.render())
        logger.debug(
            "Compiled keyset filter over %s: %s",
            lambda: list(self.resume_point.sort),
            lambda: compiled,
        )
        return compiled


def compile_filter(
    query_filter: Mapping[str, Any] | None,
    resume_point: ResumePoint | Mapping[str, Any] | None = None,
    unique_key: str = "_id",
) -> dict[str, Any]:
    """Functional shortcut for ``KeysetFilter(resume_point).apply(query_filter)``."""
    return KeysetFilter(resume_point, unique_key=unique_key).apply(query_filter)


__all__ = [
    "AllOf",
    "AnyOf",
    "Clause",
    "FieldEquals",
    "FieldPresent",
    "FieldRange",
    "KeysetFilter",
    "build_seek_clause",
    "compile_filter",
    "merge_filters",
    "range_operator",
]
