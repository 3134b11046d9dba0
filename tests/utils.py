"""Test utilities and helper functions.

Provides an in-memory stand-in for the parts of MongoDB the paginator relies
on, so pagination runs can be checked end to end without a server:

- ``matches``: evaluates the query operators the compiler emits
  (equality, ``$gt``, ``$lt``, ``$exists``, ``$ne``, ``$or``, ``$and``)
- ``sort_documents``: MongoDB ordering with missing/null before any value
- ``run_query``: ``find(filter).sort(sort).limit(limit)``
- ``collect_pages``: follows resume tokens until the paginator stops

Usage:
    from tests.utils import collect_pages, run_query

    pages = collect_pages(paginator, documents, {"genres": "Drama"}, sort={"year": 1}, limit=2)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from functools import cmp_to_key
from typing import Any

from bson import ObjectId

AES_192_KEY = "0123456789abcdef01234567"

_MISSING = object()


def oid(n: int) -> ObjectId:
    """Deterministic ObjectId whose order follows ``n``."""
    return ObjectId(f"{n:024x}")


def _resolve(document: Mapping[str, Any], path: str) -> Any:
    current: Any = document
    for segment in path.split("."):
        if not isinstance(current, Mapping) or segment not in current:
            return _MISSING
        current = current[segment]
    return current


def _is_null(value: Any) -> bool:
    return value is _MISSING or value is None


def _match_operators(value: Any, operators: Mapping[str, Any]) -> bool:
    for operator, operand in operators.items():
        if operator == "$exists":
            if (value is not _MISSING) != bool(operand):
                return False
        elif operator == "$ne":
            if _is_null(operand):
                if _is_null(value):
                    return False
            elif value == operand:
                return False
        elif operator in ("$gt", "$lt"):
            if _is_null(value) or _is_null(operand):
                return False
            if operator == "$gt" and not value > operand:
                return False
            if operator == "$lt" and not value < operand:
                return False
        else:
            raise NotImplementedError(operator)
    return True


def matches(document: Mapping[str, Any], query: Mapping[str, Any]) -> bool:
    """Return True when ``document`` satisfies ``query``."""
    for key, condition in query.items():
        if key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
        elif key == "$and":
            if not all(matches(document, sub) for sub in condition):
                return False
        else:
            value = _resolve(document, key)
            if isinstance(condition, Mapping) and condition and all(k.startswith("$") for k in condition):
                if not _match_operators(value, condition):
                    return False
            elif condition is None:
                if not _is_null(value):
                    return False
            elif value is _MISSING or value != condition:
                return False
    return True


def _compare_values(left: Any, right: Any) -> int:
    if _is_null(left) and _is_null(right):
        return 0
    if _is_null(left):
        return -1
    if _is_null(right):
        return 1
    return (left > right) - (left < right)


def sort_documents(documents: Sequence[Mapping[str, Any]], sort: Mapping[str, int]) -> list[Mapping[str, Any]]:
    """Sort documents the way MongoDB orders them for ``sort``."""

    def compare(a: Mapping[str, Any], b: Mapping[str, Any]) -> int:
        for field, direction in sort.items():
            result = _compare_values(_resolve(a, field), _resolve(b, field))
            if result:
                return result * direction
        return 0

    return sorted(documents, key=cmp_to_key(compare))


def run_query(
    documents: Sequence[Mapping[str, Any]],
    query: Mapping[str, Any],
    sort: Mapping[str, int],
    limit: int | None = None,
) -> list[Mapping[str, Any]]:
    """Emulate ``find(query).sort(sort).limit(limit)``."""
    selected = sort_documents([doc for doc in documents if matches(doc, query)], sort)
    return selected if limit is None else selected[:limit]


def collect_pages(
    paginator: Any,
    documents: Sequence[Mapping[str, Any]],
    query: Mapping[str, Any] | None = None,
    *,
    sort: Mapping[str, Any] | None = None,
    limit: int | None = None,
    max_pages: int = 1000,
) -> list[list[Mapping[str, Any]]]:
    """Fetch pages by following resume tokens until none is returned."""
    pages: list[list[Mapping[str, Any]]] = []
    token: str | None = None
    for _ in range(max_pages):
        paginated = paginator.get_paginated_query(query, token, sort=sort, limit=limit)
        page = run_query(documents, paginated.filter, paginated.sort, paginated.limit)
        pages.append(page)
        token = paginated.extract_resume_token(page)
        if token is None:
            return pages
    raise AssertionError("pagination did not terminate")
