"""Keyset paginator: builds the query for one page and the token for the next.

Usage:
    paginator = KeysetPaginator()
    query = paginator.get_paginated_query(
        {"genres": "Drama"},
        request_cursor,          # token from the previous response, or None
        sort={"year": 1},
        limit=20,
    )
    documents = list(collection.find(query.filter).sort(query.sort_pairs).limit(query.limit))
    next_cursor = query.extract_resume_token(documents)

Precedence rules:
    limit: caller limit, then the limit embedded in the token, then the default
    sort:  the sort embedded in the token, then the normalized caller sort
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from mongo_keyset.core.exceptions import ValidationException
from mongo_keyset.core.pagination.cursor import (
    ResumePoint,
    ResumeTokenCodec,
    coerce_resume_point,
    extract_resume_point,
)
from mongo_keyset.core.pagination.encryption import TokenCipher, build_cipher
from mongo_keyset.core.pagination.filters import KeysetFilter
from mongo_keyset.core.pagination.sort import normalize_sort
from mongo_keyset.core.settings import PaginationSettings, get_pagination_settings

logger = logging.getLogger(__name__)

ResumeInput = str | ResumePoint | Mapping[str, Any] | None


@dataclass(frozen=True)
class PaginatedQuery:
    """Everything needed to run one page and continue after it.

    Attributes:
        filter: Caller filter merged with the seek condition.
        sort: Effective sort, unique key last.
        limit: Page size.
    """

    filter: dict[str, Any]
    sort: dict[str, int]
    limit: int
    codec: ResumeTokenCodec = field(repr=False, compare=False)

    @property
    def sort_pairs(self) -> list[tuple[str, int]]:
        """Sort as ``(field, direction)`` pairs, the form PyMongo's ``sort()`` takes."""
        return list(self.sort.items())

    def extract_resume_point(self, documents: Sequence[Mapping[str, Any]] | None) -> ResumePoint | None:
        """Resume point after ``documents``, or None when this was the last page."""
        return extract_resume_point(documents, self.sort, self.limit)

    def extract_resume_token(self, documents: Sequence[Mapping[str, Any]] | None) -> str | None:
        """Opaque token for the next page, or None when this was the last page."""
        resume_point = self.extract_resume_point(documents)
        if resume_point is None:
            return None
        return self.codec.encode(resume_point)


class KeysetPaginator:
    """Stateless keyset pagination over MongoDB collections.

    The paginator holds only immutable configuration (settings and cipher),
    so a single instance can serve concurrent requests.
    """

    def __init__(
        self,
        settings: PaginationSettings | None = None,
        *,
        cipher: TokenCipher | None = None,
    ) -> None:
        """Initialize paginator.

        Args:
            settings: Pagination settings. Defaults to the cached environment settings.
            cipher: Explicit token cipher. When omitted and token encryption is
                enabled, one is built from the settings.

        Raises:
            ConfigurationException: If encryption is enabled without a usable key.
        """
        self.settings = settings or get_pagination_settings()
        if cipher is None and self.settings.encrypt_tokens:
            key = self.settings.encryption_key
            cipher = build_cipher(
                self.settings.encryption_algorithm,
                key.get_secret_value() if key is not None else None,
            )
        self.codec = ResumeTokenCodec(cipher)

    @property
    def unique_key(self) -> str:
        return self.settings.unique_key

    def get_paginated_query(
        self,
        query_filter: Mapping[str, Any] | None = None,
        resume: ResumeInput = None,
        *,
        sort: Mapping[str, Any] | None = None,
        limit: int | None = None,
    ) -> PaginatedQuery:
        """Build the query for the requested page.

        Args:
            query_filter: Caller's MongoDB filter (not mutated).
            resume: Token from the previous page, a structured resume point,
                or None for the first page.
            sort: ``{field: direction}`` mapping; ignored when resuming.
            limit: Page size; overrides the resumed limit when given.

        Raises:
            InvalidResumeTokenException: If ``resume`` cannot be decoded or is invalid.
            UnsupportedSortException: If ``sort`` cannot be paginated.
            ValidationException: If ``limit`` is not a positive integer.
        """
        resume_point = self.resolve_resume_point(resume)
        page_limit = self._resolve_limit(limit, resume_point)
        page_sort = resume_point.sort if resume_point is not None else normalize_sort(sort, self.unique_key)
        page_filter = KeysetFilter(resume_point, unique_key=self.unique_key).apply(query_filter)

        logger.debug(
            "Prepared keyset page",
            extra={
                "sort_keys": list(page_sort),
                "limit": page_limit,
                "resumed": resume_point is not None,
            },
        )
        return PaginatedQuery(filter=page_filter, sort=dict(page_sort), limit=page_limit, codec=self.codec)

    def resolve_resume_point(self, resume: ResumeInput) -> ResumePoint | None:
        """Turn any accepted resume input into a validated ResumePoint."""
        if resume is None:
            return None
        if isinstance(resume, str):
            return self.codec.decode(resume)
        return coerce_resume_point(resume)

    def encode_resume_point(self, resume_point: ResumePoint) -> str:
        return self.codec.encode(resume_point)

    def decode_resume_token(self, token: str) -> ResumePoint:
        return self.codec.decode(token)

    def _resolve_limit(self, limit: int | None, resume_point: ResumePoint | None) -> int:
        if limit is None:
            return resume_point.limit if resume_point is not None else self.settings.default_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationException(
                detail=f"limit must be a positive integer, got {limit!r}",
                extra={"field": "limit"},
            )
        return limit


__all__ = ["KeysetPaginator", "PaginatedQuery", "ResumeInput"]
