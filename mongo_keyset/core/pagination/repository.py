"""Run a keyset-paginated query against an async MongoDB collection.

Works with any collection whose ``find()`` returns a cursor supporting
``sort()``, ``limit()`` and ``await to_list(length=...)`` (PyMongo's async
API and Motor both qualify).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from mongo_keyset.core.pagination.paginator import KeysetPaginator, ResumeInput
from mongo_keyset.core.pagination.schemas import CursorPage
from mongo_keyset.infra.logging.lazy import get_lazy_logger

_lazy = get_lazy_logger(__name__)


async def paginate_collection(
    collection: Any,
    query_filter: Mapping[str, Any] | None = None,
    resume: ResumeInput = None,
    *,
    sort: Mapping[str, Any] | None = None,
    limit: int | None = None,
    paginator: KeysetPaginator | None = None,
) -> CursorPage[dict[str, Any]]:
    """Execute one keyset-paginated page.

    Args:
        collection: Async collection (``AsyncCollection`` / ``AsyncIOMotorCollection``)
        query_filter: MongoDB filter for the whole result set
        resume: Token from the previous page (None for the first page)
        sort: ``{field: direction}`` mapping
        limit: Page size
        paginator: Paginator to use; a default one is built from settings

    Returns:
        CursorPage with the documents and the token for the next page

    Example:
        page = await paginate_collection(
            db.movies,
            {"genres": "Drama"},
            request.query_params.get("cursor"),
            sort={"year": 1, "title": 1},
            limit=20,
        )
        while page.has_more:
            page = await paginate_collection(db.movies, {"genres": "Drama"}, page.next_cursor)
    """
    paginator = paginator or KeysetPaginator()
    query = paginator.get_paginated_query(query_filter, resume, sort=sort, limit=limit)

    cursor = collection.find(query.filter).sort(query.sort_pairs).limit(query.limit)
    documents = await cursor.to_list(length=query.limit)

    next_cursor = query.extract_resume_token(documents)
    _lazy.debug(
        lambda: f"paginate_collection: {getattr(collection, 'name', collection)!s}"
        f"(limit={query.limit}) -> {len(documents)} items, has_more={next_cursor is not None}"
    )
    return CursorPage(items=documents, next_cursor=next_cursor, has_more=next_cursor is not None)


__all__ = ["paginate_collection"]
