"""Pagination response schema for keyset pagination.

Keyset pagination only moves forward and never counts matching documents,
so a page carries its items, the token for the next page, and whether a
next page may exist.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class CursorPage(BaseModel, Generic[T]):
    """REST-style keyset pagination response.

    Usage:
        @router.get("/movies", response_model=CursorPage[MovieResponse])
        async def list_movies(cursor: str | None = None, limit: int = 20):
            return await paginate_collection(movies, {}, cursor, sort={"year": 1}, limit=limit)

    Attributes:
        items: Documents of this page, in sort order
        next_cursor: Resume token for the next page (None when exhausted)
        has_more: Whether another page may exist. A page that exactly
            fills the limit reports True even when the next page is empty.
    """

    items: list[T] = Field(
        default_factory=list,
        description="List of items",
    )
    next_cursor: str | None = Field(
        default=None,
        description="Resume token to fetch the next page",
    )
    has_more: bool = Field(
        default=False,
        description="Whether more items may exist",
    )


__all__ = ["CursorPage"]
