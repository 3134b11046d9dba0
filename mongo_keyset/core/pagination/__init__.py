"""Keyset (seek) pagination for MongoDB collections.

This module provides keyset pagination that is:
- Stable: every sort ends with the unique key, so pages never overlap or skip
- Performant: seeks with a range filter instead of ``skip()``
- Stateless: the position travels in an opaque, optionally encrypted token

Usage:
    from mongo_keyset.core.pagination import KeysetPaginator

    paginator = KeysetPaginator()
    query = paginator.get_paginated_query(
        {"genres": "Drama"}, cursor, sort={"year": 1}, limit=20
    )
    documents = await collection.find(query.filter).sort(query.sort_pairs).limit(query.limit).to_list()
    next_cursor = query.extract_resume_token(documents)

Or let the repository helper run the query:
    page = await paginate_collection(collection, {"genres": "Drama"}, cursor, sort={"year": 1})
"""

from mongo_keyset.core.pagination.cursor import (
    ResumePoint,
    ResumeTokenCodec,
    deserialize_resume_point,
    extract_resume_point,
    serialize_resume_point,
)
from mongo_keyset.core.pagination.encryption import (
    AesCbcCipher,
    FernetCipher,
    TokenCipher,
    build_cipher,
)
from mongo_keyset.core.pagination.fields import get_document_value
from mongo_keyset.core.pagination.filters import KeysetFilter, build_seek_clause, compile_filter
from mongo_keyset.core.pagination.paginator import KeysetPaginator, PaginatedQuery
from mongo_keyset.core.pagination.repository import paginate_collection
from mongo_keyset.core.pagination.schemas import CursorPage
from mongo_keyset.core.pagination.sort import ASCENDING, DESCENDING, normalize_sort

__all__ = [
    "ASCENDING",
    "DESCENDING",
    # Ciphers
    "AesCbcCipher",
    "CursorPage",
    "FernetCipher",
    # Filter compiler
    "KeysetFilter",
    # Orchestration
    "KeysetPaginator",
    "PaginatedQuery",
    # Resume tokens
    "ResumePoint",
    "ResumeTokenCodec",
    "TokenCipher",
    "build_cipher",
    "build_seek_clause",
    "compile_filter",
    "deserialize_resume_point",
    "extract_resume_point",
    "get_document_value",
    "normalize_sort",
    "paginate_collection",
    "serialize_resume_point",
]
