"""Pytest configuration and shared fixtures.

Organization:
    - Environment Fixtures: isolate PAGINATION_/LOG_ variables and settings caches
    - Paginator Fixtures: encrypted and plain paginators
    - Data Fixtures: a small movie collection with ties, nulls and nested fields
"""

from __future__ import annotations

import os
from datetime import datetime

import pytest

from mongo_keyset.core.pagination import KeysetPaginator
from mongo_keyset.core.settings import PaginationSettings, clear_all_caches
from tests.utils import AES_192_KEY, oid


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Run every test without ambient PAGINATION_/LOG_ configuration."""
    for name in list(os.environ):
        if name.startswith(("PAGINATION_", "LOG_")):
            monkeypatch.delenv(name, raising=False)
    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Paginator Fixtures
# ============================================================================


@pytest.fixture
def settings() -> PaginationSettings:
    return PaginationSettings(encryption_key=AES_192_KEY)


@pytest.fixture
def paginator(settings) -> KeysetPaginator:
    """Paginator issuing AES-192-CBC encrypted tokens."""
    return KeysetPaginator(settings=settings)


@pytest.fixture
def plain_paginator() -> KeysetPaginator:
    """Paginator issuing unencrypted base64url tokens."""
    return KeysetPaginator(settings=PaginationSettings(encrypt_tokens=False))


# ============================================================================
# Data Fixtures
# ============================================================================


@pytest.fixture
def movies() -> list[dict]:
    """Movies with tied years, missing/null ratings and nested scores."""
    return [
        {"_id": oid(1), "title": "Birth of a Nation", "year": 1915, "rated": None,
         "imdb": {"rating": 6.8}, "released": datetime(1915, 3, 3)},
        {"_id": oid(2), "title": "Regeneration", "year": 1915,
         "imdb": {"rating": 7.1}, "released": datetime(1915, 9, 13)},
        {"_id": oid(3), "title": "The Cheat", "year": 1915, "rated": "PG",
         "imdb": {"rating": 6.5}, "released": datetime(1915, 12, 13)},
        {"_id": oid(4), "title": "Intolerance", "year": 1916, "rated": "NOT RATED",
         "imdb": {"rating": 8.0}, "released": datetime(1916, 9, 5)},
        {"_id": oid(5), "title": "The Kid", "year": 1921, "rated": "PASSED",
         "imdb": {"rating": 8.3}, "released": datetime(1921, 2, 6)},
        {"_id": oid(6), "title": "Nosferatu", "year": 1922,
         "imdb": {}, "released": datetime(1922, 3, 4)},
        {"_id": oid(7), "title": "Safety Last!", "year": 1923, "rated": "PASSED",
         "imdb": {"rating": 8.3}, "released": datetime(1923, 4, 1)},
        {"_id": oid(8), "title": "Sherlock Jr.", "year": 1924, "rated": None,
         "imdb": {"rating": 8.2}, "released": datetime(1924, 4, 21)},
        {"_id": oid(9), "title": "Greed", "year": 1924, "rated": "PG",
         "released": datetime(1924, 12, 4)},
        {"_id": oid(10), "title": "The Gold Rush", "year": 1925, "rated": "PASSED",
         "imdb": {"rating": 8.3}, "released": datetime(1925, 6, 26)},
        {"_id": oid(11), "title": "Battleship Potemkin", "year": 1925, "rated": "NOT RATED",
         "imdb": {"rating": 8.0}, "released": datetime(1925, 12, 24)},
    ]
