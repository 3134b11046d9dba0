"""Pydantic Settings v2 configuration.

Settings are split by domain and read from environment variables:
- PAGINATION_*: page size defaults, unique key, resume token encryption
- LOG_*: logging level, JSON output, handlers

Import settings via cached loaders (recommended):
    from mongo_keyset.core.settings import get_pagination_settings

Or build an explicit instance (testing/overrides):
    from mongo_keyset.core.settings import PaginationSettings

    settings = PaginationSettings(default_limit=25, encrypt_tokens=False)

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. Environment variables
    3. .env file (development only)
"""

from __future__ import annotations

from .loader import clear_all_caches, get_logging_settings, get_pagination_settings
from .logs import LoggingSettings
from .pagination import EncryptionAlgorithm, PaginationSettings

__all__ = [
    "EncryptionAlgorithm",
    "LoggingSettings",
    "PaginationSettings",
    "clear_all_caches",
    "get_logging_settings",
    "get_pagination_settings",
]
