"""Pagination settings for keyset queries and resume tokens.

This module provides the configurable defaults used by the paginator:
the default page size, the unique tie-break field, and how resume tokens
are protected in transit.

Environment variables use PAGINATION_ prefix.
Example: PAGINATION_DEFAULT_LIMIT=50, PAGINATION_ENCRYPTION_KEY=...
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

EncryptionAlgorithm = Literal["aes-128-cbc", "aes-192-cbc", "aes-256-cbc", "fernet"]


class PaginationSettings(BaseSettings):
    """Keyset pagination configuration settings.

    Attributes:
        default_limit: Page size used when neither the caller nor the
            resume token supplies one.
        unique_key: Field guaranteed unique per document, appended to every
            sort as the final tie-break.
        encrypt_tokens: Encrypt resume tokens. When False tokens are plain
            base64url Extended JSON.
        encryption_algorithm: Cipher used for resume tokens.
        encryption_key: Key material. Required when encrypt_tokens is True;
            its length must match the algorithm (16/24/32 bytes for AES,
            a url-safe base64 Fernet key for fernet).

    Example:
        settings = PaginationSettings(encryption_key="0123456789abcdef01234567")
        paginator = KeysetPaginator(settings=settings)
    """

    default_limit: int = Field(
        default=10,
        ge=1,
        le=10000,
        description="Default page size when limit not specified",
    )
    unique_key: str = Field(
        default="_id",
        min_length=1,
        description="Unique field used as the final tie-break sort key",
    )
    encrypt_tokens: bool = Field(
        default=True,
        description="Encrypt resume tokens before handing them to clients",
    )
    encryption_algorithm: EncryptionAlgorithm = Field(
        default="aes-192-cbc",
        description="Cipher used to encrypt resume tokens",
    )
    encryption_key: SecretStr | None = Field(
        default=None,
        description="Resume token encryption key (required when encrypt_tokens is true)",
    )

    model_config = SettingsConfigDict(
        env_prefix="PAGINATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )
