"""Resume points and resume tokens.

A resume point records where a page ended: the sort it was produced with,
the page size, and the value of every sort field on the last document.

Resume points are serialized as canonical MongoDB Extended JSON so that
``datetime``, ``ObjectId`` and ``UUID`` values come back as the same types.
Plain JSON would turn them into strings and the next seek would compare a
string against a date.

Example payload:
    {"sort": {"year": {"$numberInt": "1"}, "_id": {"$numberInt": "1"}},
     "limit": {"$numberInt": "10"},
     "skipValues": {"year": {"$numberInt": "1915"},
                    "_id": {"$oid": "573a1390f29313caabcd4135"}}}

The token handed to clients is that payload encrypted by a ``TokenCipher``,
or base64url encoded when encryption is disabled.
"""

from __future__ import annotations

import binascii
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from bson import json_util
from bson.binary import UuidRepresentation
from bson.errors import BSONError
from bson.json_util import JSONMode, JSONOptions
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from mongo_keyset.core.exceptions import InvalidResumeTokenException, UnsupportedSortException
from mongo_keyset.core.pagination.encryption import (
    TokenCipher,
    TokenDecryptionError,
    b64url_decode,
    b64url_encode,
)
from mongo_keyset.core.pagination.fields import get_skip_values
from mongo_keyset.core.pagination.sort import validate_field_path

logger = logging.getLogger(__name__)

JSON_OPTIONS = JSONOptions(
    json_mode=JSONMode.CANONICAL,
    uuid_representation=UuidRepresentation.STANDARD,
    tz_aware=False,
)


def _holds_operator(value: Any) -> bool:
    """True when a mapping anywhere in ``value`` has a ``$``-prefixed key."""
    if isinstance(value, Mapping):
        return any(str(key).startswith("$") or _holds_operator(item) for key, item in value.items())
    if isinstance(value, (list, tuple)):
        return any(_holds_operator(item) for item in value)
    return False


class ResumePoint(BaseModel):
    """Position of the last document of a page.

    Attributes:
        sort: Effective sort the page was produced with (unique key last).
        limit: Page size the page was produced with.
        skip_values: Value of every sort field on the last document,
            None where the field was missing.
    """

    sort: dict[str, int] = Field(description="Effective sort, unique key last")
    limit: int = Field(ge=1, description="Page size")
    skip_values: dict[str, Any] = Field(
        alias="skipValues",
        description="Sort field values of the last document",
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("sort")
    @classmethod
    def _check_directions(cls, v: dict[str, int]) -> dict[str, int]:
        if not v:
            raise ValueError("sort must not be empty")
        for field, direction in v.items():
            try:
                validate_field_path(field)
            except UnsupportedSortException as e:
                raise ValueError(e.detail) from e
            if direction not in (1, -1):
                raise ValueError(f"sort direction for '{field}' must be 1 or -1")
        return v

    @field_validator("skip_values")
    @classmethod
    def _check_operators(cls, v: dict[str, Any]) -> dict[str, Any]:
        for field, value in v.items():
            if _holds_operator(value):
                raise ValueError(f"skipValues for '{field}' holds a query operator")
        return v

    @model_validator(mode="after")
    def _check_skip_values(self) -> ResumePoint:
        missing = [field for field in self.sort if field not in self.skip_values]
        if missing:
            raise ValueError(f"skipValues is missing sort fields: {', '.join(missing)}")
        return self

    def to_payload(self) -> dict[str, Any]:
        """Return the wire payload (``sort``, ``limit``, ``skipValues``)."""
        return {"sort": dict(self.sort), "limit": self.limit, "skipValues": dict(self.skip_values)}


def coerce_resume_point(value: ResumePoint | Mapping[str, Any]) -> ResumePoint:
    """Validate a structured resume point supplied by the caller.

    Raises:
        InvalidResumeTokenException: If the mapping lacks ``sort``,
            ``limit`` or ``skipValues`` or holds invalid values.
    """
    if isinstance(value, ResumePoint):
        return value
    if not isinstance(value, Mapping):
        raise InvalidResumeTokenException(
            detail=f"Resume point must be a mapping, got {type(value).__name__}",
        )
    try:
        return ResumePoint.model_validate(dict(value))
    except ValidationError as e:
        raise InvalidResumeTokenException(
            detail="Resume point is structurally invalid",
            extra={"errors": e.errors(include_url=False, include_input=False)},
        ) from e


def extract_resume_point(
    documents: Sequence[Mapping[str, Any]] | None,
    sort: Mapping[str, int],
    limit: int,
) -> ResumePoint | None:
    """Build the resume point for the page after ``documents``.

    A page shorter than ``limit`` is the last one and yields None. A final
    page that is exactly ``limit`` long still yields a resume point; the
    page it leads to is empty.

    Args:
        documents: Documents of the current page, in sort order.
        sort: Effective sort the page was fetched with.
        limit: Page size the page was fetched with.
    """
    if not documents or len(documents) < limit:
        return None

    last_document = documents[-1]
    return ResumePoint(
        sort=dict(sort),
        limit=limit,
        skip_values=get_skip_values(last_document, sort),
    )


def serialize_resume_point(resume_point: ResumePoint) -> str:
    """Serialize to canonical Extended JSON.

    Raises:
        UnsupportedSortException: If a sort value has no BSON representation.
    """
    try:
        return json_util.dumps(resume_point.to_payload(), json_options=JSON_OPTIONS)
    except (TypeError, BSONError) as e:
        raise UnsupportedSortException(
            detail=f"Sort values cannot be encoded in a resume token: {e}",
        ) from e


def deserialize_resume_point(payload: str) -> ResumePoint:
    """Parse canonical Extended JSON back into a ResumePoint.

    Raises:
        InvalidResumeTokenException: On malformed JSON or an invalid payload.
    """
    try:
        data = json_util.loads(payload, json_options=JSON_OPTIONS)
    except (ValueError, TypeError, KeyError, BSONError) as e:
        raise InvalidResumeTokenException(detail="Resume token payload is not valid Extended JSON") from e
    return coerce_resume_point(data)


class ResumeTokenCodec:
    """Encode and decode opaque resume tokens.

    Tokens are opaque: clients pass them back unchanged and must not parse
    them.

    Usage:
        codec = ResumeTokenCodec(cipher=AesCbcCipher(key, "aes-192-cbc"))
        token = codec.encode(resume_point)
        codec.decode(token) == resume_point  # True
    """

    def __init__(self, cipher: TokenCipher | None = None) -> None:
        """Initialize codec.

        Args:
            cipher: Cipher applied to the serialized payload. None stores the
                payload base64url encoded, readable by anyone holding the token.
        """
        self.cipher = cipher

    def encode(self, resume_point: ResumePoint) -> str:
        payload = serialize_resume_point(resume_point)
        if self.cipher is None:
            return b64url_encode(payload.encode("utf-8"))
        return self.cipher.encrypt(payload)

    def decode(self, token: str) -> ResumePoint:
        """Decode a token produced by :meth:`encode`.

        Raises:
            InvalidResumeTokenException: If the token is corrupted, tampered
                with, or was produced with another key or algorithm.
        """
        if not isinstance(token, str) or not token:
            raise InvalidResumeTokenException(detail="Resume token must be a non-empty string")
        try:
            if self.cipher is None:
                payload = b64url_decode(token).decode("utf-8")
            else:
                payload = self.cipher.decrypt(token)
        except (TokenDecryptionError, binascii.Error, ValueError) as e:
            logger.warning(
                "Rejected resume token",
                extra={"reason": str(e), "token_length": len(token)},
            )
            raise InvalidResumeTokenException(detail="Resume token could not be decoded") from e
        return deserialize_resume_point(payload)


__all__ = [
    "JSON_OPTIONS",
    "ResumePoint",
    "ResumeTokenCodec",
    "coerce_resume_point",
    "deserialize_resume_point",
    "extract_resume_point",
    "serialize_resume_point",
]
