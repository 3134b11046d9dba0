"""Unit tests for resume points and the resume token codec."""
from __future__ import annotations

import json
import uuid
from datetime import datetime

import pytest

from mongo_keyset.core.exceptions import InvalidResumeTokenException, UnsupportedSortException
from mongo_keyset.core.pagination.cursor import (
    ResumePoint,
    ResumeTokenCodec,
    coerce_resume_point,
    deserialize_resume_point,
    extract_resume_point,
    serialize_resume_point,
)
from mongo_keyset.core.pagination.encryption import AesCbcCipher, b64url_decode, b64url_encode
from tests.utils import AES_192_KEY, oid

SORT = {"year": 1, "_id": 1}


@pytest.mark.unit
class TestExtractResumePoint:
    """Tests for extract_resume_point."""

    def test_full_page_yields_last_document_position(self):
        docs = [{"_id": oid(1), "year": 1915}, {"_id": oid(2), "year": 1915}]

        resume_point = extract_resume_point(docs, SORT, 2)

        assert resume_point == ResumePoint(sort=SORT, limit=2, skip_values={"year": 1915, "_id": oid(2)})

    def test_short_page_is_last(self):
        assert extract_resume_point([{"_id": oid(3), "year": 1920}], SORT, 2) is None

    @pytest.mark.parametrize("docs", [None, []])
    def test_empty_page_is_last(self, docs):
        assert extract_resume_point(docs, SORT, 2) is None

    def test_page_exactly_at_limit_still_issues_point(self):
        docs = [{"_id": oid(n), "year": 1900 + n} for n in range(1, 11)]

        resume_point = extract_resume_point(docs, SORT, 10)

        assert resume_point is not None
        assert resume_point.skip_values == {"year": 1910, "_id": oid(10)}

    def test_missing_and_nested_fields(self):
        docs = [{"_id": oid(1), "imdb": {"rating": 7.5}}]

        resume_point = extract_resume_point(docs, {"rated": 1, "imdb.rating": -1, "_id": 1}, 1)

        assert resume_point.skip_values == {"rated": None, "imdb.rating": 7.5, "_id": oid(1)}


@pytest.mark.unit
class TestResumePointModel:
    """Tests for ResumePoint validation and payload shape."""

    def test_payload_uses_wire_field_names(self):
        resume_point = ResumePoint(sort=SORT, limit=2, skip_values={"year": 1915, "_id": oid(2)})

        assert resume_point.to_payload() == {
            "sort": {"year": 1, "_id": 1},
            "limit": 2,
            "skipValues": {"year": 1915, "_id": oid(2)},
        }

    def test_alias_accepted(self):
        resume_point = coerce_resume_point({"sort": {"_id": 1}, "limit": 5, "skipValues": {"_id": 7}})

        assert resume_point.skip_values == {"_id": 7}

    def test_coerce_passes_instances_through(self):
        resume_point = ResumePoint(sort={"_id": 1}, limit=1, skip_values={"_id": 1})

        assert coerce_resume_point(resume_point) is resume_point

    def test_invalid_mapping(self):
        with pytest.raises(InvalidResumeTokenException) as exc_info:
            coerce_resume_point({"sort": {}, "limit": 5, "skipValues": {}})

        assert exc_info.value.extra["errors"]

    @pytest.mark.parametrize("field", ["$where", "$natural", "imdb..rating", ""])
    def test_operator_and_malformed_sort_fields_rejected(self, field):
        with pytest.raises(InvalidResumeTokenException):
            coerce_resume_point({"sort": {field: 1, "_id": 1}, "limit": 2, "skipValues": {field: 1, "_id": 1}})

    @pytest.mark.parametrize(
        "value",
        [{"$ne": None}, {"nested": {"$gt": 0}}, [{"$where": "1"}]],
    )
    def test_operator_skip_values_rejected(self, value):
        with pytest.raises(InvalidResumeTokenException):
            coerce_resume_point({"sort": {"year": 1, "_id": 1}, "limit": 2, "skipValues": {"year": value, "_id": 1}})

    def test_embedded_document_skip_value_allowed(self):
        resume_point = coerce_resume_point(
            {"sort": {"tomatoes": 1, "_id": 1}, "limit": 2, "skipValues": {"tomatoes": {"fresh": 3}, "_id": 1}}
        )

        assert resume_point.skip_values["tomatoes"] == {"fresh": 3}


@pytest.mark.unit
class TestSerialization:
    """Extended JSON keeps BSON types intact."""

    def test_types_survive_round_trip(self):
        skip_values = {
            "released": datetime(1915, 3, 3, 12, 30, 15, 123000),
            "ref": uuid.UUID("12345678-1234-5678-1234-567812345678"),
            "year": 1915,
            "rating": 6.5,
            "color": False,
            "rated": None,
            "title": "The Cheat",
            "_id": oid(3),
        }
        sort = {key: 1 for key in skip_values}
        resume_point = ResumePoint(sort=sort, limit=10, skip_values=skip_values)

        restored = deserialize_resume_point(serialize_resume_point(resume_point))

        assert restored == resume_point
        for key, value in skip_values.items():
            assert type(restored.skip_values[key]) is type(value)

    def test_datetime_truncated_to_milliseconds(self):
        resume_point = ResumePoint(
            sort={"released": 1, "_id": 1},
            limit=1,
            skip_values={"released": datetime(2024, 1, 2, 3, 4, 5, 678901), "_id": oid(1)},
        )

        restored = deserialize_resume_point(serialize_resume_point(resume_point))

        assert restored.skip_values["released"] == datetime(2024, 1, 2, 3, 4, 5, 678000)
        assert restored.skip_values["released"].tzinfo is None

    def test_payload_is_canonical_extended_json(self):
        resume_point = ResumePoint(sort=SORT, limit=10, skip_values={"year": 1915, "_id": oid(2)})

        payload = json.loads(serialize_resume_point(resume_point))

        assert payload["limit"] == {"$numberInt": "10"}
        assert payload["skipValues"]["_id"] == {"$oid": str(oid(2))}

    def test_unencodable_value(self):
        resume_point = ResumePoint(sort={"x": 1, "_id": 1}, limit=1, skip_values={"x": object(), "_id": 1})

        with pytest.raises(UnsupportedSortException):
            serialize_resume_point(resume_point)

    @pytest.mark.parametrize("payload", ["not json", "[1, 2]", '{"sort": {"_id": 1}}'])
    def test_bad_payload(self, payload):
        with pytest.raises(InvalidResumeTokenException):
            deserialize_resume_point(payload)


@pytest.mark.unit
class TestResumeTokenCodec:
    """Tests for ResumeTokenCodec."""

    @pytest.fixture
    def resume_point(self) -> ResumePoint:
        return ResumePoint(sort=SORT, limit=2, skip_values={"year": 1915, "_id": oid(2)})

    def test_plain_tokens_round_trip(self, resume_point):
        codec = ResumeTokenCodec()

        token = codec.encode(resume_point)

        assert "=" not in token
        assert json.loads(b64url_decode(token))["sort"]["year"] == {"$numberInt": "1"}
        assert codec.decode(token) == resume_point

    def test_encrypted_tokens_round_trip(self, resume_point):
        codec = ResumeTokenCodec(AesCbcCipher(AES_192_KEY, "aes-192-cbc"))

        token = codec.encode(resume_point)

        assert token.count(".") == 1
        assert codec.decode(token) == resume_point

    def test_encrypted_tokens_differ_per_call(self, resume_point):
        codec = ResumeTokenCodec(AesCbcCipher(AES_192_KEY))

        assert codec.encode(resume_point) != codec.encode(resume_point)

    def test_token_from_other_key_rejected(self, resume_point):
        token = ResumeTokenCodec(AesCbcCipher("x" * 24)).encode(resume_point)
        codec = ResumeTokenCodec(AesCbcCipher(AES_192_KEY))

        with pytest.raises(InvalidResumeTokenException):
            codec.decode(token)

    @pytest.mark.parametrize("token", ["", "garbage", "abc.def", "....", "%%%.%%%"])
    def test_garbage_rejected_when_encrypted(self, token):
        codec = ResumeTokenCodec(AesCbcCipher(AES_192_KEY))

        with pytest.raises(InvalidResumeTokenException):
            codec.decode(token)

    @pytest.mark.parametrize("token", ["", "!!!", "bm90IGpzb24"])
    def test_garbage_rejected_when_plain(self, token):
        with pytest.raises(InvalidResumeTokenException):
            ResumeTokenCodec().decode(token)

    def test_forged_plain_token_with_operator_field_rejected(self):
        payload = json.dumps(
            {"sort": {"$where": 1, "_id": 1}, "limit": 2, "skipValues": {"$where": "sleep(100)", "_id": 1}}
        )
        token = b64url_encode(payload.encode("utf-8"))

        with pytest.raises(InvalidResumeTokenException):
            ResumeTokenCodec().decode(token)

    def test_non_string_rejected(self):
        with pytest.raises(InvalidResumeTokenException):
            ResumeTokenCodec().decode(None)

    def test_rejection_is_logged(self, caplog):
        codec = ResumeTokenCodec(AesCbcCipher(AES_192_KEY))

        with caplog.at_level("WARNING", logger="mongo_keyset.core.pagination.cursor"):
            with pytest.raises(InvalidResumeTokenException):
                codec.decode("garbage")

        assert "Rejected resume token" in caplog.text
