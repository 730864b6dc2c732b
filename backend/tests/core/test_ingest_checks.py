"""Ingestion Checks - verifies the pure steps of the PUT-item pipeline.

Tests:
    - Content-Length parsing: missing -> 411, malformed -> 400, over cap -> 413
    - BodyAccumulator rejects bodies shorter or longer than declared
    - check_signature runs over the exact bytes
    - build_item_row takes the timestamp from the item
"""

import pytest

from feedserver.core.domain_types import PutOutcome, Timestamp
from feedserver.core.errors import (
    BadLengthError, InvalidItemError, InvalidSignatureError,
    ItemTooLargeError, LengthRequiredError,
)
from feedserver.core.ingest import (
    MAX_ITEM_SIZE, BodyAccumulator, build_item_row, check_signature,
    decode_and_validate, parse_content_length,
)

from tests.signing import Author, post_bytes


# ─── parse_content_length ────────────────────────────────────────

def test_max_item_size_is_32_kib():
    assert MAX_ITEM_SIZE == 32 * 1024


def test_missing_header_is_length_required():
    with pytest.raises(LengthRequiredError) as exc_info:
        parse_content_length(None)
    assert exc_info.value.http_status == 411
    assert exc_info.value.outcome == PutOutcome.LENGTH_REQUIRED


@pytest.mark.parametrize("header", ["", "abc", "-5", "1.5", "12 34", "０"])
def test_malformed_header_is_bad_length(header):
    with pytest.raises(BadLengthError) as exc_info:
        parse_content_length(header)
    assert exc_info.value.http_status == 400
    assert exc_info.value.message == "Error parsing Length header."


@pytest.mark.parametrize("header,expected", [("0", 0), ("42", 42), (" 100 ", 100)])
def test_valid_header_parses(header, expected):
    assert parse_content_length(header) == expected


def test_length_at_cap_is_accepted():
    assert parse_content_length(str(MAX_ITEM_SIZE)) == MAX_ITEM_SIZE


def test_length_over_cap_is_too_large():
    with pytest.raises(ItemTooLargeError) as exc_info:
        parse_content_length("40000")
    assert exc_info.value.http_status == 413
    assert exc_info.value.message == "Item must be <= 32768 bytes"


def test_custom_cap():
    with pytest.raises(ItemTooLargeError):
        parse_content_length("11", max_size=10)


# ─── BodyAccumulator ─────────────────────────────────────────────

def test_accumulator_joins_chunks():
    acc = BodyAccumulator(6)
    acc.feed(b"abc")
    acc.feed(b"def")
    assert acc.finish() == b"abcdef"


def test_accumulator_rejects_overflow():
    acc = BodyAccumulator(4)
    acc.feed(b"abc")
    with pytest.raises(BadLengthError):
        acc.feed(b"de")


def test_accumulator_rejects_short_body():
    acc = BodyAccumulator(10)
    acc.feed(b"abc")
    with pytest.raises(BadLengthError, match="declared Content-Length is 10"):
        acc.finish()


def test_accumulator_empty_body_for_zero_length():
    assert BodyAccumulator(0).finish() == b""


# ─── Signature & decode ──────────────────────────────────────────

def test_check_signature_accepts_valid():
    author = Author()
    data = post_bytes(1)
    check_signature(author.user_id, author.sign(data), data)


def test_check_signature_rejects_other_bytes():
    author = Author()
    sig = author.sign(post_bytes(1))
    with pytest.raises(InvalidSignatureError) as exc_info:
        check_signature(author.user_id, sig, post_bytes(2))
    assert exc_info.value.outcome == PutOutcome.INVALID_SIGNATURE


def test_decode_and_validate_rejects_blank_post():
    with pytest.raises(InvalidItemError):
        decode_and_validate(post_bytes(1, body=""))


def test_build_item_row_uses_item_timestamp():
    author = Author()
    data = post_bytes(1234)
    sig = author.sign(data)
    item = decode_and_validate(data)
    row = build_item_row(author.user_id, sig, item, data, Timestamp(9999))
    assert row.timestamp == Timestamp(1234)
    assert row.received == Timestamp(9999)
    assert row.item_bytes is data
