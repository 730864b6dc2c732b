"""PUT Item Pipeline - verifies check ordering and outcomes against an in-memory backend.

Invariants:
    - Oversized or missing length rejected with zero backend calls
    - Existing item short-circuits before the known-user check and the body read
    - Signature verified before decode; exactly one save on success
    - A save that finds the item already stored is already-exists, not an error

Design Decisions:
    - FakeBackend records calls so ordering is asserted directly
"""

import pytest

from feedserver.core.domain_types import PutOutcome, Timestamp
from feedserver.core.errors import (
    BadLengthError, BodyReadError, InvalidItemError, InvalidSignatureError,
    ItemTooLargeError, LengthRequiredError, QuotaDeniedError, UnknownUserError,
)
from feedserver.core.items import ItemRow
from feedserver.services.put_item import put_item, read_body

from tests.services.fake_backend import FakeBackend
from tests.signing import Author, post_bytes, profile_bytes, unknown_type_bytes

TS = 1_700_000_000_000


async def _chunks(*parts: bytes):
    for part in parts:
        yield part


async def _never_read():
    raise AssertionError("body must not be read")
    yield b""  # pragma: no cover


class _Disconnected(Exception):
    pass


async def _disconnecting():
    yield b"abc"
    raise _Disconnected()


async def _put(backend, author, data, *, sig=None, length=None, body=None, **kwargs):
    return await put_item(
        backend, author.user_id, sig or author.sign(data),
        str(len(data)) if length is None else length,
        body if body is not None else _chunks(data),
        clock=lambda: Timestamp(TS + 1),
        **kwargs,
    )


@pytest.fixture
def author():
    return Author()


@pytest.fixture
def backend(author):
    return FakeBackend(known={author.user_id})


# ─── Success paths ───────────────────────────────────────────────

async def test_valid_post_is_created(backend, author):
    data = post_bytes(TS)
    result = await _put(backend, author, data)

    assert result.outcome == PutOutcome.CREATED
    assert result.message == f"OK. Received {len(data)} bytes."
    assert result.row.item_bytes == data
    assert result.row.timestamp == Timestamp(TS)
    assert result.row.received == Timestamp(TS + 1)
    assert backend.calls.count("save_user_item") == 1


async def test_second_put_reports_already_exists(backend, author):
    data = post_bytes(TS)
    sig = author.sign(data)
    await _put(backend, author, data, sig=sig)
    backend.calls.clear()

    result = await _put(backend, author, data, sig=sig, body=_never_read())

    assert result.outcome == PutOutcome.ALREADY_EXISTS
    assert result.message == "Item already exists"
    assert backend.calls == ["user_item_exists"]
    assert len(backend.rows) == 1


async def test_save_losing_race_reports_already_exists(backend, author):
    data = post_bytes(TS)
    sig = author.sign(data)
    await _put(backend, author, data, sig=sig)
    backend.hide_existing = True
    backend.calls.clear()

    result = await _put(backend, author, data, sig=sig)

    assert result.outcome == PutOutcome.ALREADY_EXISTS
    assert result.message == "Item already exists"
    assert result.row is None
    assert backend.calls[-1] == "save_user_item"
    assert len(backend.rows) == 1


async def test_existing_item_accepted_even_for_unknown_user(author):
    data = post_bytes(TS)
    sig = author.sign(data)
    backend = FakeBackend()
    backend.add_row(ItemRow(
        user=author.user_id, signature=sig, timestamp=Timestamp(TS),
        received=Timestamp(TS), item_bytes=data,
    ))
    result = await _put(backend, author, data, sig=sig, body=_never_read())
    assert result.outcome == PutOutcome.ALREADY_EXISTS


async def test_profile_and_unknown_type_items_are_accepted(backend, author):
    for data in (profile_bytes(TS, display_name="A"), unknown_type_bytes(TS + 1)):
        result = await _put(backend, author, data)
        assert result.outcome == PutOutcome.CREATED
    assert len(backend.rows) == 2


async def test_chunked_body_is_joined(backend, author):
    data = post_bytes(TS, body="x" * 200)
    result = await _put(backend, author, data, body=_chunks(data[:50], b"", data[50:]))
    assert result.row.item_bytes == data


# ─── Length & size ───────────────────────────────────────────────

async def test_missing_length_touches_nothing(backend, author):
    with pytest.raises(LengthRequiredError):
        await put_item(
            backend, author.user_id, author.sign(b"x"), None, _never_read(),
        )
    assert backend.calls == []


async def test_oversized_length_touches_nothing(backend, author):
    data = post_bytes(TS)
    with pytest.raises(ItemTooLargeError) as exc_info:
        await _put(backend, author, data, length="40000", body=_never_read())
    assert backend.calls == []
    assert exc_info.value.http_status == 413


async def test_unparseable_length_is_bad_length(backend, author):
    with pytest.raises(BadLengthError):
        await _put(backend, author, post_bytes(TS), length="ten", body=_never_read())
    assert backend.calls == []


async def test_custom_max_item_size(backend, author):
    data = post_bytes(TS)
    with pytest.raises(ItemTooLargeError):
        await _put(backend, author, data, max_item_size=len(data) - 1)


async def test_body_longer_than_declared_is_bad_length(backend, author):
    data = post_bytes(TS)
    with pytest.raises(BadLengthError):
        await _put(backend, author, data, length=str(len(data) - 1))
    assert "save_user_item" not in backend.calls


async def test_body_shorter_than_declared_is_bad_length(backend, author):
    data = post_bytes(TS)
    with pytest.raises(BadLengthError):
        await _put(backend, author, data, length=str(len(data) + 1))
    assert "save_user_item" not in backend.calls


async def test_stream_failure_is_body_read_error(backend, author):
    data = post_bytes(TS)
    with pytest.raises(BodyReadError):
        await _put(
            backend, author, data, body=_disconnecting(),
            stream_errors=(_Disconnected,),
        )
    assert "save_user_item" not in backend.calls


async def test_read_body_returns_exact_bytes():
    assert await read_body(_chunks(b"ab", b"cd"), 4) == b"abcd"


# ─── Policy & validation ─────────────────────────────────────────

async def test_unknown_user_is_forbidden_before_body_read(author):
    backend = FakeBackend()
    with pytest.raises(UnknownUserError) as exc_info:
        await _put(backend, author, post_bytes(TS), body=_never_read())
    assert exc_info.value.http_status == 403
    assert backend.calls == ["user_item_exists", "user_known"]


async def test_tampered_byte_is_invalid_signature(backend, author):
    data = post_bytes(TS)
    sig = author.sign(data)
    tampered = bytearray(data)
    tampered[-1] ^= 0x01
    with pytest.raises(InvalidSignatureError) as exc_info:
        await _put(backend, author, bytes(tampered), sig=sig)
    assert "save_user_item" not in backend.calls
    assert exc_info.value.context.user_id == author.user_id.to_base58()
    assert exc_info.value.context.signature == sig.to_base58()


async def test_signature_checked_before_decode(backend, author):
    garbage = b"\x1a\x10abc"
    other = Author()
    with pytest.raises(InvalidSignatureError):
        await _put(backend, author, garbage, sig=other.sign(garbage))


async def test_signed_garbage_is_invalid_item(backend, author):
    with pytest.raises(InvalidItemError):
        await _put(backend, author, b"\x1a\x10abc")
    assert "quota_check_item" not in backend.calls


async def test_blank_post_is_invalid_item(backend, author):
    with pytest.raises(InvalidItemError, match="body"):
        await _put(backend, author, post_bytes(TS, body="  "))


async def test_quota_denial_is_507_with_reason(backend, author):
    backend.quota_reason = "Quota exceeded"
    with pytest.raises(QuotaDeniedError) as exc_info:
        await _put(backend, author, post_bytes(TS))
    assert exc_info.value.http_status == 507
    assert exc_info.value.message == "Quota exceeded"
    assert "save_user_item" not in backend.calls


async def test_full_pipeline_call_order(backend, author):
    await _put(backend, author, post_bytes(TS))
    assert backend.calls == [
        "user_item_exists", "user_known", "quota_check_item", "save_user_item",
    ]
