"""Items - verifies decoding, structural validation, display policy, and page mappers.

Tests:
    - decode_item rejects bytes protobuf cannot parse
    - validate_item enforces timestamp, UTC offset, post body, and follow identity rules
    - Unknown payload types validate but are hidden by the display filter
    - row_to_page_item raises CorruptItemError for undecodable stored bytes
    - PageItem.display_name falls back to the base58 user ID
"""

import pytest

from feedserver.core.domain_types import ItemType, Timestamp
from feedserver.core.errors import CorruptItemError, InvalidItemError
from feedserver.core.item_schema import Item
from feedserver.core.items import (
    ItemDisplayRow, ItemRow, decode_item, display_by_default, follows_of,
    item_type, own_row_to_page_item, profile_display_name, row_to_page_item,
    validate_item,
)

from tests.signing import Author, post_bytes, profile_bytes, unknown_type_bytes

TS = 1_700_000_000_000


def _row(author: Author, data: bytes) -> ItemRow:
    return ItemRow(
        user=author.user_id,
        signature=author.sign(data),
        timestamp=Timestamp(TS),
        received=Timestamp(TS + 5),
        item_bytes=data,
    )


# ─── decode_item ─────────────────────────────────────────────────

def test_decode_item_reads_post():
    item = decode_item(post_bytes(TS, body="hi", title="T"))
    assert item.timestamp_ms_utc == TS
    assert item.post.title == "T"
    assert item.post.body == "hi"


def test_decode_item_rejects_garbage():
    # Truncated length-delimited field
    with pytest.raises(InvalidItemError):
        decode_item(b"\x1a\x10abc")


def test_item_type_detects_each_kind():
    assert item_type(decode_item(post_bytes(TS))) == ItemType.POST
    assert item_type(decode_item(profile_bytes(TS))) == ItemType.PROFILE
    assert item_type(decode_item(unknown_type_bytes(TS))) == ItemType.UNKNOWN


# ─── validate_item ───────────────────────────────────────────────

def test_validate_accepts_plain_post():
    validate_item(decode_item(post_bytes(TS)))


def test_validate_rejects_missing_timestamp():
    item = Item()
    item.post.body = "hello"
    with pytest.raises(InvalidItemError, match="timestamp"):
        validate_item(item)


def test_validate_accepts_negative_timestamp():
    validate_item(decode_item(post_bytes(-1)))


@pytest.mark.parametrize("offset", [-1440, 0, 330, 1440])
def test_validate_accepts_offsets_within_a_day(offset):
    validate_item(decode_item(post_bytes(TS, utc_offset_minutes=offset)))


@pytest.mark.parametrize("offset", [-1441, 1441, 100_000])
def test_validate_rejects_offsets_beyond_a_day(offset):
    with pytest.raises(InvalidItemError, match="utc_offset"):
        validate_item(decode_item(post_bytes(TS, utc_offset_minutes=offset)))


@pytest.mark.parametrize("body", ["", "   ", "\n\t"])
def test_validate_rejects_blank_post_body(body):
    with pytest.raises(InvalidItemError, match="body"):
        validate_item(decode_item(post_bytes(TS, body=body)))


def test_validate_accepts_profile_with_follows():
    friend = Author()
    validate_item(decode_item(profile_bytes(TS, follows=[(friend.user_id, "F")])))


def test_validate_accepts_self_follow():
    me = Author()
    validate_item(decode_item(profile_bytes(TS, follows=[(me.user_id, "me")])))


def test_validate_rejects_follow_with_short_user_id():
    item = Item()
    item.timestamp_ms_utc = TS
    follow = item.profile.follows.add()
    follow.user.bytes = b"short"
    with pytest.raises(InvalidItemError, match="follow #0"):
        validate_item(item)


def test_validate_accepts_unknown_type():
    validate_item(decode_item(unknown_type_bytes(TS)))


# ─── Display policy ──────────────────────────────────────────────

def test_only_posts_displayed_by_default():
    assert display_by_default(decode_item(post_bytes(TS)))
    assert not display_by_default(decode_item(profile_bytes(TS)))
    assert not display_by_default(decode_item(unknown_type_bytes(TS)))


def test_profile_accessors_ignore_posts():
    post = decode_item(post_bytes(TS))
    assert profile_display_name(post) == ""
    assert follows_of(post) == []


def test_follows_of_returns_user_ids_and_names():
    a, b = Author(), Author()
    item = decode_item(profile_bytes(TS, follows=[(a.user_id, "A"), (b.user_id, "")]))
    assert follows_of(item) == [(a.user_id, "A"), (b.user_id, "")]


# ─── Page mappers ────────────────────────────────────────────────

def test_row_to_page_item_keeps_display_name():
    author = Author()
    row = _row(author, post_bytes(TS))
    page_item = row_to_page_item(ItemDisplayRow(item=row, display_name="Alice"))
    assert page_item.display_name == "Alice"
    assert page_item.user == author.user_id
    assert page_item.timestamp == Timestamp(TS)


@pytest.mark.parametrize("name", [None, "", "  "])
def test_display_name_falls_back_to_user_id(name):
    author = Author()
    row = _row(author, post_bytes(TS))
    page_item = row_to_page_item(ItemDisplayRow(item=row, display_name=name))
    assert page_item.display_name == author.user_id.to_base58()


def test_corrupt_row_raises_corrupt_item_error():
    author = Author()
    row = _row(author, b"\x1a\x10abc")
    with pytest.raises(CorruptItemError) as exc_info:
        own_row_to_page_item(row)
    assert exc_info.value.http_status == 500
    assert exc_info.value.context.user_id == author.user_id.to_base58()
