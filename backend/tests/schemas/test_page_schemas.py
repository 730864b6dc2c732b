"""Page Schemas - response documents built from service dataclasses.

Invariants:
    - Identities and signatures serialized as base58
    - next_before / next_before_sig only present when a next cursor exists
    - Unknown item types carry neither post nor profile body
"""

from feedserver.core.domain_types import ItemType, Timestamp
from feedserver.core.items import ItemDisplayRow, ItemRow, decode_item, row_to_page_item
from feedserver.core.pagination import Cursor
from feedserver.schemas.pages import ItemResponse, PageItemResponse, PageResponse
from feedserver.services.read_items import ItemView, Page

from tests.signing import Author, post_bytes, unknown_type_bytes

TS = 1_700_000_000_000


def _page_item(author: Author, data: bytes, name=None):
    row = ItemRow(
        user=author.user_id, signature=author.sign(data),
        timestamp=Timestamp(TS), received=Timestamp(TS + 7), item_bytes=data,
    )
    return row_to_page_item(ItemDisplayRow(item=row, display_name=name))


def test_page_item_response_fields():
    author = Author()
    page_item = _page_item(author, post_bytes(TS, title="T", body="B"), name="Alice")

    resp = PageItemResponse.from_page_item(page_item)

    assert resp.user_id == author.user_id.to_base58()
    assert resp.signature == page_item.signature.to_base58()
    assert resp.display_name == "Alice"
    assert resp.received_ms_utc == TS + 7
    assert resp.post.title == "T"


def test_page_response_without_cursor():
    resp = PageResponse.from_page(Page(
        items=[], has_more=False, next_cursor=None, more_link=None,
        message="Nothing to display",
    ))
    assert resp.next_before is None
    assert resp.next_before_sig is None
    assert resp.message == "Nothing to display"


def test_page_response_with_cursor():
    author = Author()
    page_item = _page_item(author, post_bytes(TS))
    resp = PageResponse.from_page(Page(
        items=[page_item], has_more=True,
        next_cursor=Cursor(page_item.timestamp, page_item.signature),
        more_link="/?before=1", message=None,
    ))
    assert resp.next_before == TS
    assert resp.next_before_sig == page_item.signature.to_base58()


def test_unknown_item_view_has_no_body():
    author = Author()
    data = unknown_type_bytes(TS)
    resp = ItemResponse.from_view(ItemView(
        user=author.user_id, signature=author.sign(data), item=decode_item(data),
        item_type=ItemType.UNKNOWN, display_name="x",
    ))
    assert resp.item_type == ItemType.UNKNOWN
    assert resp.post is None
    assert resp.profile is None
