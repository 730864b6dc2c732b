"""Read Services - paginated feeds and single-item lookups over the backend contract.

Invariants:
    - Every feed uses the same Paginator with display_by_default as its filter
    - collect() stops pulling rows the moment the paginator says stop, and closes
      the backend iterator
    - The next cursor is taken from the last included item, never the last scanned row
    - get_item_bytes returns the stored bytes untouched

Design Decisions:
    - Feeds differ only in backend query, mapper and link base URL; _page() holds
      the shared flow
"""

import logging
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable

from feedserver.core.domain_types import ItemType, Timestamp
from feedserver.core.errors import ResourceNotFoundError
from feedserver.core.identity import Signature, UserID
from feedserver.core.item_schema import Item
from feedserver.core.items import (
    PageItem, display_by_default, follows_of, item_type,
    own_row_to_page_item, row_to_page_item,
)
from feedserver.core.pagination import Cursor, Pagination, Paginator
from feedserver.core.repository_protocols import Backend

logger = logging.getLogger(__name__)


@dataclass
class Page:
    """One page of display items plus continuation state."""
    items: list[PageItem]
    has_more: bool
    next_cursor: Cursor | None
    more_link: str | None
    message: str | None


@dataclass
class ItemView:
    """A single decoded item with its author's display name."""
    user: UserID
    signature: Signature
    item: Item
    item_type: ItemType
    display_name: str


@dataclass
class ProfileView:
    user: UserID
    signature: Signature
    display_name: str
    about: str
    timestamp_ms_utc: int
    utc_offset_minutes: int
    follows: list[tuple[UserID, str]] = field(default_factory=list)


def page_item_cursor(page_item: PageItem) -> Cursor:
    return Cursor(page_item.timestamp, page_item.signature)


async def collect(paginator: Paginator, rows: AsyncIterator) -> Paginator:
    """Feed rows to the paginator until it stops or the rows run out."""
    async with aclosing(rows) as stream:
        async for row in stream:
            if not paginator.accept(row):
                break
    return paginator


async def _page(
    query: Callable[[Cursor], AsyncIterator],
    mapper: Callable,
    options: Pagination,
    base_url: str,
    now: Timestamp | None,
) -> Page:
    paginator = Paginator(options=options, mapper=mapper, keep=_keep_page_item)
    await collect(paginator, query(paginator.cursor(now or Timestamp.now())))
    logger.debug(
        f"Collected page for {base_url}",
        extra={"page_size": options.page_size, "item_count": len(paginator.items)},
    )
    return Page(
        items=paginator.items,
        has_more=paginator.has_more,
        next_cursor=paginator.next_cursor(page_item_cursor),
        more_link=paginator.more_items_link(base_url, page_item_cursor),
        message=paginator.message(),
    )


def _keep_page_item(page_item: PageItem) -> bool:
    return display_by_default(page_item.item)


# ─── Feeds ───────────────────────────────────────────────────────

async def homepage_page(
    backend: Backend, options: Pagination, now: Timestamp | None = None,
) -> Page:
    return await _page(backend.homepage_items, row_to_page_item, options, "/", now)


async def user_feed_page(
    backend: Backend, user: UserID, options: Pagination,
    now: Timestamp | None = None,
) -> Page:
    return await _page(
        lambda cursor: backend.user_feed_items(user, cursor),
        row_to_page_item, options, f"/u/{user.to_base58()}/feed/", now,
    )


async def user_items_page(
    backend: Backend, user: UserID, options: Pagination,
    now: Timestamp | None = None,
) -> Page:
    return await _page(
        lambda cursor: backend.user_items(user, cursor),
        own_row_to_page_item, options, f"/u/{user.to_base58()}/", now,
    )


# ─── Single items ────────────────────────────────────────────────

async def get_item_bytes(
    backend: Backend, user: UserID, signature: Signature,
) -> bytes:
    row = await backend.user_item(user, signature)
    if row is None:
        raise ResourceNotFoundError("No such item")
    return row.item_bytes


async def get_display_name(backend: Backend, user: UserID) -> str:
    """Current profile display name, or the user's base58 ID."""
    row = await backend.user_profile(user)
    name = ""
    if row is not None:
        name = own_row_to_page_item(row).item.profile.display_name.strip()
    return name or user.to_base58()


async def get_item(
    backend: Backend, user: UserID, signature: Signature,
) -> ItemView:
    row = await backend.user_item(user, signature)
    if row is None:
        raise ResourceNotFoundError("No such item")
    item = own_row_to_page_item(row).item
    return ItemView(
        user=user,
        signature=signature,
        item=item,
        item_type=item_type(item),
        display_name=await get_display_name(backend, user),
    )


async def get_profile(backend: Backend, user: UserID) -> ProfileView:
    row = await backend.user_profile(user)
    if row is None:
        raise ResourceNotFoundError("No such user, or profile.")
    item = own_row_to_page_item(row).item
    return ProfileView(
        user=row.user,
        signature=row.signature,
        display_name=item.profile.display_name,
        about=item.profile.about,
        timestamp_ms_utc=item.timestamp_ms_utc,
        utc_offset_minutes=item.utc_offset_minutes,
        follows=follows_of(item),
    )
