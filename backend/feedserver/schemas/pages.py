"""Page Schemas - JSON documents returned by the read endpoints.

Invariants:
    - Identities and signatures always serialized as base58
    - Timestamps always milliseconds since the Unix epoch
    - next_before / next_before_sig present only when has_more

Design Decisions:
    - Built from service dataclasses via from_* classmethods: routes stay one-liners
"""

from pydantic import BaseModel

from feedserver.core.domain_types import ItemType
from feedserver.core.items import PageItem, follows_of, item_type
from feedserver.services.read_items import ItemView, Page, ProfileView


class PostBody(BaseModel):
    title: str
    body: str


class FollowEntry(BaseModel):
    user_id: str
    display_name: str


class ProfileBody(BaseModel):
    display_name: str
    about: str
    follows: list[FollowEntry]


class PageItemResponse(BaseModel):
    """One entry in a feed page."""
    user_id: str
    signature: str
    display_name: str
    timestamp_ms_utc: int
    utc_offset_minutes: int
    received_ms_utc: int
    item_type: ItemType
    post: PostBody | None = None

    @classmethod
    def from_page_item(cls, page_item: PageItem) -> "PageItemResponse":
        item = page_item.item
        kind = item_type(item)
        return cls(
            user_id=page_item.user.to_base58(),
            signature=page_item.signature.to_base58(),
            display_name=page_item.display_name,
            timestamp_ms_utc=item.timestamp_ms_utc,
            utc_offset_minutes=item.utc_offset_minutes,
            received_ms_utc=page_item.row.item.received.unix_utc_ms,
            item_type=kind,
            post=(
                PostBody(title=item.post.title, body=item.post.body)
                if kind == ItemType.POST else None
            ),
        )


class PageResponse(BaseModel):
    items: list[PageItemResponse]
    has_more: bool
    next_before: int | None = None
    next_before_sig: str | None = None
    more_link: str | None = None
    message: str | None = None

    @classmethod
    def from_page(cls, page: Page) -> "PageResponse":
        cursor = page.next_cursor
        return cls(
            items=[PageItemResponse.from_page_item(i) for i in page.items],
            has_more=page.has_more,
            next_before=cursor.timestamp.unix_utc_ms if cursor else None,
            next_before_sig=(
                cursor.signature.to_base58()
                if cursor and cursor.signature else None
            ),
            more_link=page.more_link,
            message=page.message,
        )


def _follow_entries(follows) -> list[FollowEntry]:
    return [
        FollowEntry(user_id=user.to_base58(), display_name=name)
        for user, name in follows
    ]


class ItemResponse(BaseModel):
    """Single-item view."""
    user_id: str
    signature: str
    display_name: str
    item_type: ItemType
    timestamp_ms_utc: int
    utc_offset_minutes: int
    post: PostBody | None = None
    profile: ProfileBody | None = None

    @classmethod
    def from_view(cls, view: ItemView) -> "ItemResponse":
        item = view.item
        post = profile = None
        if view.item_type == ItemType.POST:
            post = PostBody(title=item.post.title, body=item.post.body)
        elif view.item_type == ItemType.PROFILE:
            profile = ProfileBody(
                display_name=item.profile.display_name,
                about=item.profile.about,
                follows=_follow_entries(follows_of(item)),
            )
        return cls(
            user_id=view.user.to_base58(),
            signature=view.signature.to_base58(),
            display_name=view.display_name,
            item_type=view.item_type,
            timestamp_ms_utc=item.timestamp_ms_utc,
            utc_offset_minutes=item.utc_offset_minutes,
            post=post,
            profile=profile,
        )


class ProfileResponse(BaseModel):
    user_id: str
    signature: str
    display_name: str
    about: str
    timestamp_ms_utc: int
    utc_offset_minutes: int
    follows: list[FollowEntry]

    @classmethod
    def from_view(cls, view: ProfileView) -> "ProfileResponse":
        return cls(
            user_id=view.user.to_base58(),
            signature=view.signature.to_base58(),
            display_name=view.display_name,
            about=view.about,
            timestamp_ms_utc=view.timestamp_ms_utc,
            utc_offset_minutes=view.utc_offset_minutes,
            follows=_follow_entries(view.follows),
        )
