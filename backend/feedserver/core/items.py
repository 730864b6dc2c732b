"""Items - decoding, structural validation, display policy, and row types.

Invariants:
    - decode_item never accepts bytes the protobuf runtime rejects
    - validate_item enforces the rules the schema cannot: timestamp present,
      sane UTC offset, non-empty post body, decodable follow identities
    - Items of an unknown type pass validation but are never displayed by default
    - display_by_default is the ONLY display filter; every feed reuses it
    - ItemRow.item_bytes is the exact signed payload, never re-serialized

Design Decisions:
    - Validation raises InvalidItemError with a reason string instead of
      returning an error dict: the ingestion pipeline short-circuits on it
    - Mappers raise CorruptItemError: a stored row that no longer decodes fails
      the whole page instead of being skipped
"""

from dataclasses import dataclass

from google.protobuf.message import DecodeError as ProtoDecodeError

from feedserver.core.domain_types import ItemType, Timestamp
from feedserver.core.errors import CorruptItemError, DecodeError, InvalidItemError
from feedserver.core.identity import Signature, UserID
from feedserver.core.item_schema import Item

MAX_UTC_OFFSET_MINUTES = 24 * 60


@dataclass(frozen=True)
class ItemRow:
    """The persisted, validated unit."""
    user: UserID
    signature: Signature
    timestamp: Timestamp
    received: Timestamp
    item_bytes: bytes


@dataclass(frozen=True)
class ItemDisplayRow:
    """An ItemRow annotated with the author's current display name."""
    item: ItemRow
    display_name: str | None = None


@dataclass(frozen=True)
class PageItem:
    """A decoded row ready for a page."""
    row: ItemDisplayRow
    item: Item

    @property
    def user(self) -> UserID:
        return self.row.item.user

    @property
    def signature(self) -> Signature:
        return self.row.item.signature

    @property
    def timestamp(self) -> Timestamp:
        return self.row.item.timestamp

    @property
    def display_name(self) -> str:
        """Author display name, or their base58 ID when unset or blank."""
        name = (self.row.display_name or "").strip()
        return name or self.user.to_base58()


# ─── Decoding & validation ───────────────────────────────────────

def decode_item(item_bytes: bytes) -> Item:
    item = Item()
    try:
        item.MergeFromString(item_bytes)
    except ProtoDecodeError as e:
        raise InvalidItemError(f"could not decode item ({e})")
    return item


def item_type(item: Item) -> ItemType:
    which = item.WhichOneof("item_type")
    if which is None:
        return ItemType.UNKNOWN
    return ItemType(which)


def validate_item(item: Item) -> None:
    """Raise InvalidItemError if the item breaks a structural rule."""
    if item.timestamp_ms_utc == 0:
        raise InvalidItemError("timestamp_ms_utc is required")
    if abs(item.utc_offset_minutes) > MAX_UTC_OFFSET_MINUTES:
        raise InvalidItemError(
            f"utc_offset_minutes must be within +/-{MAX_UTC_OFFSET_MINUTES}",
        )

    kind = item_type(item)
    if kind == ItemType.POST:
        if not item.post.body.strip():
            raise InvalidItemError("post body must not be empty")
    elif kind == ItemType.PROFILE:
        for index, follow in enumerate(item.profile.follows):
            try:
                UserID.from_bytes(follow.user.bytes)
            except DecodeError:
                raise InvalidItemError(f"follow #{index} has an invalid user ID")


def display_by_default(item: Item) -> bool:
    """Posts are shown; profile updates and unknown types are not."""
    return item_type(item) == ItemType.POST


# ─── Profile accessors ───────────────────────────────────────────

def profile_display_name(item: Item) -> str:
    return item.profile.display_name if item_type(item) == ItemType.PROFILE else ""


def follows_of(item: Item) -> list[tuple[UserID, str]]:
    """(user, display name) pairs from a validated profile item."""
    if item_type(item) != ItemType.PROFILE:
        return []
    return [
        (UserID.from_bytes(f.user.bytes), f.display_name)
        for f in item.profile.follows
    ]


# ─── Page mappers ────────────────────────────────────────────────

def row_to_page_item(row: ItemDisplayRow) -> PageItem:
    """Decode a stored row for display. Corrupt rows raise CorruptItemError."""
    try:
        item = decode_item(row.item.item_bytes)
    except InvalidItemError:
        raise CorruptItemError(
            row.item.user.to_base58(), row.item.signature.to_base58(),
        )
    return PageItem(row=row, item=item)


def own_row_to_page_item(row: ItemRow) -> PageItem:
    """Map a row from a user's own timeline; the author name is not shown there."""
    return row_to_page_item(ItemDisplayRow(item=row, display_name=None))
