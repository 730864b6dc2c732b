"""Ingestion Checks - pure steps of the PUT-item pipeline.

Invariants:
    - parse_content_length runs before any backend call or body read
    - BodyAccumulator never holds more than the declared length
    - check_signature runs before decode_item: unauthenticated bytes never reach the parser
    - build_item_row takes the timestamp from the item, the received time from the caller

Design Decisions:
    - Split from services/put_item.py: everything here is sync and IO-free; the
      service awaits the backend and the body stream around these steps
"""

from feedserver.core.domain_types import Timestamp
from feedserver.core.errors import (
    BadLengthError, InvalidSignatureError, ItemTooLargeError, LengthRequiredError,
)
from feedserver.core.identity import Signature, UserID
from feedserver.core.item_schema import Item
from feedserver.core.items import ItemRow, decode_item, validate_item

MAX_ITEM_SIZE: int = 32 * 1024


def parse_content_length(header: str | None, max_size: int = MAX_ITEM_SIZE) -> int:
    """Steps 1-3: header present, parses as a non-negative int, within the cap."""
    if header is None:
        raise LengthRequiredError()
    text = header.strip()
    if not text.isdigit() or not text.isascii():
        raise BadLengthError()
    length = int(text)
    if length > max_size:
        raise ItemTooLargeError(max_size)
    return length


class BodyAccumulator:
    """Collects body chunks up to a declared length."""

    def __init__(self, declared_length: int):
        self.declared_length = declared_length
        self._buffer = bytearray()

    def feed(self, chunk: bytes) -> None:
        if len(self._buffer) + len(chunk) > self.declared_length:
            raise BadLengthError("Body is longer than the declared Content-Length.")
        self._buffer.extend(chunk)

    def finish(self) -> bytes:
        if len(self._buffer) != self.declared_length:
            raise BadLengthError(
                f"Body is {len(self._buffer)} bytes, "
                f"declared Content-Length is {self.declared_length}.",
            )
        return bytes(self._buffer)


def check_signature(user: UserID, signature: Signature, data: bytes) -> None:
    if not signature.is_valid(user, data):
        raise InvalidSignatureError()


def decode_and_validate(data: bytes) -> Item:
    item = decode_item(data)
    validate_item(item)
    return item


def build_item_row(
    user: UserID, signature: Signature, item: Item, data: bytes, received: Timestamp,
) -> ItemRow:
    return ItemRow(
        user=user,
        signature=signature,
        timestamp=Timestamp(item.timestamp_ms_utc),
        received=received,
        item_bytes=data,
    )
