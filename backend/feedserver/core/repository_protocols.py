"""Boundary Protocols - the storage backend contract the core depends on.

Invariants:
    - Core NEVER imports from infrastructure - dependency arrows point inward only
    - Range queries yield rows strictly below the cursor, in descending
      (timestamp, signature) order
    - Range iterators stop fetching once closed; callers may abandon them at any row
    - save_user_item is atomic: readers never observe a half-written row
    - save_user_item raises ItemAlreadyStoredError when (user, signature) is
      already stored (a concurrent PUT won the race); it never overwrites

Design Decisions:
    - Protocol over ABC: structural subtyping, the SQL backend and test fakes
      need no common base class
    - Async iterators replace the push-callback contract; early stop is `break`
      plus aclose()
"""

from contextlib import AbstractAsyncContextManager
from typing import AsyncIterator, Protocol

from feedserver.core.identity import Signature, UserID
from feedserver.core.item_schema import Item
from feedserver.core.items import ItemDisplayRow, ItemRow
from feedserver.core.pagination import Cursor


class Backend(Protocol):
    """Per-request storage handle - implemented by infrastructure."""

    def homepage_items(self, before: Cursor) -> AsyncIterator[ItemDisplayRow]: ...
    def user_feed_items(
        self, user: UserID, before: Cursor,
    ) -> AsyncIterator[ItemDisplayRow]: ...
    def user_items(self, user: UserID, before: Cursor) -> AsyncIterator[ItemRow]: ...

    async def user_item(self, user: UserID, signature: Signature) -> ItemRow | None: ...
    async def user_profile(self, user: UserID) -> ItemRow | None: ...
    async def user_item_exists(self, user: UserID, signature: Signature) -> bool: ...
    async def user_known(self, user: UserID) -> bool: ...
    async def quota_check_item(
        self, user: UserID, item_bytes: bytes, item: Item,
    ) -> str | None: ...
    async def save_user_item(self, row: ItemRow, item: Item) -> None: ...


class BackendFactory(Protocol):
    """Opens per-request Backend handles."""

    def open(self) -> AbstractAsyncContextManager[Backend]: ...
