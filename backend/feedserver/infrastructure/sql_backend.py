"""SQL Backend - the storage contract (core/repository_protocols.py) over SQLAlchemy.

Invariants:
    - Range queries walk (unix_utc_ms DESC, signature DESC) in keyset batches of
      batch_size; each batch starts strictly below the last row of the previous one
    - A range iterator issues no further queries once closed
    - save_user_item writes the item, and for a newer profile the profile pointer
      and follow list, in ONE commit
    - Storing an already-stored (user, signature) raises ItemAlreadyStoredError,
      never a raw IntegrityError
    - A user is known if registered, or followed by a registered user's current profile

Design Decisions:
    - Keyset batches instead of server-side cursors: works the same on asyncpg and aiosqlite
    - Quota is a per-user byte budget over stored item_bytes; 0 disables it
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from sqlalchemy import and_, delete, func, insert, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from feedserver.core.domain_types import ItemType, Timestamp
from feedserver.core.errors import ItemAlreadyStoredError
from feedserver.core.identity import Signature, UserID
from feedserver.core.item_schema import Item
from feedserver.core.items import (
    ItemDisplayRow, ItemRow, follows_of, item_type, profile_display_name,
)
from feedserver.core.pagination import Cursor
from feedserver.infrastructure.database import DatabaseSessionManager
from feedserver.models.item import ItemRecord
from feedserver.models.profile import Follow, Profile
from feedserver.models.server_user import ServerUser

logger = logging.getLogger(__name__)


def _to_item_row(record: ItemRecord) -> ItemRow:
    return ItemRow(
        user=UserID.from_bytes(record.user_id),
        signature=Signature.from_bytes(record.signature),
        timestamp=Timestamp(record.unix_utc_ms),
        received=Timestamp(record.received_utc_ms),
        item_bytes=record.item_bytes,
    )


def _below(cursor: Cursor):
    """WHERE clause for rows strictly below the cursor."""
    if cursor.signature is None:
        return ItemRecord.unix_utc_ms < cursor.timestamp.unix_utc_ms
    return or_(
        ItemRecord.unix_utc_ms < cursor.timestamp.unix_utc_ms,
        and_(
            ItemRecord.unix_utc_ms == cursor.timestamp.unix_utc_ms,
            ItemRecord.signature < cursor.signature.bytes,
        ),
    )


class SqlBackend:
    """Per-request backend bound to one AsyncSession."""

    def __init__(
        self, db: AsyncSession, quota_bytes: int = 0, batch_size: int = 50,
    ):
        self.db = db
        self.quota_bytes = quota_bytes
        self.batch_size = max(1, batch_size)

    # ─── Range queries ───────────────────────────────────────────

    async def _walk(self, query, before: Cursor, convert: Callable) -> AsyncIterator:
        cursor = before
        while True:
            stmt = (
                query.where(_below(cursor))
                .order_by(ItemRecord.unix_utc_ms.desc(), ItemRecord.signature.desc())
                .limit(self.batch_size)
            )
            rows = (await self.db.execute(stmt)).all()
            for row in rows:
                yield convert(row)
            if len(rows) < self.batch_size:
                return
            last = rows[-1][0]
            cursor = Cursor(
                Timestamp(last.unix_utc_ms), Signature.from_bytes(last.signature),
            )

    @staticmethod
    def _display_row(row) -> ItemDisplayRow:
        record, display_name = row
        return ItemDisplayRow(item=_to_item_row(record), display_name=display_name)

    def homepage_items(self, before: Cursor) -> AsyncIterator[ItemDisplayRow]:
        query = (
            select(ItemRecord, Profile.display_name)
            .join(ServerUser, ServerUser.user_id == ItemRecord.user_id)
            .outerjoin(Profile, Profile.user_id == ItemRecord.user_id)
            .where(ServerUser.on_homepage.is_(True))
        )
        return self._walk(query, before, self._display_row)

    def user_feed_items(
        self, user: UserID, before: Cursor,
    ) -> AsyncIterator[ItemDisplayRow]:
        followed = select(Follow.followed_user_id).where(
            Follow.source_user_id == user.bytes,
        )
        query = (
            select(ItemRecord, Profile.display_name)
            .outerjoin(Profile, Profile.user_id == ItemRecord.user_id)
            .where(or_(
                ItemRecord.user_id == user.bytes,
                ItemRecord.user_id.in_(followed),
            ))
        )
        return self._walk(query, before, self._display_row)

    def user_items(self, user: UserID, before: Cursor) -> AsyncIterator[ItemRow]:
        query = select(ItemRecord).where(ItemRecord.user_id == user.bytes)
        return self._walk(query, before, lambda row: _to_item_row(row[0]))

    # ─── Point lookups ───────────────────────────────────────────

    async def user_item(self, user: UserID, signature: Signature) -> ItemRow | None:
        record = await self.db.get(ItemRecord, (user.bytes, signature.bytes))
        return _to_item_row(record) if record else None

    async def user_profile(self, user: UserID) -> ItemRow | None:
        profile = await self.db.get(Profile, user.bytes)
        if profile is None:
            return None
        record = await self.db.get(ItemRecord, (profile.user_id, profile.signature))
        return _to_item_row(record) if record else None

    async def user_item_exists(self, user: UserID, signature: Signature) -> bool:
        found = await self.db.scalar(
            select(ItemRecord.user_id)
            .where(ItemRecord.user_id == user.bytes)
            .where(ItemRecord.signature == signature.bytes)
            .limit(1),
        )
        return found is not None

    async def user_known(self, user: UserID) -> bool:
        registered = await self.db.scalar(
            select(ServerUser.user_id).where(ServerUser.user_id == user.bytes),
        )
        if registered is not None:
            return True
        follower = await self.db.scalar(
            select(Follow.source_user_id)
            .join(ServerUser, ServerUser.user_id == Follow.source_user_id)
            .where(Follow.followed_user_id == user.bytes)
            .limit(1),
        )
        return follower is not None

    async def quota_check_item(
        self, user: UserID, item_bytes: bytes, item: Item,
    ) -> str | None:
        if self.quota_bytes <= 0:
            return None
        used = await self.db.scalar(
            select(func.coalesce(func.sum(func.length(ItemRecord.item_bytes)), 0))
            .where(ItemRecord.user_id == user.bytes),
        )
        total = int(used or 0) + len(item_bytes)
        if total > self.quota_bytes:
            return (
                f"User quota exceeded: storing this item needs {total} bytes, "
                f"quota is {self.quota_bytes} bytes."
            )
        return None

    # ─── Writes ──────────────────────────────────────────────────

    async def save_user_item(self, row: ItemRow, item: Item) -> None:
        """Insert the item (and profile index) in one commit.

        Raises ItemAlreadyStoredError if the primary key is taken, which only
        happens when a concurrent request stored the same item first.
        """
        kind = item_type(item)
        try:
            # Core insert: a duplicate surfaces as IntegrityError, not an
            # identity-map conflict
            await self.db.execute(insert(ItemRecord).values(
                user_id=row.user.bytes,
                signature=row.signature.bytes,
                unix_utc_ms=row.timestamp.unix_utc_ms,
                received_utc_ms=row.received.unix_utc_ms,
                item_type=kind.value,
                item_bytes=row.item_bytes,
            ))
            if kind == ItemType.PROFILE:
                await self._update_profile(row, item)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            if await self.user_item_exists(row.user, row.signature):
                raise ItemAlreadyStoredError(
                    row.user.to_base58(), row.signature.to_base58(),
                )
            raise

    async def _update_profile(self, row: ItemRow, item: Item) -> None:
        current = await self.db.get(Profile, row.user.bytes)
        if current is not None and (
            (current.unix_utc_ms, current.signature)
            >= (row.timestamp.unix_utc_ms, row.signature.bytes)
        ):
            logger.info(
                "Older profile stored without replacing current profile",
                extra={"user_id": row.user.to_base58()},
            )
            return

        display_name = profile_display_name(item)
        if current is None:
            self.db.add(Profile(
                user_id=row.user.bytes,
                signature=row.signature.bytes,
                unix_utc_ms=row.timestamp.unix_utc_ms,
                display_name=display_name,
            ))
        else:
            current.signature = row.signature.bytes
            current.unix_utc_ms = row.timestamp.unix_utc_ms
            current.display_name = display_name

        await self.db.execute(
            delete(Follow).where(Follow.source_user_id == row.user.bytes),
        )
        followed: dict[bytes, str] = {}
        for user, name in follows_of(item):
            followed.setdefault(user.bytes, name)
        for followed_id, name in followed.items():
            self.db.add(Follow(
                source_user_id=row.user.bytes,
                followed_user_id=followed_id,
                display_name=name,
            ))

    # ─── Admin ───────────────────────────────────────────────────

    async def add_server_user(
        self, user: UserID, notes: str = "", on_homepage: bool = True,
    ) -> None:
        existing = await self.db.get(ServerUser, user.bytes)
        if existing is None:
            self.db.add(ServerUser(
                user_id=user.bytes, notes=notes, on_homepage=on_homepage,
            ))
        else:
            existing.notes = notes
            existing.on_homepage = on_homepage
        await self.db.commit()


class SqlBackendFactory:
    """Opens SqlBackend handles on sessions from a DatabaseSessionManager."""

    def __init__(
        self, manager: DatabaseSessionManager,
        quota_bytes: int = 0, batch_size: int = 50,
    ):
        self.manager = manager
        self.quota_bytes = quota_bytes
        self.batch_size = batch_size

    @asynccontextmanager
    async def open(self) -> AsyncIterator[SqlBackend]:
        async with self.manager.session() as db:
            yield SqlBackend(db, self.quota_bytes, self.batch_size)
