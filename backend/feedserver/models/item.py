"""Item ORM - persists a validated, signed item exactly as received.

Invariants:
    - Primary key is (user_id, signature): the signature covers the bytes, so the
      pair identifies the content
    - item_bytes is the exact signed payload, never re-encoded
    - unix_utc_ms comes from the item itself; received_utc_ms from the server clock
    - Rows are immutable once written

Design Decisions:
    - item_type stored alongside the bytes: lets range queries and admin tooling
      look at type without decoding
    - Composite index (unix_utc_ms, signature): serves the keyset ordering of every feed
"""

from sqlalchemy import BigInteger, Index, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from feedserver.db.base import Base


class ItemRecord(Base):
    """A stored item."""
    __tablename__ = "items"

    user_id: Mapped[bytes] = mapped_column(LargeBinary(32), primary_key=True)
    signature: Mapped[bytes] = mapped_column(LargeBinary(64), primary_key=True)
    unix_utc_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
    received_utc_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
    item_type: Mapped[str] = mapped_column(String(16), nullable=False)
    item_bytes: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)

    __table_args__ = (
        Index("ix_items_time_signature", "unix_utc_ms", "signature"),
        Index("ix_items_user_time", "user_id", "unix_utc_ms"),
    )
