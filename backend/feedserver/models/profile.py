"""Profile ORM - pointer to each user's latest profile item, plus its follow list.

Invariants:
    - At most one Profile per user; it points at the newest profile item saved
    - Follow rows always mirror the follows of the item Profile points at
    - Followed identities need not exist anywhere (no foreign key on followed_user_id)

Design Decisions:
    - display_name denormalized: feeds annotate every row without decoding profiles
"""

from sqlalchemy import BigInteger, LargeBinary, Text
from sqlalchemy.orm import Mapped, mapped_column

from feedserver.db.base import Base


class Profile(Base):
    """Current profile of a user."""
    __tablename__ = "profiles"

    user_id: Mapped[bytes] = mapped_column(LargeBinary(32), primary_key=True)
    signature: Mapped[bytes] = mapped_column(LargeBinary(64), nullable=False)
    unix_utc_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
    display_name: Mapped[str] = mapped_column(Text, nullable=False, default="")


class Follow(Base):
    """One entry of a user's current follow list."""
    __tablename__ = "follows"

    source_user_id: Mapped[bytes] = mapped_column(LargeBinary(32), primary_key=True)
    followed_user_id: Mapped[bytes] = mapped_column(
        LargeBinary(32), primary_key=True, index=True,
    )
    display_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
