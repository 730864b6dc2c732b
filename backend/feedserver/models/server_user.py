"""ServerUser ORM - identities the server admin has registered.

Invariants:
    - A registered user may always post
    - on_homepage controls whether their items appear on the homepage
"""

from sqlalchemy import Boolean, LargeBinary, Text
from sqlalchemy.orm import Mapped, mapped_column

from feedserver.db.base import Base


class ServerUser(Base):
    """An identity registered on this server."""
    __tablename__ = "server_users"

    user_id: Mapped[bytes] = mapped_column(LargeBinary(32), primary_key=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    on_homepage: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True,
    )
