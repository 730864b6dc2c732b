"""ORM Models - SQLAlchemy declarative models behind the SQL backend.

Invariants:
    - All models inherit from Base (db/base.py)
    - Items are keyed by (user_id, signature); every other table indexes items

Design Decisions:
    - All models imported here so Base.metadata is complete before create_all
      or alembic autogenerate runs
"""

from feedserver.models.item import ItemRecord  # noqa: F401
from feedserver.models.server_user import ServerUser  # noqa: F401
from feedserver.models.profile import Profile, Follow  # noqa: F401
