"""Route Dependencies - backend handle, path identities and paging options.

Invariants:
    - Path identities are decoded here; a malformed one raises DecodeError (400)
      before any route body runs
    - before must fit a signed 64-bit millisecond timestamp; outside it is a 400
    - before_sig only refines before; sent alone it is a 400, never ignored
    - count is clamped by Pagination, never rejected for being out of range
"""

from fastapi import Depends, Query
from fastapi.exceptions import RequestValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from feedserver.config import get_settings
from feedserver.core.identity import Signature, UserID
from feedserver.core.pagination import Pagination
from feedserver.core.repository_protocols import Backend
from feedserver.infrastructure.database import get_db
from feedserver.infrastructure.sql_backend import SqlBackend

TIMESTAMP_MIN = -2**63
TIMESTAMP_MAX = 2**63 - 1


async def get_backend(db: AsyncSession = Depends(get_db)) -> Backend:
    settings = get_settings()
    return SqlBackend(
        db,
        quota_bytes=settings.user_quota_bytes,
        batch_size=settings.backend_batch_size,
    )


def path_user(user_id: str) -> UserID:
    return UserID.from_base58(user_id)


def path_signature(signature: str) -> Signature:
    return Signature.from_base58(signature)


def pagination_params(
    before: int | None = Query(
        None, ge=TIMESTAMP_MIN, le=TIMESTAMP_MAX,
        description="Show items before this time (ms UTC)",
    ),
    before_sig: str | None = Query(
        None,
        description="Signature tie-break for `before`; only valid together with `before`",
    ),
    count: int | None = Query(None, description="Page size, clamped to 1-100"),
) -> Pagination:
    if before_sig and before is None:
        raise RequestValidationError([{
            "loc": ("query", "before_sig"),
            "msg": "before_sig requires before",
            "type": "missing_before",
        }])
    return Pagination(
        before=before,
        before_signature=Signature.from_base58(before_sig) if before_sig else None,
        count=count,
    )
