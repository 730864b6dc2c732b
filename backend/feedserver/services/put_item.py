"""PUT Item Pipeline - validates a signed item and hands it to the backend.

Invariants:
    - Checks run in a fixed order and the first failure ends the request:
      length header -> size cap -> already exists -> known user -> bounded read
      -> signature -> decode + validate -> quota -> save
    - Nothing touches the backend or the body before the size cap passes
    - The signature is verified before the bytes are decoded
    - Exactly one save on success; none on any rejection or abandoned read
    - A save that loses a race to a concurrent PUT of the same item is
      already-exists, not an error

Design Decisions:
    - Rejections raise IngestionError subclasses; the route never builds error
      responses itself, the global handler does
    - "Already exists" is a success outcome (HTTP 202), not an error
"""

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Callable

from feedserver.core.domain_types import PutOutcome, Timestamp
from feedserver.core.errors import (
    BodyReadError, ErrorContext, IngestionError, ItemAlreadyStoredError,
    QuotaDeniedError, UnknownUserError,
)
from feedserver.core.identity import Signature, UserID
from feedserver.core.ingest import (
    MAX_ITEM_SIZE, BodyAccumulator, build_item_row, check_signature,
    decode_and_validate, parse_content_length,
)
from feedserver.core.items import ItemRow
from feedserver.core.repository_protocols import Backend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PutItemResult:
    outcome: PutOutcome
    message: str
    row: ItemRow | None = None


async def read_body(
    body: AsyncIterator[bytes], declared_length: int,
    stream_errors: tuple[type[BaseException], ...] = (),
) -> bytes:
    """Read at most declared_length bytes from the body stream."""
    accumulator = BodyAccumulator(declared_length)
    try:
        async for chunk in body:
            if chunk:
                accumulator.feed(chunk)
    except stream_errors:
        raise BodyReadError()
    return accumulator.finish()


async def put_item(
    backend: Backend,
    user: UserID,
    signature: Signature,
    content_length: str | None,
    body: AsyncIterator[bytes],
    *,
    max_item_size: int = MAX_ITEM_SIZE,
    clock: Callable[[], Timestamp] = Timestamp.now,
    stream_errors: tuple[type[BaseException], ...] = (),
) -> PutItemResult:
    """Run the full ingestion pipeline for one PUT request."""
    log_extra = {"user_id": user.to_base58(), "signature": signature.to_base58()}
    try:
        length = parse_content_length(content_length, max_item_size)

        if await backend.user_item_exists(user, signature):
            return _already_exists(log_extra)

        if not await backend.user_known(user):
            raise UnknownUserError()

        data = await read_body(body, length, stream_errors)
        check_signature(user, signature, data)
        item = decode_and_validate(data)

        deny_reason = await backend.quota_check_item(user, data, item)
        if deny_reason is not None:
            raise QuotaDeniedError(deny_reason)

        row = build_item_row(user, signature, item, data, clock())
        try:
            await backend.save_user_item(row, item)
        except ItemAlreadyStoredError:
            return _already_exists(log_extra, raced=True)
    except IngestionError as e:
        e.context = _with_identity(e.context, log_extra)
        logger.warning(f"Item rejected: {e.message}", extra={
            **log_extra, "outcome": e.outcome.value,
        })
        raise

    logger.info("Item saved", extra={
        **log_extra, "outcome": PutOutcome.CREATED.value, "item_bytes": len(data),
    })
    return PutItemResult(
        PutOutcome.CREATED, f"OK. Received {len(data)} bytes.", row,
    )


def _already_exists(log_extra: dict, raced: bool = False) -> PutItemResult:
    logger.info(
        "Item already exists" + (" (stored by a concurrent request)" if raced else ""),
        extra={**log_extra, "outcome": PutOutcome.ALREADY_EXISTS.value},
    )
    return PutItemResult(PutOutcome.ALREADY_EXISTS, "Item already exists")


def _with_identity(context: ErrorContext, log_extra: dict) -> ErrorContext:
    context.user_id = log_extra["user_id"]
    context.signature = log_extra["signature"]
    return context
