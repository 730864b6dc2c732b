"""Pagination Engine - bounded, filtered collection of backend rows into a page.

Invariants:
    - Page size is count clamped to [MIN_PAGE_SIZE, MAX_PAGE_SIZE], DEFAULT_PAGE_SIZE when absent
    - Rows rejected by the filter are never retained and never count toward the page
    - has_more is True iff a filtered-in row existed beyond the last included item
    - Mapper errors propagate: one corrupt row fails the whole page
    - The next cursor is the (timestamp, signature) of the LAST INCLUDED item,
      not the last row scanned
    - Order is (timestamp DESC, signature bytes DESC); cursors are exclusive upper bounds

Design Decisions:
    - accept() returns continue/stop instead of taking a callback: the service
      drives the backend's async iterator and breaks on False
    - One generic Paginator shared by every feed; feeds differ only in mapper
"""

from dataclasses import dataclass, field
from typing import Callable, Generic, TypeVar
from urllib.parse import urlencode

from feedserver.core.domain_types import Timestamp
from feedserver.core.identity import Signature

DEFAULT_PAGE_SIZE: int = 20
MIN_PAGE_SIZE: int = 1
MAX_PAGE_SIZE: int = 100

In = TypeVar("In")
T = TypeVar("T")


def bound(value: int, lower: int, upper: int) -> int:
    """Clamp value into [lower, upper]."""
    return min(max(lower, value), upper)


@dataclass(frozen=True)
class Cursor:
    """Exclusive upper bound on (timestamp, signature)."""
    timestamp: Timestamp
    signature: Signature | None = None

    def admits(self, timestamp: Timestamp, signature: Signature) -> bool:
        """True if a row with this key sorts strictly below the cursor."""
        if timestamp != self.timestamp:
            return timestamp < self.timestamp
        if self.signature is None:
            return False
        return signature.bytes < self.signature.bytes


@dataclass
class Pagination:
    """Caller-supplied paging options."""
    before: int | None = None
    before_signature: Signature | None = None
    count: int | None = None

    @property
    def page_size(self) -> int:
        if self.count is None:
            return DEFAULT_PAGE_SIZE
        return bound(self.count, MIN_PAGE_SIZE, MAX_PAGE_SIZE)


@dataclass
class Paginator(Generic[In, T]):
    """Collects mapped, filtered rows until the page is full.

    mapper: converts the backend's row type to the page type.
    keep: display filter applied to the mapped value.
    """
    options: Pagination
    mapper: Callable[[In], T]
    keep: Callable[[T], bool]
    items: list[T] = field(default_factory=list)
    has_more: bool = False

    def accept(self, row: In) -> bool:
        """Take one row. Returns True to continue, False to stop."""
        value = self.mapper(row)
        if not self.keep(value):
            return True
        if len(self.items) >= self.options.page_size:
            self.has_more = True
            return False
        self.items.append(value)
        return True

    def cursor(self, now: Timestamp) -> Cursor:
        """Upper bound for the backend query; defaults to now."""
        if self.options.before is None:
            return Cursor(now)
        return Cursor(Timestamp(self.options.before), self.options.before_signature)

    def next_cursor(self, key: Callable[[T], Cursor]) -> Cursor | None:
        if not self.has_more or not self.items:
            return None
        return key(self.items[-1])

    def more_items_link(self, base_url: str, key: Callable[[T], Cursor]) -> str | None:
        nxt = self.next_cursor(key)
        if nxt is None:
            return None
        params = {"before": nxt.timestamp.unix_utc_ms}
        if nxt.signature is not None:
            params["before_sig"] = nxt.signature.to_base58()
        if self.options.count is not None:
            params["count"] = self.options.page_size
        return f"{base_url}?{urlencode(params)}"

    def message(self) -> str | None:
        """Why the page is empty, if it is."""
        if self.items:
            return None
        if self.options.before is None:
            return "Nothing to display"
        return "No more items to display."
