"""Domain Types - value types and enums shared across the core.

Invariants:
    - Timestamp is a signed count of milliseconds since the Unix epoch (UTC)
    - Timestamp is totally ordered; ties between items are broken by signature bytes
    - All outcome and item-type states encoded as Enums - no raw string matching

Design Decisions:
    - Timestamp as frozen dataclass rather than NewType: carries now() and ordering
    - str Enums: serialize to JSON without custom encoders
"""

import time
from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True, order=True)
class Timestamp:
    """Milliseconds since the Unix epoch, UTC."""
    unix_utc_ms: int

    @classmethod
    def now(cls) -> "Timestamp":
        return cls(time.time_ns() // 1_000_000)

    def __str__(self) -> str:
        return str(self.unix_utc_ms)


class ItemType(str, Enum):
    """Payload types an Item may carry. UNKNOWN = newer than this server."""
    POST = "post"
    PROFILE = "profile"
    UNKNOWN = "unknown"


class PutOutcome(str, Enum):
    """Every result a PUT-item request can end in."""
    CREATED = "created"
    ALREADY_EXISTS = "already-exists"
    LENGTH_REQUIRED = "length-required"
    BAD_LENGTH = "bad-length"
    TOO_LARGE = "too-large"
    FORBIDDEN_UNKNOWN_USER = "forbidden-unknown-user"
    INVALID_SIGNATURE = "invalid-signature"
    INVALID_ITEM = "invalid-item"
    QUOTA_DENIED = "quota-denied"
