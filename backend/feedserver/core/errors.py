"""Error Hierarchy - typed, categorized exceptions for every feedserver failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Decode errors and policy rejections are 4xx (or 507 for quota); backend errors are 5xx
    - PUT-item rejections carry the PutOutcome they map to
    - to_response() produces the REST envelope used by the global handler
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with FeedServerError base: one FastAPI handler catches all
    - ErrorContext as dataclass: structured fields for logs without coupling to logging
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone

from feedserver.core.domain_types import PutOutcome


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    DECODE = "decode"
    VALIDATION = "validation"
    POLICY = "policy"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Context attached to an error for logs and the response envelope."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: str | None = None
    signature: str | None = None
    outcome: str | None = None
    debug_info: dict[str, Any] | None = None


class FeedServerError(Exception):
    """Base exception for all feedserver errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "user_id": self.context.user_id,
                    "signature": self.context.signature,
                    "outcome": self.context.outcome,
                },
            }
        }


# ─── Decode Errors (400) ────────────────────────────────────────

class DecodeError(FeedServerError):
    """Malformed identity or signature encoding."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_ENCODING", ErrorCategory.DECODE,
            ErrorSeverity.WARNING, context, 400,
        )


# ─── Ingestion Rejections ───────────────────────────────────────

class IngestionError(FeedServerError):
    """A PUT-item request rejected by one of the pipeline checks."""

    def __init__(
        self,
        message: str,
        outcome: PutOutcome,
        category: ErrorCategory,
        http_status: int,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.outcome = outcome.value
        super().__init__(
            message, outcome.name, category,
            ErrorSeverity.WARNING, ctx, http_status,
        )
        self.outcome = outcome


class LengthRequiredError(IngestionError):
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Must include length header.",
            PutOutcome.LENGTH_REQUIRED, ErrorCategory.VALIDATION, 411, context,
        )


class BadLengthError(IngestionError):
    """Content-Length unparseable, or body size disagrees with it."""
    def __init__(self, message: str = "Error parsing Length header.",
                 context: ErrorContext | None = None):
        super().__init__(
            message, PutOutcome.BAD_LENGTH, ErrorCategory.VALIDATION, 400, context,
        )


class BodyReadError(BadLengthError):
    """The request body stream failed before the declared length was read."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__("Error reading request body.", context)


class ItemTooLargeError(IngestionError):
    def __init__(self, max_size: int, context: ErrorContext | None = None):
        super().__init__(
            f"Item must be <= {max_size} bytes",
            PutOutcome.TOO_LARGE, ErrorCategory.POLICY, 413, context,
        )
        self.max_size = max_size


class UnknownUserError(IngestionError):
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Unknown user ID",
            PutOutcome.FORBIDDEN_UNKNOWN_USER, ErrorCategory.POLICY, 403, context,
        )


class InvalidSignatureError(IngestionError):
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Invalid signature",
            PutOutcome.INVALID_SIGNATURE, ErrorCategory.POLICY, 400, context,
        )


class InvalidItemError(IngestionError):
    """Item bytes failed to decode, or broke a structural rule."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Invalid item: {reason}",
            PutOutcome.INVALID_ITEM, ErrorCategory.VALIDATION, 400, context,
        )
        self.reason = reason


class QuotaDeniedError(IngestionError):
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            reason, PutOutcome.QUOTA_DENIED, ErrorCategory.POLICY, 507, context,
        )
        self.reason = reason


class ItemAlreadyStoredError(FeedServerError):
    """save_user_item lost a race: (user, signature) was stored meanwhile.

    put_item turns this into the already-exists outcome; 409 only if it escapes.
    """
    def __init__(self, user_id: str, signature: str):
        super().__init__(
            "Item already exists", "ALREADY_EXISTS", ErrorCategory.POLICY,
            ErrorSeverity.INFO,
            ErrorContext(
                user_id=user_id, signature=signature,
                outcome=PutOutcome.ALREADY_EXISTS.value,
            ),
            409,
        )


# ─── Read Errors ────────────────────────────────────────────────

class ResourceNotFoundError(FeedServerError):
    """Requested resource does not exist."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.INFO, context, 404,
        )


# ─── Backend Errors (500-level) ─────────────────────────────────

class DatabaseError(FeedServerError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class CorruptItemError(FeedServerError):
    """A stored row could not be decoded while building a page."""
    def __init__(self, user_id: str, signature: str):
        super().__init__(
            "Stored item could not be decoded",
            "CORRUPT_ITEM", ErrorCategory.DATABASE, ErrorSeverity.CRITICAL,
            ErrorContext(user_id=user_id, signature=signature), 500,
        )
