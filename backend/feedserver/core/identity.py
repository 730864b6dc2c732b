"""Identity & Signature - Ed25519 public-key identities and detached signatures.

Invariants:
    - UserID wraps exactly 32 public key bytes; Signature exactly 64 signature bytes
    - Both are immutable and compare by byte equality
    - Decoding malformed base58 or wrong-length bytes raises DecodeError, never anything else
    - Signature.is_valid is pure and returns False (not raises) for any bad input

Design Decisions:
    - base58 text form (bitcoin alphabet): the form used in URLs and by clients
    - cryptography's Ed25519PublicKey for verification
"""

import base58
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from feedserver.core.errors import DecodeError

USER_ID_LENGTH = 32
SIGNATURE_LENGTH = 64


def _decode_base58(value: str, kind: str) -> bytes:
    try:
        return base58.b58decode(value.encode("ascii"))
    except (ValueError, UnicodeEncodeError):
        raise DecodeError(f"Invalid base58 in {kind}")


class _FixedBytes:
    """Immutable fixed-length byte value with a base58 text form."""

    __slots__ = ("_bytes",)
    LENGTH = 0
    KIND = "value"

    def __init__(self, raw: bytes):
        raw = bytes(raw)
        if len(raw) != self.LENGTH:
            raise DecodeError(
                f"{self.KIND} must be {self.LENGTH} bytes, got {len(raw)}",
            )
        object.__setattr__(self, "_bytes", raw)

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    @classmethod
    def from_bytes(cls, raw: bytes):
        return cls(raw)

    @classmethod
    def from_base58(cls, text: str):
        if not text:
            raise DecodeError(f"Empty {cls.KIND}")
        return cls(_decode_base58(text, cls.KIND))

    @property
    def bytes(self) -> bytes:
        return self._bytes

    def to_base58(self) -> str:
        return base58.b58encode(self._bytes).decode("ascii")

    def __eq__(self, other) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._bytes == other._bytes

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._bytes))

    def __str__(self) -> str:
        return self.to_base58()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_base58()!r})"


class UserID(_FixedBytes):
    """A user identity: an Ed25519 public key."""
    __slots__ = ()
    LENGTH = USER_ID_LENGTH
    KIND = "user ID"


class Signature(_FixedBytes):
    """An Ed25519 detached signature over an item's exact bytes."""
    __slots__ = ()
    LENGTH = SIGNATURE_LENGTH
    KIND = "signature"

    def is_valid(self, user: UserID, data: bytes) -> bool:
        """Verify this signature over `data` under `user`'s public key."""
        try:
            key = Ed25519PublicKey.from_public_bytes(user.bytes)
            key.verify(self.bytes, data)
        except (InvalidSignature, ValueError):
            return False
        return True
