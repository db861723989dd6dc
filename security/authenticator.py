"""Keyed-digest signing with a time-bounded replay window.

A shared secret is hashed once into a fixed-size authentication key. That
key seeds a keyed BLAKE2b digest over each message's fields. Verification
checks freshness against a caller-chosen TTL, then the digest.

TTL-bounded signatures stand in for nonce tracking: any message replayed
while still inside its TTL is accepted again. The relay keeps that window
short for pushed messages; agents use their poll interval.
"""

import binascii
import hashlib
import hmac
import struct
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional, Union

from config import DIGEST_SIZE

Clock = Callable[[], datetime]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_UINT64_MASK = 0xFFFFFFFFFFFFFFFF


class AuthenticationError(Exception):
    """A message failed verification."""


class PayloadExpired(AuthenticationError):
    def __init__(self, message: str = "payload expired"):
        super().__init__(message)


class MalformedSignature(AuthenticationError):
    pass


class InvalidSignature(AuthenticationError):
    def __init__(self, message: str = "invalid checksum"):
        super().__init__(message)


def derive_key(secret: Union[str, bytes]) -> bytes:
    """Hash a shared secret into a fixed-length authentication key."""
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    return hashlib.blake2b(secret, digest_size=DIGEST_SIZE).digest()


def timestamp_bytes(created: datetime) -> bytes:
    """Milliseconds since the Unix epoch as a little-endian uint64."""
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    millis = (created - _EPOCH) // timedelta(milliseconds=1)
    return struct.pack("<Q", millis & _UINT64_MASK)


class Authenticator:
    """Signs and verifies messages with a key derived from a shared secret.

    Only the derived key is kept. Every sign/verify builds its own digest
    object, so one instance can be shared by concurrent request handlers.
    """

    def __init__(self, secret: Union[str, bytes], clock: Optional[Clock] = None):
        if not secret:
            raise ValueError("secret must not be empty")
        self._key = derive_key(secret)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def now(self) -> datetime:
        return self._clock()

    def sign(self, created: datetime, text: str, args: Iterable[str] = ()) -> bytes:
        """Digest the creation time, the name/message, then each argument."""
        digest = hashlib.blake2b(key=self._key, digest_size=DIGEST_SIZE)
        digest.update(timestamp_bytes(created))
        digest.update(text.encode("utf-8"))
        for arg in args:
            digest.update(arg.encode("utf-8"))
        return digest.digest()

    def sign_hex(self, created: datetime, text: str, args: Iterable[str] = ()) -> str:
        return self.sign(created, text, args).hex()

    def verify(self, message, ttl: float, now: Optional[datetime] = None) -> None:
        """Check freshness and signature of a Command or LogEntry.

        Args:
            message: Object exposing ``created``, ``signature`` and
                ``signing_fields()``.
            ttl: Maximum accepted age in seconds.
            now: Check time; defaults to the authenticator's clock.

        Raises:
            PayloadExpired: ``now - created`` exceeds ``ttl``.
            MalformedSignature: signature is not hex of the digest length.
            InvalidSignature: signature does not match the message fields.
        """
        if now is None:
            now = self.now()

        created = message.created
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        if now - created > timedelta(seconds=ttl):
            raise PayloadExpired()

        try:
            provided = binascii.unhexlify(message.signature)
        except (TypeError, ValueError) as e:
            raise MalformedSignature(f"failed to decode sig hex: {e}") from e
        if len(provided) != DIGEST_SIZE:
            raise MalformedSignature(
                f"failed to decode sig hex: expected {DIGEST_SIZE} bytes, got {len(provided)}"
            )

        expected = self.sign(*message.signing_fields())
        if not hmac.compare_digest(expected, provided):
            raise InvalidSignature()
