"""Message authentication for relaycmd."""

from .authenticator import (
    Authenticator,
    AuthenticationError,
    PayloadExpired,
    MalformedSignature,
    InvalidSignature,
    derive_key,
)

__all__ = [
    "Authenticator",
    "AuthenticationError",
    "PayloadExpired",
    "MalformedSignature",
    "InvalidSignature",
    "derive_key",
]
