"""Relay wire protocol: signed commands and log entries.

Both messages travel as JSON objects with capitalized field names:

    Command:  {"Name": str, "Args": [str], "Created": RFC 3339, "Sum": hex}
    LogEntry: {"Msg": str, "Sum": hex, "Created": RFC 3339}

``Sum`` is the lowercase hex digest produced by
:class:`security.authenticator.Authenticator` over the other fields.
"""

import json
import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple, Union, TYPE_CHECKING

from relay.errors import DecodeError

if TYPE_CHECKING:
    from security.authenticator import Authenticator

_FRACTION_RE = re.compile(r"\.(\d+)")


class Endpoint(Enum):
    """HTTP paths served by the relay."""
    FETCH = "/"
    COMMAND = "/cmd"
    LOG = "/log"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Encode a timestamp as RFC 3339 with microsecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: Any) -> datetime:
    """Decode an RFC 3339 timestamp.

    Accepts a ``Z`` suffix and any number of fractional digits (Go emits
    up to nine). Digits past microseconds are dropped, which never changes
    the millisecond value used for signing. Naive values are taken as UTC.
    """
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise DecodeError(f"invalid timestamp: {value!r}")

    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(
        lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1
    )

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise DecodeError(f"invalid timestamp: {value!r}") from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _load_object(data: Union[str, bytes]) -> Dict[str, Any]:
    """Parse a JSON object, mapping every failure to DecodeError."""
    try:
        obj = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
        raise DecodeError(f"invalid JSON: {e}") from e
    if not isinstance(obj, dict):
        raise DecodeError(f"expected a JSON object, got {type(obj).__name__}")
    return obj


def _require_str(obj: Dict[str, Any], key: str, default: Optional[str] = None) -> str:
    value = obj.get(key, default)
    if value is None:
        raise DecodeError(f"missing field {key!r}")
    if not isinstance(value, str):
        raise DecodeError(f"field {key!r} must be a string")
    return value


@dataclass(frozen=True)
class Command:
    """One unit of remote work. Immutable once signed."""
    name: str
    args: Tuple[str, ...] = ()
    created: datetime = field(default_factory=utc_now)
    signature: str = ""

    def __post_init__(self):
        object.__setattr__(self, "args", tuple(self.args))

    def signing_fields(self) -> Tuple[datetime, str, Tuple[str, ...]]:
        """Fields covered by the signature, in signing order."""
        return self.created, self.name, self.args

    def with_signature(self, signature: str) -> "Command":
        return replace(self, signature=signature)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Name": self.name,
            "Args": list(self.args),
            "Created": format_timestamp(self.created),
            "Sum": self.signature,
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> "Command":
        """Deserialize from JSON, raising DecodeError on malformed input."""
        obj = _load_object(data)
        args = obj.get("Args")
        if args is None:
            args = []
        if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
            raise DecodeError("field 'Args' must be a list of strings")
        return cls(
            name=_require_str(obj, "Name"),
            args=tuple(args),
            created=parse_timestamp(obj.get("Created")),
            signature=_require_str(obj, "Sum", default=""),
        )

    @classmethod
    def signed(
        cls,
        authenticator: "Authenticator",
        name: str,
        args: Sequence[str] = (),
        created: Optional[datetime] = None,
    ) -> "Command":
        """Create a command stamped with the authenticator's clock and sign it."""
        command = cls(
            name=name,
            args=tuple(args),
            created=created or authenticator.now(),
        )
        return command.with_signature(authenticator.sign_hex(*command.signing_fields()))


@dataclass(frozen=True)
class LogEntry:
    """One result report from an agent. Immutable once signed."""
    message: str
    created: datetime = field(default_factory=utc_now)
    signature: str = ""

    def signing_fields(self) -> Tuple[datetime, str, Tuple[str, ...]]:
        return self.created, self.message, ()

    def with_signature(self, signature: str) -> "LogEntry":
        return replace(self, signature=signature)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Msg": self.message,
            "Sum": self.signature,
            "Created": format_timestamp(self.created),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> "LogEntry":
        obj = _load_object(data)
        return cls(
            message=_require_str(obj, "Msg"),
            created=parse_timestamp(obj.get("Created")),
            signature=_require_str(obj, "Sum", default=""),
        )

    @classmethod
    def signed(
        cls,
        authenticator: "Authenticator",
        message: str,
        created: Optional[datetime] = None,
    ) -> "LogEntry":
        entry = cls(message=message, created=created or authenticator.now())
        return entry.with_signature(authenticator.sign_hex(*entry.signing_fields()))
