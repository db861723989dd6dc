"""Error types shared by the relay, sender and agent."""

from typing import Optional


class RelayError(Exception):
    """Base class for non-authentication failures."""


class DecodeError(RelayError, ValueError):
    """A payload could not be decoded from its wire format."""


class TransportError(RelayError):
    """An HTTP exchange with the relay failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ExecutionError(RelayError):
    """A fetched command failed to start, timed out, or exited non-zero."""

    def __init__(self, message: str, output: str = "", returncode: Optional[int] = None):
        super().__init__(message)
        self.output = output
        self.returncode = returncode
