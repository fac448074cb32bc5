"""Exception types raised by the protocol engine and transport."""

from __future__ import annotations


class PS4DebugError(Exception):
    """Base class for all ps4debug client errors."""


class TransportError(PS4DebugError, ConnectionError):
    """Connect, write or read failure on the underlying byte stream.

    Also raised for a short status or count read, and for any operation
    attempted on a session that has already failed or been closed.
    """


class ValidationError(PS4DebugError, ValueError):
    """A size, id or length is out of range.

    Raised before any byte is written for caller-supplied values, and for
    counts decoded from a response that exceed the session limits.
    """


class IncompleteResponseError(PS4DebugError):
    """A fixed-size response body arrived shorter than promised."""

    def __init__(self, what: str, expected: int, received: int) -> None:
        super().__init__(
            f"Incomplete {what}: expected {expected} bytes, got {received}"
        )
        self.what = what
        self.expected = expected
        self.received = received
