"""Helpers for fixed-width, null-terminated ASCII fields."""

from __future__ import annotations


def decode_cstring(data: bytes) -> str:
    """Decode a null-padded ASCII field, stopping at the first NUL byte."""
    return data.split(b"\x00", 1)[0].decode("ascii", errors="replace")


def encode_cstring(text: str) -> bytes:
    """Encode ``text`` as ASCII followed by a single NUL terminator.

    Raises:
        ValueError: If ``text`` is not ASCII or contains a NUL byte.
    """
    raw = text.encode("ascii")
    if b"\x00" in raw:
        raise ValueError("String must not contain NUL bytes")
    return raw + b"\x00"
