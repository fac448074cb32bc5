"""Command packet builder and parser for the ps4debug wire protocol.

Packet layout::

    +-----------+-----------+--------------+
    |   Magic   |  Opcode   | Payload Size |
    |  4 bytes  |  4 bytes  |   4 bytes    |
    +-----------+-----------+--------------+

- Magic: constant 0xFFAABBCC, little-endian (``CC BB AA FF`` on the wire)
- Opcode: command identifier, little-endian u32
- Payload Size: little-endian u32 declaring the argument bytes that follow

Every command phase is answered with a 4-byte status acknowledgement.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from ..errors import ValidationError
from .commands import Command

PACKET_MAGIC = 0xFFAABBCC
HEADER_SIZE = 12
STATUS_SIZE = 4
MAX_U32 = 0xFFFFFFFF

_HEADER = struct.Struct("<III")


@dataclass(frozen=True)
class CommandHeader:
    """A decoded 12-byte command header."""

    magic: int
    command: Command
    payload_size: int

    def __repr__(self) -> str:
        return (
            f"CommandHeader(magic=0x{self.magic:08X}, "
            f"command={self.command.name}, payload_size={self.payload_size})"
        )


def build_header(command: int, payload_size: int = 0) -> bytes:
    """Build the 12-byte header for a command.

    Args:
        command: A :class:`Command` opcode.
        payload_size: Declared size of the argument payload.

    Returns:
        ``magic || opcode || payload_size`` as little-endian bytes.

    Raises:
        ValidationError: If the opcode is unknown or the size does not fit
            in an unsigned 32-bit integer.
    """
    try:
        command = Command(command)
    except ValueError:
        raise ValidationError(f"Unknown opcode: {command!r}") from None
    if not isinstance(payload_size, int) or isinstance(payload_size, bool):
        raise ValidationError(f"Payload size must be an int, got {payload_size!r}")
    if not 0 <= payload_size <= MAX_U32:
        raise ValidationError(
            f"Payload size must be 0-{MAX_U32}, got {payload_size}"
        )
    return _HEADER.pack(PACKET_MAGIC, command.value, payload_size)


def parse_header(data: bytes) -> CommandHeader:
    """Parse a 12-byte command header.

    Raises:
        ValidationError: If the length, magic or opcode is wrong.
    """
    if len(data) != HEADER_SIZE:
        raise ValidationError(
            f"Header must be {HEADER_SIZE} bytes, got {len(data)}"
        )
    magic, opcode, payload_size = _HEADER.unpack(data)
    if magic != PACKET_MAGIC:
        raise ValidationError(f"Bad packet magic: 0x{magic:08X}")
    try:
        command = Command(opcode)
    except ValueError:
        raise ValidationError(f"Unknown opcode: 0x{opcode:08X}") from None
    return CommandHeader(magic=magic, command=command, payload_size=payload_size)


def parse_status(data: bytes) -> int:
    """Interpret a 4-byte status acknowledgement as a little-endian u32.

    The value is informational only; the protocol treats the arrival of
    all four bytes as the acknowledgement.
    """
    if len(data) != STATUS_SIZE:
        raise ValidationError(
            f"Status must be {STATUS_SIZE} bytes, got {len(data)}"
        )
    return int.from_bytes(data, "little")
