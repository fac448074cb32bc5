"""Response parsing for debugger replies.

All functions here are pure: the session reads the raw bytes, these turn
them into records.
"""

from __future__ import annotations

import struct
from typing import TypeVar

from ..errors import ValidationError
from ..models.process import (
    ElfLoadResult,
    MemoryMapEntry,
    ProcessEntry,
    ProcessInfo,
)
from .commands import Response

COUNT_SIZE = 4

T = TypeVar("T", ProcessEntry, MemoryMapEntry)

# Entry type for each count-prefixed list response
LIST_ENTRY_TYPES: dict[Response, type] = {
    Response.PROCESS_LIST: ProcessEntry,
    Response.PROCESS_MAPS: MemoryMapEntry,
}


def parse_count(data: bytes) -> int:
    """Parse the signed 32-bit record count that prefixes list responses."""
    if len(data) != COUNT_SIZE:
        raise ValidationError(
            f"Count must be {COUNT_SIZE} bytes, got {len(data)}"
        )
    (count,) = struct.unpack("<i", data)
    return count


def parse_entries(entry_type: type[T], count: int, data: bytes) -> list[T]:
    """Slice ``count`` fixed-size records out of ``data``.

    Args:
        entry_type: Record class with ``SIZE`` and ``from_bytes``.
        count: Number of records announced by the peer.
        data: Exactly ``count * entry_type.SIZE`` bytes.
    """
    stride = entry_type.SIZE
    if len(data) != count * stride:
        raise ValidationError(
            f"Expected {count * stride} bytes for {count} "
            f"{entry_type.__name__} records, got {len(data)}"
        )
    return [
        entry_type.from_bytes(data[offset : offset + stride])
        for offset in range(0, count * stride, stride)
    ]


def parse_process_list(count: int, data: bytes) -> list[ProcessEntry]:
    """Parse a process list body."""
    return parse_entries(ProcessEntry, count, data)


def parse_process_maps(count: int, data: bytes) -> list[MemoryMapEntry]:
    """Parse a process maps body."""
    return parse_entries(MemoryMapEntry, count, data)


def parse_process_info(data: bytes) -> ProcessInfo:
    """Parse the fixed 184-byte process info body."""
    return ProcessInfo.from_bytes(data)


def parse_elf_address(data: bytes) -> ElfLoadResult:
    """Parse the 8-byte load address returned after an ELF upload."""
    return ElfLoadResult.from_bytes(data)
