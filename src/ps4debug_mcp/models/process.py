"""Process and memory records decoded from debugger responses.

Layouts (all little-endian, no padding)::

    ProcessEntry    (36 B):  name[32] | pid i32
    MemoryMapEntry  (58 B):  name[32] | start u64 | end u64 | offset u64 | prot u16
    ProcessInfo    (184 B):  pid i32 | name[32] | reserved[148]
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import ClassVar

from ..errors import ValidationError
from ..utils.cstring import decode_cstring

NAME_SIZE = 32
PROCESS_ENTRY_SIZE = 36
MAP_ENTRY_SIZE = 58
PROCESS_INFO_SIZE = 184
ELF_ADDRESS_SIZE = 8

# Memory protection bits
PROT_READ = 0x1
PROT_WRITE = 0x2
PROT_EXEC = 0x4


def _require(cls_name: str, data: bytes, size: int) -> None:
    if len(data) != size:
        raise ValidationError(f"{cls_name} must be {size} bytes, got {len(data)}")


@dataclass(frozen=True)
class ProcessEntry:
    """One row of the process list."""

    SIZE: ClassVar[int] = PROCESS_ENTRY_SIZE

    name: str
    pid: int

    @classmethod
    def from_bytes(cls, data: bytes) -> ProcessEntry:
        _require(cls.__name__, data, cls.SIZE)
        (pid,) = struct.unpack_from("<i", data, NAME_SIZE)
        return cls(name=decode_cstring(data[:NAME_SIZE]), pid=pid)

    def to_dict(self) -> dict:
        return {"name": self.name, "pid": self.pid}


@dataclass(frozen=True)
class MemoryMapEntry:
    """One virtual memory region of a process."""

    SIZE: ClassVar[int] = MAP_ENTRY_SIZE

    name: str
    start: int
    end: int
    offset: int
    prot: int

    @classmethod
    def from_bytes(cls, data: bytes) -> MemoryMapEntry:
        _require(cls.__name__, data, cls.SIZE)
        start, end, offset, prot = struct.unpack_from("<QQQH", data, NAME_SIZE)
        return cls(
            name=decode_cstring(data[:NAME_SIZE]),
            start=start,
            end=end,
            offset=offset,
            prot=prot,
        )

    @property
    def size(self) -> int:
        return self.end - self.start

    @property
    def prot_string(self) -> str:
        """Protection flags in ``rwx`` notation."""
        return "".join(
            flag if self.prot & bit else "-"
            for flag, bit in (("r", PROT_READ), ("w", PROT_WRITE), ("x", PROT_EXEC))
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "start": f"0x{self.start:X}",
            "end": f"0x{self.end:X}",
            "offset": f"0x{self.offset:X}",
            "prot": self.prot_string,
        }


@dataclass(frozen=True)
class ProcessInfo:
    """Process details; only the id and name are decoded."""

    SIZE: ClassVar[int] = PROCESS_INFO_SIZE

    pid: int
    name: str
    reserved: bytes = field(default=b"", repr=False)

    @classmethod
    def from_bytes(cls, data: bytes) -> ProcessInfo:
        _require(cls.__name__, data, cls.SIZE)
        (pid,) = struct.unpack_from("<i", data, 0)
        return cls(
            pid=pid,
            name=decode_cstring(data[4 : 4 + NAME_SIZE]),
            reserved=bytes(data[4 + NAME_SIZE :]),
        )

    def to_dict(self) -> dict:
        return {"pid": self.pid, "name": self.name}


@dataclass(frozen=True)
class ElfLoadResult:
    """Address at which the debugger mapped an uploaded ELF."""

    SIZE: ClassVar[int] = ELF_ADDRESS_SIZE

    address: int

    @classmethod
    def from_bytes(cls, data: bytes) -> ElfLoadResult:
        _require(cls.__name__, data, cls.SIZE)
        return cls(address=int.from_bytes(data, "little"))

    def to_dict(self) -> dict:
        return {"address": f"0x{self.address:X}"}
