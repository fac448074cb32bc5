"""Data models for process, memory map and ELF load records."""

from .process import (
    ProcessEntry,
    MemoryMapEntry,
    ProcessInfo,
    ElfLoadResult,
)
