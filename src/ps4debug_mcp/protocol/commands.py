"""Opcode constants and argument payload builders.

Each command is identified by a 32-bit opcode sent in the packet header.
Console-level commands use the ``0xBDDD`` prefix, process-level commands
use ``0xBDAA``.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum, IntEnum

from ..errors import ValidationError
from ..utils.cstring import encode_cstring


class Command(IntEnum):
    """Command opcodes."""

    CONSOLE_REBOOT = 0xBDDD0001
    CONSOLE_NOTIFY = 0xBDDD0004
    PROC_LIST = 0xBDAA0001
    PROC_READ = 0xBDAA0002
    PROC_WRITE = 0xBDAA0003
    PROC_MAPS = 0xBDAA0004
    PROC_ELF = 0xBDAA0009
    PROC_INFO = 0xBDAA000A


class Response(Enum):
    """Shape of the data that follows the status acknowledgement."""

    NONE = "none"
    STATUS = "status"
    PROCESS_LIST = "process_list"
    PROCESS_MAPS = "process_maps"
    PROCESS_INFO = "process_info"
    MEMORY = "memory"
    ELF_ADDRESS = "elf_address"


# Declared payload sizes written into the header
NOTIFY_PACKET_SIZE = 8     # type(4) + length(4)
PID_PACKET_SIZE = 4        # pid(4)
MEMORY_PACKET_SIZE = 16    # pid(4) + address(4) + reserved(4) + length(4)
ELF_PACKET_SIZE = 8        # pid(4) + size(4)

DEFAULT_NOTIFY_TYPE = 222

MAX_U32 = 0xFFFFFFFF
MAX_U64 = 0xFFFFFFFFFFFFFFFF
MIN_I32 = -0x80000000
MAX_I32 = 0x7FFFFFFF


@dataclass(frozen=True)
class CommandSpec:
    """How one operation is framed on the wire."""

    command: Command
    payload_size: int
    response: Response
    acknowledged: bool = True
    # Raw data written after the first status and acknowledged on its own
    data_acknowledged: bool = False


COMMAND_SPECS: dict[Command, CommandSpec] = {
    Command.CONSOLE_NOTIFY: CommandSpec(
        Command.CONSOLE_NOTIFY, NOTIFY_PACKET_SIZE, Response.STATUS
    ),
    # The console restarts without replying, so no status is read.
    Command.CONSOLE_REBOOT: CommandSpec(
        Command.CONSOLE_REBOOT, 0, Response.NONE, acknowledged=False
    ),
    Command.PROC_LIST: CommandSpec(Command.PROC_LIST, 0, Response.PROCESS_LIST),
    Command.PROC_MAPS: CommandSpec(
        Command.PROC_MAPS, PID_PACKET_SIZE, Response.PROCESS_MAPS
    ),
    Command.PROC_INFO: CommandSpec(
        Command.PROC_INFO, PID_PACKET_SIZE, Response.PROCESS_INFO
    ),
    Command.PROC_WRITE: CommandSpec(
        Command.PROC_WRITE, MEMORY_PACKET_SIZE, Response.STATUS
    ),
    Command.PROC_READ: CommandSpec(
        Command.PROC_READ, MEMORY_PACKET_SIZE, Response.MEMORY
    ),
    Command.PROC_ELF: CommandSpec(
        Command.PROC_ELF,
        ELF_PACKET_SIZE,
        Response.ELF_ADDRESS,
        data_acknowledged=True,
    ),
}


def get_spec(command: Command) -> CommandSpec:
    """Look up the framing for a command."""
    return COMMAND_SPECS[Command(command)]


def _check_int(name: str, value: int, low: int, high: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{name} must be an int, got {value!r}")
    if not low <= value <= high:
        raise ValidationError(f"{name} must be {low}-{high}, got {value}")


def build_notify_payload(
    message: str, notify_type: int = DEFAULT_NOTIFY_TYPE
) -> bytes:
    """Build the arguments for a console notification.

    Layout: ``type(u32) + length(u32) + message + NUL``. The length counts
    the trailing NUL.

    Args:
        message: ASCII text to show on screen.
        notify_type: Notification style id.
    """
    _check_int("Notify type", notify_type, 0, MAX_U32)
    try:
        text = encode_cstring(message)
    except ValueError as e:
        raise ValidationError(f"Invalid notification message: {e}") from e
    _check_int("Message length", len(text), 1, MAX_U32)
    return struct.pack("<II", notify_type, len(text)) + text


def build_pid_payload(pid: int) -> bytes:
    """Build a 4-byte process id argument."""
    _check_int("Process id", pid, MIN_I32, MAX_I32)
    return struct.pack("<i", pid)


def build_memory_payload(pid: int, address: int, length: int) -> bytes:
    """Build the 16-byte argument block for memory read/write.

    The address occupies the address and reserved words as a single
    little-endian u64, so addresses below 4 GiB leave the reserved word zero.
    """
    _check_int("Process id", pid, MIN_I32, MAX_I32)
    _check_int("Address", address, 0, MAX_U64)
    _check_int("Length", length, 0, MAX_U32)
    return struct.pack("<iQI", pid, address, length)


def build_elf_payload(pid: int, size: int) -> bytes:
    """Build the 8-byte size announcement that precedes an ELF upload."""
    _check_int("Process id", pid, MIN_I32, MAX_I32)
    _check_int("ELF size", size, 0, MAX_U32)
    return struct.pack("<iI", pid, size)
