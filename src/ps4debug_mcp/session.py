"""Debug session: sends commands over one transport and decodes the replies.

Every operation follows the same sequence::

    header -> [arguments] -> status -> [response body]

Only one command may be in flight per connection, so each operation holds
the session lock from the first write to the last read. A failed read or
write leaves the stream at an unknown position; the session then refuses
further commands until a new one is created on a fresh connection.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from .errors import IncompleteResponseError, TransportError, ValidationError
from .models.process import (
    ELF_ADDRESS_SIZE,
    PROCESS_INFO_SIZE,
    ElfLoadResult,
    MemoryMapEntry,
    ProcessEntry,
    ProcessInfo,
)
from .protocol.commands import (
    DEFAULT_NOTIFY_TYPE,
    Command,
    CommandSpec,
    Response,
    build_elf_payload,
    build_memory_payload,
    build_notify_payload,
    build_pid_payload,
    get_spec,
)
from .protocol.framing import STATUS_SIZE, build_header, parse_status
from .protocol.parser import (
    COUNT_SIZE,
    LIST_ENTRY_TYPES,
    parse_count,
    parse_elf_address,
    parse_entries,
    parse_process_info,
)
from .transport.tcp_connection import (
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    TCPConnection,
    Transport,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionLimits:
    """Upper bounds on sizes read from or sent to the debugger."""

    max_entries: int = 4096
    max_read_size: int = 16 * 1024 * 1024
    max_write_size: int = 16 * 1024 * 1024
    max_elf_size: int = 64 * 1024 * 1024


class DebugSession:
    """A command session bound to a single transport.

    The session does not own the transport's lifetime: :meth:`close` is
    provided for convenience, but the session never closes the connection
    on its own, even after a failure.

    Usage::

        with DebugSession.open("192.168.1.20") as session:
            for proc in session.list_processes():
                print(proc.pid, proc.name)
    """

    def __init__(
        self, transport: Transport, limits: SessionLimits | None = None
    ) -> None:
        self._transport = transport
        self._limits = limits or SessionLimits()
        self._lock = threading.Lock()
        self._failed = False

    @classmethod
    def open(
        cls,
        host: str,
        port: int = DEFAULT_PORT,
        timeout: float | None = DEFAULT_TIMEOUT,
        limits: SessionLimits | None = None,
    ) -> DebugSession:
        """Connect a new :class:`TCPConnection` and wrap it in a session."""
        conn = TCPConnection(timeout=timeout)
        conn.connect(host, port)
        return cls(conn, limits)

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def limits(self) -> SessionLimits:
        return self._limits

    @property
    def failed(self) -> bool:
        """True once a command has failed mid-exchange."""
        return self._failed

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> DebugSession:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ─── LOW-LEVEL EXCHANGE ──────────────────────────────────────────

    def _check_usable(self) -> None:
        if self._failed:
            raise TransportError(
                "Session is desynchronized after an earlier failure; reconnect"
            )
        if not self._transport.connected:
            raise TransportError("Not connected to debugger")

    def _write(self, data: bytes) -> None:
        try:
            self._transport.write(data)
        except TransportError:
            self._failed = True
            raise
        except OSError as e:
            self._failed = True
            raise TransportError(f"Write failed: {e}") from e

    def _read(self, size: int, what: str, body: bool = False) -> bytes:
        """Read exactly ``size`` bytes.

        A short read of a response body raises
        :class:`IncompleteResponseError`; a short read of a status or count
        raises :class:`TransportError`.
        """
        if size == 0:
            return b""
        try:
            data = self._transport.read(size)
        except TransportError:
            self._failed = True
            raise
        except OSError as e:
            self._failed = True
            raise TransportError(f"Read of {what} failed: {e}") from e
        if len(data) < size:
            self._failed = True
            if body:
                raise IncompleteResponseError(what, size, len(data))
            raise TransportError(
                f"Short read of {what}: expected {size} bytes, got {len(data)}"
            )
        return data

    def _send_command(self, spec: CommandSpec, arguments: bytes = b"") -> None:
        header = build_header(spec.command, spec.payload_size)
        logger.debug(
            "Sending %s (size=%d, args=%d bytes)",
            spec.command.name, spec.payload_size, len(arguments),
        )
        self._write(header)
        if arguments:
            self._write(arguments)

    def _read_status(self) -> bytes:
        """Read the 4-byte acknowledgement that ends every command phase."""
        status = self._read(STATUS_SIZE, "status")
        logger.debug("Status 0x%08X", parse_status(status))
        return status

    def _read_list(self, response: Response) -> list:
        entry_type = LIST_ENTRY_TYPES[response]
        count = parse_count(self._read(COUNT_SIZE, "record count"))
        if not 0 <= count <= self._limits.max_entries:
            self._failed = True
            raise ValidationError(
                f"Record count {count} outside 0-{self._limits.max_entries}"
            )
        data = self._read(
            count * entry_type.SIZE, f"{entry_type.__name__} records", body=True
        )
        return parse_entries(entry_type, count, data)

    def _read_response(self, spec: CommandSpec, status: bytes, length: int):
        response = spec.response
        if response is Response.NONE:
            return None
        if response is Response.STATUS:
            return status
        if response in LIST_ENTRY_TYPES:
            return self._read_list(response)
        if response is Response.PROCESS_INFO:
            return parse_process_info(
                self._read(PROCESS_INFO_SIZE, "process info", body=True)
            )
        if response is Response.MEMORY:
            return self._read(length, "memory", body=True)
        if response is Response.ELF_ADDRESS:
            return parse_elf_address(
                self._read(ELF_ADDRESS_SIZE, "ELF load address", body=True)
            )
        raise ValueError(f"Unhandled response type: {response}")

    def _execute(
        self,
        command: Command,
        arguments: bytes = b"",
        data: bytes = b"",
        length: int = 0,
    ):
        """Run one command as described by its :class:`CommandSpec`.

        Args:
            command: Opcode to send.
            arguments: Fixed argument block following the header.
            data: Raw bytes for the data phase (memory value, ELF image).
            length: Body size for memory reads.

        Returns:
            The decoded response, the raw status, or ``None`` for commands
            that are not acknowledged.
        """
        spec = get_spec(command)
        with self._lock:
            self._check_usable()
            self._send_command(spec, arguments)
            if not spec.acknowledged:
                return None
            if data and not spec.data_acknowledged:
                self._write(data)
            status = self._read_status()
            if spec.data_acknowledged:
                if data:
                    self._write(data)
                status = self._read_status()
            return self._read_response(spec, status, length)

    def _check_length(self, name: str, length: int, limit: int) -> None:
        if not isinstance(length, int) or isinstance(length, bool):
            raise ValidationError(f"{name} must be an int, got {length!r}")
        if not 0 <= length <= limit:
            raise ValidationError(f"{name} must be 0-{limit}, got {length}")

    # ─── CONSOLE COMMANDS ────────────────────────────────────────────

    def notify(self, message: str, notify_type: int = DEFAULT_NOTIFY_TYPE) -> bytes:
        """Show a notification on the console screen.

        Args:
            message: ASCII text.
            notify_type: Notification style id.

        Returns:
            The raw 4-byte status.
        """
        arguments = build_notify_payload(message, notify_type)
        return self._execute(Command.CONSOLE_NOTIFY, arguments)

    def reboot(self) -> None:
        """Ask the console to reboot.

        No acknowledgement is read because the console goes down without
        replying. Failures are logged and not raised, including a session
        that is already failed or disconnected. The session is marked
        unusable afterwards.
        """
        try:
            self._execute(Command.CONSOLE_REBOOT)
        except TransportError as e:
            logger.warning("Reboot command may not have been delivered: %s", e)
        else:
            logger.info("Reboot requested")
        self._failed = True

    # ─── PROCESS COMMANDS ────────────────────────────────────────────

    def list_processes(self) -> list[ProcessEntry]:
        """Return every running process."""
        return self._execute(Command.PROC_LIST)

    def get_process_maps(self, pid: int) -> list[MemoryMapEntry]:
        """Return the virtual memory map of a process."""
        return self._execute(Command.PROC_MAPS, build_pid_payload(pid))

    def get_process_info(self, pid: int) -> ProcessInfo:
        """Return the id and name of a process."""
        return self._execute(Command.PROC_INFO, build_pid_payload(pid))

    def read_memory(self, pid: int, address: int, length: int) -> bytes:
        """Read ``length`` bytes of process memory starting at ``address``."""
        self._check_length("Read length", length, self._limits.max_read_size)
        arguments = build_memory_payload(pid, address, length)
        return self._execute(Command.PROC_READ, arguments, length=length)

    def write_memory(self, pid: int, address: int, data: bytes) -> bytes:
        """Write ``data`` into process memory at ``address``.

        Returns:
            The raw 4-byte status.
        """
        data = bytes(data)
        self._check_length("Write length", len(data), self._limits.max_write_size)
        arguments = build_memory_payload(pid, address, len(data))
        return self._execute(Command.PROC_WRITE, arguments, data=data)

    def load_elf(self, pid: int, elf: bytes) -> ElfLoadResult:
        """Upload an ELF image into a process and return its load address.

        The upload has two acknowledged phases: the size announcement, then
        the raw image.
        """
        elf = bytes(elf)
        self._check_length("ELF size", len(elf), self._limits.max_elf_size)
        arguments = build_elf_payload(pid, len(elf))
        result = self._execute(Command.PROC_ELF, arguments, data=elf)
        logger.info(
            "Loaded %d byte ELF into pid %d at 0x%X",
            len(elf), pid, result.address,
        )
        return result
