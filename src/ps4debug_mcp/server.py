"""MCP server entry point for the ps4debug payload.

Exposes the debugger commands as tools via the Model Context Protocol
using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from .errors import PS4DebugError, ValidationError
from .protocol.commands import COMMAND_SPECS, DEFAULT_NOTIFY_TYPE
from .session import DebugSession
from .transport.tcp_connection import DEFAULT_PORT, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "ps4debug",
    instructions="MCP server for the ps4debug remote debugging payload",
)

# Global session state
_session: DebugSession | None = None


def _get_session() -> DebugSession:
    """Get the active debug session, raising if not connected."""
    if _session is None or not _session.transport.connected:
        raise RuntimeError(
            "Not connected to debugger. Use the 'connect' tool first."
        )
    return _session


def _error(e: Exception) -> dict[str, Any]:
    logger.warning("%s: %s", type(e).__name__, e)
    return {"error": str(e), "type": type(e).__name__}


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    host: str,
    port: int = DEFAULT_PORT,
    timeout: float = DEFAULT_TIMEOUT,
) -> dict[str, Any]:
    """Open a TCP connection to the ps4debug payload on the console.

    Args:
        host: Console IP address or hostname.
        port: Debugger port (default 744).
        timeout: Socket timeout in seconds.
    """
    global _session
    if _session is not None and _session.transport.connected:
        if not _session.failed:
            return {"connected": True, "message": "Already connected"}
        _session.close()

    try:
        _session = DebugSession.open(host, port, timeout=timeout)
    except PS4DebugError as e:
        _session = None
        return _error(e)

    return {"connected": True, "host": host, "port": port}


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the connection to the debugger."""
    global _session
    if _session is None:
        return {"disconnected": True}
    _session.close()
    _session = None
    return {"disconnected": True}


# ─── CONSOLE TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def notify(message: str, notify_type: int = DEFAULT_NOTIFY_TYPE) -> dict[str, Any]:
    """Show a notification on the console screen.

    Args:
        message: ASCII notification text.
        notify_type: Notification style id (default 222).
    """
    session = _get_session()
    try:
        status = session.notify(message, notify_type)
    except PS4DebugError as e:
        return _error(e)
    return {"sent": True, "status": status.hex()}


@mcp.tool()
def reboot() -> dict[str, Any]:
    """Reboot the console. The connection is unusable afterwards."""
    session = _get_session()
    try:
        session.reboot()
    except PS4DebugError as e:
        return _error(e)
    return {"rebooting": True}


# ─── PROCESS TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def list_processes() -> dict[str, Any]:
    """List running processes with their ids."""
    session = _get_session()
    try:
        processes = session.list_processes()
    except PS4DebugError as e:
        return _error(e)
    return {
        "count": len(processes),
        "processes": [p.to_dict() for p in processes],
    }


@mcp.tool()
def find_process(name: str) -> dict[str, Any]:
    """Find processes whose name contains ``name`` (case-insensitive).

    Args:
        name: Substring to search for, e.g. "eboot.bin".
    """
    session = _get_session()
    try:
        processes = session.list_processes()
    except PS4DebugError as e:
        return _error(e)
    needle = name.lower()
    matches = [p.to_dict() for p in processes if needle in p.name.lower()]
    return {"matches": matches}


@mcp.tool()
def get_process_maps(pid: int) -> dict[str, Any]:
    """List the memory regions of a process.

    Args:
        pid: Process id.
    """
    session = _get_session()
    try:
        entries = session.get_process_maps(pid)
    except PS4DebugError as e:
        return _error(e)
    return {"pid": pid, "entries": [e.to_dict() for e in entries]}


@mcp.tool()
def get_process_info(pid: int) -> dict[str, Any]:
    """Read the name and id of a process.

    Args:
        pid: Process id.
    """
    session = _get_session()
    try:
        info = session.get_process_info(pid)
    except PS4DebugError as e:
        return _error(e)
    return info.to_dict()


# ─── MEMORY TOOLS ─────────────────────────────────────────────────────

@mcp.tool()
def read_memory(pid: int, address: int, length: int) -> dict[str, Any]:
    """Read process memory.

    Args:
        pid: Process id.
        address: Virtual address to read from.
        length: Number of bytes to read.
    """
    session = _get_session()
    try:
        data = session.read_memory(pid, address, length)
    except PS4DebugError as e:
        return _error(e)
    return {"pid": pid, "address": f"0x{address:X}", "data": data.hex()}


@mcp.tool()
def write_memory(pid: int, address: int, hex_data: str) -> dict[str, Any]:
    """Write bytes into process memory.

    Args:
        pid: Process id.
        address: Virtual address to write to.
        hex_data: Bytes to write as a hex string, e.g. "90 90 c3".
    """
    try:
        data = bytes.fromhex(hex_data)
    except ValueError:
        return _error(ValidationError(f"Invalid hex data: {hex_data!r}"))

    session = _get_session()
    try:
        session.write_memory(pid, address, data)
    except PS4DebugError as e:
        return _error(e)
    return {"written": len(data), "pid": pid, "address": f"0x{address:X}"}


@mcp.tool()
def load_elf(pid: int, file_path: str) -> dict[str, Any]:
    """Upload an ELF file into a process.

    Args:
        pid: Target process id.
        file_path: Path to the ELF file on this machine.
    """
    path = Path(file_path)
    if not path.is_file():
        return _error(ValidationError(f"Not a regular file: {file_path}"))

    session = _get_session()
    limit = session.limits.max_elf_size
    try:
        size = path.stat().st_size
        if size > limit:
            return _error(
                ValidationError(f"ELF size must be 0-{limit}, got {size}")
            )
        elf = path.read_bytes()
    except OSError as e:
        return _error(e)

    try:
        result = session.load_elf(pid, elf)
    except PS4DebugError as e:
        return _error(e)
    return {"loaded": True, "size": len(elf), **result.to_dict()}


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("ps4debug://session/status")
def resource_session_status() -> str:
    """Connection state of the current session."""
    if _session is None or not _session.transport.connected:
        return json.dumps({"connected": False})
    return json.dumps({"connected": True, "failed": _session.failed})


@mcp.resource("ps4debug://protocol/commands")
def resource_commands() -> str:
    """Opcode table with declared payload sizes."""
    commands = [
        {
            "name": spec.command.name,
            "opcode": f"0x{spec.command.value:08X}",
            "payload_size": spec.payload_size,
            "response": spec.response.value,
            "acknowledged": spec.acknowledged,
            "data_acknowledged": spec.data_acknowledged,
        }
        for spec in COMMAND_SPECS.values()
    ]
    return json.dumps({"commands": commands})


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
