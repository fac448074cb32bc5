"""TCP connection to the ps4debug payload.

The debugger listens on a fixed TCP port on the console. This module only
moves bytes; framing and acknowledgements are handled by
:class:`~ps4debug_mcp.session.DebugSession`.
"""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from ..errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 744
DEFAULT_TIMEOUT = 10.0
RECV_CHUNK_SIZE = 64 * 1024


@runtime_checkable
class Transport(Protocol):
    """Reliable byte stream used by the protocol engine."""

    @property
    def connected(self) -> bool: ...

    def connect(self, host: str, port: int = DEFAULT_PORT) -> None: ...

    def write(self, data: bytes) -> None: ...

    def read(self, size: int) -> bytes: ...

    def close(self) -> None: ...


@dataclass
class ConnectionInfo:
    """Endpoint details of an open connection."""

    host: str = ""
    port: int = DEFAULT_PORT
    local_address: str = ""


class TCPConnection:
    """Manages the TCP connection to the debugger.

    Usage::

        conn = TCPConnection(timeout=5.0)
        conn.connect("192.168.1.20")
        conn.write(packet)
        status = conn.read(4)
        conn.close()
    """

    def __init__(
        self,
        timeout: float | None = DEFAULT_TIMEOUT,
        sock: socket.socket | None = None,
    ) -> None:
        self._timeout = timeout
        self._sock = sock
        self._connected = sock is not None
        self._info = ConnectionInfo()
        if sock is not None:
            sock.settimeout(timeout)

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def info(self) -> ConnectionInfo:
        return self._info

    @property
    def timeout(self) -> float | None:
        return self._timeout

    def connect(self, host: str, port: int = DEFAULT_PORT) -> None:
        """Open a connection to the debugger.

        Raises:
            TransportError: If already connected or the connection fails.
        """
        if self._connected:
            raise TransportError("Already connected")

        try:
            sock = socket.create_connection((host, port), timeout=self._timeout)
        except OSError as e:
            raise TransportError(
                f"Could not connect to ps4debug at {host}:{port}. "
                f"Ensure the payload is running. Last error: {e}"
            ) from e

        sock.settimeout(self._timeout)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        self._sock = sock
        self._connected = True
        local = sock.getsockname()
        self._info = ConnectionInfo(
            host=host, port=port, local_address=f"{local[0]}:{local[1]}"
        )
        logger.info("Connected to %s:%d", host, port)

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if not self._connected:
            return

        try:
            self._sock.close()
        except OSError as e:
            logger.warning("Error closing socket: %s", e)
        finally:
            self._sock = None
            self._connected = False
            logger.info("Disconnected")

    def write(self, data: bytes) -> None:
        """Send all of ``data``.

        Raises:
            TransportError: If not connected or the send fails.
        """
        if not self._connected:
            raise TransportError("Not connected to debugger")

        try:
            self._sock.sendall(data)
        except OSError as e:
            raise TransportError(f"Write failed: {e}") from e

    def read(self, size: int) -> bytes:
        """Read exactly ``size`` bytes, or fewer if the peer closes the stream.

        Raises:
            TransportError: If not connected, or the receive fails or times out.
        """
        if not self._connected:
            raise TransportError("Not connected to debugger")

        buf = bytearray()
        while len(buf) < size:
            try:
                chunk = self._sock.recv(min(size - len(buf), RECV_CHUNK_SIZE))
            except OSError as e:
                raise TransportError(f"Read failed: {e}") from e
            if not chunk:
                logger.debug("Peer closed stream after %d/%d bytes", len(buf), size)
                break
            buf += chunk
        return bytes(buf)
