"""Tests for the TCP transport using local socket pairs."""

import socket
import threading

import pytest

from ps4debug_mcp.errors import TransportError
from ps4debug_mcp.session import DebugSession
from ps4debug_mcp.transport.tcp_connection import (
    DEFAULT_PORT,
    TCPConnection,
    Transport,
)


@pytest.fixture
def pair():
    local, remote = socket.socketpair()
    conn = TCPConnection(timeout=2.0, sock=local)
    yield conn, remote
    conn.close()
    remote.close()


def test_default_port():
    assert DEFAULT_PORT == 744


def test_satisfies_transport_protocol():
    assert isinstance(TCPConnection(), Transport)


def test_write_and_read(pair):
    conn, remote = pair
    conn.write(b"\xCC\xBB\xAA\xFF")
    assert remote.recv(4) == b"\xCC\xBB\xAA\xFF"

    remote.sendall(b"\x01\x02\x03\x04")
    assert conn.read(4) == b"\x01\x02\x03\x04"


def test_read_reassembles_split_chunks(pair):
    """read() keeps receiving until the requested size arrives."""
    conn, remote = pair

    def send_slowly():
        for b in b"abcdef":
            remote.sendall(bytes([b]))

    t = threading.Thread(target=send_slowly)
    t.start()
    assert conn.read(6) == b"abcdef"
    t.join()


def test_read_returns_short_at_eof(pair):
    conn, remote = pair
    remote.sendall(b"\x01\x02")
    remote.shutdown(socket.SHUT_WR)
    assert conn.read(4) == b"\x01\x02"


def test_read_timeout_raises():
    local, remote = socket.socketpair()
    conn = TCPConnection(timeout=0.05, sock=local)
    try:
        with pytest.raises(TransportError):
            conn.read(4)
    finally:
        conn.close()
        remote.close()


def test_close_is_idempotent(pair):
    conn, _ = pair
    conn.close()
    conn.close()
    assert not conn.connected


def test_io_after_close_raises(pair):
    conn, _ = pair
    conn.close()
    with pytest.raises(TransportError):
        conn.write(b"x")
    with pytest.raises(TransportError):
        conn.read(1)


def test_connect_refused():
    """Connecting to a closed port surfaces a TransportError."""
    probe = socket.socket()
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()

    conn = TCPConnection(timeout=1.0)
    with pytest.raises(TransportError):
        conn.connect("127.0.0.1", port)
    assert not conn.connected


def test_connect_and_session_roundtrip():
    """A session over a real socket exchanges a notify with a local server."""
    server = socket.socket()
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    port = server.getsockname()[1]
    received = bytearray()

    def serve():
        client, _ = server.accept()
        with client:
            while len(received) < 12 + 8 + 3:
                received.extend(client.recv(64))
            client.sendall(b"\x00\x00\x00\x80")

    t = threading.Thread(target=serve)
    t.start()
    try:
        with DebugSession.open("127.0.0.1", port, timeout=2.0) as session:
            assert session.transport.info.port == port
            assert session.notify("hi") == b"\x00\x00\x00\x80"
    finally:
        t.join()
        server.close()

    assert received[:4] == b"\xCC\xBB\xAA\xFF"
    assert received[-3:] == b"hi\x00"


def test_connect_twice_raises(pair):
    conn, _ = pair
    with pytest.raises(TransportError):
        conn.connect("127.0.0.1", 1)
