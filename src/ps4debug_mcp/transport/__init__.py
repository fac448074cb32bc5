"""Byte-stream transports for the protocol engine."""

from .tcp_connection import DEFAULT_PORT, TCPConnection, Transport
