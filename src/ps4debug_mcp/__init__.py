"""Client and MCP server for the ps4debug remote debugging payload."""

from .errors import (
    IncompleteResponseError,
    PS4DebugError,
    TransportError,
    ValidationError,
)
from .session import DebugSession, SessionLimits

__version__ = "0.1.0"
