"""Protocol layer: command headers, opcodes, argument builders, and response parsing."""

from .commands import Command, CommandSpec, Response, get_spec
from .framing import build_header, parse_header
