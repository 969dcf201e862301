"""
Wire protocol for the snack gate.

Newline-terminated UTF-8 text lines in both directions.

Inbound (device -> host):
    REMAINING:<int>     visits left before lockout
    LOCKED              quota exhausted, gate locked
    UNLOCKED            gate unlocked (operator reset)
    AUTO UNLOCKED       gate unlocked after the firmware cooldown

Anything else is accepted and logged but drives no state transition.

Outbound (host -> device):
    AUTO | MANUAL | NORMAL | OPEN | UNLOCK | LIMIT <int> | LOCKTIME <int>
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

from .errors import ParseError
from .interfaces import GateMode

REMAINING_PREFIX = "REMAINING:"
_ASCII_INT = re.compile(r"-?[0-9]+")
LOCKED_MESSAGES = ("LOCKED",)
UNLOCKED_MESSAGES = ("UNLOCKED", "AUTO UNLOCKED")
LINE_TERMINATOR = "\n"


# ---------------------------------------------------------------------------
# Domain events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RemainingCount:
    remaining: int


@dataclass(frozen=True)
class Locked:
    pass


@dataclass(frozen=True)
class Unlocked:
    pass


@dataclass(frozen=True)
class ModeChanged:
    mode: GateMode


@dataclass(frozen=True)
class Unrecognized:
    raw: str
    reason: Optional[str] = None


DomainEvent = Union[RemainingCount, Locked, Unlocked, ModeChanged, Unrecognized]


# ---------------------------------------------------------------------------
# Inbound
# ---------------------------------------------------------------------------

def parse_remaining(line: str) -> int:
    """Parse the payload of a ``REMAINING:<n>`` line.

    Raises ParseError if the payload is not a non-negative ASCII decimal.
    """
    payload = line[len(REMAINING_PREFIX):].strip()
    if not _ASCII_INT.fullmatch(payload):
        raise ParseError(line, "non-integer REMAINING payload")
    value = int(payload)
    if value < 0:
        raise ParseError(line, "negative REMAINING payload")
    return value


def parse_line(line: str) -> DomainEvent:
    """Map one framed line to a domain event."""
    msg = line.strip()

    if msg.startswith(REMAINING_PREFIX):
        try:
            return RemainingCount(parse_remaining(msg))
        except ParseError as e:
            return Unrecognized(msg, reason=e.reason)

    if msg in LOCKED_MESSAGES:
        return Locked()

    if msg in UNLOCKED_MESSAGES:
        return Unlocked()

    return Unrecognized(msg)


# ---------------------------------------------------------------------------
# Outbound
# ---------------------------------------------------------------------------

class Command:
    """Fixed command verbs understood by the gate firmware."""
    AUTO = "AUTO"
    MANUAL = "MANUAL"
    NORMAL = "NORMAL"
    OPEN = "OPEN"
    UNLOCK = "UNLOCK"


_MODE_COMMANDS = {
    Command.AUTO: GateMode.AUTO,
    Command.MANUAL: GateMode.MANUAL,
    Command.NORMAL: GateMode.NORMAL,
}


def encode_command(command: str) -> bytes:
    """Serialize a command with a single trailing line terminator.

    No validation is performed; any text is accepted.
    """
    return (command + LINE_TERMINATOR).encode("utf-8")


def limit_command(limit: int) -> str:
    return f"LIMIT {limit}"


def locktime_command(minutes: int) -> str:
    return f"LOCKTIME {minutes}"


def mode_for_command(command: str) -> Optional[GateMode]:
    """Return the mode selected by a mode verb, or None for other commands."""
    return _MODE_COMMANDS.get(command.strip().upper())
