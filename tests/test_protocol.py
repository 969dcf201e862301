"""Tests for gatelink.protocol: inbound parsing and outbound encoding."""

import pytest

from gatelink.errors import ParseError
from gatelink.interfaces import GateMode
from gatelink.protocol import (
    Command,
    Locked,
    RemainingCount,
    Unlocked,
    Unrecognized,
    encode_command,
    limit_command,
    locktime_command,
    mode_for_command,
    parse_line,
    parse_remaining,
)


class TestParseLine:

    @pytest.mark.parametrize("line,expected", [
        ("REMAINING:3", RemainingCount(3)),
        ("REMAINING:0", RemainingCount(0)),
        ("REMAINING: 7 ", RemainingCount(7)),
        ("LOCKED", Locked()),
        ("UNLOCKED", Unlocked()),
        ("AUTO UNLOCKED", Unlocked()),
        ("  LOCKED  ", Locked()),
    ])
    def test_known_messages(self, line, expected):
        assert parse_line(line) == expected

    @pytest.mark.parametrize("line", ["HELLO", "locked", "LOCKED NOW", "GATE OPEN", "REMAINING"])
    def test_other_text_is_unrecognized(self, line):
        event = parse_line(line)
        assert isinstance(event, Unrecognized)
        assert event.raw == line
        assert event.reason is None

    @pytest.mark.parametrize("line", [
        "REMAINING:", "REMAINING:abc", "REMAINING:2.5", "REMAINING:-1",
        "REMAINING:1_000", "REMAINING:+3", "REMAINING:\u0663", "REMAINING:\uff13",
    ])
    def test_malformed_remaining_is_rejected(self, line):
        event = parse_line(line)
        assert isinstance(event, Unrecognized)
        assert event.reason is not None

    def test_parse_remaining_raises_parse_error(self):
        with pytest.raises(ParseError) as excinfo:
            parse_remaining("REMAINING:x")
        assert excinfo.value.line == "REMAINING:x"
        assert isinstance(excinfo.value, ValueError)


class TestEncoding:

    def test_single_terminator(self):
        assert encode_command(Command.OPEN) == b"OPEN\n"

    def test_any_text_accepted(self):
        assert encode_command("hello world") == b"hello world\n"
        assert encode_command("") == b"\n"

    def test_parameterized_commands(self):
        assert limit_command(3) == "LIMIT 3"
        assert locktime_command(10) == "LOCKTIME 10"

    def test_mode_for_command(self):
        assert mode_for_command("AUTO") == GateMode.AUTO
        assert mode_for_command("manual") == GateMode.MANUAL
        assert mode_for_command(" NORMAL ") == GateMode.NORMAL
        assert mode_for_command("OPEN") is None
        assert mode_for_command("LIMIT 3") is None
