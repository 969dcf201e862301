#!/usr/bin/env python3
"""
gatectl - operator console for the snack gate.

Usage:
    gatectl --port /dev/ttyUSB0
    gatectl --port auto --limit 3 --lock-time 1
    gatectl --list
"""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from typing import Optional, TextIO

from .config import load_config
from .controller import GateController
from .implementations import RealSerialPort
from .interfaces import ConnectionState
from .state import Transition

HELP_TEXT = """\
Commands:
  connect | disconnect          open or close the device link
  auto | manual | normal        switch gate mode
  open                          dispense (not while locked or in AUTO)
  unlock                        reset the counter on the device
  limit N                       set the daily snack limit
  locktime N                    set the lockout duration in minutes
  send TEXT                     send raw text to the device
  status                        show current state
  visits                        show recorded visits
  logs [N]                      show the last N log lines (default 15)
  insight                       ask for a usage tip
  clear                         clear visits, logs and tip
  help                          show this help
  quit                          disconnect and exit
"""

UNSUPPORTED_NOTICE = """\
This platform cannot drive the gate's serial link.
{reason}
Run gatectl on Linux, macOS or Windows with pyserial installed.
"""


def format_state(controller: GateController) -> str:
    state = controller.state
    lock = "LOCKED" if state.is_locked else "READY"
    line = (
        f"[{state.connection.value}] {lock} | mode {state.mode.value} | "
        f"snacks {state.count}/{state.limit} | cooldown {state.lock_duration_minutes}m"
    )
    remaining = controller.cooldown.remaining()
    if remaining:
        line += f" ({remaining // 60}:{remaining % 60:02d} left)"
    return line


class Console:
    """Line-oriented operator console over a GateController."""

    def __init__(self, controller: GateController, out: Optional[TextIO] = None):
        self._controller = controller
        self._out = out if out is not None else sys.stdout
        self._print_lock = threading.Lock()

        controller.reconciler.subscribe(self._on_transition)
        controller.cooldown.subscribe(self._on_cooldown)

    def echo(self, text: str) -> None:
        with self._print_lock:
            print(text, file=self._out, flush=True)

    def _on_transition(self, transition: Transition) -> None:
        if transition.changed:
            self.echo(format_state(self._controller))

    def _on_cooldown(self, remaining: int) -> None:
        if remaining % 10 == 0 or remaining <= 5:
            self.echo(f"cooldown {remaining // 60}:{remaining % 60:02d}")

    def handle(self, raw: str) -> bool:
        """Run one console command. Returns False when the console should exit."""
        parts = raw.strip().split(maxsplit=1)
        if not parts:
            return True
        verb = parts[0].lower()
        arg = parts[1] if len(parts) > 1 else ""
        c = self._controller
        head = c.history.entries()[:1]

        if verb in ("quit", "exit"):
            return False
        if verb == "help":
            self.echo(HELP_TEXT)
        elif verb == "connect":
            c.connect()
        elif verb == "disconnect":
            c.disconnect()
        elif verb in ("auto", "manual", "normal", "open", "unlock"):
            c.send_command(verb.upper())
        elif verb in ("limit", "locktime"):
            try:
                value = int(arg)
            except ValueError:
                self.echo(f"usage: {verb} N")
                return True
            if verb == "limit":
                c.apply_limit(value)
            else:
                c.apply_lock_duration(value)
        elif verb == "send":
            c.send_command(arg)
        elif verb == "status":
            self.echo(format_state(c))
        elif verb == "visits":
            visits = c.history.visits()
            if not visits:
                self.echo("No activity detected yet.")
            for v in visits:
                self.echo(f"#{v.count_at_visit} visit registered {v.timestamp.strftime('%H:%M:%S')}")
        elif verb == "logs":
            n = int(arg) if arg.isdigit() else 15
            entries = c.history.entries()[:n]
            if not entries:
                self.echo("No logs available.")
            for entry in entries:
                self.echo(entry.format())
        elif verb == "insight":
            self.echo(f'"{c.request_insight()}"')
        elif verb == "clear":
            c.reset_display()
        else:
            self.echo(f"Unknown command: {verb} (try 'help')")

        # Surface the newest notice or error the action produced.
        entries = c.history.entries()
        if entries and entries[:1] != head and entries[0].text.startswith(("Notice:", "Error:", "Transmission failed")):
            self.echo(entries[0].text)
        return True

    def run(self, stream: Optional[TextIO] = None) -> None:
        stream = stream if stream is not None else sys.stdin
        self.echo(HELP_TEXT)
        self.echo(format_state(self._controller))
        for raw in stream:
            if not self.handle(raw):
                break


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="gatectl",
        description="Snack gate operator console",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  gatectl --port /dev/ttyUSB0
  gatectl --port auto --limit 3 --lock-time 1
  gatectl --config gate.yaml --events /tmp/gate/events.jsonl
        """,
    )
    parser.add_argument("--config", "-c", help="YAML config file")
    parser.add_argument("--port", "-p", help="Serial port (default: auto-detect)")
    parser.add_argument("--baud", "-b", type=int, help="Baud rate (default: 9600)")
    parser.add_argument("--limit", type=int, help="Initial daily snack limit")
    parser.add_argument("--lock-time", type=int, help="Initial lockout duration in minutes")
    parser.add_argument("--events", help="Append a JSONL event trail to this file")
    parser.add_argument("--log-level", help="Python logging level (default: WARNING)")
    parser.add_argument("--no-connect", action="store_true", help="Start without connecting")
    parser.add_argument("--list", "-l", action="store_true", help="List available serial ports and exit")

    args = parser.parse_args(argv)

    if args.list:
        print("Available serial ports:")
        for p in RealSerialPort.list_ports():
            print(f"  {p.device}")
            print(f"    Description: {p.description}")
            print(f"    HWID: {p.hwid}")
            print()
        return 0

    config = load_config(
        args.config,
        port=args.port,
        baud=args.baud,
        default_limit=args.limit,
        default_lock_minutes=args.lock_time,
        events_path=args.events,
        log_level=args.log_level,
    )
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    controller = GateController.from_config(config)
    if controller.state.connection == ConnectionState.UNSUPPORTED:
        print(UNSUPPORTED_NOTICE.format(reason=controller.unsupported_reason), file=sys.stderr)
        return 2

    console = Console(controller)
    console.echo(f"{config.title} console")
    if not args.no_connect:
        console.handle("connect")

    try:
        console.run()
    except KeyboardInterrupt:
        console.echo("\nStopping...")
    finally:
        controller.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
