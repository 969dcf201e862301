"""
Line framing for the gate link.

Turns arbitrary byte chunks from the serial port into complete,
newline-terminated text messages. Splitting happens on raw bytes; a line is
only decoded once its terminating newline has arrived, so a multi-byte UTF-8
character split across two reads is never mangled.
"""

from __future__ import annotations


class LineFramer:
    """Accumulate byte chunks and emit complete lines.

    Pending bytes are carried between feed() calls for the lifetime of one
    session; call reset() when a new session begins.
    """

    def __init__(self, max_line_bytes: int = 1024):
        self._max_line_bytes = max_line_bytes
        self._buf = bytearray()

    @property
    def pending(self) -> bytes:
        """Bytes received since the last complete line."""
        return bytes(self._buf)

    def feed(self, chunk: bytes) -> list[str]:
        """Feed raw bytes. Returns the lines completed by this chunk, in order."""
        self._buf.extend(chunk)
        lines: list[str] = []

        while True:
            idx = self._buf.find(b"\n")
            if idx < 0:
                break
            raw = bytes(self._buf[:idx])
            del self._buf[: idx + 1]
            self._emit(raw, lines)

        # Force break if buffer exceeds max line length, never inside a UTF-8 sequence
        while len(self._buf) > self._max_line_bytes:
            cut = self._max_line_bytes
            while cut > 0 and (self._buf[cut] & 0xC0) == 0x80:
                cut -= 1
            if cut == 0:
                cut = self._max_line_bytes
            raw = bytes(self._buf[:cut])
            del self._buf[:cut]
            self._emit(raw, lines)

        return lines

    def reset(self) -> None:
        """Drop any partial line."""
        self._buf.clear()

    @staticmethod
    def _emit(raw: bytes, lines: list[str]) -> None:
        text = raw.decode("utf-8", errors="replace").strip()
        if text:
            lines.append(text)
