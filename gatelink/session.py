"""
Device link session.

A Session is one open serial port plus its single reader thread. The reader
is the only caller of read_chunk(); it frames the byte stream into lines and
hands them, in arrival order, to the line callback. Teardown is ordered and
never raises:

1. signal the reader to stop and cancel its in-flight read
2. join the reader thread, releasing the port for the closer
3. close the port
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .errors import DeviceConnectionError
from .framing import LineFramer
from .interfaces import SerialPortInterface
from .protocol import encode_command

logger = logging.getLogger(__name__)

DEFAULT_BAUD = 9600


class Session:
    """One open link and its reader loop.

    Callbacks run on the reader thread:
    - on_line(line): one complete inbound message
    - on_error(exc): the link failed; the session is finished
    - on_end(): the device closed the stream; the session is finished
    """

    def __init__(
        self,
        serial_port: SerialPortInterface,
        port_name: str,
        baud: int = DEFAULT_BAUD,
        on_line: Optional[Callable[[str], None]] = None,
        on_error: Optional[Callable[[DeviceConnectionError], None]] = None,
        on_end: Optional[Callable[[], None]] = None,
        framer: Optional[LineFramer] = None,
        read_timeout: float = 0.1,
        read_size: int = 256,
    ):
        self._serial = serial_port
        self._port_name = port_name
        self._baud = baud
        self._on_line = on_line
        self._on_error = on_error
        self._on_end = on_end
        self._framer = framer or LineFramer()
        self._read_timeout = read_timeout
        self._read_size = read_size

        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._opened = False
        self._closed = False
        self._bytes_received = 0
        self._lines_received = 0

    @property
    def port_name(self) -> str:
        return self._port_name

    @property
    def bytes_received(self) -> int:
        return self._bytes_received

    @property
    def lines_received(self) -> int:
        return self._lines_received

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def reading(self) -> bool:
        thread = self._thread
        return bool(thread and thread.is_alive())

    def open(self) -> "Session":
        """Open the port. Raises DeviceConnectionError on failure."""
        self._framer.reset()
        self._serial.open(self._port_name, self._baud, timeout=self._read_timeout)
        self._opened = True
        logger.info("Opened %s at %d baud", self._port_name, self._baud)
        return self

    def start(self) -> None:
        """Start the reader thread. Only one reader per session."""
        if not self._opened or self._closed:
            raise DeviceConnectionError("Session is not open")
        with self._lock:
            if self._thread is not None:
                raise RuntimeError("Reader already started for this session")
            self._thread = threading.Thread(
                target=self._read_loop,
                name=f"gatelink-reader-{self._port_name}",
                daemon=True,
            )
        self._thread.start()

    def send(self, command: str) -> int:
        """Encode and write one command. Raises DeviceConnectionError."""
        if self._closed:
            raise DeviceConnectionError("Session is closed")
        return self._serial.write(encode_command(command))

    def close(self) -> None:
        """Tear the session down. Idempotent; never raises."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            thread = self._thread

        self._stop_event.set()
        try:
            self._serial.cancel_read()
        except Exception as e:
            logger.warning("Cancelling read on %s failed: %s", self._port_name, e)

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2.0)
            if thread.is_alive():
                logger.warning("Reader for %s did not stop in time", self._port_name)

        try:
            self._serial.close()
        except Exception as e:
            logger.warning("Closing %s failed: %s", self._port_name, e)

        self._framer.reset()
        logger.info("Closed %s", self._port_name)

    def _read_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                chunk = self._serial.read_chunk(self._read_size)
            except DeviceConnectionError as e:
                if self._stop_event.is_set():
                    break
                logger.error("Read error on %s: %s", self._port_name, e)
                if self._on_error:
                    self._on_error(e)
                return

            if chunk is None:
                if not self._stop_event.is_set():
                    logger.warning("Stream from %s ended", self._port_name)
                    if self._on_end:
                        self._on_end()
                return

            if not chunk:
                continue

            self._bytes_received += len(chunk)
            for line in self._framer.feed(chunk):
                self._lines_received += 1
                if self._on_line is None:
                    continue
                try:
                    self._on_line(line)
                except Exception:
                    logger.exception("Error processing line %r", line)
