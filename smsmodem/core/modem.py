"""
Core modem class coordinating transport, framing, sequencing and status.

This is the foundation that feature managers build upon.
"""

import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Optional

from .bus import LineBus, LineCallback
from .demux import LineDemultiplexer
from .sequencer import TaskSequencer
from .status import StatusTracker
from .transport import Transport
from ..exceptions import DeviceDisconnectedError, GSMModemError, TransportError

logger = logging.getLogger(__name__)

_INVISIBLE_CHARACTERS = {
    "\r": "<CR>",
    "\n": "<LF>",
    "\x1b": "<ESC>",
    "\x1a": "<CTRL-Z>",
}


def convert_invisible_characters(text: Optional[str]) -> str:
    """
    Make control characters in modem traffic readable.

    Example:

    .. code-block:: python

        >>> convert_invisible_characters("hi\\x1a\\r")
        'hi<CTRL-Z><CR>'
    """
    if not text:
        return ""
    return "".join(_INVISIBLE_CHARACTERS.get(char, char) for char in text)


class ModemCore:
    """
    Core modem functionality.

    Coordinates:
    - Transport layer (serial communication)
    - Line demultiplexer (CRLF lines and the ">" prompt)
    - Task sequencer (one command in flight at a time)
    - Status tracker (connection and error state)
    - Line bus (fan-out of every line to decoders)
    - Reader thread (the only thread handling modem output)

    Every line first goes to the sequencer's completion check and then to
    the bus, so a task dispatched by a bus subscriber in reaction to a
    line is never completed by that same line.
    """

    def __init__(
        self,
        transport: Transport,
        debug_mode: bool = False,
        task_timeout: Optional[float] = None,
        max_log_size: int = 1000,
        on_disconnect: Optional[Callable[[Exception], None]] = None
    ) -> None:
        """
        Initialize modem core.

        Args:
            transport: Transport instance for communication
            debug_mode: Log all traffic at INFO level
            task_timeout: Seconds a task may wait for its answer (None = forever)
            max_log_size: Maximum traffic entries kept for get_log()
            on_disconnect: Optional callback for disconnection events
        """
        self.transport = transport
        self.debug_mode = debug_mode

        self.status = StatusTracker(debug_mode=debug_mode)
        self.bus = LineBus(max_history=max_log_size)
        self.sequencer = TaskSequencer(
            writer=self.write,
            task_timeout=task_timeout,
            on_error=self.status.report_error
        )
        self.demux = LineDemultiplexer(
            on_line=self._handle_line,
            on_prompt=self.sequencer.on_prompt
        )
        self.bus.subscribe(self.status.on_line)

        self._log: Deque[str] = deque(maxlen=max_log_size)
        self._log_lock = threading.Lock()

        # Reader thread management
        self._reader_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._running = False
        self._on_disconnect = on_disconnect

        # Error handling
        self._consecutive_errors = 0
        self._max_consecutive_errors = 5
        self._disconnected = False

        logger.info("Initialized ModemCore")

    def open(self) -> None:
        """
        Open the transport.

        Raises:
            TransportError: If the transport cannot be opened
        """
        if self.transport.is_open():
            return
        try:
            self.transport.open()
        except TransportError as e:
            self.status.report_error(e)
            raise
        self.status.on_open()

    def start(self) -> None:
        """
        Open the transport and start the reader thread.

        The reader thread continuously reads from the transport and feeds
        the demultiplexer; all line handling happens on that thread.
        """
        if self._running:
            logger.warning("ModemCore already started")
            return

        self.open()

        # Reset disconnected state on start
        self._disconnected = False
        self._consecutive_errors = 0

        self._stop_event.clear()
        self._reader_thread = threading.Thread(
            target=self._reader_loop,
            daemon=True,
            name="ModemReaderThread"
        )
        self._running = True
        self._reader_thread.start()
        logger.info("Started modem reader thread")

    def stop(self) -> None:
        """
        Stop the modem reader thread.

        Waits for the thread to terminate gracefully.
        """
        if not self._running:
            return

        logger.info("Stopping modem reader thread...")
        self._stop_event.set()

        if self._reader_thread and self._reader_thread is not threading.current_thread():
            self._reader_thread.join(timeout=1.0)
            if self._reader_thread.is_alive():
                logger.warning("Reader thread did not terminate in time")

        self._running = False
        logger.info("Stopped modem reader thread")

    def close(self) -> None:
        """
        Close the modem connection.

        Stops the reader thread and closes the transport.
        """
        logger.info("Closing modem connection")
        self.stop()
        was_open = self.transport.is_open()
        self.transport.close()
        if was_open and not self._disconnected:
            self.status.on_close(disconnected=False)
        logger.info("Modem connection closed")

    def _reader_loop(self) -> None:
        """
        Continuously read bytes from the modem and feed the demultiplexer.
        """
        logger.debug("Reader thread started")

        while not self._stop_event.is_set():
            try:
                data = self.transport.read()

                # Reset error counter on successful read
                self._consecutive_errors = 0

                if not data:
                    continue

                self.demux.feed(data)

            except DeviceDisconnectedError as e:
                # Device is actually disconnected - stop the reader thread
                logger.error("Device disconnected, stopping reader thread")
                self._running = False
                self._disconnected = True
                self.status.on_close(disconnected=True)

                if self._on_disconnect:
                    self._on_disconnect(e)

                break
            except Exception as e:
                # Handle consecutive errors with backoff
                self._consecutive_errors += 1
                logger.error(f"Error in reader loop ({self._consecutive_errors}/{self._max_consecutive_errors}): {e}")

                error = e if isinstance(e, GSMModemError) else TransportError(f"Read failed: {e}")
                self.status.report_error(error)

                if self._consecutive_errors >= self._max_consecutive_errors:
                    logger.error(f"Too many consecutive errors ({self._consecutive_errors}), stopping reader thread")
                    self._running = False
                    self._disconnected = True
                    self.status.on_close(disconnected=True)

                    if self._on_disconnect:
                        self._on_disconnect(error)

                    break

                # Exponential backoff: 0.1s, 0.2s, 0.4s, 0.8s, 1.6s
                backoff_time = 0.1 * (2 ** (self._consecutive_errors - 1))
                time.sleep(backoff_time)

        logger.debug("Reader thread stopped")

    def _handle_line(self, line: str) -> None:
        """
        Route a complete line: task completion first, then the bus.

        Args:
            line: Line without its CRLF terminator
        """
        self._record("<<", line)
        self.sequencer.on_line(line)
        self.bus.publish(line)

    def write(self, data: bytes) -> bool:
        """
        Write bytes to the modem.

        Failures are reported to the status tracker, never raised.

        Args:
            data: Bytes to write

        Returns:
            True if the write succeeded
        """
        self._record(">>", data.decode("utf-8", errors="replace"))
        try:
            self.transport.write(data)
            return True
        except GSMModemError as e:
            self.status.report_error(e)
            return False

    def _record(self, direction: str, text: str) -> None:
        readable = convert_invisible_characters(text)
        with self._log_lock:
            self._log.append(f"{direction} {readable}")

        if self.debug_mode:
            logger.info(f"{'modem says' if direction == '<<' else 'sent to modem'}: {readable}")
        else:
            logger.debug(f"{direction} {readable}")

    def get_log(self) -> list[str]:
        """
        Get recent traffic, oldest first.

        Incoming lines are prefixed with "<<", writes with ">>".
        """
        with self._log_lock:
            return list(self._log)

    def register_line_callback(self, callback: LineCallback, prefix: str = "") -> None:
        """
        Subscribe to modem lines matching a prefix.

        Args:
            callback: Function called with each matching line
            prefix: Line prefix to match (e.g., "+CMTI"); empty matches all

        Example:

        .. code-block:: python

            core.register_line_callback(lambda line: print(f"SMS: {line}"), "+CMTI")
        """
        self.bus.subscribe(callback, prefix=prefix)

    def unregister_line_callback(self, callback: LineCallback) -> bool:
        """
        Remove a line callback.

        Returns:
            True if callback was removed
        """
        return self.bus.unsubscribe(callback)

    def is_running(self) -> bool:
        """
        Check if the reader thread is running.

        Returns:
            True if running
        """
        return self._running

    def is_disconnected(self) -> bool:
        """
        Check if the device was disconnected during operation.

        Returns:
            True if device was disconnected, False otherwise
        """
        return self._disconnected

    def __enter__(self):
        """Context manager entry."""
        if not self._running:
            self.start()
        return self

    def __exit__(self, *exc):
        """Context manager exit."""
        self.close()
