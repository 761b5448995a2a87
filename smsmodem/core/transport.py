"""
Transport layer abstraction for modem communication.

Provides abstractions for serial communication with dependency injection support.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, Optional

import serial
from serial import SerialException

from ..exceptions import TransportError, DeviceDisconnectedError

logger = logging.getLogger(__name__)

# pyserial error texts that mean the device went away
_DISCONNECT_PHRASES = (
    "device disconnected",
    "device reports readiness to read but returned no data",
    "no such device",
    "device not configured",
    "input/output error",
)


class Transport(ABC):
    """Abstract base class for modem transport."""

    @abstractmethod
    def open(self) -> None:
        """
        Open the transport.

        Raises:
            TransportError: If the transport cannot be opened
        """
        pass

    @abstractmethod
    def write(self, data: bytes) -> int:
        """
        Write data to the transport.

        Args:
            data: Bytes to write

        Returns:
            Number of bytes written

        Raises:
            TransportError: If write fails
        """
        pass

    @abstractmethod
    def read(self, max_bytes: int = 1024) -> bytes:
        """
        Read whatever the modem has sent.

        Blocks up to the transport's read timeout when nothing is pending.

        Args:
            max_bytes: Upper bound on bytes returned

        Returns:
            Received bytes, or b"" if nothing arrived

        Raises:
            DeviceDisconnectedError: If the device went away
            TransportError: If read fails
        """
        pass

    @abstractmethod
    def is_open(self) -> bool:
        """Check if transport is open."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the transport."""
        pass


class SerialTransport(Transport):
    """Serial port transport implementation."""

    def __init__(
        self,
        port: str,
        baudrate: int = 230400,
        timeout: float = 1.0
    ) -> None:
        """
        Initialize serial transport.

        The port is not opened until open() is called.

        Args:
            port: Serial port path (e.g., /dev/ttyUSB0)
            baudrate: Baud rate for serial communication
            timeout: Read timeout in seconds
        """
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout

        self._serial = serial.Serial()
        self._serial.port = port
        self._serial.baudrate = baudrate
        self._serial.timeout = timeout

    def open(self) -> None:
        """Open the serial port."""
        if self._serial.is_open:
            return
        try:
            self._serial.open()
            logger.info(f"Opened serial port {self.port} at {self.baudrate} baud")
        except SerialException as e:
            logger.error(f"Failed to open serial port {self.port}: {e}")
            raise TransportError(f"Failed to open serial port {self.port}: {e}") from e

    def write(self, data: bytes) -> int:
        """Write data to serial port."""
        try:
            written = self._serial.write(data)
            logger.debug(f"Wrote {written} bytes: {data}")
            return written
        except SerialException as e:
            logger.error(f"Serial write failed: {e}")
            raise self._translate(e, "Serial write failed") from e

    def read(self, max_bytes: int = 1024) -> bytes:
        """Read pending bytes from serial port."""
        try:
            # Block for the first byte, then drain what is already buffered
            size = min(max(self._serial.in_waiting, 1), max_bytes)
            data = self._serial.read(size)

            if data:
                logger.debug(f"Read {len(data)} bytes: {data}")

            return data
        except SerialException as e:
            raise self._translate(e, "Serial read failed") from e
        except OSError as e:
            raise self._translate(e, "Serial read failed") from e

    def _translate(self, error: Exception, message: str) -> TransportError:
        """Map a pyserial error to DeviceDisconnectedError or TransportError."""
        error_str = str(error).lower()

        if any(phrase in error_str for phrase in _DISCONNECT_PHRASES):
            logger.error(f"Device disconnected: {error}")
            return DeviceDisconnectedError(
                f"Serial device disconnected: {error}",
                response=[str(error)]
            )

        logger.error(f"{message}: {error}")
        return TransportError(f"{message}: {error}")

    def is_open(self) -> bool:
        """Check if serial port is open."""
        return bool(self._serial and self._serial.is_open)

    def close(self) -> None:
        """Close the serial port."""
        if self._serial and self._serial.is_open:
            self._serial.close()
            logger.info(f"Closed serial port {self.port}")


class MockTransport(Transport):
    """
    Mock transport for testing.

    Simulates a modem without hardware: lines can be pushed at any time
    with add_response(), or scripted to follow a matching write with
    add_auto_response().
    """

    def __init__(self, read_timeout: float = 0.01) -> None:
        """
        Initialize mock transport.

        Args:
            read_timeout: Seconds read() waits when nothing is pending
        """
        self._open = False
        self._read_timeout = read_timeout
        self._chunks: Deque[bytes] = deque()
        self._auto_responses: list[tuple[str, list[str]]] = []
        self._data_ready = threading.Condition()

        self.written: list[bytes] = []
        self.fail_writes = False
        self.fail_open = False
        logger.info("Initialized MockTransport")

    def open(self) -> None:
        """Simulate opening the port."""
        if self.fail_open:
            raise TransportError("MockTransport cannot be opened")
        self._open = True
        logger.debug("Opened MockTransport")

    def add_response(self, lines: list[str]) -> None:
        """
        Queue CRLF-terminated lines to be returned by read().

        Args:
            lines: Lines the modem sends (e.g., ['+CMTI: "SM",3'])
        """
        self.feed("".join(line + "\r\n" for line in lines).encode("utf-8"))

    def feed(self, data: bytes) -> None:
        """Queue raw bytes (e.g., b"\\r\\n> ") to be returned by read()."""
        with self._data_ready:
            self._chunks.append(data)
            self._data_ready.notify_all()
        logger.debug(f"Added mock data: {data}")

    def add_auto_response(self, command: str, lines: list[str], prompt: bool = False) -> None:
        """
        Reply to every write starting with ``command``.

        Args:
            command: Prefix of the written text (e.g., "AT+CMGF=1")
            lines: Lines sent back after the write
            prompt: Send the "> " message prompt after the lines
        """
        self._auto_responses.append((command, list(lines) + ([">"] if prompt else [])))

    def write(self, data: bytes) -> int:
        """Record written data and play scripted replies."""
        if not self._open:
            raise DeviceDisconnectedError(
                "MockTransport is closed (simulating device disconnection)",
                response=["MockTransport closed"]
            )
        if self.fail_writes:
            raise TransportError(f"Simulated write failure: {data!r}")

        self.written.append(data)
        logger.debug(f"Mock write: {data}")

        text = data.decode("utf-8", errors="ignore")
        for command, lines in self._auto_responses:
            if text.startswith(command):
                reply = "".join(
                    "\r\n> " if line == ">" else line + "\r\n" for line in lines
                )
                self.feed(reply.encode("utf-8"))
                break

        return len(data)

    def read(self, max_bytes: int = 1024) -> bytes:
        """Return the next queued chunk, or b"" after the read timeout."""
        if not self._open:
            raise DeviceDisconnectedError(
                "MockTransport is closed (simulating device disconnection)",
                response=["MockTransport closed"]
            )

        with self._data_ready:
            if not self._chunks:
                self._data_ready.wait(self._read_timeout)
            if not self._chunks:
                return b""
            chunk = self._chunks.popleft()
            if len(chunk) > max_bytes:
                self._chunks.appendleft(chunk[max_bytes:])
                chunk = chunk[:max_bytes]

        logger.debug(f"Mock read: {chunk}")
        return chunk

    def written_text(self) -> list[str]:
        """Get everything written so far, decoded."""
        return [data.decode("utf-8", errors="replace") for data in self.written]

    def is_open(self) -> bool:
        """Check if mock transport is open."""
        return self._open

    def close(self) -> None:
        """Close mock transport."""
        self._open = False
        with self._data_ready:
            self._data_ready.notify_all()
        logger.info("Closed MockTransport")

    def clear_responses(self) -> None:
        """Clear all queued data and scripted replies."""
        with self._data_ready:
            self._chunks.clear()
        self._auto_responses.clear()
        logger.debug("Cleared mock responses")
