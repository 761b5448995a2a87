"""
Status tracker.

Owns the ModemStatus and publishes every change.
"""

import dataclasses
import logging
import threading
from typing import Callable

from ..exceptions import ATCommandError, DeviceDisconnectedError, GSMModemError
from ..types import ModemError, ModemStatus

logger = logging.getLogger(__name__)

StatusListener = Callable[[ModemStatus], None]
ErrorListener = Callable[[GSMModemError], None]

ERROR_TOKEN = "ERROR"


class StatusTracker:
    """
    Tracks connection and error state of the modem.

    Transitions:
    - transport opened -> connected
    - transport closed on disconnect -> disconnected and errored
    - line containing "ERROR" -> errored, last_error is the line
    - failed write or task timeout -> errored, last_error is the failure

    Listeners receive a copy of the status after every change. Error
    listeners additionally receive the exception for every error.
    """

    def __init__(self, debug_mode: bool = False) -> None:
        self._status = ModemStatus(debug_mode=debug_mode)
        self._lock = threading.Lock()
        self._listeners: list[StatusListener] = []
        self._error_listeners: list[ErrorListener] = []

    @property
    def status(self) -> ModemStatus:
        """Current status (a copy)."""
        with self._lock:
            return dataclasses.replace(self._status)

    def add_listener(self, listener: StatusListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: StatusListener) -> bool:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)
                return True
            return False

    def add_error_listener(self, listener: ErrorListener) -> None:
        with self._lock:
            self._error_listeners.append(listener)

    def remove_error_listener(self, listener: ErrorListener) -> bool:
        with self._lock:
            if listener in self._error_listeners:
                self._error_listeners.remove(listener)
                return True
            return False

    def on_open(self) -> None:
        """Record a successful transport open."""
        logger.info("Modem connected")
        self._update(is_connected=True)

    def on_close(self, disconnected: bool = False) -> None:
        """
        Record the transport closing.

        Args:
            disconnected: True if the device went away rather than being
                          closed by us
        """
        if not disconnected:
            logger.info("Modem closed")
            self._update(is_connected=False)
            return

        logger.error("Modem disconnected")
        self._update(
            is_connected=False,
            is_errored=True,
            last_error=ModemError.DISCONNECTED.value
        )
        self._publish_error(DeviceDisconnectedError(ModemError.DISCONNECTED.value))

    def on_line(self, line: str) -> None:
        """Record a line received from the modem."""
        if ERROR_TOKEN in line:
            logger.warning(f"Modem error: {line}")
            self._update(last_received_data=line, is_errored=True, last_error=line)
            self._publish_error(ATCommandError(f"Modem reported {line}", response=[line]))
        else:
            self._update(last_received_data=line)

    def report_error(self, error: GSMModemError) -> None:
        """Record a failure reported by another component (write, timeout)."""
        logger.error(f"Modem error: {error}")
        self._update(is_errored=True, last_error=str(error))
        self._publish_error(error)

    def _update(self, **changes) -> None:
        with self._lock:
            self._status = dataclasses.replace(self._status, **changes)
            snapshot = dataclasses.replace(self._status)
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Status listener failed: {e}", exc_info=True)

    def _publish_error(self, error: GSMModemError) -> None:
        with self._lock:
            listeners = list(self._error_listeners)

        for listener in listeners:
            try:
                listener(error)
            except Exception as e:
                logger.error(f"Error listener failed: {e}", exc_info=True)
