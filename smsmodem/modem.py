"""
Main SMSModem class.

User-facing API that coordinates the core and the SMS manager.
"""

import dataclasses
import logging
from typing import Callable, Iterable, Optional

from .config import ModemConfig
from .core import ModemCore, SerialTransport, Transport, LineCallback, Task, EventStream
from .core.status import ErrorListener, StatusListener
from .features import DeliveryReportStream, SMSManager
from .types import ModemStatus, ReceivedSMS

logger = logging.getLogger(__name__)


class SMSModem:
    """
    Main interface for GSM modem SMS control.

    Every command goes through one FIFO queue, one at a time; inbound
    notifications are decoded on a background reader thread.

    Example usage with context manager:

    .. code-block:: python

        with SMSModem(port="/dev/ttyUSB0") as modem:
            # Send and wait for the final delivery report
            for report in modem.send_sms(912345678, "Hello!"):
                print(f"Status {report.status}")

    Example receiving messages:

    .. code-block:: python

        modem = SMSModem(port="/dev/ttyUSB0")
        modem.init()
        for sms in modem.on_received_sms():
            print(f"{sms.phone_number}: {sms.text}")
    """

    def __init__(
        self,
        port: Optional[str] = None,
        transport: Optional[Transport] = None,
        config: Optional[ModemConfig] = None,
        on_disconnect: Optional[Callable[[Exception], None]] = None,
        **overrides
    ) -> None:
        """
        Initialize SMSModem.

        Args:
            port: Serial port path (e.g., "/dev/ttyUSB0"). Either port, config.port
                  or transport required.
            transport: Custom transport instance (for testing). Overrides port if provided.
            config: Modem settings (defaults to ModemConfig())
            on_disconnect: Optional callback function called when device disconnects.
                          Signature: callback(exception: Exception) -> None
            **overrides: ModemConfig fields to override (e.g., send_delay=0)

        Raises:
            ValueError: If neither port nor transport is provided
            TypeError: If an override is not a ModemConfig field
            TransportError: If auto_open is set and the port cannot be opened

        Example:

        .. code-block:: python

            # Using serial port with a shorter pause between messages
            modem = SMSModem(port="/dev/ttyUSB0", send_delay=2.0)

            # Using custom transport (for testing)
            from smsmodem.core import MockTransport
            modem = SMSModem(transport=MockTransport(), send_delay=0)
        """
        config = config or ModemConfig()
        if port is not None:
            overrides["port"] = port
        self.config = dataclasses.replace(config, **overrides)

        if transport is None and self.config.port is None:
            raise ValueError("Either 'port' or 'transport' must be provided")

        if transport is None:
            transport = SerialTransport(
                port=self.config.port,
                baudrate=self.config.baudrate,
                timeout=self.config.read_timeout
            )
            logger.info(f"Created serial transport for {self.config.port}")

        self._core = ModemCore(
            transport=transport,
            debug_mode=self.config.debug_mode,
            task_timeout=self.config.task_timeout,
            max_log_size=self.config.max_log_size,
            on_disconnect=on_disconnect
        )

        self.sms = SMSManager(
            self._core,
            send_delay=self.config.send_delay,
            strip_prefixes=self.config.strip_prefixes
        )

        logger.info("Initialized SMSModem")

        if self.config.auto_open:
            self.init()

    def start(self) -> None:
        """
        Open the port and start the reader thread.

        Does not send the init commands; see init().
        """
        self._core.start()
        if self.config.receive_sms:
            self.sms.start_receiving()
        logger.info("Modem started")

    def init(self, commands: Optional[Iterable[str]] = None) -> list[Task]:
        """
        Start the modem and queue the initialization commands.

        Each command waits for "OK" before the next one is written.

        Args:
            commands: AT commands (defaults to config.init_commands)

        Returns:
            The queued tasks, in order

        Example:

        .. code-block:: python

            modem.init(["AT", "AT+CMGF=1", "AT+CNMI=2,1,0,1,0"])
        """
        if not self._core.is_running():
            self.start()

        if commands is None:
            commands = self.config.init_commands

        sequencer = self._core.sequencer
        tasks = []
        for command in commands:
            task = Task(
                id=sequencer.next_id(),
                description=command,
                data=f"{command}\r".encode(),
                expected="OK"
            )
            sequencer.enqueue(task)
            tasks.append(task)

        logger.info(f"Queued {len(tasks)} init command(s)")
        sequencer.dispatch()
        return tasks

    def stop(self) -> None:
        """Stop the modem reader thread."""
        self._core.stop()
        logger.info("Modem stopped")

    def close(self) -> None:
        """
        Close the modem connection.

        Stops the reader thread and closes the transport.
        """
        self._core.close()
        logger.info("Modem closed")

    def send_sms(self, phone_number: int | str, text: str) -> DeliveryReportStream:
        """
        Send an SMS and follow its delivery reports.

        Shortcut for ``modem.sms.send_sms()``.
        """
        return self.sms.send_sms(phone_number, text)

    def on_received_sms(self) -> EventStream[ReceivedSMS]:
        """
        Get a stream of inbound messages.

        Shortcut for ``modem.sms.on_received_sms()``.
        """
        return self.sms.on_received_sms()

    def send_command(
        self,
        command: str,
        expected: str = "OK",
        on_result: Optional[Callable[[str], None]] = None
    ) -> Task:
        """
        Queue a raw AT command.

        For commands not covered by the SMS manager. The command runs after
        everything already queued.

        Args:
            command: AT command (e.g., "AT+CSQ")
            expected: Substring of the line that completes the command
            on_result: Called with that line

        Returns:
            The queued task

        Example:

        .. code-block:: python

            modem.send_command("AT+CSQ", expected="+CSQ:", on_result=print)
        """
        return self._core.sequencer.submit(
            f"{command}\r".encode(),
            expected=expected,
            on_result=on_result or (lambda line: None),
            description=command
        )

    @property
    def status(self) -> ModemStatus:
        """Current modem status (a copy)."""
        return self._core.status.status

    def add_status_listener(self, listener: StatusListener) -> None:
        """
        Get notified of every status change.

        Args:
            listener: Called with a ModemStatus copy after each change
        """
        self._core.status.add_listener(listener)

    def remove_status_listener(self, listener: StatusListener) -> bool:
        return self._core.status.remove_listener(listener)

    def add_error_listener(self, listener: ErrorListener) -> None:
        """
        Get notified of every modem error.

        Args:
            listener: Called with the exception describing the error
        """
        self._core.status.add_error_listener(listener)

    def remove_error_listener(self, listener: ErrorListener) -> bool:
        return self._core.status.remove_error_listener(listener)

    def register_line_callback(self, callback: LineCallback, prefix: str = "") -> None:
        """
        Subscribe to raw modem lines.

        Args:
            callback: Function called with each matching line.
                     Signature: callback(line: str) -> None
            prefix: Line prefix to match (empty matches all)

        Example:

        .. code-block:: python

            modem.register_line_callback(lambda line: print(f"<< {line}"))
        """
        self._core.register_line_callback(callback, prefix)

    def unregister_line_callback(self, callback: LineCallback) -> bool:
        """
        Remove a line callback.

        Returns:
            True if callback was removed, False if not found
        """
        return self._core.unregister_line_callback(callback)

    def get_log(self) -> list[str]:
        """
        Get recent modem traffic.

        Returns:
            Entries oldest first; "<< " for lines received, ">> " for
            data written, control characters shown as <CR>, <CTRL-Z>, ...
        """
        return self._core.get_log()

    @property
    def is_running(self) -> bool:
        """
        Check if the modem reader thread is running.

        Returns:
            True if running, False otherwise
        """
        return self._core.is_running()

    @property
    def is_disconnected(self) -> bool:
        """
        Check if the device was disconnected.

        Returns:
            True if device disconnected, False otherwise
        """
        return self._core.is_disconnected()

    def __enter__(self):
        """
        Context manager entry.

        Starts the modem and sends the init commands if not already running.
        """
        if not self.is_running:
            self.init()
        return self

    def __exit__(self, *exc):
        """
        Context manager exit.

        Automatically closes the modem connection.
        """
        self.close()

    def __repr__(self) -> str:
        """String representation of modem."""
        state = "running" if self.is_running else "stopped"
        return f"<SMSModem status={state} connected={self.status.is_connected}>"
