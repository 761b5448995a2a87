"""
Exceptions for the smsmodem library.

Carries the AT command and modem lines involved so failures can be traced
back to the serial traffic that caused them.
"""

from typing import Optional


class GSMModemError(Exception):
    """
    Base exception for GSM modem errors.

    All smsmodem exceptions inherit from this class.
    """

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        response: Optional[list[str]] = None
    ) -> None:
        """
        Initialize exception with context.

        Args:
            message: Error description
            command: AT command that caused the error (if applicable)
            response: Modem lines involved (if applicable)
        """
        self.command = command
        self.response = response
        super().__init__(message)

    def __str__(self) -> str:
        """Format error message with context."""
        parts = [super().__str__()]

        if self.command:
            parts.append(f"Command: {self.command}")

        if self.response:
            parts.append(f"Response: {self.response}")

        return " | ".join(parts)


class TransportError(GSMModemError):
    """
    Raised when the transport layer fails.

    This indicates:
    - Serial port cannot be opened
    - A write to the port failed
    - Hardware communication failure
    """
    pass


class DeviceDisconnectedError(TransportError):
    """
    Raised when the device is disconnected during operation.

    This is fatal for the reader thread; the modem has to be reopened.
    """
    pass


class ATCommandError(GSMModemError):
    """
    Raised when the modem answers with an ERROR line.

    Covers plain ``ERROR`` as well as ``+CMS ERROR: <n>`` and
    ``+CME ERROR: <n>`` results.
    """
    pass


class ATParseError(GSMModemError):
    """
    Raised when a modem line cannot be parsed.

    This indicates:
    - Unexpected field layout in +CDS, +CMGR, +CMTI or +CMGS lines
    - Missing expected fields
    - Non-numeric data where a number is required
    """
    pass


class ATTimeoutError(GSMModemError):
    """
    Raised when the modem does not answer in time.

    Only produced when a task timeout is configured; without one a task
    whose expected answer never arrives stays in flight forever.
    """
    pass
