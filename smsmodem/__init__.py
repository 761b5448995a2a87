"""
smsmodem - Python library for sending and receiving SMS through a GSM modem.
"""

from .version import __version__
from .modem import SMSModem
from .config import ModemConfig, DEFAULT_INIT_COMMANDS
from .core import MockTransport, SerialTransport, Transport

from .types import (
    SMS,
    ReceivedSMS,
    DeliveredSMSReport,
    DeliveryStatus,
    ModemStatus,
    ModemError,
    DecoderState,
)

from .exceptions import (
    GSMModemError,
    TransportError,
    DeviceDisconnectedError,
    ATCommandError,
    ATParseError,
    ATTimeoutError,
)

__all__ = [
    "__version__",
    "SMSModem",
    "ModemConfig",
    "DEFAULT_INIT_COMMANDS",
    "MockTransport",
    "SerialTransport",
    "Transport",
    "SMS",
    "ReceivedSMS",
    "DeliveredSMSReport",
    "DeliveryStatus",
    "ModemStatus",
    "ModemError",
    "DecoderState",
    "GSMModemError",
    "TransportError",
    "DeviceDisconnectedError",
    "ATCommandError",
    "ATParseError",
    "ATTimeoutError",
]
