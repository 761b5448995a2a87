"""
Data types and structures for smsmodem.

Provides typed representations of messages, reports and modem state.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Optional


class DecoderState(Enum):
    """States of the received SMS decoder."""
    IDLE = "idle"
    READING_BODY = "reading_body"


class DeliveryStatus(IntEnum):
    """
    Well-known <st> values of a +CDS status report (3GPP TS 23.040).

    Only RECEIVED ends a report sequence; anything else may be followed by
    another report for the same message.
    """
    RECEIVED = 0
    FORWARDED_UNCONFIRMED = 1
    REPLACED = 2
    CONGESTION = 32
    SME_BUSY = 33
    NO_RESPONSE_FROM_SME = 34
    SERVICE_REJECTED = 35
    QUALITY_NOT_AVAILABLE = 36
    ERROR_IN_SME = 37


class ModemError(str, Enum):
    """Error markers stored in ModemStatus.last_error."""
    DISCONNECTED = "Modem disconnected"
    UNDEFINED = "Undefined error"


@dataclass(frozen=True)
class SMS:
    """An SMS text and the subscriber number it belongs to."""
    phone_number: Optional[int]  # Subscriber number, None when not numeric
    text: str                    # Message text


@dataclass(frozen=True)
class ReceivedSMS(SMS):
    """
    SMS read back from modem memory.

    Produced once per +CMTI notification after the whole +CMGR body has
    been read.
    """
    id: int = 0                              # Index in modem/SIM memory
    submit_time: Optional[datetime] = None   # <scts> arrival time at the SC


@dataclass(frozen=True)
class DeliveredSMSReport:
    """
    Delivery status report from a +CDS notification.

    Text mode layout:
        +CDS: <fo>,<mr>,<ra>,<tora>,<scts>,<dt>,<st>
    """
    first_octet: int                 # <fo> first octet of the report PDU
    id: int                          # <mr> message reference from +CMGS
    phone_number: Optional[int]      # <ra> recipient address
    submit_time: datetime            # <scts> arrival time at the SC
    delivery_time: datetime          # <dt> discharge time
    status: int                      # <st> status as coded in the PDU

    @property
    def is_final(self) -> bool:
        """Check if this report ends the sequence (message received)."""
        return self.status == DeliveryStatus.RECEIVED


@dataclass
class ModemStatus:
    """
    Connection and error state of the modem.

    Only the StatusTracker mutates instances; everyone else gets copies.
    """
    is_connected: bool = False
    is_errored: bool = False
    last_error: Optional[str] = None
    last_received_data: Optional[str] = None
    debug_mode: bool = False


@dataclass(frozen=True)
class MessageHeader:
    """Header line of a text mode +CMGR response."""
    phone_number: Optional[int]              # Normalized sender number
    submit_time: Optional[datetime] = None   # <scts> arrival time at the SC
    status: Optional[str] = None             # e.g. "REC UNREAD", if reported
