"""
SMS manager.

Handles SMS messaging operations (send with delivery reports, receive).
Works in text mode (AT+CMGF=1) only.
"""

import logging
from typing import TYPE_CHECKING, Iterable, Optional

from .delivery import DeliveryReportStream
from .inbox import ReceivedSMSDecoder
from ..config import DEFAULT_SEND_DELAY, DEFAULT_STRIP_PREFIXES
from ..core.stream import EventStream
from ..exceptions import DeviceDisconnectedError, GSMModemError
from ..types import ReceivedSMS

if TYPE_CHECKING:
    from ..core import ModemCore

logger = logging.getLogger(__name__)


class SMSManager:
    """
    Manages SMS messaging operations.

    Features:
    - Send SMS and follow its delivery status reports
    - Receive SMS: read on +CMTI, delete from memory once read
    - Pacing between consecutive sends
    """

    def __init__(
        self,
        modem_core: "ModemCore",
        send_delay: float = DEFAULT_SEND_DELAY,
        strip_prefixes: Iterable[str] = DEFAULT_STRIP_PREFIXES,
        reference_year: Optional[int] = None
    ) -> None:
        """
        Initialize SMS manager.

        Args:
            modem_core: ModemCore instance for AT command execution
            send_delay: Seconds to wait before each AT+CMGS
            strip_prefixes: Prefixes removed from sender numbers
            reference_year: Year whose century completes two digit years
                            (None = current year)
        """
        self.modem = modem_core
        self.send_delay = send_delay
        self.reference_year = reference_year
        self.decoder = ReceivedSMSDecoder(
            modem_core,
            strip_prefixes=strip_prefixes,
            reference_year=reference_year
        )

        logger.debug("Initialized SMSManager")

    def send_sms(self, phone_number: int | str, text: str) -> DeliveryReportStream:
        """
        Send an SMS message in text mode.

        The commands are queued immediately; the returned stream yields
        the delivery reports as they arrive.

        Args:
            phone_number: Recipient phone number
            text: Message text

        Returns:
            Stream of DeliveredSMSReport, ending after the final report

        Example:

        .. code-block:: python

            reports = modem.sms.send_sms(912345678, "Hello!")
            for report in reports:
                print(f"Status: {report.status}")
        """
        logger.info(f"Sending SMS to {phone_number}")

        stream = DeliveryReportStream(
            self.modem,
            phone_number,
            text,
            reference_year=self.reference_year
        )
        stream.submit(delay=self.send_delay)
        return stream

    def start_receiving(self) -> None:
        """
        Start reading and deleting inbound messages.

        Called implicitly by on_received_sms().
        """
        self.decoder.attach()

    def on_received_sms(self) -> EventStream[ReceivedSMS]:
        """
        Get a stream of inbound messages.

        Each message is yielded once, after it has been read in full. The
        stream never ends on its own, except with DeviceDisconnectedError
        if the modem goes away. Close it to stop listening.

        Returns:
            Stream of ReceivedSMS

        Example:

        .. code-block:: python

            for sms in modem.sms.on_received_sms():
                print(f"{sms.phone_number}: {sms.text}")
        """
        stream: EventStream[ReceivedSMS] = EventStream(name="Received SMS")

        def on_error(error: GSMModemError) -> None:
            if isinstance(error, DeviceDisconnectedError):
                stream.fail(error)

        def detach() -> None:
            self.decoder.remove_listener(stream.put)
            self.modem.status.remove_error_listener(on_error)

        self.decoder.add_listener(stream.put)
        self.modem.status.add_error_listener(on_error)
        stream.add_close_callback(detach)

        self.start_receiving()
        return stream
