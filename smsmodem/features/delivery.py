"""
Delivery report correlation.

Sends one SMS and follows the +CDS status reports that belong to it.
"""

import logging
from typing import TYPE_CHECKING, Optional

from ..core.sequencer import PROMPT_MARKER, Task
from ..core.stream import EventStream
from ..exceptions import ATParseError, GSMModemError
from ..parsers.sms import CDSParser, CMGSParser
from ..types import DeliveredSMSReport

if TYPE_CHECKING:
    from ..core import ModemCore

logger = logging.getLogger(__name__)

CDS_PREFIX = "+CDS:"
CMGS_PREFIX = "+CMGS:"
CTRL_Z = "\x1a"


class DeliveryReportStream(EventStream[DeliveredSMSReport]):
    """
    Delivery reports of one outgoing SMS.

    Sending takes two tasks: ``AT+CMGS="<number>"`` (finished by the ">"
    prompt) and the message text ended by Ctrl-Z (finished by
    ``+CMGS: <mr>``). Every later ``+CDS:`` whose reference equals
    ``<mr>`` is yielded. The stream ends after a report with status 0;
    other statuses are intermediate and the network may send another
    report much later.

    Any modem error reported while the stream is open fails it. Tasks
    already queued still run, except that the message text is dropped if
    AT+CMGS itself timed out.

    Example:

    .. code-block:: python

        for report in modem.send_sms(912345678, "Hello!"):
            print(f"Status {report.status} at {report.delivery_time}")
    """

    def __init__(
        self,
        modem_core: "ModemCore",
        phone_number: int | str,
        text: str,
        reference_year: Optional[int] = None
    ) -> None:
        """
        Initialize stream and start listening.

        Args:
            modem_core: ModemCore instance for line input and task queueing
            phone_number: Recipient number
            text: Message text
            reference_year: Year whose century completes two digit years
        """
        super().__init__(name=f"Delivery reports for {phone_number}")
        self.modem = modem_core
        self.phone_number = phone_number
        self.text = text
        self.reference: Optional[int] = None

        self._cds_parser = CDSParser(reference_year)
        self._cmgs_parser = CMGSParser()
        self._tasks: list[Task] = []

        self.modem.status.add_error_listener(self._on_error)
        self.modem.bus.subscribe(self._on_line, prefix="")
        self.add_close_callback(self._detach)

    def submit(self, delay: float = 0.0) -> None:
        """
        Queue the two send tasks.

        Args:
            delay: Seconds to wait before writing AT+CMGS
        """
        sequencer = self.modem.sequencer
        command = f'AT+CMGS="{self.phone_number}"'

        address = Task(
            id=sequencer.next_id(),
            description=command,
            data=f"{command}\r".encode(),
            expected=PROMPT_MARKER,
            delay=delay,
            on_error=self._on_address_failed
        )
        body = Task(
            id=sequencer.next_id(),
            description=f"{self.text}<CTRL-Z>",
            data=f"{self.text}{CTRL_Z}".encode(),
            expected=CMGS_PREFIX,
            on_result=self._on_submitted,
            on_error=self._on_error
        )
        self._tasks = [address, body]

        sequencer.enqueue(address)
        sequencer.enqueue(body)
        sequencer.dispatch()
        logger.info(f"Queued SMS to {self.phone_number} (delay={delay}s)")

    def _on_submitted(self, line: str) -> None:
        try:
            self.reference = self._cmgs_parser.parse(line)
        except ATParseError as e:
            logger.error(f"SMS to {self.phone_number} sent without a usable reference: {e}")
            self.fail(e)
            return

        logger.info(f"SMS to {self.phone_number} accepted, reference {self.reference}")

    def _on_line(self, line: str) -> None:
        if self.reference is None or CDS_PREFIX not in line:
            return

        try:
            report = self._cds_parser.parse(line)
        except ATParseError as e:
            logger.warning(f"Dropping malformed status report: {e}")
            return

        if report.id != self.reference:
            return

        logger.info(f"Status report for reference {report.id}: status {report.status}")
        self.put(report)
        if report.is_final:
            self.finish()

    def _on_address_failed(self, error: GSMModemError) -> None:
        # Without the prompt the modem is not waiting for a message body
        for task in self._tasks:
            task.cancel()
        self._on_error(error)

    def _on_error(self, error: GSMModemError) -> None:
        if self.ended:
            return

        logger.warning(f"SMS to {self.phone_number} failed: {error}")
        self.fail(error)

    def _detach(self) -> None:
        self.modem.bus.unsubscribe(self._on_line)
        self.modem.status.remove_error_listener(self._on_error)
