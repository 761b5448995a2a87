"""
Received SMS decoder.

Turns +CMTI notifications into read (AT+CMGR) and delete (AT+CMGD)
commands and reassembles the multi-line +CMGR answer into ReceivedSMS
records.
"""

import logging
import threading
from collections import deque
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Deque, Iterable, Optional

from ..exceptions import ATParseError, GSMModemError
from ..parsers.sms import CMTIParser, CMGRHeaderParser
from ..types import DecoderState, ReceivedSMS

if TYPE_CHECKING:
    from ..core import ModemCore

logger = logging.getLogger(__name__)

ReceivedSMSCallback = Callable[[ReceivedSMS], None]

CMTI_PREFIX = "+CMTI:"
CMGR_PREFIX = "+CMGR:"
CDS_PREFIX = "+CDS:"
FINAL_OK = "OK"


class ReceivedSMSDecoder:
    """
    Two-state decoder for stored messages.

    IDLE
        ``+CMTI: "SM",<index>`` queues ``AT+CMGR=<index>``.
    READING_BODY
        Entered on the ``+CMGR:`` header. Every following line is body
        text until a line equal to ``OK``, which emits the message,
        queues ``AT+CMGD=<index>`` and returns to IDLE.

    Only one message is reassembled at a time. Notifications arriving in
    the meantime queue their own reads, which the sequencer runs after the
    current one, so headers are matched to indexes in FIFO order.
    """

    def __init__(
        self,
        modem_core: "ModemCore",
        strip_prefixes: Iterable[str] = (),
        reference_year: Optional[int] = None
    ) -> None:
        """
        Initialize decoder.

        Args:
            modem_core: ModemCore instance for line input and task queueing
            strip_prefixes: Prefixes removed from sender numbers
            reference_year: Year whose century completes two digit years
        """
        self.modem = modem_core
        self.state = DecoderState.IDLE

        self._cmti_parser = CMTIParser()
        self._header_parser = CMGRHeaderParser(strip_prefixes, reference_year)

        # Indexes of reads queued but not yet answered; guarded by _lock
        self._pending_indexes: Deque[int] = deque()

        self._listeners: list[ReceivedSMSCallback] = []
        self._lock = threading.Lock()
        self._attached = False

        self._reset()
        logger.debug("Initialized ReceivedSMSDecoder")

    def _reset(self) -> None:
        self._index: Optional[int] = None
        self._phone_number: Optional[int] = None
        self._submit_time: Optional[datetime] = None
        self._body: list[str] = []

    def attach(self) -> None:
        """Start handling modem lines (idempotent)."""
        with self._lock:
            if self._attached:
                return
            self._attached = True
        self.modem.bus.subscribe(self.on_line)
        logger.info("Listening for received SMS")

    def detach(self) -> None:
        """Stop handling modem lines."""
        with self._lock:
            if not self._attached:
                return
            self._attached = False
        self.modem.bus.unsubscribe(self.on_line)

    @property
    def attached(self) -> bool:
        with self._lock:
            return self._attached

    def add_listener(self, callback: ReceivedSMSCallback) -> None:
        with self._lock:
            self._listeners.append(callback)

    def remove_listener(self, callback: ReceivedSMSCallback) -> bool:
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)
                return True
            return False

    def on_line(self, line: str) -> None:
        """
        Feed one modem line through the state machine.

        Args:
            line: Line received from the modem
        """
        if CMTI_PREFIX in line:
            self._on_new_message(line)
        elif CMGR_PREFIX in line:
            self._on_header(line)
        elif self.state is DecoderState.READING_BODY:
            if line.strip() == FINAL_OK:
                self._on_complete()
            elif not line.startswith(CDS_PREFIX):
                self._body.append(line)

    def _on_new_message(self, line: str) -> None:
        try:
            index = self._cmti_parser.parse(line)
        except ATParseError as e:
            logger.warning(f"Dropping malformed notification: {e}")
            return

        logger.info(f"New SMS stored at index {index}")
        with self._lock:
            self._pending_indexes.append(index)
        self.modem.sequencer.submit(
            f"AT+CMGR={index}\r".encode(),
            expected=CMGR_PREFIX,
            on_error=lambda error, index=index: self._forget(index, error)
        )

    def _forget(self, index: int, error: GSMModemError) -> None:
        logger.warning(f"Reading SMS {index} failed: {error}")
        with self._lock:
            if index in self._pending_indexes:
                self._pending_indexes.remove(index)

    def _on_header(self, line: str) -> None:
        if self.state is DecoderState.READING_BODY:
            logger.warning(f"Discarding unfinished SMS {self._index}")

        self._reset()
        self.state = DecoderState.READING_BODY

        with self._lock:
            self._index = self._pending_indexes.popleft() if self._pending_indexes else None
        if self._index is None:
            logger.warning("Message header without a pending read, index unknown")

        try:
            header = self._header_parser.parse(line)
        except ATParseError as e:
            logger.warning(f"Malformed message header, sender unknown: {e}")
            return

        self._phone_number = header.phone_number
        self._submit_time = header.submit_time

    def _on_complete(self) -> None:
        index = self._index
        sms = ReceivedSMS(
            phone_number=self._phone_number,
            text="\n".join(self._body).strip(),
            id=index if index is not None else 0,
            submit_time=self._submit_time
        )
        self._reset()
        self.state = DecoderState.IDLE

        logger.info(f"Received SMS {sms.id} from {sms.phone_number}")
        self._emit(sms)

        if index is None:
            return
        self.modem.sequencer.submit(f"AT+CMGD={index}\r".encode(), expected=FINAL_OK)

    def _emit(self, sms: ReceivedSMS) -> None:
        with self._lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(sms)
            except Exception as e:
                logger.error(f"Received SMS listener failed: {e}", exc_info=True)
