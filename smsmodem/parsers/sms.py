"""
SMS line parsers.

Parses the text mode SMS lines the modem sends:
- +CMTI URC (New message stored)
- +CMGS (Message reference after sending)
- +CDS URC (Delivery status report)
- +CMGR header (Read message)
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from .base import ResponseParser, IntValueParser, CommaSeparatedParser
from ..exceptions import ATParseError
from ..types import DeliveredSMSReport, MessageHeader

logger = logging.getLogger(__name__)

_DATE_RE = re.compile(r"^(\d{2})/(\d{2})/(\d{2})$")
_TIME_RE = re.compile(r"^(\d{2}):(\d{2}):(\d{2})(?:([+-])(\d{1,2}))?$")

# +CMGR: ["<stat>",]"<oa>",[<alpha>],"<scts>"[,...]
_CMGR_RE = re.compile(
    r'\+CMGR:\s*'
    r'(?:"(?P<status>(?:REC|STO) [A-Z]+)",)?'
    r'"(?P<sender>[^"]*)",'
    r'(?:"[^"]*")?'
    r'(?:,"(?P<date>\d{2}/\d{2}/\d{2}),(?P<time>\d{2}:\d{2}:\d{2}[+-]\d{1,2})")?'
)


def parse_timestamp(
    date: str,
    time: str,
    reference_year: Optional[int] = None
) -> datetime:
    """
    Build a datetime from a modem "YY/MM/DD" date and "HH:MM:SS±ZZ" time.

    The wire format carries a two digit year, so the century is taken from
    ``reference_year`` (default: the current year). The zone is given in
    quarter hours (3GPP TS 23.040); an out of range zone falls back to UTC.

    Args:
        date: Date field (e.g., "19/12/21")
        time: Time field (e.g., "00:04:39+00")
        reference_year: Year whose century is assumed

    Returns:
        Timezone-aware datetime

    Raises:
        ATParseError: If either field is malformed
    """
    date_match = _DATE_RE.match(date.strip())
    time_match = _TIME_RE.match(time.strip())
    if not date_match or not time_match:
        raise ATParseError(f"Invalid timestamp: {date},{time}")

    if reference_year is None:
        reference_year = datetime.now().year
    century = reference_year // 100 * 100

    yy, month, day = (int(value) for value in date_match.groups())
    hour, minute, second = (int(value) for value in time_match.groups()[:3])
    sign, offset = time_match.group(4), time_match.group(5)

    quarters = int(offset) if offset else 0
    if sign == "-":
        quarters = -quarters

    zone = timedelta(minutes=15 * quarters)
    if abs(zone) >= timedelta(hours=24):
        logger.warning(f"Zone {sign}{offset} out of range, assuming UTC")
        zone = timedelta(0)

    try:
        return datetime(
            century + yy, month, day, hour, minute, second,
            tzinfo=timezone(zone)
        )
    except ValueError as e:
        raise ATParseError(f"Invalid timestamp: {date},{time}") from e


def parse_phone_number(raw: str) -> Optional[int]:
    """
    Convert an address field to an integer.

    A leading "+" is dropped. Alphanumeric senders give None.
    """
    digits = raw.strip().lstrip("+")
    if not digits.isdigit():
        return None
    return int(digits)


def normalize_phone_number(raw: str, strip_prefixes: Iterable[str] = ()) -> Optional[int]:
    """
    Normalize a sender number.

    A leading "+" becomes "00", then the first matching prefix from
    ``strip_prefixes`` is removed.

    Example:

    .. code-block:: python

        >>> normalize_phone_number("+351912345678", ["00351"])
        912345678
    """
    number = raw.strip()
    if number.startswith("+"):
        number = "00" + number[1:]

    for prefix in strip_prefixes:
        if prefix and number.startswith(prefix):
            number = number[len(prefix):]
            break

    if not number.isdigit():
        return None
    return int(number)


class CMTIParser(ResponseParser[int]):
    """Parser for +CMTI (new message stored) notifications."""

    def __init__(self):
        self._parser = CommaSeparatedParser("+CMTI:", expected_parts=2)

    def parse(self, line: str) -> int:
        """
        Parse +CMTI notification.

        Expected format: '+CMTI: "SM",3'

        Returns:
            Memory index of the new message
        """
        parts = self._parser.parse(line)
        try:
            return int(parts[1])
        except ValueError as e:
            raise ATParseError(f"Invalid message index: {parts[1]!r}", response=[line]) from e


class CMGSParser(IntValueParser):
    """
    Parser for the +CMGS result of a sent message.

    Expected format: "+CMGS: 238"
    """

    def __init__(self):
        super().__init__("+CMGS:")


class CDSParser(ResponseParser[DeliveredSMSReport]):
    """Parser for +CDS (delivery status report) notifications."""

    def __init__(self, reference_year: Optional[int] = None):
        """
        Initialize parser.

        Args:
            reference_year: Year whose century completes two digit years
                            (None = current year at parse time)
        """
        self.reference_year = reference_year
        self._parser = CommaSeparatedParser("+CDS:", expected_parts=9)

    def parse(self, line: str) -> DeliveredSMSReport:
        """
        Parse +CDS notification.

        Expected format:
            +CDS: 6,238,"910000000",129,"19/12/21,00:04:39+00","19/12/21,00:04:41+00",0

        Splitting on commas also splits both timestamps, giving nine
        fields: fo, mr, ra, tora, scts date, scts time, dt date, dt time, st.
        """
        parts = self._parser.parse(line)

        try:
            return DeliveredSMSReport(
                first_octet=int(parts[0]),
                id=int(parts[1]),
                phone_number=parse_phone_number(parts[2]),
                submit_time=parse_timestamp(parts[4], parts[5], self.reference_year),
                delivery_time=parse_timestamp(parts[6], parts[7], self.reference_year),
                status=int(parts[8])
            )
        except (ValueError, ATParseError) as e:
            raise ATParseError(f"Failed to parse status report: {e}", response=[line]) from e


class CMGRHeaderParser(ResponseParser[MessageHeader]):
    """Parser for the header line of a text mode +CMGR response."""

    def __init__(
        self,
        strip_prefixes: Iterable[str] = (),
        reference_year: Optional[int] = None
    ):
        """
        Initialize parser.

        Args:
            strip_prefixes: Prefixes removed from the sender number
            reference_year: Year whose century completes two digit years
        """
        self.strip_prefixes = tuple(strip_prefixes)
        self.reference_year = reference_year

    def parse(self, line: str) -> MessageHeader:
        """
        Parse +CMGR header.

        Expected formats:
            +CMGR: "REC UNREAD","+351912345678",,"19/12/21,10:00:00+00"
            +CMGR: "+351912345678",,"19/12/21,10:00:00+00"
        """
        match = _CMGR_RE.search(line)
        if not match:
            raise ATParseError(f"Could not parse CMGR header: {line}", response=[line])

        submit_time = None
        if match.group("date"):
            try:
                submit_time = parse_timestamp(
                    match.group("date"), match.group("time"), self.reference_year
                )
            except ATParseError as e:
                logger.warning(f"Keeping header without submit time: {e}")

        return MessageHeader(
            phone_number=normalize_phone_number(match.group("sender"), self.strip_prefixes),
            submit_time=submit_time,
            status=match.group("status")
        )
