"""
Feature managers for modem functionality.

- SMSManager: Sending with delivery reports, receiving
- DeliveryReportStream: Correlates +CDS reports with a sent message
- ReceivedSMSDecoder: Reassembles stored messages from +CMGR answers
"""

from .delivery import DeliveryReportStream
from .inbox import ReceivedSMSDecoder
from .sms import SMSManager

__all__ = [
    "DeliveryReportStream",
    "ReceivedSMSDecoder",
    "SMSManager",
]
