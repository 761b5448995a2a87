"""
Core modem infrastructure.

Provides low-level building blocks for modem communication:
- Transport: Serial communication abstraction
- LineDemultiplexer: CRLF line and prompt framing
- LineBus: Fan-out of modem lines to subscribers
- TaskSequencer: One-command-at-a-time execution
- StatusTracker: Connection and error state
- EventStream: Blocking iterator over results
- ModemCore: Coordination of all core components
"""

from .transport import Transport, SerialTransport, MockTransport
from .demux import LineDemultiplexer
from .bus import LineBus, LineCallback
from .sequencer import Task, TaskSequencer, PROMPT_MARKER
from .status import StatusTracker
from .stream import EventStream
from .modem import ModemCore, convert_invisible_characters

__all__ = [
    "Transport",
    "SerialTransport",
    "MockTransport",
    "LineDemultiplexer",
    "LineBus",
    "LineCallback",
    "Task",
    "TaskSequencer",
    "PROMPT_MARKER",
    "StatusTracker",
    "EventStream",
    "ModemCore",
    "convert_invisible_characters",
]
