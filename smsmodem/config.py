"""
Modem configuration.

Defaults match a text-mode modem storing messages and status reports on
the SIM card.
"""

from dataclasses import dataclass, field
from typing import Optional

# ESC first to abort a half-typed message left over from a previous session
DEFAULT_INIT_COMMANDS: tuple[str, ...] = (
    "\x1bAT",
    "AT+CMGF=1",
    "AT+CNMI=1,1,0,1,0",
    "AT+CNMI=2",
    "AT+CSMP=49,167,0,0",
    'AT+CPMS="SM","SM","SM"',
)

DEFAULT_BAUDRATE = 230400
DEFAULT_SEND_DELAY = 10.0
DEFAULT_STRIP_PREFIXES: tuple[str, ...] = ("00351",)


@dataclass
class ModemConfig:
    """
    Settings for an SMSModem.

    Attributes:
        port: Serial port path (e.g., "/dev/ttyUSB0" or "COM10")
        baudrate: Serial port baud rate
        init_commands: AT commands sent by init(), each waiting for OK
        send_delay: Seconds to wait before AT+CMGS so status reports of
            the previous message are not lost
        debug_mode: Log all modem traffic at INFO level
        auto_open: Open the port and run init commands on construction
        read_timeout: Serial read timeout in seconds
        task_timeout: Seconds before an unanswered task is failed
            (None waits forever)
        strip_prefixes: International prefixes removed from sender numbers
            after "+" has been rewritten to "00"
        receive_sms: Start reading and deleting inbound SMS on start
        max_log_size: Number of traffic entries kept by get_log()
    """
    port: Optional[str] = None
    baudrate: int = DEFAULT_BAUDRATE
    init_commands: list[str] = field(default_factory=lambda: list(DEFAULT_INIT_COMMANDS))
    send_delay: float = DEFAULT_SEND_DELAY
    debug_mode: bool = False
    auto_open: bool = False
    read_timeout: float = 1.0
    task_timeout: Optional[float] = None
    strip_prefixes: tuple[str, ...] = DEFAULT_STRIP_PREFIXES
    receive_sms: bool = False
    max_log_size: int = 1000

    def __post_init__(self) -> None:
        if self.send_delay < 0:
            raise ValueError(f"send_delay must be >= 0, got {self.send_delay}")
        if self.task_timeout is not None and self.task_timeout <= 0:
            raise ValueError(f"task_timeout must be > 0, got {self.task_timeout}")
        self.strip_prefixes = tuple(self.strip_prefixes)
