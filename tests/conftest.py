"""
Pytest configuration and fixtures.

Provides shared test fixtures for smsmodem tests.
"""

import logging
import time

import pytest

from smsmodem import SMSModem
from smsmodem.core import MockTransport, ModemCore


# Enable logging for tests
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def _wait_until(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Poll ``predicate`` until it is true or ``timeout`` expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def wait_until():
    """
    Polling helper for tests running the reader thread.

    Example:
        def test_something(wait_until, mock_transport):
            assert wait_until(lambda: mock_transport.written)
    """
    return _wait_until


@pytest.fixture
def mock_transport():
    """
    Create a MockTransport instance for testing.

    Example:
        def test_something(mock_transport):
            mock_transport.add_response(["OK"])
            # ... test code ...
    """
    transport = MockTransport()
    yield transport
    transport.close()


@pytest.fixture
def modem_core(mock_transport):
    """
    Create an opened ModemCore without a reader thread.

    Tests push modem output through ``feed`` synchronously.

    Example:
        def test_line(modem_core, feed):
            feed('+CMTI: "SM",3')
    """
    core = ModemCore(transport=mock_transport)
    core.open()
    yield core
    core.close()


@pytest.fixture
def feed(modem_core):
    """Feed CRLF-terminated lines into the core's demultiplexer."""
    def _feed(*lines: str) -> None:
        for line in lines:
            modem_core.demux.feed((line + "\r\n").encode("utf-8"))
    return _feed


@pytest.fixture
def modem(mock_transport):
    """
    Create a started SMSModem with MockTransport and no pacing delay.

    Example:
        def test_send(modem, mock_transport):
            mock_transport.add_auto_response("AT+CMGS", [], prompt=True)
            reports = modem.send_sms(912345678, "hi")
    """
    modem_instance = SMSModem(transport=mock_transport, send_delay=0, init_commands=[])
    modem_instance.start()
    yield modem_instance
    modem_instance.close()


@pytest.fixture
def cds_line():
    """Build a +CDS status report line."""
    def _cds(reference: int, status: int, number: str = "910000000") -> str:
        return (
            f'+CDS: 6,{reference},"{number}",129,'
            f'"19/12/21,00:04:39+00","19/12/21,00:04:41+00",{status}'
        )
    return _cds
