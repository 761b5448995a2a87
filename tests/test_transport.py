"""
Tests for transport layer.
"""

import pytest
from smsmodem.core import MockTransport, SerialTransport
from smsmodem.exceptions import DeviceDisconnectedError, TransportError


def test_mock_transport_write():
    """Test MockTransport write operation."""
    transport = MockTransport()
    transport.open()

    written = transport.write(b"AT\r")
    assert written == 3
    assert transport.written == [b"AT\r"]

    transport.close()


def test_mock_transport_read():
    """Test MockTransport read operation."""
    transport = MockTransport()
    transport.open()

    transport.add_response(["OK"])

    assert transport.read() == b"OK\r\n"

    transport.close()


def test_mock_transport_multiple_lines():
    """Test lines added together are read back together."""
    transport = MockTransport()
    transport.open()

    transport.add_response(["+CMGS: 12", "OK"])

    assert transport.read() == b"+CMGS: 12\r\nOK\r\n"

    transport.close()


def test_mock_transport_read_respects_max_bytes():
    """Test long chunks are split across reads."""
    transport = MockTransport()
    transport.open()

    transport.feed(b"ABCDEF")

    assert transport.read(4) == b"ABCD"
    assert transport.read(4) == b"EF"

    transport.close()


def test_mock_transport_empty_read():
    """Test MockTransport returns empty when no data."""
    transport = MockTransport()
    transport.open()

    assert transport.read() == b""

    transport.close()


def test_mock_transport_auto_response():
    """Test scripted replies follow a matching write."""
    transport = MockTransport()
    transport.open()
    transport.add_auto_response("AT+CMGF=1", ["OK"])

    transport.write(b"AT+CSQ\r")
    assert transport.read() == b""

    transport.write(b"AT+CMGF=1\r")
    assert transport.read() == b"OK\r\n"

    transport.close()


def test_mock_transport_auto_response_prompt():
    """Test scripted prompt is sent without a line ending."""
    transport = MockTransport()
    transport.open()
    transport.add_auto_response("AT+CMGS=", [], prompt=True)

    transport.write(b'AT+CMGS="912345678"\r')

    assert transport.read() == b"\r\n> "

    transport.close()


def test_mock_transport_is_open():
    """Test MockTransport is_open status."""
    transport = MockTransport()
    assert transport.is_open() is False

    transport.open()
    assert transport.is_open() is True

    transport.close()
    assert transport.is_open() is False


def test_mock_transport_write_when_closed():
    """Test writing to a closed transport simulates a disconnect."""
    transport = MockTransport()

    with pytest.raises(DeviceDisconnectedError):
        transport.write(b"AT\r")


def test_mock_transport_read_when_closed():
    """Test reading from a closed transport simulates a disconnect."""
    transport = MockTransport()
    transport.open()
    transport.close()

    with pytest.raises(DeviceDisconnectedError):
        transport.read()


def test_mock_transport_simulated_write_failure():
    """Test fail_writes raises TransportError and records nothing."""
    transport = MockTransport()
    transport.open()
    transport.fail_writes = True

    with pytest.raises(TransportError):
        transport.write(b"AT\r")
    assert transport.written == []

    transport.close()


def test_mock_transport_simulated_open_failure():
    """Test fail_open raises TransportError."""
    transport = MockTransport()
    transport.fail_open = True

    with pytest.raises(TransportError):
        transport.open()
    assert transport.is_open() is False


def test_mock_transport_clear_responses():
    """Test MockTransport clear_responses."""
    transport = MockTransport()
    transport.open()

    transport.add_response(["Line 1"])
    transport.add_response(["Line 2"])
    transport.add_auto_response("AT", ["OK"])

    transport.clear_responses()

    assert transport.read() == b""
    transport.write(b"AT\r")
    assert transport.read() == b""

    transport.close()


def test_serial_transport_not_opened_on_init():
    """Test SerialTransport defers opening the port."""
    transport = SerialTransport("/dev/smsmodem-does-not-exist", baudrate=9600)

    assert transport.is_open() is False
    assert transport.baudrate == 9600


def test_serial_transport_open_failure():
    """Test a missing port raises TransportError."""
    transport = SerialTransport("/dev/smsmodem-does-not-exist")

    with pytest.raises(TransportError):
        transport.open()

    assert transport.is_open() is False
