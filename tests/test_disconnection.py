"""
Tests for device disconnection handling.
"""

import pytest
import time
from smsmodem import SMSModem, MockTransport, DeviceDisconnectedError, ModemError, TransportError


@pytest.mark.timeout(5)
def test_disconnection_callback():
    """Test that disconnection callback is called when device disconnects."""
    callback_called = [False]
    callback_error = [None]

    def on_disconnect(error):
        callback_called[0] = True
        callback_error[0] = error

    # Create modem with disconnect callback
    transport = MockTransport()
    modem = SMSModem(transport=transport, on_disconnect=on_disconnect)
    modem.start()

    # Verify initial state
    assert modem.is_running is True
    assert modem.is_disconnected is False
    assert callback_called[0] is False

    # Simulate disconnection
    transport.close()

    # Wait for reader thread to detect disconnection
    time.sleep(0.5)

    # Verify callback was called
    assert callback_called[0] is True
    assert isinstance(callback_error[0], DeviceDisconnectedError)

    # Verify modem state
    assert modem.is_disconnected is True
    assert modem.is_running is False

    modem.close()


@pytest.mark.timeout(5)
def test_disconnection_updates_status():
    """Test that a disconnect is reported through the status."""
    statuses = []
    transport = MockTransport()
    modem = SMSModem(transport=transport)
    modem.add_status_listener(statuses.append)
    modem.start()

    assert modem.status.is_connected is True

    transport.close()
    time.sleep(0.5)

    status = modem.status
    assert status.is_connected is False
    assert status.is_errored is True
    assert status.last_error == ModemError.DISCONNECTED.value
    assert statuses[-1] == status

    modem.close()
    # close() after a disconnect does not report a second change
    assert statuses[-1] == status


@pytest.mark.timeout(5)
def test_disconnection_fails_pending_send():
    """Test that a message waiting for reports fails on disconnect."""
    transport = MockTransport()
    transport.add_auto_response("AT+CMGS=", [], prompt=True)
    transport.add_auto_response("hello", ["+CMGS: 12", "OK"])

    modem = SMSModem(transport=transport, send_delay=0)
    modem.start()
    reports = modem.send_sms(912345678, "hello")

    time.sleep(0.2)
    assert reports.reference == 12

    transport.close()

    with pytest.raises(DeviceDisconnectedError):
        reports.get(timeout=2)

    modem.close()


@pytest.mark.timeout(5)
def test_disconnection_fails_received_stream():
    """Test that the received SMS stream ends with the disconnect."""
    transport = MockTransport()
    modem = SMSModem(transport=transport)
    modem.start()
    messages = modem.on_received_sms()

    transport.close()

    with pytest.raises(DeviceDisconnectedError):
        messages.get(timeout=2)

    modem.close()


@pytest.mark.timeout(5)
def test_disconnection_stops_reader_thread():
    """Test that reader thread stops gracefully on disconnection."""
    transport = MockTransport()
    modem = SMSModem(transport=transport)
    modem.start()

    # Verify running
    assert modem.is_running is True

    # Simulate disconnection
    transport.close()

    # Wait for reader thread to stop
    time.sleep(0.5)

    # Verify stopped
    assert modem.is_running is False
    assert modem.is_disconnected is True

    modem.close()


@pytest.mark.timeout(5)
def test_no_infinite_loop_on_disconnection():
    """Test that disconnection doesn't cause infinite error loop."""
    error_count = [0]

    def on_disconnect(error):
        error_count[0] += 1

    transport = MockTransport()
    modem = SMSModem(transport=transport, on_disconnect=on_disconnect)
    modem.start()

    # Simulate disconnection
    transport.close()

    # Wait a bit longer than normal
    time.sleep(1.0)

    # Callback should only be called once, not looping
    assert error_count[0] == 1

    # Thread should be stopped
    assert modem.is_running is False

    modem.close()


@pytest.mark.timeout(10)
def test_consecutive_error_limit():
    """Test that too many consecutive errors stops the reader thread."""
    # Create a custom transport that always raises regular errors
    class ErrorTransport(MockTransport):
        def __init__(self):
            super().__init__()
            self.read_count = 0

        def read(self, max_bytes=1024):
            self.read_count += 1
            # Raise regular error (not disconnection)
            raise Exception("Test error")

    transport = ErrorTransport()
    modem = SMSModem(transport=transport)
    modem.start()

    # Wait for error limit to be reached (max 5 errors with backoff)
    # With exponential backoff: 0.1s, 0.2s, 0.4s, 0.8s = ~1.5s total
    time.sleep(3.0)

    # Should have stopped after max errors
    assert modem.is_running is False
    # Should have tried multiple times (up to max_consecutive_errors)
    assert transport.read_count >= 5

    modem.close()


@pytest.mark.timeout(5)
def test_disconnection_without_callback():
    """Test that disconnection works even without a callback."""
    transport = MockTransport()
    modem = SMSModem(transport=transport)  # No callback
    modem.start()

    assert modem.is_running is True

    # Simulate disconnection
    transport.close()

    # Wait for detection
    time.sleep(0.5)

    # Should still handle disconnection gracefully
    assert modem.is_disconnected is True
    assert modem.is_running is False

    modem.close()


@pytest.mark.timeout(5)
def test_successful_reads_reset_error_counter():
    """Test that successful reads reset the consecutive error counter."""
    # This tests that transient errors don't accumulate
    transport = MockTransport()
    modem = SMSModem(transport=transport)
    modem.start()

    # Add some responses - reader should process these successfully
    transport.add_response(['+CMTI: "SM",3'])
    transport.add_response(["OK"])

    # Wait for reads
    time.sleep(0.5)

    # Should still be running (errors were reset)
    assert modem.is_running is True

    modem.close()


@pytest.mark.timeout(5)
def test_restart_after_disconnection():
    """Test that the modem can be started again once the device is back."""
    transport = MockTransport()
    modem = SMSModem(transport=transport)
    modem.start()

    transport.close()
    time.sleep(0.5)
    assert modem.is_disconnected is True

    modem.start()

    assert modem.is_running is True
    assert modem.is_disconnected is False
    assert modem.status.is_connected is True

    modem.close()


@pytest.mark.timeout(10)
def test_read_failures_reach_status_and_pending_sends():
    """Test that failing reads are reported and fail a pending send."""
    class FailingReadTransport(MockTransport):
        def read(self, max_bytes=1024):
            raise TransportError("Serial read failed: framing error")

    errors = []
    transport = FailingReadTransport()
    modem = SMSModem(transport=transport, send_delay=0)
    modem.add_error_listener(errors.append)
    modem.start()
    reports = modem.send_sms(912345678, "hello")

    with pytest.raises(TransportError):
        reports.get(timeout=2)

    # Wait for the reader thread to give up
    time.sleep(3.0)

    status = modem.status
    assert modem.is_running is False
    assert modem.is_disconnected is True
    assert status.is_connected is False
    assert status.is_errored is True
    assert any(isinstance(error, DeviceDisconnectedError) for error in errors)

    modem.close()
