"""
Tests for the SMSModem interface, running the reader thread.
"""

import pytest
from smsmodem import (
    DEFAULT_INIT_COMMANDS,
    ATCommandError,
    MockTransport,
    ModemConfig,
    SMSModem,
)
from smsmodem.core import convert_invisible_characters

HEADER = '+CMGR: "REC UNREAD","+351912345678",,"19/12/21,10:00:00+00"'


@pytest.mark.timeout(5)
def test_init_waits_for_each_ok(wait_until):
    """Test init commands are written one at a time, each after OK."""
    transport = MockTransport()
    modem = SMSModem(transport=transport, send_delay=0)

    tasks = modem.init(["AT", "AT+CMGF=1", "AT+CNMI=2"])

    assert len(tasks) == 3
    assert modem.is_running is True
    assert wait_until(lambda: len(transport.written) == 1)

    for count in (2, 3):
        transport.add_response(["OK"])
        assert wait_until(lambda: len(transport.written) == count)

    transport.add_response(["OK"])
    assert wait_until(modem._core.sequencer.is_idle)
    assert transport.written_text() == ["AT\r", "AT+CMGF=1\r", "AT+CNMI=2\r"]

    modem.close()


@pytest.mark.timeout(5)
def test_init_default_commands(wait_until):
    """Test init() sends the configured commands, starting with ESC."""
    transport = MockTransport()
    modem = SMSModem(transport=transport)

    modem.init()
    assert transport.written == [b"\x1bAT\r"]

    for count in range(2, len(DEFAULT_INIT_COMMANDS) + 1):
        transport.add_response(["OK"])
        assert wait_until(lambda: len(transport.written) == count)

    assert transport.written_text() == [f"{command}\r" for command in DEFAULT_INIT_COMMANDS]

    modem.close()


@pytest.mark.timeout(5)
def test_auto_open():
    """Test auto_open starts the modem on construction."""
    transport = MockTransport()
    modem = SMSModem(transport=transport, auto_open=True, init_commands=["AT"])

    assert modem.is_running is True
    assert transport.written == [b"AT\r"]

    modem.close()


@pytest.mark.timeout(5)
def test_context_manager():
    """Test the context manager initializes and closes the modem."""
    transport = MockTransport()

    with SMSModem(transport=transport, init_commands=["AT"]) as modem:
        assert modem.is_running is True
        assert transport.written == [b"AT\r"]

    assert modem.is_running is False
    assert transport.is_open() is False


@pytest.mark.timeout(5)
def test_send_sms_end_to_end(modem, mock_transport, cds_line):
    """Test sending a message and reading its delivery reports."""
    mock_transport.add_auto_response("AT+CMGS=", [], prompt=True)
    mock_transport.add_auto_response(
        "hello",
        ["+CMGS: 12", "OK", cds_line(12, 1), cds_line(12, 0)]
    )

    reports = modem.send_sms(912345678, "hello")

    statuses = [reports.get(timeout=2).status, reports.get(timeout=2).status]
    assert statuses == [1, 0]
    with pytest.raises(StopIteration):
        reports.get(timeout=2)

    assert mock_transport.written_text() == ['AT+CMGS="912345678"\r', "hello\x1a"]


@pytest.mark.timeout(5)
def test_send_sms_error(modem, mock_transport):
    """Test a rejected message fails its report stream."""
    mock_transport.add_auto_response("AT+CMGS=", [], prompt=True)
    mock_transport.add_auto_response("hello", ["+CMS ERROR: 500"])

    reports = modem.send_sms(912345678, "hello")

    with pytest.raises(ATCommandError):
        reports.get(timeout=2)
    assert modem.status.is_errored is True


@pytest.mark.timeout(5)
def test_receive_sms_end_to_end(modem, mock_transport, wait_until):
    """Test a notified message is read, yielded and deleted."""
    mock_transport.add_auto_response("AT+CMGR=3", [HEADER, "hello", "", "world", "OK"])
    mock_transport.add_auto_response("AT+CMGD=3", ["OK"])

    messages = modem.on_received_sms()
    mock_transport.add_response(['+CMTI: "SM",3'])

    sms = messages.get(timeout=2)
    assert sms.id == 3
    assert sms.phone_number == 912345678
    assert sms.text == "hello\nworld"

    assert wait_until(lambda: "AT+CMGD=3\r" in mock_transport.written_text())
    messages.close()


@pytest.mark.timeout(5)
def test_receive_sms_config(wait_until):
    """Test receive_sms reads messages without a consumer."""
    transport = MockTransport()
    modem = SMSModem(transport=transport, receive_sms=True, init_commands=[])
    modem.start()

    transport.add_response(['+CMTI: "SM",9'])

    assert wait_until(lambda: transport.written_text() == ["AT+CMGR=9\r"])
    modem.close()


@pytest.mark.timeout(5)
def test_send_command(modem, mock_transport, wait_until):
    """Test raw commands complete on their expected line."""
    mock_transport.add_auto_response("AT+CSQ", ["+CSQ: 20,99", "OK"])
    results = []

    task = modem.send_command("AT+CSQ", expected="+CSQ:", on_result=results.append)

    assert task.description == "AT+CSQ"
    assert wait_until(lambda: results == ["+CSQ: 20,99"])


@pytest.mark.timeout(5)
def test_get_log(modem, mock_transport, wait_until):
    """Test traffic is logged in both directions with readable control characters."""
    mock_transport.add_auto_response("AT", ["OK"])

    modem.send_command("AT")

    assert wait_until(lambda: "<< OK" in modem.get_log())
    assert modem.get_log()[0] == ">> AT<CR>"


@pytest.mark.timeout(5)
def test_line_callback(modem, mock_transport, wait_until):
    """Test raw line subscriptions."""
    lines = []
    modem.register_line_callback(lines.append, "+CDS")

    mock_transport.add_response(["RING", '+CDS: 6,1,"1",129'])

    assert wait_until(lambda: lines == ['+CDS: 6,1,"1",129'])
    assert modem.unregister_line_callback(lines.append) is True


@pytest.mark.timeout(5)
def test_status_and_error_listeners(modem, mock_transport, wait_until):
    """Test ERROR lines reach status and error listeners."""
    errors = []
    modem.add_error_listener(errors.append)

    mock_transport.add_response(["ERROR"])

    assert wait_until(lambda: errors)
    assert isinstance(errors[0], ATCommandError)
    assert modem.status.last_error == "ERROR"
    assert modem.remove_error_listener(errors.append) is True


def test_status_connected(modem):
    """Test status reflects the open port."""
    assert modem.status.is_connected is True
    assert "running" in repr(modem)


def test_close_updates_status():
    """Test closing reports the modem as not connected."""
    modem = SMSModem(transport=MockTransport())
    modem.start()
    modem.close()

    assert modem.status.is_connected is False
    assert modem.status.is_errored is False


def test_requires_port_or_transport():
    """Test a modem needs somewhere to talk to."""
    with pytest.raises(ValueError):
        SMSModem()


def test_port_from_config():
    """Test the port may come from the configuration."""
    modem = SMSModem(config=ModemConfig(port="/dev/smsmodem-test"))

    assert modem.config.port == "/dev/smsmodem-test"
    assert modem.is_running is False


def test_config_overrides():
    """Test keyword overrides replace configuration fields."""
    config = ModemConfig(send_delay=5.0)
    modem = SMSModem(transport=MockTransport(), config=config, debug_mode=True)

    assert modem.config.send_delay == 5.0
    assert modem.config.debug_mode is True
    assert modem.sms.send_delay == 5.0
    assert config.debug_mode is False


def test_unknown_override():
    """Test misspelled settings are rejected."""
    with pytest.raises(TypeError):
        SMSModem(transport=MockTransport(), send_dely=1)


def test_config_defaults():
    """Test default settings."""
    config = ModemConfig()

    assert config.baudrate == 230400
    assert config.send_delay == 10.0
    assert config.task_timeout is None
    assert config.strip_prefixes == ("00351",)
    assert tuple(config.init_commands) == DEFAULT_INIT_COMMANDS


@pytest.mark.parametrize("settings", [
    {"send_delay": -1},
    {"task_timeout": 0},
])
def test_config_validation(settings):
    """Test invalid settings raise ValueError."""
    with pytest.raises(ValueError):
        ModemConfig(**settings)


def test_convert_invisible_characters():
    """Test control characters are made readable."""
    assert convert_invisible_characters("\x1bAT\r") == "<ESC>AT<CR>"
    assert convert_invisible_characters("hi\x1a") == "hi<CTRL-Z>"
    assert convert_invisible_characters("OK\r\n") == "OK<CR><LF>"
    assert convert_invisible_characters(None) == ""
