"""
Line callback example.

Prints modem lines and status changes as they happen.
"""

import time
from smsmodem import SMSModem

# Replace with your serial port
PORT = "/dev/ttyUSB0"


def on_notification(line: str):
    """Handle any unsolicited +C... line."""
    print(f"\n[MODEM] {line}")


def on_status(status):
    """Handle status changes."""
    if status.is_errored:
        print(f"\n[ERROR] {status.last_error}")


def main():
    """Main function."""
    print("smsmodem - Line Callback Example\n")

    with SMSModem(port=PORT, debug_mode=True) as modem:
        modem.register_line_callback(on_notification, prefix="+C")
        modem.add_status_listener(on_status)

        modem.send_command("AT+CSQ", expected="+CSQ:", on_result=print)

        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            print("\nStopping...")

        print("\nRecent traffic:")
        for entry in modem.get_log():
            print(entry)


if __name__ == "__main__":
    main()
