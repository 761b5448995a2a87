"""
Send SMS example.

Sends one message and prints its delivery reports until it is delivered.
"""

import logging
from smsmodem import SMSModem, GSMModemError

# Replace with your serial port and recipient
PORT = "/dev/ttyUSB0"
NUMBER = 912345678


def main():
    """Main function."""
    logging.basicConfig(level=logging.INFO)
    print("smsmodem - Send SMS Example\n")

    with SMSModem(port=PORT, send_delay=1.0) as modem:
        reports = modem.send_sms(NUMBER, "Hello from smsmodem!")

        try:
            for report in reports:
                print(f"Reference {report.id}: status {report.status}")
                print(f"  submitted: {report.submit_time}")
                print(f"  delivered: {report.delivery_time}")
        except GSMModemError as e:
            print(f"Sending failed: {e}")

        print(f"\nStatus: {modem.status}")


if __name__ == "__main__":
    main()
