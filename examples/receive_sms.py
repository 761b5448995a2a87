"""
Receive SMS example.

Prints every inbound message. Messages are deleted from the SIM once read.
"""

from smsmodem import SMSModem

# Replace with your serial port
PORT = "/dev/ttyUSB0"


def main():
    """Main function."""
    print("smsmodem - Receive SMS Example\n")

    modem = SMSModem(port=PORT, strip_prefixes=("00351",))
    modem.init()

    print("Waiting for messages (Ctrl+C to stop)...\n")
    messages = modem.on_received_sms()
    try:
        for sms in messages:
            print(f"[{sms.id}] {sms.phone_number} at {sms.submit_time}:")
            print(f"  {sms.text}\n")
    except KeyboardInterrupt:
        print("\nStopping...")
    finally:
        messages.close()
        modem.close()


if __name__ == "__main__":
    main()
