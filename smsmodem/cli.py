"""
CLI REPL (Read-Eval-Print Loop) for smsmodem.

Provides an interactive terminal for sending SMS, watching inbound
messages and delivery reports, and issuing raw AT commands.
"""

import shlex
import sys
import logging
import threading
from typing import Optional

from .modem import SMSModem
from .version import __version__
from .exceptions import GSMModemError
from .features import DeliveryReportStream
from .types import ReceivedSMS


class SMSModemCLI:
    """Interactive SMS terminal."""

    def __init__(
        self,
        port: str,
        baudrate: int = 230400,
        send_delay: float = 10.0,
        task_timeout: Optional[float] = None,
        debug_mode: bool = False
    ):
        """
        Initialize CLI.

        Args:
            port: Serial port path
            baudrate: Baud rate
            send_delay: Seconds to wait before each AT+CMGS
            task_timeout: Seconds before an unanswered command is failed
            debug_mode: Log all modem traffic
        """
        self.port = port
        self.baudrate = baudrate
        self.send_delay = send_delay
        self.task_timeout = task_timeout
        self.debug_mode = debug_mode
        self.modem: Optional[SMSModem] = None
        self.received_count = 0

    def _display_sms(self, sms: ReceivedSMS):
        self.received_count += 1
        print(f"\n[SMS {sms.id}] from {sms.phone_number} at {sms.submit_time}: {sms.text}")
        print("> ", end="", flush=True)

    def _follow_reports(self, reports: DeliveryReportStream):
        """Print delivery reports of one message until it is final."""
        try:
            for report in reports:
                state = "delivered" if report.is_final else f"status {report.status}"
                print(f"\n[REPORT {report.id}] {reports.phone_number}: {state} at {report.delivery_time}")
                print("> ", end="", flush=True)
        except GSMModemError as e:
            print(f"\n[REPORT] {reports.phone_number}: failed: {e}")
            print("> ", end="", flush=True)

    def run(self):
        """Run the REPL."""
        print(f"smsmodem CLI v{__version__}")
        print(f"Connecting to {self.port} at {self.baudrate} baud...")
        print("Type 'help' for commands, 'quit' to exit\n")

        try:
            self.modem = SMSModem(
                port=self.port,
                baudrate=self.baudrate,
                send_delay=self.send_delay,
                task_timeout=self.task_timeout,
                debug_mode=self.debug_mode
            )
            self.modem.init()
            self.modem.sms.decoder.add_listener(self._display_sms)
            self.modem.sms.start_receiving()

            print("Connected! Ready.\n")

            # REPL loop
            while True:
                try:
                    cmd = input("> ").strip()

                    if not cmd:
                        continue

                    word = cmd.split()[0].lower()

                    if word in ("quit", "exit", "q"):
                        break
                    elif word == "help":
                        self._print_help()
                    elif word == "status":
                        self._show_status()
                    elif word == "log":
                        self._show_log()
                    elif word == "clear":
                        print("\033[2J\033[H", end="")  # Clear screen
                    elif word == "send":
                        self._send_sms(cmd)
                    else:
                        # "at AT+CSQ" or a bare "AT+CSQ"
                        self._send_command(cmd[3:] if word == "at" else cmd)

                except KeyboardInterrupt:
                    print("\nUse 'quit' to exit")
                    continue
                except EOFError:
                    break

        except GSMModemError as e:
            print(f"\nError: {e}")
            return 1
        except Exception as e:
            print(f"\nUnexpected error: {e}")
            logging.exception("CLI error")
            return 1
        finally:
            if self.modem:
                print("\nClosing connection...")
                self.modem.close()
                print("Goodbye!")

        return 0

    def _send_sms(self, cmd: str):
        """Handle 'send <number> <text>'."""
        try:
            _, number, *words = shlex.split(cmd)
        except ValueError:
            print("Usage: send <number> <text>")
            return
        if not words:
            print("Usage: send <number> <text>")
            return

        reports = self.modem.send_sms(number, " ".join(words))
        print(f"Queued (sent after {self.send_delay}s pause)")
        threading.Thread(
            target=self._follow_reports,
            args=(reports,),
            daemon=True,
            name="ReportFollower"
        ).start()

    def _send_command(self, cmd: str):
        """Queue a raw AT command and print the line that completes it."""
        cmd = cmd.strip()
        task = self.modem.send_command(
            cmd,
            on_result=lambda line: print(f"\n{line}\n> ", end="", flush=True)
        )
        print(f"Queued task {task.id}")

    def _print_help(self):
        """Print help message."""
        print("""
Available commands:
  send <number> <text>  - Send SMS and follow its delivery reports
  at <AT command>       - Queue an AT command (e.g., at AT+CSQ)
  <AT command>          - Same as above
  status                - Show modem status
  log                   - Show recent modem traffic
  clear                 - Clear screen
  help                  - Show this help message
  quit/exit/q           - Exit CLI

Received SMS are printed as they arrive and deleted from the SIM.
        """)

    def _show_status(self):
        """Show modem status."""
        status = self.modem.status
        print(f"\nConnected: {status.is_connected}")
        print(f"Errored: {status.is_errored}")
        print(f"Last error: {status.last_error}")
        print(f"Last received: {status.last_received_data}")
        print(f"Debug mode: {status.debug_mode}")
        print(f"SMS received this session: {self.received_count}")

    def _show_log(self):
        """Show recent modem traffic."""
        for entry in self.modem.get_log()[-40:]:
            print(entry)


def main():
    """Main entry point for CLI."""
    import argparse

    parser = argparse.ArgumentParser(
        description="smsmodem CLI - Interactive SMS terminal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sms-modem /dev/ttyUSB0
  sms-modem /dev/ttyUSB0 --baudrate 115200
  sms-modem COM10 --send-delay 2 --task-timeout 30
        """
    )

    parser.add_argument(
        "port",
        help="Serial port (e.g., /dev/ttyUSB0, COM10)"
    )
    parser.add_argument(
        "-b", "--baudrate",
        type=int,
        default=230400,
        help="Baud rate (default: 230400)"
    )
    parser.add_argument(
        "--send-delay",
        type=float,
        default=10.0,
        help="Seconds to wait before each message (default: 10)"
    )
    parser.add_argument(
        "--task-timeout",
        type=float,
        default=None,
        help="Fail commands unanswered after this many seconds (default: wait forever)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log all modem traffic"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()

    # Setup logging
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
    elif args.debug:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(message)s'
        )
    else:
        logging.basicConfig(
            level=logging.WARNING,
            format='%(levelname)s: %(message)s'
        )

    cli = SMSModemCLI(
        port=args.port,
        baudrate=args.baudrate,
        send_delay=args.send_delay,
        task_timeout=args.task_timeout,
        debug_mode=args.debug
    )

    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
