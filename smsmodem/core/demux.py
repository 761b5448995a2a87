"""
Line demultiplexer.

Splits the raw byte stream from the modem into CRLF-terminated lines and
the bare ">" prompt the modem sends when it waits for a message body.
"""

import codecs
import logging
from typing import Callable

logger = logging.getLogger(__name__)

PROMPT = ">"
LINE_TERMINATOR = "\r\n"

LineCallback = Callable[[str], None]
PromptCallback = Callable[[], None]


class LineDemultiplexer:
    """
    Frames modem output.

    Two framing rules apply to the same stream:

    - Lines terminated by CR LF are passed to ``on_line`` with the
      terminator removed. Empty lines are dropped.
    - An unterminated remainder that is only ">" (the modem sends
      ``"\\r\\n> "`` and then waits) is passed to ``on_prompt`` and
      discarded. A line consisting of ">" alone counts as a prompt too.

    Bytes are decoded incrementally, so a UTF-8 character split across two
    reads is kept whole. Invalid bytes become U+FFFD.
    """

    def __init__(self, on_line: LineCallback, on_prompt: PromptCallback) -> None:
        """
        Initialize demultiplexer.

        Args:
            on_line: Called with every complete line
            on_prompt: Called whenever the prompt is seen
        """
        self._on_line = on_line
        self._on_prompt = on_prompt
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, data: bytes) -> None:
        """
        Consume bytes read from the transport.

        Args:
            data: Raw bytes, possibly holding partial lines or characters
        """
        if not data:
            return

        self._buffer += self._decoder.decode(data)

        while LINE_TERMINATOR in self._buffer:
            line, self._buffer = self._buffer.split(LINE_TERMINATOR, 1)
            if not line:
                continue
            if line.strip() == PROMPT:
                self._emit_prompt()
                continue
            self._on_line(line)

        if self._buffer.strip() == PROMPT:
            self._buffer = ""
            self._emit_prompt()

    def _emit_prompt(self) -> None:
        logger.debug("Prompt received")
        self._on_prompt()

    def reset(self) -> None:
        """Drop any partial line."""
        self._decoder.reset()
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Unterminated data waiting for its line ending."""
        return self._buffer
