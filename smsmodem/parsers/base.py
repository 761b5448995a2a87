"""
Base parser classes and utilities.

Provides reusable parsing functionality for modem lines.
"""

import logging
from abc import ABC, abstractmethod
from typing import TypeVar, Generic

from ..exceptions import ATParseError

logger = logging.getLogger(__name__)

T = TypeVar('T')


def strip_prefix(line: str, prefix: str) -> str:
    """
    Remove a "+CMD:" prefix and surrounding whitespace from a line.

    Raises:
        ATParseError: If the line does not contain the prefix
    """
    position = line.find(prefix)
    if position < 0:
        raise ATParseError(f"Expected {prefix!r} line", response=[line])
    return line[position + len(prefix):].strip()


class ResponseParser(ABC, Generic[T]):
    """
    Abstract base class for line parsers.

    Parsers convert a raw modem line into typed data structures.
    """

    @abstractmethod
    def parse(self, line: str) -> T:
        """
        Parse a modem line.

        Args:
            line: Line received from the modem

        Returns:
            Parsed data structure

        Raises:
            ATParseError: If line cannot be parsed
        """
        pass


class IntValueParser(ResponseParser[int]):
    """Parser for "+CMD: <n>[,...]" lines; returns the leading integer."""

    def __init__(self, prefix: str):
        """
        Initialize parser.

        Args:
            prefix: Line prefix preceding the value (e.g., "+CMGS:")
        """
        self.prefix = prefix

    def parse(self, line: str) -> int:
        """Parse integer value."""
        value = strip_prefix(line, self.prefix).split(",")[0].strip()

        try:
            return int(value)
        except ValueError as e:
            raise ATParseError(
                f"Failed to parse integer: {value!r}",
                response=[line]
            ) from e


class CommaSeparatedParser(ResponseParser[list[str]]):
    """Parser for "+CMD: a,b,..." lines."""

    def __init__(self, prefix: str, expected_parts: int | None = None):
        """
        Initialize parser.

        Args:
            prefix: Line prefix preceding the values (e.g., "+CDS:")
            expected_parts: Minimum number of parts (None = any)
        """
        self.prefix = prefix
        self.expected_parts = expected_parts

    def parse(self, line: str) -> list[str]:
        """Parse comma-separated values, dropping quotes."""
        payload = strip_prefix(line, self.prefix)
        parts = [p.strip().strip('"') for p in payload.split(",")]

        if self.expected_parts is not None and len(parts) < self.expected_parts:
            raise ATParseError(
                f"Expected {self.expected_parts} parts, got {len(parts)}",
                response=[line]
            )

        return parts
