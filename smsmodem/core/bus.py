"""
Line bus.

Fans every modem line out to independent subscribers and keeps a bounded
history of recent lines.
"""

import logging
import threading
from collections import deque
from typing import Callable, Deque, Optional

logger = logging.getLogger(__name__)

# Type alias for line callbacks
LineCallback = Callable[[str], None]


class LineBus:
    """
    Publish/subscribe channel for modem lines.

    Features:
    - Any number of subscribers, each optionally filtered by a line prefix
    - Bounded history queue to prevent memory issues
    - Thread-safe subscription changes
    - Error handling for misbehaving subscribers
    """

    def __init__(self, max_history: int = 1000) -> None:
        """
        Initialize line bus.

        Args:
            max_history: Maximum number of lines kept in the history queue
        """
        self._history: Deque[str] = deque(maxlen=max_history)

        # Subscriptions in registration order: (prefix, callback)
        self._subscribers: list[tuple[str, LineCallback]] = []

        self._lock = threading.Lock()

        logger.debug(f"Initialized line bus (max_history={max_history})")

    def subscribe(self, callback: LineCallback, prefix: str = "") -> None:
        """
        Subscribe to lines.

        Args:
            callback: Function called with each matching line.
                     Signature: callback(line: str) -> None
            prefix: Only deliver lines starting with this prefix
                    (empty string matches every line)

        Example:

        .. code-block:: python

            bus.subscribe(lambda line: print(f"New SMS: {line}"), prefix="+CMTI")
        """
        with self._lock:
            self._subscribers.append((prefix, callback))
        logger.debug(f"Subscribed {callback!r} (prefix={prefix!r})")

    def unsubscribe(self, callback: LineCallback) -> bool:
        """
        Remove every subscription of a callback.

        Args:
            callback: Callback passed to subscribe()

        Returns:
            True if at least one subscription was removed
        """
        with self._lock:
            before = len(self._subscribers)
            self._subscribers = [
                (prefix, cb) for prefix, cb in self._subscribers if cb != callback
            ]
            removed = len(self._subscribers) != before

        if removed:
            logger.debug(f"Unsubscribed {callback!r}")
        return removed

    def publish(self, line: str) -> None:
        """
        Deliver a line to every matching subscriber.

        Args:
            line: Line received from the modem
        """
        with self._lock:
            self._history.append(line)
            targets = [
                (prefix, cb) for prefix, cb in self._subscribers
                if line.startswith(prefix)
            ]

        # Call subscribers outside lock; they may subscribe or unsubscribe
        for prefix, callback in targets:
            try:
                callback(line)
            except Exception as e:
                logger.error(f"Line subscriber {callback!r} failed on {line!r}: {e}", exc_info=True)

    def history(self) -> list[str]:
        """
        Get a copy of recently published lines.

        Returns:
            Lines oldest first
        """
        with self._lock:
            return list(self._history)

    def subscriber_count(self) -> int:
        """Get the number of active subscriptions."""
        with self._lock:
            return len(self._subscribers)

    def last_line(self) -> Optional[str]:
        """Get the most recently published line, if any."""
        with self._lock:
            return self._history[-1] if self._history else None
