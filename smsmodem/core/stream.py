"""
Blocking event streams.

Bridges callbacks running on the reader thread to caller threads that
iterate over results.
"""

import logging
import queue
import threading
from typing import Callable, Generic, Iterator, Optional, TypeVar

from ..exceptions import ATTimeoutError, GSMModemError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_END = object()


class _Failure:
    def __init__(self, error: GSMModemError) -> None:
        self.error = error


class EventStream(Generic[T]):
    """
    Iterator fed from another thread.

    Producers call put(), finish() or fail(). Consumers iterate; iteration
    ends after finish() and raises the error after fail(). A stream is
    consumed once and cannot be restarted.

    Example:

    .. code-block:: python

        for sms in modem.on_received_sms():
            print(sms.text)
    """

    def __init__(self, name: str = "stream") -> None:
        self.name = name
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._lock = threading.Lock()
        self._ended = False
        self._exhausted = False
        self._on_close: list[Callable[[], None]] = []

    def put(self, item: T) -> None:
        """Add an item (ignored once the stream has ended)."""
        with self._lock:
            if self._ended:
                return
            self._queue.put(item)

    def finish(self) -> None:
        """End the stream normally after the items already added."""
        if self._end():
            logger.debug(f"{self.name} finished")
            self._queue.put(_END)

    def fail(self, error: GSMModemError) -> None:
        """End the stream with an error after the items already added."""
        if self._end():
            logger.debug(f"{self.name} failed: {error}")
            self._queue.put(_Failure(error))

    def close(self) -> None:
        """Stop listening. Items already added can still be read."""
        self.finish()

    def add_close_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once the stream ends (used to unsubscribe)."""
        with self._lock:
            if not self._ended:
                self._on_close.append(callback)
                return
        callback()

    def _end(self) -> bool:
        with self._lock:
            if self._ended:
                return False
            self._ended = True
            callbacks, self._on_close = self._on_close, []

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"{self.name} close callback failed: {e}", exc_info=True)
        return True

    @property
    def ended(self) -> bool:
        """True once finish(), fail() or close() was called."""
        with self._lock:
            return self._ended

    def get(self, timeout: Optional[float] = None) -> T:
        """
        Wait for the next item.

        Args:
            timeout: Seconds to wait (None waits forever)

        Returns:
            The next item

        Raises:
            StopIteration: If the stream has ended
            ATTimeoutError: If nothing arrived within timeout
            GSMModemError: The error the stream failed with
        """
        if self._exhausted:
            raise StopIteration

        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            raise ATTimeoutError(f"{self.name}: nothing received within {timeout}s") from None

        if item is _END:
            self._exhausted = True
            raise StopIteration
        if isinstance(item, _Failure):
            self._exhausted = True
            raise item.error
        return item

    def __iter__(self) -> Iterator[T]:
        return self

    def __next__(self) -> T:
        return self.get()
