"""
Task sequencer.

Serializes writes to the modem: tasks wait in a FIFO queue and exactly one
is in flight until the line it expects shows up.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Optional

from ..exceptions import ATTimeoutError, GSMModemError

logger = logging.getLogger(__name__)

# Writes bytes to the modem; returns False if the write failed
Writer = Callable[[bytes], bool]
ResultHandler = Callable[[str], None]
ErrorHandler = Callable[[GSMModemError], None]

# Marker for tasks completed by the ">" prompt instead of a line
PROMPT_MARKER = "\x00<prompt>\x00"


def _ignore_result(line: str) -> None:
    pass


@dataclass(eq=False)
class Task:
    """
    A single write to the modem and the answer that completes it.

    Attributes:
        id: Monotonically increasing task number
        description: Human readable summary for logs
        data: Bytes written when the task is dispatched
        expected: Substring of a modem line that completes the task
        on_result: Called with the completing line
        delay: Seconds to wait between dispatch and the actual write
        on_error: Called if the task fails (timeout)
        cancelled: Skip the task when its turn comes
    """
    id: int
    description: str
    data: bytes
    expected: str
    on_result: ResultHandler = _ignore_result
    delay: float = 0.0
    on_error: Optional[ErrorHandler] = None
    cancelled: bool = False
    _watchdog: Optional[threading.Timer] = field(default=None, repr=False)

    def cancel(self) -> None:
        """Mark the task so the sequencer drops it instead of writing it."""
        self.cancelled = True


class TaskSequencer:
    """
    FIFO command sequencer.

    Guarantees:
    - At most one task is in flight
    - Tasks are written in enqueue order
    - A task is completed only by a line containing its expected marker,
      or by the prompt

    A failed write leaves the task in flight. Without a task timeout the
    queue then stays blocked; with one, the watchdog fails the task and
    moves on.
    """

    def __init__(
        self,
        writer: Writer,
        task_timeout: Optional[float] = None,
        on_error: Optional[ErrorHandler] = None
    ) -> None:
        """
        Initialize task sequencer.

        Args:
            writer: Function writing bytes to the modem
            task_timeout: Seconds a written task may wait for its answer
                          (None waits forever)
            on_error: Called with every task failure (e.g., status tracker)
        """
        self._writer = writer
        self.task_timeout = task_timeout
        self._on_error = on_error

        # Reentrant: completion handlers enqueue and dispatch
        self._lock = threading.RLock()
        self._queue: Deque[Task] = deque()
        self._current: Optional[Task] = None
        self._counter = 0

        logger.debug(f"Initialized task sequencer (task_timeout={task_timeout})")

    def next_id(self) -> int:
        """Allocate the next task id."""
        with self._lock:
            self._counter += 1
            return self._counter

    def enqueue(self, task: Task) -> None:
        """
        Append a task to the tail of the queue.

        Does not dispatch; call dispatch() afterwards.
        """
        with self._lock:
            self._queue.append(task)
        logger.debug(f"Queued task {task.id}: {task.description!r}")

    def submit(
        self,
        data: bytes,
        expected: str,
        on_result: ResultHandler = _ignore_result,
        description: Optional[str] = None,
        delay: float = 0.0,
        on_error: Optional[ErrorHandler] = None
    ) -> Task:
        """
        Create a task, enqueue it and dispatch.

        Args:
            data: Bytes to write
            expected: Substring of the completing line
            on_result: Called with the completing line
            description: Log summary (defaults to the decoded data)
            delay: Seconds between dispatch and write
            on_error: Called if the task fails

        Returns:
            The queued task
        """
        task = Task(
            id=self.next_id(),
            description=description or data.decode("utf-8", errors="replace").strip(),
            data=data,
            expected=expected,
            on_result=on_result,
            delay=delay,
            on_error=on_error
        )
        self.enqueue(task)
        self.dispatch()
        return task

    def dispatch(self) -> None:
        """
        Start the next queued task if nothing is in flight.

        Cancelled tasks are discarded on the way.
        """
        with self._lock:
            if self._current is not None:
                return

            while self._queue:
                task = self._queue.popleft()
                if task.cancelled:
                    logger.debug(f"Skipping cancelled task {task.id}")
                    continue
                break
            else:
                return

            self._current = task
            logger.debug(f"Dispatching task {task.id}: {task.description!r}")

            if task.delay > 0:
                timer = threading.Timer(task.delay, self._write, args=(task,))
                timer.daemon = True
                timer.start()
            else:
                self._write(task)

    def _write(self, task: Task) -> None:
        with self._lock:
            if self._current is not task:
                logger.debug(f"Task {task.id} no longer in flight, write dropped")
                return

            if not self._writer(task.data):
                # No retry and no skip: the task keeps the slot
                logger.error(f"Write failed for task {task.id}: {task.description!r}")

            if self.task_timeout is not None:
                task._watchdog = threading.Timer(
                    self.task_timeout, self._expire, args=(task,)
                )
                task._watchdog.daemon = True
                task._watchdog.start()

    def on_line(self, line: str) -> None:
        """
        Check a modem line against the in-flight task.

        Args:
            line: Line received from the modem
        """
        with self._lock:
            task = self._current
            if task is None or task.expected not in line:
                return

            self._finish(task)
            logger.debug(f"Task {task.id} completed by {line!r}")
            try:
                task.on_result(line)
            except Exception as e:
                logger.error(f"Result handler of task {task.id} failed: {e}", exc_info=True)
            self.dispatch()

    def on_prompt(self) -> None:
        """Complete the in-flight task because the modem sent its prompt."""
        with self._lock:
            if self._current is not None:
                logger.debug(f"Task {self._current.id} completed by prompt")
                self._finish(self._current)
            self.dispatch()

    def _finish(self, task: Task) -> None:
        if task._watchdog is not None:
            task._watchdog.cancel()
            task._watchdog = None
        self._current = None

    def _expire(self, task: Task) -> None:
        with self._lock:
            if self._current is not task:
                return

            self._finish(task)
            error = ATTimeoutError(
                f"No {task.expected!r} within {self.task_timeout}s",
                command=task.description
            )
            logger.error(f"Task {task.id} timed out: {error}")

            for handler in (task.on_error, self._on_error):
                if handler is None:
                    continue
                try:
                    handler(error)
                except Exception as e:
                    logger.error(f"Error handler of task {task.id} failed: {e}", exc_info=True)

            self.dispatch()

    @property
    def current(self) -> Optional[Task]:
        """The in-flight task, if any."""
        with self._lock:
            return self._current

    @property
    def pending(self) -> list[Task]:
        """Snapshot of queued tasks, head first."""
        with self._lock:
            return list(self._queue)

    def is_idle(self) -> bool:
        """Check if nothing is in flight and nothing is queued."""
        with self._lock:
            return self._current is None and not self._queue
