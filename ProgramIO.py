# ProgramIO.py
import logging
import threading
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

class OutputSink:
    """Append-only list of the lines a program writes. `on_line` sees each line as it is written."""

    def __init__(self, on_line: Optional[Callable[[str], None]] = None):
        self.lines: List[str] = []
        self.on_line = on_line

    def write(self, line: str) -> None:
        self.lines.append(line)
        if self.on_line is not None:
            self.on_line(line)

    def __len__(self) -> int:
        return len(self.lines)

class InputMailbox:
    """
    Single-slot mailbox between a running program and whoever answers its `read`
    statements. request() blocks the program's thread until supply() deposits a
    line. A second supply() before the first is consumed replaces it.
    There is no timeout: a request nobody answers waits forever.
    """

    def __init__(self, on_request: Optional[Callable[[str], None]] = None):
        self.on_request = on_request
        self._condition = threading.Condition()
        self._slot: Optional[str] = None
        self._pending: Optional[str] = None

    @property
    def pending(self) -> Optional[str]:
        """Name of the variable a suspended `read` is waiting to fill, or None."""
        with self._condition:
            return self._pending

    def supply(self, text: str) -> None:
        with self._condition:
            self._slot = text
            # The request is answered once the line is in the slot
            self._pending = None
            self._condition.notify_all()

    def request(self, variable_name: str) -> str:
        with self._condition:
            self._pending = variable_name
            self._condition.notify_all()
        logger.debug("read '%s' waiting for input", variable_name)
        if self.on_request is not None:
            self.on_request(variable_name)

        with self._condition:
            while self._slot is None:
                self._condition.wait()
            text, self._slot = self._slot, None
            self._pending = None
        logger.debug("read '%s' resumed with %r", variable_name, text)
        return text

    def wait_for_request(self, timeout: Optional[float] = None) -> Optional[str]:
        """Blocks until a `read` is pending and returns its variable name (None on timeout)."""
        with self._condition:
            self._condition.wait_for(lambda: self._pending is not None, timeout)
            return self._pending
