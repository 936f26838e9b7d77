"""Session domain model: the per-process scheduler connection state."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field


class ProgressCounter:
    """Accumulated item count shared with the heartbeat thread.

    Every read and update happens under a lock, so the heartbeat never
    observes a torn or lost update from the main flow.
    """

    def __init__(self, initial: int = 0) -> None:
        self._value = initial
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def add(self, n: int) -> int:
        with self._lock:
            self._value += n
            return self._value

    def reset(self) -> None:
        with self._lock:
            self._value = 0

    def __repr__(self) -> str:
        return f"ProgressCounter({self.value})"


@dataclass
class Session:
    """State of one agent's connection to the scheduler."""

    connected: bool = False
    verbose: int = 0
    last_line: str = ""
    last_line_is_data: bool = False
    progress: ProgressCounter = field(default_factory=ProgressCounter)

    @property
    def current(self) -> str | None:
        """The last line read, only if it was a data line."""
        return self.last_line if self.last_line_is_data else None

    def accept_data(self, text: str) -> None:
        self.last_line = text
        self.last_line_is_data = True

    def invalidate(self) -> None:
        self.last_line_is_data = False

    def reset(self) -> None:
        """Restore counters, buffer and flags; `connected` is left alone."""
        self.verbose = 0
        self.last_line = ""
        self.last_line_is_data = False
        self.progress.reset()
