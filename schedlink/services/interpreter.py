"""Line protocol interpreter: separates scheduler commands from work items."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import TextIO

from schedlink.infra.protocol import OK, CommandKind, LineWriter, decode, read_line
from schedlink.models.session import Session

logger = logging.getLogger(__name__)

VerboseCallback = Callable[[int], None]


class LineInterpreter:
    """Pulls work items from the scheduler, handling control lines in passing."""

    def __init__(
        self,
        session: Session,
        reader: TextIO,
        writer: LineWriter,
        version: str,
        max_line_length: int,
        on_verbose: VerboseCallback | None = None,
    ) -> None:
        self._session = session
        self._reader = reader
        self._writer = writer
        self._version = version
        self._max_line_length = max_line_length
        self._on_verbose = on_verbose

    def next(self) -> str | None:
        """Return the next work item, or None once the scheduler closes.

        Blocks until a line arrives. END, VERBOSE and VERSION lines are
        handled here and never returned; a single call may consume any
        number of them before a data line shows up.
        """
        self._writer.flush()
        while True:
            line = decode(read_line(self._reader, self._max_line_length))

            if line.kind is CommandKind.CLOSE:
                self._session.invalidate()
                logger.debug("End of work")
                return None

            if line.kind is CommandKind.END:
                self._writer.write_line(OK)
                self._session.invalidate()
                continue

            if line.kind is CommandKind.VERBOSE:
                self._session.verbose = line.level
                self._session.invalidate()
                logger.debug("Verbosity set to %d", line.level)
                if self._on_verbose is not None:
                    self._on_verbose(line.level)
                continue

            if line.kind is CommandKind.VERSION:
                self._writer.write_line(self._version)
                self._session.invalidate()
                continue

            self._session.accept_data(line.text)
            return line.text

    def current(self) -> str | None:
        """The last item returned by next(), or None if a command came after it."""
        return self._session.current

    def __iter__(self) -> Iterator[str]:
        while (item := self.next()) is not None:
            yield item
