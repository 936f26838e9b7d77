"""Scheduler line protocol: vocabulary, classification and stream framing."""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

logger = logging.getLogger(__name__)

# agent -> scheduler
OK = "OK"
BYE = "BYE"
HEART = "HEART"

# scheduler -> agent
CLOSE = "CLOSE"
END = "END"
VERBOSE = "VERBOSE"
VERSION = "VERSION"

_ATOI_RE = re.compile(r"\s*([+-]?\d+)")


class CommandKind(str, Enum):
    CLOSE = "close"
    END = "end"
    VERBOSE = "verbose"
    VERSION = "version"
    DATA = "data"


@dataclass(frozen=True)
class InboundLine:
    """One classified line from the scheduler."""

    kind: CommandKind
    text: str = ""
    level: int = 0


def parse_verbose_level(arg: str) -> int:
    """Parse a VERBOSE argument the way C ``atoi`` does.

    Leading whitespace and a sign are accepted, trailing garbage is ignored,
    and anything without leading digits yields 0.
    """
    match = _ATOI_RE.match(arg)
    if match is None:
        return 0
    return int(match.group(1))


def strip_terminator(line: str) -> str:
    if line.endswith("\n"):
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
    return line


def decode(line: str | None) -> InboundLine:
    """Classify a raw line. ``None`` (end of stream) is treated as CLOSE.

    Prefixes are checked in priority order CLOSE, END, VERBOSE, VERSION;
    VERBOSE is tested before VERSION since both share the "VER" stem.
    """
    if line is None:
        return InboundLine(CommandKind.CLOSE)

    text = strip_terminator(line)
    if text.startswith(CLOSE):
        return InboundLine(CommandKind.CLOSE, text)
    if text.startswith(END):
        return InboundLine(CommandKind.END, text)
    if text.startswith(VERBOSE):
        # Argument starts after "VERBOSE" and its one separator character
        arg = text[len(VERBOSE) + 1:]
        if _ATOI_RE.match(arg) is None:
            logger.warning("Non-numeric VERBOSE argument %r, using 0", arg)
        return InboundLine(CommandKind.VERBOSE, text, level=parse_verbose_level(arg))
    if text.startswith(VERSION):
        return InboundLine(CommandKind.VERSION, text)
    return InboundLine(CommandKind.DATA, text)


def encode_heartbeat(count: int) -> str:
    return f"{HEART}: {count}"


def read_line(stream: TextIO, max_line_length: int) -> str | None:
    """Read one line, blocking until it arrives. Returns None at end of stream.

    Lines are limited to ``max_line_length - 1`` characters including the
    newline, the size of a C buffer of ``max_line_length`` bytes. A longer line
    is truncated and the rest of it is consumed and discarded.
    """
    limit = max_line_length - 1
    line = stream.readline(limit)
    if not line:
        return None
    if len(line) == limit and not line.endswith("\n"):
        discarded = 0
        while True:
            rest = stream.readline(limit)
            discarded += len(strip_terminator(rest))
            if not rest or rest.endswith("\n"):
                break
        # Only the terminator fell past the limit when nothing else was dropped
        if discarded:
            logger.warning(
                "Inbound line exceeds %d characters, truncated (%d discarded)",
                limit, discarded,
            )
    return line


def passthrough_stream(stream: TextIO) -> TextIO:
    """Let a process text stream carry bytes that are not valid text.

    Undecodable input bytes become lone surrogates and are written back as
    the same bytes, so opaque work items survive a read/echo round trip in
    any locale. Streams without ``reconfigure`` are returned unchanged.
    """
    reconfigure = getattr(stream, "reconfigure", None)
    if reconfigure is not None:
        reconfigure(errors="surrogateescape")
    return stream


class LineWriter:
    """Thread-safe, whole-line writer for the outbound stream."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._lock = threading.Lock()

    def write_line(self, text: str) -> None:
        """Write ``text`` plus newline as one write, then flush."""
        with self._lock:
            self._stream.write(text + "\n")
            self._stream.flush()
        logger.debug("-> %s", text)

    def flush(self) -> None:
        with self._lock:
            self._stream.flush()
