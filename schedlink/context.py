"""AgentContext: wires config, streams, session and services together."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, NoReturn, TextIO

from schedlink.config import AppConfig, load_config
from schedlink.infra.protocol import LineWriter, passthrough_stream
from schedlink.models.session import Session
from schedlink.services.interpreter import LineInterpreter, VerboseCallback
from schedlink.services.lifecycle import ConnectionManager

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "schedlink"


class AgentContext:
    """Central wiring for one agent process.

    Holds the single session shared by the connection manager and the
    line interpreter. Streams default to the process stdin/stdout, set up
    to pass undecodable bytes through.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        config_path: Path | None = None,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
        on_verbose: VerboseCallback | None = None,
    ) -> None:
        self.config = config or load_config(config_path)
        self.session = Session()
        self._user_on_verbose = on_verbose
        self._base_log_level: int | None = None
        self.writer = LineWriter(stdout if stdout is not None else passthrough_stream(sys.stdout))
        self.connection = ConnectionManager(
            self.session,
            self.writer,
            version=self.config.agent.version,
            start_sentinel=self.config.protocol.start_sentinel,
            heartbeat_interval=self.config.heartbeat.interval,
        )
        self.interpreter = LineInterpreter(
            self.session,
            stdin if stdin is not None else passthrough_stream(sys.stdin),
            self.writer,
            version=self.config.agent.version,
            max_line_length=self.config.protocol.max_line_length,
            on_verbose=self._handle_verbose,
        )

    def connect(self, argv: list[str]) -> list[str]:
        return self.connection.connect(argv)

    def next(self) -> str | None:
        return self.interpreter.next()

    def current(self) -> str | None:
        return self.interpreter.current()

    def record_progress(self, n: int = 1) -> int:
        return self.connection.record_progress(n)

    def disconnect(self) -> NoReturn:
        self.connection.disconnect()

    def _handle_verbose(self, level: int) -> None:
        """Turn package debug logging on while the scheduler asks for verbosity."""
        pkg_logger = logging.getLogger(PACKAGE_LOGGER)
        if self._base_log_level is None:
            self._base_log_level = pkg_logger.level
        pkg_logger.setLevel(logging.DEBUG if level > 0 else self._base_log_level)
        if self._user_on_verbose is not None:
            self._user_on_verbose(level)
