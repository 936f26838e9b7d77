"""Connection lifecycle: handshake, heartbeat ownership and disconnect."""

from __future__ import annotations

import logging
import sys
from typing import NoReturn

from schedlink.infra.heartbeat import HeartbeatTimer
from schedlink.infra.protocol import BYE, OK, LineWriter
from schedlink.models.session import Session

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Establishes and tears down an agent's session with the scheduler.

    When the agent is started without the start sentinel it runs standalone:
    no handshake, no heartbeat and no farewell line, which keeps it usable
    from a shell for debugging.
    """

    def __init__(
        self,
        session: Session,
        writer: LineWriter,
        version: str,
        start_sentinel: str,
        heartbeat_interval: float,
    ) -> None:
        self._session = session
        self._writer = writer
        self._version = version
        self._start_sentinel = start_sentinel
        self._heartbeat = HeartbeatTimer(writer, session.progress, heartbeat_interval)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def heartbeat(self) -> HeartbeatTimer:
        return self._heartbeat

    def launched_by_scheduler(self, argv: list[str]) -> bool:
        """True if ``argv`` ends with the start sentinel."""
        return bool(argv) and argv[-1] == self._start_sentinel

    def connect(self, argv: list[str]) -> list[str]:
        """Perform the handshake if ``argv`` ends with the start sentinel.

        The sentinel is removed from ``argv`` in place so the agent's own
        argument parsing never sees it. Returns the same list.
        """
        found = self.launched_by_scheduler(argv)
        if found:
            del argv[-1]
            self._writer.write_line(self._version)

        self._session.reset()
        self._session.connected = found

        if found:
            self._writer.write_line(OK)
            self._heartbeat.start()
            logger.info("Connected to scheduler (%s)", self._version)
        else:
            logger.info("No %s argument, running standalone", self._start_sentinel)
        return argv

    def record_progress(self, n: int = 1) -> int:
        """Add ``n`` processed items to the count reported by heartbeats."""
        return self._session.progress.add(n)

    def disconnect(self) -> NoReturn:
        """Say goodbye to the scheduler and exit with status 0.

        This never returns. It must be the last thing an agent does.
        """
        self._heartbeat.stop()
        if self._session.connected:
            try:
                self._writer.write_line(BYE)
            except (OSError, ValueError):
                logger.warning("Could not send %s, scheduler already gone", BYE)
            logger.info("Disconnected from scheduler")
        sys.exit(0)
