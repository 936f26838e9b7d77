"""Heartbeat timer: periodic HEART lines from a background thread."""

from __future__ import annotations

import logging
import threading

from schedlink.infra.protocol import LineWriter, encode_heartbeat
from schedlink.models.session import ProgressCounter

logger = logging.getLogger(__name__)


class HeartbeatTimer:
    """Reports the accumulated item count every ``interval`` seconds.

    Runs on a daemon thread so a blocking read in the main flow never delays
    it, and a process exit never waits for it. The thread only reads the
    progress counter and writes whole lines through the shared writer.
    """

    def __init__(
        self,
        writer: LineWriter,
        progress: ProgressCounter,
        interval: float,
    ) -> None:
        self._writer = writer
        self._progress = progress
        self._interval = interval
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            logger.debug("Heartbeat already running")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="schedlink-heartbeat", daemon=True,
        )
        self._thread.start()
        logger.debug("Heartbeat armed every %.1fs", self._interval)

    def stop(self, timeout: float | None = 1.0) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None
        logger.debug("Heartbeat stopped")

    def fire(self) -> int:
        """Send one heartbeat now. Returns the count that was reported."""
        count = self._progress.value
        self._writer.write_line(encode_heartbeat(count))
        return count

    def _run(self) -> None:
        # Event.wait returns True only once stop() has been requested
        while not self._stop_event.wait(self._interval):
            try:
                self.fire()
            except (OSError, ValueError):
                # Outbound pipe gone (scheduler died or stream closed)
                logger.warning("Heartbeat write failed, stopping heartbeat", exc_info=True)
                return
