from __future__ import annotations

import logging
import queue
import threading
import time
from enum import Enum
from typing import BinaryIO, Callable, Optional

from eventrelay.config import Settings
from eventrelay.events import DELIMITER, decode_event
from eventrelay.exceptions import MonitorStartupError, PipeOpenError
from eventrelay.pipe import PipeSource
from eventrelay.router import Router

logger = logging.getLogger(__name__)


class MonitorState(str, Enum):
    STARTING = "starting"
    OPEN = "open"
    READING = "reading"
    IDLE = "idle"
    STOPPED = "stopped"
    FAILED = "failed"


class ControlChannel:
    """Single-slot stop request, written by the supervisor and polled by the reader."""

    def __init__(self):
        self._q: "queue.Queue[bool]" = queue.Queue(maxsize=1)

    def request_stop(self) -> bool:
        try:
            self._q.put_nowait(True)
        except queue.Full:
            return False
        return True

    def stop_requested(self) -> bool:
        try:
            return self._q.get_nowait()
        except queue.Empty:
            return False


class EventMonitor:
    """
    Reads the events pipe line by line and routes every valid event.

    The stop request is checked once per iteration, before each read; a read
    that is already blocked on the pipe is never interrupted.
    """

    def __init__(
        self,
        settings: Settings,
        router: Router,
        control: ControlChannel,
        errors: "queue.Queue[BaseException]",
        pipe_source: Optional[PipeSource] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self.router = router
        self.control = control
        self.errors = errors
        self.pipe_source = pipe_source or PipeSource(
            attempts=settings.handler.open_attempts,
            retry_delay=settings.handler.open_retry_delay_seconds,
        )
        self.sleep = sleep
        self.state = MonitorState.STARTING

    @property
    def path(self) -> str:
        return str(self.settings.handler.events_pipe_path)

    def run(self) -> None:
        self.state = MonitorState.STARTING
        # give the node some time to open the pipe for writing
        self.sleep(self.settings.handler.startup_delay_seconds)

        try:
            stream = self.pipe_source.open(self.path)
        except PipeOpenError as exc:
            self.state = MonitorState.FAILED
            logger.error("[Node]: %s", exc)
            self.errors.put_nowait(exc)
            return

        self.state = MonitorState.OPEN
        self._read_loop(stream)

    def _read_loop(self, stream: BinaryIO) -> None:
        poll = self.settings.handler.eof_poll_interval_seconds
        max_line = self.settings.handler.max_line_bytes
        pending = b""
        discarding = False
        self.state = MonitorState.READING
        while True:
            if self.control.stop_requested():
                logger.info("[Node]: events receiving was finished by the external signal")
                stream.close()
                self.state = MonitorState.STOPPED
                return

            try:
                chunk = stream.readline(max_line)
            except OSError as exc:
                logger.error("[Node]: error occurred on event reading: %s", exc)
                self.sleep(poll)
                continue

            if not chunk:
                # FIFO reports EOF whenever no writer has data buffered
                self.state = MonitorState.IDLE
                self.sleep(poll)
                continue

            self.state = MonitorState.READING
            pending += chunk
            if not pending.endswith(DELIMITER):
                if len(pending) >= max_line:
                    logger.error("[Node]: event line exceeds %d bytes. Dropped", max_line)
                    pending = b""
                    discarding = True
                continue
            line, pending = pending, b""
            if discarding:
                # tail of an oversized line
                discarding = False
                continue
            self.process_line(line)

    def process_line(self, line: bytes) -> None:
        if line == DELIMITER:
            return
        logger.debug("[Node]: received event: %r", line)

        event = decode_event(line)
        if not event.ok:
            logger.error("[Node]: invalid event occurred: %r (%s). Dropped", line, event.error)
            return

        try:
            self.router.route(event)
        except Exception:
            logger.exception("[Node]: can't route event %r. Dropped", line)


class Supervisor:
    """
    Starts the events monitor in a background thread and waits for it to settle.

    The handshake treats silence as success: when no error arrives within ten
    startup delays the monitor is considered running, even if it is still
    retrying to open the pipe.
    """

    def __init__(self, settings: Settings, router: Router, pipe_source: Optional[PipeSource] = None):
        self.settings = settings
        self.router = router
        self.pipe_source = pipe_source
        self.control: Optional[ControlChannel] = None
        self.monitor: Optional[EventMonitor] = None
        self.thread: Optional[threading.Thread] = None

    def start(self) -> None:
        control = ControlChannel()
        errors: "queue.Queue[BaseException]" = queue.Queue(maxsize=1)
        monitor = EventMonitor(self.settings, self.router, control, errors, pipe_source=self.pipe_source)
        thread = threading.Thread(target=monitor.run, name="events-monitor", daemon=True)
        thread.start()

        timeout = self.settings.handler.startup_delay_seconds * 10
        try:
            error = errors.get(timeout=timeout)
        except queue.Empty:
            self.control = control
            self.monitor = monitor
            self.thread = thread
            logger.info("[Node]: attached")
            return

        raise MonitorStartupError(f"can't start events receiving from the node: {error}") from error

    def stop(self, timeout: Optional[float] = None) -> None:
        if self.control is None or self.thread is None:
            return
        self.control.request_stop()
        self.thread.join(timeout)
