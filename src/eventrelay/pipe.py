from __future__ import annotations

import logging
import time
from typing import BinaryIO, Callable, Optional

from eventrelay.exceptions import PipeOpenError

logger = logging.getLogger(__name__)


def _open_for_reading(path: str) -> BinaryIO:
    # Blocks until the node opens its end of the FIFO for writing.
    return open(path, "rb")


class PipeSource:
    """Opens the events pipe, retrying while the node hasn't created it yet."""

    def __init__(
        self,
        attempts: int = 5,
        retry_delay: float = 3.0,
        opener: Optional[Callable[[str], BinaryIO]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.attempts = attempts
        self.retry_delay = retry_delay
        self.opener = opener or _open_for_reading
        self.sleep = sleep

    def open(self, path: str) -> BinaryIO:
        logger.info("try open %s", path)
        last_error: Optional[OSError] = None
        for attempt in range(1, self.attempts + 1):
            try:
                stream = self.opener(path)
            except OSError as exc:
                last_error = exc
                logger.error("can't open %s for reading (attempt %d/%d): %s", path, attempt, self.attempts, exc)
                if attempt < self.attempts:
                    logger.error("wait %.1fs before repeat", self.retry_delay)
                    self.sleep(self.retry_delay)
                continue
            logger.info("events pipe opened: %s", path)
            return stream

        logger.error("max tries count expired for %s", path)
        raise PipeOpenError(path, last_error)
