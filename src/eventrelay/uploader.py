from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timedelta
from typing import Callable, Optional

import requests

from eventrelay.config import Settings
from eventrelay.exceptions import LogUploadError

logger = logging.getLogger(__name__)

LOG_ENDPOINT = "/api/v1/log/"
DAY_S = 24 * 60 * 60


def seconds_until_midnight(now: datetime) -> float:
    midnight = datetime(now.year, now.month, now.day, tzinfo=now.tzinfo) + timedelta(days=1)
    return (midnight - now).total_seconds()


class LogUploader:
    """Uploads the node's operations log to the collector once a day, at midnight."""

    def __init__(
        self,
        settings: Settings,
        session: Optional[requests.Session] = None,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self.session = session or requests.Session()
        self.clock = clock
        self.sleep = sleep

    @property
    def url(self) -> str:
        return self.settings.service.base_url + LOG_ENDPOINT

    def upload_once(self) -> None:
        path = self.settings.handler.log_file_path
        with open(path, "rb") as fh:
            response = self.session.post(
                self.url,
                files={"file": (path.name, fh)},
                timeout=self.settings.service.request_timeout_seconds,
            )
        try:
            if response.status_code != 200:
                raise LogUploadError(f"wrong http response {response.status_code}")
        finally:
            response.close()

    def run_forever(self) -> None:
        delay = seconds_until_midnight(self.clock())
        while True:
            self.sleep(delay)
            delay = DAY_S
            try:
                self.upload_once()
            except (OSError, requests.RequestException, LogUploadError) as exc:
                logger.error("can't upload node log file: %s", exc)
            else:
                logger.info("uploading node log file was accepted by daily task")

    def start(self) -> threading.Thread:
        t = threading.Thread(target=self.run_forever, name="log-uploader", daemon=True)
        t.start()
        return t
