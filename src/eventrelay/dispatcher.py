from __future__ import annotations

import logging
from typing import Optional

import requests
from pydantic import BaseModel

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


class Dispatcher:
    """
    Sends event payloads to the collector.

    Fire-and-forget: every failure is logged and the payload dropped, so a
    flaky collector never stalls the events pipe.
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def send(self, payload: BaseModel, endpoint: str, method: str) -> None:
        url = self.base_url + endpoint
        logger.info("try send request: %s %s", method, url)
        try:
            body = payload.model_dump_json(by_alias=True, exclude_none=True)
        except (TypeError, ValueError) as exc:
            logger.error("can't serialize %s payload: %s", type(payload).__name__, exc)
            return
        logger.debug("JSON: %s", body)

        try:
            response = self.session.request(
                method, url, data=body.encode("utf-8"), headers=JSON_HEADERS, timeout=self.timeout
            )
        except requests.RequestException as exc:
            logger.error("can't send request %s %s: %s", method, url, exc)
            return

        try:
            if response.ok:
                logger.debug("collector response: %s %s", response.status_code, response.reason)
            else:
                logger.error("collector rejected %s %s: %s %s", method, url, response.status_code, response.reason)
        finally:
            response.close()
