from __future__ import annotations

from typing import Iterable

import pytest

from eventrelay.config import HandlerSettings, ServiceSettings, Settings


class RecordingDispatcher:
    def __init__(self) -> None:
        self.sent: list[tuple] = []

    def send(self, payload, endpoint: str, method: str) -> None:
        self.sent.append((payload, endpoint, method))


class FakeStream:
    """Line source standing in for the FIFO; returns b"" once the lines run out."""

    def __init__(self, lines: Iterable[bytes]) -> None:
        self.lines = list(lines)
        self.reads = 0
        self.closed = False

    def readline(self, size: int = -1) -> bytes:
        self.reads += 1
        if self.lines:
            return self.lines.pop(0)
        return b""

    def close(self) -> None:
        self.closed = True


class FakeResponse:
    def __init__(self, status_code: int = 200, reason: str = "OK") -> None:
        self.status_code = status_code
        self.reason = reason
        self.closed = False

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def close(self) -> None:
        self.closed = True


class FakeSession:
    def __init__(self, response: FakeResponse | None = None, error: Exception | None = None) -> None:
        self.response = response or FakeResponse()
        self.error = error
        self.calls: list[dict] = []

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.error:
            raise self.error
        return self.response

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        handler=HandlerSettings(
            node_path=str(tmp_path),
            startup_delay_seconds=0.05,
            open_attempts=5,
            open_retry_delay_seconds=0.0,
            eof_poll_interval_seconds=0.0,
        ),
        service=ServiceSettings(host="collector.local", port=9000),
    )


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()
