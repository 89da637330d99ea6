import io

import pytest

from eventrelay.exceptions import PipeOpenError
from eventrelay.pipe import PipeSource


class FlakyOpener:
    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.attempts = 0

    def __call__(self, path: str):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise FileNotFoundError(2, "No such file or directory", path)
        return io.BytesIO(b"")


def test_open_succeeds_after_four_failures() -> None:
    opener = FlakyOpener(failures=4)
    sleeps: list[float] = []
    source = PipeSource(attempts=5, retry_delay=3.0, opener=opener, sleep=sleeps.append)

    stream = source.open("/node/fifo/events.fifo")

    assert stream is not None
    assert opener.attempts == 5
    assert sleeps == [3.0] * 4


def test_open_gives_up_after_five_failures() -> None:
    opener = FlakyOpener(failures=100)
    sleeps: list[float] = []
    source = PipeSource(attempts=5, retry_delay=3.0, opener=opener, sleep=sleeps.append)

    with pytest.raises(PipeOpenError) as excinfo:
        source.open("/node/fifo/events.fifo")

    assert opener.attempts == 5
    assert len(sleeps) == 4
    assert excinfo.value.path == "/node/fifo/events.fifo"
    assert isinstance(excinfo.value.cause, FileNotFoundError)
    assert "/node/fifo/events.fifo" in str(excinfo.value)


def test_open_first_try_does_not_sleep() -> None:
    opener = FlakyOpener(failures=0)
    sleeps: list[float] = []

    PipeSource(opener=opener, sleep=sleeps.append).open("p")

    assert opener.attempts == 1
    assert sleeps == []


def test_default_opener_reads_file(tmp_path) -> None:
    target = tmp_path / "events.fifo"
    target.write_bytes(b"0\t1\n")

    with PipeSource(attempts=1).open(str(target)) as stream:
        assert stream.readline() == b"0\t1\n"
