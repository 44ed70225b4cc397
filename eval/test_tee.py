"""Tests for line-by-line stream forwarding."""
import io
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from cmdproxy.tee import tee_lines


def test_forwarded_bytes_equal_input():
    data = b"first\nsecond\r\nno newline at end"
    sink = io.BytesIO()
    seen = []

    count = tee_lines(io.BytesIO(data), sink, seen.append)

    assert sink.getvalue() == data
    assert seen == ["first\n", "second\r\n", "no newline at end"]
    assert count == 3


def test_handler_failure_does_not_stop_forwarding():
    data = b"one\ntwo\nthree\n"
    sink = io.BytesIO()

    def handler(line):
        raise RuntimeError("boom")

    count = tee_lines(io.BytesIO(data), sink, handler)

    assert sink.getvalue() == data
    assert count == 3


def test_line_written_before_handler_runs():
    sink = io.BytesIO()
    sink_lengths = []

    tee_lines(io.BytesIO(b"abc\ndef\n"), sink, lambda line: sink_lengths.append(len(sink.getvalue())))

    assert sink_lengths == [4, 8]


def test_invalid_utf8_is_forwarded_raw():
    data = b"caf\xe9 [E0308]\n"
    sink = io.BytesIO()
    seen = []

    tee_lines(io.BytesIO(data), sink, seen.append)

    assert sink.getvalue() == data
    assert "[E0308]" in seen[0]


def test_empty_stream():
    sink = io.BytesIO()
    assert tee_lines(io.BytesIO(b""), sink, lambda line: None) == 0
    assert sink.getvalue() == b""


class _ClosedPipeSink(io.BytesIO):
    """Accepts `accept` writes, then fails like a closed pipe."""

    def __init__(self, accept):
        super().__init__()
        self.accept = accept
        self.attempts = 0

    def write(self, data):
        self.attempts += 1
        if self.attempts > self.accept:
            raise BrokenPipeError(32, "Broken pipe")
        return super().write(data)


def test_sink_failure_still_drains_and_scans():
    data = b"error[E0308]\nerror[E0499]\nerror[E0382]\n"
    sink = _ClosedPipeSink(accept=1)
    seen = []

    count = tee_lines(io.BytesIO(data), sink, seen.append)

    assert count == 3
    assert sink.getvalue() == b"error[E0308]\n"
    assert sink.attempts == 2
    assert seen == ["error[E0308]\n", "error[E0499]\n", "error[E0382]\n"]
