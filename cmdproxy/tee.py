"""Forward a piped child stream to the console while scanning it."""
from __future__ import annotations

import logging
from typing import BinaryIO, Callable

logger = logging.getLogger(__name__)


def tee_lines(stream: BinaryIO, sink: BinaryIO, handler: Callable[[str], None]) -> int:
    """Copy `stream` to `sink` one line at a time, offering each line to `handler`.

    Lines are written exactly as read (including a missing final newline)
    and flushed before the handler sees them. Handler failures are logged
    and dropped so they never stop the forwarding. If the sink stops
    accepting writes (e.g. a closed pipe) the stream is still drained to
    the end so the child never blocks on a full pipe.

    Returns:
        Number of lines read, for debug logging.
    """
    count = 0
    forwarding = True
    for raw in iter(stream.readline, b""):
        count += 1
        if forwarding:
            try:
                sink.write(raw)
                sink.flush()
            except OSError as e:
                forwarding = False
                logger.debug("Console write failed on line %d, draining the rest: %s", count, e)
        try:
            handler(raw.decode("utf-8", errors="replace"))
        except Exception as e:
            logger.debug("Line handler failed on line %d: %s", count, e)
    return count
