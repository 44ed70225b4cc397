"""Line matchers for compiler output.

Both matchers are fed one line at a time from the tee loop and keep only
what they have extracted so far.
"""
from __future__ import annotations

import re

from cmdproxy.models import VersionProbe

# "rustc 1.42.0 (b8cedc004 2020-03-09)"
VERSION_PATTERN = re.compile(
    r"^\w+ (?P<version>\d+\..*) \((?P<hash>.*) (?P<release>\d{4}-\d{2}-\d{2})"
)

# "error[E0308]: mismatched types"
ERROR_CODE_PATTERN = re.compile(r"\[(?P<error>E.{4})\]")


class VersionMatcher:
    """Captures the first version/hash/date line."""

    def __init__(self) -> None:
        self.probe: VersionProbe | None = None

    @property
    def matched(self) -> bool:
        return self.probe is not None

    def feed(self, line: str) -> None:
        if self.probe is not None:
            return
        m = VERSION_PATTERN.match(line)
        if m is None:
            return
        self.probe = VersionProbe(
            version=m.group("version"),
            version_hash=m.group("hash"),
            build_date=m.group("release"),
        )


class ErrorCodeMatcher:
    """Accumulates every bracketed diagnostic code, in output order."""

    def __init__(self) -> None:
        self._codes: list[str] = []

    def feed(self, line: str) -> None:
        self._codes.extend(m.group("error") for m in ERROR_CODE_PATTERN.finditer(line))

    @property
    def errors(self) -> list[str] | None:
        return list(self._codes) if self._codes else None
