"""Error types raised by the proxy."""
from __future__ import annotations

import errno


class ProxyError(Exception):
    """Base class for cmdproxy errors."""


class NoExecutableName(ProxyError):
    """The proxy could not determine its own program name."""

    def __init__(self) -> None:
        super().__init__("could not determine the name of this executable")


class RunningCommand(ProxyError):
    """A child program could not be spawned or awaited.

    The underlying OSError is attached as __cause__.
    """

    def __init__(self, name: str) -> None:
        super().__init__(f"could not run command '{name}'")
        self.name = name

    @property
    def exit_code(self) -> int:
        # Shell conventions for "not found" and "not executable"
        cause = self.__cause__
        if isinstance(cause, OSError):
            if cause.errno == errno.ENOENT:
                return 127
            if cause.errno == errno.EACCES:
                return 126
        return 1


class TelemetryStoreError(ProxyError):
    """Writing to the telemetry log failed."""

    def __init__(self, path: str, error: OSError) -> None:
        super().__init__(f"telemetry log {path}: {error}")
        self.path = path
        self.error = error
