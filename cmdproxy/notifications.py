"""Notifications reported by the proxy to its host."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    TELEMETRY_WRITE_ERROR = "telemetry_write_error"
    TELEMETRY_DISABLED = "telemetry_disabled"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    error: Exception | None = None

    @property
    def is_error(self) -> bool:
        return self.kind == NotificationKind.TELEMETRY_WRITE_ERROR

    @property
    def message(self) -> str:
        if self.kind == NotificationKind.TELEMETRY_WRITE_ERROR:
            return f"unable to write telemetry: {self.error}"
        return "telemetry is disabled; running without instrumentation"


NotifyHandler = Callable[[Notification], None]


def log_notification(notification: Notification) -> None:
    """Default handler: route notifications to logging."""
    if notification.is_error:
        logger.warning(notification.message)
    else:
        logger.debug(notification.message)
