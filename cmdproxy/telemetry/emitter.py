"""Best-effort telemetry emission."""
from __future__ import annotations

import logging

from cmdproxy.errors import TelemetryStoreError
from cmdproxy.models import TelemetryEvent
from cmdproxy.notifications import Notification, NotificationKind, NotifyHandler
from cmdproxy.telemetry.store import TelemetryStore

logger = logging.getLogger(__name__)


def emit(event: TelemetryEvent, store: TelemetryStore, notify: NotifyHandler) -> bool:
    """Append `event` to `store`.

    A store failure is handed to `notify` and otherwise discarded; the
    caller's result never depends on it.

    Returns:
        True if the event was written.
    """
    try:
        store.log_telemetry(event)
    except TelemetryStoreError as e:
        notify(Notification(NotificationKind.TELEMETRY_WRITE_ERROR, e))
        return False
    logger.debug("Logged %s telemetry: %s", event.kind, event.to_dict())
    return True
