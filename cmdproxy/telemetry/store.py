"""Local JSONL telemetry log, one file per day."""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone

from cmdproxy.errors import TelemetryStoreError
from cmdproxy.models import TelemetryEvent

logger = logging.getLogger(__name__)

LOG_FILE_VERSION = 1
MAX_TELEMETRY_FILES = 100
LOG_PREFIX = "log-"
LOG_SUFFIX = ".jsonl"


class TelemetryStore:
    """Append-only telemetry log rooted at `telemetry_dir`."""

    def __init__(self, telemetry_dir: str, max_files: int = MAX_TELEMETRY_FILES) -> None:
        self.telemetry_dir = telemetry_dir
        self.max_files = max_files

    def log_telemetry(self, event: TelemetryEvent) -> None:
        """Append one event. Raises TelemetryStoreError on any I/O failure."""
        now = datetime.now(timezone.utc)
        entry = {
            "ts": now.isoformat(),
            "version": LOG_FILE_VERSION,
            "kind": event.kind,
            "event": event.to_dict(),
        }
        path = os.path.join(self.telemetry_dir, f"{LOG_PREFIX}{now:%Y-%m-%d}{LOG_SUFFIX}")
        try:
            os.makedirs(self.telemetry_dir, exist_ok=True)
            with open(path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")
        except OSError as e:
            raise TelemetryStoreError(path, e) from e
        self._prune()

    def log_files(self) -> list[str]:
        """Log file paths, oldest first."""
        if not os.path.isdir(self.telemetry_dir):
            return []
        names = sorted(
            n for n in os.listdir(self.telemetry_dir)
            if n.startswith(LOG_PREFIX) and n.endswith(LOG_SUFFIX)
        )
        return [os.path.join(self.telemetry_dir, n) for n in names]

    def load_events(self) -> list[dict]:
        """Read every stored record, oldest first. Malformed lines are skipped."""
        records: list[dict] = []
        for path in self.log_files():
            try:
                with open(path, "r", encoding="utf-8") as f:
                    lines = f.readlines()
            except OSError as e:
                logger.debug("Failed to read telemetry log %s: %s", path, e)
                continue
            for line in lines:
                line = line.strip()
                if not line:
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError as e:
                    logger.debug("Skipping malformed telemetry line in %s: %s", path, e)
                    continue
                if isinstance(record, dict):
                    records.append(record)
        return records

    def clear(self) -> int:
        """Delete all log files. Returns the number removed."""
        removed = 0
        for path in self.log_files():
            try:
                os.remove(path)
                removed += 1
            except OSError as e:
                raise TelemetryStoreError(path, e) from e
        return removed

    def _prune(self) -> None:
        """Keep only the newest `max_files` logs. Failures are logged, not raised."""
        try:
            files = self.log_files()
            for path in files[:max(0, len(files) - self.max_files)]:
                os.remove(path)
        except OSError as e:
            logger.debug("Failed to prune telemetry logs: %s", e)
