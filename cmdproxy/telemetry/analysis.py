"""Summaries over the local telemetry log."""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field

from cmdproxy.models import RunRecord, VersionProbe, event_from_dict

logger = logging.getLogger(__name__)


@dataclass
class TelemetryAnalysis:
    runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    mean_duration_ms: int = 0
    error_counts: list[tuple[str, int]] = field(default_factory=list)
    versions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "runs": self.runs,
            "successful_runs": self.successful_runs,
            "failed_runs": self.failed_runs,
            "mean_duration_ms": self.mean_duration_ms,
            "error_counts": dict(self.error_counts),
            "versions": list(self.versions),
        }


def analyze(records: list[dict]) -> TelemetryAnalysis:
    """Aggregate stored records (as returned by TelemetryStore.load_events)."""
    analysis = TelemetryAnalysis()
    total_ms = 0
    errors: Counter = Counter()

    for record in records:
        data = record.get("event")
        if not isinstance(data, dict):
            logger.debug("Skipping telemetry record without an event payload")
            continue
        try:
            event = event_from_dict(record.get("kind", ""), data)
        except (ValueError, TypeError) as e:
            logger.debug("Skipping telemetry record: %s", e)
            continue

        if isinstance(event, RunRecord):
            analysis.runs += 1
            total_ms += event.duration_ms
            if event.exit_code == 0:
                analysis.successful_runs += 1
            else:
                analysis.failed_runs += 1
            errors.update(event.errors or ())
        elif isinstance(event, VersionProbe):
            label = f"{event.version} ({event.version_hash} {event.build_date})"
            if label not in analysis.versions:
                analysis.versions.append(label)

    if analysis.runs:
        analysis.mean_duration_ms = total_ms // analysis.runs
    analysis.error_counts = errors.most_common()
    return analysis
