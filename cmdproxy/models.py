"""Data model for proxied runs and the telemetry they produce."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Union


class RunPath(str, Enum):
    PLAIN = "plain"
    VERSION_QUERY = "version_query"
    NORMAL_RUN = "normal_run"


@dataclass(frozen=True)
class Invocation:
    """One proxied program run.

    args[0] is the program name as the caller typed it; the rest is
    passed through to the executable untouched.
    executable is None when no real program could be found for it.
    """
    executable: str | None
    args: tuple[str, ...]
    caller_name: str

    @property
    def program(self) -> str:
        return self.args[0] if self.args else (self.executable or "")

    @property
    def passthrough_args(self) -> list[str]:
        return list(self.args[1:])

    @property
    def argv(self) -> list[str]:
        return [self.executable, *self.passthrough_args]


@dataclass(frozen=True)
class VersionProbe:
    """Compiler identity captured from `rustc --version` output."""
    kind: ClassVar[str] = "rustc_version"

    version: str
    version_hash: str
    build_date: str

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "version_hash": self.version_hash,
            "build_date": self.build_date,
        }


@dataclass(frozen=True)
class RunRecord:
    """Timing and outcome of one compiler run.

    errors is None when no diagnostic codes were seen, never an empty list.
    """
    kind: ClassVar[str] = "rustc_run"

    duration_ms: int
    exit_code: int
    errors: tuple[str, ...] | None = None

    def to_dict(self) -> dict:
        out = {"duration_ms": self.duration_ms, "exit_code": self.exit_code}
        if self.errors is not None:
            out["errors"] = list(self.errors)
        return out


TelemetryEvent = Union[VersionProbe, RunRecord]


def event_from_dict(kind: str, data: dict) -> TelemetryEvent:
    """Rebuild an event from a stored log record."""
    if kind == RunRecord.kind:
        errors = data.get("errors")
        return RunRecord(
            duration_ms=int(data.get("duration_ms", 0)),
            exit_code=int(data.get("exit_code", 1)),
            errors=tuple(errors) if errors else None,
        )
    if kind == VersionProbe.kind:
        return VersionProbe(
            version=data.get("version", ""),
            version_hash=data.get("version_hash", ""),
            build_date=data.get("build_date", ""),
        )
    raise ValueError(f"unknown telemetry event kind: {kind!r}")


@dataclass(frozen=True)
class Completed:
    exit_code: int


@dataclass(frozen=True)
class SpawnFailed:
    error: OSError = field(compare=False)

    @property
    def exit_code(self) -> int:
        return self.error.errno or 1


ExitOutcome = Union[Completed, SpawnFailed]
