"""Run a proxied program, instrumenting rustc when telemetry is on.

Every run path returns an ExitOutcome; only the CLI entry point turns it
into a process exit.
"""
from __future__ import annotations

import errno
import logging
import os
import shutil
import subprocess
import sys
import time
from typing import BinaryIO

from cmdproxy.config import Config
from cmdproxy.errors import NoExecutableName, RunningCommand
from cmdproxy.extract import ErrorCodeMatcher, VersionMatcher
from cmdproxy.models import (
    Completed, ExitOutcome, Invocation, RunPath, RunRecord, SpawnFailed,
)
from cmdproxy.notifications import Notification, NotificationKind, NotifyHandler
from cmdproxy.tee import tee_lines
from cmdproxy.telemetry.emitter import emit
from cmdproxy.telemetry.store import TelemetryStore

logger = logging.getLogger(__name__)

INSTRUMENTED_PROGRAM = "rustc"
VERSION_FLAGS = ("-V", "--version")


def normalize_program_name(path: str) -> str:
    """Basename of `path`, lower-cased, without a trailing .exe."""
    name = os.path.basename(path or "").lower()
    if name.endswith(".exe"):
        name = name[:-len(".exe")]
    if not name:
        raise NoExecutableName()
    return name


def resolve_executable(name: str, config: Config, self_path: str) -> str | None:
    """Find the real executable for `name`, skipping the proxy's own directory.

    Returns None when the only candidates are the proxy itself; spawning
    such an invocation fails with ENOENT instead of re-running the proxy.
    """
    if config.toolchain_bin:
        return os.path.join(config.toolchain_bin, name)

    own_dirs = {
        os.path.dirname(os.path.abspath(self_path)),
        os.path.dirname(os.path.realpath(self_path)),
    }
    search = [
        d for d in os.environ.get("PATH", "").split(os.pathsep)
        if d and os.path.abspath(d) not in own_dirs
    ]
    found = shutil.which(name, path=os.pathsep.join(search))
    if found is None:
        logger.debug("No %s found on PATH outside %s", name, sorted(own_dirs))
    return found


def select_path(invocation: Invocation, config: Config) -> RunPath:
    if normalize_program_name(invocation.caller_name) != INSTRUMENTED_PROGRAM:
        return RunPath.PLAIN
    if not config.telemetry_enabled:
        config.notify_handler(Notification(NotificationKind.TELEMETRY_DISABLED))
        return RunPath.PLAIN
    if any(arg in VERSION_FLAGS for arg in invocation.passthrough_args):
        return RunPath.VERSION_QUERY
    return RunPath.NORMAL_RUN


def _exit_code(returncode: int | None) -> int:
    # Negative return codes mean the child was killed by a signal
    if returncode is None or returncode < 0:
        return 1
    return returncode


def _flush_console() -> None:
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (OSError, ValueError):
            pass


def _spawn(invocation: Invocation, **streams) -> subprocess.Popen:
    """Start the child with stdin inherited."""
    if invocation.executable is None:
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), invocation.program)
    return subprocess.Popen(invocation.argv, stdin=None, **streams)


def run_plain(invocation: Invocation) -> ExitOutcome:
    """Run with stdin, stdout and stderr all inherited."""
    _flush_console()
    try:
        proc = _spawn(invocation, stdout=None, stderr=None)
    except OSError as e:
        return SpawnFailed(e)
    with proc:
        try:
            returncode = proc.wait()
        except OSError as e:
            return SpawnFailed(e)
    return Completed(_exit_code(returncode))


def run_version_query(
    invocation: Invocation,
    store: TelemetryStore,
    notify: NotifyHandler,
    stdout_sink: BinaryIO | None = None,
) -> ExitOutcome:
    """Run `rustc --version`, teeing stdout through the version matcher."""
    sink = stdout_sink if stdout_sink is not None else sys.stdout.buffer
    matcher = VersionMatcher()
    _flush_console()
    try:
        proc = _spawn(invocation, stdout=subprocess.PIPE, stderr=None)
    except OSError as e:
        return SpawnFailed(e)
    with proc:
        lines = tee_lines(proc.stdout, sink, matcher.feed)
        try:
            returncode = proc.wait()
        except OSError as e:
            return SpawnFailed(e)
    logger.debug("Forwarded %d stdout lines from %s", lines, invocation.program)

    if matcher.probe is not None:
        emit(matcher.probe, store, notify)
    else:
        logger.debug("No version line in output of %s", invocation.program)
    return Completed(_exit_code(returncode))


def run_instrumented(
    invocation: Invocation,
    store: TelemetryStore,
    notify: NotifyHandler,
    stderr_sink: BinaryIO | None = None,
) -> ExitOutcome:
    """Run rustc, teeing stderr through the error-code matcher and timing it.

    A RunRecord is emitted on every path, including a failed spawn.
    """
    sink = stderr_sink if stderr_sink is not None else sys.stderr.buffer
    matcher = ErrorCodeMatcher()

    def failed(error: OSError) -> ExitOutcome:
        duration_ms = int((time.monotonic() - start) * 1000)
        outcome = SpawnFailed(error)
        emit(RunRecord(duration_ms=duration_ms, exit_code=outcome.exit_code), store, notify)
        return outcome

    _flush_console()
    start = time.monotonic()
    try:
        proc = _spawn(invocation, stdout=None, stderr=subprocess.PIPE)
    except OSError as e:
        return failed(e)
    with proc:
        lines = tee_lines(proc.stderr, sink, matcher.feed)
        try:
            returncode = proc.wait()
        except OSError as e:
            return failed(e)
    duration_ms = int((time.monotonic() - start) * 1000)
    logger.debug("Forwarded %d stderr lines from %s", lines, invocation.program)

    exit_code = _exit_code(returncode)
    errors = matcher.errors
    emit(
        RunRecord(
            duration_ms=duration_ms,
            exit_code=exit_code,
            errors=tuple(errors) if errors is not None else None,
        ),
        store,
        notify,
    )
    return Completed(exit_code)


def run_command(
    invocation: Invocation,
    config: Config,
    store: TelemetryStore | None = None,
    stdout_sink: BinaryIO | None = None,
    stderr_sink: BinaryIO | None = None,
) -> int:
    """Dispatch `invocation` to a run path and return the child's exit code.

    Raises:
        NoExecutableName: the caller name is empty.
        RunningCommand: the child could not be spawned or awaited.
    """
    path = select_path(invocation, config)
    logger.debug("Running %s via %s path", invocation.argv, path.value)

    if path == RunPath.PLAIN:
        outcome = run_plain(invocation)
    else:
        store = store or TelemetryStore(config.telemetry_dir)
        if path == RunPath.VERSION_QUERY:
            outcome = run_version_query(invocation, store, config.notify_handler, stdout_sink)
        else:
            outcome = run_instrumented(invocation, store, config.notify_handler, stderr_sink)

    if isinstance(outcome, SpawnFailed):
        raise RunningCommand(invocation.program) from outcome.error
    return outcome.exit_code
