"""Click CLI and proxy entry point for cmdproxy.

Installed under its own name the script is a normal CLI. Linked or copied
under another name (e.g. `rustc`) it proxies that program.
"""
from __future__ import annotations

import json
import logging
import os
import sys

import click

from cmdproxy import __version__
from cmdproxy.config import Config, get_config_path, load_config, save_config
from cmdproxy.errors import NoExecutableName, RunningCommand, TelemetryStoreError
from cmdproxy.models import Invocation
from cmdproxy.runner import normalize_program_name, resolve_executable, run_command
from cmdproxy.telemetry.analysis import analyze
from cmdproxy.telemetry.store import TelemetryStore

PROG_NAME = "cmdproxy"
LOG_ENV = "CMDPROXY_LOG"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )


def _run_and_exit(invocation: Invocation, config: Config) -> None:
    """Run `invocation` and exit the process with its result."""
    try:
        code = run_command(invocation, config)
    except RunningCommand as e:
        click.echo(f"error: {e}: {e.__cause__}", err=True)
        sys.exit(e.exit_code)
    except NoExecutableName as e:
        click.echo(f"error: {e}", err=True)
        sys.exit(1)
    sys.exit(code)


@click.group()
@click.version_option(version=__version__, prog_name=PROG_NAME)
@click.option("--verbose", is_flag=True, help="Debug logging")
def cli(verbose: bool) -> None:
    """cmdproxy - transparent command proxy with opt-in rustc telemetry."""
    _configure_logging(verbose)


@cli.command(context_settings={"ignore_unknown_options": True,
                               "allow_interspersed_args": False})
@click.argument("program")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def run(program: str, args: tuple[str, ...]) -> None:
    """Run PROGRAM with ARGS, forwarding its output and exit code."""
    config = Config.load()
    self_path = sys.argv[0] if sys.argv else ""
    invocation = Invocation(
        executable=resolve_executable(program, config, self_path),
        args=(program, *args),
        caller_name=self_path,
    )
    _run_and_exit(invocation, config)


@cli.group()
def config() -> None:
    """Manage cmdproxy configuration."""
    pass


@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Set a configuration value. Supports: telemetry (on/off), toolchain_bin."""
    config_path = get_config_path()
    cfg = load_config(config_path)
    if key == "telemetry":
        if value not in ("on", "off"):
            click.echo("Value must be 'on' or 'off'", err=True)
            sys.exit(1)
        cfg["telemetry"] = (value == "on")
        save_config(config_path, cfg)
        click.echo(f"Telemetry {'enabled' if value == 'on' else 'disabled'}.")
    elif key == "toolchain_bin":
        path = os.path.abspath(value)
        if not os.path.isdir(path):
            click.echo(f"Not a directory: {path}", err=True)
            sys.exit(1)
        cfg["toolchain_bin"] = path
        save_config(config_path, cfg)
        click.echo(f"toolchain_bin: {path}")
    else:
        click.echo(f"Unknown config key: {key}", err=True)
        sys.exit(1)


@config.command("get")
@click.argument("key")
def config_get(key: str) -> None:
    """Get a configuration value."""
    if key == "telemetry":
        status = "on" if Config.load().telemetry_enabled else "off"
        click.echo(f"telemetry: {status}")
    elif key == "toolchain_bin":
        click.echo(f"toolchain_bin: {Config.load().toolchain_bin or '(PATH)'}")
    else:
        click.echo(f"Unknown config key: {key}", err=True)
        sys.exit(1)


@cli.group()
def telemetry() -> None:
    """Inspect the local telemetry log."""
    pass


@telemetry.command("analyze")
@click.option("--json-output", "--json", "json_output", is_flag=True,
              help="JSON to stdout instead of Rich")
def telemetry_analyze(json_output: bool) -> None:
    """Summarize recorded rustc runs."""
    store = TelemetryStore(Config.load().telemetry_dir)
    analysis = analyze(store.load_events())
    if json_output:
        click.echo(json.dumps(analysis.to_dict(), indent=2))
    else:
        from cmdproxy.output.terminal import render_analysis
        render_analysis(analysis)


@telemetry.command("clear")
def telemetry_clear() -> None:
    """Delete all recorded telemetry."""
    store = TelemetryStore(Config.load().telemetry_dir)
    try:
        removed = store.clear()
    except TelemetryStoreError as e:
        click.echo(f"Failed to clear telemetry: {e}", err=True)
        sys.exit(1)
    click.echo(f"Removed {removed} telemetry log(s) from {store.telemetry_dir}.")


def proxy_main(argv: list[str]) -> None:
    """Proxy mode: this process was invoked as the program it stands in for."""
    _configure_logging(os.environ.get(LOG_ENV, "").strip().lower() == "debug")
    config = Config.load()
    name = os.path.basename(argv[0])
    invocation = Invocation(
        executable=resolve_executable(name, config, argv[0]),
        args=(name, *argv[1:]),
        caller_name=argv[0],
    )
    _run_and_exit(invocation, config)


def main() -> None:
    """Entry point."""
    argv = list(sys.argv)
    try:
        caller = normalize_program_name(argv[0] if argv else "")
    except NoExecutableName as e:
        click.echo(f"error: {e}", err=True)
        sys.exit(1)

    if caller == PROG_NAME:
        cli()
    else:
        proxy_main(argv)
