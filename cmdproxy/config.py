"""Proxy configuration: ~/.cmdproxy/config.json plus environment overrides."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field

from cmdproxy.notifications import NotifyHandler, log_notification

HOME_ENV = "CMDPROXY_HOME"
TELEMETRY_ENV = "CMDPROXY_TELEMETRY"
CONFIG_FILENAME = "config.json"
TELEMETRY_DIRNAME = "telemetry"


def get_home() -> str:
    """Return the cmdproxy home directory."""
    home = os.environ.get(HOME_ENV, "").strip()
    if home:
        return os.path.abspath(home)
    return os.path.join(os.path.expanduser("~"), ".cmdproxy")


def get_config_path(home: str | None = None) -> str:
    return os.path.join(home or get_home(), CONFIG_FILENAME)


def load_config(config_path: str) -> dict:
    """Load config from file, returning empty dict if not found."""
    if not os.path.exists(config_path):
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(config_path: str, cfg: dict) -> None:
    """Save config to file."""
    os.makedirs(os.path.dirname(config_path), exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(cfg, f, indent=2)


@dataclass
class Config:
    home: str
    telemetry_enabled: bool = False
    toolchain_bin: str | None = None
    notify_handler: NotifyHandler = field(default=log_notification, repr=False)

    @property
    def telemetry_dir(self) -> str:
        return os.path.join(self.home, TELEMETRY_DIRNAME)

    @classmethod
    def load(cls, home: str | None = None) -> "Config":
        """Read the config file, then apply CMDPROXY_TELEMETRY."""
        home = home or get_home()
        data = load_config(get_config_path(home))

        enabled = bool(data.get("telemetry", False))   # opt-in
        env_override = os.environ.get(TELEMETRY_ENV, "").strip().lower()
        if env_override == "off":
            enabled = False
        elif env_override == "on":
            enabled = True

        toolchain_bin = data.get("toolchain_bin") or None
        return cls(home=home, telemetry_enabled=enabled, toolchain_bin=toolchain_bin)
