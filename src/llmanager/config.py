# SPDX-License-Identifier: HRUL-1.0
# Copyright (c) 2026 Gabriel Galán Pelayo
"""Central llmanager configuration."""

from dataclasses import dataclass, field
import os

from llmanager.exceptions import InvalidConfigError

# Homebrew first so the macOS install wins over a stale system copy
STANDARD_PATH = "/opt/homebrew/bin:/usr/local/bin:/usr/bin:/bin:/usr/sbin:/sbin"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise InvalidConfigError(name, raw) from None
    if value <= 0:
        raise InvalidConfigError(name, raw)
    return value


@dataclass
class ManagerConfig:
    """Global application settings."""

    # Daemon process
    service_name: str = field(
        default_factory=lambda: os.environ.get("LLMANAGER_SERVICE", "ollama")
    )
    start_command: str | None = field(
        default_factory=lambda: os.environ.get("LLMANAGER_START_COMMAND")
    )

    # Shell used for every process command; PATH is the only variable passed
    shell: str = field(default_factory=lambda: os.environ.get("LLMANAGER_SHELL", "/bin/sh"))
    search_path: str = field(
        default_factory=lambda: os.environ.get("LLMANAGER_SEARCH_PATH", STANDARD_PATH)
    )
    command_timeout: float = 10.0

    # Settle time after issuing start/stop before re-probing
    start_grace: float = 0.5
    stop_grace: float = 0.2

    # REST API of the daemon
    api_url: str = field(
        default_factory=lambda: os.environ.get("LLMANAGER_API_URL", "http://localhost:11434")
    )
    request_timeout: float = 30.0

    # Polling
    refresh_interval: float = field(
        default_factory=lambda: _env_float("LLMANAGER_REFRESH_INTERVAL", 15.0)
    )

    def __post_init__(self):
        if not self.service_name.strip():
            raise InvalidConfigError("service_name", self.service_name)
        for key in (
            "start_grace",
            "stop_grace",
            "refresh_interval",
            "request_timeout",
            "command_timeout",
        ):
            if getattr(self, key) <= 0:
                raise InvalidConfigError(key, str(getattr(self, key)))

    @property
    def serve_command(self) -> str:
        """Command that launches the daemon in the foreground."""
        return self.start_command or f"{self.service_name} serve"


# Global instance
config = ManagerConfig()
