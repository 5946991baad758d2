# SPDX-License-Identifier: HRUL-1.0
# Copyright (c) 2026 Gabriel Galán Pelayo
"""
Custom exception hierarchy for llmanager.

Two families matter to callers:
- ProcessError: anything the lifecycle controller could not do to the
  local daemon process (shell failures, missing PID, failed stop).
- RemoteError: anything that went wrong talking to the daemon's REST API
  (transport, non-2xx status, undecodable payload).
"""


class LLManagerError(Exception):
    """Base exception for all llmanager errors."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}\n{self.details}"
        return self.message


# --- Process errors ---


class ProcessError(LLManagerError):
    """Error controlling the local daemon process."""

    pass


class ExecutionError(ProcessError):
    """A shell command exited with a non-zero status."""

    def __init__(self, command: str, exit_status: int, stdout: str = "", stderr: str = ""):
        details = f"Status: {exit_status}"
        if stdout:
            details += f"\nOutput: {stdout}"
        if stderr:
            details += f"\nError output: {stderr}"
        super().__init__(f"Shell command failed: {command}", details)
        self.command = command
        self.exit_status = exit_status
        self.stdout = stdout
        self.stderr = stderr


class PidNotFoundError(ProcessError):
    """The start command ran but no process could be found afterwards."""

    def __init__(self, service_name: str):
        super().__init__(
            f"PID not found for service: {service_name}",
            "The start command returned but the process did not show up. "
            "Check that the daemon is installed and on the search path.",
        )
        self.service_name = service_name


class StopFailedError(ProcessError):
    """The termination signal was sent (or failed to send) and the process survived."""

    def __init__(self, service_name: str, pid: int, reason: str):
        super().__init__(f"Failed to stop {service_name} with PID {pid}", reason)
        self.service_name = service_name
        self.pid = pid
        self.reason = reason


# --- Remote API errors ---


class RemoteError(LLManagerError):
    """Error talking to the daemon's REST API."""

    pass


class DaemonUnreachableError(RemoteError):
    """Transport-level failure: connection refused, timeout, DNS, etc."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Could not reach the daemon at {url}", reason)
        self.url = url


class BadResponseError(RemoteError):
    """The daemon answered with a non-2xx status."""

    def __init__(self, status_code: int, description: str):
        super().__init__(
            f"API request failed with status code {status_code}: {description}"
        )
        self.status_code = status_code
        self.description = description


class ResponseDecodeError(RemoteError):
    """The response body did not match the expected schema."""

    def __init__(self, endpoint: str, reason: str):
        super().__init__(f"Could not decode response from {endpoint}", reason)
        self.endpoint = endpoint


# --- Configuration errors ---


class ConfigurationError(LLManagerError):
    """Configuration error."""

    pass


class InvalidConfigError(ConfigurationError):
    """Invalid configuration value."""

    def __init__(self, key: str, value: str, valid_values: list[str] | None = None):
        details = f"Invalid value for '{key}': {value}"
        if valid_values:
            details += f"\nValid values: {', '.join(valid_values)}"
        super().__init__("Configuration error", details)
        self.key = key
        self.value = value
