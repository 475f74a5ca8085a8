from __future__ import annotations


class ReplicatorError(Exception):
    """Base exception for this project."""


class ConfigError(ReplicatorError):
    """Raised when configuration is invalid, unreadable or incomplete."""

    def __init__(self, message: str, *, path: str | None = None):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class FlagError(ConfigError):
    """Raised when command-line flags cannot be parsed."""


class TelemetryError(ReplicatorError):
    """Raised when the metrics sink cannot be constructed."""


class RunnerError(ReplicatorError):
    """Raised when a runner cannot be constructed from a configuration."""


class SupervisorStateError(ReplicatorError):
    """Raised on a start/stop call that the supervisor state does not allow."""
