from __future__ import annotations

from .errors import (
    ConfigError,
    FlagError,
    ReplicatorError,
    RunnerError,
    SupervisorStateError,
    TelemetryError,
)

__all__ = [
    "ConfigError",
    "FlagError",
    "ReplicatorError",
    "RunnerError",
    "SupervisorStateError",
    "TelemetryError",
]
