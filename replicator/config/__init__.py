"""Configuration model, loading and resolution.

- typed, frozen config sections with field-wise merge
- YAML/JSON files with strict ${ENV_VAR} expansion
- layered resolution: profile -> config file(s) -> command-line flags
"""

from __future__ import annotations

from replicator.config.loader import load_config
from replicator.config.model import (
    AgentConfig,
    ClusterScaling,
    JobScaling,
    Notification,
    Telemetry,
    redact_secrets,
)
from replicator.config.profiles import default_config, dev_config
from replicator.config.resolver import resolve
from replicator.core.errors import ConfigError, FlagError

__all__ = [
    "AgentConfig",
    "ClusterScaling",
    "ConfigError",
    "FlagError",
    "JobScaling",
    "Notification",
    "Telemetry",
    "default_config",
    "dev_config",
    "load_config",
    "redact_secrets",
    "resolve",
]
