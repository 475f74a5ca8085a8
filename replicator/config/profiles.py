"""Built-in configuration profiles.

- default: production defaults, the base for every resolution pass
- dev: default with verbose logging and all scaling actions disabled
"""

from __future__ import annotations

from dataclasses import replace

from replicator.config.model import AgentConfig, ClusterScaling, JobScaling
from replicator.core.errors import ConfigError


def default_config() -> AgentConfig:
    return AgentConfig(
        nomad="http://localhost:4646",
        consul="localhost:8500",
        log_level="INFO",
        scaling_interval=10,
        cluster_scaling=ClusterScaling(
            max_size=10,
            min_size=5,
            cool_down=600.0,
            node_fault_tolerance=1,
        ),
        job_scaling=JobScaling(
            consul_key_location="replicator/config/jobs",
        ),
    )


def dev_config() -> AgentConfig:
    conf = default_config()
    return replace(
        conf,
        log_level="DEBUG",
        cluster_scaling=replace(conf.cluster_scaling, enabled=False),
        job_scaling=replace(conf.job_scaling, enabled=False),
    )


PROFILES = {
    "default": default_config,
    "dev": dev_config,
}


def profile_config(profile: str) -> AgentConfig:
    if profile not in PROFILES:
        raise ConfigError(f"Unknown profile: {profile}")
    return PROFILES[profile]()
