"""Effective configuration resolution.

Layers, lowest to highest precedence:

1. profile defaults (`dev` when `-dev` is passed, otherwise `default`)
2. the file or directory given by `-config`
3. values passed as command-line flags
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from replicator.config.flags import parse_flags
from replicator.config.loader import load_config
from replicator.config.model import AgentConfig
from replicator.config.profiles import profile_config
from replicator.core.errors import ConfigError


logger = logging.getLogger(__name__)

LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARN", "WARNING", "ERROR", "CRITICAL"})


def validate_config(cfg: AgentConfig) -> None:
    if cfg.log_level.upper() not in LOG_LEVELS:
        raise ConfigError(f"unknown log level {cfg.log_level!r}", path="log_level")


def resolve(args: Sequence[str], *, load_dotenv_file: bool = True) -> AgentConfig:
    """Resolve the effective configuration for the given agent arguments.

    Raises:
        FlagError: If the arguments cannot be parsed.
        ConfigError: If the config path cannot be loaded or the result is invalid.
    """

    flags = parse_flags(args)

    config = profile_config("dev" if flags.dev else "default")

    if flags.config_path is not None:
        try:
            current = load_config(Path(flags.config_path), load_dotenv_file=load_dotenv_file)
        except ConfigError as e:
            raise ConfigError(
                f"Error loading configuration from {flags.config_path}: {e}"
            ) from e

        logger.debug("config_file_loaded", extra={"config_path": flags.config_path})
        config = config.merge(current)

    config = config.merge(flags.overrides)
    validate_config(config)
    return config
