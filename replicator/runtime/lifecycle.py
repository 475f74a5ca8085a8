"""Process lifecycle and main entrypoint.

`replicator agent [options]` resolves the configuration, installs telemetry,
starts the runner and then serves signals until a terminate signal arrives.
"""

from __future__ import annotations

import contextlib
import logging
import sys
from typing import Sequence

from replicator import __version__
from replicator.config.flags import help_text, parse_flags
from replicator.config.model import AgentConfig, redact_secrets
from replicator.config.resolver import resolve
from replicator.core.errors import ConfigError, FlagError, RunnerError, TelemetryError
from replicator.observability.logging import configure_logging, set_level
from replicator.runtime.runner import RunnerFactory, default_runner_factory
from replicator.runtime.signals import SignalDispatcher, SignalQueue, installed_handlers
from replicator.runtime.supervisor import RunnerSupervisor
from replicator.telemetry.bootstrap import TelemetryBootstrap


logger = logging.getLogger(__name__)

SYNOPSIS = "Runs a Replicator agent"

_COMMANDS = {
    "agent": SYNOPSIS,
    "version": "Prints the Replicator version",
}


def _usage() -> str:
    lines = ["Usage: replicator <command> [options]", "", "Available commands are:"]
    for name, synopsis in _COMMANDS.items():
        lines.append(f"    {name:<10} {synopsis}")
    return "\n".join(lines)


def _log_effective_config(cfg: AgentConfig) -> None:
    logger.debug("effective_config", extra={"config": redact_secrets(cfg.to_dict())})


def run_agent(
    args: Sequence[str],
    *,
    runner_factory: RunnerFactory = default_runner_factory,
    queue: SignalQueue | None = None,
    handle_signals: bool = True,
) -> int:
    """Run the agent until a terminate signal; returns the process exit code.

    Exit codes:
    - 0: clean shutdown after SIGINT/SIGTERM/SIGQUIT
    - 1: flag, config, telemetry or runner failure (at startup or on reload)
    """

    args = list(args)

    try:
        if parse_flags(args).help:
            sys.stdout.write(help_text() + "\n")
            return 0
        cfg = resolve(args)
    except FlagError as e:
        sys.stderr.write(f"{e}\n\n{help_text()}\n")
        return 1
    except ConfigError as e:
        sys.stderr.write(f"{e}\n")
        return 1

    configure_logging(level=cfg.log_level)

    telemetry = TelemetryBootstrap()
    try:
        metrics = telemetry.install(cfg)
    except TelemetryError as e:
        logger.error("telemetry_setup_failed", extra={"error": str(e)})
        sys.stderr.write(f"unable to setup telemetry correctly: {e}\n")
        return 1

    supervisor = RunnerSupervisor(runner_factory=runner_factory, metrics=metrics)

    def _reload() -> AgentConfig:
        # Same arguments as at startup; config files may have changed on disk.
        new_cfg = resolve(args)
        set_level(new_cfg.log_level)
        supervisor.metrics = telemetry.install(new_cfg)
        _log_effective_config(new_cfg)
        return new_cfg

    dispatcher = SignalDispatcher(supervisor, _reload, queue=queue)

    with installed_handlers(dispatcher.queue) if handle_signals else contextlib.nullcontext():
        logger.info("agent_starting", extra={"version": __version__})
        _log_effective_config(cfg)
        try:
            supervisor.start(cfg)
        except RunnerError as e:
            logger.error("runner_setup_failed", extra={"error": str(e)})
            sys.stderr.write(f"unable to start runner: {e}\n")
            return 1

        exit_code = dispatcher.run()

    if exit_code != 0 and dispatcher.last_error is not None:
        sys.stderr.write(f"reload failed: {dispatcher.last_error}\n")
    logger.info("agent_exited", extra={"exit_code": exit_code})
    return exit_code


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint referenced by pyproject.toml."""

    argv_list = list(argv) if argv is not None else sys.argv[1:]

    # Default to `agent` when no subcommand is provided.
    if argv_list and not argv_list[0].startswith("-"):
        command, argv_list = argv_list[0], argv_list[1:]
    else:
        command = "agent"

    if command == "version":
        sys.stdout.write(f"Replicator v{__version__}\n")
        return 0
    if command != "agent":
        sys.stderr.write(f"Unknown command: {command}\n\n{_usage()}\n")
        return 1

    try:
        return run_agent(argv_list)
    except Exception as e:  # noqa: BLE001
        logger.exception("fatal_error")
        sys.stderr.write(f"Fatal error: {e}\n")
        return 1
