"""Runner contract and the default control-loop runner.

A runner is constructed from one configuration and the metrics handle,
`run()` blocks until the loop ends, and `stop()` asks the loop to end. The
scaling decisions themselves are a pluggable pass.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol

from replicator.config.model import AgentConfig
from replicator.core.clock import PassTiming, monotonic_ms
from replicator.core.errors import RunnerError
from replicator.telemetry.bootstrap import MetricsHandle


logger = logging.getLogger(__name__)


class Runner(Protocol):
    def run(self) -> None: ...

    def stop(self) -> None: ...


RunnerFactory = Callable[[AgentConfig, MetricsHandle], Runner]

ScalingPass = Callable[[AgentConfig, MetricsHandle], None]


def report_only_pass(cfg: AgentConfig, metrics: MetricsHandle) -> None:
    """Default pass: report what would be evaluated without acting."""

    logger.debug(
        "scaling_pass",
        extra={
            "cluster_scaling_enabled": cfg.cluster_scaling.enabled,
            "job_scaling_enabled": cfg.job_scaling.enabled,
            "min_size": cfg.cluster_scaling.min_size,
            "max_size": cfg.cluster_scaling.max_size,
        },
    )


def validate_runner_config(cfg: AgentConfig) -> None:
    cs = cfg.cluster_scaling
    if cfg.scaling_interval < 1:
        raise RunnerError(f"scaling_interval must be >= 1 second, got {cfg.scaling_interval}")
    if cs.min_size < 0:
        raise RunnerError(f"cluster min_size must be >= 0, got {cs.min_size}")
    if cs.min_size > cs.max_size:
        raise RunnerError(
            f"cluster min_size ({cs.min_size}) is greater than max_size ({cs.max_size})"
        )
    if cs.node_fault_tolerance < 0:
        raise RunnerError("cluster node_fault_tolerance must be >= 0")
    if cs.cool_down < 0:
        raise RunnerError("cluster cool_down must be >= 0")
    if cs.enabled and not cs.autoscaling_group:
        raise RunnerError("cluster scaling is enabled but no autoscaling group is configured")


class ControlLoopRunner:
    """Runs a scaling pass every `scaling_interval` seconds until stopped."""

    def __init__(
        self,
        cfg: AgentConfig,
        metrics: MetricsHandle,
        *,
        scaling_pass: ScalingPass | None = None,
        interval_s: float | None = None,
    ) -> None:
        validate_runner_config(cfg)
        self._cfg = cfg
        self._interval_s = float(cfg.scaling_interval if interval_s is None else interval_s)
        self._metrics = metrics
        self._scaling_pass = scaling_pass or report_only_pass
        self._stop_event = threading.Event()
        self._passes = 0

    @property
    def config(self) -> AgentConfig:
        return self._cfg

    @property
    def passes(self) -> int:
        return self._passes

    def run(self) -> None:
        logger.info("runner_loop_started", extra={"scaling_interval_s": self._interval_s})

        while not self._stop_event.is_set():
            timing = PassTiming(pass_number=self._passes + 1, started_ms=monotonic_ms())
            try:
                self._scaling_pass(self._cfg, self._metrics)
            except Exception:  # noqa: BLE001
                # The next tick retries.
                logger.exception("scaling_pass_failed", extra={"pass_number": timing.pass_number})
                self._metrics.incr("runner.pass_errors")
            timing.finished_ms = monotonic_ms()

            self._passes += 1
            self._metrics.incr("runner.passes")
            self._metrics.timing("runner.pass_duration_ms", timing.duration_ms() or 0)

            if self._stop_event.wait(self._interval_s):
                break

        logger.info("runner_loop_stopped", extra={"passes": self._passes})

    def stop(self) -> None:
        self._stop_event.set()


def default_runner_factory(cfg: AgentConfig, metrics: MetricsHandle) -> Runner:
    return ControlLoopRunner(cfg, metrics)
