from __future__ import annotations

from dataclasses import replace

import pytest

from replicator.config.model import AgentConfig, ClusterScaling
from replicator.config.profiles import default_config
from replicator.core.errors import RunnerError
from replicator.runtime.runner import ControlLoopRunner, default_runner_factory, validate_runner_config
from replicator.telemetry.bootstrap import NullMetrics


class _RecordingMetrics(NullMetrics):
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def incr(self, name: str, count: int = 1) -> None:
        self.calls.append(("incr", name))

    def timing(self, name: str, ms: float) -> None:
        self.calls.append(("timing", name))


def _with_cluster(**changes) -> AgentConfig:  # noqa: ANN003
    cfg = default_config()
    return replace(cfg, cluster_scaling=replace(cfg.cluster_scaling, **changes))


def test_defaults_are_valid() -> None:
    validate_runner_config(default_config())


@pytest.mark.parametrize(
    ("cfg", "fragment"),
    [
        (replace(default_config(), scaling_interval=0), "scaling_interval"),
        (_with_cluster(min_size=8, max_size=4), "greater than max_size"),
        (_with_cluster(min_size=-1), "min_size"),
        (_with_cluster(node_fault_tolerance=-1), "node_fault_tolerance"),
        (_with_cluster(cool_down=-5.0), "cool_down"),
        (_with_cluster(enabled=True), "autoscaling group"),
    ],
)
def test_invalid_config_is_runner_error(cfg: AgentConfig, fragment: str) -> None:
    with pytest.raises(RunnerError) as ei:
        default_runner_factory(cfg, NullMetrics())

    assert fragment in str(ei.value)


def test_enabled_cluster_scaling_with_group_is_valid() -> None:
    cfg = default_config().merge(
        AgentConfig(cluster_scaling=ClusterScaling(enabled=True, autoscaling_group="workers"))
    )
    assert isinstance(default_runner_factory(cfg, NullMetrics()), ControlLoopRunner)


def test_loop_runs_passes_until_stopped() -> None:
    seen: list[AgentConfig] = []
    runner: ControlLoopRunner

    def _pass(cfg: AgentConfig, _metrics) -> None:  # noqa: ANN001
        seen.append(cfg)
        if len(seen) == 3:
            runner.stop()

    cfg = replace(default_config(), scaling_interval=1)
    metrics = _RecordingMetrics()
    runner = ControlLoopRunner(cfg, metrics, scaling_pass=_pass, interval_s=0)

    runner.run()

    assert runner.passes == 3
    assert seen == [cfg, cfg, cfg]
    assert metrics.calls.count(("incr", "runner.passes")) == 3
    assert metrics.calls.count(("timing", "runner.pass_duration_ms")) == 3


def test_stop_before_run_skips_all_passes() -> None:
    calls: list[int] = []
    runner = ControlLoopRunner(default_config(), NullMetrics(), scaling_pass=lambda c, m: calls.append(1))

    runner.stop()
    runner.run()

    assert calls == []
    assert runner.passes == 0


def test_failed_pass_does_not_end_loop() -> None:
    attempts: list[int] = []
    runner: ControlLoopRunner

    def _pass(_cfg, _metrics) -> None:  # noqa: ANN001
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("nomad unreachable")
        runner.stop()

    metrics = _RecordingMetrics()
    runner = ControlLoopRunner(default_config(), metrics, scaling_pass=_pass, interval_s=0)

    runner.run()

    assert len(attempts) == 2
    assert ("incr", "runner.pass_errors") in metrics.calls
