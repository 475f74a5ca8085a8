from __future__ import annotations

from pathlib import Path

import pytest

from replicator.config.flags import help_text, parse_flags
from replicator.config.loader import load_config
from replicator.config.model import AgentConfig
from replicator.config.profiles import default_config, dev_config
from replicator.config.resolver import resolve
from replicator.core.errors import ConfigError, FlagError


def _resolve(args: list[str]) -> AgentConfig:
    return resolve(args, load_dotenv_file=False)


def _write(path: Path, text: str) -> Path:
    path.write_text(text.lstrip(), encoding="utf-8")
    return path


def test_no_args_yields_production_defaults() -> None:
    assert _resolve([]) == default_config()


def test_dev_flag_yields_dev_profile() -> None:
    assert _resolve(["-dev"]) == dev_config()


def test_cluster_size_flags_override_only_those_fields() -> None:
    cfg = _resolve(["-cluster-max-size=20", "-cluster-min-size=8"])

    defaults = default_config().cluster_scaling
    assert cfg.cluster_scaling.max_size == 20
    assert cfg.cluster_scaling.min_size == 8
    assert cfg.cluster_scaling.enabled == defaults.enabled
    assert cfg.cluster_scaling.cool_down == defaults.cool_down
    assert cfg.cluster_scaling.node_fault_tolerance == defaults.node_fault_tolerance
    assert cfg.cluster_scaling.autoscaling_group == defaults.autoscaling_group


def test_legacy_min_size_flag_name_still_accepted() -> None:
    assert _resolve(["-cluster-mix-size=3"]).cluster_scaling.min_size == 3


def test_double_dash_and_separate_values_are_accepted() -> None:
    cfg = _resolve(["--aws-region", "eu-west-1", "-scaling-interval", "30", "--job-scaling-enabled"])

    assert cfg.region == "eu-west-1"
    assert cfg.scaling_interval == 30
    assert cfg.job_scaling.enabled is True


@pytest.mark.parametrize("value", ["true", "TRUE", "1"])
def test_boolean_flags_accept_explicit_true(value: str) -> None:
    cfg = _resolve([f"-cluster-scaling-enabled={value}", f"--job-scaling-enabled={value}"])

    assert cfg.cluster_scaling.enabled is True
    assert cfg.job_scaling.enabled is True
    assert _resolve([f"-dev={value}"]) == dev_config()


def test_boolean_flag_false_leaves_field_unset(tmp_path: Path) -> None:
    p = _write(tmp_path / "agent.yaml", "job_scaling:\n  enabled: true\n")

    flags = parse_flags(["-dev=false", "-cluster-scaling-enabled=false", "-job-scaling-enabled=0"])
    assert flags.dev is False
    assert flags.overrides == AgentConfig()

    # A false flag cannot switch off a value set by a lower layer.
    cfg = _resolve([f"-config={p}", "-job-scaling-enabled=false"])
    assert cfg.job_scaling.enabled is True


def test_malformed_boolean_flag_is_flag_error() -> None:
    with pytest.raises(FlagError) as ei:
        _resolve(["-cluster-scaling-enabled=maybe"])

    assert "maybe" in str(ei.value)


def test_every_flag_maps_to_its_field() -> None:
    cfg = _resolve(
        [
            "-nomad=http://nomad:4646",
            "-consul=consul:8500",
            "-log-level=debug",
            "-scaling-interval=5",
            "-aws-region=us-west-2",
            "-cluster-scaling-enabled",
            "-cluster-max-size=40",
            "-cluster-min-size=4",
            "-cluster-scaling-cool-down=90.5",
            "-cluster-node-fault-tolerance=2",
            "-cluster-autoscaling-group=workers",
            "-job-scaling-enabled",
            "-consul-token=tok",
            "-consul-key-location=custom/jobs",
            "-statsd-address=127.0.0.1:8125",
            "-cluster-scaling-uid=RB-42",
            "-cluster-identifier=prod",
            "-pagerduty-service-key=pd",
        ]
    )

    assert cfg.nomad == "http://nomad:4646"
    assert cfg.consul == "consul:8500"
    assert cfg.log_level == "debug"
    assert cfg.scaling_interval == 5
    assert cfg.region == "us-west-2"
    assert cfg.cluster_scaling.enabled is True
    assert cfg.cluster_scaling.max_size == 40
    assert cfg.cluster_scaling.min_size == 4
    assert cfg.cluster_scaling.cool_down == 90.5
    assert cfg.cluster_scaling.node_fault_tolerance == 2
    assert cfg.cluster_scaling.autoscaling_group == "workers"
    assert cfg.job_scaling.enabled is True
    assert cfg.job_scaling.consul_token == "tok"
    assert cfg.job_scaling.consul_key_location == "custom/jobs"
    assert cfg.telemetry.statsd_address == "127.0.0.1:8125"
    assert cfg.notification.cluster_scaling_uid == "RB-42"
    assert cfg.notification.cluster_identifier == "prod"
    assert cfg.notification.pagerduty_service_key == "pd"


def test_precedence_default_then_file_then_flags(tmp_path: Path) -> None:
    p = _write(
        tmp_path / "agent.yaml",
        """
log_level: WARNING
region: eu-west-1
cluster_scaling:
  max_size: 15
  min_size: 3
""",
    )
    args = [f"-config={p}", "-cluster-max-size=25", "-consul=consul.service:8500"]

    cfg = _resolve(args)

    expected = default_config().merge(load_config(p, load_dotenv_file=False)).merge(parse_flags(args).overrides)
    assert cfg == expected
    assert cfg.cluster_scaling.max_size == 25  # flag beats file
    assert cfg.cluster_scaling.min_size == 3  # file beats default
    assert cfg.log_level == "WARNING"
    assert cfg.consul == "consul.service:8500"
    assert cfg.nomad == default_config().nomad


def test_dev_profile_with_file_and_flags(tmp_path: Path) -> None:
    p = _write(tmp_path / "agent.yaml", "log_level: ERROR\n")

    cfg = _resolve(["-dev", "-config", str(p), "-aws-region=us-east-1"])

    assert cfg == dev_config().merge(AgentConfig(log_level="ERROR", region="us-east-1"))


def test_config_directory(tmp_path: Path) -> None:
    _write(tmp_path / "a.yaml", "cluster_scaling:\n  max_size: 12\n")
    _write(tmp_path / "b.yaml", "cluster_scaling:\n  max_size: 14\n")

    assert _resolve([f"-config={tmp_path}"]).cluster_scaling.max_size == 14


def test_resolve_is_idempotent(tmp_path: Path) -> None:
    p = _write(tmp_path / "agent.yaml", "region: eu-central-1\n")
    args = ["-config", str(p), "-cluster-max-size=11"]

    assert _resolve(args) == _resolve(args)


def test_config_load_failure_names_path(tmp_path: Path) -> None:
    missing = tmp_path / "missing.yaml"

    with pytest.raises(ConfigError) as ei:
        _resolve([f"-config={missing}"])

    assert f"Error loading configuration from {missing}" in str(ei.value)


def test_unknown_flag_is_flag_error() -> None:
    with pytest.raises(FlagError):
        _resolve(["-cluster-maximum=3"])


def test_malformed_number_is_flag_error() -> None:
    with pytest.raises(FlagError) as ei:
        _resolve(["-cluster-max-size=many"])

    assert "cluster-max-size" in str(ei.value)


def test_positional_argument_is_flag_error() -> None:
    with pytest.raises(FlagError):
        _resolve(["extra"])


def test_unknown_log_level_is_config_error() -> None:
    with pytest.raises(ConfigError) as ei:
        _resolve(["-log-level=chatty"])

    assert "log_level" in str(ei.value)


def test_help_flag_is_reported_not_applied() -> None:
    flags = parse_flags(["-help"])

    assert flags.help is True
    assert flags.overrides == AgentConfig()


def test_help_text_lists_option_groups() -> None:
    text = help_text()
    for group in ("General Options", "Cluster Scaling Options", "Job Scaling Options", "Telemetry Options"):
        assert group in text
    assert "-cluster-min-size" in text
