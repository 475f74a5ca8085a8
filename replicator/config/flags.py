"""Command-line flags for the agent command.

Flags use the single-dash long form (`-config=path`); the double-dash form
is accepted as well. Every flag is optional and defaults to "unset", so the
config synthesised from flags only carries what the operator passed.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import NoReturn, Sequence

from replicator.config.loader import parse_bool
from replicator.config.model import AgentConfig, ClusterScaling, JobScaling, Notification, Telemetry
from replicator.core.errors import FlagError


class _AgentArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise FlagError(message)


def _flag(name: str) -> list[str]:
    return [f"-{name}", f"--{name}"]


def _bool_value(text: str) -> bool:
    try:
        return parse_bool(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


# `-flag` alone means true; `-flag=true|false` is accepted as well.
_BOOL_FLAG = {"nargs": "?", "const": True, "default": False, "type": _bool_value, "metavar": "<bool>"}


def build_parser() -> argparse.ArgumentParser:
    parser = _AgentArgumentParser(
        prog="replicator agent",
        description=(
            "Starts the Replicator agent and runs until an interrupt is received. "
            "The agent's configuration primarily comes from the config files used. "
            "If no config file is passed, a default config will be used."
        ),
        add_help=False,
        allow_abbrev=False,
    )

    general = parser.add_argument_group("General Options")
    general.add_argument("-h", "-help", "--help", dest="help", action="store_true", help="Show this help text")
    general.add_argument(
        *_flag("aws-region"),
        dest="region",
        metavar="<region>",
        help="AWS region the cluster runs in. Discovered dynamically when unset.",
    )
    general.add_argument(
        *_flag("config"),
        dest="config_path",
        metavar="<path>",
        help=(
            "Path to a single config file or a directory of config files. "
            "Files in a directory are processed in lexicographic order."
        ),
    )
    general.add_argument(
        *_flag("consul"),
        dest="consul",
        metavar="<address:port>",
        help="Address of the local Consul agent. Default: localhost:8500.",
    )
    general.add_argument(
        *_flag("dev"),
        dest="dev",
        **_BOOL_FLAG,
        help="Run with a configuration suited to development or local testing.",
    )
    general.add_argument(
        *_flag("log-level"),
        dest="log_level",
        metavar="<level>",
        help="Log verbosity. Default: INFO.",
    )
    general.add_argument(
        *_flag("nomad"),
        dest="nomad",
        metavar="<address:port>",
        help="Address of the Nomad API. Default: http://localhost:4646.",
    )
    general.add_argument(
        *_flag("scaling-interval"),
        dest="scaling_interval",
        type=int,
        metavar="<num>",
        help="Seconds between scaling check runs. Default: 10.",
    )

    cluster = parser.add_argument_group("Cluster Scaling Options")
    cluster.add_argument(
        *_flag("cluster-autoscaling-group"),
        dest="autoscaling_group",
        metavar="<name>",
        help="Name of the AWS autoscaling group containing the worker nodes.",
    )
    cluster.add_argument(
        *_flag("cluster-max-size"),
        dest="max_size",
        type=int,
        metavar="<num>",
        help="Maximum number of worker nodes in the cluster. Default: 10.",
    )
    # -cluster-mix-size is the name older releases bound; keep it working.
    cluster.add_argument(
        *_flag("cluster-min-size"),
        *_flag("cluster-mix-size"),
        dest="min_size",
        type=int,
        metavar="<num>",
        help="Minimum number of worker nodes in the cluster. Default: 5.",
    )
    cluster.add_argument(
        *_flag("cluster-node-fault-tolerance"),
        dest="node_fault_tolerance",
        type=int,
        metavar="<num>",
        help="Worker nodes the cluster can lose while keeping capacity. Default: 1.",
    )
    cluster.add_argument(
        *_flag("cluster-scaling-cool-down"),
        dest="cool_down",
        type=float,
        metavar="<num>",
        help="Seconds to wait between cluster scaling actions. Default: 600.",
    )
    cluster.add_argument(
        *_flag("cluster-scaling-enabled"),
        dest="cluster_scaling_enabled",
        **_BOOL_FLAG,
        help="Perform cluster scaling actions instead of only reporting them.",
    )

    job = parser.add_argument_group("Job Scaling Options")
    job.add_argument(
        *_flag("consul-key-location"),
        dest="consul_key_location",
        metavar="<key>",
        help="Consul KV location of job scaling policies. Default: replicator/config/jobs.",
    )
    job.add_argument(
        *_flag("consul-token"),
        dest="consul_token",
        metavar="<token>",
        help="Consul ACL token.",
    )
    job.add_argument(
        *_flag("job-scaling-enabled"),
        dest="job_scaling_enabled",
        **_BOOL_FLAG,
        help="Perform job scaling actions instead of only reporting them.",
    )

    telemetry = parser.add_argument_group("Telemetry Options")
    telemetry.add_argument(
        *_flag("statsd-address"),
        dest="statsd_address",
        metavar="<address:port>",
        help="Address of a statsd server to forward metrics to, including the port.",
    )

    notification = parser.add_argument_group("Notifications Options")
    notification.add_argument(
        *_flag("cluster-identifier"),
        dest="cluster_identifier",
        metavar="<name>",
        help="Human readable cluster name shown in alerts.",
    )
    notification.add_argument(
        *_flag("cluster-scaling-uid"),
        dest="cluster_scaling_uid",
        metavar="<uid>",
        help="Run book identifier attached to cluster scaling alerts.",
    )
    notification.add_argument(
        *_flag("pagerduty-service-key"),
        dest="pagerduty_service_key",
        metavar="<key>",
        help="PagerDuty integration key used to send events.",
    )

    return parser


@dataclass(frozen=True)
class ParsedFlags:
    config_path: str | None
    dev: bool
    help: bool
    overrides: AgentConfig


def _or_zero(value, zero):  # noqa: ANN001
    return zero if value is None else value


def parse_flags(args: Sequence[str]) -> ParsedFlags:
    """Parse agent flags.

    Raises:
        FlagError: On unknown flags, missing values or malformed numbers.
    """

    ns = build_parser().parse_args(list(args))

    overrides = AgentConfig(
        nomad=_or_zero(ns.nomad, ""),
        consul=_or_zero(ns.consul, ""),
        log_level=_or_zero(ns.log_level, ""),
        scaling_interval=_or_zero(ns.scaling_interval, 0),
        region=_or_zero(ns.region, ""),
        cluster_scaling=ClusterScaling(
            enabled=ns.cluster_scaling_enabled,
            max_size=_or_zero(ns.max_size, 0),
            min_size=_or_zero(ns.min_size, 0),
            cool_down=_or_zero(ns.cool_down, 0.0),
            node_fault_tolerance=_or_zero(ns.node_fault_tolerance, 0),
            autoscaling_group=_or_zero(ns.autoscaling_group, ""),
        ),
        job_scaling=JobScaling(
            enabled=ns.job_scaling_enabled,
            consul_token=_or_zero(ns.consul_token, ""),
            consul_key_location=_or_zero(ns.consul_key_location, ""),
        ),
        telemetry=Telemetry(statsd_address=_or_zero(ns.statsd_address, "")),
        notification=Notification(
            cluster_scaling_uid=_or_zero(ns.cluster_scaling_uid, ""),
            cluster_identifier=_or_zero(ns.cluster_identifier, ""),
            pagerduty_service_key=_or_zero(ns.pagerduty_service_key, ""),
        ),
    )

    return ParsedFlags(
        config_path=ns.config_path or None,
        dev=ns.dev,
        help=ns.help,
        overrides=overrides,
    )


def help_text() -> str:
    return build_parser().format_help().strip()
