from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, is_dataclass, replace
from typing import Any, TypeVar


_T = TypeVar("_T")

_SECRET_MARKERS = ("token", "service_key", "api_key", "secret", "password")


def _is_set(value: Any) -> bool:
    # Zero values ("", 0, 0.0, False) mean "not set" and never override.
    return bool(value)


def merge_sections(base: _T, overlay: _T) -> _T:
    """Field-wise merge of two config dataclasses of the same type.

    Nested sections are merged recursively, scalars are taken from `overlay`
    only when set.
    """

    changes: dict[str, Any] = {}
    for f in fields(base):  # type: ignore[arg-type]
        mine = getattr(base, f.name)
        theirs = getattr(overlay, f.name)
        if is_dataclass(mine):
            changes[f.name] = merge_sections(mine, theirs)
        elif _is_set(theirs):
            changes[f.name] = theirs
    return replace(base, **changes)  # type: ignore[type-var]


@dataclass(frozen=True)
class ClusterScaling:
    enabled: bool = False
    max_size: int = 0
    min_size: int = 0
    cool_down: float = 0.0
    node_fault_tolerance: int = 0
    autoscaling_group: str = ""


@dataclass(frozen=True)
class JobScaling:
    enabled: bool = False
    consul_token: str = ""
    consul_key_location: str = ""


@dataclass(frozen=True)
class Telemetry:
    statsd_address: str = ""


@dataclass(frozen=True)
class Notification:
    cluster_scaling_uid: str = ""
    cluster_identifier: str = ""
    pagerduty_service_key: str = ""


@dataclass(frozen=True)
class AgentConfig:
    """Effective agent configuration.

    A default-constructed instance is the empty config: every section is
    present and every field holds its zero value, so it merges as a no-op.
    """

    nomad: str = ""
    consul: str = ""
    log_level: str = ""
    scaling_interval: int = 0
    region: str = ""
    cluster_scaling: ClusterScaling = field(default_factory=ClusterScaling)
    job_scaling: JobScaling = field(default_factory=JobScaling)
    telemetry: Telemetry = field(default_factory=Telemetry)
    notification: Notification = field(default_factory=Notification)

    def merge(self, other: AgentConfig) -> AgentConfig:
        """Return a new config where every field set in `other` wins."""

        return merge_sections(self, other)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


SECTION_TYPES: dict[str, type] = {
    "cluster_scaling": ClusterScaling,
    "job_scaling": JobScaling,
    "telemetry": Telemetry,
    "notification": Notification,
}


def redact_secrets(obj):  # noqa: ANN001
    """Best-effort redaction for human-facing config dumps."""

    if isinstance(obj, dict):
        out = {}
        for k, v in obj.items():
            if isinstance(k, str) and any(p in k.lower() for p in _SECRET_MARKERS) and v:
                out[k] = "<redacted>"
            else:
                out[k] = redact_secrets(v)
        return out
    if isinstance(obj, list):
        return [redact_secrets(x) for x in obj]
    return obj
