"""Metrics sink bootstrap.

The agent forwards metrics to statsd when `telemetry.statsd_address` is
configured. The installed sink is an explicit handle: the bootstrap owns it
and the runner receives it at construction.
"""

from __future__ import annotations

import logging
from typing import Protocol

from statsd import StatsClient

from replicator.config.model import AgentConfig
from replicator.core.errors import TelemetryError


logger = logging.getLogger(__name__)

METRICS_PREFIX = "replicator"


class MetricsHandle(Protocol):
    address: str | None

    def incr(self, name: str, count: int = 1) -> None: ...

    def gauge(self, name: str, value: float) -> None: ...

    def timing(self, name: str, ms: float) -> None: ...

    def close(self) -> None: ...


class NullMetrics:
    """Handle used when no sink is configured. Drops everything."""

    address: str | None = None

    def incr(self, name: str, count: int = 1) -> None:
        return None

    def gauge(self, name: str, value: float) -> None:
        return None

    def timing(self, name: str, ms: float) -> None:
        return None

    def close(self) -> None:
        return None


class StatsdMetrics:
    def __init__(self, address: str, client: StatsClient) -> None:
        self.address = address
        self._client = client

    def incr(self, name: str, count: int = 1) -> None:
        self._client.incr(name, int(count))

    def gauge(self, name: str, value: float) -> None:
        self._client.gauge(name, float(value))

    def timing(self, name: str, ms: float) -> None:
        self._client.timing(name, float(ms))

    def close(self) -> None:
        self._client.close()


def parse_address(address: str) -> tuple[str, int]:
    """Split `host:port` (or `[v6-host]:port`) into its parts."""

    host, sep, port_raw = address.strip().rpartition(":")
    if not sep or not host or not port_raw:
        raise TelemetryError(f"statsd address must be host:port, got {address!r}")

    host = host.strip("[]")
    try:
        port = int(port_raw)
    except ValueError as e:
        raise TelemetryError(f"invalid statsd port in {address!r}") from e
    if not 0 < port < 65536:
        raise TelemetryError(f"statsd port out of range in {address!r}")
    return host, port


def new_statsd_sink(address: str) -> StatsdMetrics:
    host, port = parse_address(address)
    try:
        client = StatsClient(host=host, port=port, prefix=METRICS_PREFIX)
    except OSError as e:
        raise TelemetryError(f"unable to setup telemetry correctly: {e}") from e
    return StatsdMetrics(address, client)


class TelemetryBootstrap:
    """Owns the process metrics handle.

    `install` is idempotent for an unchanged address, so it can run again on
    every reload.
    """

    def __init__(self) -> None:
        self._handle: MetricsHandle = NullMetrics()

    @property
    def handle(self) -> MetricsHandle:
        return self._handle

    def install(self, cfg: AgentConfig) -> MetricsHandle:
        """Install the sink configured in `cfg` and return the active handle.

        Raises:
            TelemetryError: If the sink cannot be constructed. The previous
                handle stays installed.
        """

        address = cfg.telemetry.statsd_address.strip()
        if address == (self._handle.address or ""):
            return self._handle

        if not address:
            new_handle: MetricsHandle = NullMetrics()
        else:
            new_handle = new_statsd_sink(address)

        previous = self._handle
        self._handle = new_handle
        previous.close()

        logger.info("telemetry_installed", extra={"statsd_address": address or None})
        return new_handle
