from __future__ import annotations

from .bootstrap import MetricsHandle, NullMetrics, StatsdMetrics, TelemetryBootstrap

__all__ = ["MetricsHandle", "NullMetrics", "StatsdMetrics", "TelemetryBootstrap"]
