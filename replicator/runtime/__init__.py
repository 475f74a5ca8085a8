from __future__ import annotations

from .runner import ControlLoopRunner, Runner, RunnerFactory
from .signals import SignalDispatcher, SignalKind, SignalQueue
from .supervisor import RunnerSupervisor, SupervisorState

__all__ = [
    "ControlLoopRunner",
    "Runner",
    "RunnerFactory",
    "RunnerSupervisor",
    "SignalDispatcher",
    "SignalKind",
    "SignalQueue",
    "SupervisorState",
]
