"""Signal handling for the agent process.

OS signal handlers only enqueue; every supervisor transition happens on the
dispatcher's thread.

- SIGINT, SIGTERM, SIGQUIT: stop the runner and exit 0
- SIGHUP: stop the runner, re-resolve config, start a new runner
"""

from __future__ import annotations

import contextlib
import enum
import logging
import signal
import threading
import time
from collections import deque
from typing import Callable, Iterator, Sequence

from replicator.config.model import AgentConfig
from replicator.core.errors import ReplicatorError
from replicator.runtime.supervisor import RunnerSupervisor, SupervisorState


logger = logging.getLogger(__name__)


class SignalKind(str, enum.Enum):
    TERMINATE = "terminate"
    RELOAD = "reload"


def _signals(*names: str) -> tuple[signal.Signals, ...]:
    # SIGHUP and SIGQUIT do not exist on every platform.
    return tuple(getattr(signal, n) for n in names if hasattr(signal, n))


TERMINATE_SIGNALS = _signals("SIGINT", "SIGTERM", "SIGQUIT")
RELOAD_SIGNALS = _signals("SIGHUP")
HANDLED_SIGNALS = TERMINATE_SIGNALS + RELOAD_SIGNALS


def classify(signum: int) -> SignalKind | None:
    if signum in TERMINATE_SIGNALS:
        return SignalKind.TERMINATE
    if signum in RELOAD_SIGNALS:
        return SignalKind.RELOAD
    return None


class SignalQueue:
    """Ordered queue of pending signal kinds with a coalescing policy.

    - once a terminate is pending, every later signal is dropped
    - a reload directly behind a pending reload is dropped
    - a reload is never folded into a terminate

    The queue therefore holds at most one reload followed by one terminate.
    """

    def __init__(self, *, poll_interval_s: float = 0.5) -> None:
        self._pending: deque[SignalKind] = deque()
        # Reentrant: put() may run from a signal handler on the thread
        # that is currently inside get().
        self._cond = threading.Condition(threading.RLock())
        self._poll_interval_s = float(poll_interval_s)
        self.dropped = 0

    def __len__(self) -> int:
        with self._cond:
            return len(self._pending)

    def pending(self) -> list[SignalKind]:
        with self._cond:
            return list(self._pending)

    def put(self, kind: SignalKind) -> bool:
        """Enqueue `kind`. Returns False when it was coalesced away."""

        with self._cond:
            if SignalKind.TERMINATE in self._pending:
                self.dropped += 1
                return False
            if kind is SignalKind.RELOAD and self._pending and self._pending[-1] is SignalKind.RELOAD:
                self.dropped += 1
                return False
            self._pending.append(kind)
            self._cond.notify()
            return True

    def get(self, timeout: float | None = None) -> SignalKind | None:
        """Block until a signal is pending; None if `timeout` expires first."""

        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while not self._pending:
                wait_s = self._poll_interval_s
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        return None
                    wait_s = min(wait_s, remaining)
                # Bounded wait: a handler that fires between the emptiness
                # check and wait() is picked up on the next poll.
                self._cond.wait(wait_s)
            return self._pending.popleft()


@contextlib.contextmanager
def installed_handlers(
    queue: SignalQueue,
    signals: Sequence[int] = HANDLED_SIGNALS,
) -> Iterator[SignalQueue]:
    """Route `signals` into `queue` for the duration of the block.

    Must be entered from the main thread. Previous handlers are restored on
    exit.
    """

    def _handler(signum: int, _frame: object) -> None:
        kind = classify(signum)
        if kind is not None:
            queue.put(kind)

    previous = {}
    for sig in signals:
        previous[sig] = signal.signal(sig, _handler)
    try:
        yield queue
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


class SignalDispatcher:
    """Top-level control loop driving the supervisor from queued signals."""

    def __init__(
        self,
        supervisor: RunnerSupervisor,
        reload_config: Callable[[], AgentConfig],
        *,
        queue: SignalQueue | None = None,
    ) -> None:
        self.supervisor = supervisor
        self.queue = queue or SignalQueue()
        self._reload_config = reload_config
        self.last_error: ReplicatorError | None = None

    def run(self) -> int:
        """Process signals until a terminal one arrives; returns the exit code."""

        while True:
            kind = self.queue.get()

            if kind is SignalKind.TERMINATE:
                logger.info("shutdown_requested")
                self._stop_runner()
                return 0

            if kind is SignalKind.RELOAD:
                logger.info("reload_requested")
                self._stop_runner()
                try:
                    cfg = self._reload_config()
                    self.supervisor.start(cfg)
                except ReplicatorError as e:
                    self.last_error = e
                    logger.error("reload_failed", extra={"error": str(e)})
                    return 1
                logger.info("reload_completed", extra={"generation": self.supervisor.generation})

    def _stop_runner(self) -> None:
        if self.supervisor.state is SupervisorState.RUNNING:
            self.supervisor.stop()
