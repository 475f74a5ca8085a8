"""Single-runner supervisor.

STOPPED --start(cfg)--> RUNNING --stop()--> STOPPED

`start` returns once the runner thread is launched; `stop` returns only
after the runner thread has exited. At most one runner exists at a time.
"""

from __future__ import annotations

import enum
import logging
import threading

from replicator.config.model import AgentConfig
from replicator.core.errors import SupervisorStateError
from replicator.runtime.runner import Runner, RunnerFactory, default_runner_factory
from replicator.telemetry.bootstrap import MetricsHandle, NullMetrics


logger = logging.getLogger(__name__)


class SupervisorState(str, enum.Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class RunnerSupervisor:
    def __init__(
        self,
        *,
        runner_factory: RunnerFactory = default_runner_factory,
        metrics: MetricsHandle | None = None,
    ) -> None:
        self._runner_factory = runner_factory
        self.metrics: MetricsHandle = metrics or NullMetrics()
        self._state = SupervisorState.STOPPED
        self._runner: Runner | None = None
        self._thread: threading.Thread | None = None
        self._generation = 0
        self.last_error: BaseException | None = None

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def generation(self) -> int:
        """Number of runners started so far."""

        return self._generation

    @property
    def runner(self) -> Runner | None:
        return self._runner

    def start(self, cfg: AgentConfig) -> None:
        """Construct a runner from `cfg` and launch its loop.

        Raises:
            SupervisorStateError: If a runner is already active.
            RunnerError: If the runner cannot be constructed; the supervisor
                stays stopped.
        """

        if self._state is not SupervisorState.STOPPED:
            raise SupervisorStateError(f"start() requires state stopped, current state is {self._state.value}")

        runner = self._runner_factory(cfg, self.metrics)

        self._generation += 1
        thread = threading.Thread(
            target=self._run_runner,
            args=(runner, self._generation),
            name=f"replicator-runner-{self._generation}",
            daemon=True,
        )
        self._runner = runner
        self._thread = thread
        self._state = SupervisorState.RUNNING
        thread.start()

        logger.info("runner_started", extra={"generation": self._generation})
        self.metrics.incr("agent.runner_starts")
        self.metrics.gauge("agent.runner_generation", self._generation)

    def stop(self) -> None:
        """Stop the active runner and wait for its loop to exit.

        Raises:
            SupervisorStateError: If no runner is active.
        """

        if self._state is not SupervisorState.RUNNING:
            raise SupervisorStateError(f"stop() requires state running, current state is {self._state.value}")

        assert self._runner is not None and self._thread is not None
        self._runner.stop()
        self._thread.join()

        self._runner = None
        self._thread = None
        self._state = SupervisorState.STOPPED
        logger.info("runner_stopped", extra={"generation": self._generation})

    def _run_runner(self, runner: Runner, generation: int) -> None:
        try:
            runner.run()
        except Exception as e:  # noqa: BLE001
            self.last_error = e
            logger.exception("runner_crashed", extra={"generation": generation})
