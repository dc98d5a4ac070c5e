"""Stepwise dry-run of a workflow or template.

The harness expands the target into a pipeline and runs it strictly
sequentially: step i starts only once step i-1 is terminal. Only the trigger
validation is critical. When it fails the run halts, the remaining steps stay
pending and the run is failed. Any other failure is recorded and the run
continues.

`stop()` is cooperative and observed at step boundaries only, so an in-flight
step always reaches a terminal state first. There is no built-in timeout: wrap
`run()` in `asyncio.wait_for` if the strategy may stall.

A harness instance holds the state of one run at a time.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from integration_automation.engine.config import EngineSettings
from integration_automation.engine.marketplace.models import Template
from integration_automation.engine.workflow.model import Workflow, WorkflowConfig, to_config

from .execution import ExecutionStrategy, SimulatedExecution, StepOutcome
from .pipeline import PipelineStep, PipelineStepKind, expand_pipeline
from .state_machine import StepStatus, TestStepResult, transition

logger = logging.getLogger(__name__)

TRIGGER_MISSING_APP_MESSAGE = "Trigger validation failed: missing app configuration"


class RunStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


class HarnessBusyError(RuntimeError):
    """Raised when a harness is asked to run while a run is already in flight."""


@dataclass(slots=True)
class TestRun:
    """Live view of a run, handed to listeners after every state change."""

    __test__ = False

    steps: list[TestStepResult] = field(default_factory=list)
    progress_pct: float = 0.0
    overall_status: RunStatus = RunStatus.PENDING

    def to_json(self) -> dict[str, object]:
        return {
            "steps": [s.to_json() for s in self.steps],
            "progressPct": self.progress_pct,
            "overallStatus": self.overall_status.value,
        }


@dataclass(frozen=True, slots=True)
class RunSummary:
    overall_status: RunStatus
    success: int
    failed: int
    pending: int
    halted: bool
    cancelled: bool
    results: tuple[TestStepResult, ...]

    def to_json(self) -> dict[str, object]:
        return {
            "overallStatus": self.overall_status.value,
            "success": self.success,
            "failed": self.failed,
            "pending": self.pending,
            "halted": self.halted,
            "cancelled": self.cancelled,
            "results": [r.to_json() for r in self.results],
        }


RunTarget = Workflow | WorkflowConfig | Template
RunListener = Callable[[TestRun], None]


def _as_config(target: RunTarget) -> WorkflowConfig:
    if isinstance(target, Workflow):
        return to_config(target)
    if isinstance(target, Template):
        return target.template_config
    return target


def summarize(run: TestRun, *, halted: bool, cancelled: bool) -> RunSummary:
    counts = {status: 0 for status in StepStatus}
    for step in run.steps:
        counts[step.status] += 1
    return RunSummary(
        overall_status=run.overall_status,
        success=counts[StepStatus.SUCCESS],
        failed=counts[StepStatus.FAILED],
        pending=counts[StepStatus.PENDING],
        halted=halted,
        cancelled=cancelled,
        results=tuple(run.steps),
    )


class TestHarness:
    """Runs one simulated (or executor-backed) test run at a time.

    Args:
        strategy: How non-trivial steps are carried out. Defaults to a
            `SimulatedExecution` with default latency and pass rates.
        listener: Called with the live `TestRun` after every state change.
    """

    __test__ = False

    def __init__(
        self,
        strategy: ExecutionStrategy | None = None,
        *,
        listener: RunListener | None = None,
    ) -> None:
        self._strategy: ExecutionStrategy = strategy or SimulatedExecution()
        self._listener = listener
        self._running = False
        self._stop_requested = False
        self._run: TestRun | None = None

    @classmethod
    def from_settings(
        cls, settings: EngineSettings, *, listener: RunListener | None = None
    ) -> TestHarness:
        return cls(SimulatedExecution.from_settings(settings), listener=listener)

    @property
    def current_run(self) -> TestRun | None:
        """The in-flight run, or the last finished one."""

        return self._run

    @property
    def is_running(self) -> bool:
        return self._running

    def stop(self) -> None:
        """Ask the current run to halt at the next step boundary."""

        if self._running:
            self._stop_requested = True

    def _notify(self, run: TestRun) -> None:
        if self._listener is not None:
            self._listener(run)

    async def _execute(self, step: PipelineStep, config: WorkflowConfig) -> StepOutcome:
        if step.kind is PipelineStepKind.TRIGGER_VALIDATION:
            if config.trigger is None or not config.trigger.app:
                return StepOutcome(ok=False, message=TRIGGER_MISSING_APP_MESSAGE)
        try:
            return await self._strategy.execute(step, config)
        except Exception as e:
            # The step still has to reach a terminal state.
            logger.exception("Test step raised", extra={"step": step.label})
            return StepOutcome(ok=False, message=f"{step.label} failed: {e}")

    async def run(self, target: RunTarget) -> RunSummary:
        """Dry-run `target` and return the summary.

        Raises:
            HarnessBusyError: If this harness is already running.
        """

        if self._running:
            raise HarnessBusyError("A test run is already in progress on this harness")
        self._running = True
        self._stop_requested = False

        try:
            config = _as_config(target)
            pipeline = expand_pipeline(config)
            run = TestRun(steps=[TestStepResult(label=s.label, message=s.description) for s in pipeline])
            self._run = run
            run.overall_status = RunStatus.RUNNING
            self._notify(run)

            total = len(pipeline)
            halted = False
            cancelled = False
            for i, step in enumerate(pipeline):
                if self._stop_requested:
                    cancelled = True
                    break

                run.progress_pct = i / total * 100
                run.steps[i] = transition(current=run.steps[i], to=StepStatus.RUNNING)
                self._notify(run)

                started = time.perf_counter()
                outcome = await self._execute(step, config)
                duration_ms = round((time.perf_counter() - started) * 1000)

                run.steps[i] = transition(
                    current=run.steps[i],
                    to=StepStatus.SUCCESS if outcome.ok else StepStatus.FAILED,
                    duration_ms=duration_ms,
                    message=outcome.message,
                    details=outcome.details,
                )
                self._notify(run)
                logger.debug(
                    "Test step finished",
                    extra={"step": step.label, "ok": outcome.ok, "duration_ms": duration_ms},
                )

                if not outcome.ok and step.critical:
                    halted = True
                    break

            if not cancelled:
                run.progress_pct = 100.0

            if halted:
                run.overall_status = RunStatus.FAILED
            elif cancelled:
                run.overall_status = RunStatus.CANCELLED
            elif any(s.status is StepStatus.FAILED for s in run.steps):
                run.overall_status = RunStatus.FAILED
            else:
                run.overall_status = RunStatus.SUCCESS
            self._notify(run)

            summary = summarize(run, halted=halted, cancelled=cancelled)
            logger.info(
                "Test run complete",
                extra={
                    "overall_status": summary.overall_status.value,
                    "success": summary.success,
                    "failed": summary.failed,
                    "pending": summary.pending,
                },
            )
            return summary
        finally:
            self._running = False
            self._stop_requested = False
