"""Execution strategies for test-run steps.

The harness never decides how a step is carried out; it asks an
`ExecutionStrategy`. Dry runs use `SimulatedExecution`, which stands in for
flaky external applications with bounded pass probabilities. Production code
can plug real per-application executors in through `ExecutorBackedExecution`
without touching the harness control flow.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from integration_automation.engine.config import EngineSettings
from integration_automation.engine.workflow.model import WorkflowConfig

from .pipeline import PipelineStep, PipelineStepKind

logger = logging.getLogger(__name__)

MIN_PASS_RATE = 0.9

DEFAULT_PASS_RATES: dict[PipelineStepKind, float] = {
    PipelineStepKind.CONDITION_EVALUATION: 0.90,
    PipelineStepKind.ACTION: 0.95,
    PipelineStepKind.INTEGRATION_TEST: 0.90,
    PipelineStepKind.PERFORMANCE_CHECK: 0.95,
}


@dataclass(frozen=True, slots=True)
class StepOutcome:
    ok: bool
    message: str
    details: dict[str, object] | None = None


class ExecutionStrategy(Protocol):
    """Carries out one pipeline step against the configuration under test."""

    async def execute(self, step: PipelineStep, config: WorkflowConfig) -> StepOutcome: ...


@dataclass(frozen=True, slots=True)
class ActionResult:
    ok: bool
    message: str = ""
    details: dict[str, object] | None = None


class ActionExecutor(Protocol):
    """Performs actions against one integrated application (real side effects)."""

    def execute(self, action: str, config: dict[str, Any]) -> ActionResult: ...


class SimulatedExecution:
    """Bounded-random stand-in for external dependencies.

    Every non-trigger step passes with its configured probability (never below
    90%) after a simulated latency. Pass an explicit `rng` for reproducible runs.
    """

    def __init__(
        self,
        *,
        rng: random.Random | None = None,
        min_latency_ms: int = 500,
        max_latency_ms: int = 2500,
        pass_rates: Mapping[PipelineStepKind, float] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if min_latency_ms < 0 or min_latency_ms > max_latency_ms:
            raise ValueError("Latency range must satisfy 0 <= min <= max")
        rates = {**DEFAULT_PASS_RATES, **(pass_rates or {})}
        for kind, rate in rates.items():
            if not MIN_PASS_RATE <= rate <= 1.0:
                raise ValueError(f"Pass rate for {kind.value} must be within [0.9, 1.0], got {rate}")
        self._rng = rng or random.Random()
        self._min_latency_ms = min_latency_ms
        self._max_latency_ms = max_latency_ms
        self._pass_rates = rates
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> SimulatedExecution:
        return cls(
            rng=random.Random(settings.harness_seed),
            min_latency_ms=settings.harness_min_latency_ms,
            max_latency_ms=settings.harness_max_latency_ms,
            pass_rates={
                PipelineStepKind.CONDITION_EVALUATION: settings.condition_pass_rate,
                PipelineStepKind.ACTION: settings.action_pass_rate,
                PipelineStepKind.INTEGRATION_TEST: settings.integration_pass_rate,
                PipelineStepKind.PERFORMANCE_CHECK: settings.performance_pass_rate,
            },
        )

    def _passes(self, kind: PipelineStepKind) -> bool:
        return self._rng.random() < self._pass_rates[kind]

    async def execute(self, step: PipelineStep, config: WorkflowConfig) -> StepOutcome:
        latency_ms = self._rng.randint(self._min_latency_ms, self._max_latency_ms)
        if latency_ms:
            await self._sleep(latency_ms / 1000)

        if step.kind is PipelineStepKind.TRIGGER_VALIDATION:
            app = config.trigger.app if config.trigger is not None else ""
            return StepOutcome(ok=True, message=f"{app} trigger validated successfully")

        if step.kind is PipelineStepKind.CONDITION_EVALUATION:
            if not self._passes(step.kind):
                return StepOutcome(ok=False, message="Condition evaluation failed: invalid condition syntax")
            return StepOutcome(
                ok=True,
                message=f"All {len(config.conditions)} condition(s) evaluated successfully",
            )

        if step.kind is PipelineStepKind.ACTION:
            action = config.actions[step.action_index or 0]
            if not self._passes(step.kind):
                return StepOutcome(
                    ok=False, message=f"Action execution failed: {action.app} connection timeout"
                )
            return StepOutcome(ok=True, message=f"{action.app}: {action.action} executed successfully")

        if step.kind is PipelineStepKind.INTEGRATION_TEST:
            if not self._passes(step.kind):
                return StepOutcome(ok=False, message="Integration test failed: data flow interrupted")
            return StepOutcome(ok=True, message="End-to-end integration working correctly")

        if not self._passes(step.kind):
            return StepOutcome(
                ok=False, message="Performance check failed: execution time exceeded threshold"
            )
        score = self._rng.randint(70, 100)
        return StepOutcome(
            ok=True,
            message=f"Performance score: {score}/100 ({latency_ms}ms)",
            details={"score": score},
        )


class ExecutorBackedExecution:
    """Run action steps through real per-application executors.

    Executors are synchronous and run in a worker thread. Every other step kind
    is delegated to `fallback` (simulated by default).
    """

    def __init__(
        self,
        executors: Mapping[str, ActionExecutor],
        *,
        fallback: ExecutionStrategy | None = None,
    ) -> None:
        self._executors = dict(executors)
        self._fallback: ExecutionStrategy = fallback or SimulatedExecution(
            min_latency_ms=0, max_latency_ms=0
        )

    async def execute(self, step: PipelineStep, config: WorkflowConfig) -> StepOutcome:
        if step.kind is not PipelineStepKind.ACTION or step.action_index is None:
            return await self._fallback.execute(step, config)

        action = config.actions[step.action_index]
        executor = self._executors.get(action.app)
        if executor is None:
            return StepOutcome(ok=False, message=f"No executor registered for {action.app}")

        try:
            result = await asyncio.to_thread(executor.execute, action.action, dict(action.config))
        except Exception as e:
            logger.exception(
                "Action executor raised",
                extra={"app": action.app, "action": action.action},
            )
            return StepOutcome(ok=False, message=f"Action execution failed: {e}")

        message = result.message or (
            f"{action.app}: {action.action} executed successfully"
            if result.ok
            else f"Action execution failed: {action.app}"
        )
        return StepOutcome(ok=result.ok, message=message, details=result.details)
