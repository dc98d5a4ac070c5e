"""Test harness: simulated, stepwise dry-runs of workflows and templates.

- a per-step state machine (pending -> running -> success | failed)
- deterministic pipeline expansion
- pluggable execution strategies (simulated or real executors)
"""

from __future__ import annotations

from .execution import (
    ActionExecutor,
    ActionResult,
    ExecutionStrategy,
    ExecutorBackedExecution,
    SimulatedExecution,
    StepOutcome,
)
from .pipeline import PipelineStep, PipelineStepKind, expand_pipeline
from .runner import HarnessBusyError, RunStatus, RunSummary, TestHarness, TestRun
from .state_machine import IllegalTransitionError, StepStatus, TestStepResult, transition

__all__ = [
    "ActionExecutor",
    "ActionResult",
    "ExecutionStrategy",
    "ExecutorBackedExecution",
    "HarnessBusyError",
    "IllegalTransitionError",
    "PipelineStep",
    "PipelineStepKind",
    "RunStatus",
    "RunSummary",
    "SimulatedExecution",
    "StepOutcome",
    "StepStatus",
    "TestHarness",
    "TestRun",
    "TestStepResult",
    "expand_pipeline",
    "transition",
]
