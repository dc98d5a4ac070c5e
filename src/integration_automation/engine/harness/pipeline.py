"""Expansion of a workflow configuration into an ordered test pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from integration_automation.engine.workflow.model import WorkflowConfig


class PipelineStepKind(str, Enum):
    TRIGGER_VALIDATION = "trigger_validation"
    CONDITION_EVALUATION = "condition_evaluation"
    ACTION = "action"
    INTEGRATION_TEST = "integration_test"
    PERFORMANCE_CHECK = "performance_check"


# A failure of a critical step halts the run; every other failure is recorded and skipped past.
CRITICAL_KINDS: frozenset[PipelineStepKind] = frozenset({PipelineStepKind.TRIGGER_VALIDATION})


@dataclass(frozen=True, slots=True)
class PipelineStep:
    index: int
    kind: PipelineStepKind
    label: str
    description: str
    # Position in `WorkflowConfig.actions` for ACTION steps.
    action_index: int | None = None

    @property
    def critical(self) -> bool:
        return self.kind in CRITICAL_KINDS


def expand_pipeline(config: WorkflowConfig) -> list[PipelineStep]:
    """Deterministically expand `config` into the steps of a test run.

    Trigger validation, one aggregate condition step (only when there are
    conditions), one step per action in action order, then the integration test
    and the performance check.
    """

    trigger_app = config.trigger.app if config.trigger is not None else ""
    trigger_event = config.trigger.event if config.trigger is not None else ""

    planned: list[tuple[PipelineStepKind, str, str, int | None]] = [
        (
            PipelineStepKind.TRIGGER_VALIDATION,
            "Trigger Validation",
            f"Validate {trigger_app or '<no app>'} trigger: {trigger_event or '<no event>'}",
            None,
        )
    ]
    if config.conditions:
        planned.append(
            (
                PipelineStepKind.CONDITION_EVALUATION,
                "Condition Evaluation",
                f"Evaluate {len(config.conditions)} condition(s)",
                None,
            )
        )
    for idx, action in enumerate(config.actions):
        planned.append(
            (
                PipelineStepKind.ACTION,
                f"Action {idx + 1}",
                f"Execute {action.app}: {action.action}",
                idx,
            )
        )
    planned.append(
        (
            PipelineStepKind.INTEGRATION_TEST,
            "Integration Test",
            "Test end-to-end workflow integration",
            None,
        )
    )
    planned.append(
        (
            PipelineStepKind.PERFORMANCE_CHECK,
            "Performance Check",
            "Validate execution performance and resource usage",
            None,
        )
    )

    return [
        PipelineStep(index=i, kind=kind, label=label, description=description, action_index=action_index)
        for i, (kind, label, description, action_index) in enumerate(planned)
    ]
