"""Workflow data model.

A workflow is an ordered list of steps: one trigger that starts it, optional
condition guards and one or more actions against target applications. Steps
are a tagged union on `kind`, so trigger-only fields never exist on an action.

Workflows are persisted in a split form (`WorkflowConfig`): the trigger, the
conditions and the actions in three separate slots. The same form is frozen
into marketplace templates.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

StepKind = Literal["trigger", "condition", "action"]


def new_step_id() -> str:
    return f"step_{uuid.uuid4().hex[:12]}"


def new_workflow_id() -> str:
    return f"wf_{uuid.uuid4().hex}"


def _utc_now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()


class TriggerStep(BaseModel):
    """The event that starts a workflow."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_step_id)
    kind: Literal["trigger"] = "trigger"
    app: str = ""
    event: str = ""
    config: dict[str, Any] = Field(default_factory=dict)


class ConditionStep(BaseModel):
    """An optional guard evaluated between the trigger and the actions."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_step_id)
    kind: Literal["condition"] = "condition"
    app: str | None = None
    field: str | None = None
    operator: str | None = None
    value: Any = None
    config: dict[str, Any] = Field(default_factory=dict)


class ActionStep(BaseModel):
    """A side effect performed against a target application."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_step_id)
    kind: Literal["action"] = "action"
    app: str = ""
    action: str = ""
    config: dict[str, Any] = Field(default_factory=dict)


Step = Annotated[
    TriggerStep | ConditionStep | ActionStep,
    Field(discriminator="kind"),
]

STEP_TYPES: dict[str, type[TriggerStep] | type[ConditionStep] | type[ActionStep]] = {
    "trigger": TriggerStep,
    "condition": ConditionStep,
    "action": ActionStep,
}


class ActivationError(ValueError):
    """Raised when enabling a workflow that cannot run."""


class Workflow(BaseModel):
    id: str = Field(default_factory=new_workflow_id)
    name: str = ""
    description: str = ""
    enabled: bool = False
    steps: list[Step] = Field(default_factory=list)
    owner_id: str = ""
    created_at: str = Field(default_factory=_utc_now_iso)
    updated_at: str = Field(default_factory=_utc_now_iso)

    @model_validator(mode="after")
    def _check_steps(self) -> Workflow:
        ids = [step.id for step in self.steps]
        if len(ids) != len(set(ids)):
            raise ValueError("Step ids must be unique within a workflow")
        if sum(1 for step in self.steps if isinstance(step, TriggerStep)) > 1:
            raise ValueError("A workflow has at most one trigger")
        return self

    @property
    def trigger(self) -> TriggerStep | None:
        for step in self.steps:
            if isinstance(step, TriggerStep):
                return step
        return None

    @property
    def conditions(self) -> list[ConditionStep]:
        return [step for step in self.steps if isinstance(step, ConditionStep)]

    @property
    def actions(self) -> list[ActionStep]:
        return [step for step in self.steps if isinstance(step, ActionStep)]


class WorkflowConfig(BaseModel):
    """Split, persisted form of a workflow: `{trigger, conditions[], actions[]}`."""

    model_config = ConfigDict(frozen=True)

    trigger: TriggerStep | None = None
    conditions: list[ConditionStep] = Field(default_factory=list)
    actions: list[ActionStep] = Field(default_factory=list)


def to_config(workflow: Workflow) -> WorkflowConfig:
    return WorkflowConfig(
        trigger=workflow.trigger,
        conditions=workflow.conditions,
        actions=workflow.actions,
    )


def from_config(config: WorkflowConfig, **fields: Any) -> Workflow:
    """Rebuild a workflow from its split form.

    Steps always come back as trigger, then conditions, then actions. Any
    interleaving the author used while editing is not recorded.
    """

    steps: list[TriggerStep | ConditionStep | ActionStep] = []
    if config.trigger is not None:
        steps.append(config.trigger)
    steps.extend(config.conditions)
    steps.extend(config.actions)
    return Workflow(steps=steps, **fields)


def config_apps(config: WorkflowConfig) -> set[str]:
    """Every application referenced anywhere in `config`."""

    apps: set[str] = set()
    if config.trigger is not None and config.trigger.app:
        apps.add(config.trigger.app)
    for condition in config.conditions:
        if condition.app:
            apps.add(condition.app)
    for action in config.actions:
        if action.app:
            apps.add(action.app)
    return apps


def activation_errors(workflow: Workflow) -> list[str]:
    errors: list[str] = []
    triggers = sum(1 for step in workflow.steps if isinstance(step, TriggerStep))
    if triggers != 1:
        errors.append("an enabled workflow needs exactly one trigger")
    if not workflow.actions:
        errors.append("an enabled workflow needs at least one action")
    return errors


def is_activatable(workflow: Workflow) -> bool:
    return not activation_errors(workflow)


def require_activatable(workflow: Workflow) -> None:
    errors = activation_errors(workflow)
    if errors:
        raise ActivationError("; ".join(errors))
