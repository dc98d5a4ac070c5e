"""Static validation of workflow and template configurations.

`validate_config` is pure: no I/O, no clock, no randomness. Identical input
always yields an equal `ValidationResult`, so it is safe to call on every edit.

Severity:
- errors block persistence of templates and activation
- warnings and suggestions are advisory and never affect `is_valid`
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from integration_automation.engine import catalog

from .model import Workflow, WorkflowConfig, to_config

MAX_ACTIONS_BEFORE_SPLIT = 5

SPLIT_SUGGESTION = (
    "Consider splitting complex workflows into smaller templates for better performance"
)
ADD_CONDITION_SUGGESTION = (
    "Adding conditions can help prevent unnecessary executions and improve efficiency"
)
EXTERNAL_APPS_WARNING = (
    "Workflow includes external applications - review security before enabling it"
)

CompatibilityStatus = Literal["compatible", "incompatible"]


class CompatibilityEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    app: str
    status: CompatibilityStatus
    message: str


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    compatibility: list[CompatibilityEntry] = Field(default_factory=list)


def _referenced_apps(config: WorkflowConfig) -> list[str]:
    # Distinct, first-seen order. Condition apps are not checked.
    apps: list[str] = []
    candidates = [config.trigger.app if config.trigger is not None else ""]
    candidates.extend(action.app for action in config.actions)
    for app in candidates:
        if app and app not in apps:
            apps.append(app)
    return apps


def validate_config(config: WorkflowConfig) -> ValidationResult:
    errors: list[str] = []
    warnings: list[str] = []
    suggestions: list[str] = []
    compatibility: list[CompatibilityEntry] = []

    trigger = config.trigger
    if trigger is None:
        errors.append("missing trigger")
    else:
        if not trigger.app:
            errors.append("missing trigger app")
        if not trigger.event:
            errors.append("missing trigger event")

    if not config.actions:
        errors.append("at least one action required")
    for number, action in enumerate(config.actions, start=1):
        if not action.app:
            errors.append(f"action {number} missing app")
        if not action.action:
            errors.append(f"action {number} missing action")

    apps = _referenced_apps(config)
    for app in apps:
        if catalog.is_known_app(app):
            compatibility.append(
                CompatibilityEntry(app=app, status="compatible", message=f"{app} is fully supported")
            )
        else:
            compatibility.append(
                CompatibilityEntry(
                    app=app,
                    status="incompatible",
                    message=f"{app} is not a recognized application",
                )
            )
            errors.append(f"Unknown app: {app}")

    operators = catalog.condition_operators()
    for number, condition in enumerate(config.conditions, start=1):
        if not condition.field:
            warnings.append(f"condition {number} missing field")
        if not condition.operator:
            warnings.append(f"condition {number} missing operator")
        elif condition.operator not in operators:
            warnings.append(f"condition {number} uses unknown operator '{condition.operator}'")

    # Catalog cross-check. Unknown apps have no catalog entry and are already errors.
    if trigger is not None and trigger.event and catalog.is_known_app(trigger.app):
        if trigger.event not in catalog.trigger_events(trigger.app):
            warnings.append(f"{trigger.app} has no trigger event '{trigger.event}'")
    for number, action in enumerate(config.actions, start=1):
        if action.action and catalog.is_known_app(action.app):
            if action.action not in catalog.actions(action.app):
                warnings.append(f"action {number}: {action.app} has no action '{action.action}'")

    if len(config.actions) > MAX_ACTIONS_BEFORE_SPLIT:
        suggestions.append(SPLIT_SUGGESTION)
    if not config.conditions:
        suggestions.append(ADD_CONDITION_SUGGESTION)

    if any(not catalog.is_known_app(app) for app in apps):
        warnings.append(EXTERNAL_APPS_WARNING)

    return ValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        suggestions=suggestions,
        compatibility=compatibility,
    )


def validate_workflow(workflow: Workflow) -> ValidationResult:
    return validate_config(to_config(workflow))
