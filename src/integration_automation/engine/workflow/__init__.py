"""Workflow domain: step model, builder sessions, validation and persistence."""

from __future__ import annotations

from .builder import EmptyWorkflow, MissingName, WorkflowBuilder, WorkflowSaveError
from .model import (
    ActionStep,
    ActivationError,
    ConditionStep,
    TriggerStep,
    Workflow,
    WorkflowConfig,
    from_config,
    to_config,
)
from .store import WorkflowStore
from .validator import CompatibilityEntry, ValidationResult, validate_config, validate_workflow

__all__ = [
    "ActionStep",
    "ActivationError",
    "CompatibilityEntry",
    "ConditionStep",
    "EmptyWorkflow",
    "MissingName",
    "TriggerStep",
    "ValidationResult",
    "Workflow",
    "WorkflowBuilder",
    "WorkflowConfig",
    "WorkflowSaveError",
    "WorkflowStore",
    "from_config",
    "to_config",
    "validate_config",
    "validate_workflow",
]
