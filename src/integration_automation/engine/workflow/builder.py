"""Draft-editing session over a single workflow.

The builder owns an in-memory draft and mutates nothing else. Edits are
tolerant: an update or removal for a step id that no longer exists is a no-op,
because UI edits can arrive after the step they target was removed.

Persistence happens only on an explicit `save()`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .model import (
    STEP_TYPES,
    ActionStep,
    ConditionStep,
    StepKind,
    TriggerStep,
    Workflow,
    WorkflowConfig,
    from_config,
    is_activatable,
    to_config,
)
from .store import WorkflowRepository
from .validator import ValidationResult, validate_workflow

logger = logging.getLogger(__name__)

AnyStep = TriggerStep | ConditionStep | ActionStep

_IMMUTABLE_STEP_FIELDS = frozenset({"id", "kind"})


@dataclass(frozen=True, slots=True)
class WorkflowSaveError(Exception):
    message: str

    def __str__(self) -> str:
        return self.message


class MissingName(WorkflowSaveError):
    pass


class EmptyWorkflow(WorkflowSaveError):
    pass


class WorkflowBuilder:
    """Assemble a workflow step by step, then persist it.

    Args:
        repository: Where `save()` writes the workflow.
        owner_id: Owner recorded on new drafts.
    """

    def __init__(self, repository: WorkflowRepository, *, owner_id: str = "") -> None:
        self._repository = repository
        self._owner_id = owner_id
        self._draft = self._blank()
        self._persisted = False

    def _blank(self) -> Workflow:
        # New drafts start enabled; save() downgrades drafts that cannot run yet.
        return Workflow(owner_id=self._owner_id, enabled=True)

    @property
    def draft(self) -> Workflow:
        return self._draft

    def load(self, workflow: Workflow) -> None:
        """Start editing an already persisted workflow."""

        self._draft = workflow
        self._persisted = True

    def set_details(
        self,
        *,
        name: str | None = None,
        description: str | None = None,
        enabled: bool | None = None,
    ) -> None:
        updates: dict[str, Any] = {}
        if name is not None:
            updates["name"] = name
        if description is not None:
            updates["description"] = description
        if enabled is not None:
            updates["enabled"] = enabled
        self._draft = self._draft.model_copy(update=updates)

    def add_step(self, kind: StepKind) -> AnyStep | None:
        """Append an empty step of `kind`. A second trigger is refused."""

        if kind == "trigger" and self._draft.trigger is not None:
            logger.debug("Second trigger refused", extra={"workflow_id": self._draft.id})
            return None
        step = STEP_TYPES[kind]()
        self._draft = self._draft.model_copy(update={"steps": [*self._draft.steps, step]})
        return step

    def update_step(self, step_id: str, **fields: Any) -> AnyStep | None:
        """Merge `fields` into the step with `step_id`.

        Returns the updated step, or None when no such step exists.

        Raises:
            ValueError: If a field is not defined on that kind of step, or is `id`/`kind`.
        """

        for idx, step in enumerate(self._draft.steps):
            if step.id != step_id:
                continue
            step_type = type(step)
            unknown = set(fields) - set(step_type.model_fields)
            if unknown:
                raise ValueError(f"{step.kind} steps have no field(s): {', '.join(sorted(unknown))}")
            frozen = set(fields) & _IMMUTABLE_STEP_FIELDS
            if frozen:
                raise ValueError(f"Step field(s) cannot be changed: {', '.join(sorted(frozen))}")
            updated = step_type.model_validate({**step.model_dump(), **fields})
            steps = list(self._draft.steps)
            steps[idx] = updated
            self._draft = self._draft.model_copy(update={"steps": steps})
            return updated
        return None

    def remove_step(self, step_id: str) -> bool:
        steps = [step for step in self._draft.steps if step.id != step_id]
        if len(steps) == len(self._draft.steps):
            return False
        self._draft = self._draft.model_copy(update={"steps": steps})
        return True

    def to_persisted(self) -> WorkflowConfig:
        return to_config(self._draft)

    @classmethod
    def from_persisted(
        cls,
        config: WorkflowConfig,
        repository: WorkflowRepository,
        **workflow_fields: Any,
    ) -> WorkflowBuilder:
        """Open a session on a workflow rebuilt from its split form.

        The rebuilt step order is trigger, then conditions, then actions. Passing
        an `id` means the session edits that existing record, so `save()` updates it.
        """

        builder = cls(repository, owner_id=str(workflow_fields.get("owner_id", "")))
        builder._draft = from_config(config, **workflow_fields)
        builder._persisted = "id" in workflow_fields
        return builder

    def validate(self) -> ValidationResult:
        return validate_workflow(self._draft)

    def save(self) -> Workflow:
        """Persist the draft, then reset the session to a blank draft.

        Raises:
            MissingName: If the draft has no name.
            EmptyWorkflow: If the draft has no steps.
        """

        draft = self._draft
        if not draft.name.strip():
            raise MissingName("Please enter a workflow name")
        if not draft.steps:
            raise EmptyWorkflow("Please add at least one step to the workflow")

        if draft.enabled and not is_activatable(draft):
            logger.warning(
                "Workflow saved disabled: it needs exactly one trigger and at least one action",
                extra={"workflow_id": draft.id},
            )
            draft = draft.model_copy(update={"enabled": False})

        if self._persisted:
            saved = self._repository.update(draft)
        else:
            saved = self._repository.create(draft)

        logger.info(
            "Workflow saved",
            extra={"workflow_id": saved.id, "steps": len(saved.steps), "enabled": saved.enabled},
        )
        self._draft = self._blank()
        self._persisted = False
        return saved
