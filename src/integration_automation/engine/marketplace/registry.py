"""Template registry: publish, browse, install and uninstall.

Publication freezes a validated workflow into a template. Installing a template
creates an active installation for the user and materializes a fresh workflow
from the frozen configuration, enabled when it can run.

Uninstalling only deactivates the installation. The workflow created at install
time is left as it is; the installation keeps its `workflow_id` so callers can
disable that workflow themselves if they want to.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from integration_automation.engine.workflow.model import (
    Workflow,
    WorkflowConfig,
    config_apps,
    from_config,
    is_activatable,
    to_config,
)
from integration_automation.engine.workflow.store import WorkflowStore
from integration_automation.engine.workflow.validator import ValidationResult, validate_workflow

from .builtin import BUILTIN_TEMPLATES
from .models import Difficulty, Installation, Template, TemplateFilter
from .store import InstallationConflict, InstallationStore, TemplateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AlreadyInstalled(Exception):
    """Raised when a user installs a template they already have active.

    Callers can treat this as a safe no-op: `existing` is the active installation.
    """

    existing: Installation

    def __str__(self) -> str:
        return f"Template already installed: {self.existing.template_id} ({self.existing.id})"


@dataclass(frozen=True, slots=True)
class TemplateValidationFailed(Exception):
    result: ValidationResult

    def __str__(self) -> str:
        return "Workflow is not valid: " + "; ".join(self.result.errors)


def _apply_overrides(
    config: WorkflowConfig, overrides: dict[str, dict[str, Any]]
) -> WorkflowConfig:
    if not overrides:
        return config

    def merge(step: Any) -> Any:
        extra = overrides.get(step.id)
        if not extra:
            return step
        return step.model_copy(update={"config": {**step.config, **extra}})

    return WorkflowConfig(
        trigger=merge(config.trigger) if config.trigger is not None else None,
        conditions=[merge(c) for c in config.conditions],
        actions=[merge(a) for a in config.actions],
    )


class TemplateRegistry:
    def __init__(
        self,
        *,
        templates: TemplateStore,
        installations: InstallationStore,
        workflows: WorkflowStore,
    ) -> None:
        self._templates = templates
        self._installations = installations
        self._workflows = workflows

    def publish(
        self,
        workflow: Workflow,
        *,
        category: str,
        difficulty: Difficulty = Difficulty.BEGINNER,
        tags: Iterable[str] = (),
        author_id: str = "",
        is_public: bool = True,
        is_verified: bool = False,
        name: str | None = None,
        description: str | None = None,
        supersedes: str | None = None,
    ) -> Template:
        """Freeze a valid workflow into a new template.

        Args:
            supersedes: Id of the template this one is a new version of.

        Raises:
            TemplateValidationFailed: If the workflow has validation errors.
            NotFound: If `supersedes` names an unknown template.
        """

        result = validate_workflow(workflow)
        if not result.is_valid:
            raise TemplateValidationFailed(result)

        version = 1
        if supersedes is not None:
            version = self._templates.get(supersedes).version + 1

        config = to_config(workflow)
        template = Template(
            name=name if name is not None else workflow.name,
            description=description if description is not None else workflow.description,
            category=category,
            tags={t.strip() for t in tags if t.strip()},
            difficulty=difficulty,
            is_verified=is_verified,
            is_public=is_public,
            apps=config_apps(config),
            template_config=config,
            author_id=author_id,
            version=version,
            previous_version_id=supersedes,
        )
        self._templates.create(template)
        logger.info(
            "Template published",
            extra={"template_id": template.id, "source_workflow_id": workflow.id, "version": version},
        )
        return template

    def seed_builtin(self) -> list[Template]:
        """Publish the starter templates that are not in the store yet."""

        existing = {t.id for t in self._templates.list()}
        created: list[Template] = []
        for raw in BUILTIN_TEMPLATES:
            if raw["id"] in existing:
                continue
            config = WorkflowConfig.model_validate(raw["template_config"])
            template = Template.model_validate({**raw, "apps": config_apps(config)})
            created.append(self._templates.create(template))
        if created:
            logger.info("Seeded builtin templates", extra={"count": len(created)})
        return created

    def get(self, template_id: str) -> Template:
        return self._templates.get(template_id)

    def list_public(self, template_filter: TemplateFilter | None = None) -> list[Template]:
        flt = template_filter or TemplateFilter()
        return [t for t in self._templates.list() if t.is_public and flt.matches(t)]

    def install(
        self,
        user_id: str,
        template_id: str,
        configuration: dict[str, dict[str, Any]] | None = None,
    ) -> Installation:
        """Install a template for a user.

        The installation and its workflow are created together. If the workflow
        cannot be materialized, the installation is deactivated again before the
        error propagates, so a retry is not blocked by a half-done install.

        The workflow starts enabled only when it can run (one trigger, at least
        one action).

        Raises:
            NotFound: If the template does not exist.
            AlreadyInstalled: If the user already has it actively installed.
        """

        template = self._templates.get(template_id)
        try:
            installation = self._installations.create_active(
                user_id=user_id, template_id=template_id, configuration=configuration
            )
        except InstallationConflict as e:
            raise AlreadyInstalled(e.existing) from e

        workflow: Workflow | None = None
        try:
            config = _apply_overrides(template.template_config, installation.configuration)
            draft = from_config(
                config,
                name=template.name,
                description=template.description,
                owner_id=user_id,
            )
            enabled = is_activatable(draft)
            if not enabled:
                logger.warning(
                    "Installed workflow left disabled: template cannot run as is",
                    extra={"template_id": template_id, "user_id": user_id},
                )
            workflow = self._workflows.create(draft.model_copy(update={"enabled": enabled}))
            installation = self._installations.attach_workflow(installation.id, workflow.id)
            self._templates.increment_downloads(template_id)
        except Exception:
            logger.exception(
                "Install failed; rolling back installation",
                extra={"installation_id": installation.id, "template_id": template_id},
            )
            self._installations.deactivate(installation.id)
            if workflow is not None:
                self._workflows.soft_delete(workflow.id)
            raise

        logger.info(
            "Template installed",
            extra={
                "installation_id": installation.id,
                "template_id": template_id,
                "user_id": user_id,
                "workflow_id": installation.workflow_id,
            },
        )
        return installation

    def uninstall(self, installation_id: str) -> Installation:
        """Deactivate an installation. Already inactive installations are returned unchanged."""

        installation = self._installations.get(installation_id)
        if not installation.is_active:
            return installation
        installation = self._installations.deactivate(installation_id)
        logger.info(
            "Template uninstalled",
            extra={
                "installation_id": installation_id,
                "template_id": installation.template_id,
                "workflow_id": installation.workflow_id,
            },
        )
        return installation

    def installations(self, *, user_id: str | None = None) -> list[Installation]:
        return self._installations.list(user_id=user_id)

    def rate(self, template_id: str, score: float) -> Template:
        return self._templates.record_rating(template_id, score)
