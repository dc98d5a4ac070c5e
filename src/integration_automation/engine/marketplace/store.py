"""JSON-file backed template and installation records."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from integration_automation.engine.records import (
    NotFound,
    load_json_list,
    save_json_list,
    utc_now_iso,
)

from .models import Installation, Template

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class InstallationConflict(Exception):
    """The (user, template) pair already has an active installation."""

    existing: Installation

    def __str__(self) -> str:
        return (
            f"Template {self.existing.template_id} is already installed for user "
            f"{self.existing.user_id} ({self.existing.id})"
        )


class TemplateStore:
    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()

    def _load_unlocked(self) -> list[Template]:
        return [Template.model_validate(item) for item in load_json_list(self._path)]

    def _replace_unlocked(self, template_id: str, **updates: Any) -> Template:
        templates = self._load_unlocked()
        for idx, template in enumerate(templates):
            if template.id == template_id:
                templates[idx] = template.model_copy(update=updates)
                save_json_list(self._path, templates)
                return templates[idx]
        raise NotFound("template", template_id)

    def create(self, template: Template) -> Template:
        with self._lock:
            templates = self._load_unlocked()
            if any(existing.id == template.id for existing in templates):
                raise ValueError(f"Template id already exists: {template.id}")
            templates.append(template)
            save_json_list(self._path, templates)
        return template

    def get(self, template_id: str) -> Template:
        with self._lock:
            for template in self._load_unlocked():
                if template.id == template_id:
                    return template
        raise NotFound("template", template_id)

    def list(self) -> list[Template]:
        with self._lock:
            return self._load_unlocked()

    def increment_downloads(self, template_id: str) -> Template:
        # Approximate counter; a lost update under contention is acceptable.
        with self._lock:
            current = next(
                (t for t in self._load_unlocked() if t.id == template_id), None
            )
            if current is None:
                raise NotFound("template", template_id)
            return self._replace_unlocked(template_id, downloads=current.downloads + 1)

    def record_rating(self, template_id: str, score: float) -> Template:
        """Fold `score` into the running average rating."""

        if not 0.0 <= score <= 5.0:
            raise ValueError("Rating must be between 0 and 5")
        with self._lock:
            current = next(
                (t for t in self._load_unlocked() if t.id == template_id), None
            )
            if current is None:
                raise NotFound("template", template_id)
            count = current.rating_count + 1
            average = (current.rating * current.rating_count + score) / count
            return self._replace_unlocked(
                template_id, rating=round(min(average, 5.0), 2), rating_count=count
            )


class InstallationStore:
    """Installation records with a store-level uniqueness guarantee.

    At most one active installation exists per (user, template). The check and
    the insert happen under one lock, so concurrent duplicate installs cannot
    both succeed.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()

    def _load_unlocked(self) -> list[Installation]:
        return [Installation.model_validate(item) for item in load_json_list(self._path)]

    def _update(self, installation_id: str, **updates: Any) -> Installation:
        with self._lock:
            installations = self._load_unlocked()
            for idx, installation in enumerate(installations):
                if installation.id == installation_id:
                    installations[idx] = installation.model_copy(update=updates)
                    save_json_list(self._path, installations)
                    return installations[idx]
        raise NotFound("installation", installation_id)

    def create_active(
        self,
        *,
        user_id: str,
        template_id: str,
        configuration: dict[str, dict[str, Any]] | None = None,
    ) -> Installation:
        with self._lock:
            installations = self._load_unlocked()
            for existing in installations:
                if (
                    existing.is_active
                    and existing.user_id == user_id
                    and existing.template_id == template_id
                ):
                    raise InstallationConflict(existing)
            record = Installation(
                user_id=user_id,
                template_id=template_id,
                configuration=configuration or {},
            )
            installations.append(record)
            save_json_list(self._path, installations)
        return record

    def get(self, installation_id: str) -> Installation:
        with self._lock:
            for installation in self._load_unlocked():
                if installation.id == installation_id:
                    return installation
        raise NotFound("installation", installation_id)

    def list(
        self, *, user_id: str | None = None, template_id: str | None = None
    ) -> list[Installation]:
        with self._lock:
            installations = self._load_unlocked()
        return [
            i
            for i in installations
            if (user_id is None or i.user_id == user_id)
            and (template_id is None or i.template_id == template_id)
        ]

    def attach_workflow(self, installation_id: str, workflow_id: str) -> Installation:
        return self._update(installation_id, workflow_id=workflow_id)

    def deactivate(self, installation_id: str) -> Installation:
        return self._update(installation_id, is_active=False, uninstalled_at=utc_now_iso())
