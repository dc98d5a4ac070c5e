"""Marketplace records: templates and per-user installations."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from integration_automation.engine.records import utc_now_iso
from integration_automation.engine.workflow.model import WorkflowConfig, config_apps


class Difficulty(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class Template(BaseModel):
    """A frozen, installable snapshot of a workflow plus marketplace metadata.

    Only the `downloads` and `rating` counters change after publication; the
    stores do that by writing a copy.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"tpl_{uuid.uuid4().hex}")
    name: str
    description: str = ""
    category: str
    tags: set[str] = Field(default_factory=set)
    difficulty: Difficulty = Difficulty.BEGINNER
    is_verified: bool = False
    is_public: bool = True
    rating: float = Field(default=0.0, ge=0.0, le=5.0)
    rating_count: int = Field(default=0, ge=0)
    downloads: int = Field(default=0, ge=0)
    apps: set[str] = Field(default_factory=set)
    template_config: WorkflowConfig
    author_id: str = ""
    version: int = Field(default=1, ge=1)
    previous_version_id: str | None = None
    created_at: str = Field(default_factory=utc_now_iso)

    @model_validator(mode="after")
    def _apps_match_config(self) -> Template:
        expected = config_apps(self.template_config)
        if self.apps != expected:
            raise ValueError(
                f"Template apps {sorted(self.apps)} do not match its configuration {sorted(expected)}"
            )
        return self


class Installation(BaseModel):
    """A user's activation record for a template. Never hard-deleted."""

    id: str = Field(default_factory=lambda: f"inst_{uuid.uuid4().hex}")
    user_id: str
    template_id: str
    is_active: bool = True
    # Step id -> config entries merged into that step of the materialized workflow.
    configuration: dict[str, dict[str, Any]] = Field(default_factory=dict)
    workflow_id: str | None = None
    installed_at: str = Field(default_factory=utc_now_iso)
    uninstalled_at: str | None = None


@dataclass(frozen=True, slots=True)
class TemplateFilter:
    search: str | None = None
    category: str | None = None
    difficulty: Difficulty | None = None

    def matches(self, template: Template) -> bool:
        if self.category is not None and template.category != self.category:
            return False
        if self.difficulty is not None and template.difficulty != self.difficulty:
            return False
        needle = (self.search or "").strip().lower()
        if not needle:
            return True
        haystacks = [template.name, template.description, *template.tags]
        return any(needle in text.lower() for text in haystacks)
