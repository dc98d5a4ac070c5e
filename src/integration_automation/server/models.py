"""Pydantic request models for the REST server."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from integration_automation.engine.marketplace.models import Difficulty
from integration_automation.engine.workflow.model import Step


class WorkflowDraft(BaseModel):
    name: str = ""
    description: str = ""
    enabled: bool = True
    owner_id: str = ""
    steps: list[Step] = Field(default_factory=list)


class PublishRequest(BaseModel):
    workflow_id: str
    category: str
    difficulty: Difficulty = Difficulty.BEGINNER
    tags: list[str] = Field(default_factory=list)
    author_id: str = ""
    is_public: bool = True
    is_verified: bool = False
    name: str | None = None
    description: str | None = None
    supersedes: str | None = None


class InstallRequest(BaseModel):
    user_id: str
    configuration: dict[str, dict[str, Any]] = Field(default_factory=dict)


class RatingRequest(BaseModel):
    score: float = Field(ge=0.0, le=5.0)


class AppCapabilities(BaseModel):
    app: str
    known: bool
    triggers: list[str]
    actions: list[str]
