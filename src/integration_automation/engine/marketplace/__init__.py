"""Template marketplace: versioned workflow snapshots and per-user installations."""

from __future__ import annotations

from .models import Difficulty, Installation, Template, TemplateFilter
from .registry import AlreadyInstalled, TemplateRegistry, TemplateValidationFailed
from .store import InstallationConflict, InstallationStore, TemplateStore

__all__ = [
    "AlreadyInstalled",
    "Difficulty",
    "Installation",
    "InstallationConflict",
    "InstallationStore",
    "Template",
    "TemplateFilter",
    "TemplateRegistry",
    "TemplateStore",
    "TemplateValidationFailed",
]
