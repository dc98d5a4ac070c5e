"""JSON-file backed workflow records.

Workflows are stored in their split form (trigger, conditions, actions), so a
reload always yields trigger -> conditions -> actions step order.
Deletion is soft: the record stays on disk with `deleted_at` set and is hidden
from reads.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel

from integration_automation.engine.records import (
    NotFound,
    load_json_list,
    save_json_list,
    utc_now_iso,
)

from .model import Workflow, WorkflowConfig, from_config, require_activatable, to_config

logger = logging.getLogger(__name__)


class WorkflowRecord(BaseModel):
    id: str
    owner_id: str = ""
    name: str
    description: str = ""
    enabled: bool = False
    config: WorkflowConfig
    created_at: str
    updated_at: str
    deleted_at: str | None = None

    @classmethod
    def from_workflow(cls, workflow: Workflow) -> WorkflowRecord:
        return cls(
            id=workflow.id,
            owner_id=workflow.owner_id,
            name=workflow.name,
            description=workflow.description,
            enabled=workflow.enabled,
            config=to_config(workflow),
            created_at=workflow.created_at,
            updated_at=workflow.updated_at,
        )

    def to_workflow(self) -> Workflow:
        return from_config(
            self.config,
            id=self.id,
            owner_id=self.owner_id,
            name=self.name,
            description=self.description,
            enabled=self.enabled,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class WorkflowRepository(Protocol):
    """What a builder session needs from persistence."""

    def create(self, workflow: Workflow) -> Workflow: ...

    def update(self, workflow: Workflow) -> Workflow: ...


class WorkflowStore:
    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()

    def _load_unlocked(self) -> list[WorkflowRecord]:
        return [WorkflowRecord.model_validate(item) for item in load_json_list(self._path)]

    def _live_index(self, records: list[WorkflowRecord], workflow_id: str) -> int:
        for idx, record in enumerate(records):
            if record.id == workflow_id and record.deleted_at is None:
                return idx
        raise NotFound("workflow", workflow_id)

    def create(self, workflow: Workflow) -> Workflow:
        with self._lock:
            records = self._load_unlocked()
            if any(record.id == workflow.id for record in records):
                raise ValueError(f"Workflow id already exists: {workflow.id}")
            record = WorkflowRecord.from_workflow(workflow)
            records.append(record)
            save_json_list(self._path, records)

        logger.info(
            "Workflow created",
            extra={"workflow_id": record.id, "owner_id": record.owner_id, "enabled": record.enabled},
        )
        return record.to_workflow()

    def get(self, workflow_id: str) -> Workflow:
        with self._lock:
            records = self._load_unlocked()
            return records[self._live_index(records, workflow_id)].to_workflow()

    def list(self, *, owner_id: str | None = None) -> list[Workflow]:
        with self._lock:
            records = self._load_unlocked()
        return [
            record.to_workflow()
            for record in records
            if record.deleted_at is None and (owner_id is None or record.owner_id == owner_id)
        ]

    def update(self, workflow: Workflow) -> Workflow:
        with self._lock:
            records = self._load_unlocked()
            idx = self._live_index(records, workflow.id)
            updated = WorkflowRecord.from_workflow(workflow).model_copy(
                update={"created_at": records[idx].created_at, "updated_at": utc_now_iso()}
            )
            records[idx] = updated
            save_json_list(self._path, records)

        logger.info("Workflow updated", extra={"workflow_id": workflow.id})
        return updated.to_workflow()

    def set_enabled(self, workflow_id: str, enabled: bool) -> Workflow:
        """Enable or disable a workflow. Enabling requires a runnable workflow."""

        with self._lock:
            records = self._load_unlocked()
            idx = self._live_index(records, workflow_id)
            if enabled:
                require_activatable(records[idx].to_workflow())
            updated = records[idx].model_copy(update={"enabled": enabled, "updated_at": utc_now_iso()})
            records[idx] = updated
            save_json_list(self._path, records)

        logger.info("Workflow toggled", extra={"workflow_id": workflow_id, "enabled": enabled})
        return updated.to_workflow()

    def soft_delete(self, workflow_id: str) -> None:
        with self._lock:
            records = self._load_unlocked()
            idx = self._live_index(records, workflow_id)
            now = utc_now_iso()
            records[idx] = records[idx].model_copy(
                update={"deleted_at": now, "enabled": False, "updated_at": now}
            )
            save_json_list(self._path, records)

        logger.info("Workflow deleted", extra={"workflow_id": workflow_id})
