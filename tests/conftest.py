"""Test configuration and fixtures."""

from pathlib import Path

import pytest

from integration_automation.engine.harness.execution import SimulatedExecution
from integration_automation.engine.harness.pipeline import PipelineStepKind
from integration_automation.engine.marketplace.registry import TemplateRegistry
from integration_automation.engine.marketplace.store import InstallationStore, TemplateStore
from integration_automation.engine.workflow.model import (
    ActionStep,
    ConditionStep,
    TriggerStep,
    WorkflowConfig,
)
from integration_automation.engine.workflow.store import WorkflowStore


@pytest.fixture
def temp_state_dir(tmp_path: Path) -> Path:
    """Provide a temporary state directory."""
    state_dir = tmp_path / "automation_state"
    state_dir.mkdir()
    return state_dir


@pytest.fixture
def workflow_store(temp_state_dir: Path) -> WorkflowStore:
    return WorkflowStore(temp_state_dir / "workflows.json")


@pytest.fixture
def template_store(temp_state_dir: Path) -> TemplateStore:
    return TemplateStore(temp_state_dir / "templates.json")


@pytest.fixture
def installation_store(temp_state_dir: Path) -> InstallationStore:
    return InstallationStore(temp_state_dir / "installations.json")


@pytest.fixture
def registry(
    template_store: TemplateStore,
    installation_store: InstallationStore,
    workflow_store: WorkflowStore,
) -> TemplateRegistry:
    return TemplateRegistry(
        templates=template_store,
        installations=installation_store,
        workflows=workflow_store,
    )


@pytest.fixture
def task_to_chat_config() -> WorkflowConfig:
    """TaskMaster task_created -> CollabSpace send_message, no conditions."""
    return WorkflowConfig(
        trigger=TriggerStep(app="TaskMaster", event="task_created"),
        conditions=[],
        actions=[ActionStep(app="CollabSpace", action="send_message")],
    )


@pytest.fixture
def guarded_config() -> WorkflowConfig:
    """A config with one condition and two actions."""
    return WorkflowConfig(
        trigger=TriggerStep(app="BudgetBuddy", event="budget_exceeded"),
        conditions=[ConditionStep(field="percent_used", operator="greater_than", value=80)],
        actions=[
            ActionStep(app="CollabSpace", action="send_message", config={"channel": "finance"}),
            ActionStep(app="ClientConnect", action="send_email"),
        ],
    )


@pytest.fixture
def always_pass() -> SimulatedExecution:
    """Simulated strategy without latency whose probabilistic steps always pass."""
    return SimulatedExecution(
        min_latency_ms=0,
        max_latency_ms=0,
        pass_rates={kind: 1.0 for kind in PipelineStepKind},
    )
