"""Unit tests for the template marketplace."""

from __future__ import annotations

import threading

import pytest

from integration_automation.engine.marketplace.models import (
    Difficulty,
    Installation,
    Template,
    TemplateFilter,
)
from integration_automation.engine.marketplace.registry import (
    AlreadyInstalled,
    TemplateRegistry,
    TemplateValidationFailed,
)
from integration_automation.engine.marketplace.store import (
    InstallationConflict,
    InstallationStore,
    TemplateStore,
)
from integration_automation.engine.records import NotFound
from integration_automation.engine.workflow.model import (
    ActionStep,
    ConditionStep,
    TriggerStep,
    Workflow,
    WorkflowConfig,
    to_config,
)
from integration_automation.engine.workflow.store import WorkflowStore


def _source_workflow() -> Workflow:
    return Workflow(
        name="Budget watch",
        description="Alert finance when a budget runs hot",
        owner_id="author",
        steps=[
            TriggerStep(id="trigger", app="BudgetBuddy", event="budget_exceeded"),
            ConditionStep(id="threshold", app="InsightIQ", field="percent", operator="greater_than", value=80),
            ActionStep(id="notify", app="CollabSpace", action="send_message", config={"channel": "ops"}),
        ],
    )


def test_publish_freezes_workflow(registry: TemplateRegistry) -> None:
    source = _source_workflow()

    template = registry.publish(
        source,
        category="Finance",
        difficulty=Difficulty.INTERMEDIATE,
        tags=[" budget ", "alerts", ""],
        author_id="author",
    )

    assert template.id.startswith("tpl_")
    assert template.name == "Budget watch"
    assert template.template_config == to_config(source)
    assert template.apps == {"BudgetBuddy", "InsightIQ", "CollabSpace"}
    assert template.tags == {"budget", "alerts"}
    assert template.version == 1
    assert template.downloads == 0
    assert registry.get(template.id).model_dump() == template.model_dump()


def test_publish_rejects_invalid_workflow(registry: TemplateRegistry, template_store: TemplateStore) -> None:
    invalid = Workflow(name="broken", steps=[TriggerStep(app="TaskMaster", event="task_created")])

    with pytest.raises(TemplateValidationFailed) as exc_info:
        registry.publish(invalid, category="Productivity")

    assert "at least one action required" in exc_info.value.result.errors
    assert template_store.list() == []


def test_publish_new_version(registry: TemplateRegistry) -> None:
    first = registry.publish(_source_workflow(), category="Finance")
    second = registry.publish(_source_workflow(), category="Finance", supersedes=first.id)

    assert second.version == 2
    assert second.previous_version_id == first.id
    assert second.id != first.id


def test_publish_unknown_predecessor(registry: TemplateRegistry) -> None:
    with pytest.raises(NotFound):
        registry.publish(_source_workflow(), category="Finance", supersedes="tpl_missing")


def test_template_apps_must_match_config() -> None:
    config = WorkflowConfig(
        trigger=TriggerStep(app="TaskMaster", event="task_created"),
        actions=[ActionStep(app="CollabSpace", action="send_message")],
    )
    with pytest.raises(ValueError):
        Template(name="t", category="c", template_config=config, apps={"TaskMaster"})


def test_seed_builtin_is_idempotent(registry: TemplateRegistry) -> None:
    first = registry.seed_builtin()
    second = registry.seed_builtin()

    assert [t.id for t in first] == [
        "tpl-task-time-sync",
        "tpl-budget-alert",
        "tpl-client-milestones",
        "tpl-risk-escalation",
    ]
    assert second == []
    assert len(registry.list_public()) == 4


@pytest.mark.parametrize(
    ("template_filter", "expected"),
    [
        (TemplateFilter(search="BUDGET"), {"tpl-budget-alert"}),
        (TemplateFilter(search="crm"), {"tpl-client-milestones"}),
        (TemplateFilter(search="milestones"), {"tpl-client-milestones"}),
        (TemplateFilter(category="Finance"), {"tpl-budget-alert"}),
        (TemplateFilter(category="finance"), set()),
        (TemplateFilter(difficulty=Difficulty.BEGINNER), {"tpl-task-time-sync", "tpl-client-milestones"}),
        (TemplateFilter(search="tasks", difficulty=Difficulty.ADVANCED), {"tpl-risk-escalation"}),
        (TemplateFilter(search="  "), {
            "tpl-task-time-sync",
            "tpl-budget-alert",
            "tpl-client-milestones",
            "tpl-risk-escalation",
        }),
    ],
)
def test_list_public_filters(
    registry: TemplateRegistry, template_filter: TemplateFilter, expected: set[str]
) -> None:
    registry.seed_builtin()
    assert {t.id for t in registry.list_public(template_filter)} == expected


def test_private_templates_are_not_listed(registry: TemplateRegistry) -> None:
    private = registry.publish(_source_workflow(), category="Finance", is_public=False)

    assert private.id not in {t.id for t in registry.list_public()}
    assert registry.get(private.id).model_dump() == private.model_dump()


def test_install_materializes_enabled_workflow(
    registry: TemplateRegistry, workflow_store: WorkflowStore
) -> None:
    registry.seed_builtin()

    installation = registry.install("u1", "tpl-budget-alert")

    assert installation.is_active
    assert installation.workflow_id is not None
    workflow = workflow_store.get(installation.workflow_id)
    assert workflow.enabled
    assert workflow.owner_id == "u1"
    assert workflow.name == "Budget Alert System"
    assert to_config(workflow).model_dump() == registry.get("tpl-budget-alert").template_config.model_dump()
    assert registry.get("tpl-budget-alert").downloads == 1


def test_install_applies_step_overrides(
    registry: TemplateRegistry, workflow_store: WorkflowStore
) -> None:
    registry.seed_builtin()

    installation = registry.install(
        "u1", "tpl-budget-alert", {"notify-channel": {"channel": "alerts"}, "unknown": {"x": 1}}
    )

    assert installation.workflow_id is not None
    workflow = workflow_store.get(installation.workflow_id)
    assert workflow.actions[0].config == {"channel": "alerts"}
    assert workflow.actions[1].config == {"template": "budget_alert"}
    assert registry.get("tpl-budget-alert").template_config.actions[0].config == {"channel": "finance"}


def test_second_install_conflicts(registry: TemplateRegistry) -> None:
    registry.seed_builtin()
    first = registry.install("u1", "tpl-task-time-sync")

    with pytest.raises(AlreadyInstalled) as exc_info:
        registry.install("u1", "tpl-task-time-sync")

    assert exc_info.value.existing.id == first.id
    assert registry.get("tpl-task-time-sync").downloads == 1
    assert len(registry.installations(user_id="u1")) == 1


def test_other_users_install_independently(registry: TemplateRegistry) -> None:
    registry.seed_builtin()
    registry.install("u1", "tpl-task-time-sync")
    registry.install("u2", "tpl-task-time-sync")

    assert registry.get("tpl-task-time-sync").downloads == 2


def test_install_unknown_template(registry: TemplateRegistry, installation_store: InstallationStore) -> None:
    with pytest.raises(NotFound):
        registry.install("u1", "tpl_missing")
    assert installation_store.list() == []


def test_uninstall_deactivates_without_touching_workflow(
    registry: TemplateRegistry, workflow_store: WorkflowStore
) -> None:
    registry.seed_builtin()
    installation = registry.install("u1", "tpl-client-milestones")

    uninstalled = registry.uninstall(installation.id)

    assert uninstalled.is_active is False
    assert uninstalled.uninstalled_at is not None
    assert uninstalled.workflow_id == installation.workflow_id
    assert installation.workflow_id is not None
    assert workflow_store.get(installation.workflow_id).enabled


def test_uninstall_is_idempotent(registry: TemplateRegistry) -> None:
    registry.seed_builtin()
    installation = registry.install("u1", "tpl-client-milestones")

    first = registry.uninstall(installation.id)
    second = registry.uninstall(installation.id)

    assert second.model_dump() == first.model_dump()


def test_reinstall_after_uninstall(registry: TemplateRegistry) -> None:
    registry.seed_builtin()
    first = registry.install("u1", "tpl-client-milestones")
    registry.uninstall(first.id)

    second = registry.install("u1", "tpl-client-milestones")

    assert second.id != first.id
    assert [i.is_active for i in registry.installations(user_id="u1")] == [False, True]


def test_uninstall_unknown(registry: TemplateRegistry) -> None:
    with pytest.raises(NotFound):
        registry.uninstall("inst_missing")


def test_concurrent_installs_yield_one_active(installation_store: InstallationStore) -> None:
    results: list[Installation] = []
    conflicts: list[InstallationConflict] = []

    def worker() -> None:
        try:
            results.append(installation_store.create_active(user_id="u1", template_id="tpl-x"))
        except InstallationConflict as e:
            conflicts.append(e)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 1
    assert len(conflicts) == 7
    assert len(installation_store.list(user_id="u1", template_id="tpl-x")) == 1


def test_rating_running_average(registry: TemplateRegistry) -> None:
    registry.seed_builtin()

    registry.rate("tpl-task-time-sync", 5)
    rated = registry.rate("tpl-task-time-sync", 4)

    assert rated.rating == 4.5
    assert rated.rating_count == 2


def test_rating_out_of_range(registry: TemplateRegistry) -> None:
    registry.seed_builtin()
    with pytest.raises(ValueError):
        registry.rate("tpl-task-time-sync", 6)


def test_failed_materialization_rolls_back_installation(
    registry: TemplateRegistry, workflow_store: WorkflowStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    registry.seed_builtin()

    def disk_full(_workflow: Workflow) -> Workflow:
        raise OSError("disk full")

    with monkeypatch.context() as m:
        m.setattr(workflow_store, "create", disk_full)
        with pytest.raises(OSError):
            registry.install("u1", "tpl-budget-alert")

    assert [(i.is_active, i.workflow_id) for i in registry.installations(user_id="u1")] == [(False, None)]
    assert registry.get("tpl-budget-alert").downloads == 0

    retried = registry.install("u1", "tpl-budget-alert")

    assert retried.is_active
    assert retried.workflow_id is not None


def test_failed_attach_discards_created_workflow(
    registry: TemplateRegistry,
    installation_store: InstallationStore,
    workflow_store: WorkflowStore,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    registry.seed_builtin()

    def unavailable(_installation_id: str, _workflow_id: str) -> Installation:
        raise OSError("state directory unavailable")

    monkeypatch.setattr(installation_store, "attach_workflow", unavailable)

    with pytest.raises(OSError):
        registry.install("u1", "tpl-task-time-sync")

    assert workflow_store.list(owner_id="u1") == []
    assert [i.is_active for i in installation_store.list(user_id="u1")] == [False]


def test_unrunnable_template_installs_disabled(
    registry: TemplateRegistry, template_store: TemplateStore, workflow_store: WorkflowStore
) -> None:
    config = WorkflowConfig(actions=[ActionStep(app="CollabSpace", action="send_message")])
    template_store.create(
        Template(
            id="tpl-no-trigger",
            name="No trigger",
            category="Communication",
            apps={"CollabSpace"},
            template_config=config,
        )
    )

    installation = registry.install("u1", "tpl-no-trigger")

    assert installation.workflow_id is not None
    workflow = workflow_store.get(installation.workflow_id)
    assert workflow.enabled is False
    assert workflow.trigger is None
    assert installation.is_active
