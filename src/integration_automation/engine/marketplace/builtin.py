"""Starter templates shipped with the marketplace.

Each entry is published by `TemplateRegistry.seed_builtin()` under a stable id,
so seeding is idempotent.
"""

from __future__ import annotations

from typing import Any

BUILTIN_TEMPLATES: list[dict[str, Any]] = [
    {
        "id": "tpl-task-time-sync",
        "name": "Task-Time Sync",
        "description": 'Automatically start time tracking when tasks move to "In Progress"',
        "category": "Productivity",
        "difficulty": "Beginner",
        "tags": ["tasks", "time-tracking", "sync"],
        "is_verified": True,
        "template_config": {
            "trigger": {"id": "trigger", "app": "TaskMaster", "event": "task_updated"},
            "conditions": [
                {"id": "status", "field": "status", "operator": "equals", "value": "In Progress"}
            ],
            "actions": [
                {
                    "id": "start-timer",
                    "app": "TimeTrackPro",
                    "action": "start_timer",
                    "config": {"description_from": "task_title"},
                }
            ],
        },
    },
    {
        "id": "tpl-budget-alert",
        "name": "Budget Alert System",
        "description": "Get notifications when project budgets exceed thresholds",
        "category": "Finance",
        "difficulty": "Intermediate",
        "tags": ["budget", "alerts", "notifications"],
        "is_verified": True,
        "template_config": {
            "trigger": {"id": "trigger", "app": "BudgetBuddy", "event": "budget_exceeded"},
            "conditions": [
                {"id": "threshold", "field": "percent_used", "operator": "greater_than", "value": 80}
            ],
            "actions": [
                {
                    "id": "notify-channel",
                    "app": "CollabSpace",
                    "action": "send_message",
                    "config": {"channel": "finance"},
                },
                {
                    "id": "email-owner",
                    "app": "ClientConnect",
                    "action": "send_email",
                    "config": {"template": "budget_alert"},
                },
            ],
        },
    },
    {
        "id": "tpl-client-milestones",
        "name": "Client Communication Flow",
        "description": "Automatically notify clients of project milestones",
        "category": "Communication",
        "difficulty": "Beginner",
        "tags": ["clients", "milestones", "crm"],
        "is_verified": False,
        "template_config": {
            "trigger": {"id": "trigger", "app": "PlanBoard", "event": "milestone_reached"},
            "conditions": [],
            "actions": [
                {
                    "id": "log-interaction",
                    "app": "ClientConnect",
                    "action": "log_interaction",
                },
                {
                    "id": "email-client",
                    "app": "ClientConnect",
                    "action": "send_email",
                    "config": {"template": "milestone_update"},
                },
            ],
        },
    },
    {
        "id": "tpl-risk-escalation",
        "name": "Risk Escalation",
        "description": "Create a follow-up task and alert the team when a risk level changes",
        "category": "Risk Management",
        "difficulty": "Advanced",
        "tags": ["risk", "escalation", "tasks"],
        "is_verified": False,
        "template_config": {
            "trigger": {"id": "trigger", "app": "RiskRadar", "event": "risk_level_changed"},
            "conditions": [
                {"id": "severity", "field": "level", "operator": "equals", "value": "high"}
            ],
            "actions": [
                {
                    "id": "create-task",
                    "app": "TaskMaster",
                    "action": "create_task",
                    "config": {"priority": "high"},
                },
                {"id": "notify-team", "app": "CollabSpace", "action": "notify_team"},
            ],
        },
    },
]
