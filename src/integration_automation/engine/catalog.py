"""Static capability catalog of the first-party applications.

Per application: which trigger events can start a workflow and which actions a
workflow may perform against it. Condition operators are shared by all apps.

Lookups for an unknown app return an empty list rather than raising: "no catalog
entry" is a distinct answer from an error, and it is up to callers (the
validator, the builder UI) to decide what it means.
"""

from __future__ import annotations

KNOWN_APPS: tuple[str, ...] = (
    "TaskMaster",
    "TimeTrackPro",
    "CollabSpace",
    "PlanBoard",
    "FileVault",
    "BudgetBuddy",
    "InsightIQ",
    "ResourceHub",
    "ClientConnect",
    "RiskRadar",
)

_TRIGGER_EVENTS: dict[str, tuple[str, ...]] = {
    "TaskMaster": (
        "task_created",
        "task_updated",
        "task_completed",
        "task_assigned",
        "task_deleted",
        "deadline_approaching",
    ),
    "TimeTrackPro": (
        "time_logged",
        "timer_started",
        "timer_stopped",
        "timesheet_submitted",
        "overtime_detected",
    ),
    "CollabSpace": (
        "message_posted",
        "file_shared",
        "mention_created",
        "channel_created",
        "user_joined",
    ),
    "PlanBoard": (
        "project_created",
        "milestone_reached",
        "deadline_missed",
        "project_completed",
        "resource_assigned",
    ),
    "FileVault": (
        "file_uploaded",
        "file_shared",
        "file_deleted",
        "folder_created",
        "access_granted",
    ),
    "BudgetBuddy": (
        "expense_created",
        "budget_exceeded",
        "payment_due",
        "invoice_generated",
        "budget_updated",
    ),
    "InsightIQ": (
        "report_generated",
        "threshold_exceeded",
        "anomaly_detected",
        "kpi_updated",
        "dashboard_viewed",
    ),
    "ResourceHub": (
        "resource_allocated",
        "skill_updated",
        "availability_changed",
        "capacity_exceeded",
        "team_updated",
    ),
    "ClientConnect": (
        "contact_created",
        "meeting_scheduled",
        "email_sent",
        "deal_closed",
        "follow_up_due",
    ),
    "RiskRadar": (
        "risk_identified",
        "risk_level_changed",
        "mitigation_completed",
        "assessment_due",
        "alert_triggered",
    ),
}

_ACTIONS: dict[str, tuple[str, ...]] = {
    "TaskMaster": (
        "create_task",
        "update_task",
        "assign_task",
        "add_comment",
        "set_priority",
        "update_status",
    ),
    "TimeTrackPro": (
        "start_timer",
        "log_time",
        "create_report",
        "stop_timer",
        "submit_timesheet",
        "calculate_overtime",
    ),
    "CollabSpace": (
        "send_message",
        "create_channel",
        "notify_team",
        "share_file",
        "mention_user",
        "send_notification",
    ),
    "PlanBoard": (
        "create_project",
        "update_milestone",
        "assign_resource",
        "update_timeline",
        "generate_report",
        "notify_stakeholders",
    ),
    "FileVault": (
        "upload_file",
        "share_file",
        "backup_file",
        "create_folder",
        "grant_access",
        "sync_documents",
    ),
    "BudgetBuddy": (
        "create_expense",
        "update_budget",
        "send_alert",
        "generate_invoice",
        "track_payment",
        "create_report",
    ),
    "InsightIQ": (
        "generate_report",
        "update_dashboard",
        "send_analytics",
        "create_visualization",
        "export_data",
        "schedule_report",
    ),
    "ResourceHub": (
        "allocate_resource",
        "update_skill",
        "set_availability",
        "create_team",
        "plan_capacity",
        "generate_schedule",
    ),
    "ClientConnect": (
        "create_contact",
        "schedule_meeting",
        "send_email",
        "update_deal",
        "log_interaction",
        "set_reminder",
    ),
    "RiskRadar": (
        "create_risk",
        "update_assessment",
        "assign_mitigation",
        "send_alert",
        "generate_report",
        "update_status",
    ),
}

_CONDITION_OPERATORS: tuple[str, ...] = (
    "equals",
    "not_equals",
    "contains",
    "not_contains",
    "greater_than",
    "less_than",
    "is_empty",
    "is_not_empty",
)


def is_known_app(app: str) -> bool:
    return app in KNOWN_APPS


def trigger_events(app: str) -> list[str]:
    """Trigger events `app` can emit, in display order. Unknown app -> []."""

    return list(_TRIGGER_EVENTS.get(app, ()))


def actions(app: str) -> list[str]:
    """Actions a workflow can perform against `app`. Unknown app -> []."""

    return list(_ACTIONS.get(app, ()))


def condition_operators() -> list[str]:
    return list(_CONDITION_OPERATORS)
