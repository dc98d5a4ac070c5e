"""CLI entrypoint for the automation engine.

Validate and dry-run workflow configurations, browse the template marketplace,
and install or uninstall templates against local JSON state.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from integration_automation import __version__
from integration_automation.engine.config import EngineSettings
from integration_automation.engine.harness.execution import SimulatedExecution
from integration_automation.engine.harness.runner import RunStatus, TestHarness
from integration_automation.engine.logging import configure_logging
from integration_automation.engine.marketplace.models import Difficulty, TemplateFilter
from integration_automation.engine.marketplace.registry import AlreadyInstalled, TemplateRegistry
from integration_automation.engine.marketplace.store import InstallationStore, TemplateStore
from integration_automation.engine.records import NotFound
from integration_automation.engine.workflow.model import WorkflowConfig
from integration_automation.engine.workflow.store import WorkflowStore
from integration_automation.engine.workflow.validator import validate_config

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG_ERROR = 2
EXIT_INVALID = 3
EXIT_CONFLICT = 4
EXIT_NOT_FOUND = 5


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="automation",
        description="Build, validate, test and install cross-application automations",
    )
    parser.add_argument(
        "--version", action="version", version=f"integration-automation {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser(
        "validate", help="Validate a workflow configuration JSON file"
    )
    validate.add_argument(
        "path",
        help="JSON file holding {trigger, conditions[], actions[]}",
    )

    test_run = subparsers.add_parser(
        "test-run", help="Dry-run a workflow configuration through the test harness"
    )
    test_run.add_argument(
        "path",
        help="JSON file holding {trigger, conditions[], actions[]}",
    )
    test_run.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the simulated execution (overrides AUTOMATION_HARNESS_SEED)",
    )
    test_run.add_argument(
        "--no-latency",
        action="store_true",
        help="Skip the simulated per-step latency",
    )

    templates = subparsers.add_parser(
        "templates", help="List public marketplace templates (seeds the built-in ones)"
    )
    templates.add_argument("--search", default=None, help="Substring of name, description or tag")
    templates.add_argument("--category", default=None, help="Exact category")
    templates.add_argument(
        "--difficulty",
        default=None,
        choices=[d.value for d in Difficulty],
        help="Exact difficulty",
    )

    install = subparsers.add_parser("install", help="Install a template for a user")
    install.add_argument("--user", required=True, help="User id")
    install.add_argument("--template", required=True, help="Template id")

    uninstall = subparsers.add_parser("uninstall", help="Deactivate an installation")
    uninstall.add_argument("--installation", required=True, help="Installation id")

    return parser


def _load_config(path: Path) -> WorkflowConfig:
    raw = json.loads(path.read_text(encoding="utf-8"))
    return WorkflowConfig.model_validate(raw)


def _registry(settings: EngineSettings) -> TemplateRegistry:
    return TemplateRegistry(
        templates=TemplateStore(settings.templates_state_file),
        installations=InstallationStore(settings.installations_state_file),
        workflows=WorkflowStore(settings.workflows_state_file),
    )


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = EngineSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return EXIT_CONFIG_ERROR

    configure_logging(settings.log_level)

    try:
        if args.command == "validate":
            result = validate_config(_load_config(Path(args.path)))
            _print_json(result.model_dump(mode="json"))
            return EXIT_OK if result.is_valid else EXIT_INVALID

        if args.command == "test-run":
            config = _load_config(Path(args.path))
            overrides: dict[str, object] = {}
            if args.seed is not None:
                overrides["harness_seed"] = args.seed
            if args.no_latency:
                overrides["harness_min_latency_ms"] = 0
                overrides["harness_max_latency_ms"] = 0
            run_settings = settings.model_copy(update=overrides)
            harness = TestHarness(SimulatedExecution.from_settings(run_settings))
            summary = asyncio.run(harness.run(config))
            _print_json(summary.to_json())
            return EXIT_OK if summary.overall_status is RunStatus.SUCCESS else EXIT_INVALID

        registry = _registry(settings)

        if args.command == "templates":
            registry.seed_builtin()
            flt = TemplateFilter(
                search=args.search,
                category=args.category,
                difficulty=Difficulty(args.difficulty) if args.difficulty else None,
            )
            for template in registry.list_public(flt):
                apps = ", ".join(sorted(template.apps))
                print(
                    f"{template.id}  {template.name}  [{template.category} / "
                    f"{template.difficulty.value}]  apps: {apps}  downloads: {template.downloads}"
                )
            return EXIT_OK

        if args.command == "install":
            registry.seed_builtin()
            installation = registry.install(args.user, args.template)
            print(
                f"Installed {installation.template_id} for {installation.user_id}: "
                f"installation {installation.id}, workflow {installation.workflow_id}"
            )
            return EXIT_OK

        if args.command == "uninstall":
            installation = registry.uninstall(args.installation)
            print(f"Uninstalled {installation.id} (template {installation.template_id})")
            return EXIT_OK

        parser.error(f"Unknown command: {args.command}")
        return EXIT_CONFIG_ERROR

    except AlreadyInstalled as e:
        print(str(e), file=sys.stderr)
        return EXIT_CONFLICT
    except NotFound as e:
        print(str(e), file=sys.stderr)
        return EXIT_NOT_FOUND
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.error("Could not read workflow configuration", extra={"error": str(e)})
        print(f"Could not read workflow configuration: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
