"""FastAPI app factory.

Endpoints are thin wrappers over the engine: builder sessions, the validator,
the template registry and the test harness.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from integration_automation import __version__
from integration_automation.engine import catalog
from integration_automation.engine.harness.runner import RunTarget, TestHarness
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
from integration_automation.engine.marketplace.store import InstallationStore, TemplateStore
from integration_automation.engine.records import NotFound
from integration_automation.engine.workflow.builder import WorkflowBuilder, WorkflowSaveError
from integration_automation.engine.workflow.model import ActivationError, Workflow, WorkflowConfig
from integration_automation.engine.workflow.store import WorkflowStore
from integration_automation.engine.workflow.validator import ValidationResult, validate_config
from integration_automation.server.config import ServerSettings
from integration_automation.server.models import (
    AppCapabilities,
    InstallRequest,
    PublishRequest,
    RatingRequest,
    WorkflowDraft,
)

logger = logging.getLogger(__name__)


def _apply_draft(builder: WorkflowBuilder, draft: WorkflowDraft) -> None:
    builder.set_details(name=draft.name, description=draft.description, enabled=draft.enabled)
    for step in draft.steps:
        created = builder.add_step(step.kind)
        if created is None:
            raise HTTPException(status_code=422, detail="A workflow has at most one trigger")
        builder.update_step(created.id, **step.model_dump(exclude={"id", "kind"}))


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFound)
    async def not_found(_request: Request, exc: NotFound) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(AlreadyInstalled)
    async def already_installed(_request: Request, exc: AlreadyInstalled) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={"detail": str(exc), "installationId": exc.existing.id},
        )

    @app.exception_handler(WorkflowSaveError)
    async def save_failed(_request: Request, exc: WorkflowSaveError) -> JSONResponse:
        return JSONResponse(
            status_code=422, content={"detail": str(exc), "error": type(exc).__name__}
        )

    @app.exception_handler(ActivationError)
    async def activation_failed(_request: Request, exc: ActivationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(TemplateValidationFailed)
    async def publish_failed(_request: Request, exc: TemplateValidationFailed) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": str(exc), "validation": exc.result.model_dump(mode="json")},
        )


def create_app() -> FastAPI:
    settings = ServerSettings()

    app = FastAPI(
        title="Integration Automation Engine",
        version=__version__,
        description="REST API over workflows, templates, installations and test runs.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    # Expose settings for request handlers that want to read it.
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_error_handlers(app)

    workflow_store = WorkflowStore(settings.workflows_state_file)
    registry = TemplateRegistry(
        templates=TemplateStore(settings.templates_state_file),
        installations=InstallationStore(settings.installations_state_file),
        workflows=workflow_store,
    )
    registry.seed_builtin()

    # One in-flight test run per workflow/template id.
    active_runs: set[str] = set()

    async def _test_run(target_id: str, target: RunTarget) -> dict[str, object]:
        if target_id in active_runs:
            raise HTTPException(status_code=409, detail=f"A test run is already active for {target_id}")
        active_runs.add(target_id)
        try:
            summary = await TestHarness.from_settings(settings).run(target)
        finally:
            active_runs.discard(target_id)
        return summary.to_json()

    @app.get("/api/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @app.get("/api/catalog/apps", response_model=list[str])
    def list_apps() -> list[str]:
        return list(catalog.KNOWN_APPS)

    @app.get("/api/catalog/apps/{app_name}", response_model=AppCapabilities)
    def app_capabilities(app_name: str) -> AppCapabilities:
        # Unknown apps are not an error: they simply have no catalog entry.
        return AppCapabilities(
            app=app_name,
            known=catalog.is_known_app(app_name),
            triggers=catalog.trigger_events(app_name),
            actions=catalog.actions(app_name),
        )

    @app.get("/api/catalog/operators", response_model=list[str])
    def list_operators() -> list[str]:
        return catalog.condition_operators()

    @app.post("/api/validate", response_model=ValidationResult)
    def validate(config: WorkflowConfig) -> ValidationResult:
        return validate_config(config)

    @app.post("/api/workflows", response_model=Workflow, status_code=201)
    def create_workflow(draft: WorkflowDraft) -> Workflow:
        builder = WorkflowBuilder(workflow_store, owner_id=draft.owner_id)
        _apply_draft(builder, draft)
        return builder.save()

    @app.put("/api/workflows/{workflow_id}", response_model=Workflow)
    def update_workflow(workflow_id: str, draft: WorkflowDraft) -> Workflow:
        builder = WorkflowBuilder(workflow_store)
        builder.load(workflow_store.get(workflow_id))
        for step in list(builder.draft.steps):
            builder.remove_step(step.id)
        _apply_draft(builder, draft)
        return builder.save()

    @app.get("/api/workflows", response_model=list[Workflow])
    def list_workflows(owner_id: str | None = None) -> list[Workflow]:
        return workflow_store.list(owner_id=owner_id)

    @app.get("/api/workflows/{workflow_id}", response_model=Workflow)
    def get_workflow(workflow_id: str) -> Workflow:
        return workflow_store.get(workflow_id)

    @app.delete("/api/workflows/{workflow_id}", status_code=204)
    def delete_workflow(workflow_id: str) -> None:
        workflow_store.soft_delete(workflow_id)

    @app.post("/api/workflows/{workflow_id}/enable", response_model=Workflow)
    def enable_workflow(workflow_id: str) -> Workflow:
        return workflow_store.set_enabled(workflow_id, True)

    @app.post("/api/workflows/{workflow_id}/disable", response_model=Workflow)
    def disable_workflow(workflow_id: str) -> Workflow:
        return workflow_store.set_enabled(workflow_id, False)

    @app.post("/api/workflows/{workflow_id}/test-run")
    async def test_run_workflow(workflow_id: str) -> dict[str, object]:
        workflow = await asyncio.to_thread(workflow_store.get, workflow_id)
        return await _test_run(workflow_id, workflow)

    @app.get("/api/templates", response_model=list[Template])
    def list_templates(
        search: str | None = None,
        category: str | None = None,
        difficulty: Difficulty | None = None,
    ) -> list[Template]:
        return registry.list_public(
            TemplateFilter(search=search, category=category, difficulty=difficulty)
        )

    @app.get("/api/templates/{template_id}", response_model=Template)
    def get_template(template_id: str) -> Template:
        return registry.get(template_id)

    @app.post("/api/templates", response_model=Template, status_code=201)
    def publish_template(req: PublishRequest) -> Template:
        workflow = workflow_store.get(req.workflow_id)
        return registry.publish(
            workflow,
            category=req.category,
            difficulty=req.difficulty,
            tags=req.tags,
            author_id=req.author_id,
            is_public=req.is_public,
            is_verified=req.is_verified,
            name=req.name,
            description=req.description,
            supersedes=req.supersedes,
        )

    @app.post("/api/templates/{template_id}/rating", response_model=Template)
    def rate_template(template_id: str, req: RatingRequest) -> Template:
        return registry.rate(template_id, req.score)

    @app.post("/api/templates/{template_id}/test-run")
    async def test_run_template(template_id: str) -> dict[str, object]:
        template = await asyncio.to_thread(registry.get, template_id)
        return await _test_run(template_id, template)

    @app.post(
        "/api/templates/{template_id}/install", response_model=Installation, status_code=201
    )
    def install_template(template_id: str, req: InstallRequest) -> Installation:
        return registry.install(req.user_id, template_id, req.configuration)

    @app.post("/api/installations/{installation_id}/uninstall", response_model=Installation)
    def uninstall(installation_id: str) -> Installation:
        return registry.uninstall(installation_id)

    @app.get("/api/installations", response_model=list[Installation])
    def list_installations(user_id: str | None = None) -> list[Installation]:
        return registry.installations(user_id=user_id)

    logger.info("App created", extra={"state_path": str(settings.state_path)})
    return app
